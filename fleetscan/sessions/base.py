"""
Contrats des transports de session

Le moteur de scan ne suppose aucun transport particulier : il reçoit une
fabrique de sessions déjà authentifiée et un testeur de connectivité.
Chaque session est la propriété exclusive d'une sonde et se ferme
comme un gestionnaire de contexte.
"""

from abc import ABC, abstractmethod
from typing import Dict, Any, List, Optional

from ..core.models import HostIdentifier, PathInfo


class RemoteSession(ABC):
    """
    Session de requête ouverte sur un hôte

    Les méthodes de requête lèvent DetectionError en cas d'échec
    transitoire et renvoient None / une liste vide quand l'élément
    recherché n'existe pas.
    """

    def __init__(self, host: HostIdentifier):
        self.host = host
        self.closed = False

    @abstractmethod
    def list_installed_software(self) -> List[Dict[str, Any]]:
        """
        Inventaire des logiciels installés

        Returns:
            list: Entrées {'name', 'version', 'vendor', 'install_location'}
        """

    @abstractmethod
    def stat_path(self, path: str) -> Optional[PathInfo]:
        """
        Vérifie l'existence d'un fichier

        Args:
            path: Chemin absolu sur l'hôte cible

        Returns:
            PathInfo: Métadonnées du fichier, ou None s'il n'existe pas
        """

    @abstractmethod
    def read_registry_values(self, key: str) -> Optional[Dict[str, Any]]:
        """
        Lit les valeurs d'une clé de registre

        Args:
            key: Chemin de la clé (ex: HKLM\\SOFTWARE\\Vendor\\Product)

        Returns:
            dict: Valeurs de la clé, ou None si la clé n'existe pas
        """

    def close(self):
        """Libère les ressources de la session (idempotent)"""
        if not self.closed:
            self.closed = True
            self._release()

    def _release(self):
        """Libération spécifique au transport"""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_value, traceback):
        self.close()
        return False


class SessionFactory(ABC):
    """
    Fabrique de sessions

    open() lève ConnectivityError si l'hôte ne répond pas et
    AccessDeniedError si la session est refusée.
    """

    @abstractmethod
    def open(self, host: HostIdentifier) -> RemoteSession:
        """Ouvre une session sur l'hôte"""


class ConnectivityChecker(ABC):
    """Test de joignabilité léger (équivalent ping)"""

    @abstractmethod
    def is_reachable(self, host: HostIdentifier, timeout: float) -> bool:
        """Retourne True si l'hôte répond dans le délai imparti"""
