"""
Classe de base des méthodes de détection

Chaque détecteur implémente une stratégie de confirmation de présence
du logiciel sur une session ouverte. Les détecteurs sont construits une
fois par scan à partir de la ProbeConfig et partagés en lecture seule
entre les workers : ils ne portent aucun état mutable.
"""

import time
from abc import ABC, abstractmethod
from typing import Optional, List

from ..core.errors import DetectionError
from ..core.logger import get_logger
from ..core.models import Detection, DetectionMethod, ProbeConfig
from ..sessions.base import RemoteSession


class BaseDetector(ABC):
    """
    Classe de base abstraite des détecteurs

    detect() renvoie une Detection si le logiciel est trouvé, None si la
    recherche s'est déroulée proprement sans rien trouver, et lève
    DetectionError si la méthode n'a pas pu aboutir.
    """

    method: DetectionMethod = DetectionMethod.NONE

    def __init__(self, config: ProbeConfig, logger=None):
        """
        Args:
            config: Configuration immuable du scan
            logger: Logger optionnel
        """
        self.config = config
        self.logger = logger or get_logger(f'FleetScan.detectors.{self.method.value}')

    @abstractmethod
    def detect(self, session: RemoteSession) -> Optional[Detection]:
        """Exécute la méthode de détection sur la session"""

    def run(self, session: RemoteSession) -> Optional[Detection]:
        """
        Exécute detect() avec mesure de durée et journalisation

        Args:
            session: Session ouverte sur l'hôte

        Returns:
            Detection: Preuve d'installation, ou None
        """
        start_time = time.monotonic()
        self.logger.debug(f"{session.host}: début {self.method.value}")

        try:
            detection = self.detect(session)
        finally:
            duration = time.monotonic() - start_time
            self.logger.debug(f"{session.host}: {self.method.value} terminé en {duration:.2f}s")

        return detection

    def _fail_if_errors(self, session: RemoteSession, errors: List[str]):
        """
        Lève DetectionError si des candidats n'ont pas pu être vérifiés

        Args:
            session: Session courante
            errors: Erreurs rencontrées sur les candidats
        """
        if errors:
            raise DetectionError(session.host, errors[-1], self.method.value)
