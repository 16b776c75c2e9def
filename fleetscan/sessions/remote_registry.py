"""
Session Windows distante

Utilise le registre distant (winreg.ConnectRegistry) pour l'inventaire
des applications et les clés de configuration, et le partage
administratif (\\\\hôte\\C$) pour les fichiers. Les droits sont ceux du
compte qui exécute le scanner.
"""

import os
import sys
import ntpath
from datetime import datetime
from typing import Dict, Any, List, Optional

from .base import RemoteSession, SessionFactory
from .fileversion import read_file_version
from .registry import split_key, read_key_values, read_uninstall_entries
from ..core.errors import ConfigurationError, ConnectivityError, AccessDeniedError, DetectionError
from ..core.logger import get_logger
from ..core.models import PathInfo

# Codes d'erreur Win32 renvoyés par ConnectRegistry
ERROR_BAD_NETPATH = 53
ERROR_NETNAME_DELETED = 64

CONNECTIVITY_ERRORS = {ERROR_BAD_NETPATH, ERROR_NETNAME_DELETED}


def to_admin_share_path(host: str, path: str) -> str:
    """
    Convertit un chemin local de l'hôte en chemin UNC administratif

    Args:
        host: Hôte cible
        path: Chemin absolu sur l'hôte (ex: C:\\Program Files\\App\\app.exe)

    Returns:
        str: Chemin UNC (ex: \\\\hôte\\C$\\Program Files\\App\\app.exe)
    """
    drive, tail = ntpath.splitdrive(path.replace('/', '\\'))
    if not drive:
        drive = 'C:'
    return f"\\\\{host}\\{drive.rstrip(':')}$" + ('' if tail.startswith('\\') else '\\') + tail


class RemoteRegistrySession(RemoteSession):
    """Session ouverte sur la ruche HKEY_LOCAL_MACHINE d'un hôte distant"""

    def __init__(self, host: str, hklm, logger=None):
        super().__init__(host)
        self._hklm = hklm
        self._hku = None
        self.logger = logger or get_logger('FleetScan.sessions.remote')

    def list_installed_software(self) -> List[Dict[str, Any]]:
        try:
            applications = read_uninstall_entries(self._hklm)
        except OSError as e:
            raise DetectionError(self.host, f"Erreur lecture inventaire distant: {e}", 'package_query')

        self.logger.debug(f"{self.host}: {len(applications)} applications dans le registre")
        return applications

    def stat_path(self, path: str) -> Optional[PathInfo]:
        unc_path = to_admin_share_path(self.host, path)
        try:
            stat_result = os.stat(unc_path)
        except FileNotFoundError:
            return None
        except OSError as e:
            raise DetectionError(self.host, f"Erreur accès {unc_path}: {e}", 'filesystem_path')

        return PathInfo(
            path=path,
            last_access=datetime.fromtimestamp(stat_result.st_atime),
            version=read_file_version(unc_path)
        )

    def read_registry_values(self, key: str) -> Optional[Dict[str, Any]]:
        import winreg

        hive, subkey = split_key(key)
        try:
            if hive == 'HKEY_LOCAL_MACHINE':
                root = self._hklm
            elif hive == 'HKEY_USERS':
                if self._hku is None:
                    self._hku = winreg.ConnectRegistry(f"\\\\{self.host}", winreg.HKEY_USERS)
                root = self._hku
            else:
                raise DetectionError(self.host, f"Ruche {hive} non accessible à distance", 'registry_key')

            return read_key_values(root, subkey)

        except OSError as e:
            raise DetectionError(self.host, f"Erreur lecture clé {key}: {e}", 'registry_key')

    def _release(self):
        import winreg

        for handle in (self._hku, self._hklm):
            if handle is not None:
                try:
                    winreg.CloseKey(handle)
                except OSError as e:
                    self.logger.debug(f"{self.host}: erreur fermeture registre: {e}")
        self._hku = None
        self._hklm = None


class RemoteRegistrySessionFactory(SessionFactory):
    """
    Fabrique de sessions registre distant

    Nécessite Windows et le service RemoteRegistry actif sur les cibles.
    """

    def __init__(self, logger=None):
        if sys.platform != "win32":
            raise ConfigurationError(["Le transport remote_registry nécessite Windows"])
        self.logger = logger or get_logger('FleetScan.sessions.remote')

    def open(self, host: str) -> RemoteRegistrySession:
        import winreg

        try:
            hklm = winreg.ConnectRegistry(f"\\\\{host}", winreg.HKEY_LOCAL_MACHINE)
        except OSError as e:
            code = getattr(e, 'winerror', None)
            if code in CONNECTIVITY_ERRORS:
                raise ConnectivityError(host, f"Chemin réseau introuvable ({code}): {e}")
            # Accès refusé, échec d'authentification, RPC bloqué par un pare-feu
            raise AccessDeniedError(host, f"Connexion registre refusée ({code}): {e}")

        return RemoteRegistrySession(host, hklm, logger=self.logger)
