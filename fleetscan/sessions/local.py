"""
Session locale

Interroge la machine sur laquelle tourne le scanner, quel que soit
l'identifiant d'hôte demandé. Utile pour valider une configuration de
détection sur un poste avant de lancer un scan de parc.

Sources d'inventaire :
- Windows : clés Uninstall du registre
- Linux : dpkg, rpm, pacman
"""

import os
import sys
from datetime import datetime
from typing import Dict, Any, List, Optional

from .base import RemoteSession, SessionFactory
from .fileversion import read_file_version
from .registry import split_key, read_key_values, read_uninstall_entries
from ..core.errors import DetectionError
from ..core.logger import get_logger
from ..core.models import PathInfo
from ..core.utils import clean_string, parse_version, execute_command


class LocalSession(RemoteSession):
    """Session sur la machine locale"""

    def __init__(self, host: str, logger=None):
        super().__init__(host)
        self.logger = logger or get_logger('FleetScan.sessions.local')

    def list_installed_software(self) -> List[Dict[str, Any]]:
        if sys.platform == "win32":
            return self._collect_windows_registry()
        return self._collect_linux_packages()

    def _collect_windows_registry(self) -> List[Dict[str, Any]]:
        import winreg

        try:
            applications = read_uninstall_entries(winreg.HKEY_LOCAL_MACHINE)
        except OSError as e:
            raise DetectionError(self.host, f"Erreur lecture registre: {e}", 'package_query')

        self.logger.debug(f"Registre: {len(applications)} applications trouvées")
        return applications

    def _collect_linux_packages(self) -> List[Dict[str, Any]]:
        """
        Collecte via les gestionnaires de paquets disponibles

        Raises:
            DetectionError: Aucun gestionnaire de paquets n'a répondu
        """
        applications = []
        answered = False

        # dpkg (Debian/Ubuntu)
        output = execute_command("dpkg -l")
        if output is not None:
            answered = True
            for line in output.split('\n'):
                if line.startswith('ii '):  # Installé
                    parts = line.split()
                    if len(parts) >= 3:
                        applications.append(self._package(parts[1], parts[2], 'Debian Package'))

        # rpm (RedHat/CentOS/Fedora)
        output = execute_command("rpm -qa --queryformat '%{NAME} %{VERSION}-%{RELEASE}\\n'")
        if output is not None:
            answered = True
            for line in output.split('\n'):
                parts = line.strip().split(' ', 1)
                if len(parts) == 2:
                    applications.append(self._package(parts[0], parts[1], 'RPM Package'))

        # pacman (Arch Linux)
        output = execute_command("pacman -Q")
        if output is not None:
            answered = True
            for line in output.split('\n'):
                parts = line.strip().split(' ')
                if len(parts) >= 2:
                    applications.append(self._package(parts[0], parts[1], 'Arch Package'))

        if not answered:
            raise DetectionError(self.host, "Aucun gestionnaire de paquets disponible", 'package_query')

        self.logger.debug(f"Paquets locaux: {len(applications)} trouvés")
        return applications

    def _package(self, name: str, version: str, vendor: str) -> Dict[str, Any]:
        return {
            'name': clean_string(name),
            'version': parse_version(version),
            'vendor': vendor,
            'install_location': None
        }

    def stat_path(self, path: str) -> Optional[PathInfo]:
        try:
            stat_result = os.stat(path)
        except FileNotFoundError:
            return None
        except OSError as e:
            raise DetectionError(self.host, f"Erreur accès {path}: {e}", 'filesystem_path')

        return PathInfo(
            path=path,
            last_access=datetime.fromtimestamp(stat_result.st_atime),
            version=read_file_version(path)
        )

    def read_registry_values(self, key: str) -> Optional[Dict[str, Any]]:
        if sys.platform != "win32":
            raise DetectionError(self.host, "Registre Windows indisponible sur cette plateforme",
                                 'registry_key')

        import winreg

        hive, subkey = split_key(key)
        try:
            return read_key_values(getattr(winreg, hive), subkey)
        except OSError as e:
            raise DetectionError(self.host, f"Erreur lecture clé {key}: {e}", 'registry_key')


class LocalSessionFactory(SessionFactory):
    """Fabrique de sessions locales (jamais refusées)"""

    def open(self, host: str) -> LocalSession:
        return LocalSession(host)
