"""
Détection par clés de registre
"""

from typing import Dict, Any, Optional

from .base import BaseDetector
from ..core.errors import DetectionError
from ..core.models import Detection, DetectionMethod
from ..core.utils import clean_string, parse_version
from ..sessions.base import RemoteSession

VERSION_VALUES = ('DisplayVersion', 'Version', 'CurrentVersion')
PATH_VALUES = ('InstallLocation', 'InstallPath', 'InstallDir', 'Path')


class RegistryKeyDetector(BaseDetector):
    """
    Vérifie les clés candidates dans l'ordre

    Une clé présente (et contenant la valeur nommée, si configurée)
    implique l'installation.
    """

    method = DetectionMethod.REGISTRY_KEY

    def detect(self, session: RemoteSession) -> Optional[Detection]:
        errors = []

        for check in self.config.registry_keys:
            try:
                values = session.read_registry_values(check.key)
            except DetectionError as e:
                self.logger.debug(f"{session.host}: clé {check.key} non lisible: {e}")
                errors.append(str(e))
                continue

            if values is None:
                continue
            if check.value_name and values.get(check.value_name) in (None, ''):
                continue

            return Detection(
                method=self.method,
                version=parse_version(self._first_value(values, VERSION_VALUES)),
                install_path=clean_string(self._first_value(values, PATH_VALUES)) or None,
                evidence=str(check)
            )

        self._fail_if_errors(session, errors)
        return None

    def _first_value(self, values: Dict[str, Any], names) -> Optional[str]:
        for name in names:
            value = values.get(name)
            if value not in (None, ''):
                return str(value)
        return None
