"""
Package des méthodes de détection

- Interrogation de l'inventaire des logiciels (package_query)
- Présence de fichiers (filesystem_path)
- Clés de registre (registry_key)
"""

from typing import List

from .base import BaseDetector
from .package import PackageQueryDetector
from .filesystem import FileSystemPathDetector
from .registry import RegistryKeyDetector
from ..core.models import DetectionMethod, ProbeConfig

DETECTORS = {
    DetectionMethod.PACKAGE_QUERY: PackageQueryDetector,
    DetectionMethod.FILESYSTEM_PATH: FileSystemPathDetector,
    DetectionMethod.REGISTRY_KEY: RegistryKeyDetector,
}


def build_detectors(config: ProbeConfig) -> List[BaseDetector]:
    """
    Construit les détecteurs dans l'ordre configuré

    Args:
        config: Configuration validée du scan

    Returns:
        list: Détecteurs prêts à l'emploi
    """
    return [DETECTORS[method](config) for method in config.detection_methods]


__all__ = ['BaseDetector', 'PackageQueryDetector', 'FileSystemPathDetector',
           'RegistryKeyDetector', 'build_detectors']
