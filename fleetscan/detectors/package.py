"""
Détection par interrogation de l'inventaire des logiciels installés
"""

import re
from typing import Optional

from .base import BaseDetector
from ..core.models import Detection, DetectionMethod
from ..core.utils import parse_version
from ..sessions.base import RemoteSession


class PackageQueryDetector(BaseDetector):
    """
    Recherche dans l'inventaire distant une entrée correspondant à l'un
    des motifs de nom (insensibles à la casse), dans l'ordre des motifs.
    """

    method = DetectionMethod.PACKAGE_QUERY

    def __init__(self, config, logger=None):
        super().__init__(config, logger)
        self.patterns = [re.compile(pattern, re.IGNORECASE) for pattern in config.package_patterns]

    def detect(self, session: RemoteSession) -> Optional[Detection]:
        software = session.list_installed_software()
        self.logger.debug(f"{session.host}: {len(software)} entrées d'inventaire")

        for pattern in self.patterns:
            for entry in software:
                name = entry.get('name') or ''
                if pattern.search(name):
                    return Detection(
                        method=self.method,
                        version=parse_version(entry.get('version')),
                        install_path=entry.get('install_location') or None,
                        evidence=name
                    )

        return None
