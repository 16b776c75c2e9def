"""
Détection par présence de fichiers candidats
"""

from typing import Optional

from .base import BaseDetector
from ..core.errors import DetectionError
from ..core.models import Detection, DetectionMethod
from ..sessions.base import RemoteSession


class FileSystemPathDetector(BaseDetector):
    """
    Vérifie les chemins candidats dans l'ordre ; le premier fichier
    existant fournit le chemin d'installation et la date de dernier accès.
    """

    method = DetectionMethod.FILESYSTEM_PATH

    def detect(self, session: RemoteSession) -> Optional[Detection]:
        errors = []

        for path in self.config.file_paths:
            try:
                info = session.stat_path(path)
            except DetectionError as e:
                self.logger.debug(f"{session.host}: {path} non vérifiable: {e}")
                errors.append(str(e))
                continue

            if info is not None:
                return Detection(
                    method=self.method,
                    version=info.version,
                    install_path=info.path,
                    last_used=info.last_access,
                    evidence=path
                )

        self._fail_if_errors(session, errors)
        return None
