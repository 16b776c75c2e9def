"""
Lecture de la version des exécutables Windows (ressource VERSIONINFO)
"""

import sys
from typing import Optional

from ..core.logger import get_logger

logger = get_logger('FleetScan.sessions.fileversion')


def read_file_version(path: str) -> Optional[str]:
    """
    Lit la version de fichier d'un exécutable ou d'une DLL

    Args:
        path: Chemin local ou UNC du fichier

    Returns:
        str: Version 'a.b.c.d', ou None si indisponible
    """
    if sys.platform != "win32" or not path.lower().endswith(('.exe', '.dll')):
        return None

    import win32api
    import pywintypes

    try:
        info = win32api.GetFileVersionInfo(path, "\\")
    except pywintypes.error as e:
        logger.debug(f"Pas de version pour {path}: {e}")
        return None

    ms = info['FileVersionMS']
    ls = info['FileVersionLS']
    return f"{ms >> 16}.{ms & 0xFFFF}.{ls >> 16}.{ls & 0xFFFF}"
