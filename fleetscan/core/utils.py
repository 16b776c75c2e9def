"""
Utilitaires partagés de nettoyage de chaînes et de versions
"""

import re
import subprocess
from typing import Optional

from .logger import get_logger

logger = get_logger('FleetScan.utils')


def clean_string(value) -> str:
    """
    Nettoie une chaîne de caractères

    Args:
        value: Valeur à nettoyer

    Returns:
        str: Chaîne sans caractères de contrôle ni espaces multiples
    """
    if not value:
        return ""

    value = str(value).strip()
    value = ''.join(char for char in value if char.isprintable())
    return re.sub(r'\s+', ' ', value)


def parse_version(version_string) -> Optional[str]:
    """
    Parse et nettoie une chaîne de version

    Args:
        version_string: Chaîne de version brute

    Returns:
        str: Version nettoyée, ou None si absente
    """
    if not version_string:
        return None

    version_string = str(version_string).strip()

    # Supprimer les préfixes communs
    for prefix in ('version ', 'v'):
        if version_string.lower().startswith(prefix):
            version_string = version_string[len(prefix):].strip()

    version_match = re.search(r'\d[\w.\-+~:]*', version_string)
    if version_match:
        return version_match.group(0)

    return version_string or None


def execute_command(command: str, timeout: float = 30) -> Optional[str]:
    """
    Exécute une commande système et retourne sa sortie

    Args:
        command: Commande à exécuter
        timeout: Délai maximum en secondes

    Returns:
        str: Sortie de la commande, ou None si elle a échoué
    """
    try:
        result = subprocess.run(
            command,
            shell=True,
            capture_output=True,
            text=True,
            timeout=timeout
        )
    except subprocess.TimeoutExpired:
        logger.warning(f"Timeout pour la commande: {command}")
        return None
    except OSError as e:
        logger.warning(f"Erreur lors de l'exécution de '{command}': {e}")
        return None

    if result.returncode != 0:
        logger.debug(f"Commande échouée: {command} (code: {result.returncode})")
        return None

    return result.stdout.strip()
