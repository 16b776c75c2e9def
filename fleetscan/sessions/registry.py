"""
Lecture du registre Windows

Fonctions partagées par les sessions locale et distante. Le module
winreg n'existe que sous Windows : il est importé à l'utilisation.
"""

from typing import Dict, Any, List, Optional, Tuple

from ..core.utils import clean_string, parse_version

# Clés de désinstallation contenant l'inventaire des applications
UNINSTALL_PATHS = [
    r"SOFTWARE\Microsoft\Windows\CurrentVersion\Uninstall",
    r"SOFTWARE\WOW6432Node\Microsoft\Windows\CurrentVersion\Uninstall"
]

HIVE_ALIASES = {
    'HKLM': 'HKEY_LOCAL_MACHINE',
    'HKEY_LOCAL_MACHINE': 'HKEY_LOCAL_MACHINE',
    'HKU': 'HKEY_USERS',
    'HKEY_USERS': 'HKEY_USERS',
    'HKCU': 'HKEY_CURRENT_USER',
    'HKEY_CURRENT_USER': 'HKEY_CURRENT_USER',
}


def split_key(key: str) -> Tuple[str, str]:
    """
    Sépare la ruche du chemin de sous-clé

    Args:
        key: Chemin complet (ex: HKLM\\SOFTWARE\\Vendor)

    Returns:
        tuple: (nom de ruche winreg, sous-clé); HKLM par défaut
    """
    normalized = key.strip().replace('/', '\\').strip('\\')
    head, _, tail = normalized.partition('\\')
    hive = HIVE_ALIASES.get(head.upper())
    if hive is None:
        return 'HKEY_LOCAL_MACHINE', normalized
    return hive, tail


def read_key_values(root, subkey: str) -> Optional[Dict[str, Any]]:
    """
    Lit toutes les valeurs d'une clé

    Args:
        root: Ruche ouverte (locale ou distante)
        subkey: Chemin de la sous-clé

    Returns:
        dict: Valeurs {nom: donnée}, ou None si la clé n'existe pas
    """
    import winreg

    try:
        key = winreg.OpenKey(root, subkey)
    except FileNotFoundError:
        return None

    values = {}
    with key:
        index = 0
        while True:
            try:
                name, data, _value_type = winreg.EnumValue(key, index)
            except OSError:
                # Plus de valeurs
                break
            values[name] = data
            index += 1

    return values


def read_uninstall_entries(root) -> List[Dict[str, Any]]:
    """
    Lit l'inventaire des applications depuis les clés Uninstall

    Args:
        root: Ruche HKEY_LOCAL_MACHINE ouverte

    Returns:
        list: Applications trouvées
    """
    import winreg

    applications = []

    for path in UNINSTALL_PATHS:
        try:
            key = winreg.OpenKey(root, path)
        except FileNotFoundError:
            continue

        with key:
            index = 0
            while True:
                try:
                    subkey_name = winreg.EnumKey(key, index)
                except OSError:
                    # Plus de sous-clés
                    break
                index += 1

                values = read_key_values(key, subkey_name) or {}
                name = clean_string(values.get('DisplayName'))
                if not name:
                    # Pas de nom d'affichage, ignorer
                    continue

                applications.append({
                    'name': name,
                    'version': parse_version(values.get('DisplayVersion')),
                    'vendor': clean_string(values.get('Publisher')) or None,
                    'install_location': clean_string(values.get('InstallLocation')) or None
                })

    return applications
