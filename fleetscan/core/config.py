"""
Module de configuration du scanner de parc

Ce module gère la configuration du scanner, incluant :
- Lecture des fichiers de configuration INI
- Valeurs par défaut
- Construction et validation de la ProbeConfig d'un scan
"""

import os
import re
import sys
import configparser
from typing import Dict, Any, List, Optional

from .errors import ConfigurationError
from .models import ProbeConfig, DetectionMethod, RegistryKeyCheck

TRANSPORTS = ('remote_registry', 'local')
FREQUENCIES = ('hourly', 'daily', 'weekly', 'monthly')
LOG_LEVELS = ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL')


def split_list(raw: Optional[str], separators: str = r'[;\n]') -> List[str]:
    """
    Découpe une valeur de configuration multi-éléments

    Args:
        raw: Valeur brute
        separators: Expression des séparateurs acceptés

    Returns:
        list: Éléments non vides, espaces retirés
    """
    if not raw:
        return []
    return [item.strip() for item in re.split(separators, raw) if item.strip()]


class ScanConfig:
    """
    Gestionnaire de configuration du scanner

    Cette classe centralise les paramètres de scan, de détection,
    d'envoi serveur, de planification, d'interface web et de logging.
    """

    def __init__(self, config_file: Optional[str] = None):
        """
        Initialise la configuration

        Args:
            config_file: Chemin vers le fichier de configuration (optionnel)
        """
        self.config = configparser.ConfigParser(interpolation=None)
        self.config_file = config_file or self._get_default_config_path()
        self.errors: List[str] = []

        self._set_defaults()
        self._load_config()

    def _get_default_config_path(self) -> str:
        """
        Détermine le chemin par défaut du fichier de configuration selon la plateforme

        Returns:
            str: Chemin vers le fichier de configuration
        """
        if sys.platform == "win32":
            return os.path.join(
                os.environ.get("PROGRAMDATA", "C:\\ProgramData"),
                "FleetScan",
                "fleetscan.ini"
            )
        return "/etc/fleetscan/fleetscan.ini"

    def _set_defaults(self):
        """
        Définit les valeurs de configuration par défaut
        """
        self.config.add_section('scan')
        self.config.set('scan', 'max_concurrency', '10')
        self.config.set('scan', 'per_host_timeout', '60')
        self.config.set('scan', 'connect_timeout', '3')
        self.config.set('scan', 'connect_ports', '445,135')
        self.config.set('scan', 'transport', 'remote_registry')
        self.config.set('scan', 'partial_error_retries', '0')
        self.config.set('scan', 'retry_delay', '5')
        self.config.set('scan', 'hosts_file', '')

        self.config.add_section('detection')
        self.config.set('detection', 'methods', 'package_query,filesystem_path,registry_key')
        self.config.set('detection', 'package_patterns', '')
        self.config.set('detection', 'file_paths', '')
        self.config.set('detection', 'registry_keys', '')

        self.config.add_section('server')
        self.config.set('server', 'enabled', 'false')
        self.config.set('server', 'url', 'http://localhost:8000/api/v1/scans')
        self.config.set('server', 'auth_token', '')
        self.config.set('server', 'timeout', '30')
        self.config.set('server', 'verify_ssl', 'true')

        self.config.add_section('schedule')
        self.config.set('schedule', 'frequency', 'daily')
        self.config.set('schedule', 'time', '02:00')

        self.config.add_section('web_interface')
        self.config.set('web_interface', 'enabled', 'false')
        self.config.set('web_interface', 'host', '127.0.0.1')
        self.config.set('web_interface', 'port', '18744')

        self.config.add_section('logging')
        self.config.set('logging', 'log_level', 'INFO')
        self.config.set('logging', 'log_file', self._get_default_log_path())
        self.config.set('logging', 'max_log_size', '10485760')  # 10MB
        self.config.set('logging', 'backup_count', '5')

    def _get_default_log_path(self) -> str:
        if sys.platform == "win32":
            return os.path.join(
                os.environ.get("PROGRAMDATA", "C:\\ProgramData"),
                "FleetScan",
                "logs",
                "fleetscan.log"
            )
        return "/var/log/fleetscan/fleetscan.log"

    def _load_config(self):
        """
        Charge la configuration depuis le fichier

        Si le fichier n'existe pas, utilise les valeurs par défaut.
        """
        if not os.path.exists(self.config_file):
            return

        try:
            self.config.read(self.config_file, encoding='utf-8')
        except configparser.Error as e:
            raise ConfigurationError([f"Fichier {self.config_file} illisible: {e}"])

    def get(self, section: str, option: str, fallback: Any = None) -> str:
        return self.config.get(section, option, fallback=fallback)

    def getboolean(self, section: str, option: str, fallback: bool = False) -> bool:
        return self.config.getboolean(section, option, fallback=fallback)

    def getint(self, section: str, option: str, fallback: int = 0) -> int:
        return self.config.getint(section, option, fallback=fallback)

    def getfloat(self, section: str, option: str, fallback: float = 0.0) -> float:
        return self.config.getfloat(section, option, fallback=fallback)

    def set(self, section: str, option: str, value):
        """
        Définit une valeur de configuration

        Args:
            section: Nom de la section
            option: Nom de l'option
            value: Nouvelle valeur
        """
        if not self.config.has_section(section):
            self.config.add_section(section)
        self.config.set(section, option, str(value))

    def save(self):
        """
        Sauvegarde la configuration dans le fichier

        Crée les dossiers parents si nécessaire.
        """
        config_dir = os.path.dirname(self.config_file)
        if config_dir and not os.path.exists(config_dir):
            os.makedirs(config_dir, exist_ok=True)

        with open(self.config_file, 'w', encoding='utf-8') as f:
            self.config.write(f)

    def get_probe_config(self) -> ProbeConfig:
        """
        Construit la configuration immuable du scan

        Returns:
            ProbeConfig: Configuration validée

        Raises:
            ConfigurationError: Valeur illisible ou configuration incohérente
        """
        try:
            methods = tuple(
                DetectionMethod(name.lower())
                for name in split_list(self.get('detection', 'methods'), r'[,;\s]+')
            )
        except ValueError as e:
            raise ConfigurationError([f"Méthode de détection inconnue: {e}"])

        try:
            probe_config = ProbeConfig(
                max_concurrency=self.getint('scan', 'max_concurrency', 10),
                per_host_timeout=self.getfloat('scan', 'per_host_timeout', 60.0),
                detection_methods=methods,
                package_patterns=tuple(split_list(self.get('detection', 'package_patterns'))),
                file_paths=tuple(split_list(self.get('detection', 'file_paths'))),
                registry_keys=tuple(
                    RegistryKeyCheck.parse(raw)
                    for raw in split_list(self.get('detection', 'registry_keys'))
                ),
                connect_timeout=self.getfloat('scan', 'connect_timeout', 3.0),
                connect_ports=tuple(
                    int(port) for port in split_list(self.get('scan', 'connect_ports'), r'[,;\s]+')
                ),
                partial_error_retries=self.getint('scan', 'partial_error_retries', 0),
                retry_delay=self.getfloat('scan', 'retry_delay', 5.0)
            )
        except ValueError as e:
            raise ConfigurationError([f"Valeur numérique invalide: {e}"])

        probe_config.validate()
        return probe_config

    def get_scan_config(self) -> Dict[str, Any]:
        return {
            'max_concurrency': self.get('scan', 'max_concurrency'),
            'per_host_timeout': self.get('scan', 'per_host_timeout'),
            'connect_timeout': self.get('scan', 'connect_timeout'),
            'connect_ports': self.get('scan', 'connect_ports'),
            'transport': self.get('scan', 'transport'),
            'partial_error_retries': self.get('scan', 'partial_error_retries'),
            'methods': self.get('detection', 'methods')
        }

    def get_server_config(self) -> Dict[str, Any]:
        return {
            'enabled': self.getboolean('server', 'enabled', False),
            'url': self.get('server', 'url'),
            'auth_token': self.get('server', 'auth_token', ''),
            'timeout': self.getint('server', 'timeout', 30),
            'verify_ssl': self.getboolean('server', 'verify_ssl', True)
        }

    def get_schedule_config(self) -> Dict[str, Any]:
        return {
            'frequency': self.get('schedule', 'frequency', 'daily'),
            'time': self.get('schedule', 'time', '02:00')
        }

    def get_web_config(self) -> Dict[str, Any]:
        return {
            'enabled': self.getboolean('web_interface', 'enabled', False),
            'port': self.getint('web_interface', 'port', 18744),
            'host': self.get('web_interface', 'host', '127.0.0.1')
        }

    def validate(self) -> bool:
        """
        Valide la configuration courante

        Les erreurs trouvées sont conservées dans self.errors.

        Returns:
            bool: True si la configuration est valide, False sinon
        """
        errors = []

        try:
            self.get_probe_config()
        except ConfigurationError as e:
            errors.extend(e.errors)

        if self.get('scan', 'transport') not in TRANSPORTS:
            errors.append(f"Transport invalide (doit être: {', '.join(TRANSPORTS)})")

        server_config = self.get_server_config()
        if server_config['enabled'] and not str(server_config['url']).startswith(('http://', 'https://')):
            errors.append("URL serveur invalide")

        if self.get('schedule', 'frequency') not in FREQUENCIES:
            errors.append(f"Fréquence invalide (doit être: {', '.join(FREQUENCIES)})")

        if not re.fullmatch(r'\d{2}:\d{2}', self.get('schedule', 'time', '')):
            errors.append("Heure de planification invalide (format HH:MM)")

        if str(self.get('logging', 'log_level')).upper() not in LOG_LEVELS:
            errors.append("Niveau de log invalide")

        try:
            web_port = self.getint('web_interface', 'port')
            if not 1 <= web_port <= 65535:
                errors.append("Port interface web invalide (doit être entre 1 et 65535)")
        except ValueError:
            errors.append("Port interface web invalide")

        self.errors = errors
        return not errors


def create_default_config(config_path: str) -> ScanConfig:
    """
    Crée un fichier de configuration par défaut

    Args:
        config_path: Chemin où créer le fichier de configuration

    Returns:
        ScanConfig: Instance de configuration créée
    """
    config = ScanConfig(config_path)
    config.save()
    return config
