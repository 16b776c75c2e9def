"""
Module de logging du scanner de parc

Ce module fournit un système de logging centralisé avec :
- Rotation automatique des logs
- Niveau configurable
- Formatage cohérent fichier / console
"""

import os
import sys
import logging
import logging.handlers

LOGGER_NAME = 'FleetScan'


class ScanLogger:
    """
    Gestionnaire de logging du scanner

    Configure une seule fois le logger racine 'FleetScan' ; les modules
    utilisent ensuite des loggers enfants via get_logger().
    """

    def __init__(self, config=None):
        """
        Initialise le système de logging

        Args:
            config: Instance de ScanConfig pour récupérer les paramètres de log
        """
        self.config = config
        self.logger = logging.getLogger(LOGGER_NAME)

        # Éviter la duplication si déjà configuré
        if not self.logger.handlers:
            self._setup_logging()

    def _setup_logging(self):
        """
        Configure le niveau, le format et les handlers fichier et console
        """
        if self.config:
            log_level_str = self.config.get('logging', 'log_level', 'INFO')
            log_file = self.config.get('logging', 'log_file')
            max_size = self.config.getint('logging', 'max_log_size', 10485760)  # 10MB
            backup_count = self.config.getint('logging', 'backup_count', 5)
        else:
            log_level_str = 'INFO'
            log_file = self._get_default_log_file()
            max_size = 10485760  # 10MB
            backup_count = 5

        log_level = getattr(logging, str(log_level_str).upper(), logging.INFO)
        self.logger.setLevel(log_level)

        formatter = logging.Formatter(
            fmt='%(asctime)s - %(name)s - %(levelname)s - [%(threadName)s] - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        # Handler pour fichier avec rotation
        if log_file:
            try:
                log_dir = os.path.dirname(log_file)
                if log_dir and not os.path.exists(log_dir):
                    os.makedirs(log_dir, exist_ok=True)

                file_handler = logging.handlers.RotatingFileHandler(
                    filename=log_file,
                    maxBytes=max_size,
                    backupCount=backup_count,
                    encoding='utf-8'
                )
                file_handler.setLevel(log_level)
                file_handler.setFormatter(formatter)
                self.logger.addHandler(file_handler)

            except OSError as e:
                print(f"Erreur lors de la configuration du logging fichier: {e}", file=sys.stderr)

        # Format simplifié pour la console
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(log_level)
        console_handler.setFormatter(logging.Formatter(fmt='%(levelname)s - %(message)s'))
        self.logger.addHandler(console_handler)

        self.logger.debug("Système de logging initialisé")
        if self.config:
            self.logger.debug(f"Niveau de log: {log_level_str}")
            self.logger.debug(f"Fichier de log: {log_file}")

    def _get_default_log_file(self) -> str:
        """
        Détermine le fichier de log par défaut selon la plateforme

        Returns:
            str: Chemin vers le fichier de log par défaut
        """
        if sys.platform == "win32":
            return os.path.join(os.environ.get("TEMP", "C:\\temp"), "fleetscan.log")
        return "/tmp/fleetscan.log"

    def get_logger(self) -> logging.Logger:
        return self.logger

    def log_config_info(self, config):
        """
        Log la configuration de scan (sans le token serveur)

        Args:
            config: Instance de ScanConfig
        """
        self.logger.info("=== Configuration du scan ===")

        for key, value in config.get_scan_config().items():
            self.logger.info(f"Scan.{key}: {value}")

        for key, value in config.get_server_config().items():
            if key == 'auth_token':
                token_preview = value[:8] + "..." if len(value) > 8 else "Non configuré"
                self.logger.info(f"Server.{key}: {token_preview}")
            else:
                self.logger.info(f"Server.{key}: {value}")

        self.logger.info("=== Fin configuration ===")


def get_logger(name: str = LOGGER_NAME) -> logging.Logger:
    """
    Fonction utilitaire pour récupérer un logger nommé

    Args:
        name: Nom du logger (enfant de 'FleetScan' de préférence)

    Returns:
        logging.Logger: Instance du logger
    """
    return logging.getLogger(name)
