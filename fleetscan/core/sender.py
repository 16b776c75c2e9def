"""
Module de communication avec le serveur central

Ce module gère :
- L'envoi des rapports de scan au serveur central
- L'authentification par jeton
- La gestion des erreurs réseau
- Les tentatives de renvoi
"""

import json
import time
import requests
from typing import Dict, Any, Tuple
from datetime import datetime

from .. import __version__
from .logger import get_logger
from .models import ScanReport

USER_AGENT = f'FleetScan/{__version__}'


class ReportSender:
    """
    Gestionnaire d'envoi des rapports de scan

    Poste le rapport (résultats triés + résumé) au format JSON vers
    l'URL configurée.
    """

    def __init__(self, config, logger=None):
        """
        Initialise le sender avec la configuration

        Args:
            config: Instance de ScanConfig
            logger: Logger optionnel
        """
        self.config = config
        self.logger = logger or get_logger('FleetScan.sender')

        server_config = config.get_server_config()
        self.server_url = server_config['url']
        self.auth_token = server_config['auth_token']
        self.timeout = server_config['timeout']
        self.verify_ssl = server_config['verify_ssl']

        # Statistiques de communication
        self.last_successful_send = None
        self.send_attempts = 0
        self.send_failures = 0

        self.logger.debug(f"ReportSender initialisé (URL serveur: {self.server_url})")

    def _headers(self) -> Dict[str, str]:
        headers = {
            'Content-Type': 'application/json',
            'User-Agent': USER_AGENT
        }
        if self.auth_token:
            headers['Authorization'] = f'Bearer {self.auth_token}'
        return headers

    def send_report(self, report: ScanReport) -> Tuple[bool, str]:
        """
        Envoie un rapport de scan au serveur

        Args:
            report: Rapport final du scan

        Returns:
            Tuple[bool, str]: (Succès, Message de résultat)
        """
        self.send_attempts += 1

        payload = {
            'timestamp': datetime.now().isoformat(),
            'scanner_version': __version__,
            'data': report.to_dict()
        }

        try:
            self.logger.info(f"Envoi du rapport de scan ({report.summary.total} hôte(s))")
            response = requests.post(
                url=self.server_url,
                json=payload,
                headers=self._headers(),
                timeout=self.timeout,
                verify=self.verify_ssl
            )

        except requests.exceptions.Timeout:
            return self._failure(f"Timeout lors de l'envoi (>{self.timeout}s)")

        except requests.exceptions.SSLError as e:
            return self._failure(f"Erreur SSL: {e}")

        except requests.exceptions.ConnectionError as e:
            return self._failure(f"Erreur de connexion: {e}")

        except requests.exceptions.RequestException as e:
            return self._failure(f"Erreur inattendue: {e}")

        if response.status_code in (200, 201):
            self.last_successful_send = datetime.now()
            self.logger.info("Rapport envoyé avec succès")

            try:
                server_message = response.json().get('message', 'Succès')
            except (json.JSONDecodeError, ValueError, AttributeError):
                return True, "Envoi réussi (réponse serveur non-JSON)"
            return True, f"Envoi réussi: {server_message}"

        if response.status_code == 401:
            return self._failure("Erreur d'authentification (token invalide ou manquant)")
        if response.status_code == 403:
            return self._failure("Accès refusé par le serveur")
        if response.status_code == 400:
            return self._failure(f"Données invalides: {response.text[:200]}")

        return self._failure(f"Erreur serveur HTTP {response.status_code}: {response.text[:200]}")

    def _failure(self, message: str) -> Tuple[bool, str]:
        self.send_failures += 1
        self.logger.error(message)
        return False, message

    def send_with_retry(self, report: ScanReport, max_retries: int = 3,
                        retry_delay: float = 5) -> Tuple[bool, str]:
        """
        Envoie le rapport avec nouvelles tentatives

        Args:
            report: Rapport à envoyer
            max_retries: Nombre maximum de nouvelles tentatives
            retry_delay: Délai entre les tentatives (secondes)

        Returns:
            Tuple[bool, str]: (Succès final, Message de résultat)
        """
        last_error = ""

        for attempt in range(max_retries + 1):
            if attempt > 0:
                self.logger.info(f"Tentative {attempt + 1}/{max_retries + 1}")
                time.sleep(retry_delay)

            success, message = self.send_report(report)
            if success:
                if attempt > 0:
                    self.logger.info(f"Envoi réussi après {attempt + 1} tentative(s)")
                return True, message

            last_error = message
            if attempt < max_retries:
                self.logger.warning(f"Tentative {attempt + 1} échouée: {message}")

        self.logger.error(f"Échec définitif après {max_retries + 1} tentatives")
        return False, f"Échec après {max_retries + 1} tentatives. Dernière erreur: {last_error}"

    def test_connection(self) -> Tuple[bool, str]:
        """
        Teste la connexion au serveur sans envoyer de données

        Returns:
            Tuple[bool, str]: (Connexion OK, Message de statut)
        """
        try:
            response = requests.get(
                url=self.server_url,
                headers=self._headers(),
                timeout=self.timeout,
                verify=self.verify_ssl
            )
        except requests.exceptions.Timeout:
            return False, "Timeout lors du test de connexion"
        except requests.exceptions.ConnectionError:
            return False, "Impossible de se connecter au serveur"
        except requests.exceptions.RequestException as e:
            return False, f"Erreur lors du test: {e}"

        # 404/405 = serveur joignable mais endpoint en POST seulement
        if response.status_code in (200, 404, 405):
            return True, "Connexion OK"
        return False, f"Serveur répond avec code {response.status_code}"

    def get_stats(self) -> Dict[str, Any]:
        """
        Retourne les statistiques de communication

        Returns:
            dict: Statistiques d'envoi
        """
        return {
            'last_successful_send': self.last_successful_send.isoformat() if self.last_successful_send else None,
            'total_attempts': self.send_attempts,
            'total_failures': self.send_failures,
            'success_rate': ((self.send_attempts - self.send_failures) / self.send_attempts * 100)
            if self.send_attempts > 0 else 0,
            'server_url': self.server_url
        }
