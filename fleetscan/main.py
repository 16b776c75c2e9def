"""
Point d'entrée principal de FleetScan

Ce module orchestre les composants du scanner et peut être exécuté
de différentes manières :
- En mode scan unique (progression console, export JSON, envoi serveur)
- En mode service (scans planifiés + interface web)
- En mode interface web seule
"""

import sys
import json
import signal
import argparse
import threading
from typing import List, Optional, Sequence

from fleetscan.core.config import ScanConfig, create_default_config
from fleetscan.core.dispatcher import CancellationToken
from fleetscan.core.errors import ConfigurationError
from fleetscan.core.logger import ScanLogger
from fleetscan.core.models import ScanReport
from fleetscan.core.progress import ProgressEvent
from fleetscan.core.scanner import FleetScanner, build_session_factory
from fleetscan.core.scheduler import ScanScheduler
from fleetscan.core.sender import ReportSender
from fleetscan.sessions.connectivity import TcpConnectivityChecker


def load_hosts(hosts_file: Optional[str] = None, hosts: Sequence[str] = ()) -> List[str]:
    """
    Charge la liste des hôtes à sonder

    Args:
        hosts_file: Fichier texte, un hôte par ligne ('#' pour les commentaires)
        hosts: Hôtes supplémentaires passés en ligne de commande

    Returns:
        list: Hôtes dédoublonnés, dans l'ordre de lecture
    """
    collected = []

    if hosts_file:
        with open(hosts_file, 'r', encoding='utf-8') as f:
            for line in f:
                host = line.split('#', 1)[0].strip()
                if host:
                    collected.append(host)

    collected.extend(host.strip() for host in hosts if host.strip())
    return list(dict.fromkeys(collected))


def console_progress(event: ProgressEvent):
    """Puits de progression affichant une ligne par hôte terminé"""
    result = event.last_result
    status = result.classification.value
    if result.software_detected:
        status += f", détecté ({result.detection_method.value}, version {result.detected_version or '?'})"
    print(f"[{event.completed}/{event.total}] {result.host}: {status}")


class FleetScanAgent:
    """
    Agent FleetScan principal

    Cette classe assemble configuration, logging, scanner et envoi,
    et gère les différents modes de fonctionnement.
    """

    def __init__(self, config_path=None, hosts_file=None, hosts: Sequence[str] = (),
                 session_factory=None, connectivity_checker=None):
        """
        Initialise l'agent

        Args:
            config_path: Chemin vers le fichier de configuration
            hosts_file: Fichier d'hôtes (prioritaire sur la configuration)
            hosts: Hôtes passés en ligne de commande
            session_factory: Fabrique de sessions (sinon selon le transport configuré)
            connectivity_checker: Test de connectivité (sinon TCP sur les ports configurés)

        Raises:
            ConfigurationError: Configuration invalide
        """
        self.config = ScanConfig(config_path)
        self.logger = ScanLogger(self.config)
        self.app_logger = self.logger.get_logger()
        self.logger.log_config_info(self.config)

        probe_config = self.config.get_probe_config()

        self.hosts_file = hosts_file or self.config.get('scan', 'hosts_file') or None
        self.extra_hosts = list(hosts)

        self.scanner = FleetScanner(
            probe_config,
            session_factory or build_session_factory(self.config.get('scan', 'transport')),
            connectivity_checker or TcpConnectivityChecker(probe_config.connect_ports)
        )
        self.sender = ReportSender(self.config)
        self.scheduler = None
        self.web_app = None

        self.running = False
        self.shutdown_event = threading.Event()

    def get_hosts(self) -> List[str]:
        hosts = load_hosts(self.hosts_file, self.extra_hosts)
        if not hosts:
            raise ConfigurationError(["Aucun hôte à sonder (utiliser --hosts-file ou --host)"])
        return hosts

    def run_scan(self, output: Optional[str] = None, progress_sinks=(),
                 cancel_token: Optional[CancellationToken] = None) -> ScanReport:
        """
        Exécute un scan complet puis transmet le rapport

        Un scan annulé produit aussi un rapport (statut cancelled, hôtes
        terminés et hôtes manquants), écrit et transmis comme les autres.

        Args:
            output: Fichier JSON de sortie (optionnel)
            progress_sinks: Puits de progression supplémentaires
            cancel_token: Jeton d'annulation (Ctrl-C en mode scan)

        Returns:
            ScanReport: Rapport du scan
        """
        report = self.scanner.scan(self.get_hosts(), cancel_token=cancel_token,
                                   progress_sinks=progress_sinks)

        if output:
            with open(output, 'w', encoding='utf-8') as f:
                json.dump(report.to_dict(), f, indent=2, ensure_ascii=False)
            self.app_logger.info(f"Rapport sauvegardé dans: {output}")

        if self.config.get_server_config()['enabled']:
            success, message = self.sender.send_with_retry(report)
            if not success:
                self.app_logger.error(f"Rapport non transmis: {message}")

        return report

    def _run_scan_safely(self):
        try:
            self.run_scan()
        except ConfigurationError as e:
            self.app_logger.error(str(e))
        except RuntimeError as e:
            self.app_logger.warning(f"Scan non lancé: {e}")

    def start_background_scan(self) -> threading.Thread:
        """
        Lance un scan dans un thread séparé

        Raises:
            ConfigurationError: Aucun hôte à sonder
        """
        self.get_hosts()
        thread = threading.Thread(target=self._run_scan_safely, name="BackgroundScan", daemon=True)
        thread.start()
        return thread

    def start_scheduler(self):
        if self.scheduler:
            self.app_logger.warning("Le planificateur est déjà démarré")
            return

        self.scheduler = ScanScheduler(self.config, self._run_scan_safely)
        self.scheduler.start()

    def start_web_interface(self, force=False):
        """
        Démarre l'interface web dans un thread séparé
        """
        web_config = self.config.get_web_config()
        if not (web_config['enabled'] or force):
            self.app_logger.info("Interface web désactivée dans la configuration")
            return None

        from fleetscan.web.app import ScanWebApp

        self.web_app = ScanWebApp(self)
        web_thread = threading.Thread(
            target=self.web_app.run,
            args=(web_config['host'], web_config['port']),
            name="WebInterface",
            daemon=True
        )
        web_thread.start()
        return web_thread

    def run_service_mode(self):
        """
        Lance l'agent en mode service : scans planifiés et interface web
        """
        self.app_logger.info("Démarrage de FleetScan en mode service")
        self._setup_signal_handlers()

        self.start_scheduler()
        self.start_web_interface()
        self.running = True

        try:
            while self.running and not self.shutdown_event.is_set():
                self.shutdown_event.wait(timeout=1.0)
        except KeyboardInterrupt:
            self.app_logger.info("Interruption clavier détectée")
        finally:
            self.shutdown()

    def run_web_only_mode(self):
        """
        Lance seulement l'interface web (bloquant)
        """
        from fleetscan.web.app import ScanWebApp

        web_config = self.config.get_web_config()
        self.web_app = ScanWebApp(self)
        self.web_app.run(host=web_config['host'], port=web_config['port'])

    def _setup_signal_handlers(self):
        def signal_handler(signum, frame):
            self.app_logger.info(f"Signal {signal.Signals(signum).name} reçu - Arrêt en cours...")
            self.shutdown()

        if hasattr(signal, 'SIGTERM'):
            signal.signal(signal.SIGTERM, signal_handler)
        if hasattr(signal, 'SIGINT'):
            signal.signal(signal.SIGINT, signal_handler)
        if hasattr(signal, 'SIGBREAK'):
            signal.signal(signal.SIGBREAK, signal_handler)

    def shutdown(self):
        """
        Arrête proprement l'agent : annule le scan en cours, stoppe le planificateur
        """
        if not self.running:
            return

        self.running = False
        self.shutdown_event.set()

        self.scanner.cancel()
        if self.scheduler:
            self.scheduler.stop()
            self.scheduler = None

        self.app_logger.info("FleetScan arrêté proprement")


def main(argv=None):
    """
    Point d'entrée principal avec gestion des arguments de ligne de commande
    """
    parser = argparse.ArgumentParser(
        description='FleetScan - Détection d\'un logiciel sur un parc de machines'
    )
    parser.add_argument('--config', '-c', type=str, help='Chemin vers le fichier de configuration')
    parser.add_argument('--mode', '-m', choices=['scan', 'service', 'web'], default='scan',
                        help='Mode de fonctionnement')
    parser.add_argument('--hosts-file', '-f', type=str, help='Fichier listant les hôtes (un par ligne)')
    parser.add_argument('--host', action='append', default=[], help='Hôte à sonder (répétable)')
    parser.add_argument('--output', '-o', type=str, help='Fichier JSON de sortie du rapport (mode scan)')
    parser.add_argument('--create-config', action='store_true',
                        help='Crée un fichier de configuration par défaut')
    parser.add_argument('--validate-config', action='store_true', help='Valide la configuration')
    parser.add_argument('--test-connection', action='store_true',
                        help='Teste la connexion au serveur central')

    args = parser.parse_args(argv)

    if args.create_config:
        if not args.config:
            print("❌ --config est requis avec --create-config")
            return 1
        create_default_config(args.config)
        print(f"✅ Configuration par défaut créée: {args.config}")
        return 0

    if args.validate_config:
        config = ScanConfig(args.config)
        if config.validate():
            print("✅ Configuration valide")
            return 0
        for error in config.errors:
            print(f"Erreur de configuration: {error}")
        print("❌ Configuration invalide")
        return 1

    try:
        agent = FleetScanAgent(args.config, hosts_file=args.hosts_file, hosts=args.host)
    except ConfigurationError as e:
        print(f"❌ {e}")
        return 1

    if args.test_connection:
        success, message = agent.sender.test_connection()
        print(f"{'✅' if success else '❌'} {agent.sender.server_url}: {message}")
        return 0 if success else 1

    if args.mode == 'service':
        agent.run_service_mode()
        return 0

    if args.mode == 'web':
        agent.run_web_only_mode()
        return 0

    cancel_token = CancellationToken()

    def interrupt_handler(signum, frame):
        if not cancel_token.cancelled:
            print("\n🛑 Annulation demandée, attente des hôtes en cours...")
        cancel_token.cancel()

    previous_handler = signal.signal(signal.SIGINT, interrupt_handler)
    try:
        report = agent.run_scan(output=args.output, progress_sinks=[console_progress],
                                cancel_token=cancel_token)
    except ConfigurationError as e:
        print(f"❌ {e}")
        return 1
    finally:
        signal.signal(signal.SIGINT, previous_handler)

    summary = report.summary
    print(f"Total: {summary.total} | Joignables: {summary.reachable} | Hors ligne: {summary.offline} | "
          f"Accès refusé: {summary.access_denied} | Erreurs: {summary.partial_error} | "
          f"Logiciel détecté: {summary.software_detected}")
    if report.cancelled:
        print(f"⚠️  Scan annulé, {len(report.missing_hosts)} hôte(s) non sondé(s)")
        return 130
    return 0


if __name__ == '__main__':
    sys.exit(main())
