"""
Orchestration d'un scan de parc

Ce module assemble les composants du moteur pour un scan :
- Construction du contexte de scan (ScanContext)
- Dispatcher, rapporteur de progression et agrégateur
- Production du rapport final remis au collaborateur de rapport
"""

import time
import threading
from datetime import datetime
from dataclasses import dataclass, field
from typing import Callable, Dict, Any, Iterable, List, Optional, Sequence

from .aggregator import ResultAggregator
from .dispatcher import ProbeDispatcher, CancellationToken
from .errors import ConfigurationError
from .logger import get_logger
from .models import HostIdentifier, ProbeConfig, ScanReport
from .probe import HostProbe
from .progress import ProgressReporter, ProgressEvent
from ..detectors import BaseDetector, build_detectors
from ..sessions.base import SessionFactory, ConnectivityChecker
from ..sessions.connectivity import TcpConnectivityChecker


@dataclass
class ScanContext:
    """
    Contexte explicite d'un scan, transmis aux composants

    Remplace tout état global : une instance par scan.
    """
    hosts: List[HostIdentifier]
    config: ProbeConfig
    session_factory: SessionFactory
    connectivity_checker: ConnectivityChecker
    detectors: List[BaseDetector]
    progress: ProgressReporter
    aggregator: ResultAggregator
    cancel_token: CancellationToken = field(default_factory=CancellationToken)
    started_at: datetime = field(default_factory=datetime.now)

    def build_probe(self) -> HostProbe:
        return HostProbe(self.config, self.session_factory, self.connectivity_checker,
                         self.detectors, cancel_token=self.cancel_token)


def build_session_factory(transport: str) -> SessionFactory:
    """
    Construit la fabrique de sessions du transport configuré

    Args:
        transport: 'remote_registry' ou 'local'

    Returns:
        SessionFactory: Fabrique prête à l'emploi

    Raises:
        ConfigurationError: Transport inconnu ou indisponible
    """
    if transport == 'local':
        from ..sessions.local import LocalSessionFactory
        return LocalSessionFactory()
    if transport == 'remote_registry':
        from ..sessions.remote_registry import RemoteRegistrySessionFactory
        return RemoteRegistrySessionFactory()
    raise ConfigurationError([f"Transport inconnu: {transport}"])


class FleetScanner:
    """
    Scanner de parc

    Un scanner peut exécuter plusieurs scans successifs ; chaque scan
    dispose de son propre contexte et de son propre dispatcher. Un seul
    scan à la fois.
    """

    def __init__(self, config: ProbeConfig, session_factory: SessionFactory,
                 connectivity_checker: Optional[ConnectivityChecker] = None, logger=None):
        """
        Args:
            config: Configuration immuable des scans
            session_factory: Fabrique de sessions authentifiées
            connectivity_checker: Test de joignabilité (TCP par défaut)
            logger: Logger optionnel
        """
        config.validate()

        self.config = config
        self.session_factory = session_factory
        self.connectivity_checker = connectivity_checker or TcpConnectivityChecker(config.connect_ports)
        self.logger = logger or get_logger('FleetScan.scanner')

        self._lock = threading.Lock()
        self._current: Optional[ScanContext] = None
        self._last_report: Optional[ScanReport] = None
        self._last_duration: Optional[float] = None

        self.logger.info("FleetScanner initialisé")
        self.logger.info(f"Méthodes: {', '.join(m.value for m in config.detection_methods)}")
        self.logger.info(f"Concurrence: {config.max_concurrency}, timeout par hôte: {config.per_host_timeout:g}s")

    def create_context(self, hosts: Iterable[HostIdentifier],
                       cancel_token: Optional[CancellationToken] = None) -> ScanContext:
        """
        Prépare le contexte d'un scan

        Args:
            hosts: Hôtes à sonder
            cancel_token: Jeton d'annulation fourni par l'appelant

        Returns:
            ScanContext: Contexte neuf

        Raises:
            ConfigurationError: Identifiant d'hôte vide
        """
        host_list = [str(host).strip() for host in hosts]
        if any(not host for host in host_list):
            raise ConfigurationError(["Identifiant d'hôte vide dans la liste"])

        unique_hosts = list(dict.fromkeys(host_list))
        return ScanContext(
            hosts=unique_hosts,
            config=self.config,
            session_factory=self.session_factory,
            connectivity_checker=self.connectivity_checker,
            detectors=build_detectors(self.config),
            progress=ProgressReporter(len(unique_hosts)),
            aggregator=ResultAggregator(unique_hosts),
            cancel_token=cancel_token or CancellationToken()
        )

    def scan(self, hosts: Sequence[HostIdentifier], cancel_token: Optional[CancellationToken] = None,
             progress_sinks: Sequence[Callable[[ProgressEvent], None]] = ()) -> ScanReport:
        """
        Exécute un scan complet

        Args:
            hosts: Hôtes à sonder
            cancel_token: Jeton d'annulation optionnel
            progress_sinks: Puits de progression à notifier

        Returns:
            ScanReport: Résultats triés, résumé et statut

        Raises:
            ConfigurationError: Configuration invalide (avant tout envoi)
            RuntimeError: Un scan est déjà en cours
        """
        context = self.create_context(hosts, cancel_token)
        for sink in progress_sinks:
            context.progress.add_sink(sink)

        with self._lock:
            if self._current is not None:
                raise RuntimeError("Un scan est déjà en cours")
            self._current = context

        start_time = time.monotonic()
        self.logger.info(f"=== Début du scan de {len(context.hosts)} hôte(s) ===")

        try:
            dispatcher = ProbeDispatcher(context.hosts, context.config, context.build_probe(),
                                         progress=context.progress,
                                         cancel_token=context.cancel_token)
            for result in dispatcher.results():
                context.aggregator.add(result)

            results, summary = context.aggregator.finalize()
            report = ScanReport(
                results=results,
                summary=summary,
                status=dispatcher.status,
                started_at=context.started_at,
                finished_at=datetime.now(),
                missing_hosts=context.aggregator.missing_hosts(),
                violations=[str(violation) for violation in context.aggregator.violations]
            )

        finally:
            with self._lock:
                self._current = None

        duration = time.monotonic() - start_time
        with self._lock:
            self._last_report = report
            self._last_duration = duration

        self.logger.info(f"Scan {report.status.value} en {duration:.2f} secondes")
        self.logger.info(f"Résumé: {summary.total} hôte(s), {summary.reachable} joignable(s), "
                         f"{summary.software_detected} avec le logiciel, {summary.offline} hors ligne, "
                         f"{summary.access_denied} accès refusé(s), {summary.partial_error} en erreur")
        return report

    def cancel(self) -> bool:
        """
        Annule le scan en cours

        Returns:
            bool: True si un scan était en cours
        """
        with self._lock:
            context = self._current

        if context is None:
            return False

        self.logger.warning("Annulation du scan demandée")
        context.cancel_token.cancel()
        return True

    @property
    def is_running(self) -> bool:
        with self._lock:
            return self._current is not None

    @property
    def last_report(self) -> Optional[ScanReport]:
        with self._lock:
            return self._last_report

    def get_progress(self) -> Optional[ProgressEvent]:
        with self._lock:
            context = self._current
        return context.progress.snapshot() if context else None

    def get_scan_stats(self) -> Dict[str, Any]:
        """
        Retourne les statistiques du dernier scan

        Returns:
            dict: Statistiques de scan
        """
        report = self.last_report
        if report is None:
            return {'status': 'no_scan_yet', 'running': self.is_running}

        return {
            'status': report.status.value,
            'running': self.is_running,
            'last_scan_time': report.finished_at.isoformat() if report.finished_at else None,
            'scan_duration': round(self._last_duration or 0.0, 2),
            'summary': report.summary.to_dict(),
            'missing_hosts': len(report.missing_hosts),
            'violations': len(report.violations)
        }
