"""
Dispatcher de sondes et pool de workers

Un nombre fixe de workers (min(max_concurrency, nombre d'hôtes)) consomme
une file partagée d'hôtes ; chaque worker exécute une sonde complète avant
de prendre l'hôte suivant. Les résultats sont émis dans l'ordre de fin des
sondes, pas dans l'ordre d'entrée.
"""

import queue
import threading
from typing import Callable, Iterator, List, Optional, Sequence

from .logger import get_logger
from .models import HostProbeResult, HostIdentifier, ProbeConfig, ScanStatus
from .progress import ProgressReporter

# Marqueur de fin de worker dans la file de résultats
_WORKER_DONE = object()


class CancellationToken:
    """
    Signal d'annulation au niveau du scan

    Arrête immédiatement l'envoi de nouvelles sondes ; les sondes en cours
    vont jusqu'à leur propre timeout et leurs résultats sont écartés.
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self):
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Attend l'annulation ; retourne True si elle a eu lieu"""
        return self._event.wait(timeout)


class ProbeDispatcher:
    """
    Pool de workers pour un seul scan

    Non réutilisable : results() ne peut être parcouru qu'une fois, un
    nouveau dispatcher doit être créé pour chaque scan.
    """

    def __init__(self, hosts: Sequence[HostIdentifier], config: ProbeConfig,
                 probe: Callable[[HostIdentifier], HostProbeResult],
                 progress: Optional[ProgressReporter] = None,
                 cancel_token: Optional[CancellationToken] = None, logger=None):
        """
        Args:
            hosts: Hôtes à sonder, dans l'ordre fourni par l'appelant
            config: Configuration du scan (validée ici, avant tout envoi)
            probe: Objet fonction exécutant la sonde d'un hôte
            progress: Rapporteur de progression optionnel
            cancel_token: Jeton d'annulation optionnel
            logger: Logger optionnel
        """
        config.validate()

        self.logger = logger or get_logger('FleetScan.dispatcher')
        self.config = config
        self.probe = probe
        self.progress = progress
        self.cancel_token = cancel_token or CancellationToken()
        self.hosts = self._deduplicate(hosts)
        self.status: Optional[ScanStatus] = None

        self._pending: "queue.Queue[HostIdentifier]" = queue.Queue()
        for host in self.hosts:
            self._pending.put(host)
        self._completed: queue.Queue = queue.Queue()
        self._started = False

        # Instrumentation de la concurrence
        self._counter_lock = threading.Lock()
        self.in_flight = 0
        self.max_in_flight = 0
        self.started_count = 0
        self.discarded: List[HostIdentifier] = []

    def _deduplicate(self, hosts: Sequence[HostIdentifier]) -> List[HostIdentifier]:
        unique = list(dict.fromkeys(hosts))
        if len(unique) != len(hosts):
            self.logger.warning(f"{len(hosts) - len(unique)} hôte(s) en double ignoré(s)")
        return unique

    @property
    def worker_count(self) -> int:
        return min(self.config.max_concurrency, len(self.hosts))

    def results(self) -> Iterator[HostProbeResult]:
        """
        Lance les workers et émet les résultats au fil de l'eau

        Yields:
            HostProbeResult: Un résultat par hôte terminé avant annulation

        Raises:
            RuntimeError: Dispatcher déjà utilisé
        """
        if self._started:
            raise RuntimeError("Dispatcher déjà utilisé : créer un nouveau dispatcher par scan")
        self._started = True

        workers = [
            threading.Thread(target=self._worker_loop, name=f"ProbeWorker-{index + 1}", daemon=True)
            for index in range(self.worker_count)
        ]

        self.logger.info(f"Scan de {len(self.hosts)} hôte(s) avec {len(workers)} worker(s)")
        for worker in workers:
            worker.start()

        emitted = 0
        finished_workers = 0
        try:
            while finished_workers < len(workers):
                item = self._completed.get()
                if item is _WORKER_DONE:
                    finished_workers += 1
                    continue

                emitted += 1
                if self.progress is not None:
                    self.progress.record(item)
                yield item

        finally:
            if finished_workers < len(workers):
                # Consommateur parti avant la fin : arrêter l'envoi
                self.cancel_token.cancel()

        if self.cancel_token.cancelled and emitted < len(self.hosts):
            self.status = ScanStatus.CANCELLED
            self.logger.warning(f"Scan annulé: {emitted}/{len(self.hosts)} hôte(s) terminés")
        else:
            self.status = ScanStatus.COMPLETED
            self.logger.info(f"Scan terminé: {emitted} hôte(s)")

    def _worker_loop(self):
        try:
            while not self.cancel_token.cancelled:
                try:
                    host = self._pending.get_nowait()
                except queue.Empty:
                    break

                if self.cancel_token.cancelled:
                    break

                result = self._probe_host(host)

                if self.cancel_token.cancelled:
                    self.logger.info(f"{host}: résultat écarté (scan annulé)")
                    with self._counter_lock:
                        self.discarded.append(host)
                    break

                self._completed.put(result)
        finally:
            self._completed.put(_WORKER_DONE)

    def _probe_host(self, host: HostIdentifier) -> HostProbeResult:
        """
        Exécute la sonde d'un hôte en isolant ses erreurs

        Args:
            host: Hôte à sonder

        Returns:
            HostProbeResult: Résultat de la sonde, ou PARTIAL_ERROR si elle a levé
        """
        with self._counter_lock:
            self.in_flight += 1
            self.started_count += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)

        try:
            return self.probe(host)
        except Exception as e:
            self.logger.exception(f"{host}: erreur inattendue dans la sonde")
            return HostProbeResult.partial_error(host, f"Erreur inattendue: {e}")
        finally:
            with self._counter_lock:
                self.in_flight -= 1
