"""
Suivi de progression d'un scan

Compteurs (terminés, total) et dernier résultat, lisibles depuis
n'importe quel thread. Purement observationnel.
"""

import threading
from dataclasses import dataclass
from typing import Callable, List, Optional

from .logger import get_logger
from .models import HostProbeResult


@dataclass(frozen=True)
class ProgressEvent:
    """Instantané de progression transmis aux puits de progression"""
    completed: int
    total: int
    last_result: Optional[HostProbeResult] = None

    @property
    def percent(self) -> float:
        if not self.total:
            return 100.0
        return round(self.completed * 100.0 / self.total, 1)


class ProgressReporter:
    """
    Rapporteur de progression

    Un seul écrivain (la boucle de collecte du dispatcher), plusieurs
    lecteurs. Les puits sont notifiés hors verrou, dans l'ordre croissant
    de completed.
    """

    def __init__(self, total: int, logger=None):
        self.total = total
        self.completed = 0
        self.last_result: Optional[HostProbeResult] = None
        self.logger = logger or get_logger('FleetScan.progress')
        self._sinks: List[Callable[[ProgressEvent], None]] = []
        self._lock = threading.Lock()

    def add_sink(self, sink: Callable[[ProgressEvent], None]):
        """
        Enregistre un puits de progression

        Args:
            sink: Fonction appelée avec chaque ProgressEvent
        """
        with self._lock:
            self._sinks.append(sink)

    def record(self, result: HostProbeResult) -> ProgressEvent:
        """
        Enregistre la fin de la sonde d'un hôte

        Args:
            result: Résultat de l'hôte terminé

        Returns:
            ProgressEvent: Nouvel état de progression
        """
        with self._lock:
            self.completed += 1
            self.last_result = result
            event = ProgressEvent(self.completed, self.total, result)
            sinks = list(self._sinks)

        for sink in sinks:
            try:
                sink(event)
            except Exception as e:
                self.logger.warning(f"Erreur dans un puits de progression: {e}")

        self.logger.debug(f"Progression: {event.completed}/{event.total} ({result.host})")
        return event

    def snapshot(self) -> ProgressEvent:
        with self._lock:
            return ProgressEvent(self.completed, self.total, self.last_result)

    @property
    def percent(self) -> float:
        return self.snapshot().percent
