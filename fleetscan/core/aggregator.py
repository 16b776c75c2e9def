"""
Agrégation des résultats d'un scan

Stocke exactement un résultat par hôte, quel que soit l'ordre d'arrivée,
puis produit la liste triée par identifiant d'hôte et le résumé dérivé.
Aucun effet de bord réseau ni disque.
"""

import threading
from typing import Dict, Iterable, List, Tuple

from .errors import InvariantViolation
from .logger import get_logger
from .models import HostProbeResult, HostIdentifier, ScanSummary


class ResultAggregator:
    """
    Agrégateur de résultats

    add() peut être appelé depuis plusieurs threads ; les insertions sont
    sérialisées. Un doublon ou un hôte inconnu est une violation
    d'invariant : journalisée et conservée, sans interrompre le scan et
    sans écraser le premier résultat reçu.
    """

    def __init__(self, expected_hosts: Iterable[HostIdentifier], logger=None):
        self.expected_hosts = list(dict.fromkeys(expected_hosts))
        self._expected = set(self.expected_hosts)
        self._results: Dict[HostIdentifier, HostProbeResult] = {}
        self._lock = threading.Lock()
        self.violations: List[InvariantViolation] = []
        self.logger = logger or get_logger('FleetScan.aggregator')

    def add(self, result: HostProbeResult) -> bool:
        """
        Ajoute le résultat d'un hôte

        Args:
            result: Résultat de sonde

        Returns:
            bool: True si le résultat a été retenu
        """
        with self._lock:
            if result.host not in self._expected:
                violation = InvariantViolation(result.host, f"Résultat pour un hôte inconnu: {result.host}")
            elif result.host in self._results:
                violation = InvariantViolation(result.host, f"Résultat en double pour {result.host}")
            else:
                self._results[result.host] = result
                return True

            self.violations.append(violation)

        self.logger.error(f"VIOLATION D'INVARIANT: {violation}")
        return False

    def __len__(self) -> int:
        with self._lock:
            return len(self._results)

    def missing_hosts(self) -> List[HostIdentifier]:
        """
        Hôtes attendus sans résultat (non vide seulement après annulation)

        Returns:
            list: Hôtes manquants dans l'ordre d'origine
        """
        with self._lock:
            return [host for host in self.expected_hosts if host not in self._results]

    def finalize(self) -> Tuple[List[HostProbeResult], ScanSummary]:
        """
        Produit la collection finale et son résumé

        Peut être appelé plusieurs fois avec un résultat identique.

        Returns:
            tuple: (résultats triés par hôte, résumé)
        """
        with self._lock:
            results = sorted(self._results.values(), key=lambda result: result.host)

        return results, ScanSummary.from_results(results)
