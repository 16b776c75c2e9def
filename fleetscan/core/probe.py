"""
Sonde d'un hôte

Machine à états exécutée par un worker pour un hôte :

    Start -> ConnectivityCheck -> {Offline | SessionOpen}
          -> {AccessDenied | MethodSequence} -> Done

Toutes les erreurs propres à l'hôte sont rattrapées ici et converties en
HostProbeResult classifié : une sonde ne lève jamais d'exception vers le
dispatcher. La session ouverte est fermée sur tous les chemins de sortie.
"""

import time
import threading
import dataclasses
from typing import Callable, List, Optional, Sequence

from .errors import ConnectivityError, AccessDeniedError, ProbeTimeout
from .logger import get_logger
from .models import HostProbeResult, ProbeConfig, Classification
from ..detectors.base import BaseDetector
from ..sessions.base import SessionFactory, ConnectivityChecker, RemoteSession


class HostProbe:
    """
    Objet fonction de sonde, construit une fois par scan

    La configuration, la fabrique de sessions, le testeur de connectivité et
    les détecteurs sont capturés à la construction ; l'appel ne dépend
    d'aucun état partagé mutable et peut être exécuté par plusieurs workers
    en parallèle.
    """

    def __init__(self, config: ProbeConfig, session_factory: SessionFactory,
                 connectivity_checker: ConnectivityChecker, detectors: Sequence[BaseDetector],
                 cancel_token=None, logger=None):
        """
        Args:
            config: Configuration immuable du scan
            session_factory: Fabrique de sessions authentifiées
            connectivity_checker: Test de joignabilité
            detectors: Détecteurs dans l'ordre configuré
            cancel_token: Jeton d'annulation (interrompt l'attente entre tentatives)
            logger: Logger optionnel
        """
        self.config = config
        self.session_factory = session_factory
        self.connectivity_checker = connectivity_checker
        self.detectors = list(detectors)
        self.cancel_token = cancel_token
        self.logger = logger or get_logger('FleetScan.probe')

    def __call__(self, host: str) -> HostProbeResult:
        """
        Sonde l'hôte, avec nouvelles tentatives bornées en cas de PARTIAL_ERROR

        Toutes les tentatives et les attentes entre elles partagent le même
        budget per_host_timeout.

        Args:
            host: Identifiant de l'hôte

        Returns:
            HostProbeResult: Résultat classifié
        """
        max_attempts = 1 + self.config.partial_error_retries
        start_time = time.monotonic()
        deadline = start_time + self.config.per_host_timeout
        result = None

        for attempt in range(1, max_attempts + 1):
            result = self.run(host, deadline)
            result = dataclasses.replace(result, attempts=attempt,
                                         duration=time.monotonic() - start_time)

            if result.classification is not Classification.PARTIAL_ERROR or attempt == max_attempts:
                break

            remaining = deadline - time.monotonic()
            if remaining <= self.config.retry_delay + self.config.connect_timeout:
                self.logger.info(f"{host}: budget épuisé, pas de nouvelle tentative")
                break

            self.logger.info(f"{host}: tentative {attempt}/{max_attempts} en erreur partielle, "
                             f"nouvelle tentative dans {self.config.retry_delay:g}s")
            if self.cancel_token is not None:
                if self.cancel_token.wait(self.config.retry_delay):
                    break
            else:
                time.sleep(self.config.retry_delay)

        return result

    def run(self, host: str, deadline: Optional[float] = None) -> HostProbeResult:
        """
        Exécute une fois la machine à états complète

        Args:
            host: Identifiant de l'hôte
            deadline: Échéance absolue (time.monotonic), sinon maintenant + per_host_timeout

        Returns:
            HostProbeResult: Résultat classifié
        """
        if deadline is None:
            deadline = time.monotonic() + self.config.per_host_timeout

        # ConnectivityCheck
        if not self._check_connectivity(host, deadline):
            self.logger.info(f"{host}: hors ligne")
            return HostProbeResult.offline(host)

        # SessionOpen
        try:
            session = self._call(host, deadline, "ouverture de session",
                                 lambda: self.session_factory.open(host),
                                 discard=lambda late_session: late_session.close())
        except ConnectivityError as e:
            self.logger.info(f"{host}: hors ligne à l'ouverture de session ({e})")
            return HostProbeResult.offline(host)
        except AccessDeniedError as e:
            self.logger.info(f"{host}: accès refusé ({e})")
            return HostProbeResult.access_denied(host, str(e))
        except ProbeTimeout as e:
            self.logger.warning(f"{host}: {e}")
            return HostProbeResult.partial_error(host, str(e))
        except Exception as e:
            self.logger.info(f"{host}: ouverture de session impossible ({e})")
            return HostProbeResult.access_denied(host, f"Ouverture de session impossible: {e}")

        # MethodSequence
        try:
            return self._run_methods(host, session, deadline)
        except ProbeTimeout as e:
            self.logger.warning(f"{host}: {e}")
            return HostProbeResult.partial_error(host, str(e))
        finally:
            self._close_session(host, session)

    def _check_connectivity(self, host: str, deadline: float) -> bool:
        """
        Test de joignabilité borné par connect_timeout et le budget restant

        La résolution de nom du testeur n'honore pas toujours son propre
        délai : l'appel passe par _call() comme les autres étapes.
        """
        timeout = min(self.config.connect_timeout, max(deadline - time.monotonic(), 0.0))
        self.logger.debug(f"{host}: test de connectivité ({timeout:.1f}s)")

        if timeout <= 0:
            return False

        try:
            return bool(self._call(host, time.monotonic() + timeout, "test de connectivité",
                                   lambda: self.connectivity_checker.is_reachable(host, timeout)))
        except ProbeTimeout:
            self.logger.debug(f"{host}: pas de réponse en {timeout:.1f}s")
            return False
        except Exception as e:
            self.logger.debug(f"{host}: erreur test de connectivité: {e}")
            return False

    def _run_methods(self, host: str, session: RemoteSession, deadline: float) -> HostProbeResult:
        """
        Essaie les méthodes dans l'ordre configuré, arrêt au premier succès

        Raises:
            ProbeTimeout: Budget de l'hôte épuisé
        """
        errors: List[str] = []
        clean_runs = 0

        for detector in self.detectors:
            method_name = detector.method.value
            try:
                detection = self._call(host, deadline, method_name,
                                       lambda d=detector: d.run(session))
            except ProbeTimeout:
                raise
            except Exception as e:
                errors.append(f"{method_name}: {e}")
                self.logger.warning(f"{host}: échec {method_name}: {e}")
                continue

            if detection is not None:
                self.logger.info(f"{host}: logiciel détecté via {method_name} "
                                 f"(version: {detection.version or 'inconnue'})")
                return HostProbeResult.detected(host, detection, detail="; ".join(errors) or None)

            clean_runs += 1
            self.logger.debug(f"{host}: rien trouvé via {method_name}")

        if not clean_runs:
            self.logger.warning(f"{host}: toutes les méthodes ont échoué")
            return HostProbeResult.partial_error(host, errors[-1])

        self.logger.info(f"{host}: logiciel non détecté")
        return HostProbeResult.not_detected(host, detail="; ".join(errors) or None)

    def _call(self, host: str, deadline: float, step: str, func: Callable,
              discard: Optional[Callable] = None):
        """
        Exécute un appel bloquant dans la limite du budget restant

        L'appel tourne dans un thread démon ; s'il dépasse le budget il est
        abandonné et son résultat tardif éventuel est passé à discard().

        Raises:
            ProbeTimeout: Budget épuisé avant la fin de l'appel
        """
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise ProbeTimeout(host, f"Timeout ({self.config.per_host_timeout:g}s) avant {step}")

        outcome = {}
        lock = threading.Lock()
        done = threading.Event()

        def target():
            try:
                value = func()
            except Exception as e:
                outcome['error'] = e
            else:
                with lock:
                    abandoned = outcome.get('abandoned', False)
                    if not abandoned:
                        outcome['value'] = value
                if abandoned and discard is not None:
                    try:
                        discard(value)
                    except Exception as e:
                        self.logger.warning(f"{host}: erreur au nettoyage après timeout: {e}")
            finally:
                done.set()

        worker = threading.Thread(target=target, name=f"probe-{host}-{step}", daemon=True)
        worker.start()

        if not done.wait(remaining):
            with lock:
                if 'value' not in outcome and 'error' not in outcome:
                    outcome['abandoned'] = True
            if outcome.get('abandoned'):
                raise ProbeTimeout(host, f"Timeout ({self.config.per_host_timeout:g}s) pendant {step}")

        if 'error' in outcome:
            raise outcome['error']
        return outcome['value']

    def _close_session(self, host: str, session: RemoteSession):
        try:
            session.close()
            self.logger.debug(f"{host}: session fermée")
        except Exception as e:
            self.logger.warning(f"{host}: erreur à la fermeture de session: {e}")
