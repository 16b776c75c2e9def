"""
Module de planification des scans périodiques

Ce module gère :
- La planification des scans selon la fréquence configurée
- L'exécution en arrière-plan
- Le démarrage et l'arrêt du scheduler
"""

import threading
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

import schedule

from .logger import get_logger


class FrequencyType(Enum):
    """Énumération des fréquences supportées"""
    HOURLY = "hourly"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


class ScanScheduler:
    """
    Planificateur de scans

    Utilise une instance schedule.Scheduler dédiée (pas le planificateur
    global du module) et une boucle sur thread démon.
    """

    def __init__(self, config, scan_callback: Callable[[], None], logger=None,
                 check_interval: float = 60):
        """
        Initialise le scheduler

        Args:
            config: Instance de ScanConfig
            scan_callback: Fonction déclenchant un scan
            logger: Logger optionnel
            check_interval: Intervalle de vérification des tâches (secondes)
        """
        self.config = config
        self.scan_callback = scan_callback
        self.logger = logger or get_logger('FleetScan.scheduler')
        self.check_interval = check_interval

        self.scheduler = schedule.Scheduler()
        self.is_running = False
        self.scheduler_thread: Optional[threading.Thread] = None
        self.stop_event = threading.Event()

        self.frequency: Optional[FrequencyType] = None
        self.next_run: Optional[datetime] = None

        self._setup_schedule()

    def _setup_schedule(self):
        """
        Configure la planification à partir de la section [schedule]
        """
        schedule_config = self.config.get_schedule_config()
        frequency_str = schedule_config['frequency']
        at_time = schedule_config['time']

        try:
            self.frequency = FrequencyType(frequency_str)
        except ValueError:
            self.logger.warning(f"Fréquence inconnue '{frequency_str}', utilisation de 'daily'")
            self.frequency = FrequencyType.DAILY

        self.scheduler.clear()

        if self.frequency == FrequencyType.HOURLY:
            self.scheduler.every().hour.do(self._scheduled_scan)
            self.logger.info("Planification configurée: toutes les heures")

        elif self.frequency == FrequencyType.DAILY:
            self.scheduler.every().day.at(at_time).do(self._scheduled_scan)
            self.logger.info(f"Planification configurée: quotidienne à {at_time}")

        elif self.frequency == FrequencyType.WEEKLY:
            self.scheduler.every().sunday.at(at_time).do(self._scheduled_scan)
            self.logger.info(f"Planification configurée: hebdomadaire le dimanche à {at_time}")

        elif self.frequency == FrequencyType.MONTHLY:
            # schedule ne gère pas le mensuel : vérification quotidienne du 1er
            self.scheduler.every().day.at(at_time).do(self._check_monthly_schedule)
            self.logger.info(f"Planification configurée: mensuelle le 1er du mois à {at_time}")

        self._update_next_run()

    def _scheduled_scan(self):
        """
        Déclenche un scan planifié
        """
        self.logger.info("=== Scan planifié déclenché ===")

        try:
            self.scan_callback()
            self.logger.info("Scan planifié terminé")
        except Exception:
            self.logger.exception("Erreur lors du scan planifié")
        finally:
            self._update_next_run()

    def _check_monthly_schedule(self):
        if datetime.now().day == 1:
            self.logger.info("Premier jour du mois - scan mensuel")
            self._scheduled_scan()

    def _update_next_run(self):
        self.next_run = self.scheduler.next_run
        if self.next_run:
            self.logger.debug(f"Prochain scan planifié: {self.next_run}")

    def start(self):
        """
        Démarre le scheduler en arrière-plan
        """
        if self.is_running:
            self.logger.warning("Scheduler déjà en cours d'exécution")
            return

        self.is_running = True
        self.stop_event.clear()

        self.scheduler_thread = threading.Thread(
            target=self._scheduler_loop,
            name="ScanScheduler",
            daemon=True
        )
        self.scheduler_thread.start()

        self.logger.info(f"Scheduler démarré (fréquence: {self.frequency.value})")
        if self.next_run:
            self.logger.info(f"Prochain scan: {self.next_run}")

    def stop(self):
        """
        Arrête le scheduler
        """
        if not self.is_running:
            self.logger.warning("Scheduler pas en cours d'exécution")
            return

        self.is_running = False
        self.stop_event.set()

        if self.scheduler_thread and self.scheduler_thread.is_alive():
            self.scheduler_thread.join(timeout=5)

        self.logger.info("Scheduler arrêté")

    def _scheduler_loop(self):
        self.logger.debug("Boucle du scheduler démarrée")

        while not self.stop_event.is_set():
            try:
                self.scheduler.run_pending()
            except Exception:
                self.logger.exception("Erreur dans la boucle du scheduler")
            self.stop_event.wait(timeout=self.check_interval)

        self.logger.debug("Boucle du scheduler terminée")

    def force_run(self):
        """
        Force l'exécution immédiate d'un scan
        """
        self.logger.info("Scan forcé demandé")
        self._scheduled_scan()

    def get_status(self) -> dict:
        """
        Retourne le statut actuel du scheduler

        Returns:
            dict: Informations sur l'état du scheduler
        """
        return {
            'is_running': self.is_running,
            'frequency': self.frequency.value if self.frequency else None,
            'next_run': self.next_run.isoformat() if self.next_run else None,
            'scheduled_jobs_count': len(self.scheduler.get_jobs())
        }
