"""
Tests du planificateur de scans
"""

import time

from fleetscan.core.config import ScanConfig
from fleetscan.core.scheduler import FrequencyType, ScanScheduler


def make_config(tmp_path, frequency='daily', at='02:00'):
    config = ScanConfig(str(tmp_path / "absent.ini"))
    config.set('schedule', 'frequency', frequency)
    config.set('schedule', 'time', at)
    return config


def test_daily_schedule(tmp_path):
    scheduler = ScanScheduler(make_config(tmp_path), lambda: None)
    status = scheduler.get_status()

    assert status['frequency'] == 'daily'
    assert status['scheduled_jobs_count'] == 1
    assert status['next_run'] is not None
    assert status['is_running'] is False


def test_unknown_frequency_falls_back_to_daily(tmp_path):
    scheduler = ScanScheduler(make_config(tmp_path, frequency='yearly'), lambda: None)
    assert scheduler.frequency is FrequencyType.DAILY


def test_force_run_invokes_callback(tmp_path):
    calls = []
    scheduler = ScanScheduler(make_config(tmp_path, frequency='hourly'), lambda: calls.append(1))
    scheduler.force_run()

    assert calls == [1]


def test_callback_errors_are_contained(tmp_path):
    def broken():
        raise RuntimeError("scan impossible")

    scheduler = ScanScheduler(make_config(tmp_path, frequency='weekly'), broken)
    scheduler.force_run()
    assert scheduler.get_status()['next_run'] is not None


def test_start_and_stop(tmp_path):
    scheduler = ScanScheduler(make_config(tmp_path, frequency='monthly'), lambda: None,
                              check_interval=0.01)
    scheduler.start()
    time.sleep(0.05)
    assert scheduler.is_running is True
    assert scheduler.scheduler_thread.is_alive()

    scheduler.stop()
    assert scheduler.is_running is False
    assert not scheduler.scheduler_thread.is_alive()
