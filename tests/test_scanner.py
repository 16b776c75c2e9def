"""
Tests d'intégration du scanner de parc
"""

import time
import threading
import dataclasses

import pytest

from fleetscan.core.dispatcher import CancellationToken
from fleetscan.core.errors import ConfigurationError
from fleetscan.core.models import Classification, DetectionMethod, ScanStatus
from fleetscan.core.scanner import FleetScanner, build_session_factory
from fleetscan.sessions.local import LocalSessionFactory
from tests.conftest import FakeConnectivityChecker, FakeSession, FakeSessionFactory

HOSTS = ['h1', 'h2', 'h3', 'h4', 'h5']


@pytest.fixture
def scanner(probe_config, scenario_factory):
    return FleetScanner(probe_config, scenario_factory, FakeConnectivityChecker(offline={'h1'}))


def test_mixed_fleet_report(scanner):
    report = scanner.scan(HOSTS)

    assert report.status is ScanStatus.COMPLETED
    assert [result.host for result in report.results] == HOSTS
    assert report.summary.total == 5
    assert report.summary.reachable == 4
    assert report.summary.offline == 1
    assert report.summary.access_denied == 1
    assert report.summary.software_detected == 2
    assert report.missing_hosts == []
    assert report.violations == []

    by_host = {result.host: result for result in report.results}
    assert by_host['h1'].classification is Classification.OFFLINE
    assert by_host['h2'].classification is Classification.ACCESS_DENIED
    assert by_host['h3'].detection_method is DetectionMethod.FILESYSTEM_PATH
    assert by_host['h3'].detected_version == '2.0'
    assert by_host['h4'].detection_method is DetectionMethod.PACKAGE_QUERY
    assert by_host['h4'].detected_version == '3.1'
    assert by_host['h5'].software_detected is False
    assert scanner.last_report is report


def test_report_serializes(scanner):
    data = scanner.scan(HOSTS).to_dict()

    assert data['status'] == 'completed'
    assert data['summary']['total'] == 5
    assert data['results'][0]['classification'] == 'offline'
    assert data['results'][3]['detection_method'] == 'package_query'


def test_progress_sinks_notified(scanner):
    events = []
    scanner.scan(HOSTS, progress_sinks=[events.append])

    assert [event.completed for event in events] == [1, 2, 3, 4, 5]
    assert all(event.total == 5 for event in events)


def test_empty_host_identifier_rejected(scanner):
    with pytest.raises(ConfigurationError):
        scanner.scan(['h1', '  '])


def test_duplicate_hosts_reported_once(scanner):
    report = scanner.scan(['h5', 'h5', 'h4'])
    assert [result.host for result in report.results] == ['h4', 'h5']


def test_invalid_config_rejected(probe_config):
    config = dataclasses.replace(probe_config, detection_methods=())
    with pytest.raises(ConfigurationError):
        FleetScanner(config, FakeSessionFactory(), FakeConnectivityChecker())


def test_cancelled_scan_reports_missing_hosts(probe_config):
    config = dataclasses.replace(probe_config, max_concurrency=1)
    factory = FakeSessionFactory({host: FakeSession(host, delay=0.05) for host in HOSTS})
    scanner = FleetScanner(config, factory, FakeConnectivityChecker())
    token = CancellationToken()

    report = scanner.scan(HOSTS, cancel_token=token, progress_sinks=[lambda event: token.cancel()])

    assert report.cancelled is True
    assert len(report.results) + len(report.missing_hosts) == 5
    assert report.missing_hosts
    assert not scanner.is_running


def test_concurrent_scan_refused(probe_config):
    factory = FakeSessionFactory(open_delay=0.3)
    scanner = FleetScanner(probe_config, factory, FakeConnectivityChecker())

    thread = threading.Thread(target=scanner.scan, args=(['a', 'b'],))
    thread.start()
    try:
        for _ in range(100):
            if scanner.is_running:
                break
            time.sleep(0.01)

        with pytest.raises(RuntimeError):
            scanner.scan(['c'])
        assert scanner.get_progress() is not None
    finally:
        thread.join()

    assert scanner.cancel() is False


def test_scan_stats(scanner):
    assert scanner.get_scan_stats()['status'] == 'no_scan_yet'

    scanner.scan(HOSTS)
    stats = scanner.get_scan_stats()
    assert stats['status'] == 'completed'
    assert stats['summary']['offline'] == 1


def test_build_session_factory():
    assert isinstance(build_session_factory('local'), LocalSessionFactory)
    with pytest.raises(ConfigurationError):
        build_session_factory('ssh')
