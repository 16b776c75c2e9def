"""
Tests de l'API web de suivi des scans
"""

import time

import pytest

from fleetscan.main import FleetScanAgent
from fleetscan.web.app import ScanWebApp
from tests.conftest import FakeConnectivityChecker, FakeSessionFactory

HOSTS = ['h1', 'h2', 'h3', 'h4', 'h5']


def wait_for(condition, timeout=5.0):
    deadline = time.monotonic() + timeout
    while not condition() and time.monotonic() < deadline:
        time.sleep(0.02)
    return condition()


@pytest.fixture
def agent(config_file, scenario_factory):
    return FleetScanAgent(config_file, hosts=HOSTS, session_factory=scenario_factory,
                          connectivity_checker=FakeConnectivityChecker(offline={'h1'}))


@pytest.fixture
def client(agent):
    return ScanWebApp(agent).app.test_client()


def test_status_before_any_scan(client):
    data = client.get('/api/status').get_json()

    assert data['running'] is False
    assert data['progress'] is None
    assert data['last_summary'] is None


def test_results_404_before_any_scan(client):
    assert client.get('/api/results').status_code == 404


def test_start_scan_and_fetch_results(agent, client):
    response = client.post('/api/scan')
    assert response.status_code == 202

    assert wait_for(lambda: agent.scanner.last_report is not None)

    data = client.get('/api/results').get_json()
    assert data['status'] == 'completed'
    assert data['summary']['total'] == 5
    assert data['summary']['software_detected'] == 2
    assert [result['host'] for result in data['results']] == HOSTS

    status = client.get('/api/status').get_json()
    assert status['last_status'] == 'completed'


def test_second_scan_refused_while_running(config_file):
    agent = FleetScanAgent(config_file, hosts=HOSTS, session_factory=FakeSessionFactory(open_delay=0.5),
                           connectivity_checker=FakeConnectivityChecker())
    client = ScanWebApp(agent).app.test_client()

    assert client.post('/api/scan').status_code == 202
    assert wait_for(lambda: agent.scanner.is_running)

    assert client.post('/api/scan').status_code == 409
    assert client.get('/api/status').get_json()['running'] is True
    assert client.post('/api/cancel').status_code == 200

    assert wait_for(lambda: agent.scanner.last_report is not None)
    assert agent.scanner.last_report.cancelled is True


def test_cancel_without_scan(client):
    assert client.post('/api/cancel').status_code == 409


def test_scan_without_hosts_is_bad_request(config_file, scenario_factory):
    agent = FleetScanAgent(config_file, session_factory=scenario_factory,
                           connectivity_checker=FakeConnectivityChecker())
    client = ScanWebApp(agent).app.test_client()

    response = client.post('/api/scan')
    assert response.status_code == 400
    assert response.get_json()['success'] is False


def test_status_exposes_sender_stats(client):
    sender = client.get('/api/status').get_json()['sender']

    assert sender['total_attempts'] == 0
    assert sender['last_successful_send'] is None
