"""
Tests du point d'entrée et de l'agent
"""

import json
import signal

from fleetscan.main import FleetScanAgent, load_hosts, main
from tests.conftest import FakeConnectivityChecker


def test_load_hosts_skips_comments_and_duplicates(tmp_path):
    hosts_file = tmp_path / "hosts.txt"
    hosts_file.write_text("# Parc siège\npc01\npc02  # salle B\n\npc01\n", encoding='utf-8')

    assert load_hosts(str(hosts_file), ['pc03', ' pc02 ', '']) == ['pc01', 'pc02', 'pc03']


def test_agent_run_scan_writes_report(config_file, scenario_factory, tmp_path):
    output = tmp_path / "rapport.json"
    agent = FleetScanAgent(config_file, hosts=['h1', 'h4'], session_factory=scenario_factory,
                           connectivity_checker=FakeConnectivityChecker(offline={'h1'}))

    report = agent.run_scan(output=str(output))

    data = json.loads(output.read_text(encoding='utf-8'))
    assert data['summary'] == report.summary.to_dict()
    assert data['results'][1]['detected_version'] == '3.1'


def test_create_and_validate_config(tmp_path, capsys):
    path = str(tmp_path / "fleetscan.ini")

    assert main(['--create-config', '--config', path]) == 0
    # Aucun motif de détection dans la configuration par défaut
    assert main(['--validate-config', '--config', path]) == 1
    assert 'Erreur de configuration' in capsys.readouterr().out


def test_validate_config_ok(config_file):
    assert main(['--validate-config', '--config', config_file]) == 0


def test_scan_mode_without_hosts_fails(config_file):
    assert main(['--config', config_file]) == 1


def test_scan_mode_local(config_file, tmp_path, capsys):
    output = tmp_path / "rapport.json"

    exit_code = main(['--config', config_file, '--host', '127.0.0.1', '--output', str(output)])

    assert exit_code == 0
    data = json.loads(output.read_text(encoding='utf-8'))
    assert data['summary']['total'] == 1
    assert '[1/1] 127.0.0.1' in capsys.readouterr().out


def test_interrupted_scan_still_writes_report(config_file, scenario_factory, tmp_path,
                                              monkeypatch, capsys):
    output = tmp_path / "rapport.json"
    hosts = ['h1', 'h2', 'h3', 'h4', 'h5', 'h6']

    def interrupt_at_third(event):
        if event.completed == 3:
            signal.raise_signal(signal.SIGINT)

    monkeypatch.setattr('fleetscan.main.build_session_factory', lambda transport: scenario_factory)
    monkeypatch.setattr('fleetscan.main.TcpConnectivityChecker',
                        lambda ports: FakeConnectivityChecker(offline={'h1'}, delay=0.1))
    monkeypatch.setattr('fleetscan.main.console_progress', interrupt_at_third)

    previous_handler = signal.getsignal(signal.SIGINT)
    argv = ['--config', config_file, '--output', str(output)]
    for host in hosts:
        argv += ['--host', host]
    exit_code = main(argv)

    assert exit_code == 130
    data = json.loads(output.read_text(encoding='utf-8'))
    assert data['status'] == 'cancelled'
    assert len(data['results']) >= 3
    assert data['missing_hosts']
    assert len(data['results']) + len(data['missing_hosts']) == len(hosts)
    assert signal.getsignal(signal.SIGINT) is previous_handler
    assert 'Annulation demandée' in capsys.readouterr().out


def test_test_connection_flag(config_file, monkeypatch):
    monkeypatch.setattr('fleetscan.main.ReportSender.test_connection',
                        lambda self: (False, "Impossible de se connecter au serveur"))
    assert main(['--config', config_file, '--test-connection']) == 1

    monkeypatch.setattr('fleetscan.main.ReportSender.test_connection', lambda self: (True, "Connexion OK"))
    assert main(['--config', config_file, '--test-connection']) == 0
