"""
Doublures de test partagées : sessions, fabrique et test de connectivité
"""

import time
import threading

import pytest

from fleetscan.core.errors import AccessDeniedError
from fleetscan.core.models import DetectionMethod, PathInfo, ProbeConfig, RegistryKeyCheck
from fleetscan.sessions.base import ConnectivityChecker, RemoteSession, SessionFactory


class FakeSession(RemoteSession):
    """
    Session simulée

    software: entrées d'inventaire, ou exception à lever
    paths: {chemin: PathInfo | exception}
    registry: {clé: valeurs | exception}
    delay: latence simulée de chaque requête
    """

    def __init__(self, host, software=(), paths=None, registry=None, delay=0.0):
        super().__init__(host)
        self.software = software
        self.paths = paths or {}
        self.registry = registry or {}
        self.delay = delay
        self.calls = []

    def _answer(self, call, value):
        self.calls.append(call)
        if self.delay:
            time.sleep(self.delay)
        if isinstance(value, Exception):
            raise value
        return value

    def list_installed_software(self):
        return self._answer('list_installed_software', self.software)

    def stat_path(self, path):
        return self._answer('stat_path', self.paths.get(path))

    def read_registry_values(self, key):
        return self._answer('read_registry_values', self.registry.get(key))


class FakeSessionFactory(SessionFactory):
    """
    Fabrique simulée

    sessions: {hôte: FakeSession | exception à lever à l'ouverture}
    Les hôtes absents reçoivent une session vide.
    """

    def __init__(self, sessions=None, open_delay=0.0):
        self.sessions = sessions or {}
        self.open_delay = open_delay
        self.opened = []
        self._lock = threading.Lock()

    def open(self, host):
        if self.open_delay:
            time.sleep(self.open_delay)
        session = self.sessions.get(host)
        if isinstance(session, Exception):
            raise session
        if session is None:
            session = FakeSession(host)
        with self._lock:
            self.opened.append(session)
        return session


class FakeConnectivityChecker(ConnectivityChecker):
    """Hôtes listés dans offline injoignables, les autres joignables"""

    def __init__(self, offline=(), delay=0.0):
        self.offline = set(offline)
        self.delay = delay
        self.checked = []

    def is_reachable(self, host, timeout):
        self.checked.append(host)
        if self.delay:
            time.sleep(self.delay)
        return host not in self.offline


@pytest.fixture
def probe_config():
    return ProbeConfig(
        max_concurrency=4,
        per_host_timeout=5.0,
        detection_methods=(DetectionMethod.PACKAGE_QUERY, DetectionMethod.FILESYSTEM_PATH,
                           DetectionMethod.REGISTRY_KEY),
        package_patterns=(r'^Acme Agent',),
        file_paths=(r'C:\Program Files\Acme\agent.exe',),
        registry_keys=(RegistryKeyCheck(r'HKLM\SOFTWARE\Acme\Agent', 'Version'),),
        retry_delay=0.0
    )


@pytest.fixture
def scenario_factory():
    """Parc du scénario de référence : h1 à h5"""
    exe = r'C:\Program Files\Acme\agent.exe'
    return FakeSessionFactory({
        'h2': AccessDeniedError('h2', "Accès refusé (5)"),
        'h3': FakeSession('h3', paths={exe: PathInfo(path=exe, version='2.0')}),
        'h4': FakeSession('h4', software=[{'name': 'Acme Agent', 'version': '3.1',
                                           'vendor': 'Acme', 'install_location': r'C:\Acme'}]),
        'h5': FakeSession('h5'),
    })


@pytest.fixture
def config_file(tmp_path):
    """Fichier INI complet, logs dans le répertoire temporaire"""
    path = tmp_path / "fleetscan.ini"
    path.write_text(
        "[scan]\n"
        "max_concurrency = 4\n"
        "per_host_timeout = 5\n"
        "transport = local\n"
        "\n[detection]\n"
        "package_patterns = ^Acme Agent\n"
        "file_paths = C:\\Program Files\\Acme\\agent.exe\n"
        "registry_keys = HKLM\\SOFTWARE\\Acme\\Agent|Version\n"
        "\n[logging]\n"
        f"log_file = {tmp_path / 'fleetscan.log'}\n",
        encoding='utf-8'
    )
    return str(path)
