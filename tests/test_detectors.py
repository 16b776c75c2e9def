"""
Tests des détecteurs et des utilitaires de session
"""

import dataclasses

import pytest

from fleetscan.core.errors import DetectionError
from fleetscan.core.models import DetectionMethod, PathInfo
from fleetscan.core.utils import clean_string, parse_version
from fleetscan.detectors import (FileSystemPathDetector, PackageQueryDetector, RegistryKeyDetector,
                                 build_detectors)
from fleetscan.sessions.registry import split_key
from fleetscan.sessions.remote_registry import to_admin_share_path
from tests.conftest import FakeSession

SOFTWARE = [
    {'name': 'Acme Agent Updater', 'version': '1.0', 'vendor': 'Acme', 'install_location': ''},
    {'name': 'Acme Agent', 'version': 'v3.1.4', 'vendor': 'Acme', 'install_location': r'C:\Acme'},
]


def test_build_detectors_follows_configured_order(probe_config):
    config = dataclasses.replace(probe_config, detection_methods=(
        DetectionMethod.REGISTRY_KEY, DetectionMethod.PACKAGE_QUERY))
    detectors = build_detectors(config)

    assert [type(detector) for detector in detectors] == [RegistryKeyDetector, PackageQueryDetector]


def test_package_patterns_checked_in_order(probe_config):
    config = dataclasses.replace(probe_config, package_patterns=(r'^acme agent$', r'updater'))
    detection = PackageQueryDetector(config).detect(FakeSession('pc1', software=SOFTWARE))

    assert detection.evidence == 'Acme Agent'
    assert detection.version == '3.1.4'
    assert detection.install_path == r'C:\Acme'


def test_package_no_match(probe_config):
    config = dataclasses.replace(probe_config, package_patterns=(r'contoso',))
    assert PackageQueryDetector(config).detect(FakeSession('pc1', software=SOFTWARE)) is None


def test_filesystem_first_existing_path(probe_config):
    config = dataclasses.replace(probe_config, file_paths=(r'C:\old\agent.exe', r'D:\Acme\agent.exe'))
    session = FakeSession('pc1', paths={r'D:\Acme\agent.exe': PathInfo(path=r'D:\Acme\agent.exe',
                                                                        version='5.0')})
    detection = FileSystemPathDetector(config).detect(session)

    assert detection.install_path == r'D:\Acme\agent.exe'
    assert detection.version == '5.0'


def test_filesystem_error_raised_when_nothing_found(probe_config):
    session = FakeSession('pc1', paths={r'C:\Program Files\Acme\agent.exe':
                                        DetectionError('pc1', "partage inaccessible")})

    with pytest.raises(DetectionError):
        FileSystemPathDetector(probe_config).detect(session)


def test_registry_key_existence_is_enough_without_value_name(probe_config):
    config = dataclasses.replace(probe_config, registry_keys=(
        dataclasses.replace(probe_config.registry_keys[0], value_name=''),))
    session = FakeSession('pc1', registry={r'HKLM\SOFTWARE\Acme\Agent': {}})

    detection = RegistryKeyDetector(config).detect(session)
    assert detection.method is DetectionMethod.REGISTRY_KEY
    assert detection.version is None


@pytest.mark.parametrize('key,expected', [
    (r'HKLM\SOFTWARE\Acme', ('HKEY_LOCAL_MACHINE', r'SOFTWARE\Acme')),
    (r'HKEY_USERS\S-1-5-18\Software', ('HKEY_USERS', r'S-1-5-18\Software')),
    (r'SOFTWARE\Acme', ('HKEY_LOCAL_MACHINE', r'SOFTWARE\Acme')),
    ('hklm/SOFTWARE/Acme', ('HKEY_LOCAL_MACHINE', r'SOFTWARE\Acme')),
])
def test_split_key(key, expected):
    assert split_key(key) == expected


def test_admin_share_path():
    assert to_admin_share_path('pc1', r'C:\Program Files\Acme\agent.exe') == \
        r'\\pc1\C$\Program Files\Acme\agent.exe'
    assert to_admin_share_path('pc1', r'D:/Acme/agent.exe') == r'\\pc1\D$\Acme\agent.exe'


def test_version_and_string_cleaning():
    assert parse_version('Version 2.4.1 (build 7)') == '2.4.1'
    assert parse_version('') is None
    assert clean_string('  Acme\t  Agent ') == 'Acme Agent'


def test_local_session_stat_path(tmp_path):
    from fleetscan.sessions.local import LocalSession

    target = tmp_path / "agent.bin"
    target.write_bytes(b"\x00")

    with LocalSession('localhost') as session:
        info = session.stat_path(str(target))
        assert info.path == str(target)
        assert info.last_access is not None
        assert session.stat_path(str(tmp_path / "absent.bin")) is None

    assert session.closed is True
