"""
Tests de l'agrégateur de résultats et du résumé
"""

import threading

import pytest

from fleetscan.core.aggregator import ResultAggregator
from fleetscan.core.models import (Classification, Detection, DetectionMethod, HostProbeResult,
                                   ScanSummary)


def sample_results():
    return [
        HostProbeResult.offline('h1'),
        HostProbeResult.access_denied('h2', "Accès refusé"),
        HostProbeResult.detected('h3', Detection(DetectionMethod.FILESYSTEM_PATH, version='2.0')),
        HostProbeResult.detected('h4', Detection(DetectionMethod.PACKAGE_QUERY, version='3.1')),
        HostProbeResult.not_detected('h5'),
    ]


def test_results_sorted_by_host_regardless_of_arrival():
    aggregator = ResultAggregator(['h1', 'h2', 'h3', 'h4', 'h5'])
    for result in reversed(sample_results()):
        assert aggregator.add(result) is True

    results, _ = aggregator.finalize()
    assert [result.host for result in results] == ['h1', 'h2', 'h3', 'h4', 'h5']


def test_summary_counts():
    aggregator = ResultAggregator(['h1', 'h2', 'h3', 'h4', 'h5'])
    for result in sample_results():
        aggregator.add(result)

    _, summary = aggregator.finalize()
    assert summary.total == 5
    assert summary.reachable == 4
    assert summary.unreachable == 1
    assert summary.offline == 1
    assert summary.access_denied == 1
    assert summary.software_detected == 2
    assert summary.success == 3
    assert summary.partial_error == 0
    assert summary.total == summary.reachable + summary.unreachable


def test_finalize_is_idempotent():
    aggregator = ResultAggregator(['h1', 'h2', 'h3', 'h4', 'h5'])
    for result in sample_results():
        aggregator.add(result)

    assert aggregator.finalize() == aggregator.finalize()


def test_duplicate_result_is_a_violation_and_keeps_first():
    aggregator = ResultAggregator(['h1'])
    aggregator.add(HostProbeResult.not_detected('h1'))

    assert aggregator.add(HostProbeResult.offline('h1')) is False
    assert len(aggregator.violations) == 1

    results, _ = aggregator.finalize()
    assert results[0].classification is Classification.SUCCESS


def test_unknown_host_is_a_violation():
    aggregator = ResultAggregator(['h1'])

    assert aggregator.add(HostProbeResult.not_detected('intrus')) is False
    assert 'intrus' in str(aggregator.violations[0])
    assert len(aggregator) == 0


def test_missing_hosts_in_input_order():
    aggregator = ResultAggregator(['c', 'a', 'b'])
    aggregator.add(HostProbeResult.not_detected('a'))

    assert aggregator.missing_hosts() == ['c', 'b']


def test_concurrent_adds():
    hosts = [f"pc{index:03d}" for index in range(200)]
    aggregator = ResultAggregator(hosts)

    def add_range(chunk):
        for host in chunk:
            aggregator.add(HostProbeResult.not_detected(host))

    threads = [threading.Thread(target=add_range, args=(hosts[i::4],)) for i in range(4)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(aggregator) == 200
    assert aggregator.violations == []


def test_empty_summary():
    summary = ScanSummary.from_results([])
    assert summary.total == 0
    assert summary.to_dict()['reachable'] == 0


@pytest.mark.parametrize('kwargs', [
    {'classification': Classification.SUCCESS},
    {'classification': Classification.OFFLINE, 'error_detail': "ping"},
    {'classification': Classification.OFFLINE, 'install_path': r'C:\Acme'},
])
def test_unreachable_result_invariants(kwargs):
    with pytest.raises(ValueError):
        HostProbeResult(host='h1', reachable=False, **kwargs)


def test_detection_requires_method():
    with pytest.raises(ValueError):
        HostProbeResult(host='h1', reachable=True, software_detected=True)
