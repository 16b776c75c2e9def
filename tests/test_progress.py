"""
Tests du rapporteur de progression
"""

from fleetscan.core.models import HostProbeResult
from fleetscan.core.progress import ProgressEvent, ProgressReporter


def test_progress_counts_and_last_result():
    progress = ProgressReporter(4)
    progress.record(HostProbeResult.not_detected('a'))
    progress.record(HostProbeResult.offline('b'))

    snapshot = progress.snapshot()
    assert snapshot.completed == 2
    assert snapshot.total == 4
    assert snapshot.last_result.host == 'b'
    assert progress.percent == 50.0


def test_sinks_receive_increasing_events():
    progress = ProgressReporter(3)
    seen = []
    progress.add_sink(lambda event: seen.append(event.completed))

    for host in ('a', 'b', 'c'):
        progress.record(HostProbeResult.not_detected(host))

    assert seen == [1, 2, 3]


def test_failing_sink_does_not_break_progress():
    progress = ProgressReporter(1)
    seen = []

    def broken(event):
        raise RuntimeError("console fermée")

    progress.add_sink(broken)
    progress.add_sink(seen.append)

    event = progress.record(HostProbeResult.not_detected('a'))
    assert event.completed == 1
    assert len(seen) == 1


def test_empty_scan_percent():
    assert ProgressEvent(0, 0).percent == 100.0
    assert ProgressReporter(0).snapshot().last_result is None
