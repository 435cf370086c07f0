import threading
import time

import pytest

from proxy_stream.core.exceptions import AdmissionError
from proxy_stream.core.lib.gate import AdmissionGate


def test_acquire_and_release_track_slots():
    gate = AdmissionGate(2)

    first = gate.acquire()
    second = gate.acquire()
    assert gate.in_use == 2
    assert gate.available == 0

    first.release()
    second.release()
    assert gate.in_use == 0


def test_exhausted_gate_blocks_until_release():
    gate = AdmissionGate(1)
    held = gate.acquire()

    assert gate.acquire(timeout=0.1) is None

    threading.Timer(0.1, held.release).start()
    permit = gate.acquire(timeout=5)
    assert permit is not None
    permit.release()


def test_double_release_is_rejected_without_freeing_a_slot():
    gate = AdmissionGate(2)
    permit = gate.acquire()
    other = gate.acquire()
    permit.release()

    with pytest.raises(AdmissionError):
        permit.release()

    assert gate.in_use == 1
    other.release()
    assert gate.in_use == 0


def test_admit_releases_on_exception():
    gate = AdmissionGate(1)

    with pytest.raises(RuntimeError), gate.admit():
        assert gate.in_use == 1
        raise RuntimeError("boom")

    assert gate.in_use == 0


def test_admit_tolerates_early_release():
    gate = AdmissionGate(1)

    with gate.admit() as permit:
        permit.release()

    assert gate.in_use == 0


def test_concurrent_holders_never_exceed_capacity():
    gate = AdmissionGate(3)
    lock = threading.Lock()
    current = 0
    peak = 0

    def worker():
        nonlocal current, peak
        with gate.admit():
            with lock:
                current += 1
                peak = max(peak, current)
            time.sleep(0.02)
            with lock:
                current -= 1

    threads = [threading.Thread(target=worker) for _ in range(12)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(timeout=5)

    assert peak <= 3
    assert gate.in_use == 0


def test_capacity_must_be_positive():
    with pytest.raises(ValueError):
        AdmissionGate(0)
