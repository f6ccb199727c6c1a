import threading
import time

from services.scheduler import RefreshScheduler, SchedulerState


def wait_for(predicate, timeout=3.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


class Counter:
    def __init__(self):
        self.calls = 0
        self.lock = threading.Lock()

    def __call__(self):
        with self.lock:
            self.calls += 1
            return self.calls


def test_start_polls_immediately_once():
    task = Counter()
    results = []
    scheduler = RefreshScheduler('t', interval=60, task=task, on_result=results.append)
    scheduler.start()
    try:
        assert wait_for(lambda: results == [1])
        time.sleep(0.1)
        assert task.calls == 1
        assert wait_for(lambda: scheduler.state == SchedulerState.IDLE)
    finally:
        scheduler.stop()
    assert scheduler.state == SchedulerState.STOPPED


def test_polls_every_interval_until_stopped():
    task = Counter()
    scheduler = RefreshScheduler('t', interval=0.05, task=task)
    scheduler.start()
    assert wait_for(lambda: task.calls >= 4)
    scheduler.stop()
    stopped_at = task.calls
    time.sleep(0.2)
    assert task.calls <= stopped_at + 1
    settled = task.calls
    time.sleep(0.2)
    assert task.calls == settled


def test_in_flight_result_discarded_after_stop():
    release = threading.Event()
    started = threading.Event()
    results = []

    def slow_task():
        started.set()
        release.wait(timeout=5)
        return 'late'

    scheduler = RefreshScheduler('t', interval=60, task=slow_task, on_result=results.append)
    scheduler.start()
    assert started.wait(timeout=3)
    scheduler.stop()
    release.set()
    time.sleep(0.1)
    assert results == []
    assert scheduler.poll_count == 0


def test_trigger_polls_without_waiting():
    task = Counter()
    scheduler = RefreshScheduler('t', interval=60, task=task)
    scheduler.start()
    try:
        assert wait_for(lambda: task.calls == 1)
        assert wait_for(lambda: scheduler.state == SchedulerState.IDLE)
        scheduler.trigger()
        assert wait_for(lambda: task.calls == 2)
    finally:
        scheduler.stop()


def test_guard_skips_ticks():
    task = Counter()
    open_gate = threading.Event()
    scheduler = RefreshScheduler('t', interval=0.02, task=task, guard=open_gate.is_set)
    scheduler.start()
    try:
        time.sleep(0.1)
        assert task.calls == 0
        open_gate.set()
        assert wait_for(lambda: task.calls >= 1)
    finally:
        scheduler.stop()


def test_errors_reported_and_loop_continues():
    errors = []
    calls = Counter()

    def flaky():
        if calls() == 1:
            raise RuntimeError('boom')
        return 'ok'

    results = []
    scheduler = RefreshScheduler('t', interval=0.02, task=flaky,
                                 on_result=results.append, on_error=errors.append)
    scheduler.start()
    try:
        assert wait_for(lambda: results)
    finally:
        scheduler.stop()
    assert isinstance(errors[0], RuntimeError)


def test_failing_result_callback_reported_and_loop_continues():
    task = Counter()
    errors = []
    applied = []

    def apply(result):
        if result == 1:
            raise ValueError('bad frame')
        applied.append(result)

    scheduler = RefreshScheduler('t', interval=0.02, task=task,
                                 on_result=apply, on_error=errors.append)
    scheduler.start()
    try:
        assert wait_for(lambda: applied)
        assert scheduler.running
    finally:
        scheduler.stop()
    assert isinstance(errors[0], ValueError)
    assert task.calls >= 2


def test_stop_from_error_callback():
    scheduler = None
    calls = Counter()

    def failing():
        calls()
        raise RuntimeError('expired')

    def on_error(error):
        scheduler.stop()

    scheduler = RefreshScheduler('t', interval=0.02, task=failing, on_error=on_error)
    scheduler.start()
    assert wait_for(lambda: scheduler.state == SchedulerState.STOPPED)
    time.sleep(0.1)
    assert calls.calls == 1


def test_restart_opens_new_run():
    task = Counter()
    scheduler = RefreshScheduler('t', interval=60, task=task)
    scheduler.start()
    assert wait_for(lambda: task.calls == 1)
    scheduler.start()
    try:
        assert wait_for(lambda: task.calls == 2)
    finally:
        scheduler.stop()


def test_stop_when_never_started():
    scheduler = RefreshScheduler('t', interval=1, task=lambda: None)
    scheduler.stop()
    assert not scheduler.running
