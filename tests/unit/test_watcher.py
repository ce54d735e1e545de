import os
import threading
import time

import pytest

pytest.importorskip("watchdog", reason="watchdog dependency is required for watcher tests")

from app.utils.errors import WatcherError
from domains.watch_daemon.watcher import ProcessedRegistry, WatchOptions, Watcher


class FakeClock:
    def __init__(self, now=1_000_000.0):
        self.now = now

    def __call__(self):
        return self.now


def wait_for(predicate, timeout=5.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def fast_options(**overrides):
    values = dict(extensions=(".txt",), recursive=False, settle_delay=0.01)
    values.update(overrides)
    return WatchOptions(**values)


@pytest.fixture
def running_watchers():
    watchers = []
    yield watchers
    for watcher in watchers:
        watcher.stop()


def test_registry_claim_window():
    clock = FakeClock()
    registry = ProcessedRegistry(clock)

    assert registry.claim("/a.txt", 60)
    clock.now += 30
    assert not registry.claim("/a.txt", 60)
    clock.now += 31
    assert registry.claim("/a.txt", 60)
    assert registry.last_dispatch("/a.txt") == clock.now


def test_registry_claim_is_atomic_across_threads():
    registry = ProcessedRegistry()
    barrier = threading.Barrier(16)
    results = []

    def claim():
        barrier.wait()
        results.append(registry.claim("/fresh.txt", 60))

    threads = [threading.Thread(target=claim) for _ in range(16)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert results.count(True) == 1
    assert len(results) == 16


def test_registry_purge_removes_old_entries():
    clock = FakeClock()
    registry = ProcessedRegistry(clock)
    registry.mark("/old.txt")
    clock.now += 30 * 60
    registry.mark("/recent.txt")
    clock.now += 31 * 60

    assert registry.purge(60 * 60, chunk_size=1) == 1
    assert "/old.txt" not in registry
    assert "/recent.txt" in registry
    assert len(registry) == 1


def test_invalid_directories_are_skipped(tmp_path):
    a_file = tmp_path / "file.txt"
    a_file.write_text("x")

    watcher = Watcher(
        [str(tmp_path / "missing"), str(a_file), str(tmp_path)], fast_options(), lambda p: None
    )
    assert watcher.dirs == [str(tmp_path)]

    with pytest.raises(WatcherError):
        Watcher([str(tmp_path / "missing")], fast_options(), lambda p: None)


def test_should_process_filters(tmp_path):
    clock = FakeClock()
    watcher = Watcher(
        [str(tmp_path)], fast_options(extensions=("TXT",), min_file_age=2.0), lambda p: None, clock=clock
    )
    path = tmp_path / "notes.txt"
    path.write_text("x")
    other = tmp_path / "image.png"
    other.write_bytes(b"x")
    mtime = os.stat(path).st_mtime

    clock.now = mtime + 1
    assert not watcher.should_process(str(path))

    clock.now = mtime + 3
    assert not watcher.should_process(str(other))
    assert watcher.should_process(str(path))
    assert not watcher.should_process(str(path))
    assert not watcher.should_process(str(tmp_path / "missing.txt"))


def test_dispatch_runs_handler_once_per_window(tmp_path, running_watchers):
    calls = []
    watcher = Watcher([str(tmp_path)], fast_options(), calls.append)
    running_watchers.append(watcher)
    watcher.start()
    path = tmp_path / "notes.txt"
    path.write_text("x")

    watcher.handle_path(str(path))
    assert wait_for(lambda: calls == [str(path)])

    watcher.handle_path(str(path), created=False)
    time.sleep(0.1)
    assert calls == [str(path)]


def test_failed_handler_still_counts_as_processed(tmp_path, running_watchers):
    clock = FakeClock(time.time())
    calls = []

    def handler(path):
        calls.append(path)
        raise RuntimeError("boom")

    watcher = Watcher([str(tmp_path)], fast_options(), handler, clock=clock)
    running_watchers.append(watcher)
    watcher.start()
    path = tmp_path / "notes.txt"
    path.write_text("x")

    watcher.handle_path(str(path))
    assert wait_for(lambda: len(calls) == 1 and not watcher._pending)

    assert not watcher.should_process(str(path))
    clock.now += 61
    assert watcher.should_process(str(path))


def test_double_start_raises(tmp_path, running_watchers):
    watcher = Watcher([str(tmp_path)], fast_options(), lambda p: None)
    running_watchers.append(watcher)
    watcher.start()

    with pytest.raises(WatcherError):
        watcher.start()


def test_stop_waits_for_running_handlers(tmp_path):
    started = threading.Event()
    finished = []

    def slow(path):
        started.set()
        time.sleep(0.3)
        finished.append(path)

    watcher = Watcher([str(tmp_path)], fast_options(), slow)
    watcher.start()
    path = tmp_path / "notes.txt"
    path.write_text("x")

    watcher.handle_path(str(path))
    assert started.wait(5)
    watcher.stop()

    assert finished == [str(path)]
    assert not watcher.running
    assert len(watcher.registry) == 0


def test_stop_cancels_units_in_settle_delay(tmp_path):
    calls = []
    watcher = Watcher([str(tmp_path)], fast_options(settle_delay=10.0), calls.append)
    watcher.start()
    path = tmp_path / "notes.txt"
    path.write_text("x")

    watcher.handle_path(str(path))
    began = time.monotonic()
    watcher.stop()

    assert time.monotonic() - began < 5
    assert calls == []

    # stopping twice is a no-op
    watcher.stop()


def test_excluded_and_new_directories(tmp_path, running_watchers):
    (tmp_path / ".git" / "objects").mkdir(parents=True)
    (tmp_path / "src").mkdir()
    watcher = Watcher(
        [str(tmp_path)], fast_options(recursive=True, exclude_dirs=(".git",)), lambda p: None
    )
    running_watchers.append(watcher)
    watcher.start()

    watched = watcher.watched_directories
    assert str(tmp_path) in watched
    assert str(tmp_path / "src") in watched
    assert not any(".git" in d for d in watched)

    new_dir = tmp_path / "incoming"
    new_dir.mkdir()
    watcher.handle_path(str(new_dir), created=True)
    assert str(new_dir) in watcher.watched_directories

    vendor = tmp_path / "vendor"
    vendor.mkdir()
    watcher.handle_path(str(vendor), created=False)
    assert str(vendor) not in watcher.watched_directories

    git_dir = tmp_path / ".git" / "hooks"
    git_dir.mkdir()
    watcher.handle_path(str(git_dir), created=True)
    assert str(git_dir) not in watcher.watched_directories


def test_sweep_purges_registry(tmp_path):
    clock = FakeClock()
    watcher = Watcher([str(tmp_path)], fast_options(record_ttl=60.0), lambda p: None, clock=clock)
    watcher.registry.mark("/a.txt")
    clock.now += 120

    assert watcher.sweep() == 1


def test_filesystem_events_reach_handler(tmp_path, running_watchers):
    calls = []
    watcher = Watcher([str(tmp_path)], fast_options(recursive=True), calls.append)
    running_watchers.append(watcher)
    watcher.start()

    sub = tmp_path / "sub"
    sub.mkdir()
    assert wait_for(lambda: str(sub) in watcher.watched_directories)

    (tmp_path / "ignored.png").write_bytes(b"x")
    target = sub / "notes.txt"
    target.write_text("hello")

    assert wait_for(lambda: str(target) in calls)
    assert str(tmp_path / "ignored.png") not in calls
