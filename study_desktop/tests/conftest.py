import os
from datetime import datetime, timezone

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest  # noqa: E402
from PySide6.QtCore import QObject, Signal  # noqa: E402
from PySide6.QtWidgets import QApplication  # noqa: E402

from study_desktop.backend import BackendError, PomodoroBackend, PomodoroRecord  # noqa: E402
from study_desktop.recorder import SessionRecorder  # noqa: E402
from study_desktop.ui.audio import AudioController  # noqa: E402
from study_desktop.ui.pomodoro import PomodoroController  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def qapp():
    app = QApplication.instance() or QApplication([])
    yield app


class InlineRunner:
    """Runs calls immediately on the caller's thread."""

    def __init__(self):
        self.submitted = []

    def submit(self, fn, *args, on_success=None, on_error=None, **kwargs):
        self.submitted.append(fn)
        try:
            result = fn(*args, **kwargs)
        except Exception as e:
            if on_error is None:
                raise
            on_error(e)
        else:
            if on_success is not None:
                on_success(result)


class DeferredRunner:
    """Queues calls until the test flushes them, like a slow backend."""

    def __init__(self):
        self.queue = []

    def submit(self, fn, *args, on_success=None, on_error=None, **kwargs):
        self.queue.append((fn, args, kwargs, on_success, on_error))

    def flush(self):
        while self.queue:
            fn, args, kwargs, on_success, on_error = self.queue.pop(0)
            try:
                result = fn(*args, **kwargs)
            except Exception as e:
                if on_error is not None:
                    on_error(e)
            else:
                if on_success is not None:
                    on_success(result)


class FakeBackend(PomodoroBackend):
    def __init__(self):
        self.calls = []
        self.records = []
        self.fail = set()
        self._next_id = 100

    def _maybe_fail(self, name):
        if name in self.fail:
            raise BackendError(f"{name} unavailable")

    def start_pomodoro(self, subject_id=None, task_id=None, duration_minutes=None):
        self.calls.append(("start", subject_id, task_id, duration_minutes))
        self._maybe_fail("start")
        self._next_id += 1
        record = PomodoroRecord(
            id=self._next_id,
            subject_id=subject_id,
            task_id=task_id,
            start_time=datetime.now(timezone.utc),
            duration_minutes=duration_minutes or 0,
            status="pending",
        )
        self.records.insert(0, record)
        return record

    def _close(self, name, status, pomodoro_id, duration_minutes):
        self.calls.append((name, pomodoro_id, duration_minutes))
        self._maybe_fail(name)
        for r in self.records:
            if r.id == pomodoro_id:
                r.status = status
                r.duration_minutes = duration_minutes

    def complete_pomodoro(self, pomodoro_id, duration_minutes):
        self._close("complete", "completed", pomodoro_id, duration_minutes)

    def cancel_pomodoro(self, pomodoro_id, duration_minutes):
        self._close("cancel", "cancelled", pomodoro_id, duration_minutes)

    def get_pomodoro_history(self, limit=50):
        self.calls.append(("history", limit))
        self._maybe_fail("history")
        return list(self.records[:limit])

    def calls_named(self, name):
        return [c for c in self.calls if c[0] == name]


class FakeHandle(QObject):
    ready = Signal()
    started = Signal()
    failed = Signal(str)

    def __init__(self, parent=None):
        super().__init__(parent)
        self.url = None
        self.volume = None
        self.play_calls = 0
        self.released = False

    def load(self, url):
        self.url = url

    def play(self):
        self.play_calls += 1

    def set_volume(self, volume):
        self.volume = volume

    def release(self):
        self.released = True


class HandleFactory:
    def __init__(self):
        self.handles = []

    def __call__(self, parent=None):
        h = FakeHandle(parent)
        self.handles.append(h)
        return h

    @property
    def last(self):
        return self.handles[-1]

    def alive(self):
        return [h for h in self.handles if not h.released]


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def runner():
    return InlineRunner()


@pytest.fixture
def recorder(backend, runner):
    return SessionRecorder(backend, runner, history_limit=20)


@pytest.fixture
def handles():
    return HandleFactory()


@pytest.fixture
def audio(handles):
    return AudioController(player_factory=handles)


@pytest.fixture
def controller(recorder, audio):
    return PomodoroController(recorder=recorder, audio=audio, work_minutes=25, break_minutes=5)


@pytest.fixture
def ticks():
    def _run(controller, n=1):
        for _ in range(n):
            controller._on_timeout()
    return _run


@pytest.fixture
def deferred():
    return DeferredRunner()


@pytest.fixture
def slow_controller(backend, deferred, audio):
    recorder = SessionRecorder(backend, deferred, history_limit=20)
    return PomodoroController(recorder=recorder, audio=audio, work_minutes=25, break_minutes=5)
