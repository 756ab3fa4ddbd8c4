import logging
from typing import Callable, List, Optional

from PySide6.QtCore import QObject, Signal

from .backend import BackendError, PomodoroBackend, PomodoroRecord, today_summary
from .config import DEFAULT_HISTORY_LIMIT

logger = logging.getLogger(__name__)


class SessionRecorder(QObject):
    """Persist work sessions through the backend.

    The recorder holds no session state of its own: the controller passes
    the session id in and clears its copy before calling complete/cancel.

    Signals:
    - failed(str): advisory message for a failed open/complete/cancel call
    - history_loaded(list): PomodoroRecord list, most recent first
    - today_changed(int, int): today's completed count and minutes
    """

    failed = Signal(str)
    history_loaded = Signal(list)
    today_changed = Signal(int, int)

    def __init__(self, backend: PomodoroBackend, runner, history_limit: int = DEFAULT_HISTORY_LIMIT, parent=None):
        super().__init__(parent)
        self.backend = backend
        self.runner = runner
        self.history_limit = int(history_limit)
        self.history: List[PomodoroRecord] = []
        self.today_count = 0
        self.today_minutes = 0

    def open(self, subject_id: Optional[int], task_id: Optional[int], duration_minutes: Optional[int],
             on_opened: Callable[[int], None], on_failed: Callable[[], None] = None):
        def _done(record: PomodoroRecord):
            logger.debug("opened pomodoro %s", record.id)
            on_opened(record.id)

        def _error(e):
            self._report("start", e)
            if on_failed is not None:
                on_failed()

        self.runner.submit(
            self.backend.start_pomodoro,
            subject_id=subject_id,
            task_id=task_id,
            duration_minutes=duration_minutes,
            on_success=_done,
            on_error=_error,
        )

    def complete(self, session_id: int, duration_minutes: int):
        self._close(self.backend.complete_pomodoro, "complete", session_id, duration_minutes)

    def cancel(self, session_id: int, duration_minutes: int):
        self._close(self.backend.cancel_pomodoro, "cancel", session_id, duration_minutes)

    def _close(self, call, action: str, session_id: int, duration_minutes: int):
        logger.debug("%s pomodoro %s after %s min", action, session_id, duration_minutes)
        self.runner.submit(
            call,
            session_id,
            int(duration_minutes),
            on_success=lambda _result: self.refresh_history(),
            on_error=lambda e: self._report(action, e),
        )

    def refresh_history(self):
        self.runner.submit(
            self.backend.get_pomodoro_history,
            self.history_limit,
            on_success=self._on_history,
            on_error=lambda e: logger.warning("loading pomodoro history failed: %s", e),
        )

    def _on_history(self, records):
        self.history = list(records or [])
        self.today_count, self.today_minutes = today_summary(self.history)
        self.history_loaded.emit(self.history)
        self.today_changed.emit(self.today_count, self.today_minutes)

    def _report(self, action: str, error):
        if isinstance(error, BackendError):
            msg = str(error)
        else:
            msg = f"Failed to {action} pomodoro: {error}"
        logger.warning(msg)
        self.failed.emit(msg)
