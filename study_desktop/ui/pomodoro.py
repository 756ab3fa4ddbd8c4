import enum
import logging
from dataclasses import dataclass, replace
from typing import Optional

from PySide6.QtCore import QObject, Signal, QTimer

from ..config import DEFAULT_BREAK_MINUTES, DEFAULT_WORK_MINUTES, MAX_BREAK_MINUTES, MAX_WORK_MINUTES
from .audio import NONE_SOUND

logger = logging.getLogger(__name__)


class TimerMode(enum.Enum):
    WORK = "work"
    BREAK = "break"


class TimerState(enum.Enum):
    IDLE = "idle"
    RUNNING = "running"
    PAUSED = "paused"


@dataclass
class TimerSession:
    mode: TimerMode
    state: TimerState
    remaining_seconds: int
    total_seconds: int
    backend_session_id: Optional[int] = None
    selected_subject_id: Optional[int] = None
    task_id: Optional[int] = None


def parse_minutes(text) -> Optional[int]:
    """Parse a custom duration typed by the user; None when it is not a whole number."""
    try:
        return int(str(text).strip())
    except (TypeError, ValueError):
        return None


class PomodoroController(QObject):
    """Work/break countdown with backend session recording.

    Signals:
    - tick(int): remaining seconds, emitted on every decrement and re-arm
    - state_changed(str): 'idle', 'running' or 'paused'
    - mode_changed(str): 'work' or 'break'
    - finished(str): the mode whose countdown just reached zero
    - notice(str): advisory error message (backend failures)
    - opening_changed(bool): a backend open call started or settled
    """

    tick = Signal(int)
    state_changed = Signal(str)
    mode_changed = Signal(str)
    finished = Signal(str)
    notice = Signal(str)
    opening_changed = Signal(bool)

    def __init__(self, recorder=None, audio=None, work_minutes: int = DEFAULT_WORK_MINUTES,
                 break_minutes: int = DEFAULT_BREAK_MINUTES, parent=None):
        super().__init__(parent)
        self.recorder = recorder
        self.audio = audio
        self.work_minutes = int(work_minutes)
        self.break_minutes = int(break_minutes)
        total = self.work_minutes * 60
        self._session = TimerSession(TimerMode.WORK, TimerState.IDLE, total, total)
        self._opening = False
        self._subject_id = None
        self._task_id = None
        self._pending_sound = NONE_SOUND
        self._timer = QTimer(self)
        self._timer.setInterval(1000)
        self._timer.timeout.connect(self._on_timeout)
        if self.recorder is not None:
            self.recorder.failed.connect(self.notice)

    # -- read side -----------------------------------------------------

    @property
    def session(self) -> TimerSession:
        return replace(self._session)

    def mode(self) -> TimerMode:
        return self._session.mode

    def state(self) -> TimerState:
        return self._session.state

    def remaining(self) -> int:
        return int(self._session.remaining_seconds)

    def is_active(self) -> bool:
        return self._timer.isActive()

    def is_opening(self) -> bool:
        return self._opening

    def pending_sound(self) -> str:
        return self._pending_sound

    def snapshot(self) -> dict:
        s = self._session
        return {
            "mode": s.mode.value,
            "state": s.state.value,
            "remaining_seconds": s.remaining_seconds,
            "total_seconds": s.total_seconds,
        }

    def sound_session(self):
        return self.audio.session if self.audio is not None else None

    # -- timer actions -------------------------------------------------

    def start(self) -> bool:
        if self._session.state is not TimerState.IDLE or self._opening:
            return False
        if (self._session.mode is TimerMode.WORK and self.recorder is not None
                and self._session.backend_session_id is None):
            subject_id, task_id = self._subject_id, self._task_id
            self._opening = True
            self.opening_changed.emit(True)
            self.recorder.open(
                subject_id,
                task_id,
                self.work_minutes,
                on_opened=lambda sid: self._on_opened(sid, subject_id, task_id),
                on_failed=self._on_open_failed,
            )
            return True
        self._enter_running()
        return True

    def pause(self) -> bool:
        if self._session.state is not TimerState.RUNNING:
            return False
        self._timer.stop()
        self._set_state(TimerState.PAUSED)
        return True

    def resume(self) -> bool:
        if self._session.state is not TimerState.PAUSED:
            return False
        self._session.state = TimerState.RUNNING
        self._timer.start()
        self.state_changed.emit(TimerState.RUNNING.value)
        return True

    def toggle(self) -> bool:
        """Start, pause or resume depending on the current state."""
        state = self._session.state
        if state is TimerState.IDLE:
            return self.start()
        if state is TimerState.RUNNING:
            return self.pause()
        return self.resume()

    def cancel(self) -> bool:
        s = self._session
        if s.state is TimerState.IDLE:
            return False
        self._timer.stop()
        elapsed_minutes = (s.total_seconds - s.remaining_seconds) // 60
        session_id = self._take_session_id()
        if session_id is not None and self.recorder is not None:
            self.recorder.cancel(session_id, elapsed_minutes)
        self._set_mode(TimerMode.WORK)
        self._rearm()
        self._set_state(TimerState.IDLE)
        return True

    # -- configuration (idle only) -------------------------------------

    def _editable(self) -> bool:
        return self._session.state is TimerState.IDLE and not self._opening

    def set_work_duration(self, minutes) -> bool:
        m = parse_minutes(minutes)
        if m is None or not (0 < m <= MAX_WORK_MINUTES) or not self._editable():
            return False
        self.work_minutes = m
        self._rearm()
        return True

    def set_break_duration(self, minutes) -> bool:
        m = parse_minutes(minutes)
        if m is None or not (0 < m <= MAX_BREAK_MINUTES) or not self._editable():
            return False
        self.break_minutes = m
        self._rearm()
        return True

    def set_mode(self, mode) -> bool:
        try:
            mode = TimerMode(mode)
        except ValueError:
            return False
        if not self._editable():
            return False
        self._set_mode(mode)
        self._rearm()
        return True

    def set_subject(self, subject_id: Optional[int]):
        self._subject_id = subject_id

    def set_task(self, task_id: Optional[int]):
        self._task_id = task_id

    # -- ambient sound -------------------------------------------------

    def select_sound(self, sound_id: str):
        """Choose a sound: plays now while a timer runs, otherwise on the next start."""
        if self.audio is None:
            return
        self._pending_sound = sound_id
        if sound_id == NONE_SOUND:
            self.audio.stop()
        elif self._session.state is not TimerState.IDLE:
            self.audio.select(sound_id)

    def preview_sound(self) -> bool:
        """Restart the chosen sound; only while an interval is running or paused."""
        if self.audio is None or self._pending_sound == NONE_SOUND:
            return False
        if self._session.state is TimerState.IDLE:
            return False
        self.audio.select(self._pending_sound)
        return True

    def set_volume(self, volume: int):
        if self.audio is not None:
            self.audio.set_volume(volume)

    def stop_sound(self):
        self._pending_sound = NONE_SOUND
        if self.audio is not None:
            self.audio.stop()

    # -- history -------------------------------------------------------

    def refresh_history(self):
        if self.recorder is not None:
            self.recorder.refresh_history()

    def shutdown(self):
        self._timer.stop()
        if self.audio is not None:
            self.audio.stop()

    # -- internals -----------------------------------------------------

    def _on_opened(self, session_id: int, subject_id, task_id):
        self._opening = False
        self.opening_changed.emit(False)
        s = self._session
        if s.state is not TimerState.IDLE or s.mode is not TimerMode.WORK:
            # nothing to attach the session to any more
            self.recorder.cancel(session_id, 0)
            return
        s.backend_session_id = session_id
        s.selected_subject_id = subject_id
        s.task_id = task_id
        self._enter_running()

    def _on_open_failed(self):
        self._opening = False
        self.opening_changed.emit(False)

    def _enter_running(self):
        self._session.state = TimerState.RUNNING
        self._timer.start()
        logger.debug("%s timer started, %ss", self._session.mode.value, self._session.remaining_seconds)
        self.state_changed.emit(TimerState.RUNNING.value)
        if self.audio is not None and self._pending_sound != NONE_SOUND:
            self.audio.select(self._pending_sound)

    def _on_timeout(self):
        s = self._session
        if s.state is not TimerState.RUNNING:
            return
        s.remaining_seconds = max(0, int(s.remaining_seconds) - 1)
        self.tick.emit(s.remaining_seconds)
        if s.remaining_seconds <= 0:
            self._expire()

    def _expire(self):
        self._timer.stop()
        finished_mode = self._session.mode
        if finished_mode is TimerMode.WORK:
            session_id = self._take_session_id()
            if session_id is not None and self.recorder is not None:
                self.recorder.complete(session_id, self.work_minutes)
            self._set_mode(TimerMode.BREAK)
        else:
            self._set_mode(TimerMode.WORK)
        self._rearm()
        self._set_state(TimerState.IDLE)
        self.finished.emit(finished_mode.value)

    def _take_session_id(self) -> Optional[int]:
        # cleared before the close call goes out so a repeated action cannot send it twice
        s = self._session
        session_id = s.backend_session_id
        s.backend_session_id = None
        s.selected_subject_id = None
        s.task_id = None
        return session_id

    def _rearm(self):
        minutes = self.work_minutes if self._session.mode is TimerMode.WORK else self.break_minutes
        self._session.total_seconds = minutes * 60
        self._session.remaining_seconds = minutes * 60
        self.tick.emit(self._session.remaining_seconds)

    def _set_mode(self, mode: TimerMode):
        if self._session.mode is not mode:
            self._session.mode = mode
            self.mode_changed.emit(mode.value)

    def _set_state(self, state: TimerState):
        self._session.state = state
        logger.debug("timer state -> %s", state.value)
        if state is TimerState.IDLE:
            self._pending_sound = NONE_SOUND
            if self.audio is not None:
                self.audio.stop()
        self.state_changed.emit(state.value)
