"""Call contract between the Pomodoro page and the session store.

The timer only ever talks to a :class:`PomodoroBackend`. The desktop app
uses :class:`LocalBackend`, which keeps records in the SQLite database
through :mod:`study_desktop.repository`.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Iterable, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError

from . import repository
from .models import STATUS_RUNNING

logger = logging.getLogger(__name__)

STATUS_PENDING = "pending"


class BackendError(Exception):
    """A backend call failed; the message is shown to the user as-is."""


@dataclass
class PomodoroRecord:
    id: int
    start_time: datetime
    duration_minutes: int
    status: str
    subject_id: Optional[int] = None
    subject_name: Optional[str] = None
    task_id: Optional[int] = None
    end_time: Optional[datetime] = None

    @property
    def is_completed(self) -> bool:
        return self.status == "completed"


def normalize_status(status: str) -> str:
    # open sessions are stored as "running" but reported as pending
    if status == STATUS_RUNNING:
        return STATUS_PENDING
    return status


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    # sqlite hands datetimes back naive; they were written in UTC
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def today_summary(records: Iterable[PomodoroRecord], today: Optional[date] = None) -> Tuple[int, int]:
    """Return (count, minutes) of completed sessions started on ``today`` (UTC)."""
    if today is None:
        today = datetime.now(timezone.utc).date()
    count = 0
    minutes = 0
    for r in records:
        if not r.is_completed:
            continue
        started = _as_utc(r.start_time)
        if started is None or started.astimezone(timezone.utc).date() != today:
            continue
        count += 1
        minutes += int(r.duration_minutes or 0)
    return count, minutes


class PomodoroBackend(ABC):
    @abstractmethod
    def start_pomodoro(self, subject_id: Optional[int] = None, task_id: Optional[int] = None, duration_minutes: Optional[int] = None) -> PomodoroRecord:
        """Open a work session and return its record."""

    @abstractmethod
    def complete_pomodoro(self, pomodoro_id: int, duration_minutes: int) -> None:
        """Close a session as completed."""

    @abstractmethod
    def cancel_pomodoro(self, pomodoro_id: int, duration_minutes: int) -> None:
        """Close a session as cancelled."""

    @abstractmethod
    def get_pomodoro_history(self, limit: int = 50) -> List[PomodoroRecord]:
        """Most recent sessions first."""


class LocalBackend(PomodoroBackend):
    """Backend over the local SQLite store; ``init_db`` must have run."""

    def start_pomodoro(self, subject_id=None, task_id=None, duration_minutes=None):
        try:
            pid = repository.start_pomodoro(subject_id=subject_id, task_id=task_id, duration_minutes=duration_minutes)
            found = repository.get_pomodoro(pid)
        except SQLAlchemyError as e:
            logger.warning("start_pomodoro failed: %s", e)
            raise BackendError(f"Failed to start pomodoro: {e}") from e
        if found is None:
            raise BackendError(f"Failed to start pomodoro: session {pid} not found")
        return self._to_record(*found)

    def complete_pomodoro(self, pomodoro_id, duration_minutes):
        self._close(repository.complete_pomodoro, "complete", pomodoro_id, duration_minutes)

    def cancel_pomodoro(self, pomodoro_id, duration_minutes):
        self._close(repository.cancel_pomodoro, "cancel", pomodoro_id, duration_minutes)

    def get_pomodoro_history(self, limit=50):
        try:
            rows = repository.get_pomodoro_history(limit=limit)
        except SQLAlchemyError as e:
            logger.warning("get_pomodoro_history failed: %s", e)
            raise BackendError(f"Failed to load pomodoro history: {e}") from e
        return [self._to_record(p, name) for p, name in rows]

    def _close(self, close_fn, action: str, pomodoro_id: int, duration_minutes: int):
        try:
            ok = close_fn(pomodoro_id, duration_minutes)
        except SQLAlchemyError as e:
            logger.warning("%s_pomodoro(%s) failed: %s", action, pomodoro_id, e)
            raise BackendError(f"Failed to {action} pomodoro: {e}") from e
        if not ok:
            raise BackendError(f"Failed to {action} pomodoro: session {pomodoro_id} not found")

    @staticmethod
    def _to_record(p, subject_name) -> PomodoroRecord:
        return PomodoroRecord(
            id=p.id,
            subject_id=p.subject_id,
            subject_name=subject_name,
            task_id=p.task_id,
            start_time=_as_utc(p.start_time),
            end_time=_as_utc(p.end_time),
            duration_minutes=int(p.duration_minutes or 0),
            status=normalize_status(p.status),
        )
