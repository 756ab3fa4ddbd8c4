from datetime import datetime, timezone
from typing import List, Optional, Tuple
from sqlalchemy.orm import Session
from .models import (
    PomodoroSession,
    Subject,
    SessionLocal,
    STATUS_CANCELLED,
    STATUS_COMPLETED,
    STATUS_RUNNING,
)


def get_session() -> Session:
    return SessionLocal()


def add_subject(name: str, color: Optional[str] = None) -> int:
    s = get_session()
    try:
        subj = Subject(name=name, color=color, created_at=datetime.now(timezone.utc))
        s.add(subj)
        s.commit()
        s.refresh(subj)
        return subj.id
    finally:
        s.close()


def list_subjects() -> List[Subject]:
    s = get_session()
    try:
        return s.query(Subject).order_by(Subject.name.asc()).all()
    finally:
        s.close()


def start_pomodoro(subject_id: Optional[int] = None, task_id: Optional[int] = None, duration_minutes: Optional[int] = None) -> int:
    s = get_session()
    try:
        p = PomodoroSession(
            subject_id=subject_id,
            task_id=task_id,
            start_time=datetime.now(timezone.utc),
            duration_minutes=int(duration_minutes or 0),
            status=STATUS_RUNNING,
        )
        s.add(p)
        s.commit()
        s.refresh(p)
        return p.id
    finally:
        s.close()


def _close_pomodoro(pomodoro_id: int, duration_minutes: int, status: str) -> bool:
    s = get_session()
    try:
        p = s.query(PomodoroSession).filter(PomodoroSession.id == pomodoro_id).first()
        if not p:
            return False
        p.status = status
        p.duration_minutes = int(duration_minutes)
        p.end_time = datetime.now(timezone.utc)
        s.commit()
        return True
    finally:
        s.close()


def complete_pomodoro(pomodoro_id: int, duration_minutes: int) -> bool:
    return _close_pomodoro(pomodoro_id, duration_minutes, STATUS_COMPLETED)


def cancel_pomodoro(pomodoro_id: int, duration_minutes: int) -> bool:
    return _close_pomodoro(pomodoro_id, duration_minutes, STATUS_CANCELLED)


def get_pomodoro(pomodoro_id: int) -> Optional[Tuple[PomodoroSession, Optional[str]]]:
    """Return the session row and its subject name, or None."""
    s = get_session()
    try:
        row = (
            s.query(PomodoroSession, Subject.name)
            .outerjoin(Subject, Subject.id == PomodoroSession.subject_id)
            .filter(PomodoroSession.id == pomodoro_id)
            .first()
        )
        if row is None:
            return None
        return row[0], row[1]
    finally:
        s.close()


def get_pomodoro_history(limit: int = 50) -> List[Tuple[PomodoroSession, Optional[str]]]:
    """Most recent sessions first, each paired with its subject name."""
    s = get_session()
    try:
        rows = (
            s.query(PomodoroSession, Subject.name)
            .outerjoin(Subject, Subject.id == PomodoroSession.subject_id)
            .order_by(PomodoroSession.start_time.desc(), PomodoroSession.id.desc())
            .limit(int(limit))
            .all()
        )
        return [(p, name) for p, name in rows]
    finally:
        s.close()
