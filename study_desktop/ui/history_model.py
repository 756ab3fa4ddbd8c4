from typing import List, Optional
from PySide6.QtCore import QAbstractTableModel, Qt, QModelIndex
from PySide6.QtGui import QColor

from ..backend import PomodoroRecord

_STATUS_COLORS = {
    "completed": "#34d399",
    "cancelled": "#94a3b8",
    "pending": "#fbbf24",
}


class HistoryTableModel(QAbstractTableModel):
    """Recent pomodoro sessions: status, minutes, subject, start time."""

    # default language is Chinese; the window may call set_language to change
    HEADERS = ["状态", "时长", "科目", "开始时间"]

    _LOCALE = {
        "zh": {
            "HEADERS": ["状态", "时长", "科目", "开始时间"],
            "MINUTES": "{n}分钟",
            "STATUS": {"completed": "✓ 完成", "cancelled": "✗ 取消", "pending": "⏳ 进行中"},
        },
        "en": {
            "HEADERS": ["Status", "Length", "Subject", "Started"],
            "MINUTES": "{n} min",
            "STATUS": {"completed": "✓ Done", "cancelled": "✗ Cancelled", "pending": "⏳ Pending"},
        },
    }

    def __init__(self, rows: Optional[List[PomodoroRecord]] = None, parent=None):
        super().__init__(parent)
        self._rows = rows or []
        self._lang = "zh"

    def rowCount(self, parent=QModelIndex()):
        return len(self._rows)

    def columnCount(self, parent=QModelIndex()):
        return len(self.HEADERS)

    def data(self, index: QModelIndex, role: int = Qt.DisplayRole):
        if not index.isValid():
            return None
        c = index.column()
        row = self._rows[index.row()]
        loc = self._LOCALE[self._lang]
        if role == Qt.DisplayRole:
            if c == 0:
                return loc["STATUS"].get(row.status, row.status)
            if c == 1:
                return loc["MINUTES"].format(n=row.duration_minutes)
            if c == 2:
                return row.subject_name or ""
            if c == 3:
                st = row.start_time
                return st.astimezone().strftime('%m-%d %H:%M') if st else ""
        if role == Qt.TextAlignmentRole and c in (0, 1, 3):
            return Qt.AlignCenter
        if role == Qt.ForegroundRole and c == 0:
            color = _STATUS_COLORS.get(row.status)
            return QColor(color) if color else None
        return None

    def headerData(self, section: int, orientation: int, role: int = Qt.DisplayRole):
        if orientation == Qt.Horizontal and role == Qt.DisplayRole:
            if 0 <= section < len(self.HEADERS):
                return self.HEADERS[section]
        return None

    def set_language(self, lang: str):
        if lang not in self._LOCALE:
            return
        self._lang = lang
        self.HEADERS = self._LOCALE[lang]["HEADERS"]
        self.headerDataChanged.emit(Qt.Horizontal, 0, len(self.HEADERS) - 1)

    def set_rows(self, rows: List[PomodoroRecord]):
        self.beginResetModel()
        self._rows = list(rows)
        self.endResetModel()
