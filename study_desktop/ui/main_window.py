import logging

from PySide6.QtWidgets import (
    QMainWindow, QWidget, QVBoxLayout, QHBoxLayout, QGridLayout, QTableView, QPushButton, QLabel,
    QHeaderView, QAbstractItemView, QComboBox, QLineEdit, QSlider, QFrame, QSizePolicy
)
from PySide6.QtCore import Qt, QRectF
from PySide6.QtGui import QColor, QFont, QPainter, QPen

from ..config import BREAK_PRESETS, WORK_PRESETS
from .audio import NONE_SOUND, SOUNDS, SOUNDS_BY_ID, PlaybackStatus
from .history_model import HistoryTableModel
from .pomodoro import TimerMode, TimerState

logger = logging.getLogger(__name__)

# Simple translation mapping for UI strings
_TRANSLATIONS = {
    "zh": {
        "title": "🍅 番茄钟",
        "subtitle": "专注学习，高效时间管理",
        "shortcuts": "空格 开始/暂停    Esc 取消",
        "today_count": "今日番茄",
        "today_minutes": "专注分钟",
        "work_len": "工作时长",
        "break_len": "休息时长",
        "work_btn": "🍅 工作 {n}分钟",
        "break_btn": "☕ 休息 {n}分钟",
        "work_label": "🎯 专注工作",
        "break_label": "☕ 休息一下",
        "running": "● 进行中",
        "subject": "选择科目（可选）",
        "no_subject": "不选择科目",
        "sound_btn": "白噪音",
        "volume": "🔊",
        "preview": "▶ 试听",
        "stop": "⏹ 停止",
        "loading": "加载音效中...",
        "playing": "正在播放: {name}",
        "sound_hint": "💡 开始计时后自动播放选中的音效",
        "start": "▶ 开始",
        "pause": "⏸ 暂停",
        "resume": "▶ 继续",
        "cancel": "✕ 取消",
        "settings": "⏱️ 时间设置",
        "custom": "自定义",
        "set": "设置",
        "history": "📋 最近记录",
    },
    "en": {
        "title": "🍅 Pomodoro",
        "subtitle": "Focus on study, manage time well",
        "shortcuts": "Space start/pause    Esc cancel",
        "today_count": "Today",
        "today_minutes": "Focus minutes",
        "work_len": "Work",
        "break_len": "Break",
        "work_btn": "🍅 Work {n} min",
        "break_btn": "☕ Break {n} min",
        "work_label": "🎯 Focus",
        "break_label": "☕ Take a break",
        "running": "● Running",
        "subject": "Subject (optional)",
        "no_subject": "No subject",
        "sound_btn": "Ambient sound",
        "volume": "🔊",
        "preview": "▶ Preview",
        "stop": "⏹ Stop",
        "loading": "Loading sound...",
        "playing": "Playing: {name}",
        "sound_hint": "💡 The selected sound plays when the timer starts",
        "start": "▶ Start",
        "pause": "⏸ Pause",
        "resume": "▶ Resume",
        "cancel": "✕ Cancel",
        "settings": "⏱️ Durations",
        "custom": "Custom",
        "set": "Set",
        "history": "📋 Recent sessions",
    },
}

_WORK_COLOR = "#f43f5e"
_BREAK_COLOR = "#10b981"


def format_time(seconds: int) -> str:
    seconds = max(0, int(seconds))
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


class ProgressRing(QWidget):
    """Circular countdown: elapsed arc plus the digital time in the middle."""

    def __init__(self, parent=None):
        super().__init__(parent)
        self._remaining = 0
        self._total = 1
        self._color = QColor(_WORK_COLOR)
        self._caption = ""
        self.setMinimumSize(200, 200)
        self.setSizePolicy(QSizePolicy.Expanding, QSizePolicy.Expanding)

    def set_values(self, remaining: int, total: int, color: str, caption: str):
        self._remaining = int(remaining)
        self._total = max(1, int(total))
        self._color = QColor(color)
        self._caption = caption
        self.update()

    def paintEvent(self, event):
        side = min(self.width(), self.height()) - 16
        rect = QRectF((self.width() - side) / 2, (self.height() - side) / 2, side, side)
        progress = (self._total - self._remaining) / self._total
        p = QPainter(self)
        p.setRenderHint(QPainter.Antialiasing)
        pen = QPen(QColor("#334155"), 10)
        p.setPen(pen)
        p.drawEllipse(rect)
        pen.setColor(self._color)
        pen.setCapStyle(Qt.RoundCap)
        p.setPen(pen)
        # start at 12 o'clock, clockwise; Qt angles are 1/16th of a degree
        p.drawArc(rect, 90 * 16, int(-progress * 360 * 16))
        f = QFont(self.font())
        f.setPointSize(max(12, int(side / 7)))
        f.setBold(True)
        p.setFont(f)
        p.drawText(rect, Qt.AlignCenter, format_time(self._remaining))
        f.setPointSize(max(8, int(side / 20)))
        f.setBold(False)
        p.setFont(f)
        p.setPen(QColor("#64748b"))
        caption_rect = QRectF(rect.x(), rect.center().y() + side / 8, rect.width(), side / 6)
        p.drawText(caption_rect, Qt.AlignHCenter | Qt.AlignTop, self._caption)
        p.end()


class MainWindow(QMainWindow):
    def __init__(self, controller, subjects=(), lang: str = "zh"):
        super().__init__()
        self.controller = controller
        self.lang = lang if lang in _TRANSLATIONS else "zh"
        self.setWindowTitle(self._tr("title"))
        self.resize(900, 620)

        central = QWidget()
        self.setCentralWidget(central)
        layout = QVBoxLayout(central)

        # header
        header = QHBoxLayout()
        title_box = QVBoxLayout()
        title_lbl = QLabel(self._tr("title"))
        tf = QFont(title_lbl.font())
        tf.setPointSize(max(12, tf.pointSize() + 4))
        tf.setBold(True)
        title_lbl.setFont(tf)
        title_box.addWidget(title_lbl)
        title_box.addWidget(QLabel(self._tr("subtitle")))
        header.addLayout(title_box)
        header.addStretch()
        header.addWidget(QLabel(self._tr("shortcuts")))
        layout.addLayout(header)

        # dismissible advisory banner
        self.error_bar = QFrame()
        self.error_bar.setStyleSheet("QFrame{background:rgba(244,63,94,0.15); border-radius:6px;} QLabel{color:#e11d48;}")
        eb_layout = QHBoxLayout(self.error_bar)
        self.error_lbl = QLabel("")
        self.error_lbl.setWordWrap(True)
        eb_layout.addWidget(self.error_lbl, 1)
        close_btn = QPushButton("✕")
        close_btn.setFlat(True)
        close_btn.setFixedWidth(28)
        close_btn.clicked.connect(self.dismiss_error)
        eb_layout.addWidget(close_btn)
        self.error_bar.setVisible(False)
        layout.addWidget(self.error_bar)

        # today statistics
        stats = QHBoxLayout()
        self.today_count_lbl = self._stat_box(stats, "0", self._tr("today_count"))
        self.today_minutes_lbl = self._stat_box(stats, "0", self._tr("today_minutes"))
        self.work_len_lbl = self._stat_box(stats, str(controller.work_minutes), self._tr("work_len"))
        self.break_len_lbl = self._stat_box(stats, str(controller.break_minutes), self._tr("break_len"))
        layout.addLayout(stats)

        content = QHBoxLayout()
        content.addWidget(self._build_timer_panel(subjects), 1)
        content.addWidget(self._build_side_panel(), 1)
        layout.addLayout(content, 1)

        controller.tick.connect(lambda _rem: self._refresh_ring())
        controller.state_changed.connect(lambda _s: self._refresh_controls())
        controller.mode_changed.connect(lambda _m: self._refresh_controls())
        controller.opening_changed.connect(lambda _o: self._refresh_controls())
        controller.notice.connect(self.show_error)
        if controller.audio is not None:
            controller.audio.changed.connect(self._refresh_sound_panel)
        if controller.recorder is not None:
            controller.recorder.history_loaded.connect(self.history_model.set_rows)
            controller.recorder.today_changed.connect(self._on_today_changed)

        self._refresh_controls()
        self._refresh_sound_panel(controller.sound_session())
        controller.refresh_history()

    def _tr(self, key: str) -> str:
        return _TRANSLATIONS.get(self.lang, _TRANSLATIONS["zh"]).get(key, key)

    def _stat_box(self, row: QHBoxLayout, value: str, caption: str) -> QLabel:
        box = QFrame()
        box.setFrameShape(QFrame.StyledPanel)
        v = QVBoxLayout(box)
        value_lbl = QLabel(value)
        f = QFont(value_lbl.font())
        f.setPointSize(max(12, f.pointSize() + 6))
        f.setBold(True)
        value_lbl.setFont(f)
        v.addWidget(value_lbl)
        v.addWidget(QLabel(caption))
        row.addWidget(box)
        return value_lbl

    # -- panels ----------------------------------------------------------

    def _build_timer_panel(self, subjects) -> QWidget:
        panel = QFrame()
        panel.setFrameShape(QFrame.StyledPanel)
        v = QVBoxLayout(panel)

        mode_row = QHBoxLayout()
        self.work_mode_btn = QPushButton()
        self.work_mode_btn.setCheckable(True)
        self.work_mode_btn.clicked.connect(lambda: self._select_mode(TimerMode.WORK))
        self.break_mode_btn = QPushButton()
        self.break_mode_btn.setCheckable(True)
        self.break_mode_btn.clicked.connect(lambda: self._select_mode(TimerMode.BREAK))
        mode_row.addWidget(self.work_mode_btn)
        mode_row.addWidget(self.break_mode_btn)
        v.addLayout(mode_row)

        self.ring = ProgressRing()
        v.addWidget(self.ring, 1)
        self.running_lbl = QLabel(self._tr("running"))
        self.running_lbl.setAlignment(Qt.AlignCenter)
        v.addWidget(self.running_lbl)

        self.subject_box = QWidget()
        sb = QVBoxLayout(self.subject_box)
        sb.setContentsMargins(0, 0, 0, 0)
        sb.addWidget(QLabel(self._tr("subject")))
        self.subject_combo = QComboBox()
        self.subject_combo.addItem(self._tr("no_subject"), None)
        for subj in subjects:
            self.subject_combo.addItem(subj.name, subj.id)
        self.subject_combo.currentIndexChanged.connect(
            lambda _i: self.controller.set_subject(self.subject_combo.currentData()))
        sb.addWidget(self.subject_combo)
        v.addWidget(self.subject_box)

        self.sound_toggle_btn = QPushButton()
        self.sound_toggle_btn.clicked.connect(lambda: self.sound_panel.setVisible(not self.sound_panel.isVisible()))
        v.addWidget(self.sound_toggle_btn, alignment=Qt.AlignHCenter)
        v.addWidget(self._build_sound_panel())

        self._btn_container = QWidget()
        btn_layout = QHBoxLayout(self._btn_container)
        btn_layout.setContentsMargins(0, 0, 0, 0)
        self.start_btn = QPushButton(self._tr("start"))
        self.start_btn.clicked.connect(self.controller.start)
        self.pause_btn = QPushButton(self._tr("pause"))
        self.pause_btn.clicked.connect(self.controller.pause)
        self.resume_btn = QPushButton(self._tr("resume"))
        self.resume_btn.clicked.connect(self.controller.resume)
        self.cancel_btn = QPushButton(self._tr("cancel"))
        self.cancel_btn.clicked.connect(self.controller.cancel)
        for b in (self.start_btn, self.pause_btn, self.resume_btn, self.cancel_btn):
            b.setFixedWidth(100)
            btn_layout.addWidget(b)
        v.addWidget(self._btn_container, alignment=Qt.AlignHCenter)
        return panel

    def _build_sound_panel(self) -> QWidget:
        self.sound_panel = QFrame()
        self.sound_panel.setFrameShape(QFrame.StyledPanel)
        v = QVBoxLayout(self.sound_panel)
        grid = QGridLayout()
        self.sound_buttons = {}
        for i, sound in enumerate(SOUNDS):
            btn = QPushButton(f"{sound.icon}\n{sound.label(self.lang)}")
            btn.setCheckable(True)
            btn.clicked.connect(lambda _checked=False, sid=sound.id: self._on_sound_clicked(sid))
            grid.addWidget(btn, i // 4, i % 4)
            self.sound_buttons[sound.id] = btn
        v.addLayout(grid)

        vol_row = QHBoxLayout()
        vol_row.addWidget(QLabel(self._tr("volume")))
        self.volume_slider = QSlider(Qt.Horizontal)
        self.volume_slider.setRange(0, 100)
        session = self.controller.sound_session()
        self.volume_slider.setValue(session.volume if session else 50)
        self.volume_slider.valueChanged.connect(self.controller.set_volume)
        vol_row.addWidget(self.volume_slider, 1)
        self.volume_lbl = QLabel("")
        self.volume_lbl.setFixedWidth(40)
        vol_row.addWidget(self.volume_lbl)
        v.addLayout(vol_row)

        self.sound_status_lbl = QLabel("")
        self.sound_status_lbl.setWordWrap(True)
        v.addWidget(self.sound_status_lbl)

        row = QHBoxLayout()
        self.preview_btn = QPushButton(self._tr("preview"))
        self.preview_btn.clicked.connect(self.controller.preview_sound)
        self.stop_sound_btn = QPushButton(self._tr("stop"))
        self.stop_sound_btn.clicked.connect(self.controller.stop_sound)
        row.addWidget(self.preview_btn)
        row.addWidget(self.stop_sound_btn)
        v.addLayout(row)
        v.addWidget(QLabel(self._tr("sound_hint")))
        self.sound_panel.setVisible(False)
        return self.sound_panel

    def _build_side_panel(self) -> QWidget:
        panel = QWidget()
        v = QVBoxLayout(panel)
        v.setContentsMargins(0, 0, 0, 0)

        settings = QFrame()
        settings.setFrameShape(QFrame.StyledPanel)
        sv = QVBoxLayout(settings)
        sv.addWidget(QLabel(self._tr("settings")))
        self.work_presets, self.work_custom, self.work_set_btn = self._duration_row(
            sv, self._tr("work_len"), WORK_PRESETS, self.controller.set_work_duration)
        self.break_presets, self.break_custom, self.break_set_btn = self._duration_row(
            sv, self._tr("break_len"), BREAK_PRESETS, self.controller.set_break_duration)
        v.addWidget(settings)

        v.addWidget(QLabel(self._tr("history")))
        self.history_model = HistoryTableModel()
        self.history_model.set_language(self.lang)
        self.history_table = QTableView()
        self.history_table.setModel(self.history_model)
        self.history_table.setEditTriggers(QAbstractItemView.NoEditTriggers)
        self.history_table.setSelectionMode(QAbstractItemView.NoSelection)
        self.history_table.verticalHeader().setVisible(False)
        self.history_table.horizontalHeader().setSectionResizeMode(QHeaderView.Stretch)
        v.addWidget(self.history_table, 1)
        return panel

    def _duration_row(self, parent_layout, caption, presets, setter):
        parent_layout.addWidget(QLabel(caption))
        preset_row = QHBoxLayout()
        buttons = {}
        for minutes in presets:
            b = QPushButton(str(minutes))
            b.setCheckable(True)
            b.clicked.connect(lambda _checked=False, m=minutes: self._apply_duration(setter, m))
            preset_row.addWidget(b)
            buttons[minutes] = b
        parent_layout.addLayout(preset_row)
        custom_row = QHBoxLayout()
        edit = QLineEdit()
        edit.setPlaceholderText(self._tr("custom"))
        set_btn = QPushButton(self._tr("set"))

        def _apply_custom():
            if self._apply_duration(setter, edit.text()):
                edit.clear()

        set_btn.clicked.connect(_apply_custom)
        edit.returnPressed.connect(_apply_custom)
        custom_row.addWidget(edit, 1)
        custom_row.addWidget(set_btn)
        parent_layout.addLayout(custom_row)
        return buttons, edit, set_btn

    # -- actions ---------------------------------------------------------

    def _apply_duration(self, setter, value) -> bool:
        ok = setter(value)
        self._refresh_controls()
        return ok

    def _select_mode(self, mode: TimerMode):
        self.controller.set_mode(mode)
        self._refresh_controls()

    def _on_sound_clicked(self, sound_id: str):
        self.controller.select_sound(sound_id)
        self._refresh_sound_panel(self.controller.sound_session())

    def show_error(self, message: str):
        self.error_lbl.setText(f"⚠️ {message}")
        self.error_bar.setVisible(True)

    def dismiss_error(self):
        self.error_lbl.setText("")
        self.error_bar.setVisible(False)

    def _on_today_changed(self, count: int, minutes: int):
        self.today_count_lbl.setText(str(count))
        self.today_minutes_lbl.setText(str(minutes))

    # -- rendering -------------------------------------------------------

    def _refresh_ring(self):
        snap = self.controller.snapshot()
        work = snap["mode"] == TimerMode.WORK.value
        self.ring.set_values(
            snap["remaining_seconds"],
            snap["total_seconds"],
            _WORK_COLOR if work else _BREAK_COLOR,
            self._tr("work_label") if work else self._tr("break_label"),
        )

    def _refresh_controls(self):
        c = self.controller
        state = c.state()
        idle = state is TimerState.IDLE
        editable = idle and not c.is_opening()
        work = c.mode() is TimerMode.WORK

        self.work_mode_btn.setText(self._tr("work_btn").format(n=c.work_minutes))
        self.break_mode_btn.setText(self._tr("break_btn").format(n=c.break_minutes))
        self.work_mode_btn.setChecked(work)
        self.break_mode_btn.setChecked(not work)
        self.work_mode_btn.setEnabled(editable)
        self.break_mode_btn.setEnabled(editable)
        self.work_len_lbl.setText(str(c.work_minutes))
        self.break_len_lbl.setText(str(c.break_minutes))

        for presets, current, custom, set_btn in (
            (self.work_presets, c.work_minutes, self.work_custom, self.work_set_btn),
            (self.break_presets, c.break_minutes, self.break_custom, self.break_set_btn),
        ):
            for minutes, b in presets.items():
                b.setChecked(minutes == current)
                b.setEnabled(editable)
            custom.setEnabled(editable)
            set_btn.setEnabled(editable)

        self.subject_box.setVisible(work and idle)
        self.running_lbl.setVisible(state is TimerState.RUNNING)
        self.start_btn.setVisible(idle)
        self.start_btn.setEnabled(not c.is_opening())
        self.pause_btn.setVisible(state is TimerState.RUNNING)
        self.resume_btn.setVisible(state is TimerState.PAUSED)
        self.cancel_btn.setVisible(not idle)
        self._refresh_ring()
        self._refresh_sound_panel(c.sound_session())

    def _refresh_sound_panel(self, session):
        if session is None:
            self.sound_toggle_btn.setVisible(False)
            return
        chosen = session.sound_id if session.sound_id != NONE_SOUND else self.controller.pending_sound()
        sound = SOUNDS_BY_ID.get(chosen, SOUNDS_BY_ID[NONE_SOUND])
        suffix = " ▸" if chosen != NONE_SOUND else ""
        self.sound_toggle_btn.setText(f"{sound.icon} {self._tr('sound_btn')}{suffix}")
        for sid, b in self.sound_buttons.items():
            b.setChecked(sid == chosen)
        self.volume_lbl.setText(f"{session.volume}%")
        loading = session.status is PlaybackStatus.LOADING
        playing = session.status is PlaybackStatus.PLAYING
        if session.status is PlaybackStatus.ERROR:
            self.sound_status_lbl.setText(f"⚠️ {session.error or ''}")
        elif loading:
            self.sound_status_lbl.setText(self._tr("loading"))
        elif playing:
            self.sound_status_lbl.setText(self._tr("playing").format(name=sound.label(self.lang)))
        else:
            self.sound_status_lbl.setText("")
        idle = self.controller.state() is TimerState.IDLE
        self.preview_btn.setEnabled(self.controller.pending_sound() != NONE_SOUND and not idle and not loading)
        self.stop_sound_btn.setEnabled(loading or playing)

    def closeEvent(self, event):
        self.controller.shutdown()
        super().closeEvent(event)
