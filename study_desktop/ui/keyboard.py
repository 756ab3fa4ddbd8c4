from PySide6.QtCore import QEvent, QObject, Qt
from PySide6.QtWidgets import QAbstractSpinBox, QApplication, QLineEdit, QPlainTextEdit, QTextEdit

from .pomodoro import TimerState

# focus inside one of these means the user is typing
TEXT_ENTRY_WIDGETS = (QLineEdit, QTextEdit, QPlainTextEdit, QAbstractSpinBox)


def _key_code(key) -> int:
    return int(getattr(key, "value", key))


KEY_SPACE = _key_code(Qt.Key_Space)
KEY_ESCAPE = _key_code(Qt.Key_Escape)


class KeyboardController(QObject):
    """Application-wide shortcuts for the Pomodoro timer.

    Space starts, pauses or resumes; Escape cancels a running or paused
    timer. Both are ignored while a text entry widget has focus.
    """

    def __init__(self, controller, focus_widget=None, parent=None):
        super().__init__(parent)
        self.controller = controller
        self._focus_widget = focus_widget or QApplication.focusWidget
        self._target = None

    def install(self, target=None):
        self._target = target or QApplication.instance()
        self._target.installEventFilter(self)

    def uninstall(self):
        if self._target is not None:
            self._target.removeEventFilter(self)
            self._target = None

    def is_typing(self) -> bool:
        return isinstance(self._focus_widget(), TEXT_ENTRY_WIDGETS)

    def handle_key(self, key, auto_repeat: bool = False) -> bool:
        """Apply the shortcut for ``key``; True when the key press was consumed."""
        key = _key_code(key)
        if key not in (KEY_SPACE, KEY_ESCAPE) or self.is_typing():
            return False
        if key == KEY_SPACE:
            if not auto_repeat:
                self.controller.toggle()
            return True
        if self.controller.state() is TimerState.IDLE:
            return False
        if not auto_repeat:
            self.controller.cancel()
        return True

    def eventFilter(self, obj, event):
        if event.type() == QEvent.KeyPress:
            if self.handle_key(event.key(), event.isAutoRepeat()):
                event.accept()
                return True
        return super().eventFilter(obj, event)
