import sys
import logging
from PySide6.QtWidgets import QApplication
from PySide6.QtGui import QFontDatabase
from PySide6.QtCore import QtMsgType, qInstallMessageHandler

from .config import AppConfig, load_config

logger = logging.getLogger("study_desktop")

_QT_LEVELS = {
    QtMsgType.QtDebugMsg: logging.DEBUG,
    QtMsgType.QtInfoMsg: logging.INFO,
    QtMsgType.QtWarningMsg: logging.WARNING,
    QtMsgType.QtCriticalMsg: logging.ERROR,
    QtMsgType.QtFatalMsg: logging.CRITICAL,
}


# Route Qt's own messages into logging, dropping known harmless startup noise
# (for example "Can't find filter element").
def _qt_msg_handler(mode, context, message):
    if "Can't find filter element" in message:
        return
    logging.getLogger("qt").log(_QT_LEVELS.get(mode, logging.WARNING), message)


qInstallMessageHandler(_qt_msg_handler)
from . import models, repository  # noqa: E402
from .backend import LocalBackend  # noqa: E402
from .recorder import SessionRecorder  # noqa: E402
from .worker import CallRunner  # noqa: E402
from .ui.audio import AudioController  # noqa: E402
from .ui.keyboard import KeyboardController  # noqa: E402
from .ui.main_window import MainWindow  # noqa: E402
from .ui.pomodoro import PomodoroController  # noqa: E402


def build_controller(config: AppConfig, parent=None) -> PomodoroController:
    """Wire the timer to the local backend, the call runner and the audio player."""
    runner = CallRunner(parent=parent)
    recorder = SessionRecorder(LocalBackend(), runner, history_limit=config.history_limit, parent=parent)
    audio = AudioController(parent=parent)
    return PomodoroController(
        recorder=recorder,
        audio=audio,
        work_minutes=config.work_minutes,
        break_minutes=config.break_minutes,
        parent=parent,
    )


def main():
    config = load_config()
    logging.basicConfig(
        level=getattr(logging, config.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    models.init_db(config.db_path)
    logger.info("using database %s", config.db_path)

    app = QApplication(sys.argv)

    # 使用系统默认的无衬线/通用界面字体（Qt 会返回平台推荐的 UI 字体）
    sys_font = QFontDatabase.systemFont(QFontDatabase.GeneralFont)
    app.setFont(sys_font)

    controller = build_controller(config, parent=app)
    w = MainWindow(controller, subjects=repository.list_subjects(), lang=config.lang)
    keyboard = KeyboardController(controller, parent=w)
    keyboard.install(app)
    w.show()
    code = app.exec()
    keyboard.uninstall()
    controller.recorder.runner.wait(3000)
    sys.exit(code)


if __name__ == "__main__":
    main()
