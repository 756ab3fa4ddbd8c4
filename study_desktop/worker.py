import itertools
import logging
from typing import Callable, Dict, Optional, Tuple

from PySide6.QtCore import QObject, QRunnable, QThreadPool, Signal, Slot

logger = logging.getLogger(__name__)


class _Call(QRunnable):
    def __init__(self, runner: "CallRunner", call_id: int, fn: Callable, args, kwargs):
        super().__init__()
        self._runner = runner
        self._call_id = call_id
        self._fn = fn
        self._args = args
        self._kwargs = kwargs

    def run(self):
        try:
            result = self._fn(*self._args, **self._kwargs)
        except Exception as e:
            self._runner._failed.emit(self._call_id, e)
        else:
            self._runner._succeeded.emit(self._call_id, result)


class CallRunner(QObject):
    """Run blocking backend calls off the UI thread.

    Callbacks are invoked on the thread that owns the runner (the UI
    thread): the worker emits the runner's own signals, which Qt queues
    across threads.
    """

    _succeeded = Signal(int, object)
    _failed = Signal(int, object)

    def __init__(self, pool: Optional[QThreadPool] = None, parent=None):
        super().__init__(parent)
        self._pool = pool or QThreadPool.globalInstance()
        self._ids = itertools.count(1)
        self._pending: Dict[int, Tuple[Optional[Callable], Optional[Callable]]] = {}
        self._succeeded.connect(self._on_succeeded)
        self._failed.connect(self._on_failed)

    def submit(self, fn: Callable, *args, on_success: Callable = None, on_error: Callable = None, **kwargs) -> int:
        call_id = next(self._ids)
        self._pending[call_id] = (on_success, on_error)
        self._pool.start(_Call(self, call_id, fn, args, kwargs))
        return call_id

    def pending(self) -> int:
        return len(self._pending)

    def wait(self, msecs: int = -1) -> bool:
        """Block until queued calls have finished running (used at shutdown)."""
        return self._pool.waitForDone(msecs)

    @Slot(int, object)
    def _on_succeeded(self, call_id: int, result):
        on_success, _ = self._pending.pop(call_id, (None, None))
        if on_success is not None:
            on_success(result)

    @Slot(int, object)
    def _on_failed(self, call_id: int, error):
        _, on_error = self._pending.pop(call_id, (None, None))
        if on_error is not None:
            on_error(error)
        else:
            logger.warning("background call %s failed: %s", call_id, error)
