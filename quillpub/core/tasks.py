from __future__ import annotations
import threading
from typing import Any, Callable

from quillpub.qt import QtCore
from quillpub.core.logging import get_logger


class Task(QtCore.QObject):
    """
    One piece of background work that reports exactly once.

    ``finished(token, result)`` or ``failed(token, message)`` is emitted from the
    worker thread; receivers living on the UI thread get it queued, so handlers
    always run on the UI thread. The token lets receivers drop completions from
    work they have since superseded.
    """
    finished = QtCore.Signal(int, object)
    failed = QtCore.Signal(int, str)

    def __init__(self, token: int, fn: Callable[..., Any], *args: Any, name: str = "QuillPubTask") -> None:
        super().__init__()
        self.token = token
        self._fn = fn
        self._args = args
        self._name = name
        self._log = get_logger(__name__)

    def start(self, threaded: bool = True) -> None:
        if threaded:
            threading.Thread(target=self.run, daemon=True, name=self._name).start()
        else:
            self.run()

    def run(self) -> None:
        try:
            result = self._fn(*self._args)
        except Exception as ex:
            # Collaborator boundary: everything becomes one failure event
            self._log.exception("%s #%d failed", self._name, self.token)
            self.failed.emit(self.token, str(ex) or type(ex).__name__)
            return
        self.finished.emit(self.token, result)
