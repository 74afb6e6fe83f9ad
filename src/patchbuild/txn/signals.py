from __future__ import annotations

import signal
import threading
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional

from patchbuild.errors import Interrupted


def _termination_signals() -> List[int]:
    names = ("SIGINT", "SIGTERM", "SIGHUP")
    return [getattr(signal, name) for name in names if hasattr(signal, name)]


class SignalGuard:
    """Catches termination signals while active.

    A signal only raises ``Interrupted`` inside ``armed()``, and only the
    first one does. Anything else is kept in ``pending`` so code outside
    the armed block, such as a restore, cannot be cut short. Handlers can
    only be installed from the main thread; elsewhere the guard is inert.
    """

    def __init__(self) -> None:
        self.pending: Optional[int] = None
        self._armed = False
        self._raised = False
        self._previous: Dict[int, Any] = {}

    def _handle(self, signum: int, _frame) -> None:
        if not self._armed or self._raised:
            if self.pending is None:
                self.pending = signum
            return
        self._raised = True
        raise Interrupted(signum)

    @contextmanager
    def armed(self) -> Iterator["SignalGuard"]:
        if self.pending is not None and not self._raised:
            self._raised = True
            signum, self.pending = self.pending, None
            raise Interrupted(signum)
        self._armed = True
        try:
            yield self
        finally:
            self._armed = False

    def __enter__(self) -> "SignalGuard":
        if threading.current_thread() is not threading.main_thread():
            return self
        for signum in _termination_signals():
            self._previous[signum] = signal.signal(signum, self._handle)
        return self

    def __exit__(self, *_exc) -> None:
        for signum, handler in self._previous.items():
            signal.signal(signum, handler if handler is not None else signal.SIG_DFL)
        self._previous.clear()
