"""Automatic ``app_opened`` / ``app_closed`` tracking.

The client only exposes two callbacks. ``ProcessLifecycle`` maps them onto a
Python process: foreground on install, background at interpreter exit.
"""

from __future__ import annotations

import atexit
from typing import Callable, Optional, Protocol


class LifecycleObserver(Protocol):
    def on_foreground_first_activation(self) -> None: ...

    def on_background_all_inactive(self) -> None: ...


class ProcessLifecycle:
    def __init__(self, observer: LifecycleObserver, *, on_exit: Optional[Callable[[], None]] = None):
        self._observer = observer
        self._on_exit = on_exit
        self._installed = False

    @property
    def installed(self) -> bool:
        return self._installed

    def install(self) -> None:
        if self._installed:
            return
        self._installed = True
        atexit.register(self._handle_exit)
        self._observer.on_foreground_first_activation()

    def uninstall(self) -> None:
        if not self._installed:
            return
        self._installed = False
        atexit.unregister(self._handle_exit)

    def _handle_exit(self) -> None:
        self._installed = False
        try:
            self._observer.on_background_all_inactive()
        finally:
            if self._on_exit is not None:
                self._on_exit()
