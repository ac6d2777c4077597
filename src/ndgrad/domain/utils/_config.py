"""
Thread-local engine configuration.

`Config` holds the switches that change how operations behave at runtime.
Currently the only switch is `enable_backprop`: when False, differentiable
operations still compute their forward result but record no graph (no
creator links, no saved inputs), which is what inference code wants.

The state is thread-local so that independent graphs may be built on
separate threads without interfering with each other.

Typical usage
-------------
    with no_grad():
        y = model(x)          # no graph is recorded

    with using_config("enable_backprop", False):
        ...

Environment
-----------
``NDGRAD_ENABLE_BACKPROP`` sets the initial value for every thread
("0", "false", "no", "off" disable graph construction).
"""

from __future__ import annotations

import contextlib
import os
import threading
from typing import Any, Iterator

_FALSY = {"0", "false", "no", "off"}


def _default_enable_backprop() -> bool:
    raw = os.environ.get("NDGRAD_ENABLE_BACKPROP")
    if raw is None:
        return True
    return raw.strip().lower() not in _FALSY


class _ConfigState(threading.local):
    """
    Per-thread configuration values.

    `threading.local` re-runs `__init__` the first time each thread touches
    the object, so every thread starts from the process defaults.
    """

    def __init__(self) -> None:
        self.enable_backprop: bool = _default_enable_backprop()


class _ConfigMeta(type):
    """Route class-level attribute access on `Config` to the thread state."""

    def __getattr__(cls, name: str) -> Any:
        state = type.__getattribute__(cls, "_state")
        try:
            return getattr(state, name)
        except AttributeError:
            raise AttributeError(f"Config has no option {name!r}") from None

    def __setattr__(cls, name: str, value: Any) -> None:
        if name.startswith("_"):
            type.__setattr__(cls, name, value)
            return
        state = type.__getattribute__(cls, "_state")
        if not hasattr(state, name):
            raise AttributeError(f"Config has no option {name!r}")
        setattr(state, name, value)


class Config(metaclass=_ConfigMeta):
    """
    Engine switches, read and written as class attributes.

    Attributes
    ----------
    enable_backprop : bool
        Record the computation graph during forward execution.
        Defaults to True (see module docstring for the environment override).
    """

    _state = _ConfigState()

    @classmethod
    def options(cls) -> dict[str, Any]:
        """Return a snapshot of the current thread's configuration."""
        return dict(vars(cls._state))


@contextlib.contextmanager
def using_config(name: str, value: Any) -> Iterator[None]:
    """
    Temporarily set a `Config` option for the current thread.

    Parameters
    ----------
    name : str
        Option name (e.g. ``"enable_backprop"``).
    value : Any
        Value to use inside the ``with`` block.

    Raises
    ------
    AttributeError
        If `name` is not a known option.
    """
    old = getattr(Config, name)
    setattr(Config, name, value)
    try:
        yield
    finally:
        setattr(Config, name, old)


def no_grad() -> contextlib.AbstractContextManager:
    """Disable graph construction inside a ``with`` block."""
    return using_config("enable_backprop", False)
