"""Runtime logging helpers."""

from __future__ import annotations

import sys
from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Literal

import loguru
from loguru import logger

LogProfile = Literal["default", "json"]

_PROFILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level:<6} | {name}:{function}:{line} | {extra[turn]} | {message}"
_CONFIGURED_PROFILE: LogProfile | None = None
_current_turn: ContextVar[str] = ContextVar("botrelay_turn", default="-")


def current_turn() -> str:
    return _current_turn.get()


@contextmanager
def turn_context(turn_id: str) -> Iterator[None]:
    """Tag every log record emitted inside the block with ``turn_id``."""

    token = _current_turn.set(turn_id)
    try:
        yield
    finally:
        _current_turn.reset(token)


def configure_logging(*, profile: LogProfile = "default", level: str = "INFO") -> None:
    """Configure process-level logging once."""

    def inject_context(record: loguru.Record) -> None:
        record["extra"]["turn"] = current_turn()

    global _CONFIGURED_PROFILE
    if profile == _CONFIGURED_PROFILE:
        return

    logger.remove()
    if profile == "json":
        logger.add(sys.stderr, level=level.upper(), serialize=True, backtrace=False, diagnose=False)
    else:
        logger.add(sys.stderr, level=level.upper(), format=_PROFILE_FORMAT, backtrace=False, diagnose=False)
    logger.configure(patcher=inject_context)
    _CONFIGURED_PROFILE = profile
