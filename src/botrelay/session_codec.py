"""Session-attribute normalization and stale answer-context invalidation."""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from loguru import logger

from botrelay.errors import SerializationError
from botrelay.turn import SessionAttributes


def encode_value(key: str, value: Any) -> str:
    """Serialize one attribute value to its stable text form."""

    if isinstance(value, str):
        return value
    try:
        return json.dumps(value, separators=(",", ":"), ensure_ascii=False, allow_nan=False)
    except (TypeError, ValueError) as exc:
        raise SerializationError(key, value) from exc


def normalize(session: Mapping[str, Any]) -> dict[str, str]:
    """Return a copy of ``session`` where every value is text.

    Text values pass through untouched, so normalizing twice is a no-op.
    """

    return {key: encode_value(key, value) for key, value in session.items()}


def invalidate_stale_answer_context(
    session: SessionAttributes,
    current_result_id: str | None,
    *,
    prior_result_id: str | None = None,
) -> bool:
    """Drop the secondary answer-source context when it no longer backs the current result.

    Returns True when the context was removed.
    """

    context = session.answer_context()
    if context is None:
        return False
    responsible = context.responsible_result_id
    stale = current_result_id is None or (responsible is not None and current_result_id != responsible)
    if not stale:
        return False
    session.clear_answer_context()
    logger.debug(
        "session.answer_context_cleared responsible={} current={} prior={}",
        responsible,
        current_result_id,
        prior_result_id,
    )
    return True
