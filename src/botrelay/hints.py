"""Idle-time reminder for text-message channels."""

from __future__ import annotations

from loguru import logger

from botrelay.config import Settings
from botrelay.turn import TurnRequest

SMS_CHANNEL_TYPE = "Twilio-SMS"
MS_PER_HOUR = 3_600_000


class HintInjector:
    def __init__(self, settings: Settings) -> None:
        self._settings = settings

    def compute_hint(self, request: TurnRequest) -> str:
        """Return the reminder text when the user has been idle long enough, else ``""``."""

        if request.channel_type != SMS_CHANNEL_TYPE:
            return ""
        if not self._settings.sms_hint_reminder_enable:
            return ""
        if request.time_since_last_interaction_ms is None:
            return ""
        hours = request.time_since_last_interaction_ms / MS_PER_HOUR
        if hours < self._settings.sms_hint_reminder_interval_hrs:
            return ""
        hint = self._settings.sms_hint_reminder
        logger.info("hints.appended idle_hours={:.1f} hint={!r}", hours, hint)
        return hint
