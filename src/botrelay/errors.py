"""Application-level exception types for botrelay."""

from __future__ import annotations


class RelayError(Exception):
    """Base exception for botrelay."""


class ConfigurationError(RelayError):
    """Raised when deployment settings fail validation."""


class SerializationError(RelayError):
    """Raised when a session attribute cannot be converted to text."""

    def __init__(self, key: str, value: object) -> None:
        super().__init__(f"session attribute {key!r} is not serializable ({type(value).__name__})")
        self.key = key


class DelegateUnavailable(RelayError):
    """Raised when a delegate bot cannot be reached or replies with garbage."""


class TranslationUnavailable(RelayError):
    """Raised by translators; recovered by the translation boundary."""


class HookFailure(RelayError):
    """Raised when a hook with no safe fallback fails."""

    def __init__(self, hook_name: str, message: str) -> None:
        super().__init__(f"{hook_name}: {message}")
        self.hook_name = hook_name


class HookUnavailable(HookFailure):
    """Raised when a hook did not answer before its timeout."""
