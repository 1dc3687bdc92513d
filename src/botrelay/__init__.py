"""botrelay - post-process bot turns and route conversations to delegate bots."""

from botrelay.config import Settings
from botrelay.framework import RelayFramework, TurnResult
from botrelay.turn import TurnRequest, TurnResponse

__version__ = "0.1.0"

__all__ = ["RelayFramework", "Settings", "TurnRequest", "TurnResponse", "TurnResult"]
