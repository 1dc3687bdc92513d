"""Channel-family encoders."""

from botrelay.channels.alexa import AlexaEncoder
from botrelay.channels.lex import LexEncoder

__all__ = ["AlexaEncoder", "LexEncoder"]
