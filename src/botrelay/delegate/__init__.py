"""Delegate bot invocation."""

from botrelay.delegate.client import DelegateClient
from botrelay.delegate.models import DelegateRef, DelegateReply, DelegateRequest
from botrelay.delegate.transports import DelegateTransport, DialogRuntimeTransport, FunctionTransport

__all__ = [
    "DelegateClient",
    "DelegateRef",
    "DelegateReply",
    "DelegateRequest",
    "DelegateTransport",
    "DialogRuntimeTransport",
    "FunctionTransport",
]
