"""
Pydantic models for SSDP Listener.
"""
from .common import BasePydanticModel, MessageKind, WorkerState
from .ssdp import (
    ALL_SERVICES,
    Answer,
    AnswerSink,
    ErrorSink,
    ParsedMessage,
    Subscription,
)

__all__ = [
    "ALL_SERVICES",
    "Answer",
    "AnswerSink",
    "BasePydanticModel",
    "ErrorSink",
    "MessageKind",
    "ParsedMessage",
    "Subscription",
    "WorkerState",
]
