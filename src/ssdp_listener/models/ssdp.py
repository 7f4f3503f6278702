from collections.abc import Callable
from typing import Any

from pydantic import Field

from .common import BasePydanticModel, MessageKind

# Header name -> header value, in the order the headers were received.
Answer = dict[str, str]
AnswerSink = Callable[[Answer], Any]
ErrorSink = Callable[[str], Any]

ALL_SERVICES = "ssdp:all"


class ParsedMessage(BasePydanticModel):
    """A received datagram broken down into its kind and headers.

    ``kind`` is None when no line could classify the message (e.g. the
    datagram was not valid text, or carried headers only).
    """
    kind: MessageKind | None = None
    headers: Answer = Field(default_factory=dict)

    def to_answer(self) -> Answer:
        """Returns the headers as delivered to a subscriber, without the kind marker."""
        return dict(self.headers)


class Subscription(BasePydanticModel):
    """Immutable descriptor installed by a ``listen`` call."""
    service_type: str = Field(..., min_length=1, description="SSDP service type (ST) to search for, e.g. 'ssdp:all' or a URN.")
    normalize_headers: bool = Field(False, description="Rewrite header names to Capitalized-Dash-Form.")
    read_timeout_ms: int = Field(4000, gt=0, description="Read timeout in milliseconds; ends each receive burst.")
    listen_for_notifies: bool = Field(False, description="Also deliver NOTIFY announcements matching the service type.")
    broadcast_msearch: bool = Field(True, description="Send an M-SEARCH request at the start of each cycle.")
    sink: AnswerSink = Field(..., description="Receives each admitted answer.")
    error_sink: ErrorSink = Field(..., description="Receives network error messages.")

    model_config = {
        "extra": "forbid",
        "frozen": True,
    }

    @property
    def read_timeout_seconds(self) -> float:
        return self.read_timeout_ms / 1000.0

    def describe(self) -> dict[str, Any]:
        """Descriptor fields suitable for logging (sinks excluded)."""
        return self.model_dump(exclude={"sink", "error_sink"})
