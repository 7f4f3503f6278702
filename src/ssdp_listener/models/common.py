from enum import Enum

from pydantic import BaseModel


class BasePydanticModel(BaseModel):
    model_config = {
        "extra": "forbid",
        "populate_by_name": True,
        "use_enum_values": True,
    }

class MessageKind(str, Enum):
    """Classification of a datagram, taken from its first non-header line."""
    MSEARCH = "M-SEARCH"
    NOTIFY = "NOTIFY"
    RESPONSE = "RESPONSE"
    UNKNOWN = "UNKNOWN"

class WorkerState(str, Enum):
    NOT_RUNNING = "not_running"
    RUNNING = "running"
