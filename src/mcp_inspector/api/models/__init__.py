"""REST API Pydantic models."""

from .common import HealthResponse
from .connection import (
    ConnectionInfoModel,
    ConnectRequest,
    ConnectResponse,
    DisconnectResponse,
    StatusResponse,
)
from .session import SavedSessionDetail, SavedSessionSummary, SaveSessionRequest
from .tool import (
    InvokeRequest,
    InvokeResponse,
    ToolExampleResponse,
    ToolModel,
    ValidateRequest,
    ValidateResponse,
)

__all__ = [
    "HealthResponse",
    "ConnectRequest",
    "ConnectResponse",
    "ConnectionInfoModel",
    "DisconnectResponse",
    "StatusResponse",
    "ToolModel",
    "ToolExampleResponse",
    "ValidateRequest",
    "ValidateResponse",
    "InvokeRequest",
    "InvokeResponse",
    "SavedSessionSummary",
    "SavedSessionDetail",
    "SaveSessionRequest",
]
