from api.src.models.schemas import (
    ExecuteRequest,
    PollingStateResponse,
    TrackedExecutionResponse,
    CredentialStoredResponse,
)

__all__ = [
    "ExecuteRequest",
    "PollingStateResponse",
    "TrackedExecutionResponse",
    "CredentialStoredResponse",
]
