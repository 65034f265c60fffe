from pydantic import BaseModel
from typing import Optional, List

from controller.src.models import (
    DeploySelection,
    GitCredential,
    RegistryCredential,
    ServerCredential,
    Stage,
)

class ExecuteRequest(BaseModel):
    deploy: Optional[DeploySelection] = None
    selected_subservices: List[str] = []
    auto_deploy: bool = False
    hop_overrides: List[ServerCredential] = []
    confirmed: bool = False

class PollingStateResponse(BaseModel):
    polling: bool
    generation: int
    grace_count: int
    build_completed_count: int
    last_error: Optional[str] = None

class TrackedExecutionResponse(BaseModel):
    service_id: int
    service_name: str
    stage: Stage

class GitCredentialIn(GitCredential):
    pass

class ServerCredentialIn(ServerCredential):
    pass

class RegistryCredentialIn(RegistryCredential):
    pass

class CredentialStoredResponse(BaseModel):
    status: str = "stored"
    kind: str
    key: str
