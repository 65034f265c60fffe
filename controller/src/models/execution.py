"""
Execution submission models.
"""

from pydantic import BaseModel
from typing import List, Optional, Dict
from enum import Enum

from controller.src.models.credentials import MissingCredential, ServerCredential
from controller.src.models.scan import GateDecision
from controller.src.models.step import Stage

class DeploySelection(BaseModel):
    image_tag: Optional[str] = None
    service_images: Dict[str, str] = {}

    @property
    def is_multi(self) -> bool:
        return bool(self.service_images)

    def artifacts(self) -> List[str]:
        if self.service_images:
            return list(self.service_images.values())
        return [self.image_tag] if self.image_tag else []

class ExecutionRequest(BaseModel):
    service_id: int
    stage: Stage
    deploy: Optional[DeploySelection] = None
    selected_subservices: List[str] = []
    auto_deploy: bool = False
    # Credentials typed into a prompt for this run only
    hop_overrides: List[ServerCredential] = []

class SubmissionOutcome(str, Enum):
    SUBMITTED = "submitted"
    REJECTED = "rejected"
    GATE_WARNING = "gate_warning"
    CREDENTIAL_MISSING = "credential_missing"
    CREDENTIAL_ERROR = "credential_error"
    FATAL = "fatal"

class SubmissionResult(BaseModel):
    outcome: SubmissionOutcome
    service_id: int
    stage: Stage
    message: Optional[str] = None
    gate: Optional[GateDecision] = None
    missing: List[MissingCredential] = []

    @property
    def retryable(self) -> bool:
        return self.outcome in (
            SubmissionOutcome.GATE_WARNING,
            SubmissionOutcome.CREDENTIAL_MISSING,
            SubmissionOutcome.CREDENTIAL_ERROR,
        )

class FinishedExecution(BaseModel):
    service_id: int
    service_name: str
    stage: Stage
    success: bool
    finished_at: str
