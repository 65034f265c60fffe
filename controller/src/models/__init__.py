from controller.src.models.step import (
    Stage,
    StepStatus,
    PipelineStep,
    TrackedExecution,
    normalize_status,
    latest_steps,
)
from controller.src.models.service import (
    Service,
    ServiceLink,
    SshHop,
    RegistryConfig,
)
from controller.src.models.credentials import (
    GitCredential,
    ServerCredential,
    RegistryCredential,
    CredentialKind,
    MissingCredential,
    ResolvedHop,
    CredentialResolution,
)
from controller.src.models.scan import (
    ScanCategory,
    ScanResultEnvelope,
    SeveritySummary,
    GateDecision,
    GateOutcome,
    WarningType,
)
from controller.src.models.execution import (
    DeploySelection,
    ExecutionRequest,
    SubmissionOutcome,
    SubmissionResult,
    FinishedExecution,
)

__all__ = [
    "Stage",
    "StepStatus",
    "PipelineStep",
    "TrackedExecution",
    "normalize_status",
    "latest_steps",
    "Service",
    "ServiceLink",
    "SshHop",
    "RegistryConfig",
    "GitCredential",
    "ServerCredential",
    "RegistryCredential",
    "CredentialKind",
    "MissingCredential",
    "ResolvedHop",
    "CredentialResolution",
    "ScanCategory",
    "ScanResultEnvelope",
    "SeveritySummary",
    "GateDecision",
    "GateOutcome",
    "WarningType",
    "DeploySelection",
    "ExecutionRequest",
    "SubmissionOutcome",
    "SubmissionResult",
    "FinishedExecution",
]
