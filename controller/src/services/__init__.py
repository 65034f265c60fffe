from controller.src.services.credential_resolver import (
    resolve,
    get_base_url_from_git_url,
    find_git_credential,
    find_registry_credential,
)
from controller.src.services.security_gate import (
    evaluate,
    evaluate_images,
    extract_severity,
    summarize_sarif,
)
from controller.src.services.runnability import Runnability, is_runnable
from controller.src.services.status_poller import PipelineStatusPoller
from controller.src.services.workflow import StageView, build_stage_view
from controller.src.services.executor import (
    ExecutionController,
    is_credential_error,
    validate_deploy_selection,
)

__all__ = [
    "resolve",
    "get_base_url_from_git_url",
    "find_git_credential",
    "find_registry_credential",
    "evaluate",
    "evaluate_images",
    "extract_severity",
    "summarize_sarif",
    "Runnability",
    "is_runnable",
    "PipelineStatusPoller",
    "StageView",
    "build_stage_view",
    "ExecutionController",
    "is_credential_error",
    "validate_deploy_selection",
]
