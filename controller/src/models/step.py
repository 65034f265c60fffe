"""
Pipeline step models.
"""

from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, Dict, Any
from enum import Enum

class Stage(str, Enum):
    SOURCE = "source"
    BUILD = "build"
    DEPLOY = "deploy"
    OPERATE = "operate"

class StepStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    SUCCESS = "success"
    FAILED = "failed"

TERMINAL_STATUSES = {StepStatus.SUCCESS, StepStatus.FAILED}

_STATUS_ALIASES = {
    "success": StepStatus.SUCCESS,
    "succeeded": StepStatus.SUCCESS,
    "successed": StepStatus.SUCCESS,
    "completed": StepStatus.SUCCESS,
    "done": StepStatus.SUCCESS,
    "running": StepStatus.RUNNING,
    "in_progress": StepStatus.RUNNING,
    "processing": StepStatus.RUNNING,
    "progress": StepStatus.RUNNING,
    "failed": StepStatus.FAILED,
    "error": StepStatus.FAILED,
    "cancelled": StepStatus.FAILED,
    "canceled": StepStatus.FAILED,
    "pending": StepStatus.PENDING,
    "queued": StepStatus.PENDING,
    "waiting": StepStatus.PENDING,
}

def normalize_status(raw: Optional[str]) -> StepStatus:
    """
    Map a backend status string onto the canonical step status.
    Unknown or empty values are pending, never running.
    """
    if not raw or not isinstance(raw, str):
        return StepStatus.PENDING
    return _STATUS_ALIASES.get(raw.strip().lower(), StepStatus.PENDING)

def _unwrap_nullable(value: Any) -> Any:
    # Backend encodes nullable columns as {"String": "...", "Valid": true}
    if isinstance(value, dict) and "Valid" in value:
        if not value.get("Valid"):
            return None
        for key in ("String", "Float64", "Int64", "Int32", "Time", "Bool"):
            if key in value:
                return value[key]
        return None
    return value

class PipelineStep(BaseModel):
    id: int = 0
    service_id: Optional[int] = None
    step_name: str
    raw_status: str = Field(default="", alias="status")
    progress_percent: Optional[float] = Field(default=None, alias="progress_percentage")
    started_at: Optional[str] = None
    completed_at: Optional[str] = None
    duration_seconds: Optional[float] = None
    error_message: Optional[str] = None
    details: Optional[Dict[str, Any]] = Field(default=None, alias="details_data")

    model_config = {"populate_by_name": True}

    @model_validator(mode="before")
    @classmethod
    def unwrap_nullable_columns(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: _unwrap_nullable(value) for key, value in data.items()}
        return data

    @field_validator("raw_status", mode="before")
    @classmethod
    def coerce_status(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("details", mode="before")
    @classmethod
    def coerce_details(cls, value: Any) -> Optional[Dict[str, Any]]:
        if value is None or isinstance(value, dict):
            return value
        return {"raw": value}

    @property
    def normalized_status(self) -> StepStatus:
        return normalize_status(self.raw_status)

    @property
    def is_terminal(self) -> bool:
        return self.normalized_status in TERMINAL_STATUSES

def latest_steps(steps) -> Dict[str, PipelineStep]:
    """Keep one record per step name, the one with the highest id."""
    latest: Dict[str, PipelineStep] = {}
    for step in steps:
        current = latest.get(step.step_name)
        if current is None or current.id < step.id:
            latest[step.step_name] = step
    return latest

class TrackedExecution(BaseModel):
    service_id: int
    service_name: str
    step_name: str
    requested_stage: Stage
    baseline_step_id: Optional[int] = None
    observed_running: bool = False

    def names(self, service_id: int, stage: Stage) -> bool:
        return self.service_id == service_id and self.requested_stage == stage
