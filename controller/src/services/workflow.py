"""
Project pipeline steps onto the per-service stage template.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel

from controller.src.models import PipelineStep, Stage, StepStatus, latest_steps

INACTIVE = "inactive"

class StageView(BaseModel):
    stage: Stage
    status: str = INACTIVE
    progress: float = 0
    last_update: str = ""
    error_message: Optional[str] = None
    details: Optional[Dict[str, Any]] = None

def build_stage_view(steps: List[PipelineStep]) -> List[StageView]:
    """One entry per stage, in lifecycle order. Stages without a record are inactive."""
    latest = latest_steps(steps)
    views = []

    for stage in Stage:
        step = latest.get(stage.value)
        if step is None:
            views.append(StageView(stage=stage))
            continue

        status = step.normalized_status
        if step.progress_percent is not None:
            progress = step.progress_percent
        elif status == StepStatus.SUCCESS:
            progress = 100
        else:
            progress = 0

        views.append(StageView(
            stage=stage,
            status=status.value,
            progress=progress,
            last_update=step.completed_at or step.started_at or "",
            error_message=step.error_message,
            details=step.details,
        ))

    return views
