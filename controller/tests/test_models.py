"""Tests for step models and status normalization."""

import pytest

from controller.src.models import (
    PipelineStep,
    Service,
    StepStatus,
    latest_steps,
    normalize_status,
)
from controller.src.services.workflow import build_stage_view

@pytest.mark.parametrize("raw,expected", [
    ("success", StepStatus.SUCCESS),
    ("Succeeded", StepStatus.SUCCESS),
    ("successed", StepStatus.SUCCESS),
    ("completed", StepStatus.SUCCESS),
    ("done", StepStatus.SUCCESS),
    ("RUNNING", StepStatus.RUNNING),
    ("in_progress", StepStatus.RUNNING),
    ("processing", StepStatus.RUNNING),
    ("error", StepStatus.FAILED),
    ("canceled", StepStatus.FAILED),
    ("cancelled", StepStatus.FAILED),
    ("queued", StepStatus.PENDING),
    ("waiting", StepStatus.PENDING),
    ("mystery", StepStatus.PENDING),
    ("", StepStatus.PENDING),
    (None, StepStatus.PENDING),
])
def test_normalize_status(raw, expected):
    assert normalize_status(raw) == expected

def test_pipeline_step_unwraps_nullable_columns():
    step = PipelineStep.model_validate({
        "id": 7,
        "step_name": "deploy",
        "status": "failed",
        "progress_percentage": {"Float64": 40.0, "Valid": True},
        "error_message": {"String": "exit 1", "Valid": True},
        "completed_at": {"String": "", "Valid": False},
        "details_data": "not json",
    })
    assert step.progress_percent == 40.0
    assert step.error_message == "exit 1"
    assert step.completed_at is None
    assert step.details == {"raw": "not json"}
    assert step.is_terminal

def test_latest_steps_keeps_highest_id():
    steps = [
        PipelineStep(id=3, step_name="build", status="success"),
        PipelineStep(id=9, step_name="build", status="running"),
        PipelineStep(id=4, step_name="deploy", status="success"),
    ]
    latest = latest_steps(steps)
    assert latest["build"].id == 9
    assert latest["deploy"].id == 4

def test_service_parses_registry_config_string():
    service = Service.model_validate({
        "id": 1,
        "name": "api",
        "git_remote_url": "https://git.example.com/team/api.git",
        "registry_config": '{"registry_type": "harbor", "registry_url": "harbor.example.com"}',
    })
    assert service.registry_url == "harbor.example.com"
    assert Service(id=2, name="x", git_remote_url="", registry_config="").registry_url is None

def test_stage_view_fills_template():
    views = build_stage_view([
        PipelineStep(id=1, step_name="build", status="completed", completed_at="2024-05-01T10:00:00Z"),
        PipelineStep(id=2, step_name="deploy", status="in_progress", progress_percentage=30),
    ])
    by_stage = {view.stage.value: view for view in views}

    assert [view.stage.value for view in views] == ["source", "build", "deploy", "operate"]
    assert by_stage["source"].status == "inactive"
    assert by_stage["build"].status == "success"
    assert by_stage["build"].progress == 100
    assert by_stage["build"].last_update == "2024-05-01T10:00:00Z"
    assert by_stage["deploy"].status == "running"
    assert by_stage["deploy"].progress == 30
