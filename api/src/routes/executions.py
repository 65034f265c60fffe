from fastapi import APIRouter, Depends, HTTPException
from typing import List, Optional

from api.src.dependencies import get_controller
from api.src.models import ExecuteRequest, PollingStateResponse, TrackedExecutionResponse
from controller.src.models import (
    DeploySelection,
    ExecutionRequest,
    FinishedExecution,
    GateDecision,
    Service,
    Stage,
    SubmissionResult,
)
from controller.src.services.executor import ExecutionController
from controller.src.services.runnability import Runnability
from controller.src.services.workflow import StageView

router = APIRouter(tags=["executions"])

async def _require_service(controller: ExecutionController, service_id: int) -> Service:
    try:
        service = await controller.get_service(service_id)
    except Exception as e:
        raise HTTPException(status_code=502, detail=f"Backend unavailable: {e}")
    if service is None:
        raise HTTPException(status_code=404, detail="Service not found")
    return service

@router.get("/services/{service_id}/stages/{stage}/runnable", response_model=Runnability)
async def get_runnability(
    service_id: int,
    stage: Stage,
    controller: ExecutionController = Depends(get_controller),
):
    """Whether the stage button should be enabled."""
    await _require_service(controller, service_id)
    return await controller.check_runnable(service_id, stage)

@router.post("/services/{service_id}/stages/{stage}/gate", response_model=GateDecision)
async def evaluate_gate(
    service_id: int,
    stage: Stage,
    selection: Optional[DeploySelection] = None,
    controller: ExecutionController = Depends(get_controller),
):
    """Security gate decision to show before calling execute."""
    service = await _require_service(controller, service_id)
    return await controller.evaluate_gate(service, stage, selection)

@router.post("/services/{service_id}/stages/{stage}/execute", response_model=SubmissionResult)
async def execute_stage(
    service_id: int,
    stage: Stage,
    body: ExecuteRequest,
    controller: ExecutionController = Depends(get_controller),
):
    request = ExecutionRequest(
        service_id=service_id,
        stage=stage,
        deploy=body.deploy,
        selected_subservices=body.selected_subservices,
        auto_deploy=body.auto_deploy,
        hop_overrides=body.hop_overrides,
    )
    return await controller.submit(request, confirmed=body.confirmed)

@router.get("/services/{service_id}/pipeline", response_model=List[StageView])
async def get_stage_view(
    service_id: int,
    controller: ExecutionController = Depends(get_controller),
):
    """Stage-by-stage status from the latest poll."""
    return controller.poller.stage_view(service_id)

@router.get("/executions/tracked", response_model=Optional[TrackedExecutionResponse])
async def get_tracked_execution(controller: ExecutionController = Depends(get_controller)):
    tracked = controller.tracked
    if tracked is None:
        return None
    return TrackedExecutionResponse(
        service_id=tracked.service_id,
        service_name=tracked.service_name,
        stage=tracked.requested_stage,
    )

@router.get("/executions/finished", response_model=List[FinishedExecution])
async def list_finished_executions(controller: ExecutionController = Depends(get_controller)):
    return list(reversed(controller.finished))

def _polling_state(controller: ExecutionController) -> PollingStateResponse:
    poller = controller.poller
    return PollingStateResponse(
        polling=poller.is_polling,
        generation=poller.generation,
        grace_count=poller.grace_count,
        build_completed_count=poller.build_completed_count,
        last_error=poller.last_error,
    )

@router.get("/polling", response_model=PollingStateResponse)
async def get_polling_state(controller: ExecutionController = Depends(get_controller)):
    return _polling_state(controller)

@router.post("/polling/start", response_model=PollingStateResponse)
async def start_polling(controller: ExecutionController = Depends(get_controller)):
    try:
        await controller.start_polling()
    except Exception as e:
        raise HTTPException(status_code=502, detail=f"Backend unavailable: {e}")
    return _polling_state(controller)

@router.post("/polling/stop", response_model=PollingStateResponse)
async def stop_polling(controller: ExecutionController = Depends(get_controller)):
    controller.stop_polling()
    return _polling_state(controller)
