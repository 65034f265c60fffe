"""
Execution submission - gate check, credential resolution and remote submit.

Nothing runs locally: a successful submit only registers the tracked
execution and (re)starts status polling.
"""

import logging
from collections import deque
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Set, Tuple

from controller.src.config import Settings, get_settings
from controller.src.errors import (
    CredentialInvalid,
    CredentialMissing,
    ExecutionRejected,
    GateWarning,
    SelectionError,
    TransportFailure,
)
from controller.src.models import (
    DeploySelection,
    ExecutionRequest,
    FinishedExecution,
    GateDecision,
    ScanCategory,
    ScanResultEnvelope,
    Service,
    ServiceLink,
    Stage,
    SubmissionOutcome,
    SubmissionResult,
    TrackedExecution,
)
from controller.src.services.credential_resolver import resolve
from controller.src.services.runnability import Runnability, is_runnable
from controller.src.services.security_gate import evaluate, evaluate_images
from controller.src.services.status_poller import PipelineStatusPoller
from controller.src.stores import CredentialStores

logger = logging.getLogger(__name__)

SUBMITTABLE_STAGES = {Stage.BUILD, Stage.DEPLOY}

CREDENTIAL_ERROR_MARKERS = (
    "ssh",
    "auth",
    "token",
    "password",
    "permission denied",
    "credential",
    "인증",
)

def is_credential_error(message: str) -> bool:
    text = (message or "").lower()
    return any(marker in text for marker in CREDENTIAL_ERROR_MARKERS)

def validate_deploy_selection(selection: Optional[DeploySelection]) -> DeploySelection:
    """A deploy needs a single image tag or a non-empty per-service image map."""
    if selection is None:
        raise SelectionError("No image selected for deploy")
    if selection.service_images:
        empty = [name for name, image in selection.service_images.items() if not (image or "").strip()]
        if empty:
            raise SelectionError(f"No image selected for: {', '.join(sorted(empty))}")
        return selection
    if not (selection.image_tag or "").strip():
        raise SelectionError("No image selected for deploy")
    return selection

FinishedSlot = Callable[[int, Stage, bool], None]
CredentialSlot = Callable[[int, Stage, list], None]

class ExecutionController:
    def __init__(
        self,
        client,
        credentials,
        settings: Optional[Settings] = None,
        on_execution_finished: Optional[FinishedSlot] = None,
        on_credential_required: Optional[CredentialSlot] = None,
    ):
        self.settings = settings or get_settings()
        self.client = client
        self.credentials = credentials
        self.on_execution_finished = on_execution_finished
        self.on_credential_required = on_credential_required

        self.services: Dict[int, Service] = {}
        self.links: List[ServiceLink] = []
        self.pending: Dict[Tuple[int, Stage], ExecutionRequest] = {}
        self.finished = deque(maxlen=self.settings.finished_history)
        self._in_flight: Set[Tuple[int, Stage]] = set()

        self.poller = PipelineStatusPoller(
            client,
            lambda: list(self.services),
            settings=self.settings,
            on_finished=self._handle_finished,
        )

    @property
    def tracked(self) -> Optional[TrackedExecution]:
        return self.poller.tracked

    async def refresh_inventory(self):
        """Reload services and the service-link list from the backend."""
        services = await self.client.list_services()
        self.links = await self.client.list_service_links()
        self.services = {service.id: service for service in services}

    async def credential_snapshot(self) -> CredentialStores:
        if isinstance(self.credentials, CredentialStores):
            return self.credentials
        return await self.credentials.snapshot()

    async def get_service(self, service_id: int) -> Optional[Service]:
        """Service record from a freshly reloaded inventory."""
        await self.refresh_inventory()
        return self.services.get(service_id)

    async def _service(self, service_id: int) -> Service:
        service = await self.get_service(service_id)
        if service is None:
            raise ExecutionRejected(f"Unknown service {service_id}")
        return service

    def _infra_id(self, service: Service) -> Optional[int]:
        for link in self.links:
            if link.service_id == service.id and link.infra_id is not None:
                return link.infra_id
        return service.infra_id

    async def check_runnable(self, service_id: int, stage: Stage) -> Runnability:
        service = await self._service(service_id)
        stores = await self.credential_snapshot()
        return is_runnable(service, stage, self.links, stores.git, self.tracked)

    async def _fetch_scan(
        self, service_id: int, category: ScanCategory, artifact: Optional[str] = None
    ) -> Tuple[bool, Optional[ScanResultEnvelope]]:
        try:
            return True, await self.client.fetch_scan_result(service_id, category, artifact)
        except Exception as e:
            logger.warning(
                f"Could not fetch {category.value} result for service {service_id} "
                f"({artifact or 'latest'}), not gating: {e}"
            )
            return False, None

    async def evaluate_gate(
        self,
        service: Service,
        stage: Stage,
        selection: Optional[DeploySelection] = None,
    ) -> GateDecision:
        """SAST gate before build, SCA gate before deploy. Never raises."""
        if stage == Stage.BUILD:
            ok, envelope = await self._fetch_scan(service.id, ScanCategory.SAST)
            if not ok:
                return GateDecision.clear(ScanCategory.SAST, stage.value)
            return self._safe_evaluate(ScanCategory.SAST, stage, envelope)

        if stage != Stage.DEPLOY:
            return GateDecision.clear(ScanCategory.SCA, stage.value)

        if selection is not None and selection.is_multi:
            results: Dict[str, Optional[ScanResultEnvelope]] = {}
            for image in selection.artifacts():
                ok, envelope = await self._fetch_scan(service.id, ScanCategory.SCA, image)
                if ok:
                    results[image] = envelope
            try:
                return evaluate_images(stage.value, results)
            except Exception as e:
                logger.warning(f"Could not evaluate SCA results for service {service.id}: {e}")
                return GateDecision.clear(ScanCategory.SCA, stage.value)

        image = selection.image_tag if selection else None
        ok, envelope = await self._fetch_scan(service.id, ScanCategory.SCA, image)
        if not ok:
            return GateDecision.clear(ScanCategory.SCA, stage.value)
        return self._safe_evaluate(ScanCategory.SCA, stage, envelope)

    def _safe_evaluate(
        self, category: ScanCategory, stage: Stage, envelope: Optional[ScanResultEnvelope]
    ) -> GateDecision:
        try:
            return evaluate(category, stage.value, envelope)
        except Exception as e:
            logger.warning(f"Unreadable {category.value} result, not gating: {e}")
            return GateDecision.clear(category, stage.value)

    def pending_request(self, service_id: int, stage: Stage) -> Optional[ExecutionRequest]:
        return self.pending.get((service_id, stage))

    async def submit(self, request: ExecutionRequest, confirmed: bool = False) -> SubmissionResult:
        """
        Submit a build or deploy. Errors never escape: every failure becomes
        a SubmissionResult the caller can act on.
        """
        key = (request.service_id, request.stage)

        def result(outcome: SubmissionOutcome, message: Optional[str] = None, **extra) -> SubmissionResult:
            return SubmissionResult(
                outcome=outcome,
                service_id=request.service_id,
                stage=request.stage,
                message=message,
                **extra,
            )

        if request.stage not in SUBMITTABLE_STAGES:
            return result(SubmissionOutcome.REJECTED, f"Stage {request.stage.value} has no remote execution")
        if key in self._in_flight:
            return result(SubmissionOutcome.REJECTED, "A submission for this stage is already in flight")

        previous = self.pending.get(key)
        if request.deploy is None and previous is not None:
            request = request.model_copy(update={"deploy": previous.deploy})

        self._in_flight.add(key)
        try:
            await self._submit(request, confirmed)
        except ExecutionRejected as e:
            return result(SubmissionOutcome.REJECTED, str(e))
        except GateWarning as e:
            self.pending[key] = request
            logger.info(f"Service {request.service_id} {request.stage.value} paused on gate: {e}")
            return result(SubmissionOutcome.GATE_WARNING, str(e), gate=e.decision)
        except CredentialMissing as e:
            self.pending[key] = request
            self._request_credentials(request, e.missing)
            return result(SubmissionOutcome.CREDENTIAL_MISSING, str(e), missing=e.missing)
        except CredentialInvalid as e:
            self.pending[key] = request
            logger.warning(f"Service {request.service_id} {request.stage.value} credential error: {e}")
            self._request_credentials(request, [])
            return result(SubmissionOutcome.CREDENTIAL_ERROR, str(e))
        except Exception as e:
            message = str(e) or e.__class__.__name__
            logger.error(f"Service {request.service_id} {request.stage.value} submission failed: {message}")
            self.pending.pop(key, None)
            self.poller.clear_tracked(request.service_id, request.stage)
            return result(SubmissionOutcome.FATAL, message)
        finally:
            self._in_flight.discard(key)

        self.pending.pop(key, None)
        return result(SubmissionOutcome.SUBMITTED)

    async def _submit(self, request: ExecutionRequest, confirmed: bool):
        service = await self._service(request.service_id)
        stores = await self.credential_snapshot()

        runnability = is_runnable(service, request.stage, self.links, stores.git, self.tracked)
        if not runnability.runnable:
            raise ExecutionRejected(runnability.reason or "Stage is not runnable")

        selection = None
        if request.stage == Stage.DEPLOY:
            selection = validate_deploy_selection(request.deploy)

        decision = await self.evaluate_gate(service, request.stage, selection)
        if not decision.is_clear and not confirmed:
            raise GateWarning(decision)
        if not decision.is_clear:
            logger.warning(
                f"Proceeding past {decision.warning_type.value} gate for "
                f"{service.name} {request.stage.value} on user confirmation"
            )

        infra_id = self._infra_id(service)
        try:
            await self._send(service, request, stores, infra_id, selection)
        except TransportFailure as e:
            if is_credential_error(str(e)):
                raise CredentialInvalid(str(e)) from e
            raise

    async def _send(self, service, request, stores, infra_id, selection):
        hops = await self.client.fetch_server_hops(infra_id) if infra_id is not None else []

        credentials = resolve(service, request.stage, hops, stores, overrides=request.hop_overrides)
        if not credentials.is_complete:
            raise CredentialMissing(credentials.missing)

        step_name = request.stage.value
        if service.id not in self.poller.statuses:
            # Without a snapshot the previous run's record would look new
            if not await self.poller.refresh():
                logger.warning(
                    f"No status snapshot for {service.name}; tracking {step_name} without a baseline"
                )
        baseline = self.poller.latest_step(service.id, step_name)

        if request.stage == Stage.BUILD:
            await self.client.submit_build(
                service.id,
                credentials.to_hops_payload(),
                infra_id=infra_id,
                selected_subservices=request.selected_subservices or None,
                auto_deploy=request.auto_deploy,
                registry=credentials.to_registry_payload(),
            )
        else:
            await self.client.submit_deploy(
                service.id,
                credentials.to_hops_payload(),
                image_tag=None if selection.is_multi else selection.image_tag,
                service_images=selection.service_images or None,
                registry=credentials.to_registry_payload(),
            )

        tracked = TrackedExecution(
            service_id=service.id,
            service_name=service.name,
            step_name=step_name,
            requested_stage=request.stage,
            baseline_step_id=baseline.id if baseline else None,
        )
        logger.info(f"Tracking {step_name} for {service.name}")
        self.poller.start(tracked=tracked)

    def _request_credentials(self, request: ExecutionRequest, missing: list):
        callback = self.on_credential_required
        if callback is None:
            return
        try:
            callback(request.service_id, request.stage, missing)
        except Exception:
            logger.exception("Credential prompt callback failed")

    def _handle_finished(self, tracked: TrackedExecution, success: bool):
        self.finished.append(FinishedExecution(
            service_id=tracked.service_id,
            service_name=tracked.service_name,
            stage=tracked.requested_stage,
            success=success,
            finished_at=datetime.now(timezone.utc).isoformat(),
        ))
        callback = self.on_execution_finished
        if callback is not None:
            callback(tracked.service_id, tracked.requested_stage, success)

    async def start_polling(self):
        await self.refresh_inventory()
        self.poller.start()

    def stop_polling(self):
        self.poller.stop()
