"""
Backend API client for pipeline, build, deploy and scan services.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from controller.src.config import Settings, get_settings
from controller.src.errors import TransportFailure
from controller.src.models import (
    PipelineStep,
    ScanCategory,
    ScanResultEnvelope,
    Service,
    ServiceLink,
    SshHop,
)

logger = logging.getLogger(__name__)

class BackendError(TransportFailure):
    """Raised when the backend call fails or reports success=false."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code

SCAN_ACTIONS = {
    ScanCategory.SAST: "getSastResult",
    ScanCategory.SCA: "getScaResult",
}

class BackendClient:
    """
    Thin async wrapper over the dashboard backend.

    Every endpoint takes {"action": ..., "parameters": {...}} and answers
    with {"success": bool, "data": ..., "error": str}.
    """

    def __init__(
        self,
        settings: Optional[Settings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.settings = settings or get_settings()
        headers = {}
        if self.settings.backend_token:
            headers["Authorization"] = f"Bearer {self.settings.backend_token}"
        self._client = httpx.AsyncClient(
            base_url=self.settings.backend_url,
            headers=headers,
            timeout=self.settings.request_timeout,
            transport=transport,
        )

    async def close(self):
        await self._client.aclose()

    async def __aenter__(self) -> "BackendClient":
        return self

    async def __aexit__(self, *exc_info):
        await self.close()

    async def _call(self, path: str, action: str, parameters: Dict[str, Any]) -> Any:
        try:
            response = await self._client.post(
                path, json={"action": action, "parameters": parameters}
            )
        except httpx.HTTPError as e:
            raise BackendError(f"{action} failed: {e}") from e

        try:
            body = response.json()
        except ValueError:
            body = None

        if response.status_code >= 400:
            detail = body.get("error") if isinstance(body, dict) else None
            raise BackendError(
                detail or f"{action} failed with HTTP {response.status_code}",
                status_code=response.status_code,
            )

        if not isinstance(body, dict):
            raise BackendError(f"{action} returned a malformed response")

        if not body.get("success", False):
            raise BackendError(body.get("error") or f"{action} failed")

        return body.get("data")

    async def fetch_pipeline_statuses(self, service_ids: List[int]) -> Dict[int, List[PipelineStep]]:
        """Fetch latest pipeline steps for many services in one call."""
        if not service_ids:
            return {}

        data = await self._call(
            "/pipelines", "getBatchPipelineStatus", {"service_ids": list(service_ids)}
        )

        statuses: Dict[int, List[PipelineStep]] = {}
        for key, steps in (data or {}).items():
            service_id = int(key)
            statuses[service_id] = [
                PipelineStep.model_validate({**step, "service_id": service_id})
                for step in steps or []
            ]
        return statuses

    async def submit_build(
        self,
        service_id: int,
        ssh_hops: List[Dict[str, Any]],
        infra_id: Optional[int] = None,
        selected_subservices: Optional[List[str]] = None,
        auto_deploy: bool = False,
        registry: Optional[Dict[str, str]] = None,
    ) -> None:
        parameters: Dict[str, Any] = {
            "service_id": service_id,
            "ssh_hops": ssh_hops,
            "auto_deploy": auto_deploy,
        }
        if infra_id is not None:
            parameters["infra_id"] = infra_id
        if selected_subservices:
            parameters["selected_services"] = selected_subservices
        if registry:
            parameters["registry"] = registry

        await self._call("/pipelines", "buildService", parameters)
        logger.info(f"Build submitted for service {service_id}")

    async def submit_deploy(
        self,
        service_id: int,
        ssh_hops: List[Dict[str, Any]],
        image_tag: Optional[str] = None,
        service_images: Optional[Dict[str, str]] = None,
        registry: Optional[Dict[str, str]] = None,
    ) -> None:
        parameters: Dict[str, Any] = {
            "service_id": service_id,
            "ssh_hops": ssh_hops,
        }
        if service_images:
            parameters["service_images"] = service_images
        elif image_tag:
            parameters["image_tag"] = image_tag
        if registry:
            parameters["registry"] = registry

        await self._call("/pipelines", "deployService", parameters)
        logger.info(f"Deploy submitted for service {service_id}")

    async def fetch_scan_result(
        self,
        service_id: int,
        category: ScanCategory,
        artifact: Optional[str] = None,
    ) -> Optional[ScanResultEnvelope]:
        """Returns None when the backend has no result for the artifact."""
        parameters: Dict[str, Any] = {"repo_id": service_id}
        if artifact:
            parameters["artifact"] = artifact

        data = await self._call("/gits", SCAN_ACTIONS[category], parameters)

        if not data or data.get("status") == "not_found":
            return None

        return ScanResultEnvelope(
            category=category,
            status=data.get("status", "completed"),
            artifact=data.get("artifact") or artifact,
            result=data.get("result"),
            scan_date=data.get("scan_date"),
        )

    async def list_services(self) -> List[Service]:
        data = await self._call("/services", "listServices", {})
        return [Service.model_validate(item) for item in data or []]

    async def list_service_links(self) -> List[ServiceLink]:
        data = await self._call("/services", "listServiceInfraLinks", {})
        return [ServiceLink.model_validate(item) for item in data or []]

    async def fetch_server_hops(self, infra_id: int) -> List[SshHop]:
        """SSH hop chain of the infrastructure's target server."""
        data = await self._call("/infra", "getServerHops", {"infra_id": infra_id})
        return [SshHop.model_validate(item) for item in data or []]
