"""
Service inventory models.
"""

from pydantic import BaseModel, field_validator
from typing import Optional, Any
import json
import logging

logger = logging.getLogger(__name__)

class RegistryConfig(BaseModel):
    registry_type: Optional[str] = None
    registry_url: Optional[str] = None
    project_name: Optional[str] = None

class Service(BaseModel):
    id: int
    name: str
    git_remote_url: str
    branch: str = "main"
    infra_id: Optional[int] = None
    registry_config: Optional[RegistryConfig] = None
    is_deployed: bool = False

    @field_validator("registry_config", mode="before")
    @classmethod
    def parse_registry_config(cls, value: Any) -> Any:
        # Stored as a JSON string on the service row
        if isinstance(value, str):
            if not value.strip():
                return None
            try:
                value = json.loads(value)
            except ValueError:
                logger.warning(f"Ignoring unreadable registry_config: {value!r}")
                return None
        if value is not None and not isinstance(value, (dict, RegistryConfig)):
            logger.warning(f"Ignoring registry_config of type {type(value).__name__}")
            return None
        return value

    @property
    def registry_url(self) -> Optional[str]:
        if self.registry_config and self.registry_config.registry_url:
            return self.registry_config.registry_url
        return None

class ServiceLink(BaseModel):
    service_id: int
    infra_id: Optional[int] = None

class SshHop(BaseModel):
    host: str
    port: Optional[int] = None
