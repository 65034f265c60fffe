"""
Credential records and resolution results.
"""

from pydantic import BaseModel
from typing import List, Optional, Dict, Any, Tuple
from enum import Enum

DEFAULT_SSH_PORT = 22

def server_key(host: str, port: Optional[int] = None) -> Tuple[str, int]:
    return (host.strip().lower(), port or DEFAULT_SSH_PORT)

class GitCredential(BaseModel):
    base_url: str
    username: Optional[str] = None
    token: str

class ServerCredential(BaseModel):
    host: str
    port: int = DEFAULT_SSH_PORT
    username: str
    password: str

    @property
    def key(self) -> Tuple[str, int]:
        return server_key(self.host, self.port)

class RegistryCredential(BaseModel):
    registry_url: str
    username: str
    password: str

class CredentialKind(str, Enum):
    GIT = "git"
    SERVER = "server"
    REGISTRY = "registry"

class MissingCredential(BaseModel):
    kind: CredentialKind
    key: str

class ResolvedHop(BaseModel):
    host: str
    port: int
    username: str
    password: str

class CredentialResolution(BaseModel):
    git: Optional[GitCredential] = None
    hops: List[ResolvedHop] = []
    registry: Optional[RegistryCredential] = None
    missing: List[MissingCredential] = []

    @property
    def is_complete(self) -> bool:
        return not self.missing

    def missing_kinds(self) -> List[CredentialKind]:
        return sorted({m.kind for m in self.missing}, key=lambda k: k.value)

    def to_hops_payload(self) -> List[Dict[str, Any]]:
        return [hop.model_dump() for hop in self.hops]

    def to_registry_payload(self) -> Optional[Dict[str, str]]:
        if self.registry is None:
            return None
        return {
            "registry_url": self.registry.registry_url,
            "username": self.registry.username,
            "password": self.registry.password,
        }
