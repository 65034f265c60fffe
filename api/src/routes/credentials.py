"""
Credential upserts made by the UI after a credential prompt, and removals.
"""

from fastapi import APIRouter, Depends, HTTPException
from typing import Optional

from api.src.dependencies import get_credential_store
from api.src.models import CredentialStoredResponse
from api.src.models.schemas import GitCredentialIn, RegistryCredentialIn, ServerCredentialIn
from controller.src.models.credentials import server_key
from controller.src.stores import RedisCredentialStore, normalize_base_url

router = APIRouter(prefix="/credentials", tags=["credentials"])

@router.put("/git", response_model=CredentialStoredResponse)
async def upsert_git_credential(
    credential: GitCredentialIn,
    store: RedisCredentialStore = Depends(get_credential_store),
):
    await store.upsert_git(credential)
    return CredentialStoredResponse(kind="git", key=normalize_base_url(credential.base_url))

@router.put("/servers", response_model=CredentialStoredResponse)
async def upsert_server_credential(
    credential: ServerCredentialIn,
    store: RedisCredentialStore = Depends(get_credential_store),
):
    await store.upsert_server(credential)
    host, port = server_key(credential.host, credential.port)
    return CredentialStoredResponse(kind="server", key=f"{host}:{port}")

@router.put("/registries", response_model=CredentialStoredResponse)
async def upsert_registry_credential(
    credential: RegistryCredentialIn,
    store: RedisCredentialStore = Depends(get_credential_store),
):
    await store.upsert_registry(credential)
    return CredentialStoredResponse(kind="registry", key=credential.registry_url)

def _removed(kind: str, key: str, removed: bool) -> CredentialStoredResponse:
    if not removed:
        raise HTTPException(status_code=404, detail=f"No {kind} credential for {key}")
    return CredentialStoredResponse(status="removed", kind=kind, key=key)

@router.delete("/git", response_model=CredentialStoredResponse)
async def delete_git_credential(
    base_url: str,
    store: RedisCredentialStore = Depends(get_credential_store),
):
    removed = await store.remove_git(base_url)
    return _removed("git", normalize_base_url(base_url), removed)

@router.delete("/servers", response_model=CredentialStoredResponse)
async def delete_server_credential(
    host: str,
    port: Optional[int] = None,
    store: RedisCredentialStore = Depends(get_credential_store),
):
    removed = await store.remove_server(host, port)
    host, port = server_key(host, port)
    return _removed("server", f"{host}:{port}", removed)

@router.delete("/registries", response_model=CredentialStoredResponse)
async def delete_registry_credential(
    registry_url: str,
    store: RedisCredentialStore = Depends(get_credential_store),
):
    removed = await store.remove_registry(registry_url)
    return _removed("registry", registry_url, removed)
