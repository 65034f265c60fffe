"""
Keyed credential repositories.

Each credential class lives in its own store. The resolver only reads
through `get`/`all`; writes happen outside the core through the Redis
store's upsert calls.
"""

import json
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

import redis.asyncio as redis

from controller.src.config import Settings, get_settings
from controller.src.models import GitCredential, RegistryCredential, ServerCredential
from controller.src.models.credentials import server_key

logger = logging.getLogger(__name__)

def normalize_base_url(url: str) -> str:
    return url.strip().rstrip("/")

class GitCredentialRepository:
    """Git tokens keyed by repository base URL."""

    def __init__(self, items: Optional[List[GitCredential]] = None):
        self._items: Dict[str, GitCredential] = {}
        for item in items or []:
            self._items[normalize_base_url(item.base_url)] = item

    def get(self, base_url: str) -> Optional[GitCredential]:
        return self._items.get(normalize_base_url(base_url))

    def all(self) -> List[GitCredential]:
        return list(self._items.values())

class ServerCredentialRepository:
    """SSH credentials keyed by (host, port)."""

    def __init__(self, items: Optional[List[ServerCredential]] = None):
        self._items: Dict[Tuple[str, int], ServerCredential] = {}
        for item in items or []:
            self._items[item.key] = item

    def get(self, host: str, port: Optional[int] = None) -> Optional[ServerCredential]:
        return self._items.get(server_key(host, port))

    def all(self) -> List[ServerCredential]:
        return list(self._items.values())

class RegistryCredentialRepository:
    """Registry credentials keyed by registry URL."""

    def __init__(self, items: Optional[List[RegistryCredential]] = None):
        self._items: Dict[str, RegistryCredential] = {}
        for item in items or []:
            self._items[item.registry_url] = item

    def get(self, registry_url: str) -> Optional[RegistryCredential]:
        return self._items.get(registry_url)

    def all(self) -> List[RegistryCredential]:
        return list(self._items.values())

@dataclass
class CredentialStores:
    git: GitCredentialRepository = field(default_factory=GitCredentialRepository)
    servers: ServerCredentialRepository = field(default_factory=ServerCredentialRepository)
    registries: RegistryCredentialRepository = field(default_factory=RegistryCredentialRepository)

class RedisCredentialStore:
    """
    Persists the three credential classes in Redis hashes.
    `snapshot()` reads all three at one moment into in-memory repositories.
    """

    def __init__(self, client: Optional[redis.Redis] = None, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._client = client
        namespace = self.settings.credential_namespace
        self.git_key = f"{namespace}:git"
        self.server_key = f"{namespace}:servers"
        self.registry_key = f"{namespace}:registries"

    def _get_client(self) -> redis.Redis:
        if self._client is None:
            self._client = redis.from_url(self.settings.redis_url, decode_responses=True)
        return self._client

    async def close(self):
        if self._client is not None:
            await self._client.close()
            self._client = None

    async def ping(self) -> bool:
        return bool(await self._get_client().ping())

    async def upsert_git(self, credential: GitCredential):
        await self._get_client().hset(
            self.git_key, normalize_base_url(credential.base_url), credential.model_dump_json()
        )
        logger.info(f"Stored git credential for {credential.base_url}")

    async def upsert_server(self, credential: ServerCredential):
        host, port = credential.key
        await self._get_client().hset(
            self.server_key, f"{host}:{port}", credential.model_dump_json()
        )
        logger.info(f"Stored server credential for {host}:{port}")

    async def upsert_registry(self, credential: RegistryCredential):
        await self._get_client().hset(
            self.registry_key, credential.registry_url, credential.model_dump_json()
        )
        logger.info(f"Stored registry credential for {credential.registry_url}")

    async def remove_git(self, base_url: str) -> bool:
        removed = await self._get_client().hdel(self.git_key, normalize_base_url(base_url))
        if removed:
            logger.info(f"Removed git credential for {base_url}")
        return bool(removed)

    async def remove_server(self, host: str, port: Optional[int] = None) -> bool:
        host, port = server_key(host, port)
        removed = await self._get_client().hdel(self.server_key, f"{host}:{port}")
        if removed:
            logger.info(f"Removed server credential for {host}:{port}")
        return bool(removed)

    async def remove_registry(self, registry_url: str) -> bool:
        removed = await self._get_client().hdel(self.registry_key, registry_url)
        if removed:
            logger.info(f"Removed registry credential for {registry_url}")
        return bool(removed)

    async def snapshot(self) -> CredentialStores:
        client = self._get_client()
        async with client.pipeline(transaction=True) as pipe:
            pipe.hgetall(self.git_key)
            pipe.hgetall(self.server_key)
            pipe.hgetall(self.registry_key)
            git_raw, server_raw, registry_raw = await pipe.execute()

        return CredentialStores(
            git=GitCredentialRepository(self._parse(self.git_key, git_raw, GitCredential)),
            servers=ServerCredentialRepository(self._parse(self.server_key, server_raw, ServerCredential)),
            registries=RegistryCredentialRepository(self._parse(self.registry_key, registry_raw, RegistryCredential)),
        )

    def _parse(self, key: str, raw: Optional[Dict[str, str]], model) -> list:
        items = []
        for field_name, value in (raw or {}).items():
            try:
                items.append(model.model_validate(json.loads(value)))
            except ValueError as e:
                logger.warning(f"Skipping unreadable credential {key}/{field_name}: {e}")
        return items
