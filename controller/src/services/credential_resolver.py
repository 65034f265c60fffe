"""
Merge git, SSH hop and registry credentials into one execution payload.
"""

import logging
import re
from typing import Dict, List, Optional, Tuple
from urllib.parse import urlparse

from controller.src.models import (
    CredentialKind,
    CredentialResolution,
    GitCredential,
    MissingCredential,
    RegistryCredential,
    ResolvedHop,
    ServerCredential,
    Service,
    SshHop,
    Stage,
)
from controller.src.models.credentials import server_key
from controller.src.stores import (
    CredentialStores,
    GitCredentialRepository,
    RegistryCredentialRepository,
    normalize_base_url,
)

logger = logging.getLogger(__name__)

_SCP_LIKE = re.compile(r"^[\w.-]+@([^:/]+):")

def get_base_url_from_git_url(git_url: str) -> str:
    """
    Base URL of a git remote.

    https://gitlab.example.com/team/repo.git -> https://gitlab.example.com
    git@gitlab.example.com:team/repo.git     -> https://gitlab.example.com
    """
    git_url = (git_url or "").strip()

    match = _SCP_LIKE.match(git_url)
    if match:
        return f"https://{match.group(1)}"

    parsed = urlparse(git_url)
    if parsed.scheme in ("http", "https") and parsed.hostname:
        host = parsed.hostname
        if parsed.port:
            host = f"{host}:{parsed.port}"
        return f"{parsed.scheme}://{host}"
    if parsed.scheme in ("ssh", "git") and parsed.hostname:
        return f"https://{parsed.hostname}"

    return normalize_base_url(git_url)

def find_git_credential(
    service: Service, repository: GitCredentialRepository
) -> Optional[GitCredential]:
    """Exact base-URL match only. No default token is ever guessed."""
    return repository.get(get_base_url_from_git_url(service.git_remote_url))

def find_registry_credential(
    registry_url: str, repository: RegistryCredentialRepository
) -> Optional[RegistryCredential]:
    if not registry_url:
        return None

    exact = repository.get(registry_url)
    if exact is not None:
        return exact

    wanted = registry_url.strip().lower()
    candidates = []
    for credential in repository.all():
        stored = credential.registry_url.strip().lower()
        if not stored:
            continue
        if stored in wanted or wanted in stored:
            candidates.append(credential)

    if not candidates:
        return None
    return max(candidates, key=lambda c: len(c.registry_url))

def _required_classes(stage: Stage) -> Tuple[bool, bool, bool]:
    # (git, ssh hops, registry)
    if stage == Stage.SOURCE:
        return True, False, False
    if stage == Stage.BUILD:
        return True, True, True
    if stage == Stage.DEPLOY:
        return False, True, True
    return False, True, False

def resolve(
    service: Service,
    stage: Stage,
    hops: List[SshHop],
    stores: CredentialStores,
    overrides: Optional[List[ServerCredential]] = None,
) -> CredentialResolution:
    """
    Resolve every credential the stage needs without touching the stores.

    Missing classes are listed in `missing` so the caller can prompt
    instead of failing.
    """
    needs_git, needs_hops, needs_registry = _required_classes(stage)
    resolution = CredentialResolution()

    if needs_git:
        git = find_git_credential(service, stores.git)
        if git is None:
            resolution.missing.append(MissingCredential(
                kind=CredentialKind.GIT,
                key=get_base_url_from_git_url(service.git_remote_url),
            ))
        resolution.git = git

    if needs_hops:
        prompted: Dict[Tuple[str, int], ServerCredential] = {
            cred.key: cred for cred in overrides or []
        }
        for hop in hops:
            key = server_key(hop.host, hop.port)
            credential = prompted.get(key) or stores.servers.get(*key)
            if credential is None:
                resolution.missing.append(MissingCredential(
                    kind=CredentialKind.SERVER, key=f"{key[0]}:{key[1]}"
                ))
                continue
            # Usernames are never read from the inventory record
            resolution.hops.append(ResolvedHop(
                host=hop.host,
                port=key[1],
                username=credential.username,
                password=credential.password,
            ))

    if needs_registry and service.registry_url:
        registry = find_registry_credential(service.registry_url, stores.registries)
        if registry is None:
            resolution.missing.append(MissingCredential(
                kind=CredentialKind.REGISTRY, key=service.registry_url
            ))
        resolution.registry = registry

    if resolution.missing:
        logger.info(
            f"Service {service.id} {stage.value}: missing credentials "
            f"{[m.kind.value for m in resolution.missing]}"
        )

    return resolution
