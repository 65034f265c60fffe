"""
Decide whether a lifecycle stage can be executed for a service.
"""

from typing import List, Optional

from pydantic import BaseModel

from controller.src.models import Service, ServiceLink, Stage, TrackedExecution
from controller.src.services.credential_resolver import find_git_credential
from controller.src.stores import GitCredentialRepository

REASON_NO_INFRA = "infrastructure not set"
REASON_NO_GIT_CREDENTIAL = "git credential not registered"
REASON_IN_PROGRESS = "execution already in progress"

class Runnability(BaseModel):
    runnable: bool
    disabled: bool
    reason: Optional[str] = None

    model_config = {"frozen": True}

def _has_infra(service: Service, links: List[ServiceLink]) -> bool:
    return any(link.service_id == service.id and link.infra_id is not None for link in links)

def is_runnable(
    service: Service,
    stage: Stage,
    links: List[ServiceLink],
    git_credentials: GitCredentialRepository,
    tracked: Optional[TrackedExecution] = None,
) -> Runnability:
    """
    Pure check of one (service, stage) pair.

    Precondition: `links` is the freshest service-link list. It is never
    re-fetched here.

    Missing SSH hop credentials do not disable build/deploy/operate; they
    are requested when the execution is submitted.
    """
    if tracked is not None and tracked.names(service.id, stage):
        return Runnability(runnable=False, disabled=True, reason=REASON_IN_PROGRESS)

    if stage != Stage.SOURCE and not _has_infra(service, links):
        return Runnability(runnable=False, disabled=True, reason=REASON_NO_INFRA)

    if find_git_credential(service, git_credentials) is None:
        return Runnability(runnable=False, disabled=True, reason=REASON_NO_GIT_CREDENTIAL)

    return Runnability(runnable=True, disabled=False)
