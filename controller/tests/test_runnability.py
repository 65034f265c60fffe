"""Tests for stage runnability."""

from controller.src.models import ServiceLink, Stage, TrackedExecution
from controller.src.services.runnability import (
    REASON_IN_PROGRESS,
    REASON_NO_GIT_CREDENTIAL,
    REASON_NO_INFRA,
    is_runnable,
)
from controller.tests.fakes import make_service, make_stores

LINKED = [ServiceLink(service_id=1, infra_id=10)]

def test_linked_service_with_git_credential_is_runnable():
    for stage in Stage:
        result = is_runnable(make_service(), stage, LINKED, make_stores().git)
        assert result.runnable
        assert not result.disabled
        assert result.reason is None

def test_missing_infra_disables_everything_but_source():
    links = [ServiceLink(service_id=2, infra_id=10), ServiceLink(service_id=1, infra_id=None)]
    git = make_stores().git

    assert is_runnable(make_service(), Stage.SOURCE, links, git).runnable
    for stage in (Stage.BUILD, Stage.DEPLOY, Stage.OPERATE):
        result = is_runnable(make_service(), stage, links, git)
        assert result.disabled
        assert result.reason == REASON_NO_INFRA

def test_missing_git_credential_disables_stage():
    result = is_runnable(make_service(), Stage.BUILD, LINKED, make_stores(git=False).git)
    assert result.reason == REASON_NO_GIT_CREDENTIAL

def test_git_credential_for_other_host_does_not_match():
    service = make_service(git_remote_url="https://gitlab.other.io/team/api.git")
    result = is_runnable(service, Stage.SOURCE, LINKED, make_stores().git)
    assert result.reason == REASON_NO_GIT_CREDENTIAL

def test_missing_hop_credentials_do_not_disable():
    result = is_runnable(make_service(), Stage.DEPLOY, LINKED, make_stores(server=False, registry=False).git)
    assert result.runnable

def test_tracked_pair_is_disabled_only_for_its_stage():
    tracked = TrackedExecution(service_id=1, service_name="api", step_name="build", requested_stage=Stage.BUILD)
    git = make_stores().git

    assert is_runnable(make_service(), Stage.BUILD, LINKED, git, tracked).reason == REASON_IN_PROGRESS
    assert is_runnable(make_service(), Stage.DEPLOY, LINKED, git, tracked).runnable
    assert is_runnable(make_service(id=2), Stage.BUILD, [ServiceLink(service_id=2, infra_id=3)], git, tracked).runnable
