"""Tests for credential resolution."""

import pytest

from controller.src.models import (
    CredentialKind,
    RegistryCredential,
    ServerCredential,
    SshHop,
    Stage,
)
from controller.src.services.credential_resolver import (
    find_registry_credential,
    get_base_url_from_git_url,
    resolve,
)
from controller.src.stores import RegistryCredentialRepository, ServerCredentialRepository
from controller.tests.fakes import make_service, make_stores

HOPS = [SshHop(host="bastion.example.com", port=2222), SshHop(host="10.0.0.1")]

@pytest.mark.parametrize("url,expected", [
    ("https://git.example.com/team/api.git", "https://git.example.com"),
    ("https://git.example.com:8443/team/api.git", "https://git.example.com:8443"),
    ("http://git.local/repo", "http://git.local"),
    ("git@git.example.com:team/api.git", "https://git.example.com"),
    ("ssh://git@git.example.com/team/api.git", "https://git.example.com"),
    ("git.example.com/", "git.example.com"),
])
def test_base_url_from_git_url(url, expected):
    assert get_base_url_from_git_url(url) == expected

def test_build_resolves_all_three_classes():
    stores = make_stores()
    stores.servers = ServerCredentialRepository([
        ServerCredential(host="bastion.example.com", port=2222, username="jump", password="j"),
        ServerCredential(host="10.0.0.1", username="deploy", password="pw"),
    ])

    resolution = resolve(make_service(), Stage.BUILD, HOPS, stores)

    assert resolution.is_complete
    assert resolution.git.token == "glpat-1"
    assert [(h.host, h.port, h.username) for h in resolution.hops] == [
        ("bastion.example.com", 2222, "jump"),
        ("10.0.0.1", 22, "deploy"),
    ]
    assert resolution.registry.registry_url == "harbor.example.com"

def test_missing_hops_are_listed_per_host():
    resolution = resolve(make_service(), Stage.DEPLOY, HOPS, make_stores())

    assert not resolution.is_complete
    assert resolution.missing_kinds() == [CredentialKind.SERVER]
    assert [m.key for m in resolution.missing] == ["bastion.example.com:2222"]
    assert resolution.git is None

def test_override_wins_over_stored_credential():
    override = ServerCredential(host="10.0.0.1", username="typed", password="typed-pw")
    resolution = resolve(
        make_service(), Stage.OPERATE, [SshHop(host="10.0.0.1")], make_stores(), overrides=[override]
    )
    assert resolution.hops[0].username == "typed"
    assert resolution.registry is None

def test_source_needs_only_git():
    resolution = resolve(make_service(), Stage.SOURCE, HOPS, make_stores(git=False, server=False))
    assert resolution.missing_kinds() == [CredentialKind.GIT]
    assert resolution.missing[0].key == "https://git.example.com"
    assert resolution.hops == []

def test_service_without_registry_needs_no_registry_credential():
    service = make_service(registry_config=None)
    resolution = resolve(service, Stage.BUILD, [SshHop(host="10.0.0.1")], make_stores(registry=False))
    assert resolution.is_complete
    assert resolution.to_registry_payload() is None

def test_registry_match_prefers_longest_stored_url():
    repository = RegistryCredentialRepository([
        RegistryCredential(registry_url="harbor.example.com", username="a", password="a"),
        RegistryCredential(registry_url="harbor.example.com/team", username="b", password="b"),
        RegistryCredential(registry_url="", username="c", password="c"),
    ])
    assert find_registry_credential("harbor.example.com/team/api", repository).username == "b"
    assert find_registry_credential("harbor.example.com/team", repository).username == "b"
    assert find_registry_credential("registry.other.io", repository) is None
    assert find_registry_credential("", repository) is None
