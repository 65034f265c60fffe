from controller.src.stores.credentials import (
    GitCredentialRepository,
    ServerCredentialRepository,
    RegistryCredentialRepository,
    CredentialStores,
    RedisCredentialStore,
    normalize_base_url,
)

__all__ = [
    "GitCredentialRepository",
    "ServerCredentialRepository",
    "RegistryCredentialRepository",
    "CredentialStores",
    "RedisCredentialStore",
    "normalize_base_url",
]
