"""
凭据存储访问
"""

from proxy_dispatch.services.credentials.store import (
    CredentialProvider,
    CredentialStore,
    ExplicitCredentialSource,
    JsonFileStorage,
    PersonalCredentialSource,
    PoolCredentialSource,
)

__all__ = [
    "CredentialProvider",
    "CredentialStore",
    "ExplicitCredentialSource",
    "JsonFileStorage",
    "PersonalCredentialSource",
    "PoolCredentialSource",
]
