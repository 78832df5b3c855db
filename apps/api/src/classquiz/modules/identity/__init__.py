"""
Identity module - credential store for authentication and claims.
"""

from classquiz.modules.identity.store import (
    CredentialStore,
    CredentialStoreError,
    DuplicateIdentityError,
    IdentityClaims,
    IdentityNotFoundError,
    InvalidCredentialError,
    SqlCredentialStore,
    get_credential_store,
)

__all__ = [
    "CredentialStore",
    "CredentialStoreError",
    "DuplicateIdentityError",
    "IdentityClaims",
    "IdentityNotFoundError",
    "InvalidCredentialError",
    "SqlCredentialStore",
    "get_credential_store",
]
