"""
Credential Store

Creates, deletes and authenticates identities and holds their
authorization claims. The store is a collaborator of the onboarding flows,
not part of the relational session they use: SqlCredentialStore opens and
commits its own sessions, so a failure on one side never rolls back the
other and compensation has to be explicit.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any, Protocol

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from classquiz.core.database import async_session_maker
from classquiz.core.security import ACCESS_TOKEN_TYPE, decode_token, hash_password, verify_password
from classquiz.modules.identity.models import Identity
from classquiz.modules.users.models import UserRole

logger = logging.getLogger(__name__)


class CredentialStoreError(Exception):
    """Base exception for credential store failures."""


class DuplicateIdentityError(CredentialStoreError):
    def __init__(self, email: str):
        super().__init__(f"An account already exists for {email}")


class IdentityNotFoundError(CredentialStoreError):
    def __init__(self, identity_id: uuid.UUID):
        super().__init__(f"Identity {identity_id} not found")


class InvalidCredentialError(CredentialStoreError):
    pass


@dataclass(frozen=True)
class IdentityClaims:
    """Authorization claims bound to an identity."""

    role: UserRole
    school_id: uuid.UUID | None = None
    classroom_id: uuid.UUID | None = None

    def to_metadata(self) -> dict[str, Any]:
        return {
            "role": self.role.value,
            "school_id": str(self.school_id) if self.school_id else None,
            "classroom_id": str(self.classroom_id) if self.classroom_id else None,
        }

    @classmethod
    def from_metadata(cls, metadata: dict[str, Any] | None) -> "IdentityClaims | None":
        """Parse an app_metadata bag; None when no role has been assigned yet."""
        if not metadata or not metadata.get("role"):
            return None
        school_id = metadata.get("school_id")
        classroom_id = metadata.get("classroom_id")
        return cls(
            role=UserRole(metadata["role"]),
            school_id=uuid.UUID(school_id) if school_id else None,
            classroom_id=uuid.UUID(classroom_id) if classroom_id else None,
        )


class CredentialStore(Protocol):
    async def create_identity(
        self,
        email: str,
        password: str,
        *,
        preconfirmed: bool = False,
        user_metadata: dict[str, Any] | None = None,
    ) -> uuid.UUID: ...

    async def delete_identity(self, identity_id: uuid.UUID) -> None: ...

    async def set_claims(self, identity_id: uuid.UUID, claims: IdentityClaims) -> None: ...

    async def get_claims(self, identity_id: uuid.UUID) -> IdentityClaims | None: ...

    async def authenticate(self, email: str, password: str) -> Identity | None: ...

    async def verify_token(self, bearer_token: str) -> uuid.UUID: ...


class SqlCredentialStore:
    """Credential store kept in the `identities` table, one session per call."""

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]):
        self._session_maker = session_maker

    async def create_identity(
        self,
        email: str,
        password: str,
        *,
        preconfirmed: bool = False,
        user_metadata: dict[str, Any] | None = None,
    ) -> uuid.UUID:
        """
        Create an identity.

        Raises:
            DuplicateIdentityError: If the email is already registered
        """
        normalized_email = email.strip().lower()

        async with self._session_maker() as db:
            existing = await db.execute(
                select(Identity.id).where(Identity.email == normalized_email)
            )
            if existing.scalar_one_or_none() is not None:
                raise DuplicateIdentityError(normalized_email)

            identity = Identity(
                email=normalized_email,
                password_hash=hash_password(password),
                email_confirmed_at=datetime.now(UTC) if preconfirmed else None,
                app_metadata={},
                user_metadata=user_metadata or {},
            )
            db.add(identity)
            try:
                await db.commit()
            except IntegrityError as e:
                await db.rollback()
                raise DuplicateIdentityError(normalized_email) from e

            logger.info(f"Created identity {identity.id}")
            return identity.id

    async def delete_identity(self, identity_id: uuid.UUID) -> None:
        async with self._session_maker() as db:
            await db.execute(delete(Identity).where(Identity.id == identity_id))
            await db.commit()
        logger.info(f"Deleted identity {identity_id}")

    async def set_claims(self, identity_id: uuid.UUID, claims: IdentityClaims) -> None:
        """
        Replace the authorization claims of an identity.

        Raises:
            IdentityNotFoundError: If the identity does not exist
        """
        async with self._session_maker() as db:
            identity = await db.get(Identity, identity_id)
            if identity is None:
                raise IdentityNotFoundError(identity_id)
            # Reassign rather than mutate so the JSON column is marked dirty
            identity.app_metadata = claims.to_metadata()
            await db.commit()
        logger.info(f"Set claims on identity {identity_id}: role={claims.role.value}")

    async def get_claims(self, identity_id: uuid.UUID) -> IdentityClaims | None:
        async with self._session_maker() as db:
            identity = await db.get(Identity, identity_id)
            if identity is None:
                raise IdentityNotFoundError(identity_id)
            return IdentityClaims.from_metadata(identity.app_metadata)

    async def authenticate(self, email: str, password: str) -> Identity | None:
        """Return the identity for valid credentials, None otherwise."""
        async with self._session_maker() as db:
            result = await db.execute(
                select(Identity).where(Identity.email == email.strip().lower())
            )
            identity = result.scalar_one_or_none()

        if identity is None or not verify_password(password, identity.password_hash):
            return None
        return identity

    async def verify_token(self, bearer_token: str) -> uuid.UUID:
        """
        Resolve a bearer access token to the identity it was issued for.

        Raises:
            InvalidCredentialError: Bad signature, expired, wrong type or
                the identity no longer exists
        """
        payload = decode_token(bearer_token)
        if payload is None or payload.get("type") != ACCESS_TOKEN_TYPE:
            raise InvalidCredentialError("Invalid or expired access token")

        try:
            identity_id = uuid.UUID(payload["sub"])
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidCredentialError("Token subject is missing or malformed") from e

        async with self._session_maker() as db:
            if await db.get(Identity, identity_id) is None:
                raise InvalidCredentialError("Identity no longer exists")

        return identity_id


def get_credential_store() -> CredentialStore:
    """FastAPI dependency providing the credential store."""
    return SqlCredentialStore(async_session_maker)
