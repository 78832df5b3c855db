"""
Identity Models

Credential-store records: email, password hash and the claims bag that is
stamped into every access token issued for the identity.
"""

from datetime import datetime

from sqlalchemy import JSON, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from classquiz.modules.shared import BaseModel


class Identity(BaseModel):
    """
    Authenticating identity.

    app_metadata holds the authorization claims (role, school_id,
    classroom_id) and is only written by server-side flows. user_metadata
    holds self-described data such as the display name.
    """

    __tablename__ = "identities"

    email: Mapped[str] = mapped_column(String(255), unique=True, index=True, nullable=False)
    password_hash: Mapped[str] = mapped_column(Text, nullable=False)
    email_confirmed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    app_metadata: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    user_metadata: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)

    def __repr__(self) -> str:
        return f"<Identity(id={self.id}, email={self.email})>"
