"""
Authentication models for principal profiles.
"""

from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Column, String, Boolean, DateTime

from civicconnect.core.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """Stored profile and credentials for a principal (citizen or organization)."""

    __tablename__ = "users"

    uid = Column(String(64), primary_key=True, default=lambda: str(uuid4()))
    username = Column(String(100), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    hashed_password = Column(String(255), nullable=False)
    is_organization = Column(Boolean, default=False, nullable=False)
    # Organization slug from the directory when is_organization is set
    organization_name = Column(String(64))
    role = Column(String(50))
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
    last_login_at = Column(DateTime(timezone=True))

    def __repr__(self) -> str:
        return f"<User(username={self.username}, is_organization={self.is_organization})>"
