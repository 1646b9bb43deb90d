"""
Runtime organization records.

Rows are seeded from the static organization directory; ``uid`` links the
record to the organization principal that manages it and ``assigned_issues``
mirrors the issues whose ``assigned_to`` points here.
"""

from datetime import datetime, timezone

from sqlalchemy import Column, String, Text, DateTime, JSON

from civicconnect.core.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Organization(Base):
    __tablename__ = "organizations"

    id = Column(String(64), primary_key=True)
    name = Column(String(255), unique=True, nullable=False)
    description = Column(Text)
    issue_types = Column(JSON, nullable=False, default=list)
    assigned_issues = Column(JSON, nullable=False, default=list)
    uid = Column(String(64), unique=True, index=True)
    email = Column(String(255))
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)

    def __repr__(self) -> str:
        return f"<Organization(id={self.id}, assigned={len(self.assigned_issues or [])})>"
