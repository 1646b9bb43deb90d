"""
Issue and comment models.
"""
from datetime import datetime, timezone
from sqlalchemy import Column, String, Float, DateTime, Text, ForeignKey
import uuid
import enum

from civicconnect.core.database import Base


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class IssueStatus(str, enum.Enum):
    """Issue lifecycle states."""
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    RESOLVED = "resolved"


class IssuePriority(str, enum.Enum):
    """Issue priority levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class Issue(Base):
    """
    A reported civic problem.
    """
    __tablename__ = "issues"

    id = Column(String(64), primary_key=True, default=lambda: str(uuid.uuid4()))

    # Report
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    category = Column(String(64), index=True)
    image_url = Column(String(1024))

    # Location
    location = Column(Text, nullable=False)
    latitude = Column(Float)
    longitude = Column(Float)

    # Lifecycle
    status = Column(String(32), nullable=False, default=IssueStatus.OPEN.value, index=True)
    priority = Column(String(32), nullable=False, default=IssuePriority.MEDIUM.value)

    # Ownership
    user_id = Column(String(64), nullable=False, index=True)
    assigned_to = Column(String(64), ForeignKey("organizations.id"), index=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False, index=True)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class Comment(Base):
    """
    Discussion entries attached to an issue.
    """
    __tablename__ = "comments"

    id = Column(String(64), primary_key=True, default=lambda: str(uuid.uuid4()))
    content = Column(Text, nullable=False)
    user_id = Column(String(64), nullable=False)
    issue_id = Column(String(64), ForeignKey("issues.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
