"""
SQLAlchemy database models.
"""

from civicconnect.models.auth import User
from civicconnect.models.organization import Organization
from civicconnect.models.issue import Issue, Comment, IssueStatus, IssuePriority

__all__ = [
    "User",
    "Organization",
    "Issue",
    "Comment",
    "IssueStatus",
    "IssuePriority",
]
