"""
Adapters from legacy issue payload shapes to the canonical issue fields.

Older clients send ``severity`` instead of ``priority``, ``imageURL`` or
``imageUrl``, ``issueType`` for the category, organization display names in
``organizationName``, numeric ids and the ``reported``/``in-progress`` status
vocabulary. Everything is normalized here so services only see canonical
values.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional

from civicconnect.models.issue import IssueStatus
from civicconnect.services.organization_directory import find_organization

LEGACY_STATUSES: Dict[str, IssueStatus] = {
    "reported": IssueStatus.OPEN,
    "open": IssueStatus.OPEN,
    "in-progress": IssueStatus.IN_PROGRESS,
    "in_progress": IssueStatus.IN_PROGRESS,
    "inprogress": IssueStatus.IN_PROGRESS,
    "resolved": IssueStatus.RESOLVED,
}

# legacy key -> canonical key; the first present key wins
_FIELD_ALIASES = (
    ("severity", "priority"),
    ("imageURL", "image_url"),
    ("imageUrl", "image_url"),
    ("issueType", "category"),
    ("organizationName", "assigned_to"),
    ("assignedTo", "assigned_to"),
    ("organization_name", "assigned_to"),
)


def normalize_status(value: Any) -> Any:
    """Map any known status spelling to ``IssueStatus``; unknown values pass through."""
    if isinstance(value, IssueStatus):
        return value
    if isinstance(value, str):
        return LEGACY_STATUSES.get(value.strip().lower(), value)
    return value


def normalize_priority(value: Any) -> Any:
    if isinstance(value, str):
        return value.strip().lower()
    return value


def normalize_organization_reference(value: Optional[str]) -> Optional[str]:
    """Translate a display name into the directory slug; unknown names are kept."""
    if not value:
        return None
    entry = find_organization(value)
    return entry.id if entry else value


def normalize_issue_id(value: Any) -> str:
    return str(value)


def normalize_issue_payload(raw: Mapping[str, Any]) -> Dict[str, Any]:
    """Return a copy of ``raw`` with legacy keys and values made canonical."""
    data = dict(raw)
    for legacy_key, canonical_key in _FIELD_ALIASES:
        if legacy_key in data:
            value = data.pop(legacy_key)
            if data.get(canonical_key) is None:
                data[canonical_key] = value

    if "status" in data:
        data["status"] = normalize_status(data["status"])
    if data.get("priority") is not None:
        data["priority"] = normalize_priority(data["priority"])
    if "assigned_to" in data:
        data["assigned_to"] = normalize_organization_reference(data["assigned_to"])
    if data.get("category"):
        data["category"] = str(data["category"]).strip().lower()
    if "id" in data and data["id"] is not None:
        data["id"] = normalize_issue_id(data["id"])
    return data
