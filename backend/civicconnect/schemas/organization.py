"""Organization directory response models."""

from __future__ import annotations

from typing import List

from civicconnect.schemas.issue import CamelModel


class OrganizationResponse(CamelModel):
    id: str
    name: str
    description: str
    issue_types: List[str]
