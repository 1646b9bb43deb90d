"""
Predefined organizations and the category-to-organization resolver.

The directory is a small, fixed table, so lookups are linear scans in
directory order. Order matters: auto-assignment picks the first match.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import List, Optional, Tuple


class IssueCategory(str, enum.Enum):
    """Issue categories serviced by the directory."""
    WATERLOGGING = "waterlogging"
    GARBAGE = "garbage"
    ROADS = "roads"
    PUBLIC_PLACES = "public_places"
    STREETLIGHTS = "streetlights"
    WATER_SUPPLY = "water_supply"


@dataclass(frozen=True)
class DirectoryEntry:
    id: str
    name: str
    description: str
    issue_types: Tuple[str, ...]

    def handles(self, category: Optional[str]) -> bool:
        return category is not None and category in self.issue_types


def _entry(id: str, name: str, description: str, *issue_types: IssueCategory) -> DirectoryEntry:
    return DirectoryEntry(id, name, description, tuple(t.value for t in issue_types))


ORGANIZATIONS: Tuple[DirectoryEntry, ...] = (
    _entry(
        "bmc-drainage",
        "BMC Stormwater Drain Department",
        "Handles drainage systems and waterlogging issues in Mumbai",
        IssueCategory.WATERLOGGING,
    ),
    _entry(
        "pwd",
        "Public Works Department (PWD)",
        "Responsible for construction and maintenance of public infrastructure",
        IssueCategory.WATERLOGGING,
        IssueCategory.ROADS,
    ),
    _entry(
        "mjp",
        "Maharashtra Jeevan Pradhikaran (MJP)",
        "Water supply and sanitation in Maharashtra",
        IssueCategory.WATERLOGGING,
        IssueCategory.WATER_SUPPLY,
    ),
    _entry(
        "mmrda",
        "Mumbai Metropolitan Region Development Authority (MMRDA)",
        "Infrastructure development in Mumbai Metropolitan Region",
        IssueCategory.ROADS,
    ),
    _entry(
        "bmc-waste",
        "BMC Solid Waste Management Department",
        "Waste collection and disposal in Mumbai",
        IssueCategory.GARBAGE,
    ),
    _entry(
        "mpcb",
        "Maharashtra Pollution Control Board (MPCB)",
        "Monitoring and control of pollution in Maharashtra",
        IssueCategory.GARBAGE,
    ),
    _entry(
        "sba",
        "Swachh Bharat Abhiyan (SBA) Local Ward Office",
        "Cleanliness mission at local level",
        IssueCategory.GARBAGE,
        IssueCategory.PUBLIC_PLACES,
    ),
    _entry(
        "muni-waste",
        "Municipal Corporation Waste Management Division",
        "Local waste management services",
        IssueCategory.GARBAGE,
    ),
    _entry(
        "muni-roads",
        "Municipal Road Maintenance Department",
        "Road repair and maintenance at local level",
        IssueCategory.ROADS,
    ),
    _entry(
        "bmc-garden",
        "BMC - Garden & Recreation Department",
        "Maintenance of public parks and gardens",
        IssueCategory.PUBLIC_PLACES,
    ),
    _entry(
        "muda",
        "Mumbai Urban Development Authority (MUDA)",
        "Urban planning and development in Mumbai",
        IssueCategory.PUBLIC_PLACES,
    ),
    _entry(
        "suda",
        "State Urban Development Authority (SUDA)",
        "Urban planning at state level",
        IssueCategory.PUBLIC_PLACES,
    ),
    _entry(
        "muni-parks",
        "Municipal Park Maintenance Division",
        "Maintenance of local parks and recreational areas",
        IssueCategory.PUBLIC_PLACES,
    ),
    _entry(
        "mseb",
        "Maharashtra State Electricity Board (MSEB)",
        "Electricity supply and infrastructure in Maharashtra",
        IssueCategory.STREETLIGHTS,
    ),
    _entry(
        "tata-power",
        "Tata Power",
        "Private electricity distribution company",
        IssueCategory.STREETLIGHTS,
    ),
    _entry(
        "adani-electricity",
        "Adani Electricity Mumbai",
        "Private electricity distribution company",
        IssueCategory.STREETLIGHTS,
    ),
    _entry(
        "local-electricity",
        "Local Municipal Electricity Department",
        "Municipal electricity distribution and maintenance",
        IssueCategory.STREETLIGHTS,
    ),
    _entry(
        "bmc-water",
        "BMC Water Supply Department",
        "Water supply and distribution in Mumbai",
        IssueCategory.WATER_SUPPLY,
    ),
    _entry(
        "water-management",
        "City Water Management Authorities",
        "Local water supply and management",
        IssueCategory.WATER_SUPPLY,
    ),
)


def resolve_organizations(category: Optional[str]) -> List[DirectoryEntry]:
    """Organizations servicing ``category``, in directory order (empty if none)."""
    return [org for org in ORGANIZATIONS if org.handles(category)]


def get_organization(org_id: Optional[str]) -> Optional[DirectoryEntry]:
    for org in ORGANIZATIONS:
        if org.id == org_id:
            return org
    return None


def find_organization(reference: Optional[str]) -> Optional[DirectoryEntry]:
    """Look an organization up by slug or, for legacy payloads, display name."""
    if not reference:
        return None
    for org in ORGANIZATIONS:
        if reference in (org.id, org.name):
            return org
    return None
