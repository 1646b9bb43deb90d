"""Tests for the organization directory and category resolver."""

from civicconnect.services.organization_directory import (
    ORGANIZATIONS,
    IssueCategory,
    find_organization,
    get_organization,
    resolve_organizations,
)


def test_directory_has_unique_slugs_and_names():
    assert len(ORGANIZATIONS) == 19
    assert len({org.id for org in ORGANIZATIONS}) == len(ORGANIZATIONS)
    assert len({org.name for org in ORGANIZATIONS}) == len(ORGANIZATIONS)


def test_every_category_is_serviced():
    for category in IssueCategory:
        assert resolve_organizations(category.value), category


def test_resolve_roads_in_directory_order():
    ids = [org.id for org in resolve_organizations("roads")]
    assert ids == ["pwd", "mmrda", "muni-roads"]


def test_resolve_waterlogging_starts_with_drainage():
    ids = [org.id for org in resolve_organizations("waterlogging")]
    assert ids[0] == "bmc-drainage"
    assert "pwd" in ids
    assert "mjp" in ids


def test_resolve_unknown_category_returns_empty():
    assert resolve_organizations("volcano") == []
    assert resolve_organizations(None) == []


def test_every_match_handles_the_category():
    for category in IssueCategory:
        for org in resolve_organizations(category.value):
            assert category.value in org.issue_types


def test_get_organization_by_slug():
    assert get_organization("pwd").name == "Public Works Department (PWD)"
    assert get_organization("missing") is None


def test_find_organization_accepts_display_name():
    entry = find_organization("Tata Power")
    assert entry is not None
    assert entry.id == "tata-power"
    assert find_organization("tata-power") is entry
    assert find_organization("") is None
    assert find_organization("Nobody") is None
