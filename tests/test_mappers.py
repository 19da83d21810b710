"""
Unit tests for the fact mappers.

These tests verify that:
1. Facts copy the raw row and add upload, account and resolved IDs
2. Resolution short-circuits at the first failing level
3. Issues are deduplicated, row-counted and level-local
4. Issues for keys that resolved on another row are suppressed, and rows
   resolving through different match types never share a key
5. Mapping is deterministic
"""

import pytest

from admap.lookup.index import build_lookup_index
from admap.mapping.mappers import (
    MAPPERS_BY_REPORT_TYPE,
    MappingContext,
    get_mapper,
    map_campaign_rows,
    map_placement_rows,
    map_stis_rows,
    map_targeting_rows,
)
from admap.resolve.issues import IssueCollector


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def context():
    return MappingContext(
        upload_id="u1",
        account_id="acct",
        exported_at="2025-01-20T08:00:00Z",
        reference_date="2025-01-20"
    )


@pytest.fixture
def lookup():
    return build_lookup_index(
        campaigns=[
            {"campaign_id": "c1", "campaign_name_norm": "brand", "portfolio_id": "p1"},
            {"campaign_id": "c2", "campaign_name_norm": "generic", "portfolio_id": None},
            {"campaign_id": "c3", "campaign_name_norm": "generic", "portfolio_id": None},
        ],
        ad_groups=[
            {"ad_group_id": "ag1", "campaign_id": "c1", "ad_group_name_norm": "exact"},
        ],
        targets=[
            {
                "target_id": "t1",
                "ad_group_id": "ag1",
                "expression_norm": "running shoes",
                "match_type": "Exact",
                "is_negative": False,
            },
            {
                "target_id": "t2",
                "ad_group_id": "ag1",
                "expression_norm": "cheap",
                "match_type": "Negative Phrase",
                "is_negative": True,
            },
        ],
        portfolios=[{"portfolio_id": "p1", "portfolio_name_norm": "shoes"}],
    )


def make_row(
    campaign="brand",
    ad_group="exact",
    targeting="running shoes",
    match_type_raw="Exact",
    match_type_norm="EXACT",
    portfolio=None,
    **extra
):
    """Helper to create a raw report row for testing."""
    row = {
        "date": "2025-01-19",
        "portfolio_name_norm": portfolio,
        "campaign_name_raw": campaign.title(),
        "campaign_name_norm": campaign,
        "ad_group_name_norm": ad_group,
        "targeting_norm": targeting,
        "match_type_raw": match_type_raw,
        "match_type_norm": match_type_norm,
        "impressions": 100,
        "clicks": 5,
        "spend": 2.5,
    }
    row.update(extra)
    return row


# =============================================================================
# CAMPAIGN AND PLACEMENT
# =============================================================================

class TestCampaignMapper:

    def test_fact_copies_row_and_adds_ids(self, lookup, context):
        row = make_row(start_time="08:00")

        result = map_campaign_rows([row], lookup, context)

        assert result.issues == []
        fact = result.facts[0]
        assert fact["impressions"] == 100
        assert fact["start_time"] == "08:00"
        assert fact["upload_id"] == "u1"
        assert fact["account_id"] == "acct"
        assert fact["exported_at"] == "2025-01-20T08:00:00Z"
        assert fact["campaign_id"] == "c1"
        assert fact["portfolio_id"] == "p1"
        assert "campaign_id" not in row

    def test_unmapped_campaign_dropped_with_one_issue(self, lookup, context):
        rows = [make_row(campaign="unknown"), make_row(campaign="unknown"), make_row()]

        result = map_campaign_rows(rows, lookup, context)

        assert len(result.facts) == 1
        assert len(result.issues) == 1
        issue = result.issues[0]
        assert issue.entity_level == "campaign"
        assert issue.issue_type == "unmapped"
        assert issue.key_json == {"campaign_name_norm": "unknown", "portfolio_name_norm": None}
        assert issue.row_count == 2

    def test_ambiguous_campaign_carries_candidates(self, lookup, context):
        result = map_campaign_rows([make_row(campaign="generic")], lookup, context)

        issue = result.issues[0]
        assert issue.issue_type == "ambiguous"
        assert [c["entity_id"] for c in issue.candidates_json] == ["c2", "c3"]

    def test_placement_facts_carry_campaign_and_portfolio(self, lookup, context):
        row = make_row(placement_code="TOS")

        result = map_placement_rows([row], lookup, context)

        assert result.facts[0]["campaign_id"] == "c1"
        assert result.facts[0]["portfolio_id"] == "p1"
        assert result.facts[0]["placement_code"] == "TOS"


# =============================================================================
# TARGETING
# =============================================================================

class TestTargetingMapper:

    def test_full_hierarchy(self, lookup, context):
        result = map_targeting_rows([make_row()], lookup, context)

        fact = result.facts[0]
        assert (fact["campaign_id"], fact["ad_group_id"], fact["target_id"]) == ("c1", "ag1", "t1")
        assert result.issues == []

    def test_negative_keyword(self, lookup, context):
        row = make_row(targeting="cheap", match_type_raw="Negative Phrase", match_type_norm="PHRASE")
        result = map_targeting_rows([row], lookup, context)
        assert result.facts[0]["target_id"] == "t2"

    def test_campaign_failure_short_circuits(self, lookup, context):
        result = map_targeting_rows([make_row(campaign="unknown", ad_group="missing")], lookup, context)

        assert result.facts == []
        assert [(i.entity_level, i.issue_type) for i in result.issues] == [("campaign", "unmapped")]

    def test_ad_group_issue_key(self, lookup, context):
        result = map_targeting_rows([make_row(ad_group="missing")], lookup, context)

        assert len(result.issues) == 1
        assert result.issues[0].entity_level == "ad_group"
        assert result.issues[0].key_json == {
            "campaign_name_norm": "brand",
            "portfolio_name_norm": None,
            "ad_group_name_norm": "missing",
        }

    def test_target_issue_key(self, lookup, context):
        row = make_row(targeting="sandals", match_type_raw="Negative Exact", match_type_norm="EXACT")

        result = map_targeting_rows([row], lookup, context)

        assert result.issues[0].entity_level == "target"
        assert result.issues[0].key_json == {
            "campaign_name_norm": "brand",
            "portfolio_name_norm": None,
            "ad_group_name_norm": "exact",
            "targeting_norm": "sandals",
            "match_type_norm": "EXACT",
            "is_negative": True,
        }

    def test_ambiguity_is_level_local(self, context):
        lookup = build_lookup_index(
            campaigns=[{"campaign_id": "c1", "campaign_name_norm": "brand"}],
            ad_groups=[
                {"ad_group_id": "ag1", "campaign_id": "c1", "ad_group_name_norm": "exact"},
                {"ad_group_id": "ag2", "campaign_id": "c1", "ad_group_name_norm": "exact"},
            ],
        )

        result = map_targeting_rows([make_row()], lookup, context)

        assert [(i.entity_level, i.issue_type) for i in result.issues] == [("ad_group", "ambiguous")]

    def test_issues_flushed_in_level_order(self, lookup, context):
        rows = [
            make_row(targeting="sandals"),
            make_row(ad_group="missing"),
            make_row(campaign="unknown"),
        ]

        result = map_targeting_rows(rows, lookup, context)

        assert [i.entity_level for i in result.issues] == ["campaign", "ad_group", "target"]

    def test_raw_match_type_separates_issue_keys(self, lookup, context):
        """
        Rows without a normalized match type resolve through their raw match
        type, so a failing row keeps its own issue when a sibling resolves.
        """
        rows = [
            make_row(match_type_raw="Phrase", match_type_norm=None),
            make_row(match_type_raw="Exact", match_type_norm=None),
        ]

        result = map_targeting_rows(rows, lookup, context)

        assert [f["target_id"] for f in result.facts] == ["t1"]
        assert len(result.issues) == 1
        assert result.issues[0].key_json["match_type_norm"] == "PHRASE"
        assert result.issues[0].row_count == 1

    def test_issue_dropped_when_same_key_resolved_elsewhere(self, lookup, context):
        rows = [
            make_row(match_type_raw="Exact", match_type_norm=None),
            make_row(match_type_raw="Exact", match_type_norm="EXACT"),
        ]

        result = map_targeting_rows(rows, lookup, context)

        assert len(result.facts) == 2
        assert result.issues == []

    def test_stis_raw_match_type_separates_issue_keys(self, lookup, context):
        rows = [
            make_row(match_type_raw="Exact", match_type_norm=None, customer_search_term_norm="shoes"),
            make_row(match_type_raw="Broad", match_type_norm=None, customer_search_term_norm="shoes"),
        ]

        result = map_stis_rows(rows, lookup, context)

        assert len(result.facts) == 1
        assert [i.key_json["match_type_norm"] for i in result.issues] == ["BROAD"]

    def test_issue_kept_when_key_never_resolves(self, lookup, context):
        rows = [
            make_row(match_type_raw="Broad", match_type_norm=None),
            make_row(match_type_raw="Broad", match_type_norm=None),
        ]

        result = map_targeting_rows(rows, lookup, context)

        assert result.facts == []
        assert len(result.issues) == 1
        assert result.issues[0].row_count == 2

    def test_shared_collector(self, lookup, context):
        collector = IssueCollector()
        map_targeting_rows([make_row(campaign="unknown")], lookup, context, collector=collector)
        result = map_targeting_rows([make_row(campaign="unknown")], lookup, context, collector=collector)

        assert len(result.issues) == 1
        assert result.issues[0].row_count == 2

    def test_deterministic(self, lookup, context):
        rows = [
            make_row(),
            make_row(campaign="generic"),
            make_row(ad_group="missing"),
            make_row(targeting="sandals"),
            make_row(campaign="unknown"),
        ]

        first = map_targeting_rows(rows, lookup, context)
        second = map_targeting_rows(rows, lookup, context)

        assert first.facts == second.facts
        assert [i.to_dict() for i in first.issues] == [i.to_dict() for i in second.issues]


# =============================================================================
# SEARCH TERMS
# =============================================================================

class TestStisMapper:

    def test_wildcard_rolls_up(self, lookup, context):
        row = make_row(targeting=" * ", match_type_raw="-", match_type_norm=None,
                       customer_search_term_norm="red shoes")

        result = map_stis_rows([row], lookup, context)

        fact = result.facts[0]
        assert fact["target_id"] is None
        assert fact["target_key"] == "__ROLLUP__"
        assert fact["ad_group_id"] == "ag1"
        assert result.issues == []

    def test_target_key_equals_target_id(self, lookup, context):
        result = map_stis_rows([make_row(customer_search_term_norm="running shoes")], lookup, context)

        fact = result.facts[0]
        assert fact["target_id"] == "t1"
        assert fact["target_key"] == "t1"

    def test_unresolved_target_recorded(self, lookup, context):
        result = map_stis_rows([make_row(targeting="sandals")], lookup, context)

        assert result.facts == []
        assert result.issues[0].entity_level == "target"

    def test_wildcard_still_requires_ad_group(self, lookup, context):
        result = map_stis_rows([make_row(ad_group="missing", targeting="*")], lookup, context)

        assert result.facts == []
        assert result.issues[0].entity_level == "ad_group"


# =============================================================================
# REGISTRY
# =============================================================================

class TestRegistry:

    def test_all_report_types_registered(self):
        assert MAPPERS_BY_REPORT_TYPE["sp_campaign"] is map_campaign_rows
        assert MAPPERS_BY_REPORT_TYPE["sp_placement"] is map_placement_rows
        assert MAPPERS_BY_REPORT_TYPE["sp_targeting"] is map_targeting_rows
        assert MAPPERS_BY_REPORT_TYPE["sp_stis"] is map_stis_rows

    def test_unknown_report_type(self):
        with pytest.raises(ValueError):
            get_mapper("sb_campaign")
