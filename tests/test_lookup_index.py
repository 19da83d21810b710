"""Tests for building the lookup index."""

from datetime import date

import pytest

from admap.lookup.index import (
    AdGroupCandidate,
    CampaignCandidate,
    TargetCandidate,
    build_lookup_index,
)


class TestBuildLookupIndex:

    def test_campaigns_indexed_by_name_and_id(self):
        index = build_lookup_index(campaigns=[
            {"campaign_id": "c1", "campaign_name_norm": "brand", "portfolio_id": "p1"},
            {"campaign_id": "c2", "campaign_name_norm": "brand", "portfolio_id": None},
        ])

        assert index.campaign_by_name["brand"] == (
            CampaignCandidate("c1", "p1"),
            CampaignCandidate("c2", None),
        )
        assert index.campaign_by_id["c2"].portfolio_id is None

    def test_ad_groups_keyed_by_campaign_and_name(self):
        index = build_lookup_index(ad_groups=[
            {"ad_group_id": "ag1", "campaign_id": "c1", "ad_group_name_norm": "exact"},
        ])

        assert index.ad_group_by_campaign_name[("c1", "exact")] == (AdGroupCandidate("ag1", "c1"),)
        assert index.ad_group_by_id["ag1"].campaign_id == "c1"

    def test_target_match_type_normalized_at_build_time(self):
        index = build_lookup_index(targets=[
            {
                "target_id": "t1",
                "ad_group_id": "ag1",
                "expression_norm": "running shoes",
                "match_type": "Exact",
                "is_negative": False,
            },
        ])

        key = ("ag1", "running shoes", "EXACT", False)
        assert index.target_by_key[key] == (TargetCandidate("t1", "ag1", "EXACT", False),)

    def test_float_ids_from_spreadsheets_are_cleaned(self):
        index = build_lookup_index(campaigns=[
            {"campaign_id": 123456.0, "campaign_name_norm": "brand"},
        ])
        assert "123456" in index.campaign_by_id

    def test_rows_without_ids_are_skipped(self):
        index = build_lookup_index(
            campaigns=[{"campaign_id": None, "campaign_name_norm": "brand"}],
            ad_groups=[{"ad_group_id": "ag1", "campaign_id": "", "ad_group_name_norm": "x"}],
            portfolios=[{"portfolio_id": None, "portfolio_name_norm": "p"}],
        )
        assert index.summary()["campaigns"] == 0
        assert index.summary()["ad_groups"] == 0
        assert index.summary()["portfolio_names"] == 0

    def test_overrides_and_history_dates_parsed(self):
        index = build_lookup_index(
            overrides=[{
                "entity_level": "campaign",
                "entity_id": "c9",
                "name_norm": "brand",
                "valid_from": "2025-01-01",
                "valid_to": None,
            }],
            campaign_history=[{
                "campaign_id": "c1",
                "name_norm": "old brand",
                "valid_from": "2024-06-01",
                "valid_to": "2024-12-31",
            }],
        )

        override = index.overrides_for("campaign", "brand")[0]
        assert override.valid_from == date(2025, 1, 1)
        assert override.valid_to is None
        assert index.campaign_history_by_name["old brand"][0].valid_to == date(2024, 12, 31)

    def test_overrides_for_unknown_name_is_empty(self):
        assert build_lookup_index().overrides_for("target", "x") == ()

    def test_index_is_read_only(self):
        index = build_lookup_index(campaigns=[
            {"campaign_id": "c1", "campaign_name_norm": "brand"},
        ])

        with pytest.raises(TypeError):
            index.campaign_by_name["other"] = ()
        with pytest.raises(AttributeError):
            index.campaign_by_name = {}
