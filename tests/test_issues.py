"""Tests for the deduplicating issue collector."""

from admap.resolve.issues import IssueCollector, MappingIssue, merge_issues


class TestIssueCollector:

    def test_repeats_sum_row_counts(self):
        collector = IssueCollector()
        key = {"campaign_name_norm": "brand", "portfolio_name_norm": None}

        collector.add_issue("campaign", "unmapped", key)
        collector.add_issue("campaign", "unmapped", dict(key))
        collector.add_issue("campaign", "unmapped", key, row_count=3)

        assert len(collector) == 1
        assert collector.list()[0].row_count == 5
        assert collector.total_rows() == 5

    def test_key_order_does_not_matter(self):
        collector = IssueCollector()
        collector.add_issue("campaign", "unmapped", {"a": 1, "b": 2})
        collector.add_issue("campaign", "unmapped", {"b": 2, "a": 1})
        assert len(collector) == 1

    def test_level_and_type_are_part_of_identity(self):
        collector = IssueCollector()
        key = {"campaign_name_norm": "brand"}
        collector.add_issue("campaign", "unmapped", key)
        collector.add_issue("campaign", "ambiguous", key)
        collector.add_issue("ad_group", "unmapped", key)
        assert len(collector) == 3

    def test_first_candidates_win(self):
        collector = IssueCollector()
        first = [{"entity_id": "c1", "source": "snapshot"}, {"entity_id": "c2", "source": "snapshot"}]
        second = [{"entity_id": "c3", "source": "snapshot"}]

        collector.add_issue("campaign", "ambiguous", {"campaign_name_norm": "x"}, candidates=first)
        collector.add_issue("campaign", "ambiguous", {"campaign_name_norm": "x"}, candidates=second)

        assert collector.list()[0].candidates_json == first

    def test_insertion_order_preserved(self):
        collector = IssueCollector()
        for name in ["zeta", "alpha", "mid"]:
            collector.add_issue("campaign", "unmapped", {"campaign_name_norm": name})
        assert [i.key_json["campaign_name_norm"] for i in collector.list()] == ["zeta", "alpha", "mid"]

    def test_to_dict(self):
        issue = MappingIssue("snapshot", "missing_bulk_snapshot", {"exported_at_date": "2025-01-01"})
        assert issue.to_dict() == {
            "entity_level": "snapshot",
            "issue_type": "missing_bulk_snapshot",
            "key_json": {"exported_at_date": "2025-01-01"},
            "candidates_json": None,
            "row_count": 1,
        }


class TestMergeIssues:

    def test_merge_sums_and_keeps_inputs_untouched(self):
        a = [MappingIssue("campaign", "unmapped", {"campaign_name_norm": "x"}, row_count=2)]
        b = [
            MappingIssue("campaign", "unmapped", {"campaign_name_norm": "x"}, row_count=3),
            MappingIssue("campaign", "unmapped", {"campaign_name_norm": "y"}),
        ]

        merged = merge_issues(a, b)

        assert [(i.key_json["campaign_name_norm"], i.row_count) for i in merged] == [("x", 5), ("y", 1)]
        assert a[0].row_count == 2
