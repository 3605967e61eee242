"""Tests for aggregating known duplicate groups."""

import pytest

from hashcluster.config import DEFAULT_SETTINGS
from hashcluster.dedup.cluster import (
    ClusterSummary,
    build_cluster_hash,
    compare_uncertain_bits,
    is_near_duplicate,
    select_representative,
    summarize_groups,
)
from hashcluster.errors import EmptyInputError, IncompatibilityError
from hashcluster.hashing.bits import Hash


def group(**members):
    return {member_id: Hash.from_string(bits, 7) for member_id, bits in members.items()}


class TestClusterSummary:
    def test_cluster_summary_immutable(self):
        """Test that ClusterSummary is immutable."""
        summary = ClusterSummary(
            group_id="grp_001",
            member_ids=["a", "b"],
            representative_id="a",
            member_count=2,
            maximal_error=1.0,
        )

        with pytest.raises(AttributeError):
            summary.group_id = "grp_002"  # type: ignore


class TestBuildClusterHash:
    def test_build_from_members(self):
        composite = build_cluster_hash(group(a="1001", b="1011", c="1111"))

        assert composite.member_count == 3
        assert str(composite) == "1011"

    def test_build_empty_group(self):
        with pytest.raises(EmptyInputError):
            build_cluster_hash({})

    def test_build_mixed_algorithms(self):
        members = {"a": Hash.from_string("10", 1), "b": Hash.from_string("10", 2)}

        with pytest.raises(IncompatibilityError):
            build_cluster_hash(members)


class TestSelectRepresentative:
    def test_closest_member_wins(self):
        members = group(a="1001", b="1011", c="1111")
        composite = build_cluster_hash(members)

        assert select_representative(composite, members) == "b"

    def test_ties_use_smallest_id(self):
        members = group(z_last="1100", a_first="1100", m_middle="1100")
        composite = build_cluster_hash(members)

        assert select_representative(composite, members) == "a_first"

    def test_empty_members(self):
        composite = build_cluster_hash(group(a="1"))

        with pytest.raises(EmptyInputError):
            select_representative(composite, {})


class TestNearDuplicate:
    def test_member_is_near_duplicate(self):
        composite = build_cluster_hash(group(a="11110000", b="11110000", c="11110001"))

        assert is_near_duplicate(composite, Hash.from_string("11110000", 7))

    def test_inverse_is_not_near_duplicate(self):
        composite = build_cluster_hash(group(a="11110000", b="11110000"))

        assert not is_near_duplicate(composite, Hash.from_string("00001111", 7))

    def test_explicit_threshold(self):
        composite = build_cluster_hash(group(a="1001", b="1011", c="1111"))
        candidate = Hash.from_string("1001", 7)

        assert is_near_duplicate(composite, candidate, threshold=0.26)
        assert not is_near_duplicate(composite, candidate, threshold=0.2)

    def test_default_threshold_from_settings(self):
        composite = build_cluster_hash(group(a="1001", b="1011", c="1111"))
        candidate = Hash.from_string("1011", 7)

        expected = composite.weighted_distance(candidate) <= DEFAULT_SETTINGS.near_duplicate_threshold
        assert is_near_duplicate(composite, candidate) == expected


class TestCompareUncertainBits:
    def test_compare_on_uncertain_bits(self):
        members = group(a="1001", b="1011", c="1111")
        composite = build_cluster_hash(members)

        # Uncertain positions hold 00 / 01 / 11
        assert compare_uncertain_bits(composite, members["a"], members["c"], threshold=0.7) == 1.0
        assert compare_uncertain_bits(composite, members["a"], members["b"], threshold=0.7) == 0.5

    def test_no_uncertain_bits(self):
        members = group(a="1001", b="1011", c="1111")
        composite = build_cluster_hash(members)

        assert compare_uncertain_bits(composite, members["a"], members["c"], threshold=0.1) == 0.0


class TestSummarizeGroups:
    def test_summarize_empty_input(self):
        assert summarize_groups({}) == []

    def test_summarize_single_group(self):
        summaries = summarize_groups({"x": group(c="1111", a="1001", b="1011")})

        assert len(summaries) == 1
        summary = summaries[0]
        assert summary.group_id == "grp_001"
        assert summary.member_ids == ["a", "b", "c"]
        assert summary.representative_id == "b"
        assert summary.member_count == 3
        assert summary.maximal_error == pytest.approx(5 / 6)

    def test_group_ordering_is_deterministic(self):
        groups = {
            "reds": group(z_red1="1100", z_red2="1100"),
            "blues": group(a_blue1="0011", a_blue2="0011"),
        }

        summaries = summarize_groups(groups)

        assert [s.group_id for s in summaries] == ["grp_001", "grp_002"]
        assert [s.representative_id for s in summaries] == ["a_blue1", "z_red1"]

    def test_empty_groups_are_skipped(self):
        summaries = summarize_groups({"empty": {}, "full": group(a="1")})

        assert len(summaries) == 1
        assert summaries[0].member_ids == ["a"]
