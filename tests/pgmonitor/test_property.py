"""
Property-Based Tests

Uses Hypothesis to check invariants of the report transforms over
arbitrary counter values, including NULLs and zero denominators.

Run with: pytest tests/pgmonitor/test_property.py -v
"""
import os
from decimal import Decimal

import pytest
from hypothesis import HealthCheck, given, settings, strategies as st

from pgmonitor.formatting import format_duration, percent, split_percentages
from pgmonitor.reports.indexes import build_hit_ratios, classify_most_used, classify_unused
from pgmonitor.reports.overview import build_overview
from pgmonitor.reports.performance import build_cluster_activity, parse_days
from pgmonitor.reports.reliability import build_replication, build_transactions


# Configure Hypothesis profiles
settings.register_profile(
    "ci",
    max_examples=50,
    deadline=None,
    suppress_health_check=[HealthCheck.too_slow]
)
settings.register_profile("local", max_examples=200, deadline=None)
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "local"))


counters = st.one_of(
    st.none(),
    st.integers(min_value=0, max_value=10 ** 20),
    st.integers(min_value=0, max_value=10 ** 20).map(Decimal),
)


@pytest.mark.unit
class TestOperationMixProperties:

    @given(st.dictionaries(
        st.sampled_from(["select", "insert", "update", "delete"]),
        st.integers(min_value=0, max_value=10 ** 30),
        min_size=1,
    ))
    def test_shares_sum_to_100_or_0(self, counts):
        shares = split_percentages(counts)
        expected = 100 if sum(counts.values()) > 0 else 0
        assert sum(shares.values()) == expected

    @given(st.dictionaries(
        st.text(min_size=1, max_size=3),
        st.integers(min_value=0, max_value=10 ** 12),
        min_size=1,
        max_size=8,
    ))
    def test_each_share_within_one_of_exact(self, counts):
        total = sum(counts.values())
        shares = split_percentages(counts)
        for key, value in counts.items():
            exact = Decimal(value * 100) / total if total else Decimal(0)
            assert abs(shares[key] - exact) < 1

    @given(counters, counters, counters, counters)
    def test_overview_percentages(self, selects, inserts, updates, deletes):
        ops = build_overview({
            "selects": selects,
            "inserts": inserts,
            "updates": updates,
            "deletes": deletes,
        }).operations
        total = ops.select.percentage + ops.insert.percentage + ops.update.percentage + ops.delete.percentage
        assert total in (0, 100)
        assert all(
            0 <= share.percentage <= 100 for share in (ops.select, ops.insert, ops.update, ops.delete)
        )


@pytest.mark.unit
class TestRatioProperties:

    @given(counters, counters)
    def test_percent_never_fails(self, numerator, denominator):
        result = Decimal(percent(numerator, denominator, 2))
        assert result.is_finite()

    @given(st.integers(min_value=0, max_value=10 ** 15), st.integers(min_value=0, max_value=10 ** 15))
    def test_commit_ratio_bounds(self, commits, rollbacks):
        ratio = Decimal(build_transactions({"commits": commits, "rollbacks": rollbacks}).commit_ratio)
        assert Decimal(0) <= ratio <= Decimal(100)
        if rollbacks == 0:
            assert ratio == Decimal(100)


@pytest.mark.unit
class TestIndexProperties:

    @given(st.lists(
        st.fixed_dictionaries({
            "index_name": st.text(min_size=1, max_size=10),
            "idx_scan": st.one_of(st.none(), st.integers(min_value=0, max_value=10 ** 9)),
            "size_bytes": st.integers(min_value=0, max_value=10 ** 12),
        }),
        max_size=15,
    ))
    def test_unused_and_most_used_partition(self, rows):
        unused = classify_unused(rows)
        used = classify_most_used(rows)
        assert len(unused) + len(used) == len(rows)
        assert all(i.scans == 0 for i in unused)
        assert all(i.scans > 0 for i in used)
        assert [i.scans for i in used] == sorted((i.scans for i in used), reverse=True)
        assert [i.size_bytes for i in unused] == sorted((i.size_bytes for i in unused), reverse=True)

    @given(st.lists(
        st.fixed_dictionaries({
            "seq_scan": st.integers(min_value=0, max_value=10 ** 6),
            "idx_scan": st.integers(min_value=0, max_value=10 ** 6),
        }),
        max_size=30,
    ))
    def test_hit_ratio_rows_below_threshold(self, rows):
        tables = build_hit_ratios(rows).tables
        assert len(tables) <= 20
        for table in tables:
            assert table.total_scans >= 100
            assert table.ratio < 50
        assert [t.ratio for t in tables] == sorted(t.ratio for t in tables)


@pytest.mark.unit
class TestActivityProperties:

    @given(st.integers(min_value=0, max_value=365))
    def test_series_length(self, days):
        result = build_cluster_activity(days)
        assert len(result.labels) == len(result.datasets.tps) == len(result.datasets.qps) == days + 1

    @given(st.text(max_size=12))
    def test_parse_days_always_in_range(self, raw):
        assert 0 <= parse_days(raw) <= 365


@pytest.mark.unit
class TestMiscProperties:

    @given(st.lists(st.sampled_from(["streaming", "catchup", "startup", "backup", None]), max_size=5))
    def test_healthy_iff_all_streaming(self, states):
        replication = build_replication([{"state": s} for s in states])
        assert replication.count == len(states)
        assert replication.healthy == (bool(states) and all(s == "streaming" for s in states))

    @given(st.integers(min_value=0, max_value=10 ** 7))
    def test_duration_round_trips_to_seconds(self, seconds):
        hours, minutes, secs = (int(part) for part in format_duration(seconds).split(":"))
        assert minutes < 60 and secs < 60
        assert hours * 3600 + minutes * 60 + secs == seconds
