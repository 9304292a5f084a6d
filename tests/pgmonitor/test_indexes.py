"""
Tests for the indexes report and the per-table index hit ratios.
"""

import pytest

from pgmonitor.errors import DataSourceUnavailable, OptionalFeatureMissing, QueryFailed
from pgmonitor.reports import indexes
from pgmonitor.reports.indexes import (
    build_hit_ratios,
    build_indexes,
    classify_missing,
    classify_most_used,
    classify_unused,
    collect_hit_ratios,
    collect_indexes,
    summarize_bloat,
)

from fakes import FakeDataSource


def _index(name, scans, size=8192, table="orders"):
    return {
        "schemaname": "public",
        "table_name": table,
        "index_name": name,
        "idx_scan": scans,
        "idx_tup_read": scans * 10,
        "idx_tup_fetch": scans * 5,
        "size_bytes": size,
    }


@pytest.mark.unit
class TestClassifyUnused:

    def test_keeps_only_zero_scan_indexes(self):
        rows = [_index("idx_a", 0), _index("idx_b", 3), _index("idx_c", 0)]
        assert [i.index for i in classify_unused(rows)] == ["idx_a", "idx_c"]

    def test_largest_first(self):
        rows = [_index("small", 0, size=8192), _index("large", 0, size=1024 ** 3)]
        unused = classify_unused(rows)
        assert [i.index for i in unused] == ["large", "small"]
        assert unused[0].size == "1.00 GB"
        assert unused[0].scans == 0

    def test_limit(self):
        rows = [_index(f"idx_{i}", 0, size=i) for i in range(25)]
        assert len(classify_unused(rows)) == 20


@pytest.mark.unit
class TestClassifyMostUsed:

    def test_most_scanned_first(self):
        rows = [_index("idx_a", 5), _index("idx_b", 500), _index("idx_c", 0)]
        used = classify_most_used(rows)
        assert [i.index for i in used] == ["idx_b", "idx_a"]
        assert used[0].tuples_read == 5000
        assert used[0].tuples_fetched == 2500

    def test_disjoint_from_unused(self):
        rows = [_index(f"idx_{i}", i % 3) for i in range(12)]
        unused = {i.index for i in classify_unused(rows)}
        used = {i.index for i in classify_most_used(rows)}
        assert unused.isdisjoint(used)
        assert unused | used == {r["index_name"] for r in rows}


@pytest.mark.unit
class TestClassifyMissing:

    @pytest.mark.parametrize(
        "seq_scan,seq_tup_read,expected",
        [
            (101, 101 * 1001, True),
            (100, 100 * 5000, False),
            (500, 500 * 1000, False),
            (0, 0, False),
            (None, None, False),
        ],
    )
    def test_thresholds(self, seq_scan, seq_tup_read, expected):
        row = {"schemaname": "public", "table_name": "events", "seq_scan": seq_scan, "seq_tup_read": seq_tup_read}
        assert bool(classify_missing([row])) is expected

    def test_candidate_fields(self):
        [candidate] = classify_missing([{
            "schemaname": "public",
            "table_name": "events",
            "seq_scan": 200,
            "seq_tup_read": 1_000_000,
            "idx_scan": None,
        }])
        assert candidate.avg_tuples == 5000
        assert candidate.index_scans == 0
        assert candidate.model_dump(by_alias=True)["seqScans"] == 200


@pytest.mark.unit
class TestSummarizeBloat:

    def test_largest_first_with_limit(self):
        rows = [
            {"schemaname": "public", "table_name": f"t{i}", "index_count": 2, "total_index_bytes": i * 1024}
            for i in range(1, 13)
        ]
        bloat = summarize_bloat(rows)
        assert len(bloat) == 10
        assert bloat[0].table == "t12"
        assert bloat[0].total_size == "12.0 KB"
        assert bloat[0].index_count == 2


@pytest.mark.unit
class TestBuildIndexes:

    def test_wire_shape(self):
        payload = build_indexes([], [], [], [], failed=["bloat"]).model_dump(by_alias=True)
        assert set(payload) == {"unused", "potentiallyMissing", "mostUsed", "bloat", "failed"}
        assert payload["failed"] == ["bloat"]


@pytest.mark.unit
class TestCollectIndexes:

    @pytest.fixture
    def source(self):
        return FakeDataSource({
            indexes.UNUSED_SQL: [_index("idx_unused", 0)],
            indexes.MISSING_SQL: [{"schemaname": "public", "table_name": "events", "seq_scan": 300, "seq_tup_read": 900_000}],
            indexes.USAGE_SQL: [_index("orders_pkey", 1000)],
            indexes.BLOAT_SQL: [{"schemaname": "public", "table_name": "orders", "index_count": 2, "total_index_bytes": 16384}],
        })

    async def test_all_sections(self, source):
        result = await collect_indexes(source)
        assert [i.index for i in result.unused] == ["idx_unused"]
        assert [c.table for c in result.potentially_missing] == ["events"]
        assert [i.index for i in result.most_used] == ["orders_pkey"]
        assert [b.table for b in result.bloat] == ["orders"]
        assert result.failed == []

    async def test_failed_section_is_reported(self, source):
        source.responses[indexes.BLOAT_SQL] = QueryFailed("canceling statement due to statement timeout")
        result = await collect_indexes(source)
        assert result.bloat == []
        assert result.failed == ["bloat"]
        assert len(result.unused) == 1

    async def test_timed_out_section_keeps_the_others(self, source):
        source.responses[indexes.USAGE_SQL] = DataSourceUnavailable("pool timeout")
        result = await collect_indexes(source)
        assert result.failed == ["mostUsed"]
        assert result.most_used == []
        assert [i.index for i in result.unused] == ["idx_unused"]
        assert [b.table for b in result.bloat] == ["orders"]

    async def test_slow_bloat_query_keeps_the_others(self, source):
        source.responses[indexes.BLOAT_SQL] = DataSourceUnavailable("database unavailable")
        result = await collect_indexes(source)
        assert result.failed == ["bloat"]
        assert len(result.unused) == len(result.potentially_missing) == len(result.most_used) == 1

    async def test_unavailable_database_fails_report(self, source):
        for sql in (indexes.UNUSED_SQL, indexes.MISSING_SQL, indexes.USAGE_SQL, indexes.BLOAT_SQL):
            source.responses[sql] = DataSourceUnavailable("pool timeout")
        with pytest.raises(DataSourceUnavailable):
            await collect_indexes(source)

    async def test_every_section_failed(self, source):
        for sql in (indexes.UNUSED_SQL, indexes.MISSING_SQL, indexes.USAGE_SQL, indexes.BLOAT_SQL):
            source.responses[sql] = OptionalFeatureMissing("permission denied")
        with pytest.raises(OptionalFeatureMissing):
            await collect_indexes(source)

    async def test_unexpected_error_is_raised(self, source):
        source.responses[indexes.MISSING_SQL] = ValueError("bad row")
        with pytest.raises(ValueError):
            await collect_indexes(source)


@pytest.mark.unit
class TestHitRatios:

    @pytest.mark.parametrize(
        "seq_scan,idx_scan,included",
        [
            (90, 10, True),
            (51, 49, True),
            (50, 50, False),
            (40, 60, False),
            (30, 20, False),
            (100, None, True),
        ],
    )
    def test_threshold_and_minimum_scans(self, seq_scan, idx_scan, included):
        rows = [{"schemaname": "public", "table_name": "t", "seq_scan": seq_scan, "idx_scan": idx_scan}]
        assert bool(build_hit_ratios(rows).tables) is included

    def test_lowest_ratio_first(self):
        rows = [
            {"schemaname": "public", "table_name": "a", "seq_scan": 70, "idx_scan": 30},
            {"schemaname": "public", "table_name": "b", "seq_scan": 1000, "idx_scan": 0},
        ]
        tables = build_hit_ratios(rows).tables
        assert [t.table for t in tables] == ["b", "a"]
        assert tables[1].ratio == 30
        assert tables[1].total_scans == 100

    async def test_collect(self):
        source = FakeDataSource({
            indexes.HIT_RATIO_SQL: [{"schemaname": "public", "table_name": "a", "seq_scan": 900, "idx_scan": 100}],
        })
        result = await collect_hit_ratios(source)
        assert result.tables[0].ratio == 10
