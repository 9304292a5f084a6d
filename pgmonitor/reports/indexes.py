"""
Indexes report: unused, most used and potentially missing indexes, plus a
per-table index size summary.

"Potentially missing" is a heuristic over sequential-scan volume on user
tables; it does not inspect index definitions.
"""

from typing import Any, Iterable, List, Mapping, Sequence

from pgmonitor.errors import DataSourceError
from pgmonitor.fanout import Outcome, gather_outcomes
from pgmonitor.formatting import as_int, format_bytes
from pgmonitor.logger import get_logger
from pgmonitor.models import (
    IndexBloat,
    Indexes,
    IndexHitRatios,
    MissingIndexCandidate,
    TableHitRatio,
    UnusedIndex,
    UsedIndex,
)

logger = get_logger(__name__)

LIST_LIMIT = 20
BLOAT_LIMIT = 10

MISSING_MIN_SEQ_SCANS = 100
MISSING_MIN_AVG_TUPLES = 1000

HIT_RATIO_MIN_SCANS = 100
HIT_RATIO_THRESHOLD = 50

UNUSED_SQL = f"""
    SELECT
        schemaname,
        relname AS table_name,
        indexrelname AS index_name,
        idx_scan,
        pg_relation_size(indexrelid) AS size_bytes
    FROM pg_stat_user_indexes
    WHERE idx_scan = 0
    AND schemaname NOT IN ('pg_catalog', 'information_schema')
    ORDER BY pg_relation_size(indexrelid) DESC
    LIMIT {LIST_LIMIT}
"""

MISSING_SQL = f"""
    SELECT
        schemaname,
        relname AS table_name,
        seq_scan,
        seq_tup_read,
        idx_scan,
        seq_tup_read / NULLIF(seq_scan, 0) AS avg_seq_tup
    FROM pg_stat_user_tables
    WHERE seq_scan > {MISSING_MIN_SEQ_SCANS}
    AND seq_tup_read / NULLIF(seq_scan, 0) > {MISSING_MIN_AVG_TUPLES}
    ORDER BY seq_scan DESC
    LIMIT {LIST_LIMIT}
"""

USAGE_SQL = f"""
    SELECT
        schemaname,
        relname AS table_name,
        indexrelname AS index_name,
        idx_scan,
        idx_tup_read,
        idx_tup_fetch,
        pg_relation_size(indexrelid) AS size_bytes
    FROM pg_stat_user_indexes
    WHERE idx_scan > 0
    ORDER BY idx_scan DESC
    LIMIT {LIST_LIMIT}
"""

BLOAT_SQL = f"""
    SELECT
        schemaname,
        relname AS table_name,
        count(*) AS index_count,
        sum(pg_relation_size(indexrelid)) AS total_index_bytes
    FROM pg_stat_user_indexes
    GROUP BY schemaname, relname
    ORDER BY sum(pg_relation_size(indexrelid)) DESC
    LIMIT {BLOAT_LIMIT}
"""

HIT_RATIO_SQL = f"""
    SELECT
        schemaname,
        relname AS table_name,
        seq_scan,
        COALESCE(idx_scan, 0) AS idx_scan
    FROM pg_stat_user_tables
    WHERE seq_scan + COALESCE(idx_scan, 0) >= {HIT_RATIO_MIN_SCANS}
    AND COALESCE(idx_scan, 0) * 100 < {HIT_RATIO_THRESHOLD} * (seq_scan + COALESCE(idx_scan, 0))
    ORDER BY COALESCE(idx_scan, 0)::numeric / (seq_scan + COALESCE(idx_scan, 0))
    LIMIT {LIST_LIMIT}
"""

SECTIONS = ("unused", "potentiallyMissing", "mostUsed", "bloat")


def classify_unused(rows: Iterable[Mapping[str, Any]]) -> List[UnusedIndex]:
    """Zero-scan indexes, largest first."""
    unused = [
        UnusedIndex(
            schema_name=row.get("schemaname") or "",
            table=row.get("table_name") or "",
            index=row.get("index_name") or "",
            scans=0,
            size=format_bytes(row.get("size_bytes")),
            size_bytes=as_int(row.get("size_bytes")),
        )
        for row in rows
        if as_int(row.get("idx_scan")) == 0
    ]
    unused.sort(key=lambda i: i.size_bytes, reverse=True)
    return unused[:LIST_LIMIT]


def classify_most_used(rows: Iterable[Mapping[str, Any]]) -> List[UsedIndex]:
    """Scanned indexes, most scanned first."""
    used = [
        UsedIndex(
            schema_name=row.get("schemaname") or "",
            table=row.get("table_name") or "",
            index=row.get("index_name") or "",
            scans=as_int(row.get("idx_scan")),
            tuples_read=as_int(row.get("idx_tup_read")),
            tuples_fetched=as_int(row.get("idx_tup_fetch")),
            size=format_bytes(row.get("size_bytes")),
            size_bytes=as_int(row.get("size_bytes")),
        )
        for row in rows
        if as_int(row.get("idx_scan")) > 0
    ]
    used.sort(key=lambda i: i.scans, reverse=True)
    return used[:LIST_LIMIT]


def classify_missing(rows: Iterable[Mapping[str, Any]]) -> List[MissingIndexCandidate]:
    """Tables read sequentially often and in large chunks."""
    candidates = []
    for row in rows:
        seq_scans = as_int(row.get("seq_scan"))
        seq_tup_read = as_int(row.get("seq_tup_read"))
        avg_tuples = seq_tup_read // seq_scans if seq_scans > 0 else 0
        if seq_scans <= MISSING_MIN_SEQ_SCANS or avg_tuples <= MISSING_MIN_AVG_TUPLES:
            continue
        candidates.append(MissingIndexCandidate(
            schema_name=row.get("schemaname") or "",
            table=row.get("table_name") or "",
            seq_scans=seq_scans,
            seq_tup_read=seq_tup_read,
            index_scans=as_int(row.get("idx_scan")),
            avg_tuples=avg_tuples,
        ))
    candidates.sort(key=lambda c: c.seq_scans, reverse=True)
    return candidates[:LIST_LIMIT]


def summarize_bloat(rows: Iterable[Mapping[str, Any]]) -> List[IndexBloat]:
    summary = [
        IndexBloat(
            schema_name=row.get("schemaname") or "",
            table=row.get("table_name") or "",
            index_count=as_int(row.get("index_count")),
            total_size=format_bytes(row.get("total_index_bytes")),
            total_size_bytes=as_int(row.get("total_index_bytes")),
        )
        for row in rows
    ]
    summary.sort(key=lambda b: b.total_size_bytes, reverse=True)
    return summary[:BLOAT_LIMIT]


def build_indexes(
    unused: Iterable[Mapping[str, Any]],
    missing: Iterable[Mapping[str, Any]],
    usage: Iterable[Mapping[str, Any]],
    bloat: Iterable[Mapping[str, Any]],
    failed: Sequence[str] = (),
) -> Indexes:
    return Indexes(
        unused=classify_unused(unused),
        potentially_missing=classify_missing(missing),
        most_used=classify_most_used(usage),
        bloat=summarize_bloat(bloat),
        failed=list(failed),
    )


def build_hit_ratios(rows: Iterable[Mapping[str, Any]]) -> IndexHitRatios:
    """Tables where index scans are under HIT_RATIO_THRESHOLD % of all scans."""
    tables = []
    for row in rows:
        seq_scans = as_int(row.get("seq_scan"))
        index_scans = as_int(row.get("idx_scan"))
        total = seq_scans + index_scans
        if total < HIT_RATIO_MIN_SCANS:
            continue
        hit_ratio = index_scans * 100 // total
        if hit_ratio >= HIT_RATIO_THRESHOLD:
            continue
        tables.append(TableHitRatio(
            schema_name=row.get("schemaname") or "",
            table=row.get("table_name") or "",
            ratio=hit_ratio,
            total_scans=total,
            seq_scans=seq_scans,
            index_scans=index_scans,
        ))
    tables.sort(key=lambda t: t.ratio)
    return IndexHitRatios(tables=tables[:LIST_LIMIT])


def _section_rows(name: str, outcome: Outcome, failed: List[str]) -> List[Mapping[str, Any]]:
    if outcome.ok:
        return outcome.value
    if not isinstance(outcome.error, DataSourceError):
        outcome.unwrap()
    logger.warning(f"Index section {name} unavailable: {outcome.error}")
    failed.append(name)
    return []


async def collect_indexes(source) -> Indexes:
    """
    Run the four index queries concurrently.

    A failed section, including one that timed out or could not get a
    connection, is left empty and named in ``failed``. The report itself
    fails only when none of the four sections succeeded.
    """
    outcomes = await gather_outcomes(
        source.fetch(UNUSED_SQL),
        source.fetch(MISSING_SQL),
        source.fetch(USAGE_SQL),
        source.fetch(BLOAT_SQL),
    )

    if not any(outcome.ok for outcome in outcomes):
        outcomes[0].unwrap()

    failed: List[str] = []
    unused, missing, usage, bloat = (
        _section_rows(name, outcome, failed) for name, outcome in zip(SECTIONS, outcomes)
    )
    return build_indexes(unused, missing, usage, bloat, failed)


async def collect_hit_ratios(source) -> IndexHitRatios:
    return build_hit_ratios(await source.fetch(HIT_RATIO_SQL))
