"""
Derived-metrics records returned by the API.

Attributes are snake_case in Python and camelCase on the wire.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# Overview

class Uptime(CamelModel):
    days: int
    hours: int
    formatted: str


class OperationShare(CamelModel):
    """Tuple count for one operation and its share of all four."""
    count: str
    percentage: int


class OperationBreakdown(CamelModel):
    select: OperationShare
    insert: OperationShare
    update: OperationShare
    delete: OperationShare


class OverviewAlerts(CamelModel):
    cpu_exceeded: bool
    slow_queries: bool


class OverviewTotals(CamelModel):
    transactions: int
    tuples: int


class Overview(CamelModel):
    """Overview report."""
    uptime: Uptime
    current_qps: int
    avg_query_time: str
    cpu_load: str
    alerts: OverviewAlerts
    operations: OperationBreakdown
    totals: OverviewTotals
    synthetic: List[str] = Field(default_factory=list)


# Performance

class ActivityDatasets(CamelModel):
    qps: List[int]
    tps: List[int]


class ClusterActivity(CamelModel):
    """Daily load series. The values are generated, not measured."""
    labels: List[str]
    datasets: ActivityDatasets
    synthetic: bool = True


class SlowQuery(CamelModel):
    query_id: Optional[str] = None
    query: Optional[str] = None
    calls: int
    avg_time: str
    total_time: str


class SlowQueries(CamelModel):
    slow_queries: List[SlowQuery]


# Resources

class ConnectionUsage(CamelModel):
    total: int
    active: int
    idle: int
    max: int
    usage_percent: str


class TableSize(CamelModel):
    schema_name: str = Field(alias="schema")
    table: str
    size: str
    size_bytes: int


class Storage(CamelModel):
    total_size: str
    total_size_bytes: int
    top_tables: List[TableSize]


class CacheStats(CamelModel):
    hit_ratio: str


class CpuUsage(CamelModel):
    usage: float
    cores: int


class MemoryUsage(CamelModel):
    used: str
    total: str
    usage_percent: float


class DiskUsage(CamelModel):
    used: str
    total: str
    usage_percent: float
    free: str


class HostMetrics(CamelModel):
    cpu: CpuUsage
    memory: MemoryUsage
    disk: DiskUsage


class Resources(CamelModel):
    """Resources report.

    cpu, memory and disk describe the machine running the API, which is not
    necessarily the database host.
    """
    connections: ConnectionUsage
    storage: Storage
    cache: CacheStats
    cpu: Optional[CpuUsage] = None
    memory: Optional[MemoryUsage] = None
    disk: Optional[DiskUsage] = None
    host_metrics_source: str = "api-host"


# Reliability

class ReplicaStatus(CamelModel):
    client: Optional[str] = None
    state: Optional[str] = None
    sync_state: Optional[str] = None
    lag_seconds: float


class Replication(CamelModel):
    replicas: List[ReplicaStatus]
    count: int
    healthy: bool


class Conflicts(CamelModel):
    deadlocks: int
    conflicts: int


class WalStats(CamelModel):
    bytes_generated: int
    bytes_formatted: str


class TransactionStats(CamelModel):
    commits: int
    rollbacks: int
    commit_ratio: str


class Reliability(CamelModel):
    """Reliability report."""
    replication: Replication
    conflicts: Conflicts
    wal: WalStats
    transactions: TransactionStats


# Indexes

class UnusedIndex(CamelModel):
    schema_name: str = Field(alias="schema")
    table: str
    index: str
    scans: int
    size: str
    size_bytes: int


class MissingIndexCandidate(CamelModel):
    schema_name: str = Field(alias="schema")
    table: str
    seq_scans: int
    seq_tup_read: int
    index_scans: int
    avg_tuples: int


class UsedIndex(CamelModel):
    schema_name: str = Field(alias="schema")
    table: str
    index: str
    scans: int
    tuples_read: int
    tuples_fetched: int
    size: str
    size_bytes: int


class IndexBloat(CamelModel):
    schema_name: str = Field(alias="schema")
    table: str
    index_count: int
    total_size: str
    total_size_bytes: int


class Indexes(CamelModel):
    """Indexes report. Sections whose query failed are named in failed."""
    unused: List[UnusedIndex]
    potentially_missing: List[MissingIndexCandidate]
    most_used: List[UsedIndex]
    bloat: List[IndexBloat]
    failed: List[str] = Field(default_factory=list)


class TableHitRatio(CamelModel):
    schema_name: str = Field(alias="schema")
    table: str
    ratio: int
    total_scans: int
    seq_scans: int
    index_scans: int


class IndexHitRatios(CamelModel):
    tables: List[TableHitRatio]


# Connections

class ClientConnection(CamelModel):
    pid: int
    user: Optional[str] = None
    db: Optional[str] = None
    app: Optional[str] = None
    state: Optional[str] = None
    duration: str
    query: Optional[str] = None
    ip: str


class Connections(CamelModel):
    connections: List[ClientConnection]
