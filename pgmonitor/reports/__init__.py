"""
Report collectors and their pure transforms.

Each collector takes a data source, fans its sub-queries out concurrently
and hands the settled snapshot to a ``build_*`` transform.
"""

from pgmonitor.reports.connections import collect_connections
from pgmonitor.reports.indexes import collect_hit_ratios, collect_indexes
from pgmonitor.reports.overview import collect_overview
from pgmonitor.reports.performance import build_cluster_activity, collect_slow_queries, parse_days
from pgmonitor.reports.reliability import collect_reliability
from pgmonitor.reports.resources import collect_resources

__all__ = [
    "build_cluster_activity",
    "collect_connections",
    "collect_hit_ratios",
    "collect_indexes",
    "collect_overview",
    "collect_reliability",
    "collect_resources",
    "collect_slow_queries",
    "parse_days",
]
