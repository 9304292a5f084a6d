"""
pgmonitor - PostgreSQL monitoring dashboard API.

Reads statistics views of a PostgreSQL server and serves derived metrics
(overview, performance, resources, reliability, indexes) as JSON.
"""

__version__ = "1.0.0"
