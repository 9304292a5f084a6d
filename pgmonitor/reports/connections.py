"""
Client connections currently open on the server.
"""

from typing import Any, Iterable, Mapping

from pgmonitor.formatting import as_int, format_duration, truncate
from pgmonitor.models import ClientConnection, Connections

CONNECTIONS_LIMIT = 50
QUERY_TEXT_LENGTH = 100

ACTIVITY_SQL = f"""
    SELECT
        pid,
        usename,
        datname,
        application_name,
        state,
        EXTRACT(EPOCH FROM (now() - COALESCE(query_start, backend_start)))::bigint AS duration_seconds,
        LEFT(query, {QUERY_TEXT_LENGTH}) AS query_text,
        client_addr
    FROM pg_stat_activity
    WHERE backend_type = 'client backend'
    AND pid <> pg_backend_pid()
    ORDER BY duration_seconds DESC NULLS LAST
    LIMIT {CONNECTIONS_LIMIT}
"""


def build_connections(rows: Iterable[Mapping[str, Any]]) -> Connections:
    connections = []
    ordered = sorted(rows, key=lambda r: as_int(r.get("duration_seconds")), reverse=True)
    for row in ordered[:CONNECTIONS_LIMIT]:
        client = row.get("client_addr")
        connections.append(ClientConnection(
            pid=as_int(row.get("pid")),
            user=row.get("usename"),
            db=row.get("datname"),
            app=row.get("application_name") or None,
            state=row.get("state"),
            duration=format_duration(row.get("duration_seconds")),
            query=truncate(row.get("query_text"), QUERY_TEXT_LENGTH),
            # Unix-socket clients have no address.
            ip=str(client) if client is not None else "local",
        ))
    return Connections(connections=connections)


async def collect_connections(source) -> Connections:
    return build_connections(await source.fetch(ACTIVITY_SQL))
