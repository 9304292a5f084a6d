"""
pgmonitor API Routes

One module per report type.
"""

from fastapi import APIRouter

from pgmonitor.api import connections, indexes, overview, performance, reliability, resources

router = APIRouter()

router.include_router(overview.router, prefix="/overview", tags=["Overview"])
router.include_router(performance.router, prefix="/performance", tags=["Performance"])
router.include_router(resources.router, prefix="/resources", tags=["Resources"])
router.include_router(reliability.router, prefix="/reliability", tags=["Reliability"])
router.include_router(indexes.router, prefix="/indexes", tags=["Indexes"])
router.include_router(connections.router, prefix="/connections", tags=["Connections"])

ENDPOINTS = {
    "health": "/health",
    "overview": "/api/overview",
    "performance": "/api/performance/cluster-activity",
    "slowQueries": "/api/performance/slow-queries",
    "resources": "/api/resources",
    "reliability": "/api/reliability",
    "indexes": "/api/indexes",
    "indexHitRatio": "/api/indexes/hit-ratio",
    "connections": "/api/connections",
}
