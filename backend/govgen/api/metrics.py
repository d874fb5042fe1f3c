"""
Metrics endpoints.

GET /metrics               Prometheus text exposition format
GET /api/metrics/summary   the caller's generation success metrics
"""

from fastapi import APIRouter, Depends
from fastapi.responses import Response
from prometheus_client import generate_latest, CONTENT_TYPE_LATEST
from sqlalchemy.ext.asyncio import AsyncSession

from govgen.api.deps import get_db, require
from govgen.auth.permissions import Permission
from govgen.auth.context import RequestContext
from govgen.schemas.schemas import SuccessMetricsOut
from govgen.services.success_metrics import SuccessMetricsService

router = APIRouter(tags=["metrics"])


@router.get("/metrics")
async def prometheus_metrics():
    """Expose Prometheus metrics in text format."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST,
    )


@router.get("/api/metrics/summary", response_model=SuccessMetricsOut)
async def success_metrics(
    ctx: RequestContext = Depends(require(Permission.METRICS_VIEW)),
    db: AsyncSession = Depends(get_db),
):
    """Success rate, average generation time and compliance totals."""
    summary = await SuccessMetricsService(db).summarize(ctx.user_id)
    return SuccessMetricsOut.model_validate(summary)
