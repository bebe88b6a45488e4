"""Prometheus metrics endpoint"""
import logging
from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST

from progression.monitoring import metrics

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/metrics")
async def metrics_endpoint():
    """Expose Prometheus metrics"""
    if not metrics.enabled:
        return Response(
            content="Prometheus metrics disabled",
            status_code=503
        )

    try:
        return Response(
            content=metrics.export(),
            media_type=CONTENT_TYPE_LATEST
        )
    except Exception as e:
        logger.error(f"Error generating metrics: {e}", exc_info=True)
        return Response(
            content=f"Error generating metrics: {str(e)}",
            status_code=500
        )
