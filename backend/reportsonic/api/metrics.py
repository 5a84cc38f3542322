"""
Metrics endpoint for performance monitoring.
"""
from fastapi import APIRouter, Request
from reportsonic.core.performance import PerformanceMonitor
from reportsonic.services.providers import FallbackProvider

router = APIRouter()


@router.get("/metrics")
async def get_metrics(request: Request):
    """
    Get performance metrics and provider configuration.

    Returns timing statistics for every tracked operation (profiling,
    recommendation, orchestration, each provider, request durations)
    and the names of the external providers that have credentials.
    """
    settings = request.app.state.settings
    return {
        'performance': PerformanceMonitor.get_all_metrics(),
        'providers': settings.configured_providers + [FallbackProvider.name]
    }
