"""
End-to-end analysis pipeline: profile, then recommend and analyze in parallel.
"""
import asyncio
import logging
from typing import Any, List, Optional, Sequence

from reportsonic.core.schemas import AnalysisReport
from reportsonic.services.orchestrator import super_analyze
from reportsonic.services.profiler import profile_dataset
from reportsonic.services.providers import ProviderClient
from reportsonic.services.recommender import recommend_charts

logger = logging.getLogger(__name__)


async def run_pipeline(
    headers: List[str],
    rows: List[List[Any]],
    providers: Sequence[ProviderClient],
    custom_prompt: Optional[str] = None,
) -> AnalysisReport:
    """
    Profile a dataset, recommend charts and run the provider analysis.

    Recommendation only needs the profile and analysis only needs the raw
    rows, so the two run concurrently once profiling is done.
    """
    profile = profile_dataset(headers, rows)

    recommendations, analysis = await asyncio.gather(
        asyncio.to_thread(recommend_charts, profile),
        super_analyze(rows, headers, providers, custom_prompt),
    )

    logger.info(
        f"Pipeline finished: {profile.sample_size} rows, {len(recommendations)} recommendations, "
        f"primary provider {analysis.primary.provider_name}"
    )
    return AnalysisReport(
        profile=profile,
        recommendations=recommendations,
        combined_analysis=analysis.combined,
        primary_provider=analysis.primary.provider_name,
        context=analysis.context,
        strategy=analysis.strategy,
    )
