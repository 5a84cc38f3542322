"""
Multi-provider analysis orchestration.

Fans one request out to every configured provider concurrently, waits for
all of them to settle and merges the successful payloads. Providers are
ranked by their position in the configured list, never by completion order.
"""
import asyncio
import logging
from typing import Any, Dict, List, Optional, Sequence

from reportsonic.core.performance import track_performance
from reportsonic.core.schemas import (
    CombinedAnalysis,
    ProviderFailure,
    ProviderResult,
    ProviderSuccess,
    SuperAnalysis,
)
from reportsonic.services.context import plan_analysis
from reportsonic.services.providers import ProviderClient

logger = logging.getLogger(__name__)

# Maximum entries kept per merged list field
COMBINED_CAPS = {
    'insights': 10,
    'trends': 8,
    'quality_issues': 6,
    'recommendations': 10,
    'business_applications': 8,
    'risk_opportunities': 6,
    'next_steps': 6,
}

NO_PROVIDER_NAME = "None"
NO_PROVIDER_MESSAGE = "All analysis providers failed"

DEFAULT_SAMPLE_ROWS = 10


def _unique(items: Sequence[Any]) -> List[Any]:
    seen = []
    for item in items:
        if item not in seen:
            seen.append(item)
    return seen


def combine_results(successes: Sequence[ProviderSuccess]) -> CombinedAnalysis:
    """
    Merge successful payloads field by field.

    Summaries are space-joined in provider order. List fields are
    concatenated, deduplicated by exact value and truncated to their cap;
    statistics are deduplicated but not capped.
    """
    summaries = [s.payload.summary.strip() for s in successes if s.payload.summary and s.payload.summary.strip()]

    merged: Dict[str, Any] = {}
    for field, cap in COMBINED_CAPS.items():
        values = [item for s in successes for item in getattr(s.payload, field)]
        merged[field] = _unique(values)[:cap]

    # Dicts are unhashable, so dedup by equality
    statistics = _unique([item for s in successes for item in s.payload.statistics])

    return CombinedAnalysis(
        summary=' '.join(summaries),
        statistics=statistics,
        providers=[s.provider_name for s in successes],
        **merged,
    )


@track_performance("super_analyze")
async def super_analyze(
    rows: List[List[Any]],
    headers: List[str],
    providers: Sequence[ProviderClient],
    custom_prompt: Optional[str] = None,
) -> SuperAnalysis:
    """
    Run every provider concurrently and merge what succeeds.

    Args:
        rows: Dataset rows (rectangular)
        headers: Column headers
        providers: Providers in priority order, fallback last
        custom_prompt: Replaces the generated prompt for every LLM provider

    Returns:
        SuperAnalysis with the first success as primary, the remaining
        successes as secondary and the merged CombinedAnalysis
    """
    logger.info(f"Starting analysis with {len(providers)} providers")

    # One prompt for every LLM provider, built off the event loop
    sample_rows = next(
        (p.sample_rows for p in providers if p.uses_prompt), DEFAULT_SAMPLE_ROWS
    )
    plan = await asyncio.to_thread(plan_analysis, headers, rows, custom_prompt, sample_rows)

    outcomes = await asyncio.gather(
        *(p.analyze(rows, headers, custom_prompt, plan.prompt) for p in providers),
        return_exceptions=True,
    )

    results: List[ProviderResult] = []
    for provider, outcome in zip(providers, outcomes):
        if isinstance(outcome, asyncio.CancelledError):
            raise outcome
        if isinstance(outcome, BaseException):
            # analyze() is meant to be total; keep going if one is not
            logger.error(
                f"{provider.name} raised instead of returning a failure: {outcome!r}",
                exc_info=outcome
            )
            outcome = ProviderFailure(provider_name=provider.name, error_message=str(outcome) or type(outcome).__name__)
        results.append(outcome)

    successes = [r for r in results if r.ok]
    failures = [r for r in results if not r.ok]

    if successes:
        primary: ProviderResult = successes[0]
    else:
        primary = ProviderFailure(provider_name=NO_PROVIDER_NAME, error_message=NO_PROVIDER_MESSAGE)

    logger.info(
        f"Analysis complete: {len(successes)}/{len(results)} providers succeeded, "
        f"primary={primary.provider_name}"
    )
    if failures:
        logger.debug(f"Failed providers: {[f.provider_name for f in failures]}")

    return SuperAnalysis(
        primary=primary,
        secondary=successes[1:],
        combined=combine_results(successes),
        context=plan.context,
        strategy=plan.strategy.name,
    )
