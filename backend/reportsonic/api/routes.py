import logging
from typing import Callable, Dict, List, Tuple

from fastapi import APIRouter, Depends, HTTPException, Request
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded

from reportsonic.core.config import Settings, get_settings
from reportsonic.core.errors import ErrorCodes, get_error_response
from reportsonic.core.sanitization import sanitize_for_logging
from reportsonic.core.schemas import AnalysisReport, AnalyzeRequest, DatasetRequest, RecommendationResult
from reportsonic.services.pipeline import run_pipeline
from reportsonic.services.profiler import profile_dataset
from reportsonic.services.providers import ProviderClient, build_providers
from reportsonic.services.recommender import recommend_charts

logger = logging.getLogger(__name__)

router = APIRouter()

ProviderFactory = Callable[[bool], List[ProviderClient]]


def get_provider_factory() -> ProviderFactory:
    """Dependency returning a callable that builds the provider list for a request."""
    def factory(skip_ai: bool) -> List[ProviderClient]:
        return build_providers(get_settings(), skip_ai=skip_ai)
    return factory


def _raise(request: Request, status_code: int, error_code: str, detail: str = None):
    error_info = get_error_response(error_code, detail)
    error_info['correlation_id'] = getattr(request.state, 'correlation_id', 'unknown')
    raise HTTPException(status_code=status_code, detail=error_info)


def validate_dataset(dataset: DatasetRequest, request: Request, settings: Settings) -> None:
    """
    Enforce the preconditions the analysis core relies on.

    Raises HTTPException 400 for missing headers or ragged rows and 413 for
    datasets over the configured limits.
    """
    if not dataset.headers:
        _raise(request, 400, ErrorCodes.INVALID_DATASET, "No column headers were provided.")

    if len(dataset.headers) > settings.max_dataset_columns:
        _raise(
            request, 413, ErrorCodes.DATASET_TOO_LARGE,
            f"Maximum is {settings.max_dataset_columns} columns. Your dataset has {len(dataset.headers)}."
        )

    if len(dataset.rows) > settings.max_dataset_rows:
        _raise(
            request, 413, ErrorCodes.DATASET_TOO_LARGE,
            f"Maximum is {settings.max_dataset_rows} rows. Your dataset has {len(dataset.rows)}."
        )

    width = len(dataset.headers)
    for index, row in enumerate(dataset.rows):
        if len(row) != width:
            _raise(
                request, 400, ErrorCodes.INVALID_DATASET,
                f"Row {index + 1} has {len(row)} values but there are {width} headers."
            )


@router.get("/health")
async def health_check():
    return {"status": "ok"}


async def _process_analysis(
    payload: AnalyzeRequest, request: Request, provider_factory: ProviderFactory
) -> AnalysisReport:
    """Run the pipeline for a validated request (internal function without rate limiting)."""
    validate_dataset(payload, request, request.app.state.settings)

    logger.info(
        f"Analyzing dataset: {len(payload.rows)} rows, {len(payload.headers)} columns, "
        f"skip_ai={payload.skip_ai}, custom_prompt={'yes' if payload.custom_prompt else 'no'}"
    )
    providers = provider_factory(payload.skip_ai)
    report = await run_pipeline(payload.headers, payload.rows, providers, payload.custom_prompt)

    logger.info(
        f"Analysis finished: {len(report.recommendations)} recommendations, "
        f"{len(report.combined_analysis.insights)} insights from {report.combined_analysis.providers}"
    )
    return report


# slowapi registers limits per decorated function name, so each limit string
# gets one decorated handler with its own name instead of one per request
_rate_limited_handlers: Dict[Tuple[int, str], Callable] = {}


def _rate_limited(limiter: Limiter, limit: str) -> Callable:
    key = (id(limiter), limit)
    if key not in _rate_limited_handlers:
        async def handler(request: Request, payload: AnalyzeRequest, provider_factory: ProviderFactory):
            return await _process_analysis(payload, request, provider_factory)

        handler.__name__ = f"analyze_dataset_{limit.replace('/', '_per_')}"
        _rate_limited_handlers[key] = limiter.limit(limit)(handler)
    return _rate_limited_handlers[key]


@router.post("/analyze", response_model=AnalysisReport)
async def analyze_dataset(
    request: Request,
    payload: AnalyzeRequest,
    provider_factory: ProviderFactory = Depends(get_provider_factory),
):
    """
    Profile a dataset, recommend charts and run the multi-provider analysis.

    Rate limited per IP address (RATE_LIMIT_PER_MINUTE, default 10).
    """
    limiter = request.app.state.limiter
    app_settings = request.app.state.settings
    handler = _rate_limited(limiter, f"{app_settings.rate_limit_per_minute}/minute")

    try:
        # RateLimitExceeded is formatted by the handler registered in main.py
        return await handler(request, payload, provider_factory)
    except HTTPException:
        raise
    except RateLimitExceeded:
        raise
    except Exception as e:
        logger.error(f"Unexpected error analyzing dataset: {sanitize_for_logging(str(e))}", exc_info=True)
        _raise(request, 500, ErrorCodes.PROCESSING_ERROR)


@router.post("/recommendations", response_model=RecommendationResult)
async def get_recommendations(request: Request, payload: DatasetRequest):
    """Profile a dataset and recommend charts without contacting any provider."""
    validate_dataset(payload, request, request.app.state.settings)

    try:
        profile = profile_dataset(payload.headers, payload.rows)
        recommendations = recommend_charts(profile)
    except Exception as e:
        logger.error(f"Recommendation failed: {sanitize_for_logging(str(e))}", exc_info=True)
        _raise(request, 500, ErrorCodes.PROCESSING_ERROR)

    return RecommendationResult(profile=profile, recommendations=recommendations)
