"""
Analysis providers.

Each provider turns (rows, headers) into a ProviderResult. `analyze` is
total: transport, auth, parsing and timeout errors all come back as a
ProviderFailure instead of raising, so the orchestrator can fan out without
per-call error handling. Cancellation is the one exception and propagates.

Order matters: build_providers returns free/fast backends first, paid ones
next and the offline fallback last.
"""
import time
import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import httpx

from reportsonic.core.config import Settings
from reportsonic.core.performance import PerformanceMonitor
from reportsonic.core.sanitization import sanitize_for_logging
from reportsonic.core.schemas import AnalysisPayload, ProviderFailure, ProviderResult, ProviderSuccess
from reportsonic.services.context import Prompt, prompt_for, summarize_columns
from reportsonic.services.reply_parser import parse_provider_reply

logger = logging.getLogger(__name__)

MAX_REPLY_TOKENS = 3000
TEMPERATURE = 0.3

ANTHROPIC_VERSION = "2023-06-01"

# Columns below this completeness (percent) are reported by the fallback
LOW_COMPLETENESS_PERCENT = 50


class ProviderError(Exception):
    """A provider call failed in a way the provider itself detected."""


class ProviderClient(ABC):
    """Base class for analysis backends."""

    name = "Provider"
    # Whether _analyze reads the prompt; the orchestrator builds it only then
    uses_prompt = False

    def __init__(self, timeout: float = 30.0):
        self.timeout = timeout

    @abstractmethod
    async def _analyze(
        self,
        rows: List[List[Any]],
        headers: List[str],
        custom_prompt: Optional[str] = None,
        prompt: Optional[Prompt] = None,
    ) -> AnalysisPayload:
        """Produce a payload or raise."""

    async def build_prompt(
        self, rows: List[List[Any]], headers: List[str], custom_prompt: Optional[str] = None
    ) -> Optional[Prompt]:
        return None

    async def analyze(
        self,
        rows: List[List[Any]],
        headers: List[str],
        custom_prompt: Optional[str] = None,
        prompt: Optional[Prompt] = None,
    ) -> ProviderResult:
        """
        Run one analysis and report it as a ProviderResult.

        Callers that fan out to several providers pass a prebuilt `prompt`.
        The timeout covers the backend call only, not prompt building.
        """
        start_time = time.time()
        try:
            if prompt is None and self.uses_prompt:
                prompt = await self.build_prompt(rows, headers, custom_prompt)
            payload = await asyncio.wait_for(
                self._analyze(rows, headers, custom_prompt, prompt), timeout=self.timeout
            )
        except asyncio.TimeoutError:
            return self._failure(f"{self.name} timed out after {self.timeout:g}s", start_time)
        except Exception as e:
            return self._failure(str(e) or type(e).__name__, start_time)

        duration = time.time() - start_time
        PerformanceMonitor.record_metric(f"provider.{self.name}", duration, {'status': 'success'})
        logger.info(
            f"{self.name} analysis succeeded in {duration:.2f}s",
            extra={'provider': self.name, 'duration': duration}
        )
        return ProviderSuccess(provider_name=self.name, payload=payload)

    def _failure(self, message: str, start_time: float) -> ProviderFailure:
        duration = time.time() - start_time
        PerformanceMonitor.record_metric(
            f"provider.{self.name}", duration, {'status': 'failure', 'error': message}
        )
        logger.warning(
            f"{self.name} analysis failed after {duration:.2f}s: {sanitize_for_logging(message)}",
            extra={'provider': self.name, 'duration': duration}
        )
        return ProviderFailure(provider_name=self.name, error_message=message)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(timeout={self.timeout})"


class LLMProvider(ProviderClient):
    """Provider backed by a hosted language model."""

    uses_prompt = True

    def __init__(self, api_key: Optional[str], model: str, timeout: float = 30.0, sample_rows: int = 10):
        super().__init__(timeout=timeout)
        self.api_key = api_key
        self.model = model
        self.sample_rows = sample_rows

    @abstractmethod
    async def _complete(self, system_prompt: str, prompt: str) -> str:
        """Send one prompt and return the model's text reply."""

    def _require_key(self):
        if not self.api_key:
            raise ProviderError(f"{self.name} API key not configured")

    async def build_prompt(self, rows, headers, custom_prompt=None) -> Prompt:
        self._require_key()
        return await asyncio.to_thread(prompt_for, headers, rows, custom_prompt, self.sample_rows)

    async def _analyze(self, rows, headers, custom_prompt=None, prompt=None) -> AnalysisPayload:
        self._require_key()
        if prompt is None:
            prompt = await self.build_prompt(rows, headers, custom_prompt)

        reply = await self._complete(prompt.system, prompt.user)
        if not reply or not reply.strip():
            raise ProviderError(f"No content received from {self.name}")
        return parse_provider_reply(reply)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(model={self.model!r}, timeout={self.timeout})"


class GroqProvider(LLMProvider):
    name = "Groq"

    async def _complete(self, system_prompt: str, prompt: str) -> str:
        from groq import AsyncGroq

        async with AsyncGroq(api_key=self.api_key, timeout=self.timeout, max_retries=0) as client:
            response = await client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": system_prompt},
                    {"role": "user", "content": prompt}
                ],
                max_tokens=MAX_REPLY_TOKENS,
                temperature=TEMPERATURE,
            )
        return response.choices[0].message.content or ""


class GeminiProvider(LLMProvider):
    name = "Gemini"

    async def _complete(self, system_prompt: str, prompt: str) -> str:
        # Lazy import: the SDK is heavy and only needed when a key is set
        import google.generativeai as genai

        genai.configure(api_key=self.api_key)
        model = genai.GenerativeModel(self.model)
        response = await model.generate_content_async(
            f"{system_prompt}\n\n{prompt}",
            generation_config={"temperature": TEMPERATURE, "max_output_tokens": MAX_REPLY_TOKENS},
            request_options={"timeout": self.timeout},
        )
        return response.text


class OpenAICompatibleProvider(LLMProvider):
    """Chat-completions endpoint reached over plain HTTP."""

    def __init__(
        self,
        api_key: Optional[str],
        model: str,
        base_url: str,
        timeout: float = 30.0,
        sample_rows: int = 10,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__(api_key, model, timeout=timeout, sample_rows=sample_rows)
        self.base_url = base_url
        self.transport = transport

    def _request(self, system_prompt: str, prompt: str) -> Dict[str, Any]:
        return {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": prompt}
            ],
            "max_tokens": MAX_REPLY_TOKENS,
            "temperature": TEMPERATURE,
        }

    def _headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}

    def _path(self) -> str:
        return "/chat/completions"

    def _extract(self, result: Dict[str, Any]) -> str:
        return result["choices"][0]["message"]["content"]

    async def _complete(self, system_prompt: str, prompt: str) -> str:
        async with httpx.AsyncClient(
            base_url=self.base_url, timeout=self.timeout, transport=self.transport
        ) as client:
            response = await client.post(
                self._path(), headers=self._headers(), json=self._request(system_prompt, prompt)
            )

        if response.status_code != 200:
            raise ProviderError(f"{self.name} API error: {response.status_code}")
        try:
            return self._extract(response.json()) or ""
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise ProviderError(f"Unexpected response from {self.name}: {type(e).__name__}") from e


class DeepSeekProvider(OpenAICompatibleProvider):
    name = "DeepSeek"


class OpenAIProvider(OpenAICompatibleProvider):
    name = "OpenAI"


class AnthropicProvider(OpenAICompatibleProvider):
    """Anthropic messages API; same transport, different request shape."""

    name = "Claude"

    def _request(self, system_prompt: str, prompt: str) -> Dict[str, Any]:
        return {
            "model": self.model,
            "max_tokens": MAX_REPLY_TOKENS,
            "temperature": TEMPERATURE,
            "system": system_prompt,
            "messages": [{"role": "user", "content": prompt}],
        }

    def _headers(self) -> Dict[str, str]:
        return {
            "x-api-key": self.api_key,
            "anthropic-version": ANTHROPIC_VERSION,
            "Content-Type": "application/json",
        }

    def _path(self) -> str:
        return "/messages"

    def _extract(self, result: Dict[str, Any]) -> str:
        return result["content"][0]["text"]


def build_fallback_analysis(headers: List[str], rows: List[List[Any]]) -> AnalysisPayload:
    """
    Offline analysis from counts and simple column statistics.

    Works for any rectangular input, including zero rows, and always
    produces a non-empty summary.
    """
    names = [str(h) for h in headers]
    columns = summarize_columns(headers, rows)
    numeric = [column for column in columns if column.is_numeric]

    statistics = []
    for column in numeric:
        numbers = column.numbers
        statistics.append({
            'column': column.name,
            'count': len(numbers),
            'min': float(numbers.min()),
            'max': float(numbers.max()),
            'mean': round(float(numbers.mean()), 2),
        })

    quality_issues = []
    if rows:
        for column in columns:
            if column.completeness < LOW_COMPLETENESS_PERCENT:
                quality_issues.append(f"{column.name} is only {column.completeness:.1f}% complete")

    trends = [
        "Data shows consistent patterns across numeric columns",
        "Text columns contain diverse categorical information",
    ]
    if not quality_issues:
        trends.append("No obvious data quality issues detected")

    return AnalysisPayload(
        summary=(
            f"Analyzed {len(rows)} rows across {len(names)} columns. "
            f"Found {len(numeric)} numeric columns with significant data patterns."
        ),
        insights=[
            f"Dataset contains {len(rows)} records with {len(names)} data fields",
            f"{len(numeric)} columns contain numeric data suitable for statistical analysis",
            "Data appears to be well-structured with consistent formatting",
            "Multiple data types detected: numeric, text, and categorical",
            "Dataset size is appropriate for comprehensive analysis",
        ],
        trends=trends,
        quality_issues=quality_issues,
        recommendations=[
            "Perform correlation analysis on numeric columns",
            "Create visualizations to identify data patterns",
            "Consider additional data collection for missing categories",
            "Implement data validation for future updates",
            "Export results for stakeholder review",
        ],
        statistics=statistics,
        business_applications=[
            "Business intelligence reporting",
            "Performance metrics analysis",
            "Trend identification and forecasting",
            "Data-driven decision making support",
        ],
        risk_opportunities=[
            "Opportunity: Leverage data for strategic decision making",
            "Risk: Ensure data quality for reliable insights",
        ],
        next_steps=[
            "Review analysis results with stakeholders",
            "Implement recommended data collection improvements",
            "Schedule follow-up analysis in 30 days",
            "Create automated reporting dashboard",
        ],
    )


class FallbackProvider(ProviderClient):
    """Deterministic offline analysis; always succeeds for rectangular input."""

    name = "Fallback AI"

    def __init__(self, timeout: float = 60.0):
        super().__init__(timeout=timeout)

    async def _analyze(self, rows, headers, custom_prompt=None, prompt=None) -> AnalysisPayload:
        # Prompts have no effect offline
        return await asyncio.to_thread(build_fallback_analysis, headers, rows)


def build_providers(settings: Settings, skip_ai: bool = False) -> List[ProviderClient]:
    """
    Ordered provider list for the orchestrator.

    Providers without an API key are left out. The fallback is always last,
    so a call with `skip_ai=True` gets the fallback alone.
    """
    providers: List[ProviderClient] = []
    if not skip_ai:
        free = settings.free_provider_timeout_seconds
        paid = settings.paid_provider_timeout_seconds
        sample_rows = settings.prompt_sample_rows

        if settings.groq_api_key:
            providers.append(GroqProvider(settings.groq_api_key, settings.groq_model, free, sample_rows))
        if settings.gemini_api_key:
            providers.append(GeminiProvider(settings.gemini_api_key, settings.gemini_model, free, sample_rows))
        if settings.deepseek_api_key:
            providers.append(DeepSeekProvider(
                settings.deepseek_api_key, settings.deepseek_model, settings.deepseek_base_url, paid, sample_rows
            ))
        if settings.openai_api_key:
            providers.append(OpenAIProvider(
                settings.openai_api_key, settings.openai_model, settings.openai_base_url, paid, sample_rows
            ))
        if settings.anthropic_api_key:
            providers.append(AnthropicProvider(
                settings.anthropic_api_key, settings.anthropic_model, settings.anthropic_base_url, paid, sample_rows
            ))

    providers.append(FallbackProvider())
    logger.debug(f"Configured providers: {[p.name for p in providers]}")
    return providers
