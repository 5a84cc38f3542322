"""
Tests for analysis providers and the offline fallback.
"""
import json
import asyncio

import httpx
import pytest

from reportsonic.core.config import Settings
from reportsonic.core.performance import PerformanceMonitor
from reportsonic.core.schemas import ProviderFailure, ProviderSuccess
from reportsonic.services.context import CUSTOM_PROMPT_SYSTEM, Prompt
from reportsonic.services.providers import (
    AnthropicProvider,
    FallbackProvider,
    LLMProvider,
    OpenAIProvider,
    build_fallback_analysis,
    build_providers,
)


class ScriptedLLM(LLMProvider):
    """LLM provider whose model call returns a canned reply."""

    name = "Scripted"

    def __init__(self, reply="", api_key="key", delay=0.0, error=None, timeout=5.0):
        super().__init__(api_key, "test-model", timeout=timeout)
        self.reply = reply
        self.delay = delay
        self.error = error
        self.prompts = []

    async def _complete(self, system_prompt, prompt):
        self.prompts.append((system_prompt, prompt))
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return self.reply


HEADERS = ["Region", "Sales"]
ROWS = [["North", 10], ["South", 20], ["East", None]]


@pytest.mark.unit
def test_fallback_statistics():
    payload = build_fallback_analysis(HEADERS, ROWS)

    assert payload.summary == (
        "Analyzed 3 rows across 2 columns. "
        "Found 1 numeric columns with significant data patterns."
    )
    assert payload.statistics == [
        {"column": "Sales", "count": 2, "min": 10.0, "max": 20.0, "mean": 15.0}
    ]
    assert payload.quality_issues == []
    assert "No obvious data quality issues detected" in payload.trends
    assert payload.insights[0] == "Dataset contains 3 records with 2 data fields"


@pytest.mark.unit
def test_fallback_reports_sparse_columns():
    payload = build_fallback_analysis(["Notes", "Value"], [[None, 1], [None, 2], ["x", 3]])

    assert payload.quality_issues == ["Notes is only 33.3% complete"]
    assert "No obvious data quality issues detected" not in payload.trends


@pytest.mark.unit
@pytest.mark.asyncio
async def test_fallback_provider_handles_zero_rows():
    result = await FallbackProvider().analyze([], ["A", "B"])

    assert isinstance(result, ProviderSuccess)
    assert result.provider_name == "Fallback AI"
    assert result.payload.summary.startswith("Analyzed 0 rows across 2 columns.")
    assert result.payload.statistics == []
    assert result.payload.quality_issues == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_llm_provider_parses_reply():
    provider = ScriptedLLM(reply='Sure! {"summary": "Sales are up", "insights": ["North leads"]}')
    result = await provider.analyze(ROWS, HEADERS)

    assert isinstance(result, ProviderSuccess)
    assert result.ok
    assert result.payload.summary == "Sales are up"
    assert result.payload.insights == ["North leads"]

    system_prompt, prompt = provider.prompts[0]
    assert "Total Rows: 3" in prompt
    assert system_prompt != CUSTOM_PROMPT_SYSTEM

    stats = PerformanceMonitor.get_stats("provider.Scripted")
    assert stats is not None
    assert stats["count"] == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_llm_provider_uses_custom_prompt():
    provider = ScriptedLLM(reply='{"summary": "Brief"}')
    await provider.analyze(ROWS, HEADERS, custom_prompt="Be brief")

    assert provider.prompts == [(CUSTOM_PROMPT_SYSTEM, "Be brief")]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_missing_api_key_is_a_failure():
    provider = ScriptedLLM(reply='{"summary": "unused"}', api_key=None)
    result = await provider.analyze(ROWS, HEADERS)

    assert isinstance(result, ProviderFailure)
    assert not result.ok
    assert result.error_message == "Scripted API key not configured"
    assert provider.prompts == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_empty_reply_is_a_failure():
    result = await ScriptedLLM(reply="   ").analyze(ROWS, HEADERS)
    assert result.error_message == "No content received from Scripted"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_timeout_is_a_failure():
    result = await ScriptedLLM(reply="{}", delay=1.0, timeout=0.05).analyze(ROWS, HEADERS)

    assert isinstance(result, ProviderFailure)
    assert result.error_message == "Scripted timed out after 0.05s"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_prebuilt_prompt_is_sent_as_is():
    provider = ScriptedLLM(reply='{"summary": "ok"}')
    result = await provider.analyze(ROWS, HEADERS, prompt=Prompt("system text", "user text"))

    assert result.ok
    assert provider.prompts == [("system text", "user text")]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_timeout_excludes_prompt_building():
    class SlowPrompt(ScriptedLLM):
        async def build_prompt(self, rows, headers, custom_prompt=None):
            await asyncio.sleep(0.2)
            return Prompt("system text", "user text")

    result = await SlowPrompt(reply='{"summary": "ok"}', timeout=0.1).analyze(ROWS, HEADERS)

    assert result.ok
    assert result.payload.summary == "ok"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_unexpected_exception_is_a_failure():
    result = await ScriptedLLM(error=RuntimeError("connection reset")).analyze(ROWS, HEADERS)

    assert isinstance(result, ProviderFailure)
    assert result.error_message == "connection reset"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_cancellation_propagates():
    started = asyncio.Event()

    class Hanging(ScriptedLLM):
        async def _complete(self, system_prompt, prompt):
            started.set()
            await asyncio.Event().wait()

    task = asyncio.create_task(Hanging().analyze(ROWS, HEADERS))
    await started.wait()
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task


@pytest.mark.unit
@pytest.mark.asyncio
async def test_openai_provider_over_http():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={
            "choices": [{"message": {"content": '{"summary": "From OpenAI"}'}}]
        })

    provider = OpenAIProvider(
        "sk-test", "gpt-4o-mini", "https://api.openai.com/v1",
        transport=httpx.MockTransport(handler),
    )
    result = await provider.analyze(ROWS, HEADERS)

    assert isinstance(result, ProviderSuccess)
    assert result.payload.summary == "From OpenAI"

    request = requests[0]
    assert request.url.path == "/v1/chat/completions"
    assert request.headers["Authorization"] == "Bearer sk-test"
    body = json.loads(request.content)
    assert body["model"] == "gpt-4o-mini"
    assert [m["role"] for m in body["messages"]] == ["system", "user"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_http_error_status_is_a_failure():
    provider = OpenAIProvider(
        "sk-test", "gpt-4o-mini", "https://api.openai.com/v1",
        transport=httpx.MockTransport(lambda request: httpx.Response(500, text="oops")),
    )
    result = await provider.analyze(ROWS, HEADERS)

    assert isinstance(result, ProviderFailure)
    assert result.error_message == "OpenAI API error: 500"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_unexpected_response_shape_is_a_failure():
    provider = OpenAIProvider(
        "sk-test", "gpt-4o-mini", "https://api.openai.com/v1",
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"unexpected": True})),
    )
    result = await provider.analyze(ROWS, HEADERS)

    assert result.error_message == "Unexpected response from OpenAI: KeyError"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_anthropic_provider_over_http():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={
            "content": [{"type": "text", "text": '{"summary": "From Claude"}'}]
        })

    provider = AnthropicProvider(
        "ak-test", "claude-3-5-haiku-latest", "https://api.anthropic.com/v1",
        transport=httpx.MockTransport(handler),
    )
    result = await provider.analyze(ROWS, HEADERS)

    assert result.provider_name == "Claude"
    assert result.payload.summary == "From Claude"

    request = requests[0]
    assert request.url.path == "/v1/messages"
    assert request.headers["x-api-key"] == "ak-test"
    assert request.headers["anthropic-version"] == "2023-06-01"
    body = json.loads(request.content)
    assert "system" in body
    assert [m["role"] for m in body["messages"]] == ["user"]


@pytest.mark.unit
def test_build_providers_order_and_timeouts():
    settings = Settings(groq_api_key="g", openai_api_key="o", anthropic_api_key="a")
    providers = build_providers(settings)

    assert [p.name for p in providers] == ["Groq", "OpenAI", "Claude", "Fallback AI"]
    assert [p.timeout for p in providers] == [15.0, 30.0, 30.0, 60.0]


@pytest.mark.unit
def test_build_providers_all_configured():
    settings = Settings(
        groq_api_key="g", gemini_api_key="m", deepseek_api_key="d",
        openai_api_key="o", anthropic_api_key="a",
    )
    names = [p.name for p in build_providers(settings)]
    assert names == ["Groq", "Gemini", "DeepSeek", "OpenAI", "Claude", "Fallback AI"]


@pytest.mark.unit
def test_build_providers_fallback_only():
    assert [p.name for p in build_providers(Settings())] == ["Fallback AI"]

    settings = Settings(groq_api_key="g", gemini_api_key="m")
    assert [p.name for p in build_providers(settings, skip_ai=True)] == ["Fallback AI"]
