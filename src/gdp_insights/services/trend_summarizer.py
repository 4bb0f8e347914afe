from __future__ import annotations

"""Trend Summarizer: one templated LLM call turning GDP figures into prose.

The completion service sits behind :class:`CompletionClient`. In production it
is a langchain-openai ``ChatOpenAI`` pointed at whichever OpenAI-compatible
provider :class:`ModelRouter` selects; tests pass a fake.

``analyze`` never raises: the caller always gets an :class:`AnalysisResult`
carrying exactly one of ``summary`` or ``error``.
"""

import json
import logging
import re
from typing import Any, Dict, Mapping, Optional, Protocol, Sequence

from langchain_openai import ChatOpenAI

from ..config import Settings
from ..domain.errors import AnalysisFailed, GdpError, NoData
from ..domain.models import AnalysisPoint, AnalysisResult
from ..observability.metrics import record_analysis
from .model_router import ModelRouter, ProviderSelection


LOG = logging.getLogger("gdp.llm")

ANALYST_INSTRUCTION = (
    "You are an expert economic analyst. Analyze the provided GDP data to identify growth "
    "trends and potential economic insights. Provide a detailed summary of your findings."
)

RESPONSE_FORMAT = (
    "Return ONLY valid JSON with a single key, like:\n"
    "{\n  \"summary\": \"...\"\n}"
)


class CompletionClient(Protocol):
    def complete(self, system: str, prompt: str) -> str: ...


def format_value(value: float) -> str:
    """Render a GDP value the way it was entered: 100.0 -> "100", 23320.5 -> "23320.5"."""
    if float(value).is_integer():
        return str(int(value))
    return repr(float(value))


def render_data_lines(points: Sequence[AnalysisPoint]) -> str:
    return "\n".join(f"Year: {p.year}, Value: {format_value(p.value)}" for p in points)


def build_prompt(points: Sequence[AnalysisPoint]) -> str:
    return "GDP Data:\n" + render_data_lines(points)


def parse_summary(text: str) -> str:
    """Extract the ``summary`` string from a model reply.

    Accepts bare JSON or JSON embedded in surrounding prose.
    Raises ValueError if no usable summary is present.
    """
    try:
        data = json.loads(text)
    except ValueError:
        m = re.search(r"\{[\s\S]*\}", text or "")
        if not m:
            raise ValueError("Model reply contained no JSON object")
        data = json.loads(m.group(0))
    if not isinstance(data, dict):
        raise ValueError("Model reply was not a JSON object")
    summary = data.get("summary")
    if not isinstance(summary, str) or not summary.strip():
        raise ValueError("Model reply had no summary")
    return summary.strip()


class LangChainCompletionClient:
    def __init__(
        self,
        selection: ProviderSelection,
        *,
        temperature: float = 0.2,
        env: Optional[Mapping[str, str]] = None,
    ) -> None:
        self.selection = selection
        self._temperature = temperature
        self._env = env

    def complete(self, system: str, prompt: str) -> str:
        # keyless local servers still expect a non-empty key
        api_key = self.selection.api_key(self._env) or "not-needed"
        llm = ChatOpenAI(
            api_key=api_key,
            base_url=self.selection.base_url,
            model=self.selection.model,
            temperature=self._temperature,
        )
        res = llm.invoke([{"role": "system", "content": system}, {"role": "user", "content": prompt}])
        return res.content if hasattr(res, "content") else str(res)


class UnconfiguredCompletionClient:
    """Stand-in used when no provider credentials are configured."""

    def complete(self, system: str, prompt: str) -> str:
        raise RuntimeError("LLM not configured")


def build_completion_client(settings: Settings, env: Optional[Mapping[str, str]] = None) -> CompletionClient:
    router = ModelRouter(env=env, preferred=settings.model_provider, model_override=settings.llm_model)
    selection = router.maybe_select_provider("trend_analysis")
    if selection is None:
        LOG.warning("No model provider configured; trend analysis will report failures")
        return UnconfiguredCompletionClient()
    LOG.info("Trend analysis routed to %s (%s)", selection.name, selection.model)
    return LangChainCompletionClient(selection, temperature=settings.llm_temperature, env=env)


def _normalize_points(points: Sequence[AnalysisPoint | Mapping[str, Any]]) -> list[AnalysisPoint]:
    try:
        return [p if isinstance(p, AnalysisPoint) else AnalysisPoint(year=p["year"], value=p["value"]) for p in points]
    except (KeyError, TypeError, ValueError) as exc:
        LOG.error("Unusable analysis points: %s", exc)
        raise AnalysisFailed() from exc


class TrendSummarizer:
    def __init__(self, client: CompletionClient) -> None:
        self._client = client

    def _summarize(self, points: Sequence[AnalysisPoint]) -> str:
        if not points:
            raise NoData()
        prompt = build_prompt(points)
        LOG.debug("Trend analysis prompt:\n%s", prompt)
        try:
            reply = self._client.complete(ANALYST_INSTRUCTION + "\n\n" + RESPONSE_FORMAT, prompt)
            return parse_summary(reply)
        except Exception as exc:
            LOG.error("AI Analysis Error: %s", exc, exc_info=LOG.isEnabledFor(logging.DEBUG))
            raise AnalysisFailed() from exc

    def analyze(self, points: Sequence[AnalysisPoint | Mapping[str, Any]]) -> AnalysisResult:
        """Summarize ``points`` in the given order. Any ``country`` key is ignored."""
        try:
            normalized = _normalize_points(points)
            summary = self._summarize(normalized)
        except GdpError as exc:
            record_analysis(exc.code)
            return AnalysisResult(error=exc.message)
        record_analysis("ok")
        LOG.info("Trend analysis produced %d characters for %d points", len(summary), len(normalized))
        return AnalysisResult(summary=summary)

    def describe(self) -> Dict[str, Optional[str]]:
        selection = getattr(self._client, "selection", None)
        if selection is None:
            return {"provider": None, "model": None}
        return {"provider": selection.name, "model": selection.model}
