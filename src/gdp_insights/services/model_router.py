"""Selects which hosted model provider answers trend analysis requests.

The router does not touch any SDK; it only resolves a provider configuration
(model name, key and base URL) that the completion client instantiates. Every
provider is reached through an OpenAI-compatible endpoint.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Set, Tuple


@dataclass(frozen=True)
class ProviderSelection:
    """Returned details about the provider that should handle a task."""

    name: str
    model: str
    api_key_env: Optional[str]
    base_url: str
    requires_api_key: bool = True

    def api_key(self, env: Optional[Mapping[str, str]] = None) -> Optional[str]:
        env = os.environ if env is None else env
        if not self.api_key_env:
            return None
        return env.get(self.api_key_env) or None


@dataclass(frozen=True)
class ProviderSpec:
    """Static defaults for one provider; ``<PREFIX>_MODEL`` / ``<PREFIX>_BASE_URL`` override them."""

    env_prefix: str
    default_model: str
    default_base_url: str
    requires_api_key: bool = True

    @property
    def api_key_env(self) -> str:
        return f"{self.env_prefix}_API_KEY"

    def resolve(self, name: str, env: Mapping[str, str], model_override: Optional[str]) -> ProviderSelection:
        return ProviderSelection(
            name=name,
            model=model_override or env.get(f"{self.env_prefix}_MODEL") or self.default_model,
            api_key_env=self.api_key_env,
            base_url=env.get(f"{self.env_prefix}_BASE_URL") or self.default_base_url,
            requires_api_key=self.requires_api_key,
        )


PROVIDERS: Dict[str, ProviderSpec] = {
    "openai": ProviderSpec("OPENAI", "gpt-4o-mini", "https://api.openai.com/v1"),
    "gemini": ProviderSpec("GEMINI", "gemini-2.5-flash", "https://generativelanguage.googleapis.com/v1beta/openai/"),
    "xai": ProviderSpec("XAI", "grok-2-latest", "https://api.x.ai/v1"),
    "local": ProviderSpec("LOCAL", "llama3.1", "http://127.0.0.1:11434/v1", requires_api_key=False),
}

# Narrative summaries are short; cheaper hosted models go first.
ROUTING_POLICY: Dict[str, Tuple[str, ...]] = {
    "trend_analysis": ("gemini", "openai", "xai", "local"),
}


class ModelRouter:
    """Policy-based provider selection with an optional preferred provider."""

    def __init__(
        self,
        env: Optional[Mapping[str, str]] = None,
        allowed_providers: Optional[Iterable[str]] = None,
        preferred: Optional[str] = None,
        model_override: Optional[str] = None,
    ) -> None:
        self._env = os.environ if env is None else env
        self._allowed: Optional[Set[str]] = set(allowed_providers) if allowed_providers else None
        preferred = (preferred or self._env.get("GDP_MODEL_PROVIDER") or "").strip().lower()
        self._preferred = preferred if preferred in PROVIDERS else None
        self._model_override = model_override

    def _candidates(self, purpose: str) -> List[str]:
        order = list(ROUTING_POLICY.get(purpose, ROUTING_POLICY["trend_analysis"]))
        if self._preferred:
            order = [self._preferred] + [p for p in order if p != self._preferred]
        if self._allowed is not None:
            order = [p for p in order if p in self._allowed]
        return order

    def _usable(self, name: str) -> bool:
        spec = PROVIDERS[name]
        if spec.requires_api_key:
            return bool(self._env.get(spec.api_key_env))
        # keyless providers must be switched on explicitly
        return self._env.get("GDP_ENABLE_LOCAL_PROVIDER", "").strip() == "1" or self._preferred == name

    def select_provider(self, purpose: str = "trend_analysis") -> ProviderSelection:
        """Return the first usable provider for ``purpose``.

        Raises
        ------
        RuntimeError
            If none of the providers routed for ``purpose`` is usable.
        """
        for name in self._candidates(purpose):
            if self._usable(name):
                return PROVIDERS[name].resolve(name, self._env, self._model_override)
        raise RuntimeError("No active model provider available for this task.")

    def maybe_select_provider(self, purpose: str = "trend_analysis") -> Optional[ProviderSelection]:
        try:
            return self.select_provider(purpose)
        except RuntimeError:
            return None
