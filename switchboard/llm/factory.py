# Copyright 2026 Firefly Software Solutions Inc
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Factory for creating backend adapters from BackendConfig values."""

from __future__ import annotations

from typing import Dict, Optional, Type

from switchboard.config import SwitchboardConfig, get_config
from switchboard.exceptions import ConfigurationError
from switchboard.llm.anthropic_provider import AnthropicProvider
from switchboard.llm.base import BackendAdapter
from switchboard.llm.gemini_provider import GeminiProvider
from switchboard.types import BackendConfig, Provider
from switchboard.utils.logger import logger


class BackendFactory:
    """
    Creates and caches one adapter per backend identifier.

    Example:
        >>> factory = BackendFactory(config)
        >>> adapter = factory.get(TASK_BACKEND_MAPPING[TaskCategory.COMPLEX])
    """

    _providers: Dict[Provider, Type[BackendAdapter]] = {
        Provider.GEMINI: GeminiProvider,
        Provider.ANTHROPIC: AnthropicProvider,
    }

    def __init__(self, config: Optional[SwitchboardConfig] = None) -> None:
        self.config = config or get_config()
        self._adapters: Dict[str, BackendAdapter] = {}

    def create(self, backend: BackendConfig) -> BackendAdapter:
        """
        Create a fresh adapter for ``backend``.

        Raises:
            ConfigurationError: If the provider is unknown or has no API key
        """
        provider_class = self._providers.get(backend.provider)
        if provider_class is None:
            raise ConfigurationError(f"Unsupported provider: {backend.provider}")

        api_key = self.config.api_key_for(backend.provider)
        kwargs = {
            "retry_policy": self.config.retry.to_policy(),
            "max_tokens": self.config.max_tokens,
            "temperature": self.config.temperature,
        }
        if backend.provider == Provider.GEMINI:
            kwargs["base_url"] = self.config.gemini_base_url

        logger.debug(f"Creating adapter for {backend.identifier}")
        return provider_class(backend, api_key=api_key, **kwargs)

    def get(self, backend: BackendConfig) -> BackendAdapter:
        """Return the cached adapter for ``backend``, creating it on first use."""
        adapter = self._adapters.get(backend.identifier)
        if adapter is None:
            adapter = self.create(backend)
            self._adapters[backend.identifier] = adapter
        return adapter

    @classmethod
    def register_provider(cls, provider: Provider, provider_class: type) -> None:
        if not issubclass(provider_class, BackendAdapter):
            raise ConfigurationError(
                f"Provider class must inherit from BackendAdapter, got {provider_class}"
            )
        cls._providers[provider] = provider_class

    async def close(self) -> None:
        for adapter in self._adapters.values():
            await adapter.close()
        self._adapters.clear()
