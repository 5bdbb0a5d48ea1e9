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

"""
Configuration management for Switchboard.

Configuration is loaded from environment variables (prefix ``SWITCHBOARD_``,
nested fields separated by ``__``), from a YAML/JSON file, or built
programmatically.

Example:
    >>> from switchboard.config import SwitchboardConfig
    >>> config = SwitchboardConfig()  # Loads from environment
    >>> config.max_agent_steps
    5

    SWITCHBOARD_MAX_AGENT_STEPS=8
    SWITCHBOARD_BROWSER__SERVICE_URL=http://localhost:3001
    SWITCHBOARD_BACKENDS__BROWSER=anthropic:claude-sonnet-4-20250514
"""

from __future__ import annotations

import os
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings

from switchboard.exceptions import ConfigurationError
from switchboard.types import (
    FALLBACK_BACKEND,
    TASK_BACKEND_MAPPING,
    BackendConfig,
    Provider,
    TaskCategory,
)
from switchboard.utils.retry import RetryPolicy


class RetryConfig(BaseModel):
    """Retry settings applied to every backend call."""

    max_attempts: int = Field(default=3, ge=1, le=10, description="Total attempts per call")
    base_delay: float = Field(default=1.0, ge=0.0, description="First retry delay in seconds")
    max_delay: float = Field(default=60.0, ge=0.0, description="Maximum single delay")
    jitter: bool = Field(default=True, description="Apply +/-25% jitter")

    def to_policy(self) -> RetryPolicy:
        return RetryPolicy(
            max_attempts=self.max_attempts,
            base_delay=self.base_delay,
            max_delay=self.max_delay,
            jitter=self.jitter,
        )


class BrowserConfig(BaseModel):
    """Configuration for browser automation.

    Attributes:
        service_url: Base URL of a remote browser service. When unset the
            in-process Playwright service is used.
        headless: Run Chromium headless
        locale: Browser context locale
        timezone_id: Browser context timezone
        viewport_width: Viewport width in pixels
        viewport_height: Viewport height in pixels
        max_links: Cap on LINK entries in an action surface
        action_timeout_ms: Timeout for fill/click operations
        settle_delay_ms: Pause after navigation and typing
    """

    service_url: Optional[str] = Field(default=None, description="Remote browser service URL")
    headless: bool = Field(default=True, description="Run browser headless")
    locale: str = Field(default="en-US", description="Browser locale")
    timezone_id: str = Field(default="UTC", description="Browser timezone")
    viewport_width: int = Field(default=1280, ge=320, description="Viewport width")
    viewport_height: int = Field(default=720, ge=240, description="Viewport height")
    max_links: int = Field(default=20, ge=0, le=500, description="Max links in a surface")
    action_timeout_ms: int = Field(default=10000, ge=100, description="Fill/click timeout")
    navigation_timeout_ms: int = Field(default=30000, ge=1000, description="Navigation timeout")
    settle_delay_ms: int = Field(default=1000, ge=0, description="Pause after navigation")
    request_timeout_seconds: float = Field(default=60.0, ge=1.0, description="Remote call timeout")


class MCPConfig(BaseModel):
    """Configuration for the external-workspace MCP server."""

    server_url: str = Field(default="http://localhost:3002/mcp", description="MCP server URL")
    client_name: str = Field(default="switchboard", description="Client name sent on initialize")
    credential_service: str = Field(default="notion", description="Credential store service key")


class SwitchboardConfig(BaseSettings):
    """Main configuration loaded from environment variables.

    Environment variables are prefixed with SWITCHBOARD_ and use uppercase.
    Nested configs use double underscore as separator.
    """

    # Provider credentials
    gemini_api_key: Optional[str] = Field(default=None, description="Google AI API key")
    anthropic_api_key: Optional[str] = Field(default=None, description="Anthropic API key")
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Gemini REST base URL",
    )

    # Routing
    classifier_model: str = Field(default="gemini-2.0-flash", description="Classifier model")
    backends: Dict[str, str] = Field(
        default_factory=dict,
        description="Category -> 'provider:model' overrides",
    )
    fallback: str = Field(default=FALLBACK_BACKEND.identifier, description="Fallback backend")

    # Agent loop
    max_agent_steps: int = Field(default=5, ge=1, le=20, description="Backend calls per request")
    max_tokens: int = Field(default=4096, ge=64, description="Max output tokens per call")
    temperature: float = Field(default=0.7, ge=0.0, le=2.0, description="Sampling temperature")

    retry: RetryConfig = Field(default_factory=RetryConfig)
    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    mcp: MCPConfig = Field(default_factory=MCPConfig)

    # External workspace
    workspace_keywords: List[str] = Field(
        default_factory=lambda: ["notion"],
        description="Keywords that force the EXTERNAL_WORKSPACE category",
    )
    workspace_destination: str = Field(
        default="inbox",
        description="Destination passed to the workspace writer",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="json", description="json, human or text")

    model_config = {
        "env_prefix": "SWITCHBOARD_",
        "env_nested_delimiter": "__",
        "case_sensitive": False,
    }

    @field_validator("backends")
    @classmethod
    def _validate_backends(cls, value: Dict[str, str]) -> Dict[str, str]:
        for category, identifier in value.items():
            if TaskCategory.parse(category) is None:
                raise ValueError(f"Unknown task category: {category}")
            BackendConfig.parse(identifier)
        return value

    @field_validator("fallback")
    @classmethod
    def _validate_fallback(cls, value: str) -> str:
        BackendConfig.parse(value)
        return value

    def backend_for(self, category: TaskCategory) -> BackendConfig:
        """Backend for ``category``, honoring configured overrides."""
        for name, identifier in self.backends.items():
            if TaskCategory.parse(name) == category:
                return BackendConfig.parse(identifier)
        return TASK_BACKEND_MAPPING[category]

    def backend_mapping(self) -> Dict[TaskCategory, BackendConfig]:
        return {category: self.backend_for(category) for category in TaskCategory}

    @property
    def fallback_backend(self) -> BackendConfig:
        return BackendConfig.parse(self.fallback)

    def api_key_for(self, provider: Provider) -> str:
        """Resolve the API key for ``provider``.

        Falls back to the conventional provider environment variables.

        Raises:
            ConfigurationError: If no key is available
        """
        if provider == Provider.GEMINI:
            key = (
                self.gemini_api_key
                or os.environ.get("GEMINI_API_KEY")
                or os.environ.get("GOOGLE_API_KEY")
            )
        else:
            key = self.anthropic_api_key or os.environ.get("ANTHROPIC_API_KEY")
        if not key:
            raise ConfigurationError(f"No API key configured for provider '{provider.value}'")
        return key


# Global configuration instance
_config: Optional[SwitchboardConfig] = None


def get_config() -> SwitchboardConfig:
    """Get the global configuration, loading it from the environment once."""
    global _config
    if _config is None:
        _config = SwitchboardConfig()
    return _config


def reload_config() -> SwitchboardConfig:
    """Reload configuration from environment."""
    global _config
    _config = SwitchboardConfig()
    return _config


def load_config_from_file(path: str) -> SwitchboardConfig:
    """Load configuration from a YAML or JSON file.

    Args:
        path: Path to configuration file

    Returns:
        SwitchboardConfig instance (also installed as the global config)

    Raises:
        FileNotFoundError: If file doesn't exist
        ValueError: If file format is invalid
    """
    import json
    import yaml

    if not os.path.exists(path):
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(path, "r") as f:
        if path.endswith(".yaml") or path.endswith(".yml"):
            data = yaml.safe_load(f) or {}
        elif path.endswith(".json"):
            data = json.load(f)
        else:
            raise ValueError(f"Unsupported config file format: {path}")

    global _config
    _config = SwitchboardConfig(**data)
    return _config
