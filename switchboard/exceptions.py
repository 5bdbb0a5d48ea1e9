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
Exception hierarchy for Switchboard.

All errors raised by Switchboard derive from SwitchboardError so callers can
catch the whole family with a single clause. The hierarchy mirrors the
recovery policy of the orchestrator:

- BackendError and subclasses: a model backend call failed. Triggers the
  single-shot fallback when the failing backend is high capability.
- BrowserError and subclasses: the browser automation service failed. These
  are converted into structured tool results and shown to the model.
- MCPError: the per-user MCP connection failed.
- OrchestrationError: both the primary and fallback backends failed.
"""

from __future__ import annotations

from typing import Optional


class SwitchboardError(Exception):
    """Base class for all Switchboard errors."""


class ConfigurationError(SwitchboardError):
    """Raised when configuration is missing or invalid."""


# ==================== Backend errors ====================

class BackendError(SwitchboardError):
    """A model backend call failed."""

    def __init__(self, message: str, backend: Optional[str] = None) -> None:
        super().__init__(message)
        self.backend = backend


class RateLimitError(BackendError):
    """The backend rejected the call with a rate limit (retryable)."""


class TransientBackendError(BackendError):
    """Network hiccup or 5xx from the backend (retryable)."""


class AuthenticationError(BackendError):
    """The backend rejected the credentials."""


class ClassificationError(SwitchboardError):
    """The classifier model call failed. Never escapes the classifier."""


# ==================== Browser errors ====================

class BrowserError(SwitchboardError):
    """Base class for browser automation failures."""


class BrowserServiceError(BrowserError):
    """The browser automation service is unreachable or returned an error."""


class SessionNotFoundError(BrowserError):
    """The requested browser session does not exist (or no longer exists)."""

    def __init__(self, session_id: str) -> None:
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class UnknownActionError(BrowserError):
    """The browser service does not know the requested action."""

    def __init__(self, action: str) -> None:
        super().__init__(f"Unknown action: {action}")
        self.action = action


class BrowserActionError(BrowserError):
    """A browser action failed against a specific element."""

    reason = "action_failed"

    def __init__(self, message: str, selector: Optional[str] = None) -> None:
        super().__init__(message)
        self.selector = selector


class ElementNotFoundError(BrowserActionError):
    reason = "element_not_found"


class ElementNotVisibleError(BrowserActionError):
    reason = "element_not_visible"


class ElementNotEditableError(BrowserActionError):
    reason = "element_not_editable"


class InvalidActionParamsError(BrowserActionError):
    reason = "invalid_params"


class SelectorNotInSurfaceError(BrowserActionError):
    """The selector was not present in the session's latest action surface."""

    reason = "selector_not_in_surface"


# ==================== Other errors ====================

class MCPError(SwitchboardError):
    """MCP connection or protocol failure."""


class OrchestrationError(SwitchboardError):
    """Both the primary and the fallback backend failed for a request."""

    def __init__(self, message: str, primary: Optional[str] = None, fallback: Optional[str] = None) -> None:
        super().__init__(message)
        self.primary = primary
        self.fallback = fallback
