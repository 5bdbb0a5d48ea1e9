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
Pydantic models for the browser automation HTTP service.

Example:
    >>> from switchboard.service.models import ActionRequest
    >>> request = ActionRequest(
    ...     session_id="3f1c...",
    ...     action="click_element",
    ...     params={"selector": "#login"},
    ... )
    >>> print(request.model_dump_json())
"""

from __future__ import annotations

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class SessionCreateResponse(BaseModel):
    """Response containing the new session id."""

    session_id: str = Field(..., description="Unique session identifier")


class ActionRequest(BaseModel):
    """
    Request to run one action in a session.

    Attributes:
        session_id: Session returned by ``/session/create``
        action: One of navigate, type_text, click_element, get_surface
        params: Action parameters (url, selector, text, description)
    """

    session_id: str = Field(..., description="Session identifier")
    action: str = Field(..., description="Action name")
    params: Dict[str, Any] = Field(default_factory=dict, description="Action parameters")


class ActionResponse(BaseModel):
    """Observation returned after an action."""

    success: bool = Field(True, description="Whether the action succeeded")
    action: str = Field(..., description="Action that was executed")
    url: Optional[str] = Field(None, description="Page URL after the action")
    selector: Optional[str] = Field(None, description="Selector acted on, if any")
    surface: str = Field(..., description="Rendered action surface of the page")


class SessionDestroyRequest(BaseModel):
    """Request to destroy a session."""

    session_id: str = Field(..., description="Session identifier")


class SessionDestroyResponse(BaseModel):
    session_id: str = Field(..., description="Session identifier")
    destroyed: bool = Field(..., description="Whether the session was destroyed")


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., description="Service status")
    version: str = Field(..., description="Service version")
    uptime_seconds: float = Field(..., description="Service uptime in seconds")
    active_sessions: int = Field(..., description="Number of active sessions")


class ErrorResponse(BaseModel):
    """Error response."""

    error: str = Field(..., description="Error type")
    message: str = Field(..., description="Error message")
    reason: Optional[str] = Field(None, description="Machine-readable failure reason")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error details")
