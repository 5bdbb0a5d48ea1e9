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
Semantic action surface extraction.

The action surface is a compact, line-oriented inventory of what a model
may act on in the current page::

    INPUT: [placeholder="Search"] (Search)
    BUTTON: #login (Login)
    LINK: text="Pricing" (/pricing)
    HEADING_1: text="Welcome" (Welcome)

It is the only legitimate source of selectors for ``type_text`` and
``click_element``. Only elements Playwright can actually act on are listed:
inputs must be visible and editable, buttons and links visible.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, List, Optional, Set, Tuple

from playwright.async_api import Page, TimeoutError as PlaywrightTimeout

from switchboard.utils.logger import logger

EMPTY_SURFACE = "No interactive elements found."

PLACEHOLDER_INPUTS = (
    'input[placeholder]:not([type="hidden"]):not([disabled]), '
    'textarea[placeholder]:not([disabled])'
)
NAMED_INPUTS = (
    'input[name]:not([type="hidden"]):not([disabled]), '
    'textarea[name]:not([disabled])'
)
BUTTONS = 'button, input[type="submit"]'
LINKS = "a"
HEADING_LEVELS = (1, 2, 3)

# Donation widgets and preference toggles that confuse the model
EXCLUDED_NAME_PARTS = ("amount", "monthly", "pref-")

_LINE_RE = re.compile(
    r'^(?P<kind>INPUT|BUTTON|LINK|HEADING_\d): '
    r'(?P<selector>\[[a-z-]+="(?:[^"\\]|\\.)*"\]|text="(?:[^"\\]|\\.)*"|#\S+|button) '
    r'\((?P<label>.*)\)$'
)


class SurfaceKind(str, Enum):
    INPUT = "INPUT"
    BUTTON = "BUTTON"
    LINK = "LINK"
    HEADING = "HEADING"


@dataclass(frozen=True)
class SurfaceEntry:
    """One actionable (or orienting) element of a page."""

    kind: str
    selector: str
    label: str

    def render(self) -> str:
        return f"{self.kind}: {self.selector} ({self.label})"


@dataclass
class ActionSurface:
    """Ordered, de-duplicated list of surface entries."""

    entries: List[SurfaceEntry] = field(default_factory=list)
    _seen: Set[Tuple[str, str]] = field(default_factory=set, repr=False)

    def add(self, kind: str, selector: str, label: str) -> bool:
        key = (kind, selector)
        if key in self._seen:
            return False
        self._seen.add(key)
        self.entries.append(SurfaceEntry(kind, selector, label))
        return True

    def count(self, kind: str) -> int:
        return sum(1 for entry in self.entries if entry.kind == kind)

    @property
    def selectors(self) -> Set[str]:
        return {entry.selector for entry in self.entries}

    def contains(self, selector: str) -> bool:
        return selector in self.selectors

    def is_empty(self) -> bool:
        return not self.entries

    def render(self) -> str:
        if not self.entries:
            return EMPTY_SURFACE
        return "\n".join(entry.render() for entry in self.entries)

    def __str__(self) -> str:
        return self.render()

    @classmethod
    def parse(cls, text: Optional[str]) -> ActionSurface:
        """Rebuild a surface from its rendered form. Unrecognized lines are ignored."""
        surface = cls()
        for line in (text or "").splitlines():
            match = _LINE_RE.match(line.strip())
            if match:
                surface.add(match.group("kind"), match.group("selector"), match.group("label"))
        return surface


def quote(value: str) -> str:
    """Escape a value for use inside a double-quoted selector."""
    return value.replace("\\", "\\\\").replace('"', '\\"')


def clean_text(value: Optional[str]) -> str:
    """Collapse newlines and runs of whitespace."""
    return re.sub(r"\s+", " ", value or "").strip()


async def _probe(check: Awaitable[Any], default: Any = False) -> Any:
    """Await a per-element check. Detached or stale elements count as ``default``."""
    try:
        return await check
    except Exception as e:
        logger.debug(f"[SURFACE] Element check failed: {e}")
        return default


def _excluded_name(name: Optional[str]) -> bool:
    return bool(name) and any(part in name for part in EXCLUDED_NAME_PARTS)


async def _collect_inputs(page: Page, surface: ActionSurface) -> None:
    for element in await page.query_selector_all(PLACEHOLDER_INPUTS):
        if not await _probe(element.is_visible()) or not await _probe(element.is_editable()):
            continue
        placeholder = (await _probe(element.get_attribute("placeholder"), None) or "").strip()
        if not placeholder:
            continue
        if _excluded_name(await _probe(element.get_attribute("name"), None)):
            continue
        surface.add(SurfaceKind.INPUT.value, f'[placeholder="{quote(placeholder)}"]', placeholder)

    if surface.count(SurfaceKind.INPUT.value):
        return

    for element in await page.query_selector_all(NAMED_INPUTS):
        if not await _probe(element.is_visible()) or not await _probe(element.is_editable()):
            continue
        name = await _probe(element.get_attribute("name"), None)
        if not name or "[" in name or _excluded_name(name):
            continue
        surface.add(SurfaceKind.INPUT.value, f'[name="{quote(name)}"]', name)


async def _collect_buttons(page: Page, surface: ActionSurface) -> None:
    for element in await page.query_selector_all(BUTTONS):
        if not await _probe(element.is_visible()):
            continue
        text = clean_text(await _probe(element.text_content(), None))
        if not text:
            text = clean_text(await _probe(element.get_attribute("value"), None))
        element_id = await _probe(element.get_attribute("id"), None)
        aria_label = await _probe(element.get_attribute("aria-label"), None)

        if element_id:
            selector = f'[id="{quote(element_id)}"]'
        elif text:
            selector = f'text="{quote(text)}"'
        else:
            selector = "button"
        surface.add(SurfaceKind.BUTTON.value, selector, aria_label or text or "Button")


async def _collect_links(page: Page, surface: ActionSurface, max_links: int) -> None:
    emitted = 0
    for element in await page.query_selector_all(LINKS):
        if emitted >= max_links:
            break
        if not await _probe(element.is_visible()):
            continue
        text = clean_text(await _probe(element.text_content(), None))
        if not text:
            continue
        href = await _probe(element.get_attribute("href"), None)
        if surface.add(SurfaceKind.LINK.value, f'text="{quote(text)}"', href or "#"):
            emitted += 1


async def _collect_headings(page: Page, surface: ActionSurface) -> None:
    for level in HEADING_LEVELS:
        for element in await page.query_selector_all(f"h{level}"):
            if not await _probe(element.is_visible()):
                continue
            text = clean_text(await _probe(element.text_content(), None))
            if text:
                surface.add(f"HEADING_{level}", f'text="{quote(text)}"', text)


async def extract_action_surface(
    page: Page,
    max_links: int = 20,
    idle_timeout_ms: int = 10000,
) -> ActionSurface:
    """
    Compute the action surface of ``page``.

    Waits for network idle first (best effort), then collects inputs,
    buttons, links (at most ``max_links``) and h1-h3 headings in that order.
    Paragraph text is never included.
    """
    try:
        await page.wait_for_load_state("networkidle", timeout=idle_timeout_ms)
    except PlaywrightTimeout:
        logger.debug("[SURFACE] Network did not go idle, extracting anyway")

    surface = ActionSurface()
    await _collect_inputs(page, surface)
    await _collect_buttons(page, surface)
    await _collect_links(page, surface, max_links)
    await _collect_headings(page, surface)

    logger.info(
        f"[SURFACE] Inputs: {surface.count('INPUT')}, Buttons: {surface.count('BUTTON')}, "
        f"Links: {surface.count('LINK')}, Entries: {len(surface.entries)}"
    )
    return surface
