"""Playwright-backed remote surface for the account pages"""

import asyncio
import json
import logging
import random
from contextlib import asynccontextmanager
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path
from typing import AsyncIterator, Dict, List, Optional, Sequence

from playwright.async_api import Dialog, Page, Response, async_playwright
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from bonus_manager.config import Settings
from bonus_manager.domain.exceptions import ActionSurfaceNotFoundError, NavigationError, SubmissionError
from bonus_manager.domain.models import Container, FieldOption, FormField
from bonus_manager.infrastructure.surface.base import Acknowledgment, AcknowledgmentPredicate, Prompt

logger = logging.getLogger(__name__)

CONTROL_SELECTOR = "button, input[type='submit'], input[type='button']"
DIALOG_SELECTOR = ".ui-dialog:visible, [role='dialog']:visible, [role='alertdialog']:visible"
AFFIRMATIVE_LABELS = ("ok", "yes", "confirm", "accept", "buy", "donate", "continue")
PROMPT_POLL_SECONDS = 0.2

_CONTROL_LABELS_JS = """
(nodes) => nodes.map((node) =>
  String(node.getAttribute('value') || node.getAttribute('aria-label') || node.textContent || '')
    .replace(/\\s+/g, ' ').trim())
"""

_DISCOVER_FORMS_JS = """
(forms) => {
  const clean = (value) => String(value || '').replace(/\\s+/g, ' ').trim();
  const label = (node) => clean(
    node.getAttribute('value') || node.getAttribute('aria-label') ||
    node.getAttribute('title') || node.textContent || '');
  return forms.map((form, index) => ({
    index,
    action: clean(form.getAttribute('action')),
    method: clean(form.getAttribute('method')).toLowerCase(),
    text: clean(form.innerText || form.textContent),
    controls: Array.from(form.querySelectorAll("button, input[type='submit'], input[type='button']"))
      .map(label).filter(Boolean),
    fields: Array.from(form.querySelectorAll('input, select, textarea')).map((node) => ({
      tag: node.tagName.toLowerCase(),
      type: clean(node.getAttribute('type')),
      name: clean(node.getAttribute('name')),
      id: clean(node.getAttribute('id')),
      placeholder: clean(node.getAttribute('placeholder')),
      options: node.tagName.toLowerCase() === 'select'
        ? Array.from(node.options).map((opt) => ({
            value: opt.value, text: clean(opt.textContent), disabled: opt.disabled }))
        : [],
    })),
  }));
}
"""


def _container_from_payload(payload: dict) -> Container:
    fields = tuple(
        FormField(
            tag=f["tag"],
            type=f["type"],
            name=f["name"],
            id=f["id"],
            placeholder=f["placeholder"],
            options=tuple(FieldOption(**o) for o in f["options"]),
        )
        for f in payload["fields"]
    )
    return Container(
        index=payload["index"],
        text=payload["text"],
        controls=tuple(payload["controls"]),
        fields=fields,
        action=payload["action"],
        method=payload["method"],
    )


class PlaywrightSurface:
    """RemoteSurface over a single Playwright page"""

    def __init__(self, page: Page, settings: Settings):
        self.page = page
        self.settings = settings
        self._dialogs: List[Dialog] = []
        self._active_dialog: Optional[Dialog] = None
        self._ack_predicate: Optional[AcknowledgmentPredicate] = None
        self._ack_future: Optional[asyncio.Future] = None

        page.on("dialog", self._on_dialog)
        page.on("response", self._on_response)

    @property
    def current_url(self) -> str:
        return self.page.url

    def _on_dialog(self, dialog: Dialog) -> None:
        self._dialogs.append(dialog)

    async def _on_response(self, response: Response) -> None:
        future, predicate = self._ack_future, self._ack_predicate
        if future is None or future.done() or predicate is None:
            return
        if not predicate(Acknowledgment(url=response.url, status=response.status)):
            return
        try:
            body = await response.text()
        except PlaywrightError:
            body = ""
        if not future.done():
            future.set_result(Acknowledgment(url=response.url, status=response.status, body=body))

    async def _pace(self) -> None:
        low, high = self.settings.action_delay_min_ms, self.settings.action_delay_max_ms
        await asyncio.sleep(random.uniform(low, max(low, high)) / 1000)

    async def navigate(self, url: str) -> str:
        try:
            await self.page.goto(url, wait_until="domcontentloaded", timeout=self.settings.timeout_ms)
        except PlaywrightError as e:
            raise NavigationError(f"Failed to load {url}: {e}") from e
        await self.settle()
        return self.page.url

    async def settle(self) -> None:
        """
        Wait for network idle, falling back to a fixed delay for pages that never go idle.

        Raises:
            NavigationError: The page went away while settling
        """
        try:
            await self.page.wait_for_load_state("networkidle", timeout=self.settings.settle_timeout_ms)
        except PlaywrightTimeoutError:
            try:
                await self.page.wait_for_timeout(self.settings.settle_fallback_ms)
            except PlaywrightError as e:
                raise NavigationError(f"Page closed while settling: {e}") from e
        except PlaywrightError as e:
            raise NavigationError(f"Page did not settle: {e}") from e

    async def read_page_text(self) -> str:
        try:
            return await self.page.locator("body").inner_text()
        except PlaywrightError as e:
            raise NavigationError(f"Could not read page text: {e}") from e

    async def read_element_text(self, selector: str) -> Optional[str]:
        locator = self.page.locator(selector).first
        try:
            if not await locator.count():
                return None
            return await locator.inner_text()
        except PlaywrightError:
            return None

    async def list_containers(self) -> List[Container]:
        try:
            payload = await self.page.eval_on_selector_all("form", _DISCOVER_FORMS_JS)
        except PlaywrightError as e:
            raise ActionSurfaceNotFoundError(f"Could not list forms: {e}") from e
        return [_container_from_payload(p) for p in payload]

    async def set_field_value(self, container_index: int, field_key: str, value: str) -> None:
        form = self.page.locator("form").nth(container_index)
        quoted = json.dumps(field_key, ensure_ascii=False)
        field = form.locator(f"[name={quoted}], [id={quoted}]").first
        try:
            if not await field.count():
                raise ActionSurfaceNotFoundError(f"Field {field_key!r} not found in form {container_index}")
            await self._pace()
            tag = await field.evaluate("(el) => el.tagName.toLowerCase()")
            if tag == "select":
                await field.select_option(value=value, timeout=self.settings.timeout_ms)
            else:
                await field.fill("", timeout=self.settings.timeout_ms)
                await field.press_sequentially(value, delay=self.settings.typing_delay_ms)
        except PlaywrightError as e:
            raise SubmissionError(f"Could not set {field_key!r}: {e}") from e

    async def click_control(self, container_index: int, label: str) -> None:
        controls = self.page.locator("form").nth(container_index).locator(CONTROL_SELECTOR)
        try:
            labels = await controls.evaluate_all(_CONTROL_LABELS_JS)
            if label not in labels:
                raise ActionSurfaceNotFoundError(f"Control {label!r} not found in form {container_index}")
            await self._pace()
            await controls.nth(labels.index(label)).click(timeout=self.settings.timeout_ms)
        except PlaywrightError as e:
            raise SubmissionError(f"Click on {label!r} failed: {e}") from e

    async def _dom_prompt(self) -> Optional[Prompt]:
        dialogs = self.page.locator(DIALOG_SELECTOR)
        if not await dialogs.count():
            return None
        dialog = dialogs.last
        labels = await dialog.locator(CONTROL_SELECTOR).evaluate_all(_CONTROL_LABELS_JS)
        text = await dialog.inner_text()
        return Prompt(text=" ".join(text.split()), controls=tuple(label for label in labels if label))

    async def wait_for_prompt(self, timeout_ms: int) -> Optional[Prompt]:
        """Native JS dialogs first, then visible DOM dialogs, polled until timeout"""
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout_ms / 1000

        while True:
            if self._dialogs:
                self._active_dialog = self._dialogs.pop(0)
                controls = ("OK", "Cancel") if self._active_dialog.type in ("confirm", "prompt") else ("OK",)
                return Prompt(text=self._active_dialog.message, controls=controls)
            try:
                prompt = await self._dom_prompt()
            except PlaywrightError:
                prompt = None
            if prompt is not None:
                return prompt
            if loop.time() >= deadline:
                return None
            await asyncio.sleep(PROMPT_POLL_SECONDS)

    async def click_prompt_control(self, label: str) -> None:
        try:
            if self._active_dialog is not None:
                dialog, self._active_dialog = self._active_dialog, None
                if label.lower() in AFFIRMATIVE_LABELS:
                    await dialog.accept()
                else:
                    await dialog.dismiss()
                return

            await self._pace()
            buttons = self.page.locator(DIALOG_SELECTOR).last.locator(CONTROL_SELECTOR)
            labels = await buttons.evaluate_all(_CONTROL_LABELS_JS)
            if label not in labels:
                raise ActionSurfaceNotFoundError(f"Prompt control {label!r} not found")
            await buttons.nth(labels.index(label)).click(timeout=self.settings.timeout_ms)
        except PlaywrightError as e:
            raise SubmissionError(f"Prompt click on {label!r} failed: {e}") from e

    async def clear_prompts(self) -> List[str]:
        """Accept native dialogs nobody handled; the page stays blocked while one is open"""
        stale, self._dialogs = self._dialogs, []
        if self._active_dialog is not None:
            stale.insert(0, self._active_dialog)
            self._active_dialog = None

        messages = []
        for dialog in stale:
            messages.append(dialog.message)
            try:
                await dialog.accept()
            except PlaywrightError as e:
                logger.warning("Stale dialog could not be accepted", extra={"error": str(e), "dialog": dialog.message})
        return messages

    def arm_acknowledgment(self, predicate: AcknowledgmentPredicate) -> None:
        self._ack_predicate = predicate
        self._ack_future = asyncio.get_running_loop().create_future()

    def disarm_acknowledgment(self) -> None:
        if self._ack_future is not None and not self._ack_future.done():
            self._ack_future.cancel()
        self._ack_future = None
        self._ack_predicate = None

    async def await_acknowledgment(self, timeout_ms: int) -> Optional[Acknowledgment]:
        future = self._ack_future
        if future is None:
            return None
        try:
            return await asyncio.wait_for(future, timeout_ms / 1000)
        except asyncio.TimeoutError:
            return None
        finally:
            self._ack_future = None
            self._ack_predicate = None

    async def capture(self, directory: Path, label: str, containers: Sequence[Container] = ()) -> Dict[str, str]:
        stamp = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S-%fZ")
        target = Path(directory).resolve() / f"{stamp}-{label}"
        target.mkdir(parents=True, exist_ok=True)

        html_path = target / "page.html"
        screenshot_path = target / "page.png"
        forms_path = target / "forms.json"

        try:
            html = await self.page.content()
        except PlaywrightError as e:
            logger.warning("HTML capture failed", extra={"error": str(e), "label": label})
            html = ""
        html_path.write_text(html, encoding="utf-8")
        try:
            await self.page.screenshot(path=str(screenshot_path), full_page=True)
        except PlaywrightError as e:
            logger.warning("Screenshot capture failed", extra={"error": str(e), "label": label})
        forms_path.write_text(json.dumps([asdict(c) for c in containers], indent=2), encoding="utf-8")

        return {
            "dir": str(target),
            "htmlPath": str(html_path),
            "screenshotPath": str(screenshot_path),
            "formsPath": str(forms_path),
        }


@asynccontextmanager
async def open_playwright_surface(settings: Settings) -> AsyncIterator[PlaywrightSurface]:
    """Launch Chromium, yield a surface over a fresh page and always close the browser"""
    async with async_playwright() as playwright:
        browser = await playwright.chromium.launch(headless=settings.headless)
        context = await browser.new_context(viewport={"width": 1440, "height": 1000})
        try:
            page = await context.new_page()
            page.set_default_timeout(settings.timeout_ms)
            yield PlaywrightSurface(page, settings)
        finally:
            await context.close()
            await browser.close()
