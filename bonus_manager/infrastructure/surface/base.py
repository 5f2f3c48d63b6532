"""Capability interface the engine drives; implemented by swappable adapters"""

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, List, Optional, Protocol, Sequence, Tuple, runtime_checkable

from bonus_manager.domain.models import Container


@dataclass(frozen=True)
class Prompt:
    """Confirmation or result dialog shown by the page"""

    text: str
    controls: Tuple[str, ...] = ()


@dataclass(frozen=True)
class Acknowledgment:
    """Server response tied to a submitted action"""

    url: str
    status: int
    body: str = ""

    @property
    def rejected(self) -> bool:
        """HTTP error, or a JSON body reporting success: false"""
        if self.status >= 400:
            return True
        try:
            payload = json.loads(self.body)
        except ValueError:
            return False
        return isinstance(payload, dict) and payload.get("success") is False

    @property
    def error_message(self) -> str:
        try:
            payload = json.loads(self.body)
        except ValueError:
            return f"HTTP {self.status}"
        if isinstance(payload, dict):
            return str(payload.get("error") or payload.get("message") or f"HTTP {self.status}")
        return f"HTTP {self.status}"


AcknowledgmentPredicate = Callable[[Acknowledgment], bool]


def url_contains(fragment: str) -> AcknowledgmentPredicate:
    """Predicate matching acknowledgments whose URL contains fragment"""
    lowered = fragment.lower()
    return lambda ack: lowered in ack.url.lower()


@runtime_checkable
class RemoteSurface(Protocol):
    """
    Everything the engine needs from the remote account UI.

    Containers are addressed by the index they were enumerated with, fields
    by FormField.key and controls by their label.
    """

    @property
    def current_url(self) -> str: ...

    async def navigate(self, url: str) -> str:
        """Load url, wait for the page to settle and return the final URL"""
        ...

    async def settle(self) -> None: ...

    async def read_page_text(self) -> str: ...

    async def read_element_text(self, selector: str) -> Optional[str]: ...

    async def list_containers(self) -> List[Container]: ...

    async def set_field_value(self, container_index: int, field_key: str, value: str) -> None: ...

    async def click_control(self, container_index: int, label: str) -> None: ...

    async def wait_for_prompt(self, timeout_ms: int) -> Optional[Prompt]: ...

    async def click_prompt_control(self, label: str) -> None: ...

    async def clear_prompts(self) -> List[str]:
        """Accept prompts still pending from an earlier action and return their texts"""
        ...

    def arm_acknowledgment(self, predicate: AcknowledgmentPredicate) -> None:
        """Start listening for the acknowledgment before the triggering click"""
        ...

    def disarm_acknowledgment(self) -> None: ...

    async def await_acknowledgment(self, timeout_ms: int) -> Optional[Acknowledgment]: ...

    async def capture(self, directory: Path, label: str, containers: Sequence[Container] = ()) -> Dict[str, str]:
        """Write diagnostic artifacts and return their paths"""
        ...
