from __future__ import annotations

from collections.abc import Callable, Sequence
from contextlib import AbstractAsyncContextManager
from typing import Any, Protocol


class BrowserTimeoutError(Exception):
    """A bounded browser wait elapsed before its condition held."""


class FramePort(Protocol):
    """One frame of a page (the main frame included)."""

    @property
    def url(self) -> str: ...

    async def evaluate(self, expression: str, arg: Any = None) -> Any:
        """Runs a JS function expression inside the frame with ``arg``."""
        ...


class BrowserPagePort(Protocol):
    """Minimal navigable page abstraction used by the login engine.

    Every ``wait_*`` method raises BrowserTimeoutError when its bound elapses.
    Timeouts are in milliseconds.
    """

    @property
    def url(self) -> str: ...

    async def goto(self, url: str, *, timeout_ms: float | None = None) -> None:
        """Navigates and waits for network idle."""
        ...

    async def has_element(self, selector: str) -> bool: ...
    async def type_into(self, selector: str, text: str) -> None: ...
    async def click(self, selector: str, *, timeout_ms: float | None = None) -> None: ...
    def frames(self) -> Sequence[FramePort]:
        """All frames, main frame first, in document enumeration order."""
        ...

    async def wait_for_selector(self, selector: str, *, timeout_ms: float) -> None: ...
    async def wait_for_navigation(self, *, timeout_ms: float) -> None:
        """Waits for the next main-frame navigation to reach network idle."""
        ...

    async def wait_for_url(self, predicate: Callable[[str], bool], *, timeout_ms: float) -> None: ...
    async def wait_for_network_idle(self, *, timeout_ms: float) -> None: ...
    async def cookies(self) -> list[dict[str, Any]]: ...
    async def set_cookies(self, cookies: list[dict[str, Any]]) -> None: ...
    async def screenshot(self, *, full_page: bool = True, quality: int = 80) -> bytes:
        """JPEG capture of the current page."""
        ...


class BrowserFactoryPort(Protocol):
    """Opens a fresh browser page and closes the browser when the context exits."""

    def open_page(self) -> AbstractAsyncContextManager[BrowserPagePort]: ...
