from typing import Protocol, runtime_checkable


@runtime_checkable
class PageSource(Protocol):
    """A loaded document the content scraper can read."""

    @property
    def url(self) -> str: ...

    async def ready_state(self) -> str: ...

    async def content(self) -> str: ...


class StaticPage:
    """An already-loaded HTML document held in memory."""

    def __init__(self, url: str, html: str, state: str = "complete"):
        self._url = url
        self._html = html
        self.state = state

    @property
    def url(self) -> str:
        return self._url

    async def ready_state(self) -> str:
        return self.state

    async def content(self) -> str:
        return self._html

    def __repr__(self) -> str:
        return f"StaticPage(url={self._url!r}, state={self.state!r})"
