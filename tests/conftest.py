import json

import httpx
import pytest

from src.models.content import PageMetadata, WebPageContent

LONG_PARAGRAPH = (
    "Structured logging makes it much easier to search, filter and aggregate events "
    "across services, because every line carries the same machine-readable keys."
)


@pytest.fixture
def article_html() -> str:
    return f"""
    <html lang="en">
    <head>
        <title>Logging in Practice</title>
        <meta name="description" content="A practical guide to structured logging">
        <meta name="keywords" content="logging, python , observability,">
        <meta name="author" content="Jane Smith">
        <meta property="article:published_time" content="2024-01-15T09:30:00Z">
        <script>var tracking = "should never appear";</script>
        <style>body {{ color: red; }}</style>
    </head>
    <body>
    <nav class="menu"><a href="/">Home</a><a href="/blog">Blog</a></nav>
    <article>
        <h1>Logging in Practice</h1>
        <p>{LONG_PARAGRAPH}</p>
        <p>Contact the author at jane.smith@example.com for questions.</p>
        <script>console.log("inline");</script>
    </article>
    <footer>Copyright 2024</footer>
    </body>
    </html>
    """


@pytest.fixture
def short_main_html() -> str:
    return """
    <html>
    <head><title>Short</title></head>
    <body>
    <main>Too short</main>
    <div class="sidebar">Sidebar text</div>
    <noscript>Enable JavaScript</noscript>
    <iframe src="https://ads.example.com"></iframe>
    </body>
    </html>
    """


@pytest.fixture
def page_with_sensitive_data_html() -> str:
    return f"""
    <html>
    <head>
        <title>Account for bob@example.com</title>
        <meta name="description" content="Server 192.168.1.10 status">
        <meta name="author" content="admin@example.com">
    </head>
    <body>
    <main>
        <p>{LONG_PARAGRAPH}</p>
        <p>Reach support at help@example.com or call 13812345678.</p>
    </main>
    </body>
    </html>
    """


class FakeBackend:
    """Records requests and answers from a (method, path) routing table.

    Unrouted requests get ``200 {}``.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self.routes: dict[tuple[str, str], object] = {}

    def route(self, method: str, path: str, status: int = 200, json=None, handler=None) -> None:
        self.routes[(method, path)] = handler or (status, json)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        answer = self.routes.get((request.method, request.url.path))
        if answer is None:
            return httpx.Response(200, json={})
        if callable(answer):
            return answer(request)
        status, body = answer
        if body is None:
            return httpx.Response(status)
        return httpx.Response(status, json=body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self._handle)

    def calls(self, method: str | None = None, path: str | None = None) -> list[httpx.Request]:
        return [
            r
            for r in self.requests
            if (method is None or r.method == method) and (path is None or r.url.path == path)
        ]

    @staticmethod
    def body(request: httpx.Request):
        return json.loads(request.content)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def sample_page() -> WebPageContent:
    return WebPageContent(
        url="https://docs.example.com/guide?x=1",
        title="Guide",
        content="How to configure the service.",
        timestamp=1_700_000_000_000,
        domain="docs.example.com",
        metadata=PageMetadata(
            description="Configuration guide",
            keywords=["config", "guide"],
            author="Docs Team",
            published_date="2024-02-01",
        ),
    )
