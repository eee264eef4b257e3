import re

import structlog
from selectolax.parser import HTMLParser

from src.config.constants import MAIN_CONTENT_SELECTORS, MIN_MAIN_CONTENT_LENGTH, NOISE_SELECTORS
from src.models.content import PageMetadata

log = structlog.get_logger()

_ZERO_WIDTH = re.compile("[\u200b-\u200d\ufeff]")
_BLANK_LINES = re.compile(r"\n\s*\n")
_WHITESPACE = re.compile(r"\s+")


def clean_text(text: str | None) -> str:
    """Strip zero-width characters and collapse whitespace runs to single spaces."""
    if not text or not isinstance(text, str):
        return ""
    text = _ZERO_WIDTH.sub("", text)
    text = _BLANK_LINES.sub("\n", text)
    text = _WHITESPACE.sub(" ", text)
    return text.strip()


class HtmlParser:
    """Page content and metadata extraction using selectolax."""

    def __init__(self, html: str, base_url: str = ""):
        self.tree = HTMLParser(html or "")
        self.base_url = base_url
        self._remove_noise()

    def _remove_noise(self) -> None:
        for tag in (t.strip() for t in NOISE_SELECTORS.split(",")):
            for node in self.tree.css(tag):
                node.decompose()

    def has_body(self) -> bool:
        return self.tree.body is not None

    def extract_title(self) -> str | None:
        """Extract page title."""
        # Try <title> tag first
        title_tag = self.tree.css_first("title")
        if title_tag and title_tag.text().strip():
            return clean_text(title_tag.text())
        # Try h1
        h1 = self.tree.css_first("h1")
        if h1 and h1.text().strip():
            return clean_text(h1.text())
        return None

    def extract_meta(self, name: str) -> str | None:
        """Extract a meta tag value by name or property."""
        for attr in ["name", "property"]:
            node = self.tree.css_first(f'meta[{attr}="{name}"]')
            if node:
                content = node.attributes.get("content")
                if content and content.strip():
                    return content.strip()
        return None

    def extract_http_equiv(self, name: str) -> str | None:
        """Extract a ``meta[http-equiv]`` value, matching the header name case-insensitively."""
        for node in self.tree.css("meta[http-equiv]"):
            equiv = node.attributes.get("http-equiv") or ""
            if equiv.lower() == name.lower():
                content = node.attributes.get("content")
                if content and content.strip():
                    return content.strip()
        return None

    def extract_main_content(self) -> str:
        """Text of the first content container longer than the minimum, else the body text."""
        try:
            for selector in MAIN_CONTENT_SELECTORS:
                node = self.tree.css_first(selector)
                if node is None:
                    continue
                text = clean_text(node.text())
                if len(text) > MIN_MAIN_CONTENT_LENGTH:
                    return text

            body = self.tree.body
            if body is None:
                return ""
            return clean_text(body.text())
        except Exception:
            log.exception("main_content_extraction_failed", url=self.base_url)
            return ""

    def extract_description(self) -> str | None:
        return self.extract_meta("description")

    def extract_keywords(self) -> list[str] | None:
        raw = self.extract_meta("keywords")
        if not raw:
            return None
        keywords = [k.strip() for k in raw.split(",") if k.strip()]
        return keywords or None

    def extract_author(self) -> str | None:
        author = self.extract_meta("author")
        if author:
            return author
        node = self.tree.css_first('[rel="author"]')
        if node:
            text = clean_text(node.text())
            return text or None
        return None

    def extract_published_date(self) -> str | None:
        for prop in ("article:published_time", "og:published_time"):
            node = self.tree.css_first(f'meta[property="{prop}"]')
            if node:
                value = (node.attributes.get("content") or "").strip()
                if value:
                    return value
        node = self.tree.css_first("time[datetime]")
        if node:
            value = (node.attributes.get("datetime") or "").strip()
            return value or None
        return None

    def extract_language(self) -> str | None:
        html = self.tree.css_first("html")
        if html:
            lang = (html.attributes.get("lang") or "").strip()
            if lang:
                return lang
        return self.extract_http_equiv("content-language")

    def extract_metadata(self) -> PageMetadata:
        """Collect every metadata field. A failing field is logged and left unset."""
        fields: dict = {}
        steps = {
            "description": self.extract_description,
            "keywords": self.extract_keywords,
            "author": self.extract_author,
            "published_date": self.extract_published_date,
            "language": self.extract_language,
        }
        for field, step in steps.items():
            try:
                value = step()
            except Exception as e:
                log.warning("metadata_extraction_failed", field=field, url=self.base_url, error=str(e))
                continue
            if value:
                fields[field] = value
        return PageMetadata(**fields)
