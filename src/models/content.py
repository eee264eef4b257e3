import time

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def now_ms() -> int:
    return int(time.time() * 1000)


class PageMetadata(BaseModel):
    """Best-effort page metadata. Unknown keys are kept as extras."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    description: str | None = None
    keywords: list[str] | None = None
    author: str | None = None
    published_date: str | None = None
    language: str | None = None


class WebPageContent(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    url: str
    title: str = ""
    content: str = ""
    timestamp: int = Field(default_factory=now_ms)  # epoch ms
    domain: str = ""
    metadata: PageMetadata = Field(default_factory=PageMetadata)

    def metadata_fields(self) -> dict:
        """Metadata as wire-format keys, omitting empty fields."""
        return self.metadata.model_dump(by_alias=True, exclude_none=True)
