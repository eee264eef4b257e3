from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from src.config.constants import DEFAULT_COLLECTION, DEFAULT_NAMESPACE, DEFAULT_REPLACEMENT


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ScheduleConfig(_CamelModel):
    start_time: str | None = None  # HH:MM
    end_time: str | None = None  # HH:MM
    days: list[int] = Field(default_factory=list)  # 0 = Sunday ... 6 = Saturday


class SensitiveFilterConfig(_CamelModel):
    enabled: bool = True
    patterns: list[str] = Field(default_factory=list)
    replacement: str = DEFAULT_REPLACEMENT


class ScrapingConfig(_CamelModel):
    enabled: bool = False
    schedule: ScheduleConfig = Field(
        default_factory=lambda: ScheduleConfig(
            start_time="09:00", end_time="18:00", days=[1, 2, 3, 4, 5]
        )
    )
    blacklist: list[str] = Field(default_factory=list)
    sensitive_filters: SensitiveFilterConfig = Field(default_factory=SensitiveFilterConfig)
    max_content_length: int = Field(default=10000, ge=0)
    delay_between_pages: int = Field(default=1000, ge=0)  # ms


class MemoryProvider(StrEnum):
    MEM0 = "mem0"
    ZEP = "zep"
    LETTA = "letta"
    VECTOR_DB = "vector_db"


class MemoryConfig(_CamelModel):
    # Plain string so unknown providers reach the factory and get reported by name
    provider: str = ""
    endpoint: str = ""
    api_key: str | None = None
    options: dict[str, Any] = Field(default_factory=dict)

    @property
    def collection(self) -> str:
        return self.options.get("collection") or DEFAULT_COLLECTION

    @property
    def namespace(self) -> str:
        return self.options.get("namespace") or DEFAULT_NAMESPACE


class ConfigValidation(BaseModel):
    valid: bool
    errors: list[str] = []


class PluginStats(_CamelModel):
    total_pages_scraped: int = 0
    last_scraped_at: int | None = None  # epoch ms
    errors: int = 0


class PluginState(_CamelModel):
    is_active: bool = False
    current_config: ScrapingConfig = Field(default_factory=ScrapingConfig)
    memory_config: MemoryConfig = Field(
        default_factory=lambda: MemoryConfig(provider=MemoryProvider.MEM0.value)
    )
    stats: PluginStats = Field(default_factory=PluginStats)


class ScheduleStatus(BaseModel):
    is_active: bool
    is_in_schedule: bool
    next_schedule: str | None = None  # YYYY-MM-DD HH:MM:SS
