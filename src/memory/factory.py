from typing import Any

import httpx
from pydantic import ValidationError

from src.config.constants import (
    DEFAULT_COLLECTION,
    DEFAULT_DISTANCE_METRIC,
    DEFAULT_NAMESPACE,
    DEFAULT_VECTOR_DIMENSION,
    DEFAULT_VECTOR_PROVIDER,
)
from src.memory.base import MemoryAdapter
from src.memory.embedder import Embedder
from src.memory.letta_adapter import LettaAdapter
from src.memory.mem0_adapter import Mem0Adapter
from src.memory.vector_db_adapter import VectorDBAdapter, parse_dimension, parse_distance_metric
from src.memory.zep_adapter import ZepAdapter
from src.models.config import ConfigValidation, MemoryConfig, MemoryProvider
from src.utils.errors import ConfigurationError, UnsupportedProviderError

_ADAPTERS = {
    MemoryProvider.MEM0: Mem0Adapter,
    MemoryProvider.ZEP: ZepAdapter,
    MemoryProvider.LETTA: LettaAdapter,
    MemoryProvider.VECTOR_DB: VectorDBAdapter,
}


def _as_config(config: MemoryConfig | dict[str, Any]) -> MemoryConfig:
    if isinstance(config, MemoryConfig):
        return config
    try:
        return MemoryConfig.model_validate(config)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def get_supported_providers() -> list[str]:
    return [provider.value for provider in _ADAPTERS]


def validate_config(config: MemoryConfig | dict[str, Any]) -> ConfigValidation:
    """Check a memory configuration, reporting every violated rule."""
    config = _as_config(config)
    errors: list[str] = []

    if not config.provider:
        errors.append("Provider is required")
    elif config.provider not in get_supported_providers():
        errors.append(f"Unsupported provider: {config.provider}")

    if not config.endpoint:
        errors.append("Endpoint is required")

    if config.provider == MemoryProvider.VECTOR_DB:
        options = config.options
        if not options.get("provider"):
            errors.append("Vector database provider is required")
        try:
            parse_dimension(options.get("dimension"))
        except ConfigurationError as e:
            errors.append(str(e))
        try:
            parse_distance_metric(options.get("distanceMetric") or options.get("distance_metric"))
        except ConfigurationError as e:
            errors.append(str(e))

    return ConfigValidation(valid=not errors, errors=errors)


def create_adapter(
    config: MemoryConfig | dict[str, Any],
    *,
    transport: httpx.AsyncBaseTransport | None = None,
    embedder: Embedder | None = None,
) -> MemoryAdapter:
    """Create the storage adapter for ``config.provider``."""
    config = _as_config(config)
    if config.provider and config.provider not in get_supported_providers():
        raise UnsupportedProviderError(config.provider)

    validation = validate_config(config)
    if not validation.valid:
        raise ConfigurationError(f"Invalid configuration: {', '.join(validation.errors)}")

    provider = MemoryProvider(config.provider)
    if provider == MemoryProvider.VECTOR_DB:
        return VectorDBAdapter(config, transport=transport, embedder=embedder)
    return _ADAPTERS[provider](config, transport=transport)


def get_default_config(provider: str) -> MemoryConfig:
    """Starting configuration for a provider; unknown providers get an empty provider."""
    options: dict[str, Any] = {"collection": DEFAULT_COLLECTION, "namespace": DEFAULT_NAMESPACE}
    if provider == MemoryProvider.VECTOR_DB:
        options |= {
            "provider": DEFAULT_VECTOR_PROVIDER,
            "dimension": DEFAULT_VECTOR_DIMENSION,
            "distanceMetric": DEFAULT_DISTANCE_METRIC,
        }
    known = provider in get_supported_providers()
    return MemoryConfig(provider=provider if known else "", endpoint="", api_key="", options=options)
