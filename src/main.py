"""Scrape a single URL through the context pipeline, optionally storing it.

    python -m src.main https://example.com/article --provider mem0 --endpoint http://localhost:8000
"""

import argparse
import asyncio
import json
import sys

import structlog

from src.memory.factory import get_supported_providers
from src.models.config import MemoryConfig, PluginState, ScrapingConfig, SensitiveFilterConfig
from src.scraping.fetcher.http_fetcher import HttpPageFetcher
from src.scraping.filter.sensitive_filter import SensitiveFilter
from src.services.pipeline import ContextPipeline
from src.utils.errors import AdapterError, ConfigurationError, FetchError
from src.utils.logger import setup_logging

log = structlog.get_logger()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Collect a web page into a memory backend")
    parser.add_argument("url", help="Page to scrape")
    parser.add_argument("--provider", choices=get_supported_providers(), help="Memory backend to save into")
    parser.add_argument("--endpoint", default="", help="Memory backend base URL")
    parser.add_argument("--api-key", default=None, help="Bearer token for the memory backend")
    parser.add_argument("--collection", default=None, help="Collection name")
    parser.add_argument("--namespace", default=None, help="Namespace")
    parser.add_argument("--vector-provider", default="pinecone", help="Vector database flavour (vector_db only)")
    parser.add_argument("--blacklist", action="append", default=[], help="Blacklist pattern, repeatable")
    parser.add_argument(
        "--no-redact", action="store_true", help="Disable the default sensitive information filters"
    )
    parser.add_argument("--max-content-length", type=int, default=10000, help="Truncate content to this length")
    parser.add_argument("--log-level", default=None, help="Log level (default from settings)")
    return parser


def build_pipeline(args: argparse.Namespace) -> ContextPipeline:
    config = ScrapingConfig(
        enabled=True,
        blacklist=args.blacklist,
        sensitive_filters=SensitiveFilterConfig(
            enabled=not args.no_redact,
            patterns=SensitiveFilter.get_default_patterns(),
        ),
        max_content_length=args.max_content_length,
    )
    pipeline = ContextPipeline(PluginState(is_active=True, current_config=config))

    if args.provider:
        options = {}
        if args.collection:
            options["collection"] = args.collection
        if args.namespace:
            options["namespace"] = args.namespace
        if args.provider == "vector_db":
            options["provider"] = args.vector_provider
        pipeline.apply_memory_config(
            MemoryConfig(provider=args.provider, endpoint=args.endpoint, api_key=args.api_key, options=options)
        )
    return pipeline


async def run(args: argparse.Namespace) -> int:
    try:
        pipeline = build_pipeline(args)
    except ConfigurationError as e:
        log.error("invalid_configuration", error=str(e))
        return 2

    try:
        page = await HttpPageFetcher().fetch(args.url)
    except FetchError as e:
        log.error("fetch_failed", url=args.url, status_code=e.status_code, error=str(e))
        return 1

    try:
        if pipeline.adapter is not None:
            await pipeline.adapter.connect()
        content = await pipeline.process(page)
    except AdapterError as e:
        log.error("storage_failed", operation=e.operation, error=str(e))
        return 1

    if content is None:
        log.warning("nothing_extracted", url=args.url)
        return 1

    print(json.dumps(content.model_dump(by_alias=True), ensure_ascii=False, indent=2))
    return 0


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
