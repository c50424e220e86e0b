"""
Smoke-check the NASA API proxy.

Runs the given endpoints as one batch through the client and prints a JSON
summary of which endpoints answered and how the failures were classified.
Useful from a developer workstation or a CI job to check that the proxy is
reachable and that the configured API key is accepted.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

import httpx

from shared.config import get_config
from shared.logging import configure_logging
from .adapters.nasa_client import NasaApiClient
from .pipeline.batch import BatchItem


DEFAULT_ENDPOINTS = ["/apod", "/neo/browse", "/resources/featured"]

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_ENDPOINT_FAILURES = 2


async def check(
    endpoints: Sequence[str],
    params: Dict[str, str],
    *,
    base_url: Optional[str] = None,
    api_key: Optional[str] = None,
    concurrency: Optional[int] = None,
    client: Optional[httpx.AsyncClient] = None,
) -> Dict[str, Any]:
    """Call every endpoint once and return the summary."""
    overrides: Dict[str, Any] = {}
    if base_url:
        overrides["api_base_url"] = base_url
    if api_key:
        overrides["api_key"] = api_key
    if concurrency:
        overrides["batch_max_concurrency"] = concurrency
    config = get_config(**overrides)
    if config.batch_max_concurrency is None:
        config = config.model_copy(update={"batch_max_concurrency": config.smoke_concurrency})

    items = [BatchItem(id=endpoint, endpoint=endpoint, params=dict(params)) for endpoint in endpoints]

    async with NasaApiClient(config, client=client) as nasa:
        results = await nasa.batch_fetch(items)

    failures: List[Dict[str, Any]] = [
        {"endpoint": result.id, **result.to_dict()["error"]}
        for result in results
        if not result.success
    ]
    return {
        "base_url": config.api_base_url,
        "planned": len(items),
        "succeeded": sum(1 for result in results if result.success),
        "failures": failures,
    }


def _parse_param(raw: str) -> tuple:
    key, sep, value = raw.partition("=")
    if not sep or not key:
        raise argparse.ArgumentTypeError(f"expected key=value, got {raw!r}")
    return key, value


def _parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Smoke-check the NASA API proxy.")
    parser.add_argument("--base-url", default=None, help="NASA API proxy URL (defaults to NASA_ACCESS_API_BASE_URL)")
    parser.add_argument("--api-key", default=None, help="API key (defaults to NASA_ACCESS_API_KEY)")
    parser.add_argument("--endpoint", action="append", dest="endpoints", default=None, help="Endpoint path to check (repeatable)")
    parser.add_argument("--param", action="append", type=_parse_param, default=[], help="Query parameter key=value applied to every endpoint")
    parser.add_argument("--concurrency", type=int, default=None, help="Concurrent requests")
    parser.add_argument("--output", type=Path, default=None, help="Optional path to write JSON summary")
    parser.add_argument("--log-level", default=None, help="Log level (defaults to NASA_ACCESS_LOG_LEVEL)")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = _parse_args(argv)
    configure_logging("nasa-access-smoke", args.log_level or get_config().log_level)

    try:
        summary = asyncio.run(
            check(
                args.endpoints or DEFAULT_ENDPOINTS,
                dict(args.param),
                base_url=args.base_url,
                api_key=args.api_key,
                concurrency=args.concurrency,
            )
        )
    except KeyboardInterrupt:
        return 130
    except Exception as exc:  # pragma: no cover - CLI surface
        print(f"[smoke-check] failed: {exc}", file=sys.stderr)
        return EXIT_ERROR

    print(json.dumps(summary, indent=2, default=str))

    if args.output:
        args.output.write_text(json.dumps(summary, indent=2, default=str))

    return EXIT_ENDPOINT_FAILURES if summary["failures"] else EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
