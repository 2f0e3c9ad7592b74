"""Command-line entry point: ``python -m phishlens``."""

import argparse
import asyncio
import json
import logging
import os
import sys
from pathlib import Path
from typing import Optional

import yaml

from .analyzer.favicon_match import fingerprint_entry
from .analyzer.features import PageSnapshot
from .analyzer.provider_heuristics import DomainHeuristicsProvider
from .analyzer.provider_simulated import SimulatedProvider
from .analyzer.provider_text import PageTextProvider
from .analyzer.signals import FaviconSignal, ReputationSignal, ServiceVerdict, SSLSignal
from .config import Config, ConfigStore, load_config, validate_config
from .constants import SignalKind
from .pipeline.analysis import PageAnalyzer
from .pipeline.registry import ProviderRegistry, build_providers
from .storage.history import HistoryStore

logger = logging.getLogger("phishlens")


def _configure_logging() -> None:
    logging.basicConfig(
        level=getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout),
        ],
    )


def simulated_registry() -> ProviderRegistry:
    """Offline demo wiring: real local checks, fixed answers for network providers."""
    registry = ProviderRegistry()
    registry.register(SignalKind.HEURISTICS.value, DomainHeuristicsProvider())
    registry.register(SignalKind.TEXT.value, PageTextProvider())
    registry.register(
        SignalKind.SSL.value,
        SimulatedProvider(
            SSLSignal(has_ssl=True, security_level="good", is_trusted=True, issuer="Simulated CA")
        ),
    )
    registry.register(
        SignalKind.REPUTATION.value,
        SimulatedProvider(
            ReputationSignal(
                reputation=75,
                data_sources=("Simulated",),
                services=(ServiceVerdict(service="Simulated", detail="not listed"),),
            )
        ),
    )
    registry.register(SignalKind.FAVICON.value, SimulatedProvider(FaviconSignal(similarity_score=0.0)))
    return registry


def _read_optional(path: Optional[str]) -> Optional[str]:
    if not path:
        return None
    return Path(path).read_text(errors="replace")


async def _analyze(args: argparse.Namespace, config: Config) -> int:
    store = ConfigStore(config)
    registry = simulated_registry() if args.simulate else build_providers(config)
    analyzer = PageAnalyzer(config_store=store, registry=registry)

    html = _read_optional(args.html)
    text = _read_optional(args.text)
    snapshot = PageSnapshot(html=html or "", text=text) if (html or text) else None

    result = await analyzer.analyze(args.url, snapshot)
    print(json.dumps(result.to_dict(), indent=2))

    if not args.no_history:
        async with HistoryStore(config.data_dir / "history.db", limit=config.history_limit) as history:
            await history.append(result)
    return 1 if result.is_error else 0


def _fingerprint(args: argparse.Namespace) -> int:
    path = Path(args.image).expanduser()
    if not path.exists():
        logger.error(f"File not found: {path}")
        return 1
    entry = fingerprint_entry(args.brand, path.read_bytes(), args.domain or [])
    print(yaml.safe_dump({"brands": [entry]}, sort_keys=False), end="")
    return 0


async def _history(args: argparse.Namespace, config: Config) -> int:
    async with HistoryStore(config.data_dir / "history.db", limit=config.history_limit) as history:
        entries = await history.recent(args.limit)
    for entry in entries:
        print(f"{entry['timestamp']}  {entry['score']:>3}  {entry['risk_tier']:<11}  {entry['url']}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="phishlens", description="Score a page for phishing risk.")
    sub = parser.add_subparsers(dest="command", required=True)

    analyze = sub.add_parser("analyze", help="Analyze a URL")
    analyze.add_argument("url")
    analyze.add_argument("--html", help="File with the page HTML")
    analyze.add_argument("--text", help="File with the page's visible text")
    analyze.add_argument("--simulate", action="store_true", help="Use offline simulated providers")
    analyze.add_argument("--no-history", action="store_true", help="Do not record the result")

    history = sub.add_parser("history", help="Show recent analyses")
    history.add_argument("--limit", type=int, default=20)

    fingerprint = sub.add_parser("fingerprint", help="Hash a brand favicon for favicons.yaml")
    fingerprint.add_argument("image")
    fingerprint.add_argument("--brand", required=True)
    fingerprint.add_argument("--domain", action="append", help="Domain the brand serves from")
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """Entry point."""
    args = build_parser().parse_args(argv)
    _configure_logging()

    config = load_config()
    validation_errors = validate_config(config)
    if validation_errors:
        for err in validation_errors:
            logger.error(err)
        return 2

    if args.command == "fingerprint":
        return _fingerprint(args)
    if args.command == "analyze":
        return asyncio.run(_analyze(args, config))
    return asyncio.run(_history(args, config))


if __name__ == "__main__":
    sys.exit(main())
