from __future__ import annotations

import argparse
import logging
import sys
from typing import Dict, List, Optional, Sequence

from rich.console import Console
from rich.table import Table

from .ai import AIService
from .config import ScenicRoadsConfig
from .elevation import OpenElevationLookup
from .http import HttpClientFactory
from .logging_config import configure
from .pipeline import RoadEnricher
from .sources import ArcGisSource, LocalFileSource, Source, UsDotSource
from .wiki import MediaService, WikidataService, WikipediaService

log = logging.getLogger("scenic.cli")


def _build_sources(cfg: ScenicRoadsConfig, factory: HttpClientFactory) -> Dict[str, Source]:
    return {
        "local": LocalFileSource(cfg.paths.input_dir),
        "arcgis": ArcGisSource(factory.create(cfg.api.arcgis_base_url, 1), cfg.enrichment.arcgis_layers),
        "us-dot": UsDotSource(factory.create(cfg.api.us_dot_base_url, 1)),
    }


def _build_enricher(cfg: ScenicRoadsConfig, factory: HttpClientFactory) -> RoadEnricher:
    rate = cfg.api.rate_limit_per_second
    elevation = wikipedia = wikidata = media = ai = None

    if cfg.enrichment.elevation_enabled:
        elevation = OpenElevationLookup(factory.create(cfg.api.elevation_api_url, rate))
    if cfg.enrichment.wiki_enabled:
        wikipedia = WikipediaService(factory.create(cfg.api.wikipedia_api_url, rate))
        wikidata = WikidataService(factory.create(cfg.api.wikidata_api_url, rate))
    if cfg.enrichment.images_enabled:
        media = MediaService(factory.create("", rate), cfg.paths.output_dir)
    if cfg.enrichment.ai_enabled:
        ai = AIService(factory.create(cfg.api.ai_api_url, rate), cfg.api.ai_model,
                       cfg.api.ai_max_tokens, cfg.api.ai_temperature, api_key=cfg.api.ai_api_key)

    return RoadEnricher(cfg.paths.output_dir, elevation, wikipedia, wikidata, media, ai)


def _select_targets(source: Source, requested: Optional[Sequence[str]]) -> List[str]:
    available = source.get_targets()
    if not requested or "all" in requested:
        return available
    unknown = [t for t in requested if t not in available]
    if unknown:
        log.warning("Ignoring unknown targets for %s: %s", source.name, ", ".join(unknown))
    return [t for t in requested if t in available]


def render_summary(summary: List[Dict], console: Optional[Console] = None) -> int:
    console = console or Console()
    table = Table(title="Scenic roads")
    for header in ("Target", "Roads Found", "Output File", "Status"):
        table.add_column(header)

    for row in summary:
        status = "[green]Success[/]" if row["status"] == "Success" else f"[red]{row['status']}[/]"
        table.add_row(str(row["target"]), str(row["count"]), row["path"] or "N/A", status)

    total = sum(row["count"] for row in summary)
    console.print(table)
    console.print(f"Pipeline complete. Total roads processed: {total}")
    return total


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Stitch and enrich scenic road geometry")
    parser.add_argument("--source", choices=("local", "arcgis", "us-dot"), default="local", help="Where roads come from")
    parser.add_argument("--targets", nargs="*", help="Files, state codes or layer ids to process (default: all)")
    parser.add_argument("--config", help="YAML or JSON config file")
    parser.add_argument("--no-elevation", action="store_true", help="Skip elevation backfill and smoothing")
    parser.add_argument("--no-wiki", action="store_true", help="Skip Wikipedia/Wikidata enrichment")
    parser.add_argument("--ai", action="store_true", help="Clean names and fill missing descriptions with an LLM")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING …")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    cfg = ScenicRoadsConfig.load_from_file(args.config) if args.config else ScenicRoadsConfig()
    cfg.apply_env()
    if args.no_elevation:
        cfg.enrichment.elevation_enabled = False
    if args.no_wiki:
        cfg.enrichment.wiki_enabled = False
        cfg.enrichment.images_enabled = False
    if args.ai:
        cfg.enrichment.ai_enabled = True

    configure(args.log_level or cfg.logging.level)
    for issue in cfg.validate():
        log.warning("Config: %s", issue)

    factory = HttpClientFactory(cfg.api.user_agent, cfg.paths.cache_dir, cfg.api.request_timeout,
                                cfg.api.cache_ttl_seconds)
    source = _build_sources(cfg, factory)[args.source]

    targets = _select_targets(source, args.targets)
    if not targets:
        log.error("No targets available for %s", source.name)
        return 1

    enricher = _build_enricher(cfg, factory)
    summary = []
    for idx, target in enumerate(targets, start=1):
        log.info("%s: %s (%d/%d)", source.name, target, idx, len(targets))
        summary.append(enricher.process(source, target))

    render_summary(summary)
    return 0


if __name__ == "__main__":
    sys.exit(main())
