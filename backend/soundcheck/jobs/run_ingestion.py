from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence, Type

import typer

from soundcheck.config import Settings, load_settings
from soundcheck.hub.collector_registry import CollectorRegistry
from soundcheck.hub.ingestion_hub import IngestionHub
from soundcheck.infra.database import get_engine
from soundcheck.infra.db.tables import create_schema
from soundcheck.infra.geo.nominatim_client import NominatimClient
from soundcheck.infra.llm.openai_client import OpenAIJsonClient
from soundcheck.providers.events.accupass import AccupassCollector
from soundcheck.providers.events.base import BaseCollector
from soundcheck.providers.events.indievox import IndievoxCollector
from soundcheck.providers.events.kktix import KKTIXCollector
from soundcheck.services.event_upsert import EventUpsertService
from soundcheck.services.field_extractor import FieldExtractor, TextExtractionClient
from soundcheck.services.geocoding import Geocoder
from soundcheck.services.venue_resolver import VenueResolver

app = typer.Typer(help="Ingest Taiwanese music events into the canonical event store")

COLLECTORS: Dict[str, Type[BaseCollector]] = {
    "kktix": KKTIXCollector,
    "indievox": IndievoxCollector,
    "accupass": AccupassCollector,
}


def run_ingestion(
    *,
    providers: Optional[Sequence[str]] = None,
    max_items: Optional[int] = None,
    deactivate: bool = True,
    geocode: Optional[bool] = None,
    engine=None,
    settings: Optional[Settings] = None,
    llm_client: Optional[TextExtractionClient] = None,
) -> dict:
    settings = settings or load_settings()
    names = list(providers) if providers else list(COLLECTORS)
    unknown = [name for name in names if name not in COLLECTORS]
    if unknown:
        raise ValueError(f"Unknown provider(s): {', '.join(unknown)}")

    if engine is None:
        engine = get_engine(settings.require_database())
    if llm_client is None:
        llm_client = OpenAIJsonClient(
            api_key=settings.require_llm(),
            model=settings.openai_model,
            timeout=settings.openai_timeout,
        )
    create_schema(engine)

    use_geocoder = settings.geocode_enabled if geocode is None else geocode
    extractor = _build_extractor(settings, llm_client, geocode=use_geocoder)
    registry = _build_registry(settings, extractor, names, max_items=max_items)
    hub = IngestionHub(registry, EventUpsertService(engine))
    try:
        result = hub.run(deactivate_expired=deactivate)
    finally:
        registry.close_all()
    _log_summary(result)
    return result


def deactivate_expired(*, engine=None, settings: Optional[Settings] = None) -> int:
    settings = settings or load_settings()
    if engine is None:
        engine = get_engine(settings.require_database())
    create_schema(engine)
    count = EventUpsertService(engine).deactivate_expired()
    typer.echo(f"[run_ingestion] deactivated={count}")
    return count


@app.command()
def run(
    provider: Optional[List[str]] = typer.Option(None, "--provider", "-p", help="Provider to run; repeatable"),
    max_items: Optional[int] = typer.Option(None, min=1, help="Cap on detail pages per provider"),
    deactivate: bool = typer.Option(True, "--deactivate/--no-deactivate", help="Sweep expired events afterwards"),
    geocode: Optional[bool] = typer.Option(None, "--geocode/--no-geocode", help="Geocode venues missing from the venue table"),
    log_level: str = typer.Option("INFO", help="Logging level"),
):
    """Run one ingestion cycle across the selected providers."""
    _configure_logging(log_level)
    try:
        run_ingestion(providers=provider or None, max_items=max_items, deactivate=deactivate, geocode=geocode)
    except (RuntimeError, ValueError) as exc:
        typer.echo(f"[run_ingestion] error: {exc}", err=True)
        raise typer.Exit(code=1)


@app.command()
def deactivate(log_level: str = typer.Option("INFO", help="Logging level")):
    """Flag every event whose end date has passed as inactive."""
    _configure_logging(log_level)
    try:
        deactivate_expired()
    except RuntimeError as exc:
        typer.echo(f"[run_ingestion] error: {exc}", err=True)
        raise typer.Exit(code=1)


def _build_extractor(settings: Settings, llm_client: TextExtractionClient, *, geocode: bool) -> FieldExtractor:
    geocoder = None
    if geocode:
        geocoder = Geocoder(
            NominatimClient(timeout=settings.geocode_timeout, user_agent=settings.geocode_user_agent),
            delay=settings.geocode_delay,
        )
    return FieldExtractor(llm_client, VenueResolver(), geocoder)


def _build_registry(
    settings: Settings,
    extractor: FieldExtractor,
    names: Sequence[str],
    *,
    max_items: Optional[int] = None,
) -> CollectorRegistry:
    registry = CollectorRegistry()
    common = {
        "user_agent": settings.scraper_user_agent,
        "timeout": settings.scraper_timeout,
        "max_items": max_items,
        "max_consecutive_failures": settings.max_consecutive_failures,
    }
    for name in names:
        if name == "kktix":
            collector = KKTIXCollector(extractor, feed_delay=settings.feed_delay, **common)
        elif name == "accupass":
            collector = AccupassCollector(
                extractor,
                search_delay=settings.search_delay,
                detail_delay=settings.detail_delay,
                **common,
            )
        else:
            collector = COLLECTORS[name](extractor, detail_delay=settings.detail_delay, **common)
        registry.register(name, collector)
    return registry


def _configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _log_summary(result: dict) -> None:
    for stats in result["provider_stats"]:
        line = (
            f"[run_ingestion] provider={stats['provider']} discovered={stats['discovered']} "
            f"collected={stats['collected']} inserted={stats['inserted']} updated={stats['updated']} "
            f"failed={stats['failed']} skipped_past={stats['skipped_past']} "
            f"skipped_degraded={stats['skipped_degraded']} aborted={stats['aborted']}"
        )
        if stats.get("error"):
            line += f" error={stats['error']!r}"
        typer.echo(line)
    typer.echo(
        f"[run_ingestion] total inserted={result['inserted']} updated={result['updated']} "
        f"failed={result['failed']} deactivated={result['deactivated']} errors={len(result['errors'])}"
    )


if __name__ == "__main__":
    app()
