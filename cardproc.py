# cardproc.py
# Command-line front end for Smart Card Advisor.
# - Log a payment and get the optimal-card verdict (ingest)
# - Ask which card to use at a merchant (best-card)
# - Per-category recommendations for the portfolio (recommend)
# - Missed-rewards report by period (summary)
# - Portfolio listing and enable/disable, classifier and matcher lookups, database setup
#
# Examples:
#   python cardproc.py ingest "Din Tai Fung" 45.80 "DBS Live Fresh Visa"
#   python cardproc.py best-card "Starbucks"
#   python cardproc.py recommend --json
#   python cardproc.py summary --period week
#   python cardproc.py cards --disable <card-id>
#   python cardproc.py db --init --db data/cardwise.sqlite

from __future__ import annotations

import json
import logging
import sqlite3
import tomllib
from dataclasses import asdict, is_dataclass
from datetime import date, datetime
from enum import Enum
from pathlib import Path
from typing import Any, Optional

import click

from catalog.loader import Catalog, load_catalog_or_empty
from categorizer.rules import RulesError
from categorizer.service import MerchantCategorizer
from config.loader import Settings, load_settings
from matcher.service import CardMatcher
from notify.dispatcher import (
    CollectingNotifier,
    format_ingest_result,
    format_new_card_message,
    format_weekly_digest,
    format_wrong_card_message,
)
from pipeline.ingest import PERIODS, IngestionPipeline, portfolio_product_ids
from sca_utils.logging_setup import setup_logging
from storage.sqlite_store import SQLiteStore

LOGGER = logging.getLogger("cardproc")

NO_CARDS_MESSAGE = "No cards detected yet. Make a few payments and I'll learn your cards!"


def _to_jsonable(obj: Any) -> Any:
    """
    JSON-friendly deep converter for dataclasses nested in lists/dicts.
    Converts date/datetime to ISO 8601 strings and enums to their values.
    """
    if is_dataclass(obj) and not isinstance(obj, type):
        return {k: _to_jsonable(v) for k, v in asdict(obj).items()}
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (date, datetime)):
        return obj.isoformat()
    if isinstance(obj, (list, tuple)):
        return [_to_jsonable(x) for x in obj]
    if isinstance(obj, dict):
        return {
            (k.value if isinstance(k, Enum) else k): _to_jsonable(v)
            for k, v in obj.items()
        }
    return obj


def _echo_json(payload: Any) -> None:
    click.echo(json.dumps({"schema_version": "1.0", **payload}, indent=2, ensure_ascii=True))


def _open_store(settings: Settings, db_path: Optional[str]) -> SQLiteStore:
    path = Path(db_path) if db_path else settings.db_path
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        return SQLiteStore(str(path))
    except (OSError, sqlite3.Error) as e:
        LOGGER.error("Cannot open database %s: %s", path, e)
        raise SystemExit(3)


def _load_catalog(settings: Settings, catalog_path: Optional[str]) -> Catalog:
    return load_catalog_or_empty(Path(catalog_path) if catalog_path else settings.catalog_path)


def _categorizer(settings: Settings) -> MerchantCategorizer:
    rules = str(settings.keywords_path) if settings.keywords_path else None
    try:
        return MerchantCategorizer(rules_path=rules)
    except RulesError as e:
        LOGGER.error("Invalid keyword rules %s: %s", rules, e)
        raise SystemExit(3)


def _pipeline(
    settings: Settings, catalog: Catalog, notifier: Optional[CollectingNotifier] = None
) -> IngestionPipeline:
    return IngestionPipeline(
        catalog,
        categorizer=_categorizer(settings),
        notifier=notifier or CollectingNotifier(),
        home_currency=settings.home_currency,
    )


db_option = click.option(
    "--db", "db_path", default=None, help="SQLite path (default: from config.toml)."
)
catalog_option = click.option(
    "--catalog", "catalog_path", default=None, help="Card catalog YAML/JSON (default: from config.toml)."
)
json_option = click.option("--json", "output_json", is_flag=True, help="Output JSON.")


@click.group()
@click.option(
    "--config",
    "config_path",
    default=None,
    type=click.Path(dir_okay=False),
    help="config.toml path (default: repo root).",
)
@click.option("--quiet", is_flag=True, help="Suppress info logs; only warnings/errors.")
@click.option("--verbose", is_flag=True, help="Verbose logging.")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[str], quiet: bool, verbose: bool) -> None:
    """Credit card rewards advisor CLI."""
    try:
        settings = load_settings(Path(config_path) if config_path else None)
    except tomllib.TOMLDecodeError as e:
        click.echo(f"[error] invalid config {config_path}: {e}", err=True)
        ctx.exit(3)
        return
    level = settings.log_level
    if quiet:
        level = "WARNING"
    if verbose:
        level = "DEBUG"
    setup_logging(level)
    ctx.obj = settings


@cli.command("ingest")
@click.argument("merchant")
@click.argument("amount", type=click.FloatRange(min=0))
@click.argument("card")
@click.option("--currency", default=None, help="Currency code (default: home currency).")
@click.option("--at", "at", default=None, help="ISO 8601 timestamp (default: now).")
@db_option
@catalog_option
@json_option
@click.pass_obj
def ingest_cmd(
    settings: Settings,
    merchant: str,
    amount: float,
    card: str,
    currency: Optional[str],
    at: Optional[str],
    db_path: Optional[str],
    catalog_path: Optional[str],
    output_json: bool,
) -> None:
    """Log a payment of AMOUNT at MERCHANT made with CARD."""
    timestamp = None
    if at:
        try:
            timestamp = datetime.fromisoformat(at)
        except ValueError:
            raise click.BadParameter(f"not an ISO 8601 timestamp: {at}", param_hint="--at")

    notifier = CollectingNotifier()
    pipeline = _pipeline(settings, _load_catalog(settings, catalog_path), notifier)
    with _open_store(settings, db_path) as store:
        txn = pipeline.ingest(
            merchant, amount, card, store, currency=currency, timestamp=timestamp
        )

    if output_json:
        _echo_json(
            {
                "transaction": _to_jsonable(txn),
                "wrong_card_alerts": _to_jsonable(notifier.wrong_card_alerts),
                "new_cards": _to_jsonable(notifier.new_cards),
            }
        )
        return

    symbol = settings.currency_symbol
    click.echo(f"[ok] {format_ingest_result(txn, symbol)}")
    for alert in notifier.wrong_card_alerts:
        click.echo(f"[alert] {format_wrong_card_message(alert, symbol)}")
    for event in notifier.new_cards:
        click.echo(f"[new] {format_new_card_message(event)}")


@cli.command("best-card")
@click.argument("merchant")
@db_option
@catalog_option
@click.pass_obj
def best_card_cmd(
    settings: Settings, merchant: str, db_path: Optional[str], catalog_path: Optional[str]
) -> None:
    """Which card from the portfolio to use at MERCHANT."""
    with _open_store(settings, db_path) as store:
        product_ids = portfolio_product_ids(store)
    if not product_ids:
        click.echo(NO_CARDS_MESSAGE)
        return

    pipeline = _pipeline(settings, _load_catalog(settings, catalog_path))
    category, result = pipeline.best_card_for_merchant(merchant, product_ids)
    if result.optimal_product and result.optimal_tier:
        click.echo(
            f"Use {result.optimal_product.display_name} at {merchant} "
            f"({category.display_name}): earn {result.optimal_tier.rate_description}"
        )
    else:
        click.echo(f"Any card works for {merchant}. Category: {category.display_name}")


@cli.command("recommend")
@db_option
@catalog_option
@json_option
@click.pass_context
def recommend_cmd(
    ctx: click.Context,
    db_path: Optional[str],
    catalog_path: Optional[str],
    output_json: bool,
) -> None:
    """Best card per spending category for the current portfolio."""
    settings: Settings = ctx.obj
    pipeline = _pipeline(settings, _load_catalog(settings, catalog_path))
    with _open_store(settings, db_path) as store:
        recs = pipeline.recommendations(store)

    if output_json:
        _echo_json(
            {
                "recommendations": [
                    {
                        "category": r.category.value,
                        "product_id": r.product.id,
                        "card": r.product.display_name,
                        "rate": r.tier.rate_description,
                        "effective_cashback_rate": r.tier.effective_cashback_rate,
                    }
                    for r in recs
                ]
            }
        )
    elif recs:
        for r in recs:
            click.echo(
                f"  [{r.category.display_name}] {r.product.display_name}: {r.tier.rate_description}"
            )
    else:
        click.echo(NO_CARDS_MESSAGE)

    if not recs:
        ctx.exit(2)


@cli.command("summary")
@click.option(
    "--period",
    type=click.Choice(PERIODS),
    default="all",
    show_default=True,
    help="Report window: this week, this month, last month or everything.",
)
@db_option
@catalog_option
@json_option
@click.pass_obj
def summary_cmd(
    settings: Settings,
    period: str,
    db_path: Optional[str],
    catalog_path: Optional[str],
    output_json: bool,
) -> None:
    """Missed-rewards report over stored transactions."""
    pipeline = _pipeline(settings, _load_catalog(settings, catalog_path))
    with _open_store(settings, db_path) as store:
        summary = pipeline.summary(store, period=period)

    symbol = settings.currency_symbol
    if output_json:
        payload = _to_jsonable(summary)
        payload["optimization_rate"] = summary.optimization_rate
        _echo_json({"period": period, "summary": payload})
        return

    click.echo(f"Period       : {period}")
    click.echo(f"Transactions : {summary.transaction_count}")
    click.echo(f"Total spend  : {symbol}{summary.total_spend:,.2f}")
    click.echo(f"Earned       : {symbol}{summary.total_actual_rewards:,.2f}")
    click.echo(f"Possible     : {symbol}{summary.total_optimal_rewards:,.2f}")
    click.echo(f"Missed       : {symbol}{summary.total_missed_rewards:,.2f}")
    click.echo(
        f"Optimal rate : {summary.optimization_rate:.0%} "
        f"({summary.wrong_card_count} wrong-card payments)"
    )
    for cat in summary.category_breakdown.values():
        click.echo(
            f"  [{cat.category.display_name}] spend {symbol}{cat.total_spend:,.2f}, "
            f"missed {symbol}{cat.missed_rewards:,.2f}, {cat.transaction_count} txns"
        )
    if period == "week":
        click.echo(format_weekly_digest(summary, symbol))


@cli.command("cards")
@db_option
@click.option("--disable", "disable_id", default=None, help="Card id to stop recommending.")
@click.option("--enable", "enable_id", default=None, help="Card id to recommend again.")
@click.pass_context
def cards_cmd(
    ctx: click.Context,
    db_path: Optional[str],
    disable_id: Optional[str],
    enable_id: Optional[str],
) -> None:
    """List detected cards; optionally enable or disable one first."""
    settings: Settings = ctx.obj
    with _open_store(settings, db_path) as store:
        for card_id, active in ((disable_id, False), (enable_id, True)):
            if card_id is None:
                continue
            if not store.set_card_active(card_id, active):
                click.echo(f"[error] no card with id {card_id}", err=True)
                ctx.exit(2)
            click.echo(f"[ok] card {card_id} {'enabled' if active else 'disabled'}")
        cards = store.all_cards()
    if not cards:
        click.echo(NO_CARDS_MESSAGE)
        return
    for c in cards:
        state = "active" if c.is_active else "inactive"
        click.echo(
            f"{c.id}  {c.display_name:<40} {c.match_status:<22} txns={c.transaction_count} {state}"
        )


@cli.command("categorize")
@click.argument("merchant")
@click.pass_obj
def categorize_cmd(settings: Settings, merchant: str) -> None:
    """Show the spending category for MERCHANT."""
    category, keyword = _categorizer(settings).match(merchant)
    rule_info = f" [keyword: {keyword}]" if keyword else ""
    click.echo(f"{merchant} -> {category.display_name}{rule_info}")


@cli.command("match")
@click.argument("raw")
@catalog_option
@click.pass_obj
def match_cmd(settings: Settings, raw: str, catalog_path: Optional[str]) -> None:
    """Resolve a raw card label against the catalog."""
    matcher = CardMatcher(_load_catalog(settings, catalog_path))
    result = matcher.detect(raw)
    if result is None:
        click.echo(f"[miss] no catalog match; issuer guess: {matcher.extract_issuer(raw)}")
        return
    status = "matched" if result.confidence >= matcher.CONFIDENCE_THRESHOLD else "below threshold"
    click.echo(
        f"{result.product.id} ({result.product.display_name}) "
        f"confidence={result.confidence:.2f} via '{result.matched_on}' [{status}]"
    )


@cli.command("db")
@db_option
@click.option("--init", "do_init", is_flag=True, help="Create tables if missing.")
@click.option("--stats", "show_stats", is_flag=True, help="Show row counts.")
@click.pass_obj
def db_cmd(settings: Settings, db_path: Optional[str], do_init: bool, show_stats: bool) -> None:
    """Database management."""
    with _open_store(settings, db_path) as store:
        if do_init:
            info = store.ensure_schema()
            click.echo(f"[db] schema v{info['schema_version']} ready at {store.db_path}")
        if show_stats:
            for table, count in store.get_stats().items():
                click.echo(f"  {table}: {count}")


if __name__ == "__main__":
    cli()
