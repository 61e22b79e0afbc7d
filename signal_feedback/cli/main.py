"""CLI commands for the personalization feedback loop."""

import json
import logging
import random
import sys
from collections.abc import Callable, Generator
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, NoReturn

import click
import structlog
from pydantic import TypeAdapter, ValidationError

from signal_feedback import __version__
from signal_feedback.errors import SignalFeedbackError
from signal_feedback.observability.logging import (
    bind_user_context,
    clear_user_context,
    configure_logging,
)
from signal_feedback.scoring.models import ScorableItem
from signal_feedback.scoring.scorer import apply_serendipity, rank_items
from signal_feedback.service import PersonalizationService
from signal_feedback.settings import AppSettings, get_settings
from signal_feedback.signals.dictionary import default_dictionary, load_dictionary
from signal_feedback.signals.extractor import SignalExtractor
from signal_feedback.signals.models import ContentItem
from signal_feedback.weights.confidence import ConfidenceLevel
from signal_feedback.weights.decay import (
    DecayResult,
    calculate_decayed_weight,
    format_weight,
)
from signal_feedback.weights.models import WeightRecord
from signal_feedback.weights.sqlite_store import SqliteWeightStore


logger = structlog.get_logger()

_ITEMS_ADAPTER = TypeAdapter(list[ScorableItem])


@dataclass
class CliContext:
    """State shared by all commands."""

    settings: AppSettings


def _echo_json(payload: object) -> None:
    click.echo(json.dumps(payload, indent=2, ensure_ascii=False))


def _fail(message: str) -> NoReturn:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


@contextmanager
def _open_service(
    ctx: click.Context, user_id: str | None = None
) -> Generator[tuple[PersonalizationService, SqliteWeightStore], None, None]:
    """Open the weight database and yield a configured service.

    Domain errors are reported on stderr and exit with status 1.
    """
    settings: AppSettings = ctx.obj.settings
    if user_id is not None:
        bind_user_context(user_id)
    try:
        with SqliteWeightStore(settings.db_path) as store:
            yield PersonalizationService.from_settings(store, settings), store
    except SignalFeedbackError as e:
        logger.warning("command_failed", component="cli", error=str(e))
        _fail(str(e))
    finally:
        clear_user_context()


def _content_options(func: Callable[..., Any]) -> Callable[..., Any]:
    """Attach the item text options shared by extract/decide/ignore."""
    func = click.option("--content", default=None, help="Body text.")(func)
    func = click.option(
        "--categories", default=None, help="Comma-separated category labels."
    )(func)
    func = click.option("--summary", default=None, help="Item summary.")(func)
    func = click.option("--title", required=True, help="Item title.")(func)
    return func


def _content_item(
    title: str, summary: str | None, categories: str | None, content: str | None
) -> ContentItem:
    return ContentItem(
        title=title, summary=summary, categories=categories, content=content
    )


def _decayed_row(
    record: WeightRecord, now: datetime, confidence: ConfidenceLevel
) -> dict[str, Any]:
    row = record.model_dump(mode="json")
    if record.is_muted or record.weight == 0:
        result = DecayResult(decayed_weight=record.weight, weeks_inactive=0)
    else:
        result = calculate_decayed_weight(
            record.weight, record.last_decision_at, now, confidence
        )
    row["weight"] = result.decayed_weight
    row["display"] = format_weight(record.weight, result)
    return row


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--db",
    "db_path",
    type=click.Path(dir_okay=False, path_type=Path),
    default=None,
    help="SQLite weights database (default: SIGNAL_FEEDBACK_DB_PATH).",
)
@click.option(
    "--dictionary",
    "dictionary_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Signal dictionary YAML (default: built-in dictionary).",
)
@click.option(
    "--json-logs/--no-json-logs",
    default=None,
    help="Output logs in JSON format (default: LOG_JSON).",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Enable verbose logging.",
)
@click.pass_context
def cli(
    ctx: click.Context,
    db_path: Path | None,
    dictionary_path: Path | None,
    json_logs: bool | None,
    verbose: bool,
) -> None:
    """Per-user signal weights: learn from decisions, re-rank items."""
    settings = get_settings()
    overrides: dict[str, object] = {}
    if db_path is not None:
        overrides["db_path"] = db_path
    if dictionary_path is not None:
        overrides["dictionary_path"] = dictionary_path
    if json_logs is not None:
        overrides["log_json"] = json_logs
    if overrides:
        settings = settings.model_copy(update=overrides)

    configure_logging(
        level=logging.DEBUG if verbose else logging.INFO,
        json_format=settings.log_json,
    )
    ctx.obj = CliContext(settings=settings)


@cli.command()
@_content_options
@click.pass_context
def extract(
    ctx: click.Context,
    title: str,
    summary: str | None,
    categories: str | None,
    content: str | None,
) -> None:
    """Extract signals from an item without touching the database."""
    settings: AppSettings = ctx.obj.settings
    try:
        dictionary = (
            load_dictionary(settings.dictionary_path)
            if settings.dictionary_path is not None
            else default_dictionary()
        )
    except SignalFeedbackError as e:
        _fail(str(e))

    signals = SignalExtractor(dictionary).extract(
        _content_item(title, summary, categories, content)
    )
    payload: dict[str, object] = dict(signals.to_dict())
    payload["toxic"] = dictionary.has_toxic(signals.concepts)
    _echo_json(payload)


@cli.command()
@click.argument("user_id")
@click.argument("action")
@_content_options
@click.option(
    "--confidence",
    type=click.Choice([level.value for level in ConfidenceLevel]),
    default=None,
    help="How sure you are (default: inferred from --time-taken, else medium).",
)
@click.option(
    "--time-taken",
    "time_taken",
    type=float,
    default=None,
    help="Seconds spent deciding.",
)
@click.pass_context
def decide(  # noqa: PLR0913
    ctx: click.Context,
    user_id: str,
    action: str,
    title: str,
    summary: str | None,
    categories: str | None,
    content: str | None,
    confidence: str | None,
    time_taken: float | None,
) -> None:
    """Record a decision (ignore/monitor/experiment/integrate) on an item."""
    with _open_service(ctx, user_id) as (service, _):
        written = service.update_weights_from_decision(
            user_id,
            _content_item(title, summary, categories, content),
            action,
            confidence=confidence,
            time_taken_seconds=time_taken,
        )
        _echo_json(
            {
                "user_id": user_id,
                "action": action,
                "updates": [u.to_dict() for u in written],
            }
        )


@cli.command()
@click.argument("user_id")
@click.argument("reason")
@_content_options
@click.pass_context
def ignore(  # noqa: PLR0913
    ctx: click.Context,
    user_id: str,
    reason: str,
    title: str,
    summary: str | None,
    categories: str | None,
    content: str | None,
) -> None:
    """Record why an item was ignored."""
    with _open_service(ctx, user_id) as (service, _):
        written = service.record_ignore_reason(
            user_id, _content_item(title, summary, categories, content), reason
        )
        _echo_json(
            {
                "user_id": user_id,
                "reason": reason,
                "updates": [u.to_dict() for u in written],
            }
        )


@cli.command()
@click.argument("user_id")
@click.argument("signal_type")
@click.argument("value")
@click.option("--unmute", is_flag=True, help="Unmute instead of muting.")
@click.pass_context
def mute(
    ctx: click.Context,
    user_id: str,
    signal_type: str,
    value: str,
    unmute: bool,
) -> None:
    """Mute a signal, or unmute it with --unmute.

    Context values are given as SUBJECT_KEY|CONCEPT_KEY, for example
    "entity:grok|concept:undress".
    """
    with _open_service(ctx, user_id) as (service, _):
        signal = service.mute_signal(user_id, signal_type, value, muted=not unmute)
        _echo_json({"user_id": user_id, "key": signal.key, "muted": not unmute})


@cli.command()
@click.argument("user_id")
@click.argument("signal_type")
@click.argument("value")
@click.pass_context
def reset(ctx: click.Context, user_id: str, signal_type: str, value: str) -> None:
    """Reset a signal to weight 0 and active state."""
    with _open_service(ctx, user_id) as (service, _):
        signal = service.reset_signal(user_id, signal_type, value)
        _echo_json({"user_id": user_id, "key": signal.key, "weight": 0.0})


@cli.command()
@click.argument("user_id")
@click.argument("signal_type")
@click.argument("value")
@click.option("--delta", required=True, type=float, help="Amount to add.")
@click.pass_context
def adjust(
    ctx: click.Context,
    user_id: str,
    signal_type: str,
    value: str,
    delta: float,
) -> None:
    """Add a manual delta to a signal weight."""
    with _open_service(ctx, user_id) as (service, _):
        signal = service.adjust_signal(user_id, signal_type, value, delta)
        _echo_json({"user_id": user_id, "key": signal.key, "delta": delta})


@cli.command()
@click.argument("user_id")
@click.option(
    "--decay/--no-decay",
    default=None,
    help="Show decayed weights (default: APPLY_WEIGHT_DECAY).",
)
@click.option(
    "--confidence",
    type=click.Choice([level.value for level in ConfidenceLevel]),
    default=ConfidenceLevel.MEDIUM.value,
    show_default=True,
    help="Decision confidence assumed when decaying.",
)
@click.pass_context
def weights(
    ctx: click.Context, user_id: str, decay: bool | None, confidence: str
) -> None:
    """List a user's stored weights and database statistics.

    With decay on, each weight is shown decayed, with a display string such
    as "+1.6 ↓(4w)" that marks how long the signal has been idle.
    """
    settings: AppSettings = ctx.obj.settings
    use_decay = settings.apply_weight_decay if decay is None else decay
    with _open_service(ctx, user_id) as (service, store):
        records = service.get_weights(user_id)
        if use_decay:
            now = datetime.now(UTC)
            level = ConfidenceLevel(confidence)
            rows = [_decayed_row(r, now, level) for r in records]
        else:
            rows = [r.model_dump(mode="json") for r in records]
        _echo_json(
            {
                "user_id": user_id,
                "schema_version": store.get_schema_version(),
                "stats": store.get_stats(),
                "weights": rows,
            }
        )


@cli.command()
@click.argument("user_id")
@click.option(
    "--items",
    "items_path",
    required=True,
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="JSON file with a list of items (item_id, base_score, content, signals).",
)
@click.option("--rank", is_flag=True, help="Sort by adjusted score.")
@click.option(
    "--explore",
    is_flag=True,
    help="Rank and lift a few items from below the top into view.",
)
@click.option(
    "--seed",
    type=int,
    default=None,
    help="Seed for exploration picks, for repeatable output.",
)
@click.pass_context
def score(  # noqa: PLR0913
    ctx: click.Context,
    user_id: str,
    items_path: Path,
    rank: bool,
    explore: bool,
    seed: int | None,
) -> None:
    """Score items against a user's learned weights."""
    try:
        items = _ITEMS_ADAPTER.validate_json(items_path.read_bytes())
    except ValidationError as e:
        click.echo(f"Invalid items file {items_path}:", err=True)
        for error in e.errors():
            loc = ".".join(str(part) for part in error["loc"])
            click.echo(f"  - {loc}: {error['msg']}", err=True)
        sys.exit(1)

    with _open_service(ctx, user_id) as (service, _):
        scored = service.score_items_for_user(user_id, items)
        if explore:
            scored = apply_serendipity(scored, random.Random(seed))  # noqa: S311
        elif rank:
            scored = rank_items(scored)
        _echo_json({"user_id": user_id, "items": [s.to_dict() for s in scored]})


@cli.command(name="blind-spots")
@click.argument("user_id")
@click.pass_context
def blind_spots(ctx: click.Context, user_id: str) -> None:
    """Show topics the user has been ignoring for weeks."""
    with _open_service(ctx, user_id) as (service, _):
        alerts = service.detect_blind_spots(user_id)
        _echo_json({"user_id": user_id, "alerts": [a.to_dict() for a in alerts]})


if __name__ == "__main__":
    cli()
