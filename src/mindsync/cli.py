"""MindSync CLI - balance coach."""

import asyncio
import json
import logging
import sys
import uuid
from datetime import date, datetime

import click

from .config import API_KEY_ENV, load_config
from .core.actions import CoachResponse, heuristic_suggestion
from .core.balance import compute_daily_score
from .core.prompts import CoachMode, build_prompt
from .core.slots import find_free_intervals, free_slots
from .core.temporal import format_12h, parse
from .workflows import (
    ask_coach,
    build_queue,
    compile_request,
    get_llm,
    get_state_store,
    offline_insight,
    suggest_schedule,
)

MODE_CHOICES = [m.value for m in CoachMode]


def _fail(message: str) -> None:
    click.echo(f"Error: {message}", err=True)
    sys.exit(1)


def _parse_now(value: str | None) -> datetime:
    if not value:
        return datetime.now()
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        raise click.BadParameter(f"expected ISO datetime, got {value!r}", param_hint="--now")


def _load_state(ctx: click.Context):
    config = ctx.obj["config"]
    try:
        return get_state_store(config).load()
    except RuntimeError as e:
        _fail(str(e))


@click.group()
@click.version_option(package_name="mindsync")
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.option("--state", "state_file", default=None, help="Path to the state JSON file")
@click.pass_context
def main(ctx, verbose: bool, state_file: str | None):
    """MindSync - Adult/Child/Rest balance coach."""
    if verbose:
        logging.basicConfig(
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            level=logging.DEBUG,
        )
    config = load_config()
    if state_file:
        config.state_file = state_file
    ctx.ensure_object(dict)
    ctx.obj["config"] = config


@main.command("parse")
@click.argument("text", nargs=-1, required=True)
@click.option("--now", "now_str", default=None, help="Reference time (ISO), defaults to now")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def parse_cmd(text: tuple[str, ...], now_str: str | None, as_json: bool):
    """Parse date, time and duration out of free text."""
    parsed = parse(" ".join(text), _parse_now(now_str))

    if as_json:
        click.echo(json.dumps({**parsed.to_dict(), "title": parsed.remaining_text}, indent=2))
        return

    click.echo(f"Title:    {parsed.remaining_text or '-'}")
    click.echo(f"Date:     {parsed.date.isoformat() if parsed.date else '(today)'}")
    click.echo(f"Time:     {format_12h(parsed.time) if parsed.time else '-'}")
    click.echo(f"Duration: {f'{parsed.duration} min' if parsed.duration else '-'}")


@main.command()
@click.option("--date", "-d", "target_date", default=None,
              help="Date to check (YYYY-MM-DD), defaults to today")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def slots(ctx, target_date: str | None, as_json: bool):
    """Show free time slots for a day."""
    config = ctx.obj["config"]
    target = date.fromisoformat(target_date) if target_date else date.today()
    state = _load_state(ctx)

    prefs = state.preferences
    sleep_start = prefs.sleep_start_time if prefs else config.sleep_start_time
    sleep_end = prefs.sleep_end_time if prefs else config.sleep_end_time

    if as_json:
        intervals = find_free_intervals(state.tasks, target, sleep_start, sleep_end)
        click.echo(json.dumps([i.to_dict() for i in intervals], indent=2))
        return

    click.echo(f"Free on {target.strftime('%A, %b %d')}: {free_slots(state.tasks, target, sleep_start, sleep_end)}")


@main.command()
@click.pass_context
def score(ctx):
    """Show today's balance score and an offline insight."""
    state = _load_state(ctx)
    now = datetime.now()
    daily = compute_daily_score(state.tasks, now.date())
    click.echo(f"Ego Score: {daily.score}/100 ({daily.balance.value})")
    click.echo(offline_insight(state, now))


@main.command()
@click.argument("mode", type=click.Choice(MODE_CHOICES))
@click.option("--question", "-q", default=None, help="User question (chat mode)")
@click.option("--title", "-t", "task_title", default=None, help="Task title (schedule_assist mode)")
@click.pass_context
def prompt(ctx, mode: str, question: str | None, task_title: str | None):
    """Print the prompt that would be sent to the coach."""
    state = _load_state(ctx)
    now = datetime.now()
    request = compile_request(
        state, mode, now, ctx.obj["config"], question=question, task_title=task_title
    )
    click.echo(build_prompt(request, now))


def _show_response(response: CoachResponse, show_thought: bool) -> None:
    if show_thought and response.thought:
        click.echo(f"[thought] {response.thought}\n")
    click.echo(response.cleaned_text)

    if response.actions:
        click.echo("\nSuggested tasks:")
    for action in response.actions:
        when = " ".join(
            part
            for part in (
                action.scheduled_date.isoformat() if action.scheduled_date else "",
                format_12h(action.scheduled_time) if action.scheduled_time else "",
            )
            if part
        )
        delta = f" ({action.projected_score:+d})" if action.projected_score is not None else ""
        click.echo(
            f"  + {action.title} [{action.task_type.value}, {action.duration} min]"
            f"{' @ ' + when if when else ''}{delta}"
        )


@main.command()
@click.argument("question", nargs=-1)
@click.option("--mode", "-m", type=click.Choice(MODE_CHOICES), default=CoachMode.CHAT.value,
              help="Coach mode")
@click.option("--stream", "show_stream", is_flag=True, help="Echo the raw reply as it arrives")
@click.option("--thought", "show_thought", is_flag=True, help="Show the coach's reasoning")
@click.pass_context
def ask(ctx, question: tuple[str, ...], mode: str, show_stream: bool, show_thought: bool):
    """Ask the coach a question."""
    config = ctx.obj["config"]
    state = _load_state(ctx)
    now = datetime.now()
    text = " ".join(question) or None

    if mode == CoachMode.CHAT.value and not text:
        _fail("chat mode needs a question")

    if not config.llm_api_key:
        if mode == CoachMode.ADVICE.value:
            click.echo(f"(offline) {offline_insight(state, now)}")
            return
        _fail(f"No API key. Set LLM_API_KEY in config/mindsync.conf or export {API_KEY_ENV}.")

    request = compile_request(state, mode, now, config, question=text)
    printed = 0

    def on_update(buffer: str) -> None:
        nonlocal printed
        if show_stream:
            click.echo(buffer[printed:], nl=False, err=True)
        printed = len(buffer)

    try:
        response = asyncio.run(ask_coach(request, get_llm(config), build_queue(config), on_update, now))
    except RuntimeError as e:
        if mode == CoachMode.ADVICE.value:
            click.echo(f"(offline) {offline_insight(state, now)}")
            return
        _fail(str(e))

    if show_stream:
        click.echo(err=True)
    _show_response(response, show_thought)


@main.command()
@click.argument("title", nargs=-1, required=True)
@click.option("--offline", is_flag=True, help="Skip the coach; use the local parser only")
@click.option("--save", is_flag=True, help="Append the task to the state file")
@click.pass_context
def add(ctx, title: tuple[str, ...], offline: bool, save: bool):
    """Suggest a type and time slot for a new task."""
    config = ctx.obj["config"]
    raw_title = " ".join(title)
    now = datetime.now()

    if offline or not config.llm_api_key:
        suggestion = heuristic_suggestion(raw_title, now)
    else:
        state = _load_state(ctx)
        suggestion = asyncio.run(
            suggest_schedule(raw_title, state, get_llm(config), build_queue(config), now, config)
        )

    clean_title = parse(raw_title, now).remaining_text or raw_title
    at = f" at {format_12h(suggestion.suggested_time)}" if suggestion.suggested_time else ""
    click.echo(
        f"{clean_title}: {suggestion.suggested_type.value}, {suggestion.duration} min, "
        f"{suggestion.suggested_date.isoformat()}{at} ({suggestion.source})"
    )

    if save:
        fields = suggestion.to_dict()
        task = {
            "id": uuid.uuid4().hex,
            "title": clean_title,
            "type": fields["suggestedType"],
            "status": "TODO",
            "scheduledDate": fields["suggestedDate"],
            "scheduledTime": fields["suggestedTime"],
            "duration": fields["duration"],
            "createdAt": now.isoformat(),
        }
        store = get_state_store(config)
        try:
            store.add_task(task)
        except RuntimeError as e:
            _fail(str(e))
        click.echo(f"✓ Saved to {config.state_path}")


if __name__ == "__main__":
    main()
