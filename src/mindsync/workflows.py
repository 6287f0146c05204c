"""Shared workflow layer between the CLI and the coach backend.

Each coach call: builds a prompt from application state, submits it through
the request queue, buffers the (streamed) reply and parses it once complete.
"""

import asyncio
import logging
from datetime import datetime
from typing import Callable, Iterable

from .adapters.file_state import FileStateStore
from .adapters.groq_api import GroqChatService
from .config import Config
from .core.actions import (
    CoachResponse,
    ScheduleSuggestion,
    heuristic_suggestion,
    parse_response,
    parse_schedule_suggestion,
)
from .core.balance import compute_daily_score, generate_smart_insight, relevant_today
from .core.prompts import COACH_SYSTEM_PROMPT, CoachMode, CoachRequest, build_prompt, coerce_mode
from .core.tasks import AppState, ConversationTurn, Preferences, TaskType, count_completed_by_type
from .ports.llm_service import LLMService
from .ports.state_store import StateStore
from .request_queue import RequestQueue

logger = logging.getLogger(__name__)

OnUpdate = Callable[[str], None]


def get_llm(config: Config) -> GroqChatService:
    return GroqChatService(config)


def get_state_store(config: Config) -> StateStore:
    """Resolve the state file from config."""
    return FileStateStore(config.state_path)


def build_queue(config: Config) -> RequestQueue:
    return RequestQueue(
        min_gap=config.request_min_gap_seconds,
        max_retries=config.request_max_retries,
        cache_ttl=config.cache_ttl_seconds,
    )


# ============== Request Compilation ==============


def compile_request(
    state: AppState,
    mode: CoachMode | str,
    now: datetime,
    config: Config | None = None,
    question: str | None = None,
    task_title: str | None = None,
    conversation: list[ConversationTurn] | None = None,
) -> CoachRequest:
    """Turn stored state into a coach request for ``now``."""
    today = now.date()
    daily = compute_daily_score(state.tasks, today)

    preferences = state.preferences
    if preferences is None and config is not None:
        preferences = Preferences(
            sleep_start_time=config.sleep_start_time,
            sleep_end_time=config.sleep_end_time,
        )

    return CoachRequest(
        mode=mode,
        local_date=today,
        local_time=now.strftime("%H:%M"),
        tasks=state.tasks,
        score=daily.score,
        balance=daily.balance.value,
        question=question,
        task_title=task_title,
        history=state.history,
        goals=state.goals,
        preferences=preferences,
        conversation_history=conversation or [],
    )


def offline_insight(state: AppState, now: datetime) -> str:
    """Coaching line computed locally, for when the backend is unreachable."""
    today = now.date()
    daily = compute_daily_score(state.tasks, today)
    done = count_completed_by_type(relevant_today(state.tasks, today))
    return generate_smart_insight(
        daily.balance,
        daily.score,
        done[TaskType.ADULT],
        done[TaskType.CHILD],
        done[TaskType.REST],
    )


# ============== Coach Calls ==============


async def consume_stream(chunks: Iterable[str], on_update: OnUpdate | None = None) -> str:
    """
    Read a blocking chunk iterator to completion.

    Each read runs in a worker thread. ``on_update`` receives the whole
    buffer after every chunk.
    """
    iterator = iter(chunks)
    buffer = ""
    while True:
        chunk = await asyncio.to_thread(next, iterator, None)
        if chunk is None:
            break
        buffer += chunk
        if on_update is not None:
            on_update(buffer)
    return buffer


async def ask_coach(
    request: CoachRequest,
    llm: LLMService,
    queue: RequestQueue,
    on_update: OnUpdate | None = None,
    now: datetime | None = None,
) -> CoachResponse:
    """
    Ask the coach, stream the reply, then parse it.

    Replies are cached per request except in chat mode.

    Raises:
        RequestFailedError: If the backend keeps failing.
    """
    prompt = build_prompt(request, now)

    async def work() -> str:
        return await consume_stream(llm.stream(prompt, COACH_SYSTEM_PROMPT), on_update)

    cache_key = None if coerce_mode(request.mode) == CoachMode.CHAT else request.cache_key()
    raw = await queue.enqueue(work, cache_key=cache_key)
    response = parse_response(raw)
    logger.info(f"Coach replied with {len(response.actions)} action(s)")
    return response


async def suggest_schedule(
    title: str,
    state: AppState,
    llm: LLMService,
    queue: RequestQueue,
    now: datetime,
    config: Config | None = None,
) -> ScheduleSuggestion:
    """
    Ask the coach for a type, date, time and duration for a new task.

    Falls back to the local heuristic when the backend fails or the reply
    cannot be decoded. Never raises for backend problems.
    """
    request = compile_request(state, CoachMode.SCHEDULE_ASSIST, now, config, task_title=title)
    prompt = build_prompt(request, now)

    # An unreadable reply fails the attempt and is never cached.
    async def work() -> ScheduleSuggestion:
        raw = await asyncio.to_thread(llm.generate, prompt)
        return parse_schedule_suggestion(raw, now.date(), title)

    try:
        return await queue.enqueue(work, cache_key=request.cache_key())
    except RuntimeError as e:
        logger.warning(f"Schedule suggestion unavailable ({e}); using local heuristic")
        return heuristic_suggestion(title, now)
