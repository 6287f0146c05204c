"""Tests for the shared workflow layer."""

import asyncio
from datetime import date, datetime, time
from unittest.mock import MagicMock

import pytest

from mindsync.config import Config
from mindsync.core.prompts import COACH_SYSTEM_PROMPT, CoachMode
from mindsync.core.tasks import AppState, DailySnapshot, Task, TaskStatus, TaskType
from mindsync.request_queue import RequestFailedError, RequestQueue
from mindsync.workflows import (
    ask_coach,
    build_queue,
    compile_request,
    consume_stream,
    get_state_store,
    offline_insight,
    suggest_schedule,
)


class FakeLLM:
    """In-memory LLMService returning canned replies."""

    def __init__(self, reply: str = "", chunks: list[str] | None = None, error: Exception | None = None):
        self.reply = reply
        self.chunks = chunks if chunks is not None else [reply]
        self.error = error
        self.prompts: list[tuple[str, str | None]] = []

    def generate(self, prompt: str, system_prompt: str | None = None) -> str:
        self.prompts.append((prompt, system_prompt))
        if self.error:
            raise self.error
        return self.reply

    def stream(self, prompt: str, system_prompt: str | None = None):
        self.prompts.append((prompt, system_prompt))
        if self.error:
            raise self.error
        yield from self.chunks


async def no_wait(seconds: float) -> None:
    await asyncio.sleep(0)


@pytest.fixture
def now():
    return datetime(2025, 1, 15, 10, 0)


@pytest.fixture
def queue():
    return RequestQueue(sleep=no_wait)


@pytest.fixture
def state(now):
    today = now.date()
    return AppState(
        tasks=[
            Task(id="1", title="Report", type=TaskType.ADULT, status=TaskStatus.DONE,
                 scheduled_date=today, scheduled_time=time(9, 0), duration=60),
            Task(id="2", title="Emails", type=TaskType.ADULT, scheduled_date=today,
                 scheduled_time=time(14, 0)),
        ],
        history=[DailySnapshot(date=date(2025, 1, 14), score=70, rest_completed=1)],
    )


REPLY = "<thought>Too much work.</thought>Rest a bit.\n[ACTION: CREATE_TASK | Nap | REST | 20 | 15:00 | +5]"


class TestCompileRequest:
    def test_scores_state(self, state, now):
        request = compile_request(state, CoachMode.CHAT, now, question="Help?")
        assert request.score == 50
        assert request.balance == "anxiety"
        assert request.local_date == now.date()
        assert request.local_time == "10:00"
        assert request.question == "Help?"
        assert request.history == state.history

    def test_preferences_from_config(self, state, now):
        config = Config(sleep_start_time=time(22, 0), sleep_end_time=time(7, 0))
        request = compile_request(state, CoachMode.ADVICE, now, config)
        assert request.preferences.sleep_start_time == time(22, 0)
        assert request.preferences.sleep_end_time == time(7, 0)

    def test_no_config_no_preferences(self, state, now):
        assert compile_request(state, CoachMode.ADVICE, now).preferences is None


class TestHelpers:
    def test_offline_insight(self, state, now):
        assert "pure Adult mode" in offline_insight(state, now)

    def test_build_queue_uses_config(self):
        queue = build_queue(Config(request_min_gap_seconds=0.5, request_max_retries=5, cache_ttl_seconds=10))
        assert (queue.min_gap, queue.max_retries, queue.cache_ttl) == (0.5, 5, 10)

    def test_state_store_path(self, tmp_path):
        store = get_state_store(Config(state_file=str(tmp_path / "s.json")))
        assert store.path == tmp_path / "s.json"


class TestConsumeStream:
    @pytest.mark.asyncio
    async def test_buffers_and_republishes(self):
        updates = []
        result = await consume_stream(iter(["Hel", "lo", "!"]), updates.append)
        assert result == "Hello!"
        assert updates == ["Hel", "Hello", "Hello!"]

    @pytest.mark.asyncio
    async def test_empty_stream(self):
        assert await consume_stream([]) == ""

    @pytest.mark.asyncio
    async def test_error_propagates(self):
        def broken():
            yield "a"
            raise RuntimeError("stream died")

        with pytest.raises(RuntimeError, match="stream died"):
            await consume_stream(broken())


class TestAskCoach:
    @pytest.mark.asyncio
    async def test_parses_after_stream(self, state, now, queue):
        llm = FakeLLM(chunks=[REPLY[:20], REPLY[20:]])
        updates = []
        request = compile_request(state, CoachMode.CHAT, now, question="Tired")

        response = await ask_coach(request, llm, queue, updates.append, now)

        assert response.cleaned_text == "Rest a bit."
        assert response.thought == "Too much work."
        assert response.actions[0].title == "Nap"
        assert response.actions[0].projected_score == 5
        assert updates[-1] == REPLY
        prompt, system_prompt = llm.prompts[0]
        assert "User question: Tired" in prompt
        assert system_prompt == COACH_SYSTEM_PROMPT

    @pytest.mark.asyncio
    async def test_chat_is_not_cached(self, state, now, queue):
        llm = FakeLLM("Hi")
        request = compile_request(state, CoachMode.CHAT, now, question="Hello")
        await ask_coach(request, llm, queue, now=now)
        await ask_coach(request, llm, queue, now=now)
        assert len(llm.prompts) == 2

    @pytest.mark.asyncio
    async def test_advice_is_cached(self, state, now, queue):
        llm = FakeLLM("Balance it.")
        request = compile_request(state, CoachMode.ADVICE, now)
        first = await ask_coach(request, llm, queue, now=now)
        second = await ask_coach(request, llm, queue, now=now)
        assert first == second
        assert len(llm.prompts) == 1

    @pytest.mark.asyncio
    async def test_backend_failure(self, state, now, queue):
        llm = FakeLLM(error=RuntimeError("down"))
        request = compile_request(state, CoachMode.ADVICE, now)
        with pytest.raises(RequestFailedError):
            await ask_coach(request, llm, queue, now=now)
        assert len(llm.prompts) == 3


class TestSuggestSchedule:
    @pytest.mark.asyncio
    async def test_model_suggestion(self, state, now, queue):
        llm = FakeLLM('```json\n{"suggestedType": "REST", "suggestedDate": "2025-01-16", "suggestedTime": "07:00", "duration": 60}\n```')

        suggestion = await suggest_schedule("Gym tomorrow", state, llm, queue, now)

        assert suggestion.source == "model"
        assert suggestion.suggested_type == TaskType.REST
        assert suggestion.suggested_date == date(2025, 1, 16)
        prompt, system_prompt = llm.prompts[0]
        assert 'Task Title: "Gym tomorrow"' in prompt
        assert system_prompt is None

    @pytest.mark.asyncio
    async def test_bad_reply_falls_back(self, state, now, queue):
        llm = FakeLLM("I think the gym is restful!")

        suggestion = await suggest_schedule("Gym tomorrow at 7am", state, llm, queue, now)

        assert suggestion.source == "heuristic"
        assert suggestion.suggested_type == TaskType.REST
        assert suggestion.suggested_date == date(2025, 1, 16)
        assert suggestion.suggested_time == time(7, 0)
        assert len(llm.prompts) == 3

    @pytest.mark.asyncio
    async def test_unreadable_reply_is_not_cached(self, state, now, queue):
        llm = MagicMock()
        llm.generate.side_effect = ["nope", "still nope", "no JSON here", '{"suggestedType": "CHILD"}']

        first = await suggest_schedule("Movie night", state, llm, queue, now)
        second = await suggest_schedule("Movie night", state, llm, queue, now)

        assert first.source == "heuristic"
        assert second.source == "model"
        assert second.suggested_type == TaskType.CHILD
        assert llm.generate.call_count == 4

    @pytest.mark.asyncio
    async def test_model_suggestion_is_cached(self, state, now, queue):
        llm = FakeLLM('{"suggestedType": "REST", "duration": 20}')

        first = await suggest_schedule("Nap", state, llm, queue, now)
        second = await suggest_schedule("Nap", state, llm, queue, now)

        assert first == second
        assert len(llm.prompts) == 1

    @pytest.mark.asyncio
    async def test_backend_failure_falls_back(self, state, now, queue):
        llm = FakeLLM(error=ConnectionError("offline"))

        suggestion = await suggest_schedule("Watch movie", state, llm, queue, now)

        assert suggestion.source == "heuristic"
        assert suggestion.suggested_type == TaskType.CHILD

    @pytest.mark.asyncio
    async def test_generate_failure_is_retried(self, state, now, queue):
        llm = MagicMock()
        llm.generate.side_effect = [RuntimeError("blip"), '{"suggestedType": "ADULT", "duration": 45}']

        suggestion = await suggest_schedule("Emails", state, llm, queue, now)

        assert llm.generate.call_count == 2
        assert suggestion.source == "model"
        assert suggestion.duration == 45
        assert suggestion.suggested_date == now.date()
