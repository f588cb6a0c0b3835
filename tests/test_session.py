from __future__ import annotations

import asyncio

import pytest
from fakes import FakeClock, ScriptedProvider, status, translating_task

from translator.errors import AuthError, NotFoundError, UnsupportedFileTypeError
from translator.translation.models import ProviderStatus, SubmissionOptions, TaskStatus
from translator.translation.poller import StatusPoller
from translator.translation.retry import RetryPolicy
from translator.translation.sandbox import SandboxProvider
from translator.translation.session import SessionStore, TranslationSession

PROCESSING = status(ProviderStatus.PROCESSING)
COMPLETED = status(ProviderStatus.COMPLETED, translated_file_url="https://x/y.pdf")


class ProgressRecordingProvider(ScriptedProvider):
    """Records the task's progress as seen by each status query."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.session = None
        self.seen: list[int] = []

    async def query_task(self, task_id):
        self.seen.append(self.session.task.progress)
        return await super().query_task(task_id)


def make_session(provider, clock, on_finish=None) -> TranslationSession:
    def poller_factory(task):
        return StatusPoller(
            provider,
            task,
            retry_policy=RetryPolicy(max_retries=3, retry_delay=2.0),
            sleep=clock.sleep,
            clock=clock,
            on_finish=on_finish,
        )

    return TranslationSession("session-1", provider, poller_factory=poller_factory)


def test_submit_and_poll_to_completion(pdf_file, clock) -> None:
    provider = ProgressRecordingProvider([PROCESSING, PROCESSING, PROCESSING, COMPLETED])
    finished = []
    session = make_session(provider, clock, on_finish=finished.append)
    provider.session = session
    options = SubmissionOptions(from_lang="auto", to_lang="lt")

    async def scenario():
        task = await session.submit(pdf_file, "doc.pdf", options)
        assert task.task_id == "abc-123"
        assert task.status == TaskStatus.TRANSLATING
        assert task.progress == 0
        await session.poller.start()
        return task

    task = asyncio.run(scenario())

    assert provider.created[0][1] == "doc.pdf"
    assert provider.created[0][2].to_lang == "lt"
    assert provider.created[0][3] is True
    assert not pdf_file.exists()
    assert provider.queries == ["abc-123"] * 4
    assert provider.seen == [0, 4, 8, 12]
    assert clock.sleeps == [3.0, 3.0, 3.0, 10.0]
    assert task.status == TaskStatus.COMPLETED
    assert task.progress == 100
    assert task.result.translated_file_url == "https://x/y.pdf"
    assert task.source_language == "auto"
    assert task.target_language == "lt"
    assert finished == [task]


def test_submit_error_leaves_task_in_error(pdf_file, clock) -> None:
    session = make_session(ScriptedProvider(create_error=AuthError()), clock)

    with pytest.raises(AuthError):
        asyncio.run(session.submit(pdf_file, "doc.pdf", SubmissionOptions()))

    assert session.status == TaskStatus.ERROR
    assert session.task.error == AuthError.default_message
    assert session.poller is None
    assert not pdf_file.exists()


def test_reset_while_uploading_discards_result(pdf_file, clock) -> None:
    class ResettingProvider(ScriptedProvider):
        async def create_task(self, path, filename, options):
            result = await super().create_task(path, filename, options)
            session.reset()
            return result

    provider = ResettingProvider([PROCESSING])
    session = make_session(provider, clock)

    task = asyncio.run(session.submit(pdf_file, "doc.pdf", SubmissionOptions()))

    assert task.status == TaskStatus.UPLOADING
    assert session.task is None
    assert session.poller is None
    assert session.status == TaskStatus.IDLE
    assert provider.queries == []


def test_reset_cancels_polling(pdf_file, clock) -> None:
    provider = ScriptedProvider([PROCESSING])
    session = make_session(provider, clock)

    async def scenario():
        await session.submit(pdf_file, "doc.pdf", SubmissionOptions())
        poller = session.poller
        runner = poller.start()
        session.reset()
        await asyncio.gather(runner, return_exceptions=True)
        return poller

    poller = asyncio.run(scenario())

    assert poller.cancelled
    assert not poller.running
    assert provider.queries == []
    assert session.status == TaskStatus.IDLE


def test_new_submission_replaces_previous_task(pdf_file, tmp_path, clock) -> None:
    second = tmp_path / "second.pdf"
    second.write_bytes(pdf_file.read_bytes())
    session = make_session(ScriptedProvider([PROCESSING]), clock)

    async def scenario():
        await session.submit(pdf_file, "first.pdf", SubmissionOptions())
        first_poller = session.poller
        runner = first_poller.start()
        await session.submit(second, "second.pdf", SubmissionOptions())
        await asyncio.gather(runner, return_exceptions=True)
        session.reset()
        return first_poller

    first_poller = asyncio.run(scenario())

    assert first_poller.cancelled
    assert first_poller.task.filename == "first.pdf"


def test_reject_records_error_task(clock) -> None:
    session = make_session(ScriptedProvider(), clock)

    task = session.reject("notes.txt", SubmissionOptions(), UnsupportedFileTypeError())

    assert session.status == TaskStatus.ERROR
    assert task.filename == "notes.txt"
    assert task.error == UnsupportedFileTypeError.default_message


def test_idle_session_has_no_task(clock) -> None:
    session = make_session(ScriptedProvider(), clock)

    assert session.status == TaskStatus.IDLE
    session.reset()
    assert session.task is None


class TestSessionStore:
    def test_get_or_create_reuses_session(self) -> None:
        provider = ScriptedProvider()
        store = SessionStore(lambda sid: TranslationSession(sid, provider))

        first = store.get_or_create("a")

        assert store.get_or_create("a") is first
        assert store.get("b") is None
        assert len(store) == 1

    def test_drop_resets_session(self) -> None:
        store = SessionStore(lambda sid: TranslationSession(sid, ScriptedProvider()))
        session = store.get_or_create("a")
        session.reject("x.pdf", SubmissionOptions(), AuthError())

        store.drop("a")
        store.drop("missing")

        assert session.task is None
        assert store.get("a") is None

    def test_reset_all_empties_store(self) -> None:
        store = SessionStore(lambda sid: TranslationSession(sid, ScriptedProvider()))
        for sid in ("a", "b", "c"):
            store.get_or_create(sid)

        store.reset_all()

        assert len(store) == 0

    def test_expired_idle_and_finished_sessions_are_evicted(self) -> None:
        clock = FakeClock()
        store = SessionStore(lambda sid: TranslationSession(sid, ScriptedProvider()), ttl_seconds=60, clock=clock)
        store.get_or_create("idle")
        store.get_or_create("failed").reject("x.pdf", SubmissionOptions(), AuthError())
        store.get_or_create("busy").task = translating_task()
        clock.now += 30
        store.get("recent")
        store.get_or_create("recent")
        clock.now += 31

        evicted = store.evict_expired()

        assert evicted == 2
        assert store.get("idle") is None
        assert store.get("failed") is None
        assert store.get("busy") is not None
        assert store.get("recent") is not None

    def test_lookup_refreshes_expiry(self) -> None:
        clock = FakeClock()
        store = SessionStore(lambda sid: TranslationSession(sid, ScriptedProvider()), ttl_seconds=60, clock=clock)
        store.get_or_create("a")
        clock.now += 50
        store.get("a")
        clock.now += 50

        assert store.get("a") is not None
        clock.now += 61
        store.get_or_create("b")
        assert len(store) == 1


class TestSandbox:
    def test_sandbox_flow_completes(self, pdf_file, clock) -> None:
        provider = SandboxProvider(complete_after=2)
        session = make_session(provider, clock)

        async def scenario():
            task = await session.submit(pdf_file, "doc.pdf", SubmissionOptions())
            await session.poller.start()
            return task

        task = asyncio.run(scenario())

        assert task.task_id.startswith("sandbox-")
        assert task.status == TaskStatus.COMPLETED
        assert task.check_count == 3
        assert task.result.translated_file_url == f"https://example.com/{task.task_id}/translated.pdf"
        assert task.result.bilingual_file_url == f"https://example.com/{task.task_id}/bilingual.pdf"
        assert task.result.used_credits == "10"
        assert task.result.token_count == "5000"

    def test_unknown_sandbox_task_is_not_found(self) -> None:
        with pytest.raises(NotFoundError):
            asyncio.run(SandboxProvider().query_task("sandbox-unknown"))

    def test_completed_sandbox_task_is_forgotten(self, pdf_file) -> None:
        provider = SandboxProvider(complete_after=0)

        async def scenario():
            result = await provider.create_task(pdf_file, "doc.pdf", SubmissionOptions())
            first = await provider.query_task(result.task_id)
            with pytest.raises(NotFoundError):
                await provider.query_task(result.task_id)
            return first

        first = asyncio.run(scenario())

        assert first.status == ProviderStatus.COMPLETED
