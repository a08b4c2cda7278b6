"""Tests for the Session state machine, execution and driver event bridging."""

import asyncio
import time

import pytest

from playsession.config import FrameworkConfig
from playsession.core.session import (
    DialogPolicy,
    SessionEventType,
    SessionOptions,
    SessionRegistry,
    SessionStatus,
)
from playsession.exceptions import (
    InvalidSessionTransitionError,
    SessionCreationError,
    SessionNotActiveError,
)

from .conftest import FakeDialog

ACCESSORS = ('page', 'context', 'browser', 'navigation', 'elements', 'input', 'assertions')


class FullDiskScreenshots:
    """Screenshot capability whose error captures blow up."""

    def __init__(self):
        self.attempts = 0

    async def capture(self, page, description):
        raise OSError("disk full")

    async def capture_error(self, page, tag, error):
        self.attempts += 1
        raise OSError("disk full")


class TestStatusTransitions:
    @pytest.mark.asyncio
    async def test_new_session_is_active(self, registry):
        session = await registry.create()

        assert session.status is SessionStatus.ACTIVE
        assert session.metrics.actions_performed == 0
        assert session.end_time is None

    @pytest.mark.asyncio
    async def test_pause_and_resume(self, registry):
        session = await registry.create()
        changes = []
        session.on(SessionEventType.STATUS_CHANGED, lambda e: changes.append((e.previous, e.current)))

        session.pause()
        assert session.status is SessionStatus.PAUSED
        session.resume()
        assert session.status is SessionStatus.ACTIVE

        assert changes == [
            (SessionStatus.ACTIVE, SessionStatus.PAUSED),
            (SessionStatus.PAUSED, SessionStatus.ACTIVE),
        ]

    @pytest.mark.asyncio
    async def test_invalid_transitions(self, registry):
        session = await registry.create()

        with pytest.raises(InvalidSessionTransitionError):
            session.resume()
        session.pause()
        with pytest.raises(InvalidSessionTransitionError):
            session.pause()

    @pytest.mark.asyncio
    async def test_terminal_session_cannot_pause(self, registry):
        session = await registry.create()
        await session.close()

        with pytest.raises(SessionNotActiveError):
            session.pause()
        with pytest.raises(SessionNotActiveError):
            session.resume()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("accessor", ACCESSORS)
    async def test_accessors_require_active_when_paused(self, registry, accessor):
        session = await registry.create()
        session.pause()

        with pytest.raises(SessionNotActiveError):
            getattr(session, accessor)()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("accessor", ACCESSORS)
    async def test_accessors_require_active_when_closed(self, registry, accessor):
        session = await registry.create()
        await session.close()

        with pytest.raises(SessionNotActiveError):
            getattr(session, accessor)()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("accessor", ACCESSORS)
    async def test_accessors_require_active_after_error(self, registry, accessor):
        session = await registry.create()
        session.mark_error("browser crashed")

        assert session.status is SessionStatus.ERROR
        with pytest.raises(SessionNotActiveError):
            getattr(session, accessor)()

    @pytest.mark.asyncio
    async def test_facades_are_cached_per_context(self, registry):
        session = await registry.create()

        assert session.navigation() is session.navigation()


class TestExecute:
    @pytest.mark.asyncio
    async def test_execute_counts_actions_and_returns_result(self, registry):
        session = await registry.create()

        result = await session.execute(lambda s: s.id, "read id")

        assert result == session.id
        assert session.metrics.actions_performed == 1

    @pytest.mark.asyncio
    async def test_execute_awaits_coroutines(self, registry):
        session = await registry.create()

        async def action(s):
            return "done"

        assert await session.execute(action) == "done"

    @pytest.mark.asyncio
    async def test_failed_action_is_recorded_and_reraised(self, registry):
        session = await registry.create()
        failures = []
        session.on(SessionEventType.ACTION_FAILED, failures.append)

        def action(s):
            raise ValueError("element not found")

        with pytest.raises(ValueError, match="element not found"):
            await session.execute(action, "click submit")

        assert [e.describe() for e in session.errors] == ["ValueError: element not found"]
        assert len(failures) == 1
        assert failures[0].description == "click submit"
        assert failures[0].screenshot_path is not None
        assert session.screenshots == [failures[0].screenshot_path]
        assert session.status is SessionStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_failed_action_without_screenshot(self, registry):
        session = await registry.create(SessionOptions(screenshot_on_error=False))

        def action(s):
            raise RuntimeError("x")

        with pytest.raises(RuntimeError):
            await session.execute(action)

        assert session.screenshots == []
        assert session.errors[0].screenshot_path is None

    @pytest.mark.asyncio
    async def test_screenshot_failure_keeps_action_error(self, driver, config):
        screenshots = FullDiskScreenshots()
        session = await SessionRegistry(driver, config, screenshots=screenshots).create()
        failures = []
        session.on(SessionEventType.ACTION_FAILED, failures.append)

        def action(s):
            raise ValueError("element not found")

        with pytest.raises(ValueError, match="element not found"):
            await session.execute(action, "click submit")

        assert screenshots.attempts == 1
        assert failures[0].screenshot_path is None
        assert [e.describe() for e in session.errors] == ["ValueError: element not found"]
        assert session.screenshots == []
        assert session.status is SessionStatus.ACTIVE

    @pytest.mark.asyncio
    async def test_screenshot_failure_keeps_last_retry_error(self, driver, config):
        screenshots = FullDiskScreenshots()
        session = await SessionRegistry(driver, config, screenshots=screenshots).create()
        attempts = []

        async def action(s):
            attempts.append(1)
            raise TimeoutError(f"attempt {len(attempts)}")

        with pytest.raises(TimeoutError, match="attempt 2"):
            await session.execute_with_retry(action, max_retries=2, delay_ms=0)

        assert screenshots.attempts == 2
        assert len(session.errors) == 2

    @pytest.mark.asyncio
    async def test_execute_requires_active(self, registry):
        session = await registry.create()
        session.pause()

        with pytest.raises(SessionNotActiveError):
            await session.execute(lambda s: None)
        assert session.metrics.actions_performed == 0

    @pytest.mark.asyncio
    async def test_execute_with_retry_recovers(self, registry):
        session = await registry.create()
        attempts = []

        async def action(s):
            attempts.append(1)
            if len(attempts) < 3:
                raise TimeoutError("not yet")
            return "loaded"

        started = time.monotonic()
        result = await session.execute_with_retry(action, max_retries=3, delay_ms=100, backoff=True)
        elapsed = time.monotonic() - started

        assert result == "loaded"
        assert session.metrics.actions_performed == 3
        assert elapsed >= 0.3

    @pytest.mark.asyncio
    async def test_execute_with_retry_raises_third_error(self, registry):
        session = await registry.create(SessionOptions(screenshot_on_error=False))
        attempts = []

        async def action(s):
            attempts.append(1)
            raise TimeoutError(f"attempt {len(attempts)}")

        with pytest.raises(TimeoutError, match="attempt 3"):
            await session.execute_with_retry(action, max_retries=3, delay_ms=0)

        assert len(session.errors) == 3


class TestBookkeeping:
    @pytest.mark.asyncio
    async def test_metadata_merge(self, registry):
        session = await registry.create(SessionOptions(metadata={'suite': 'smoke', 'owner': 'qa'}))

        merged = session.update_metadata({'owner': 'ops'}, build=42)

        assert merged == {'suite': 'smoke', 'owner': 'ops', 'build': 42}
        assert session.metadata == merged

    @pytest.mark.asyncio
    async def test_metadata_copy_is_detached(self, registry):
        session = await registry.create()

        session.metadata['x'] = 1

        assert 'x' not in session.metadata

    @pytest.mark.asyncio
    async def test_record_assertion(self, registry):
        session = await registry.create()

        session.record_assertion(True, "title")
        session.record_assertion(False, "url")

        assert session.metrics.assertions_passed == 1
        assert session.metrics.assertions_failed == 1

    @pytest.mark.asyncio
    async def test_take_screenshot(self, registry, driver):
        session = await registry.create()

        path = await session.take_screenshot("home page")

        assert path.endswith(".png")
        assert "home_page" in path
        assert session.screenshots == [path]
        assert driver.contexts[session.id].page.screenshots == [path]

    @pytest.mark.asyncio
    async def test_screenshots_disabled_in_config(self, driver, tmp_path):
        config = FrameworkConfig.from_dict({
            'screenshots': {'enabled': False, 'path': str(tmp_path / 'screenshots')},
            'paths': {'states': str(tmp_path / 'session_states')},
        })
        session = await SessionRegistry(driver, config).create()

        with pytest.raises(RuntimeError):
            await session.take_screenshot("home page")

        def action(s):
            raise ValueError("element not found")

        with pytest.raises(ValueError):
            await session.execute(action)

        assert session.errors[0].screenshot_path is None
        assert session.screenshots == []
        assert driver.contexts[session.id].page.screenshots == []
        assert not (tmp_path / 'screenshots').exists()

    @pytest.mark.asyncio
    async def test_snapshot(self, registry):
        session = await registry.create(SessionOptions(session_id="snap"))

        snapshot = session.snapshot()

        assert snapshot.id == "snap"
        assert snapshot.status == "active"
        assert snapshot.errors == []


class TestDriverEvents:
    @pytest.mark.asyncio
    async def test_navigation_updates_url_and_metrics(self, registry, driver):
        session = await registry.create()
        seen = []
        session.on(SessionEventType.NAVIGATED, lambda e: seen.append(e.url))

        driver.contexts[session.id].page.fire('navigated', "https://example.com/login")

        assert session.current_url == "https://example.com/login"
        assert session.metrics.pages_visited == 1
        assert seen == ["https://example.com/login"]

    @pytest.mark.asyncio
    async def test_page_error_is_recorded(self, registry, driver):
        session = await registry.create()

        driver.contexts[session.id].page.fire('page_error', "ReferenceError: foo is not defined")

        assert session.errors[0].error_type == "PageError"

    @pytest.mark.asyncio
    async def test_only_console_errors_are_forwarded(self, registry, driver):
        session = await registry.create()
        seen = []
        session.on(SessionEventType.CONSOLE_ERROR, lambda e: seen.append(e.text))
        page = driver.contexts[session.id].page

        page.fire('console', 'log', "hello")
        page.fire('console', 'error', "failed to load resource")

        assert seen == ["failed to load resource"]

    @pytest.mark.asyncio
    async def test_dialog_accepted_by_default(self, registry, driver):
        session = await registry.create()
        dialog = FakeDialog()

        await driver.contexts[session.id].page.fire('dialog', dialog)

        assert dialog.outcome == "accepted"

    @pytest.mark.asyncio
    async def test_subscriber_can_dismiss_dialog(self, registry, driver):
        session = await registry.create()
        session.on(SessionEventType.DIALOG, lambda e: e.dismiss())
        dialog = FakeDialog()

        await driver.contexts[session.id].page.fire('dialog', dialog)

        assert dialog.outcome == "dismissed"

    @pytest.mark.asyncio
    async def test_async_subscriber_can_dismiss_dialog(self, registry, driver):
        session = await registry.create()

        async def decide(event):
            await asyncio.sleep(0)
            event.dismiss()

        session.on(SessionEventType.DIALOG, decide)
        dialog = FakeDialog()

        await driver.contexts[session.id].page.fire('dialog', dialog)

        assert dialog.outcome == "dismissed"

    @pytest.mark.asyncio
    async def test_subscriber_can_answer_prompt(self, registry, driver):
        session = await registry.create()
        session.on(SessionEventType.DIALOG, lambda e: e.accept("Ada"))
        dialog = FakeDialog(dialog_type="prompt", message="Name?")

        await driver.contexts[session.id].page.fire('dialog', dialog)

        assert dialog.outcome == "accepted"
        assert dialog.prompt_text == "Ada"

    @pytest.mark.asyncio
    async def test_dismiss_policy(self, registry, driver):
        session = await registry.create(SessionOptions(dialog_policy=DialogPolicy.DISMISS))
        dialog = FakeDialog()

        await driver.contexts[session.id].page.fire('dialog', dialog)

        assert dialog.outcome == "dismissed"

    @pytest.mark.asyncio
    async def test_ignore_policy_leaves_dialog_alone(self, registry, driver):
        session = await registry.create(SessionOptions(dialog_policy=DialogPolicy.IGNORE))
        dialog = FakeDialog()

        await driver.contexts[session.id].page.fire('dialog', dialog)

        assert dialog.outcome is None

    @pytest.mark.asyncio
    async def test_download_and_new_page_are_forwarded(self, registry, driver):
        session = await registry.create()
        seen = []
        session.on(SessionEventType.DOWNLOAD, lambda e: seen.append(e.suggested_filename))
        session.on(SessionEventType.NEW_PAGE, lambda e: seen.append("popup"))
        page = driver.contexts[session.id].page

        page.fire('download', "report.csv", object())
        page.fire('new_page', object())

        assert seen == ["report.csv", "popup"]


class TestRestart:
    @pytest.mark.asyncio
    async def test_restart_swaps_context_and_keeps_metrics(self, registry, driver):
        session = await registry.create()
        old_page = session.page()
        await session.execute(lambda s: None)
        navigation = session.navigation()

        await session.restart()

        assert session.page() is not old_page
        assert session.navigation() is not navigation
        assert session.metrics.actions_performed == 1
        assert session.status is SessionStatus.ACTIVE
        assert driver.released == [session.id]
        assert driver.created == [session.id, session.id]

    @pytest.mark.asyncio
    async def test_restart_keeps_paused_status(self, registry):
        session = await registry.create()
        session.pause()

        await session.restart()

        assert session.status is SessionStatus.PAUSED

    @pytest.mark.asyncio
    async def test_restart_rewires_driver_events(self, registry, driver):
        session = await registry.create()
        seen = []
        session.on(SessionEventType.NAVIGATED, lambda e: seen.append(e.url))

        await session.restart()
        driver.contexts[session.id].page.fire('navigated', "https://example.com/again")

        assert seen == ["https://example.com/again"]

    @pytest.mark.asyncio
    async def test_restart_failure_marks_error(self, registry, driver):
        session = await registry.create()
        driver.fail_create = RuntimeError("browser binary missing")

        with pytest.raises(SessionCreationError):
            await session.restart()

        assert session.status is SessionStatus.ERROR


class TestClose:
    @pytest.mark.asyncio
    async def test_close_success(self, registry, driver):
        session = await registry.create()
        closed = []
        session.on(SessionEventType.CLOSED, closed.append)

        await session.close()

        assert session.status is SessionStatus.CLOSED
        assert session.end_time is not None
        assert session.duration >= 0
        assert registry.get(session.id) is None
        assert driver.released == [session.id]
        assert closed[0].snapshot.status == "closed"

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self, registry, driver):
        session = await registry.create()
        closed = []
        session.on(SessionEventType.CLOSED, closed.append)

        await session.close()
        await session.close()

        assert len(closed) == 1
        assert driver.released == [session.id]

    @pytest.mark.asyncio
    async def test_failing_cleanup_gives_error_and_still_removes(self, registry, driver):
        session = await registry.create()
        ran = []

        def broken():
            raise RuntimeError("temp dir locked")

        session.on_cleanup(broken)
        session.on_cleanup(lambda: ran.append("later"))

        await session.close()

        assert session.status is SessionStatus.ERROR
        assert registry.get(session.id) is None
        assert ran == ["later"]
        assert driver.released == [session.id]

    @pytest.mark.asyncio
    async def test_release_failure_gives_error(self, registry, driver):
        session = await registry.create()
        driver.fail_close = RuntimeError("browser hung")

        await session.close()

        assert session.status is SessionStatus.ERROR
        assert session.id not in registry

    @pytest.mark.asyncio
    async def test_handlers_cleared_after_close(self, registry):
        session = await registry.create()
        session.on(SessionEventType.NAVIGATED, lambda e: None)

        await session.close()

        assert session.events.handler_count(SessionEventType.NAVIGATED) == 0

    @pytest.mark.asyncio
    async def test_close_after_mark_error_still_tears_down(self, registry, driver):
        session = await registry.create()
        ran = []
        closed = []
        session.on_cleanup(lambda: ran.append("temp dir"))
        session.on(SessionEventType.CLOSED, closed.append)

        session.mark_error("page crashed")
        await session.close()

        assert ran == ["temp dir"]
        assert driver.released == [session.id]
        assert registry.get(session.id) is None
        assert session.status is SessionStatus.ERROR
        assert session.end_time is not None
        assert len(closed) == 1
        assert closed[0].snapshot.status == "error"

        await session.close()
        assert ran == ["temp dir"]
        assert len(closed) == 1

    @pytest.mark.asyncio
    async def test_close_after_failed_restart_is_cleaned_up(self, registry, driver):
        session = await registry.create()
        driver.fail_create = RuntimeError("browser binary missing")
        with pytest.raises(SessionCreationError):
            await session.restart()

        await session.close()

        assert session.id not in registry
        assert session.status is SessionStatus.ERROR
        assert session.events.handler_count(SessionEventType.NAVIGATED) == 0
