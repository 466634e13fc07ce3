"""Tests for RepliconClient using mocked Playwright objects."""

import asyncio
from contextlib import asynccontextmanager
from unittest.mock import AsyncMock, MagicMock

import pytest
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from replicon_bot.config import Config
from replicon_bot.models import Credentials, TimeEntry
from replicon_bot.playwright_client import RepliconClient
from replicon_bot.selectors import RepliconSelectors


class FakeEventInfo:
    def __init__(self, page):
        self._page = page

    @property
    def value(self):
        async def resolve():
            return self._page
        return resolve()


def make_page():
    page = MagicMock()
    for name in ('goto', 'fill', 'click', 'wait_for_selector', 'wait_for_timeout',
                 'wait_for_load_state', 'close'):
        setattr(page, name, AsyncMock())
    return page


def make_client(config=None):
    """Client wired to a mocked browser, context and page."""
    page = make_page()
    replicon_page = make_page()

    context = MagicMock()
    context.new_page = AsyncMock(return_value=page)
    context.close = AsyncMock()

    @asynccontextmanager
    async def expect_page(timeout=None):
        yield FakeEventInfo(replicon_page)

    context.expect_page = expect_page

    browser = MagicMock()
    browser.new_context = AsyncMock(return_value=context)

    client = RepliconClient(config or Config(), browser)
    asyncio.run(client.open())
    return client, browser, context, page, replicon_page


class TestOpenClose:
    """Tests for context lifecycle."""

    def test_open_uses_config(self):
        config = Config(locale='es-CO', timeout=1234)
        client, browser, context, page, _ = make_client(config)

        browser.new_context.assert_awaited_once_with(
            viewport={'width': 1920, 'height': 1080},
            locale='es-CO',
        )
        context.set_default_timeout.assert_called_once_with(1234)
        assert client.page is page

    def test_close_ignores_errors(self):
        client, _, context, page, _ = make_client()
        page.close.side_effect = RuntimeError("Target closed")

        asyncio.run(client.close())

        context.close.assert_awaited_once()
        assert client.page is None
        assert client.context is None

    def test_methods_need_open_page(self):
        client = RepliconClient(Config(), MagicMock())

        with pytest.raises(RuntimeError):
            asyncio.run(client.open_day(1))


class TestLogin:
    """Tests for the SSO login flow."""

    def test_login_without_mfa(self):
        client, _, _, page, replicon_page = make_client()

        async def wait_for_selector(selector, **kwargs):
            if selector == RepliconSelectors.MFA_PUSH_BUTTON:
                raise PlaywrightTimeoutError("Timeout 5000ms exceeded")
            return MagicMock()

        page.wait_for_selector.side_effect = wait_for_selector

        asyncio.run(client.login(Credentials("me@example.com", "secret")))

        page.goto.assert_awaited_once()
        page.fill.assert_any_await(RepliconSelectors.EMAIL_INPUT, "me@example.com")
        page.fill.assert_any_await(RepliconSelectors.PASSWORD_INPUT, "secret")
        page.click.assert_any_await(RepliconSelectors.REPLICON_TILE)
        assert client.page is replicon_page
        page.close.assert_awaited_once()

    def test_login_clicks_mfa_push(self):
        client, _, _, page, _ = make_client()
        mfa_button = MagicMock()
        mfa_button.click = AsyncMock()

        async def wait_for_selector(selector, **kwargs):
            if selector == RepliconSelectors.MFA_PUSH_BUTTON:
                assert kwargs['timeout'] == 5000
                return mfa_button
            return MagicMock()

        page.wait_for_selector.side_effect = wait_for_selector

        asyncio.run(client.login(Credentials("me@example.com", "secret")))

        mfa_button.click.assert_awaited_once()

    def test_login_fails_without_tile(self):
        client, _, _, page, _ = make_client()

        async def wait_for_selector(selector, **kwargs):
            if selector in (RepliconSelectors.MFA_PUSH_BUTTON, RepliconSelectors.REPLICON_TILE):
                raise PlaywrightTimeoutError("Timeout exceeded")
            return MagicMock()

        page.wait_for_selector.side_effect = wait_for_selector

        with pytest.raises(PlaywrightTimeoutError):
            asyncio.run(client.login(Credentials("me@example.com", "wrong")))


class TestEntries:
    """Tests for day and entry handling."""

    def test_open_day_clicks_offset_child(self):
        client, _, _, page, _ = make_client()

        asyncio.run(client.open_day(5))

        page.click.assert_awaited_once_with(RepliconSelectors.get_day_selector(5))
        assert "nth-child(6)" in page.click.await_args.args[0]

    def test_add_time_entry_sequence(self):
        client, _, _, page, _ = make_client()
        entry = TimeEntry("7:00am", "1:00pm", "Production", "Project Alpha")

        asyncio.run(client.add_time_entry(entry))

        fills = [call.args for call in page.fill.await_args_list]
        clicks = [call.args[0] for call in page.click.await_args_list]
        assert fills == [
            (RepliconSelectors.TIME_INPUT, "7:00am"),
            (RepliconSelectors.TIME_INPUT, "1:00pm"),
        ]
        assert clicks == [
            RepliconSelectors.PROJECT_DROPDOWN,
            RepliconSelectors.get_option_selector("Production"),
            RepliconSelectors.get_option_selector("Project Alpha"),
            RepliconSelectors.OK_BUTTON,
            RepliconSelectors.PUNCH_OUT,
            RepliconSelectors.OK_BUTTON,
        ]

    def test_vacation_or_holiday(self):
        client, _, _, page, _ = make_client()
        counts = {
            RepliconSelectors.get_vacation_marker_selector(2): 1,
            RepliconSelectors.get_holiday_marker_selector(3): 1,
        }

        def locator(selector):
            result = MagicMock()
            result.count = AsyncMock(return_value=counts.get(selector, 0))
            return result

        page.locator.side_effect = locator

        assert asyncio.run(client.is_vacation_or_holiday(1)) is False
        assert asyncio.run(client.is_vacation_or_holiday(2)) is True
        assert asyncio.run(client.is_vacation_or_holiday(3)) is True
