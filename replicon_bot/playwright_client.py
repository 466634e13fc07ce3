"""
Playwright client for Replicon automation.

This module handles all browser interaction: SSO login, selecting the
month's timesheet and writing time entries day by day.
"""

from typing import Optional

from playwright.async_api import Browser, BrowserContext, Page, TimeoutError as PlaywrightTimeoutError

from .config import Config
from .logging_utils import get_logger, log_step, log_success
from .models import Credentials, TimeEntry
from .retry import NETWORK_RETRY_POLICY, async_call_with_retry
from .selectors import RepliconSelectors


class RepliconClient:
    """
    Browser client for the Okta login flow and the Replicon timesheet.
    """

    def __init__(self, config: Config, browser: Browser):
        """
        Initialize the client.

        Args:
            config: Application configuration
            browser: Browser obtained from the session manager
        """
        self.config = config
        self.browser = browser
        self.logger = get_logger('client')
        self.context: Optional[BrowserContext] = None
        self.page: Optional[Page] = None

    async def open(self):
        """
        Create the browser context and page.
        """
        self.context = await self.browser.new_context(
            viewport=self.config.viewport,
            locale=self.config.locale,
        )
        self.context.set_default_timeout(self.config.timeout)
        self.context.set_default_navigation_timeout(self.config.page_timeout)

        self.page = await self.context.new_page()
        self.logger.debug("Browser context opened")

    async def close(self):
        """
        Close page and context, ignoring errors.
        """
        if self.page is not None:
            try:
                await self.page.close()
            except Exception as e:
                self.logger.debug(f"Ignoring error while closing page: {e}")
        if self.context is not None:
            try:
                await self.context.close()
            except Exception as e:
                self.logger.debug(f"Ignoring error while closing context: {e}")

        self.page = None
        self.context = None
        self.logger.debug("Browser context closed")

    def _require_page(self) -> Page:
        if self.page is None:
            raise RuntimeError("Browser page is not open")
        return self.page

    async def login(self, credentials: Credentials):
        """
        Log in through the SSO widget and switch to Replicon.

        Args:
            credentials: SSO credentials

        Raises:
            Exception: If the dashboard does not appear in time
        """
        page = self._require_page()
        log_step(f"Navigating to {self.config.login_url}...", self.logger)

        def on_retry(attempt, error, delay):
            self.logger.warning(f"Navigation attempt {attempt} failed ({error}); retrying in {delay:.1f}s")

        await async_call_with_retry(
            lambda: page.goto(self.config.login_url, wait_until='domcontentloaded'),
            policy=NETWORK_RETRY_POLICY,
            on_retry=on_retry,
        )

        log_step("Submitting credentials...", self.logger)
        await page.fill(RepliconSelectors.EMAIL_INPUT, credentials.email)
        await page.click(RepliconSelectors.SUBMIT_BUTTON)

        await page.wait_for_selector(RepliconSelectors.PASSWORD_INPUT, state='visible')
        await page.fill(RepliconSelectors.PASSWORD_INPUT, credentials.password)
        await page.click(RepliconSelectors.SUBMIT_BUTTON)

        try:
            mfa_button = await page.wait_for_selector(
                RepliconSelectors.MFA_PUSH_BUTTON,
                timeout=self.config.mfa_timeout
            )
        except PlaywrightTimeoutError:
            mfa_button = None
            self.logger.debug("No MFA prompt detected")

        if mfa_button is not None:
            self.logger.info("MFA verification requested, waiting for approval...")
            await mfa_button.click()

        await page.wait_for_selector(
            RepliconSelectors.REPLICON_TILE,
            timeout=self.config.auth_timeout
        )
        log_success("Signed in", self.logger)

        log_step("Opening Replicon...", self.logger)
        async with self.context.expect_page(timeout=self.config.page_timeout) as new_page_info:
            await page.click(RepliconSelectors.REPLICON_TILE)
        new_page = await new_page_info.value
        await new_page.wait_for_load_state('networkidle')

        await page.close()
        self.page = new_page
        log_success("Connected to Replicon", self.logger)

    async def select_month(self):
        """
        Open the current month's timesheet.
        """
        page = self._require_page()
        log_step("Selecting the month's timesheet...", self.logger)

        await page.wait_for_selector(
            RepliconSelectors.DASHBOARD_WELCOME,
            timeout=self.config.page_timeout
        )
        await page.click(RepliconSelectors.TIMESHEET_CARD)
        await page.wait_for_selector(
            RepliconSelectors.DAY_CELLS,
            timeout=self.config.page_timeout
        )
        log_success("Timesheet opened", self.logger)

    async def is_vacation_or_holiday(self, day_number: int) -> bool:
        """
        Check whether Replicon marks a day as vacation or holiday.

        Args:
            day_number: 1-based day of the month

        Returns:
            True if the day carries a vacation or holiday marker
        """
        page = self._require_page()
        selectors = (
            RepliconSelectors.get_vacation_marker_selector(day_number),
            RepliconSelectors.get_holiday_marker_selector(day_number),
        )
        for selector in selectors:
            if await page.locator(selector).count() > 0:
                return True
        return False

    async def open_day(self, day_number: int):
        """
        Click a calendar day to start entering time.

        Args:
            day_number: 1-based day of the month
        """
        page = self._require_page()
        await page.click(RepliconSelectors.get_day_selector(day_number))
        await page.wait_for_timeout(500)

    async def add_time_entry(self, entry: TimeEntry):
        """
        Write one time entry: punch-in with account and project, then punch-out.

        Args:
            entry: Entry to write
        """
        page = self._require_page()

        await page.fill(RepliconSelectors.TIME_INPUT, entry.start_time)
        await page.click(RepliconSelectors.PROJECT_DROPDOWN)
        await page.click(RepliconSelectors.get_option_selector(entry.project))
        await page.click(RepliconSelectors.get_option_selector(entry.account))
        await page.click(RepliconSelectors.OK_BUTTON)
        await page.wait_for_selector(RepliconSelectors.CONTEXT_POPUP, state='hidden')

        await page.click(RepliconSelectors.PUNCH_OUT)
        await page.fill(RepliconSelectors.TIME_INPUT, entry.end_time)
        await page.click(RepliconSelectors.OK_BUTTON)
        await page.wait_for_selector(RepliconSelectors.CONTEXT_POPUP, state='hidden')

        self.logger.debug(f"Entry written: {entry.describe()}")
