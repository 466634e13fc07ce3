"""Shared fixtures and browser fakes."""

import asyncio

import pytest

from replicon_bot.models import AccountMapping, TimeSlot


@pytest.fixture
def mappings():
    return {
        'PROD': AccountMapping(name='Production', projects={'PI': 'Project Alpha'}),
        'AV': AccountMapping(name='Availability', projects={'MS': 'Maintenance'}),
    }


@pytest.fixture
def time_slots():
    return [
        TimeSlot(id='1', start_time='7:00am', end_time='1:00pm'),
        TimeSlot(id='2', start_time='2:00pm', end_time='4:00pm'),
    ]


@pytest.fixture
def clock_slots():
    """Slots in the HH:MM form accepted by validation."""
    return [
        TimeSlot(id='1', start_time='07:00', end_time='13:00'),
        TimeSlot(id='2', start_time='14:00', end_time='16:00'),
    ]


class FakeBrowser:
    """Stands in for a Playwright Browser."""

    def __init__(self, name='browser'):
        self.name = name
        self.closed = False

    async def close(self):
        self.closed = True


class FakeLauncher:
    """Launcher that hands out FakeBrowser objects."""

    def __init__(self, fail=False, delay=0.0):
        self.fail = fail
        self.delay = delay
        self.launched = []
        self.stopped = False

    async def launch(self):
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise RuntimeError("Executable doesn't exist")
        browser = FakeBrowser(f"browser-{len(self.launched) + 1}")
        self.launched.append(browser)
        return browser

    async def stop(self):
        self.stopped = True


class FakeSessions:
    """Session manager recording acquire/release calls."""

    def __init__(self):
        self.acquired = []
        self.released = []

    async def acquire(self):
        browser = FakeBrowser(f"browser-{len(self.acquired) + 1}")
        self.acquired.append(browser)
        return browser

    async def release(self, browser):
        self.released.append(browser)
        await browser.close()


class FakeClient:
    """
    Records the calls a run makes against the browser.

    ``marked_days`` are reported as vacation/holiday by the page,
    ``fail_on`` maps a method name to the exception it raises, and
    ``on_day`` is called with each opened day number.
    """

    def __init__(self, config=None, browser=None, marked_days=(), fail_on=None, on_day=None):
        self.config = config
        self.browser = browser
        self.marked_days = set(marked_days)
        self.fail_on = fail_on or {}
        self.on_day = on_day
        self.calls = []
        self.opened_days = []
        self.entries = []
        self.close_count = 0

    def _check(self, name):
        self.calls.append(name)
        error = self.fail_on.get(name)
        if error is not None:
            raise error

    async def open(self):
        self._check('open')

    async def login(self, credentials):
        self._check('login')

    async def select_month(self):
        self._check('select_month')

    async def is_vacation_or_holiday(self, day_number):
        self._check('is_vacation_or_holiday')
        return day_number in self.marked_days

    async def open_day(self, day_number):
        self._check('open_day')
        self.opened_days.append(day_number)
        if self.on_day is not None:
            self.on_day(day_number)

    async def add_time_entry(self, entry):
        self._check('add_time_entry')
        self.entries.append(entry)

    async def close(self):
        self.close_count += 1


class ClientFactory:
    """client_factory that keeps the clients it builds."""

    def __init__(self, **client_kwargs):
        self.client_kwargs = client_kwargs
        self.clients = []

    def __call__(self, config, browser):
        client = FakeClient(config, browser, **self.client_kwargs)
        self.clients.append(client)
        return client

    @property
    def client(self):
        return self.clients[-1]
