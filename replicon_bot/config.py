"""
Configuration for the Replicon timesheet automation tool.

This module centralizes configuration values including URLs,
timeouts, browser options and the special account codes.
"""

from dataclasses import dataclass, field
from typing import Optional, Dict, FrozenSet, List


@dataclass(frozen=True)
class SpecialAccounts:
    """
    Account codes that mark a day as not worked.

    Buckets are evaluated in a fixed order: vacation, weekend, then
    no-work. A day only counts as no-work (holiday) when both its account
    and its project code are in the no-work set.
    """
    vacation: FrozenSet[str] = frozenset({'H', 'F'})
    weekend: FrozenSet[str] = frozenset({'FDS', 'ND'})
    no_work: FrozenSet[str] = frozenset({'BH', 'ND'})


SPECIAL_ACCOUNTS = SpecialAccounts()

EXTRAS_PREFIX = 'EXT/'

# Applied to every regular work day, in order
DEFAULT_TIME_SLOTS: List[Dict[str, str]] = [
    {'id': '1', 'start_time': '7:00am', 'end_time': '1:00pm'},
    {'id': '2', 'start_time': '2:00pm', 'end_time': '4:00pm'},
]


@dataclass
class Config:
    """
    Application configuration.

    Attributes:
        login_url: SSO login page in front of Replicon
        timeout: Default timeout for element operations (milliseconds)
        page_timeout: Timeout for page loads and page switches (milliseconds)
        mfa_timeout: How long to wait for an optional MFA prompt (milliseconds)
        auth_timeout: How long to wait for the authenticated dashboard (milliseconds)
        headless: Whether to run browser in headless mode
        slow_mo: Delay added to each browser operation (milliseconds)
        locale: Browser locale
        viewport: Browser viewport size
        preload_browser: Whether to keep a pre-launched browser ready
        checkpoint_dir: Directory for checkpoint files (in-memory if None)
        max_retries: Attempts for transient failures
        circuit_threshold: Consecutive failures before runs fail fast
        circuit_reset_seconds: Cooldown before a failing circuit is retried
        verbose: Whether to enable verbose logging
    """
    login_url: str = "https://login.okta.com"
    timeout: int = 30000            # 30 seconds
    page_timeout: int = 30000       # 30 seconds
    mfa_timeout: int = 5000         # 5 seconds
    auth_timeout: int = 60000       # 60 seconds

    # Browser options
    headless: bool = True
    slow_mo: int = 50
    locale: str = 'es-CO'
    viewport: Dict[str, int] = field(
        default_factory=lambda: {'width': 1920, 'height': 1080}
    )
    preload_browser: bool = True

    # Recovery options
    checkpoint_dir: Optional[str] = None
    max_retries: int = 3
    circuit_threshold: int = 5
    circuit_reset_seconds: float = 30.0

    verbose: bool = False

    def validate(self):
        """
        Validate configuration.

        Raises:
            ValueError: If configuration is invalid
        """
        if not self.login_url or not self.login_url.startswith(('http://', 'https://')):
            raise ValueError(f"Login URL must be an http(s) URL, got: {self.login_url!r}")

        for name in ('timeout', 'page_timeout', 'mfa_timeout', 'auth_timeout'):
            value = getattr(self, name)
            if value <= 0:
                raise ValueError(f"{name} must be positive, got: {value}")

        if self.slow_mo < 0:
            raise ValueError(f"slow_mo cannot be negative, got: {self.slow_mo}")

        if not (1 <= self.max_retries <= 10):
            raise ValueError(f"max_retries must be between 1 and 10, got: {self.max_retries}")

        if self.circuit_threshold < 1:
            raise ValueError(
                f"circuit_threshold must be at least 1, got: {self.circuit_threshold}"
            )
