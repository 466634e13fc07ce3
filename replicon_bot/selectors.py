"""
DOM selectors for the Okta login flow and the Replicon timesheet.

IMPORTANT: These selectors target the live applications.
If the DOM structure changes, this module will need to be updated.
"""


class RepliconSelectors:
    """
    Centralized selectors for login and timesheet DOM elements.

    All selectors use Playwright locator syntax.
    """

    # Okta sign-in widget
    EMAIL_INPUT = 'input[name="identifier"], input[type="email"]'
    PASSWORD_INPUT = 'input[type="password"]'
    SUBMIT_BUTTON = 'input[type="submit"], button[type="submit"]'

    # Optional MFA push prompt
    MFA_PUSH_BUTTON = '[data-se="okta_verify-push"], .authenticator-verify-list button'

    # Replicon tile on the Okta dashboard (signals a completed login)
    REPLICON_TILE = 'a[aria-label*="Replicon"], a[href*="replicon"]'

    # Replicon dashboard
    DASHBOARD_WELCOME = '.userWelcomeText, [class*="welcome"]'
    TIMESHEET_CARD = 'timesheet-card li, [class*="timesheet"] li'
    DAY_CELLS = '[class*="timeEntryCell"], [class*="dayCell"]'

    # Time entry popup
    TIME_INPUT = 'input.time, input[type="time"]'
    PROJECT_DROPDOWN = 'a.divDropdown, [class*="projectSelector"]'
    OK_BUTTON = 'input[value="OK"], button:has-text("OK")'
    CONTEXT_POPUP = '[class*="contextPopup"]'
    PUNCH_OUT = '[class*="punchOut"], [class*="combinedInput"] a:nth-child(2)'

    # The first day of the month is the second <li> of the day list
    DAY_OFFSET = 1

    @staticmethod
    def day_child(day_number: int) -> int:
        """
        Position of a calendar day in the day list.

        Args:
            day_number: 1-based day of the month

        Returns:
            1-based nth-child index

        Example:
            >>> RepliconSelectors.day_child(1)
            2
        """
        return day_number + RepliconSelectors.DAY_OFFSET

    @staticmethod
    def get_day_selector(day_number: int) -> str:
        """
        Get selector for the clickable element of a calendar day.

        Example:
            >>> RepliconSelectors.get_day_selector(1)
            'li:nth-child(2) a, li:nth-child(2) [class*="clickable"]'
        """
        child = RepliconSelectors.day_child(day_number)
        return f'li:nth-child({child}) a, li:nth-child({child}) [class*="clickable"]'

    @staticmethod
    def get_vacation_marker_selector(day_number: int) -> str:
        child = RepliconSelectors.day_child(day_number)
        return f'li:nth-child({child}) span:has-text("Vacations")'

    @staticmethod
    def get_holiday_marker_selector(day_number: int) -> str:
        child = RepliconSelectors.day_child(day_number)
        return f'li:nth-child({child}) [class*="holidayIndicator"]'

    @staticmethod
    def get_option_selector(text: str) -> str:
        """
        Get selector for a dropdown option by its visible text.

        Example:
            >>> RepliconSelectors.get_option_selector("Production")
            'a:has-text("Production")'
        """
        escaped = text.replace('"', '\\"')
        return f'a:has-text("{escaped}")'


# Selector strategies explained:
#
# 1. LOGIN:
#    - Email and password are separate steps of the Okta widget
#    - The MFA push button only appears for some accounts; its absence is normal
#    - The Replicon tile on the dashboard is the signal of a finished login
#    - Clicking the tile opens Replicon in a new page
#
# 2. DAYS:
#    - The month view is a list; day N of the month is li:nth-child(N+1)
#    - Vacation and holiday days carry markers and are skipped
#
# 3. ENTRIES:
#    - Each entry is written as a punch-in (start time, account, project)
#      followed by a punch-out (end time)
#    - The context popup must close before the next step
