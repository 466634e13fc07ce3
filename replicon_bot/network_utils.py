"""
Pre-flight reachability check for the SSO login page.

Runs before any browser is launched so that a missing VPN or proxy shows
up as a readable message instead of a Playwright navigation timeout.
"""

import socket
import ssl
import urllib.error
import urllib.request
from typing import Optional, Tuple


USER_AGENT = 'Replicon-Bot/1.0'

# The login front door answers HEAD with these when it is up
REACHABLE_HTTP_CODES = frozenset({401, 403, 405})

# Checked in order; the first matching type wins
FAILURE_MESSAGES = [
    (socket.timeout, "Connection timeout after {timeout}s"),
    (socket.gaierror, "DNS resolution failed: {error}"),
    (ssl.SSLError, "SSL certificate error: {error}"),
    (ConnectionRefusedError, "Connection refused: {error}"),
    (OSError, "Network error: {error}"),
    (ValueError, "Invalid URL: {error}"),
]

VPN_INDICATORS = [
    'dns',
    'name resolution failed',
    'getaddrinfo failed',
    'gaierror',
    'connection refused',
    'connection timed out',
    'timeout',
    'timed out',
    'network unreachable',
    'no route to host',
    'tunnel',
    'proxy',
    'vpn',
]

VPN_HINTS = [
    "This is often caused by a VPN or proxy that is off or not authenticated.",
    "",
    "Please ensure:",
    "  1. Your VPN/proxy is connected and authenticated",
    "  2. You can open the login page in your browser",
    "  3. The URL is correct: {url}",
]

GENERAL_HINTS = [
    "Please check:",
    "  1. Your internet connection is working",
    "  2. The login service is reachable",
    "  3. The URL is correct: {url}",
]


def describe_failure(error: BaseException, timeout: float) -> str:
    """Turn a low-level connection error into a one-line message."""
    for error_type, template in FAILURE_MESSAGES:
        if isinstance(error, error_type):
            return template.format(error=error, timeout=timeout)
    return str(error)


def check_connectivity(url: str, timeout: int = 10) -> Tuple[bool, str]:
    """
    Check that the login page answers a HEAD request.

    Args:
        url: Login page URL (e.g., "https://login.okta.com")
        timeout: Timeout in seconds

    Returns:
        Tuple of (reachable, error_message); error_message is "" when reachable
    """
    try:
        request = urllib.request.Request(url, method='HEAD', headers={'User-Agent': USER_AGENT})
        with urllib.request.urlopen(request, timeout=timeout) as response:
            if 200 <= response.status < 400:
                return (True, "")
            return (False, f"HTTP {response.status}: {response.reason}")

    except urllib.error.HTTPError as e:
        if e.code in REACHABLE_HTTP_CODES:
            return (True, "")
        return (False, f"HTTP {e.code}: {e.reason}")

    except urllib.error.URLError as e:
        reason = e.reason
        if isinstance(reason, BaseException):
            return (False, describe_failure(reason, timeout))
        return (False, str(reason))

    except (OSError, ValueError) as e:
        return (False, describe_failure(e, timeout))


def is_vpn_proxy_error(error_message: str) -> bool:
    """
    Guess whether a connectivity failure points at the VPN or proxy.

    Examples:
        >>> is_vpn_proxy_error("DNS resolution failed")
        True
        >>> is_vpn_proxy_error("HTTP 500: Internal Server Error")
        False
    """
    error_lower = error_message.lower()
    return any(indicator in error_lower for indicator in VPN_INDICATORS)


def format_connectivity_error(url: str, error_message: str, is_vpn_issue: bool) -> str:
    """
    Build the multi-line message shown when the pre-flight check fails.

    Args:
        url: The login URL that failed
        error_message: Message from check_connectivity
        is_vpn_issue: Whether to show the VPN/proxy hints
    """
    hints = VPN_HINTS if is_vpn_issue else GENERAL_HINTS
    lines = [
        "NETWORK CONNECTIVITY CHECK FAILED",
        "",
        f"Could not reach the login page: {url}",
        f"Error: {error_message}",
        "",
    ]
    lines.extend(hint.format(url=url) for hint in hints)
    return "\n".join(lines)


def login_page_problem(url: str, timeout: int = 10) -> Optional[str]:
    """
    Run the pre-flight check and explain a failure.

    Returns:
        None when the login page is reachable, else the formatted message
    """
    reachable, error = check_connectivity(url, timeout=timeout)
    if reachable:
        return None
    return format_connectivity_error(url, error, is_vpn_proxy_error(error))
