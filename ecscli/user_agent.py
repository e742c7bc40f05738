"""User-Agent header customisation for outgoing AWS requests."""

import sys

USER_AGENT_HEADER = "User-Agent"
HANDLER_NAME = "ECSCLIUserAgentHandler"

_PLATFORM_NAMES = {"win32": "windows", "cygwin": "windows"}


def _os_name():
    platform = sys.platform
    if platform.startswith("linux"):
        return "linux"
    if platform.startswith("freebsd"):
        return "freebsd"
    return _PLATFORM_NAMES.get(platform, platform)


def build_user_agent(app_name, version, current_agent):
    """Return the user agent that prefixes the current one with the application."""
    return f"{app_name}/{version} ({_os_name()}) {current_agent}"


def apply_user_agent(headers, app_name, version):
    """Set the User-Agent header in a mutable header mapping; return the new value.

    The existing header is found regardless of the case of its name.
    """
    existing_key = next(
        (key for key in headers if key.lower() == USER_AGENT_HEADER.lower()), None
    )
    current = headers.pop(existing_key) if existing_key is not None else ""
    agent = build_user_agent(app_name, version, current)
    headers[USER_AGENT_HEADER] = agent
    return agent