"""
PagePulse — user-agent heuristics.

Shared by the page-side Session Tracker and the server-side ingest route:
bot filtering, device classification and browser naming.
"""

from __future__ import annotations

import re
from enum import Enum

_BOT_RE = re.compile(r"bot|crawl|spider|headless", re.IGNORECASE)


class DeviceClass(str, Enum):
    TABLET = "Tablet"
    MOBILE = "Mobile"
    DESKTOP = "Desktop"
    UNKNOWN = "Unknown"


# Evaluated top to bottom, first match wins. Tablet must stay ahead of Mobile:
# Android tablets report "android" without "mobile" and would otherwise match
# the generic "android" phone rule.
DEVICE_RULES: tuple[tuple[re.Pattern[str], DeviceClass], ...] = (
    (
        re.compile(r"ipad|tablet|android(?!.*mobile)|kindle|playbook|silk|windows ce|hpwos", re.IGNORECASE),
        DeviceClass.TABLET,
    ),
    (
        re.compile(
            r"mobi|iphone|android|blackberry|opera mini|windows phone|iemobile|fennec|minimo"
            r"|symbian|smartphone|palm|up\.browser|up\.link|wap|midp|mobile",
            re.IGNORECASE,
        ),
        DeviceClass.MOBILE,
    ),
    (
        re.compile(r"windows|macintosh|linux|x11", re.IGNORECASE),
        DeviceClass.DESKTOP,
    ),
)

# Same first-match-wins contract; Chrome UAs also mention Safari.
BROWSER_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"edg", re.IGNORECASE), "Edge"),
    (re.compile(r"chrome|crios", re.IGNORECASE), "Chrome"),
    (re.compile(r"firefox", re.IGNORECASE), "Firefox"),
    (re.compile(r"safari", re.IGNORECASE), "Safari"),
)


def is_bot(user_agent: str | None) -> bool:
    """Return True if the User-Agent looks like an automated client."""
    if not user_agent:
        return False
    return _BOT_RE.search(user_agent) is not None


def classify_device(user_agent: str | None) -> DeviceClass:
    """Map a User-Agent string to Tablet, Mobile, Desktop or Unknown."""
    if not user_agent:
        return DeviceClass.UNKNOWN
    for pattern, device in DEVICE_RULES:
        if pattern.search(user_agent):
            return device
    return DeviceClass.UNKNOWN


def is_handheld(user_agent: str | None) -> bool:
    return classify_device(user_agent) in (DeviceClass.TABLET, DeviceClass.MOBILE)


def browser_name(user_agent: str | None) -> str:
    if not user_agent:
        return "Unknown"
    for pattern, name in BROWSER_RULES:
        if pattern.search(user_agent):
            return name
    return "Unknown"
