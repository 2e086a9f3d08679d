"""User-agent sniffing for activity logs, sessions and campaign events."""

from __future__ import annotations

from typing import Optional

_TABLET_MARKERS = ("ipad", "tablet", "kindle", "silk")
_MOBILE_MARKERS = ("mobi", "iphone", "ipod", "android", "blackberry", "opera mini", "windows phone")

_BROWSERS = (
    ("edg/", "Edge"),
    ("opr/", "Opera"),
    ("chrome/", "Chrome"),
    ("firefox/", "Firefox"),
    ("safari/", "Safari"),
)
_SYSTEMS = (
    ("windows", "Windows"),
    ("iphone", "iOS"),
    ("ipad", "iOS"),
    ("android", "Android"),
    ("mac os", "macOS"),
    ("linux", "Linux"),
)


def device_class(user_agent: Optional[str]) -> str:
    """``mobile``, ``tablet`` or ``desktop``; unknown agents count as desktop."""
    ua = (user_agent or "").lower()
    if any(m in ua for m in _TABLET_MARKERS) or ("android" in ua and "mobile" not in ua):
        return "tablet"
    if any(m in ua for m in _MOBILE_MARKERS):
        return "mobile"
    return "desktop"


def describe_device(user_agent: Optional[str]) -> str:
    """``Chrome · Windows`` style label."""
    ua = (user_agent or "").lower()
    if not ua:
        return "Unknown device"
    browser = next((name for marker, name in _BROWSERS if marker in ua), "Browser")
    system = next((name for marker, name in _SYSTEMS if marker in ua), "Unknown OS")
    return f"{browser} · {system}"
