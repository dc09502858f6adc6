"""
Slug and YouTube URL helpers.
"""

import re
from typing import Optional


YOUTUBE_PATTERNS = [
    # https://www.youtube.com/watch?v=VIDEO_ID
    re.compile(r"^(?:https?://)?(?:www\.)?youtube\.com/watch\?(?:.*&)?v=([a-zA-Z0-9_-]{11})(?:&.*)?$"),
    # https://youtu.be/VIDEO_ID
    re.compile(r"^(?:https?://)?(?:www\.)?youtu\.be/([a-zA-Z0-9_-]{11})(?:\?.*)?$"),
    # https://www.youtube.com/embed/VIDEO_ID
    re.compile(r"^(?:https?://)?(?:www\.)?youtube\.com/embed/([a-zA-Z0-9_-]{11})(?:\?.*)?$"),
    # https://m.youtube.com/watch?v=VIDEO_ID
    re.compile(r"^(?:https?://)?m\.youtube\.com/watch\?(?:.*&)?v=([a-zA-Z0-9_-]{11})(?:&.*)?$"),
]


def slugify(value: str) -> str:
    """
    Lowercase ``value`` and join its alphanumeric runs with hyphens.

    >>> slugify("  Intro to Python 3! ")
    'intro-to-python-3'
    """
    slug = re.sub(r"[^a-z0-9]+", "-", value.lower())
    return slug.strip("-") or "course"


def extract_youtube_id(url: Optional[str]) -> Optional[str]:
    """Return the 11 character video id of a YouTube URL, or None."""
    if not url:
        return None

    url = url.strip()
    for pattern in YOUTUBE_PATTERNS:
        match = pattern.match(url)
        if match:
            return match.group(1)
    return None
