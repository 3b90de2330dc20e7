"""
URL slug and state-code derivation for occupation and metro titles
"""

import re
from typing import Optional

MAX_SLUG_LENGTH = 200

_DISALLOWED = re.compile(r"[^a-z0-9\s-]")
_WHITESPACE = re.compile(r"\s+")
_HYPHENS = re.compile(r"-+")
_STATE_SUFFIX = re.compile(r",\s*([A-Z]{2})(?:-[A-Z]{2})*$")


def generate_slug(title: str) -> str:
    """
    Map a free-text title to a URL-safe slug.

    >>> generate_slug("Software Developers, Applications")
    'software-developers-applications'
    """
    slug = title.lower()
    slug = _DISALLOWED.sub("", slug)
    slug = _WHITESPACE.sub("-", slug)
    slug = _HYPHENS.sub("-", slug)
    slug = slug.strip("-")
    return slug[:MAX_SLUG_LENGTH]


def extract_state_abbr(area_title: str) -> Optional[str]:
    """
    First state code of a trailing ", ST-ST" suffix, or None.

    >>> extract_state_abbr("New York-Newark-Jersey City, NY-NJ-PA")
    'NY'
    """
    match = _STATE_SUFFIX.search(area_title)
    return match.group(1) if match else None
