"""Workspace slug helpers."""

import re
import time

from data.store import slug_exists

SLUG_MAX_LENGTH = 50
MAX_SUFFIX = 10

_NON_ALNUM = re.compile(r'[^a-z0-9]+')


def slugify_name(name: str) -> str:
    slug = _NON_ALNUM.sub('-', (name or '').strip().lower()).strip('-')
    return slug[:SLUG_MAX_LENGTH]


def generate_unique_slug(session, base: str) -> str:
    """``base``, then ``base-1`` .. ``base-10``, then a millisecond timestamp suffix."""
    if not slug_exists(session, base):
        return base
    for suffix in range(1, MAX_SUFFIX + 1):
        candidate = f'{base}-{suffix}'
        if not slug_exists(session, candidate):
            return candidate
    return f'{base}-{int(time.time() * 1000)}'
