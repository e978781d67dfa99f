"""Tag comparison using semantic version rules."""

from enum import Enum
import logging

from packaging import version


logger = logging.getLogger(__name__)


class Ordering(Enum):
    LESS = -1
    EQUAL = 0
    GREATER = 1


def parse_tag(tag: str) -> version.Version | None:
    """Parse a tag such as ``v1.2.3`` or ``1.2.3``; None if it is not a version."""
    text = tag.strip()
    if text[:1] in ("v", "V"):
        text = text[1:]
    try:
        return version.Version(text)
    except version.InvalidVersion:
        return None


def compare_tags(tag_a: str, tag_b: str) -> Ordering | None:
    """Compare two tags.

    Returns None when either tag cannot be parsed. Callers must treat that
    as "keep" rather than dropping the release.
    """
    a = parse_tag(tag_a)
    b = parse_tag(tag_b)
    if a is None or b is None:
        logger.debug("Cannot compare tags %r and %r", tag_a, tag_b)
        return None

    if a < b:
        return Ordering.LESS
    if a > b:
        return Ordering.GREATER
    return Ordering.EQUAL


def max_tag(tags) -> str | None:
    """Greatest parseable tag, ignoring tags that are not versions."""
    best = None
    best_version = None
    for tag in tags:
        parsed = parse_tag(tag)
        if parsed is None:
            continue
        if best_version is None or parsed > best_version:
            best, best_version = tag, parsed
    return best


def newer_than(tag: str, ceiling: str | None) -> bool:
    """True if ``tag`` should be synced given the mirror's highest tag.

    Inconclusive comparisons count as newer.
    """
    if ceiling is None:
        return True
    ordering = compare_tags(tag, ceiling)
    return ordering is None or ordering is Ordering.GREATER
