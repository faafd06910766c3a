"""
Tag Grammar for Semantic Classifications

Interprets free text either as a Plain Label or as a structured Semantic Tag
made of ":"-delimited segments, and matches text against the validation
patterns configured on semantic rules.

Grammar: "label" | "key:value" | "key:value:value2"

There is no escaping for ":" inside a value segment.

Usage:
    from tdm_classification.models.tag_grammar import try_parse, singular_key_of

    # Validate against configured rules
    result = try_parse("Account:Primary", rules)  # ParseResult(tag="account:primary", parsed={})

    # Singular key used when adding a tag to a classification set
    singular_key_of("schedule:month:3")  # "schedule:month"
"""

import logging
import re
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Dict, Final, Iterable, List, Mapping, Optional, Pattern, Tuple

logger = logging.getLogger(__name__)

SEGMENT_DELIMITER: Final[str] = ":"

# Rule family whose singular key spans two segments (schedule:month, schedule:days, schedule:year)
SCHEDULE_KEY: Final[str] = "schedule"
SCHEDULE_DIMENSIONS: Final[Tuple[str, ...]] = ("month", "days", "year")


@dataclass(frozen=True)
class ParseResult:
    """Outcome of a successful semantic parse."""

    tag: str
    parsed: Dict[str, Any] = field(default_factory=dict)


def split_segments(tag: str) -> List[str]:
    """Split a tag into its ":"-delimited segments."""
    return tag.split(SEGMENT_DELIMITER)


def is_semantic_tag(tag: str) -> bool:
    """A tag is semantic as soon as it carries a ":" delimiter."""
    return SEGMENT_DELIMITER in tag


def parse_tag(tag: str) -> Tuple[Optional[str], List[str]]:
    """
    Parse a tag into its key and value segments.

    Args:
        tag: The tag string to parse

    Returns:
        Tuple of (key, values) for semantic tags, or (None, [tag]) for plain labels

    Examples:
        >>> parse_tag("account:primary")
        ('account', ['primary'])
        >>> parse_tag("transactions:pending:3")
        ('transactions', ['pending', '3'])
        >>> parse_tag("Active account")
        (None, ['Active account'])
    """
    if not is_semantic_tag(tag):
        return (None, [tag])
    segments = split_segments(tag)
    return (segments[0], segments[1:])


def category_token(key: str) -> str:
    """Return the "key:" token offered as a category completion."""
    return f"{key}{SEGMENT_DELIMITER}"


def is_category_token(text: str) -> bool:
    """True for "key:" tokens that still need a value typed after them."""
    return is_semantic_tag(text) and text.endswith(SEGMENT_DELIMITER)


@lru_cache(maxsize=512)
def compile_pattern(pattern: str) -> Optional[Pattern[str]]:
    """
    Compile a rule's validation pattern case-insensitively.

    Returns None for patterns that do not compile; such a rule never matches.
    """
    try:
        return re.compile(pattern, re.IGNORECASE)
    except re.error as e:
        logger.debug(f"Ignoring invalid validation pattern {pattern!r}: {e}")
        return None


def matches_rule(text: str, rule: Any) -> bool:
    """Check text against one rule's validation pattern."""
    compiled = compile_pattern(rule.validation_pattern)
    if compiled is None:
        return False
    return compiled.search(text) is not None


def try_parse(raw_text: str, rules: Iterable[Any]) -> Optional[ParseResult]:
    """
    Try to interpret text as a Semantic Tag accepted by one of the rules.

    Args:
        raw_text: Text typed or selected by the user
        rules: Semantic rules exposing a ``validation_pattern``

    Returns:
        ParseResult with the lowercased trimmed text, or None when no rule
        matches (callers then treat the text as a Plain Label)

    Examples:
        >>> try_parse("  Account:PRIMARY ", rules).tag
        'account:primary'
        >>> try_parse("Active account", rules) is None
        True
    """
    trimmed = raw_text.strip()
    for rule in rules:
        if matches_rule(trimmed, rule):
            # Capture groups are not extracted, parsed stays empty
            return ParseResult(tag=trimmed.lower())
    return None


def normalize_tag(raw_text: str, rules: Iterable[Any]) -> str:
    """Parsed tag when a rule accepts the text, else the lowercased Plain Label."""
    result = try_parse(raw_text, rules)
    if result is not None:
        return result.tag
    return raw_text.strip().lower()


# =============================================================================
# Singular keys
# =============================================================================

def singular_key_of(tag: str) -> str:
    """
    Derive the singular key used when adding a single tag.

    "schedule" tags with three or more segments use their first two segments
    so that month, days and year coexist; every other tag uses its first segment.

    Examples:
        >>> singular_key_of("schedule:month:3")
        'schedule:month'
        >>> singular_key_of("customer-type:vip")
        'customer-type'
    """
    segments = split_segments(tag)
    if len(segments) >= 3 and segments[0] == SCHEDULE_KEY:
        return SEGMENT_DELIMITER.join(segments[:2])
    return segments[0]


def merge_key_of(tag: str) -> str:
    """Key used by recipe merges: the first segment only, no schedule special case."""
    return split_segments(tag)[0]


def is_singular(tag: str, rule_keys: Iterable[str]) -> bool:
    """
    Singularity test of the add path.

    True when the tag is semantic and its singular key equals, or starts with,
    the key of a configured rule.
    """
    if not is_semantic_tag(tag):
        return False
    key = singular_key_of(tag)
    return any(key == rule_key or key.startswith(rule_key) for rule_key in rule_keys)


def is_singular_exact(key: str, singular_keys: Iterable[str]) -> bool:
    """Singularity test of the recipe-merge path: exact key membership."""
    return key in set(singular_keys)


def drop_key_prefix(tags: Iterable[str], key: str) -> List[str]:
    """Remove every tag starting with "key:"."""
    prefix = category_token(key)
    return [t for t in tags if not t.startswith(prefix)]


# =============================================================================
# Pattern tester and schedule conversion
# =============================================================================

def check_pattern(pattern: str, sample: str) -> Optional[bool]:
    """
    Regex tester used while editing a rule.

    Returns None when either side is blank or the pattern does not compile.
    Unlike tag parsing, the tester is case-sensitive.
    """
    if not pattern or not sample:
        return None
    try:
        return re.search(pattern, sample) is not None
    except re.error:
        return None


def schedule_to_tags(schedule: Optional[Mapping[str, Any]]) -> List[str]:
    """
    Express a reconditioning schedule as "schedule:<dimension>:<value>" tags.

    Examples:
        >>> schedule_to_tags({"month": 3, "days": 10})
        ['schedule:month:3', 'schedule:days:10']
    """
    if not schedule:
        return []
    tags = []
    for dimension in SCHEDULE_DIMENSIONS:
        value = schedule.get(dimension)
        if value is not None:
            tags.append(f"{SCHEDULE_KEY}:{dimension}:{value}")
    return tags


def tags_to_schedule(tags: Iterable[str]) -> Dict[str, int]:
    """
    Collect "schedule:<dimension>:<n>" tags back into a schedule mapping.

    Tags with an unknown dimension or a non-numeric value are ignored.
    """
    schedule: Dict[str, int] = {}
    for tag in tags:
        segments = split_segments(tag)
        if len(segments) != 3 or segments[0] != SCHEDULE_KEY:
            continue
        dimension, value = segments[1], segments[2]
        if dimension in SCHEDULE_DIMENSIONS and value.isdigit():
            schedule[dimension] = int(value)
    return schedule
