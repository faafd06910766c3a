"""
Classification Set

The ordered, duplicate-free tag collection attached to one entity (for
instance a test-data record). Tags are never edited in place: every
operation returns a new set.

Two singularity paths exist and are kept apart on purpose:

* ``add`` (one tag typed or picked by the user) uses ``singular_key_of``,
  including the two-segment "schedule" key, and a prefix-or-equal match
  against rule keys.
* ``merge_recipes`` (bulk merge) uses the first segment only and an exact
  match against the configured singular keys.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, Mapping, Optional, Sequence, Tuple

from .tag_grammar import (
    drop_key_prefix,
    is_singular,
    is_singular_exact,
    merge_key_of,
    normalize_tag,
    schedule_to_tags,
    singular_key_of,
    tags_to_schedule,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClassificationSet:
    tags: Tuple[str, ...] = ()

    def __post_init__(self):
        unique = []
        for tag in self.tags:
            if tag not in unique:
                unique.append(tag)
        object.__setattr__(self, "tags", tuple(unique))

    @classmethod
    def from_entity(
        cls,
        classifications: Iterable[str],
        reconditioning_schedule: Optional[Mapping[str, Any]] = None,
    ) -> "ClassificationSet":
        """Seed a set from an entity's classifications and its reconditioning schedule."""
        return cls(tuple(classifications) + tuple(schedule_to_tags(reconditioning_schedule)))

    def __iter__(self) -> Iterator[str]:
        return iter(self.tags)

    def __len__(self) -> int:
        return len(self.tags)

    def __contains__(self, tag: object) -> bool:
        return tag in self.tags

    @property
    def last(self) -> Optional[str]:
        return self.tags[-1] if self.tags else None

    @property
    def schedule(self) -> Dict[str, int]:
        """Reconditioning schedule carried by the "schedule:<dimension>:<n>" tags."""
        return tags_to_schedule(self.tags)

    def to_list(self):
        return list(self.tags)

    def add(self, raw_text: str, rules: Sequence[Any]) -> "ClassificationSet":
        """
        Commit one tag, replacing any tag that holds the same singular key.

        Args:
            raw_text: Text typed, or suggestion picked, by the user
            rules: Semantic rules of the current business line

        Returns:
            The updated set; the same set when the text is blank or already present
        """
        trimmed = raw_text.strip()
        if not trimmed or trimmed in self.tags:
            return self

        tag = normalize_tag(trimmed, rules)
        tags = list(self.tags)

        if is_singular(tag, (rule.key for rule in rules)):
            key = singular_key_of(tag)
            tags = drop_key_prefix(tags, key)
            logger.debug(f"Singular key '{key}': replacing {len(self.tags) - len(tags)} tag(s)")

        if tag in tags:
            return ClassificationSet(tuple(tags))
        return ClassificationSet(tuple(tags) + (tag,))

    def remove(self, tag: str) -> "ClassificationSet":
        """Exact-string removal; other tags are left alone."""
        if tag not in self.tags:
            return self
        return ClassificationSet(tuple(t for t in self.tags if t != tag))

    def remove_last(self) -> "ClassificationSet":
        if not self.tags:
            return self
        return ClassificationSet(self.tags[:-1])

    def edit(self, tag: str) -> Tuple["ClassificationSet", str]:
        """Remove a tag and hand its text back for re-submission through ``add``."""
        return self.remove(tag), tag

    def replace_tag(self, old: str, new: str, rules: Sequence[Any]) -> "ClassificationSet":
        """Swap one tag for another, validating the new one through ``add``."""
        if not new.strip():
            return self
        return self.remove(old).add(new, rules)

    def merge_recipes(self, recipes: Iterable[Any], singular_keys: Iterable[str]) -> "ClassificationSet":
        """
        Merge the preset tags of one or more recipes, in order.

        Singular keys replace any existing tag with the same "key:" prefix;
        other tags are appended unless already present, so merging the same
        recipe twice leaves the set unchanged.
        """
        singular = set(singular_keys)
        merged = list(self.tags)
        for recipe in recipes:
            for tag in recipe.tags:
                key = merge_key_of(tag)
                if is_singular_exact(key, singular):
                    merged = drop_key_prefix(merged, key)
                if tag not in merged:
                    merged.append(tag)
        return ClassificationSet(tuple(merged))
