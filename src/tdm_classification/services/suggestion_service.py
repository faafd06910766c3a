# Copyright 2024 Heinrich Krupp
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Suggestion engine for classification input.

Ranks completions for a partially typed tag: semantic completions first
(leaf suggestions from the rules, else "key:" category tokens), then
Plain-Label matches from the vocabulary when no semantic completion applies.
"""

from dataclasses import dataclass, field
from typing import Any, Iterable, List, Sequence

from ..models.tag_grammar import SEGMENT_DELIMITER, category_token
from ..models.vocabulary import PLAIN_LABEL_VOCABULARY, match_plain_labels


@dataclass(frozen=True)
class Suggestions:
    """Semantic and Plain-Label candidates for one input, kept separate."""

    semantic: List[str] = field(default_factory=list)
    plain: List[str] = field(default_factory=list)

    @property
    def visible(self) -> List[str]:
        """Semantic suggestions win whenever there are any."""
        return self.semantic if self.semantic else self.plain


def category_tokens(rules: Iterable[Any]) -> List[str]:
    """One "key:" token per rule, deduplicated, in rule order."""
    tokens: List[str] = []
    for rule in rules:
        token = category_token(rule.key)
        if token not in tokens:
            tokens.append(token)
    return tokens


def suggest(partial_text: str, rules: Sequence[Any], already_chosen: Iterable[str] = ()) -> List[str]:
    """
    Semantic completions for a partial input.

    Args:
        partial_text: Current input buffer
        rules: Semantic rules of the current business line
        already_chosen: Tags already in the classification set

    Returns:
        Category tokens for blank input; otherwise the leaf suggestions that
        start with the input (case-insensitive, excluding chosen tags), or the
        matching category tokens when no leaf matches
    """
    text = partial_text.strip()
    if not text:
        return category_tokens(rules)

    needle = text.lower()
    chosen = set(already_chosen)

    leaves: List[str] = []
    for rule in rules:
        for suggestion in rule.suggestions:
            if suggestion in leaves or suggestion in chosen:
                continue
            if suggestion.lower().startswith(needle):
                leaves.append(suggestion)
    if leaves:
        return leaves

    return [token for token in category_tokens(rules) if token.lower().startswith(needle)]


def plain_label_suggestions(
    partial_text: str,
    already_chosen: Iterable[str] = (),
    vocabulary: Sequence[str] = PLAIN_LABEL_VOCABULARY,
) -> List[str]:
    """Vocabulary matches, only offered while the input has no ":"."""
    if SEGMENT_DELIMITER in partial_text:
        return []
    return match_plain_labels(partial_text, already_chosen, vocabulary)


def build_suggestions(
    partial_text: str,
    rules: Sequence[Any],
    already_chosen: Iterable[str] = (),
    vocabulary: Sequence[str] = PLAIN_LABEL_VOCABULARY,
) -> Suggestions:
    chosen = list(already_chosen)
    return Suggestions(
        semantic=suggest(partial_text, rules, chosen),
        plain=plain_label_suggestions(partial_text, chosen, vocabulary),
    )
