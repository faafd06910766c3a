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
Classification picker state machine.

Keystrokes and clicks of the classification input are modelled as commands
dispatched against an immutable PickerState:

    TypeText(text)        input buffer changed
    Navigate(delta)       arrow keys, highlight wraps around
    Cancel()              escape, closes the list without touching the tags
    Commit()              enter or separator key
    Backspace()           delete-backward; on an empty buffer drops the last tag
    SelectSuggestion(i)   pointer selection of a listed suggestion
    EditTag(tag)          remove a tag and re-seed the buffer with it
    RemoveTag(tag)        remove a tag
    MergeRecipes(recipes) bulk merge of recipe tags

``dispatch`` is pure: it returns a new state and never mutates its input.
"""

import logging
from dataclasses import dataclass, field, replace
from typing import Any, FrozenSet, List, Optional, Sequence, Tuple, Union

from ..models.classification_set import ClassificationSet
from ..models.tag_grammar import ParseResult, SEGMENT_DELIMITER, is_category_token, try_parse
from ..models.vocabulary import PLAIN_LABEL_VOCABULARY
from .suggestion_service import build_suggestions

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PickerContext:
    """Read model the picker works against: the rules and recipes of one business line."""

    rules: Tuple[Any, ...] = ()
    singular_keys: FrozenSet[str] = frozenset()
    vocabulary: Tuple[str, ...] = PLAIN_LABEL_VOCABULARY

    @classmethod
    def from_registry(cls, registry, line_of_business: Optional[str] = None) -> "PickerContext":
        return cls(
            rules=tuple(registry.semantic_rules(line_of_business)),
            singular_keys=frozenset(registry.singular_rule_keys()),
        )


@dataclass(frozen=True)
class PickerState:
    draft_text: str = ""
    highlighted_index: int = -1
    suggestions_open: bool = False
    tags: ClassificationSet = field(default_factory=ClassificationSet)


@dataclass(frozen=True)
class PickerView:
    """What the input renders for a state: list, live parse preview and custom-value hint."""

    suggestions: List[str]
    highlighted_index: int
    live_parse: Optional[ParseResult]
    show_custom_hint: bool


# -----------------------------------------------------------------------------
# Commands
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class TypeText:
    text: str


@dataclass(frozen=True)
class Navigate:
    delta: int


@dataclass(frozen=True)
class Cancel:
    pass


@dataclass(frozen=True)
class Commit:
    pass


@dataclass(frozen=True)
class Backspace:
    pass


@dataclass(frozen=True)
class SelectSuggestion:
    index: int


@dataclass(frozen=True)
class EditTag:
    tag: str


@dataclass(frozen=True)
class RemoveTag:
    tag: str


@dataclass(frozen=True)
class MergeRecipes:
    recipes: Tuple[Any, ...]


PickerCommand = Union[
    TypeText, Navigate, Cancel, Commit, Backspace, SelectSuggestion, EditTag, RemoveTag, MergeRecipes
]


# -----------------------------------------------------------------------------
# Reducer
# -----------------------------------------------------------------------------

def visible_suggestions(state: PickerState, context: PickerContext) -> List[str]:
    return build_suggestions(
        state.draft_text.strip(),
        context.rules,
        state.tags.tags,
        context.vocabulary,
    ).visible


def view(state: PickerState, context: PickerContext) -> PickerView:
    trimmed = state.draft_text.strip()
    suggestions = visible_suggestions(state, context)
    live_parse = try_parse(trimmed, context.rules) if SEGMENT_DELIMITER in trimmed else None
    return PickerView(
        suggestions=suggestions,
        highlighted_index=state.highlighted_index,
        live_parse=live_parse,
        show_custom_hint=bool(trimmed) and not suggestions and live_parse is None,
    )


def _commit_text(state: PickerState, text: str, context: PickerContext) -> PickerState:
    tags = state.tags.add(text, context.rules)
    if tags is not state.tags:
        logger.debug(f"Committed classification {text!r}")
    return replace(state, tags=tags, draft_text="", highlighted_index=-1)


def _choose(state: PickerState, suggestion: str, context: PickerContext) -> PickerState:
    # A "key:" token only seeds the buffer so a value can be typed after it
    if is_category_token(suggestion):
        return replace(state, draft_text=suggestion, highlighted_index=-1)
    return _commit_text(state, suggestion, context)


def _step(index: int, delta: int, count: int) -> int:
    for _ in range(abs(delta)):
        if delta > 0:
            index = index + 1 if index < count - 1 else 0
        else:
            index = index - 1 if index > 0 else count - 1
    return index


def dispatch(state: PickerState, command: PickerCommand, context: PickerContext) -> PickerState:
    """Apply one command and return the next state."""
    if isinstance(command, TypeText):
        return replace(state, draft_text=command.text, suggestions_open=True, highlighted_index=-1)

    if isinstance(command, Navigate):
        suggestions = visible_suggestions(state, context)
        if not suggestions or command.delta == 0:
            return state
        index = _step(state.highlighted_index, command.delta, len(suggestions))
        return replace(state, suggestions_open=True, highlighted_index=index)

    if isinstance(command, Cancel):
        return replace(state, suggestions_open=False, highlighted_index=-1)

    if isinstance(command, Commit):
        trimmed = state.draft_text.strip()
        if not trimmed:
            return state
        suggestions = visible_suggestions(state, context)
        if 0 <= state.highlighted_index < len(suggestions):
            return _choose(state, suggestions[state.highlighted_index], context)
        if suggestions:
            return _choose(state, suggestions[0], context)
        return _commit_text(state, trimmed, context)

    if isinstance(command, Backspace):
        if state.draft_text == "" and len(state.tags) > 0:
            return replace(state, tags=state.tags.remove_last())
        return state

    if isinstance(command, SelectSuggestion):
        suggestions = visible_suggestions(state, context)
        if not 0 <= command.index < len(suggestions):
            return state
        chosen = _choose(state, suggestions[command.index], context)
        return replace(chosen, suggestions_open=True)

    if isinstance(command, EditTag):
        tags, draft = state.tags.edit(command.tag)
        return replace(state, tags=tags, draft_text=draft, highlighted_index=-1)

    if isinstance(command, RemoveTag):
        return replace(state, tags=state.tags.remove(command.tag))

    if isinstance(command, MergeRecipes):
        return replace(state, tags=state.tags.merge_recipes(command.recipes, context.singular_keys))

    raise TypeError(f"Unsupported picker command: {type(command).__name__}")


def run(state: PickerState, commands: Sequence[PickerCommand], context: PickerContext) -> PickerState:
    """Dispatch a sequence of commands in order."""
    for command in commands:
        state = dispatch(state, command, context)
    return state
