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
Registry administration: create, rename and delete rule groups and recipe
groups, and edit the rules and recipes inside them.

The module has two layers:

* Pure update functions (``create_group``, ``rename_group``, ...) that take a
  Registry snapshot and return an AdminResult. A rejected operation returns
  the original snapshot together with an AdminError code, so callers decide
  whether to surface feedback.
* ``RegistryConsole``, the stateful controller behind the administration
  screen: group selection with a dirty-draft guard, inline rename, one draft
  rule or recipe at a time, and a shared delete confirmation.
"""

import logging
import time
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Union

from ..models.registry import (
    RECIPE_GROUP_PREFIX,
    RULE_GROUP_PREFIXES,
    Category,
    Recipe,
    RecipeGroup,
    Registry,
    RuleGroup,
    SemanticRule,
)
from ..models.tag_grammar import check_pattern, compile_pattern

logger = logging.getLogger(__name__)


class GroupKind(str, Enum):
    """Kinds of group an operator can create."""
    FLAVOR = "flavor"
    RECON = "recon"
    RECIPES = "recipes"

    @property
    def prefix(self) -> str:
        if self is GroupKind.RECIPES:
            return RECIPE_GROUP_PREFIX
        return RULE_GROUP_PREFIXES[self.category.value]

    @property
    def category(self) -> Optional[Category]:
        if self is GroupKind.RECIPES:
            return None
        return Category.parse(self.value)


class AdminError(str, Enum):
    BLANK_NAME = "blank_name"
    UNCHANGED_NAME = "unchanged_name"
    NAME_TAKEN = "name_taken"
    GROUP_NOT_FOUND = "group_not_found"
    GROUP_NOT_EMPTY = "group_not_empty"
    WRONG_GROUP_KIND = "wrong_group_kind"
    ITEM_NOT_FOUND = "item_not_found"
    NO_SELECTION = "no_selection"
    NO_DRAFT = "no_draft"
    SAVE_FAILED = "save_failed"


ADMIN_ERROR_MESSAGES: Dict[AdminError, str] = {
    AdminError.BLANK_NAME: "Group name cannot be blank",
    AdminError.UNCHANGED_NAME: "Group name is unchanged",
    AdminError.NAME_TAKEN: "Group name is already used by a rule group or recipe group",
    AdminError.GROUP_NOT_FOUND: "Group does not exist",
    AdminError.GROUP_NOT_EMPTY: "Only empty groups can be deleted",
    AdminError.WRONG_GROUP_KIND: "Group does not hold this kind of item",
    AdminError.ITEM_NOT_FOUND: "Item does not exist in this group",
    AdminError.NO_SELECTION: "No group is selected",
    AdminError.NO_DRAFT: "Nothing is being edited",
    AdminError.SAVE_FAILED: "Registry could not be saved; the last saved version was restored",
}


@dataclass(frozen=True)
class AdminResult:
    """Outcome of an administration operation."""

    registry: Registry
    error: Optional[AdminError] = None
    group_key: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def message(self) -> Optional[str]:
        return ADMIN_ERROR_MESSAGES.get(self.error) if self.error else None


@dataclass(frozen=True)
class SidebarEntry:
    group_key: str
    item_count: int


@dataclass(frozen=True)
class Sidebar:
    flavor: List[SidebarEntry] = field(default_factory=list)
    recon: List[SidebarEntry] = field(default_factory=list)
    recipes: List[SidebarEntry] = field(default_factory=list)


def _now_ms() -> int:
    return int(time.time() * 1000)


# =============================================================================
# Group operations
# =============================================================================

def generate_group_key(
    registry: Registry,
    line_of_business: str,
    kind: GroupKind,
    now_ms: Optional[int] = None,
) -> str:
    """
    Build a unique key from the kind prefix, the business line and a timestamp.

    Examples:
        >>> generate_group_key(registry, "BANK", GroupKind.FLAVOR, now_ms=1700000000000)
        'TestDataFlavorsBANK1700000000000'
    """
    stamp = _now_ms() if now_ms is None else now_ms
    key = f"{kind.prefix}{line_of_business}{stamp}"
    while registry.has_group(key):
        stamp += 1
        key = f"{kind.prefix}{line_of_business}{stamp}"
    return key


def create_group(
    registry: Registry,
    line_of_business: str,
    kind: Union[GroupKind, str],
    now_ms: Optional[int] = None,
) -> AdminResult:
    """Insert an empty group under a generated key."""
    kind = GroupKind(kind)
    key = generate_group_key(registry, line_of_business, kind, now_ms)
    if kind is GroupKind.RECIPES:
        updated = registry.with_recipe_group(RecipeGroup(key, line_of_business=line_of_business))
    else:
        updated = registry.with_rule_group(RuleGroup(key, line_of_business, kind.category))
    logger.info(f"Created {kind.value} group '{key}'")
    return AdminResult(updated, group_key=key)


def rename_group(registry: Registry, old_key: str, new_key: str) -> AdminResult:
    """
    Rename a group within the shared namespace.

    Blank names, unchanged names and names already used by any rule group or
    recipe group are rejected and the registry is returned untouched.
    """
    candidate = (new_key or "").strip()
    if not registry.has_group(old_key):
        return AdminResult(registry, AdminError.GROUP_NOT_FOUND, old_key)
    if not candidate:
        return AdminResult(registry, AdminError.BLANK_NAME, old_key)
    if candidate == old_key:
        return AdminResult(registry, AdminError.UNCHANGED_NAME, old_key)
    if registry.has_group(candidate):
        logger.debug(f"Rename of '{old_key}' rejected: '{candidate}' already exists")
        return AdminResult(registry, AdminError.NAME_TAKEN, old_key)

    logger.info(f"Renamed group '{old_key}' to '{candidate}'")
    return AdminResult(registry.renamed(old_key, candidate), group_key=candidate)


def can_delete_group(registry: Registry, group_key: str) -> bool:
    return registry.has_group(group_key) and registry.member_count(group_key) == 0


def delete_group(registry: Registry, group_key: str) -> AdminResult:
    """Delete an empty group; groups that still hold members are kept."""
    if not registry.has_group(group_key):
        return AdminResult(registry, AdminError.GROUP_NOT_FOUND, group_key)
    if not can_delete_group(registry, group_key):
        return AdminResult(registry, AdminError.GROUP_NOT_EMPTY, group_key)
    logger.info(f"Deleted group '{group_key}'")
    return AdminResult(registry.without_group(group_key), group_key=group_key)


def sidebar_for(registry: Registry, line_of_business: str) -> Sidebar:
    """Groups of one business line, bucketed by flavor, recon and recipes."""
    sidebar = Sidebar()
    for key, group in registry.rule_groups.items():
        if group.line_of_business != line_of_business:
            continue
        bucket = sidebar.flavor if group.category is Category.FLAVOR else sidebar.recon
        bucket.append(SidebarEntry(key, len(group.rules)))
    for key, group in registry.recipe_groups.items():
        if group.lob == line_of_business:
            sidebar.recipes.append(SidebarEntry(key, len(group.recipes)))
    return sidebar


# =============================================================================
# Rule and recipe operations
# =============================================================================

def validate_rule(rule: SemanticRule) -> List[str]:
    """Problems an operator should fix before relying on a rule; empty when fine."""
    problems = []
    if not rule.key.strip():
        problems.append("Rule key is required")
    if not rule.validation_pattern:
        problems.append("Validation pattern is required")
    elif compile_pattern(rule.validation_pattern) is None:
        problems.append(f"Validation pattern does not compile: {rule.validation_pattern!r}")
    return problems


def save_rule(registry: Registry, group_key: str, rule: SemanticRule) -> AdminResult:
    """Replace the rule with the same id, or append it to the group."""
    if group_key not in registry.rule_groups:
        error = AdminError.WRONG_GROUP_KIND if registry.has_group(group_key) else AdminError.GROUP_NOT_FOUND
        return AdminResult(registry, error, group_key)

    group = registry.rule_groups[group_key]
    rule = replace(
        rule,
        line_of_business=rule.line_of_business or group.line_of_business,
        category=group.category,
    )
    if any(r.id == rule.id for r in group.rules):
        rules = [rule if r.id == rule.id else r for r in group.rules]
    else:
        rules = list(group.rules) + [rule]
    return AdminResult(registry.with_rule_group(group.with_members(rules)), group_key=group_key)


def delete_rule(registry: Registry, group_key: str, rule_id: str) -> AdminResult:
    """Remove a rule by id; the group is kept even when it becomes empty."""
    if group_key not in registry.rule_groups:
        error = AdminError.WRONG_GROUP_KIND if registry.has_group(group_key) else AdminError.GROUP_NOT_FOUND
        return AdminResult(registry, error, group_key)

    group = registry.rule_groups[group_key]
    rules = [r for r in group.rules if r.id != rule_id]
    if len(rules) == len(group.rules):
        return AdminResult(registry, AdminError.ITEM_NOT_FOUND, group_key)
    return AdminResult(registry.with_rule_group(group.with_members(rules)), group_key=group_key)


def save_recipe(registry: Registry, group_key: str, recipe: Recipe) -> AdminResult:
    if group_key not in registry.recipe_groups:
        error = AdminError.WRONG_GROUP_KIND if registry.has_group(group_key) else AdminError.GROUP_NOT_FOUND
        return AdminResult(registry, error, group_key)

    group = registry.recipe_groups[group_key]
    if not recipe.line_of_business and group.lob:
        recipe = replace(recipe, line_of_business=group.lob)
    if any(r.id == recipe.id for r in group.recipes):
        recipes = [recipe if r.id == recipe.id else r for r in group.recipes]
    else:
        recipes = list(group.recipes) + [recipe]
    return AdminResult(registry.with_recipe_group(group.with_members(recipes)), group_key=group_key)


def delete_recipe(registry: Registry, group_key: str, recipe_id: str) -> AdminResult:
    if group_key not in registry.recipe_groups:
        error = AdminError.WRONG_GROUP_KIND if registry.has_group(group_key) else AdminError.GROUP_NOT_FOUND
        return AdminResult(registry, error, group_key)

    group = registry.recipe_groups[group_key]
    recipes = [r for r in group.recipes if r.id != recipe_id]
    if len(recipes) == len(group.recipes):
        return AdminResult(registry, AdminError.ITEM_NOT_FOUND, group_key)
    return AdminResult(registry.with_recipe_group(group.with_members(recipes)), group_key=group_key)


# =============================================================================
# Console
# =============================================================================

class PaneMode(str, Enum):
    EMPTY = "empty"
    VIEW = "view"
    EDIT_FIELD = "editField"
    CREATE_FIELD = "createField"


@dataclass(frozen=True)
class DeleteConfirmation:
    """Pending delete shared by rules, recipes and groups."""

    kind: str
    label: str
    item_id: Optional[str] = None

    @property
    def prompt(self) -> str:
        return f"Delete {self.kind} '{self.label}'? This cannot be undone."


Draft = Union[SemanticRule, Recipe]


class RegistryConsole:
    """
    Controller behind the registry administration screen.

    Holds the current Registry snapshot and the editing state around it:

        EMPTY -> VIEW <-> EDIT_FIELD
        VIEW -> CREATE_FIELD -> VIEW

    Only one rule or recipe draft exists at a time. Navigating to another
    group while the draft has unsaved changes asks ``confirm_discard``;
    a False answer leaves everything as it was.
    """

    def __init__(
        self,
        registry: Registry,
        active_lob: str = "BANK",
        confirm_discard: Optional[Callable[[], bool]] = None,
        clock: Callable[[], int] = _now_ms,
    ):
        self.registry = registry
        self.persisted_registry = registry
        self.active_lob = active_lob
        self.confirm_discard = confirm_discard or (lambda: True)
        self.clock = clock

        self.selected_group_key: Optional[str] = None
        self.mode = PaneMode.EMPTY

        self.active_field_id: Optional[str] = None
        self.draft: Optional[Draft] = None
        self.has_draft_changes = False
        self.pattern_sample = ""

        self.renaming_group_key: Optional[str] = None
        self.rename_value = ""

        self.delete_confirm: Optional[DeleteConfirmation] = None
        self.last_error: Optional[AdminError] = None

    # -------------------------------------------------------------------------
    # Derived state
    # -------------------------------------------------------------------------

    @property
    def selected_kind(self) -> Optional[str]:
        if self.selected_group_key is None:
            return None
        return "rule" if self.registry.is_rule_group(self.selected_group_key) else "recipe"

    @property
    def sidebar(self) -> Sidebar:
        return sidebar_for(self.registry, self.active_lob)

    @property
    def can_delete_selected_group(self) -> bool:
        return self.selected_group_key is not None and can_delete_group(self.registry, self.selected_group_key)

    @property
    def has_unsaved_registry(self) -> bool:
        return self.registry != self.persisted_registry

    @property
    def draft_problems(self) -> List[str]:
        if isinstance(self.draft, SemanticRule):
            return validate_rule(self.draft)
        return []

    @property
    def pattern_match(self) -> Optional[bool]:
        """Result of the regex tester for the rule being edited."""
        if not isinstance(self.draft, SemanticRule):
            return None
        return check_pattern(self.draft.validation_pattern, self.pattern_sample)

    # -------------------------------------------------------------------------
    # Internal helpers
    # -------------------------------------------------------------------------

    def _apply(self, result: AdminResult) -> bool:
        if result.ok:
            self.registry = result.registry
            self.last_error = None
            return True
        self.last_error = result.error
        logger.debug(f"Registry console operation rejected: {result.error.value}")
        return False

    def _deselect(self) -> None:
        self.reset_editing()
        self.cancel_renaming()
        self.selected_group_key = None
        self.mode = PaneMode.EMPTY

    def reset_editing(self) -> None:
        self.active_field_id = None
        self.draft = None
        self.has_draft_changes = False
        self.pattern_sample = ""

    # -------------------------------------------------------------------------
    # Navigation
    # -------------------------------------------------------------------------

    def set_active_lob(self, line_of_business: str) -> None:
        if line_of_business == self.active_lob:
            return
        self.active_lob = line_of_business
        self._deselect()

    def select_group(self, group_key: str) -> bool:
        """Select a group, asking before unsaved draft changes are thrown away."""
        if not self.registry.has_group(group_key):
            self.last_error = AdminError.GROUP_NOT_FOUND
            return False
        if self.has_draft_changes and not self.confirm_discard():
            return False
        # Leaving without renaming keeps the generated key
        self.reset_editing()
        self.cancel_renaming()
        self.selected_group_key = group_key
        self.mode = PaneMode.VIEW
        return True

    # -------------------------------------------------------------------------
    # Groups
    # -------------------------------------------------------------------------

    def create_group(self, kind: Union[GroupKind, str]) -> Optional[str]:
        """Create an empty group and start renaming it right away."""
        result = create_group(self.registry, self.active_lob, kind, now_ms=self.clock())
        if not self._apply(result):
            return None
        self.reset_editing()
        self.selected_group_key = result.group_key
        self.mode = PaneMode.VIEW
        self.start_renaming(result.group_key)
        return result.group_key

    def start_renaming(self, group_key: str) -> None:
        self.renaming_group_key = group_key
        self.rename_value = group_key

    def update_rename(self, value: str) -> None:
        self.rename_value = value

    def cancel_renaming(self) -> None:
        self.renaming_group_key = None
        self.rename_value = ""

    def commit_rename(self) -> bool:
        """Apply the inline rename; rejected names revert to the current key."""
        if self.renaming_group_key is None:
            return False
        old_key = self.renaming_group_key
        result = rename_group(self.registry, old_key, self.rename_value)
        self.cancel_renaming()
        if not self._apply(result):
            return False
        if self.selected_group_key == old_key:
            self.selected_group_key = result.group_key
        return True

    def delete_group(self) -> bool:
        if self.selected_group_key is None:
            self.last_error = AdminError.NO_SELECTION
            return False
        if not self._apply(delete_group(self.registry, self.selected_group_key)):
            return False
        self._deselect()
        return True

    # -------------------------------------------------------------------------
    # Rules
    # -------------------------------------------------------------------------

    def edit_rule(self, rule_id: str) -> bool:
        if self.selected_group_key not in self.registry.rule_groups:
            self.last_error = AdminError.NO_SELECTION
            return False
        group = self.registry.rule_groups[self.selected_group_key]
        rule = next((r for r in group.rules if r.id == rule_id), None)
        if rule is None:
            self.last_error = AdminError.ITEM_NOT_FOUND
            return False
        self.active_field_id = rule_id
        self.draft = rule
        self.has_draft_changes = False
        self.pattern_sample = ""
        self.mode = PaneMode.EDIT_FIELD
        return True

    def create_rule(self) -> Optional[str]:
        if self.selected_group_key not in self.registry.rule_groups:
            self.last_error = AdminError.NO_SELECTION
            return None
        group = self.registry.rule_groups[self.selected_group_key]
        new_id = f"new-rule-{self.clock()}"
        self.active_field_id = new_id
        self.draft = SemanticRule(
            id=new_id,
            key="",
            validation_pattern="",
            line_of_business=group.line_of_business,
            category=group.category,
        )
        self.has_draft_changes = True
        self.pattern_sample = ""
        self.mode = PaneMode.CREATE_FIELD
        return new_id

    # -------------------------------------------------------------------------
    # Recipes
    # -------------------------------------------------------------------------

    def edit_recipe(self, recipe_id: str) -> bool:
        if self.selected_group_key not in self.registry.recipe_groups:
            self.last_error = AdminError.NO_SELECTION
            return False
        group = self.registry.recipe_groups[self.selected_group_key]
        recipe = next((r for r in group.recipes if r.id == recipe_id), None)
        if recipe is None:
            self.last_error = AdminError.ITEM_NOT_FOUND
            return False
        self.active_field_id = recipe_id
        self.draft = recipe
        self.has_draft_changes = False
        self.mode = PaneMode.EDIT_FIELD
        return True

    def create_recipe(self) -> Optional[str]:
        if self.selected_group_key not in self.registry.recipe_groups:
            self.last_error = AdminError.NO_SELECTION
            return None
        group = self.registry.recipe_groups[self.selected_group_key]
        new_id = f"new-recipe-{self.clock()}"
        self.active_field_id = new_id
        self.draft = Recipe(id=new_id, name="", line_of_business=group.lob or self.active_lob)
        self.has_draft_changes = True
        self.mode = PaneMode.CREATE_FIELD
        return new_id

    # -------------------------------------------------------------------------
    # Drafts
    # -------------------------------------------------------------------------

    def update_draft(self, **changes: Any) -> None:
        """Change fields of the current draft; the stored item is untouched until save."""
        if self.draft is None:
            self.last_error = AdminError.NO_DRAFT
            return
        self.draft = replace(self.draft, **changes)
        self.has_draft_changes = True

    def set_pattern_sample(self, sample: str) -> None:
        self.pattern_sample = sample

    def cancel_edit(self) -> None:
        self.reset_editing()
        self.mode = PaneMode.VIEW if self.selected_group_key else PaneMode.EMPTY

    def save_draft(self) -> bool:
        """Replace-or-append the draft in the selected group."""
        if self.selected_group_key is None:
            self.last_error = AdminError.NO_SELECTION
            return False
        if self.draft is None or self.active_field_id is None:
            self.last_error = AdminError.NO_DRAFT
            return False
        if isinstance(self.draft, SemanticRule):
            result = save_rule(self.registry, self.selected_group_key, self.draft)
        else:
            result = save_recipe(self.registry, self.selected_group_key, self.draft)
        if not self._apply(result):
            return False
        self.reset_editing()
        self.mode = PaneMode.VIEW
        return True

    # -------------------------------------------------------------------------
    # Deletes
    # -------------------------------------------------------------------------

    def _after_member_delete(self) -> None:
        # An emptied group is deselected but stays in the registry
        if self.registry.member_count(self.selected_group_key) == 0:
            self._deselect()

    def delete_rule(self, rule_id: str) -> bool:
        if self.selected_group_key is None:
            self.last_error = AdminError.NO_SELECTION
            return False
        if not self._apply(delete_rule(self.registry, self.selected_group_key, rule_id)):
            return False
        if self.active_field_id == rule_id:
            self.reset_editing()
            self.mode = PaneMode.VIEW
        self._after_member_delete()
        return True

    def delete_recipe(self, recipe_id: str) -> bool:
        if self.selected_group_key is None:
            self.last_error = AdminError.NO_SELECTION
            return False
        if not self._apply(delete_recipe(self.registry, self.selected_group_key, recipe_id)):
            return False
        if self.active_field_id == recipe_id:
            self.reset_editing()
            self.mode = PaneMode.VIEW
        self._after_member_delete()
        return True

    def request_delete(self, kind: str, label: str, item_id: Optional[str] = None) -> bool:
        """Open the shared confirmation for a rule, recipe or group delete."""
        if kind not in ("rule", "recipe", "group"):
            raise ValueError(f"Unknown delete kind: {kind!r}")
        if kind == "group" and not self.can_delete_selected_group:
            # The action is unavailable for groups that still hold members
            self.last_error = AdminError.GROUP_NOT_EMPTY if self.selected_group_key else AdminError.NO_SELECTION
            return False
        self.delete_confirm = DeleteConfirmation(kind=kind, label=label, item_id=item_id)
        return True

    def cancel_delete(self) -> None:
        self.delete_confirm = None

    def confirm_delete(self) -> bool:
        pending = self.delete_confirm
        self.delete_confirm = None
        if pending is None:
            return False
        if pending.kind == "rule" and pending.item_id:
            return self.delete_rule(pending.item_id)
        if pending.kind == "recipe" and pending.item_id:
            return self.delete_recipe(pending.item_id)
        if pending.kind == "group":
            return self.delete_group()
        return False

    # -------------------------------------------------------------------------
    # Persistence hooks
    # -------------------------------------------------------------------------

    def mark_persisted(self, registry: Optional[Registry] = None) -> None:
        self.persisted_registry = registry if registry is not None else self.registry

    def rollback(self) -> None:
        """Restore the last persisted snapshot after a failed save."""
        self.registry = self.persisted_registry
        if self.selected_group_key is not None and not self.registry.has_group(self.selected_group_key):
            self._deselect()
        self.last_error = AdminError.SAVE_FAILED
