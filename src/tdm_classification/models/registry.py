"""
Semantic Rule and Recipe Registry

Immutable value objects for the business-line-scoped groups of semantic rules
and recipes. Rule groups and recipe groups share a single naming namespace:
a group key is unique across both kinds of groups.

Every update method returns a new Registry; snapshots handed to the editor
or to the administration console are never modified in place.

Wire format (load contract of the configuration service):
    {
        "semanticRules": [rule, ...],
        "recipes": [recipe, ...],
        "grouped": {groupKey: {"lob", "category", "type", "items": [rule, ...]}},
        "recipesGrouped": {groupKey: [recipe, ...]},
        "recipeGroupsLob": {groupKey: lob}
    }
    rule   = {"id", "lob", "category", "key", "regexString", "suggestions"}
    recipe = {"id", "lob", "name", "description", "tags"}
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from .vocabulary import infer_line_of_business


RULE_GROUP_PREFIXES = {"Flavor": "TestDataFlavors", "Recon": "TestDataRecon"}
RECIPE_GROUP_PREFIX = "TDMRecipes"


class RegistryError(Exception):
    """Base error for registry handling."""


class RegistryFormatError(RegistryError):
    """Raised when a registry payload does not follow the load contract."""


class Category(str, Enum):
    """Rule categories: test-data flavors and reconditioning rules."""
    FLAVOR = "Flavor"
    RECON = "Recon"

    @classmethod
    def parse(cls, value: Any) -> "Category":
        """Accept "Flavor"/"Recon" as well as the lowercase group types."""
        if isinstance(value, Category):
            return value
        text = str(value or "").strip().lower()
        for member in cls:
            if member.value.lower() == text:
                return member
        raise RegistryFormatError(f"Unknown rule category: {value!r}")

    @property
    def group_type(self) -> str:
        return self.value.lower()


def _require(data: Mapping[str, Any], name: str, context: str) -> Any:
    if not isinstance(data, Mapping):
        raise RegistryFormatError(f"{context} must be an object, got {type(data).__name__}")
    if name not in data:
        raise RegistryFormatError(f"{context} is missing '{name}'")
    return data[name]


def _string_tuple(values: Any, context: str) -> Tuple[str, ...]:
    if values is None:
        return ()
    if isinstance(values, str) or not isinstance(values, Iterable):
        raise RegistryFormatError(f"{context} must be a list of strings")
    return tuple(str(v) for v in values)


@dataclass(frozen=True)
class SemanticRule:
    """A validation pattern and suggestion list for one singular tag key."""

    id: str
    key: str
    validation_pattern: str
    suggestions: Tuple[str, ...] = ()
    line_of_business: Optional[str] = None
    category: Category = Category.FLAVOR

    def __post_init__(self):
        object.__setattr__(self, "suggestions", tuple(self.suggestions))
        object.__setattr__(self, "category", Category.parse(self.category))

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, Any],
        line_of_business: Optional[str] = None,
        category: Optional[Category] = None,
    ) -> "SemanticRule":
        context = f"rule {data.get('id', '?')!r}" if isinstance(data, Mapping) else "rule"
        return cls(
            id=str(_require(data, "id", context)),
            key=str(_require(data, "key", context)),
            validation_pattern=str(data.get("regexString", "")),
            suggestions=_string_tuple(data.get("suggestions"), f"{context} suggestions"),
            line_of_business=data.get("lob") or line_of_business,
            category=Category.parse(data.get("category") or category or Category.FLAVOR),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "lob": self.line_of_business,
            "category": self.category.value,
            "key": self.key,
            "regexString": self.validation_pattern,
            "suggestions": list(self.suggestions),
        }


@dataclass(frozen=True)
class Recipe:
    """A named bundle of preset tags merged into a classification set in one step."""

    id: str
    name: str
    description: str = ""
    tags: Tuple[str, ...] = ()
    line_of_business: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "tags", tuple(self.tags))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], line_of_business: Optional[str] = None) -> "Recipe":
        context = f"recipe {data.get('id', '?')!r}" if isinstance(data, Mapping) else "recipe"
        return cls(
            id=str(_require(data, "id", context)),
            name=str(data.get("name", "")),
            description=str(data.get("description", "")),
            tags=_string_tuple(data.get("tags"), f"{context} tags"),
            line_of_business=data.get("lob") or line_of_business,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "lob": self.line_of_business,
            "name": self.name,
            "description": self.description,
            "tags": list(self.tags),
        }


@dataclass(frozen=True)
class RuleGroup:
    group_key: str
    line_of_business: str
    category: Category
    rules: Tuple[SemanticRule, ...] = ()

    def __post_init__(self):
        object.__setattr__(self, "rules", tuple(self.rules))
        object.__setattr__(self, "category", Category.parse(self.category))

    @property
    def members(self) -> Tuple[SemanticRule, ...]:
        return self.rules

    def with_members(self, rules: Iterable[SemanticRule]) -> "RuleGroup":
        return replace(self, rules=tuple(rules))

    @classmethod
    def from_dict(cls, group_key: str, data: Mapping[str, Any]) -> "RuleGroup":
        context = f"rule group {group_key!r}"
        lob = str(_require(data, "lob", context))
        category = Category.parse(data.get("category") or data.get("type"))
        items = data.get("items") or []
        if not isinstance(items, list):
            raise RegistryFormatError(f"{context} items must be a list")
        return cls(
            group_key=group_key,
            line_of_business=lob,
            category=category,
            rules=tuple(SemanticRule.from_dict(item, lob, category) for item in items),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "lob": self.line_of_business,
            "category": self.category.value,
            "type": self.category.group_type,
            "items": [rule.to_dict() for rule in self.rules],
        }


@dataclass(frozen=True)
class RecipeGroup:
    group_key: str
    recipes: Tuple[Recipe, ...] = ()
    line_of_business: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "recipes", tuple(self.recipes))

    @property
    def members(self) -> Tuple[Recipe, ...]:
        return self.recipes

    @property
    def lob(self) -> Optional[str]:
        """Stored business line, else the first recipe's, else the one in a generated key."""
        if self.line_of_business:
            return self.line_of_business
        for recipe in self.recipes:
            if recipe.line_of_business:
                return recipe.line_of_business
        if self.group_key.startswith(RECIPE_GROUP_PREFIX):
            return infer_line_of_business(self.group_key[len(RECIPE_GROUP_PREFIX):])
        return None

    def with_members(self, recipes: Iterable[Recipe]) -> "RecipeGroup":
        return replace(self, recipes=tuple(recipes))

    @classmethod
    def from_list(cls, group_key: str, items: Any) -> "RecipeGroup":
        if not isinstance(items, list):
            raise RegistryFormatError(f"recipe group {group_key!r} must be a list of recipes")
        return cls(group_key=group_key, recipes=tuple(Recipe.from_dict(item) for item in items))

    def to_list(self) -> List[Dict[str, Any]]:
        return [recipe.to_dict() for recipe in self.recipes]


@dataclass(frozen=True)
class Registry:
    """Snapshot of every rule group and recipe group."""

    rule_groups: Mapping[str, RuleGroup] = field(default_factory=dict)
    recipe_groups: Mapping[str, RecipeGroup] = field(default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "rule_groups", MappingProxyType(dict(self.rule_groups)))
        object.__setattr__(self, "recipe_groups", MappingProxyType(dict(self.recipe_groups)))
        shared = set(self.rule_groups) & set(self.recipe_groups)
        if shared:
            raise RegistryFormatError(f"Group keys used by both rules and recipes: {sorted(shared)}")

    # -------------------------------------------------------------------------
    # Read model
    # -------------------------------------------------------------------------

    def group_keys(self) -> List[str]:
        """Every key of the shared namespace, rule groups first."""
        return list(self.rule_groups) + list(self.recipe_groups)

    def has_group(self, group_key: str) -> bool:
        return group_key in self.rule_groups or group_key in self.recipe_groups

    def is_rule_group(self, group_key: str) -> bool:
        return group_key in self.rule_groups

    def is_recipe_group(self, group_key: str) -> bool:
        return group_key in self.recipe_groups

    def member_count(self, group_key: str) -> int:
        if group_key in self.rule_groups:
            return len(self.rule_groups[group_key].rules)
        if group_key in self.recipe_groups:
            return len(self.recipe_groups[group_key].recipes)
        return 0

    def semantic_rules(self, line_of_business: Optional[str] = None) -> List[SemanticRule]:
        """All rules in group order, optionally restricted to one business line."""
        rules = []
        for group in self.rule_groups.values():
            for rule in group.rules:
                lob = rule.line_of_business or group.line_of_business
                if line_of_business is None or lob == line_of_business:
                    rules.append(rule)
        return rules

    def recipes(self, line_of_business: Optional[str] = None) -> List[Recipe]:
        recipes = []
        for group in self.recipe_groups.values():
            for recipe in group.recipes:
                lob = recipe.line_of_business or group.lob
                if line_of_business is None or lob == line_of_business:
                    recipes.append(recipe)
        return recipes

    def singular_rule_keys(self, line_of_business: Optional[str] = None) -> Set[str]:
        """Keys configured as singular, i.e. every rule key."""
        return {rule.key for rule in self.semantic_rules(line_of_business)}

    def find_recipe(self, recipe_id: str) -> Optional[Recipe]:
        for recipe in self.recipes():
            if recipe.id == recipe_id:
                return recipe
        return None

    # -------------------------------------------------------------------------
    # Pure updates
    # -------------------------------------------------------------------------

    def with_rule_group(self, group: RuleGroup) -> "Registry":
        """Insert or replace a rule group, keeping its position when it exists."""
        groups = dict(self.rule_groups)
        groups[group.group_key] = group
        return Registry(groups, self.recipe_groups)

    def with_recipe_group(self, group: RecipeGroup) -> "Registry":
        groups = dict(self.recipe_groups)
        groups[group.group_key] = group
        return Registry(self.rule_groups, groups)

    def without_group(self, group_key: str) -> "Registry":
        rule_groups = {k: v for k, v in self.rule_groups.items() if k != group_key}
        recipe_groups = {k: v for k, v in self.recipe_groups.items() if k != group_key}
        return Registry(rule_groups, recipe_groups)

    def renamed(self, old_key: str, new_key: str) -> "Registry":
        """Move a group to a new key without changing its position or contents."""
        def _rename(groups):
            return {
                (new_key if k == old_key else k): (replace(v, group_key=new_key) if k == old_key else v)
                for k, v in groups.items()
            }
        return Registry(_rename(self.rule_groups), _rename(self.recipe_groups))

    # -------------------------------------------------------------------------
    # Wire format
    # -------------------------------------------------------------------------

    @classmethod
    def empty(cls) -> "Registry":
        return cls({}, {})

    @classmethod
    def from_dict(cls, payload: Mapping[str, Any]) -> "Registry":
        """
        Build a registry from the configuration service payload.

        "grouped"/"recipesGrouped" are authoritative. When they are absent the
        flat "semanticRules"/"recipes" lists are grouped per business line
        under generated keys ("TestDataFlavorsBANK", "TDMRecipesCARD", ...).
        """
        if not isinstance(payload, Mapping):
            raise RegistryFormatError(f"Registry payload must be an object, got {type(payload).__name__}")

        grouped = payload.get("grouped")
        if grouped is None:
            rule_groups = cls._group_flat_rules(payload.get("semanticRules") or [])
        elif isinstance(grouped, Mapping):
            rule_groups = {key: RuleGroup.from_dict(key, data) for key, data in grouped.items()}
        else:
            raise RegistryFormatError("'grouped' must be an object keyed by group key")

        recipes_grouped = payload.get("recipesGrouped")
        if recipes_grouped is None and isinstance(payload.get("recipes"), Mapping):
            recipes_grouped = payload["recipes"]
        if recipes_grouped is None:
            recipe_groups = cls._group_flat_recipes(payload.get("recipes") or [])
        elif isinstance(recipes_grouped, Mapping):
            recipe_groups = {key: RecipeGroup.from_list(key, items) for key, items in recipes_grouped.items()}
        else:
            raise RegistryFormatError("'recipesGrouped' must be an object keyed by group key")

        group_lobs = payload.get("recipeGroupsLob") or {}
        if not isinstance(group_lobs, Mapping):
            raise RegistryFormatError("'recipeGroupsLob' must be an object keyed by group key")
        for key, lob in group_lobs.items():
            if key in recipe_groups and lob:
                recipe_groups[key] = replace(recipe_groups[key], line_of_business=str(lob))

        return cls(rule_groups, recipe_groups)

    @staticmethod
    def _group_flat_rules(items: Any) -> Dict[str, RuleGroup]:
        if not isinstance(items, list):
            raise RegistryFormatError("'semanticRules' must be a list")
        groups: Dict[str, RuleGroup] = {}
        for item in items:
            rule = SemanticRule.from_dict(item)
            if not rule.line_of_business:
                raise RegistryFormatError(f"rule {rule.id!r} has no 'lob' to group it by")
            key = f"{RULE_GROUP_PREFIXES[rule.category.value]}{rule.line_of_business}"
            group = groups.get(key) or RuleGroup(key, rule.line_of_business, rule.category)
            groups[key] = group.with_members(group.rules + (rule,))
        return groups

    @staticmethod
    def _group_flat_recipes(items: Any) -> Dict[str, RecipeGroup]:
        if not isinstance(items, list):
            raise RegistryFormatError("'recipes' must be a list")
        groups: Dict[str, RecipeGroup] = {}
        for item in items:
            recipe = Recipe.from_dict(item)
            if not recipe.line_of_business:
                raise RegistryFormatError(f"recipe {recipe.id!r} has no 'lob' to group it by")
            key = f"{RECIPE_GROUP_PREFIX}{recipe.line_of_business}"
            group = groups.get(key) or RecipeGroup(key, line_of_business=recipe.line_of_business)
            groups[key] = group.with_members(group.recipes + (recipe,))
        return groups

    def to_dict(self) -> Dict[str, Any]:
        return {
            "semanticRules": [rule.to_dict() for rule in self.semantic_rules()],
            "recipes": [recipe.to_dict() for recipe in self.recipes()],
            "grouped": {key: group.to_dict() for key, group in self.rule_groups.items()},
            "recipesGrouped": {key: group.to_list() for key, group in self.recipe_groups.items()},
            # Only business lines stored on the group itself
            "recipeGroupsLob": {
                key: group.line_of_business
                for key, group in self.recipe_groups.items()
                if group.line_of_business
            },
        }
