"""
Unit tests for the pure registry administration operations.
"""

import pytest

from tdm_classification.models.registry import Category, Recipe, RecipeGroup, Registry, RuleGroup, SemanticRule
from tdm_classification.services.registry_admin import (
    AdminError,
    GroupKind,
    can_delete_group,
    create_group,
    delete_group,
    delete_recipe,
    delete_rule,
    generate_group_key,
    rename_group,
    save_recipe,
    save_rule,
    sidebar_for,
    validate_rule,
)

NOW = 1700000000000


@pytest.fixture
def small_registry():
    rule = SemanticRule(id="r1", key="account", validation_pattern="^account:(primary|secondary)$")
    recipe = Recipe(id="p1", name="Primary", tags=("account:primary",), line_of_business="BANK")
    return Registry(
        {
            "A": RuleGroup("A", "BANK", Category.FLAVOR, (rule,)),
            "Empty": RuleGroup("Empty", "BANK", Category.RECON),
        },
        {"B": RecipeGroup("B", (recipe,))},
    )


class TestGroupKeys:

    def test_key_combines_prefix_lob_and_timestamp(self, small_registry):
        assert generate_group_key(small_registry, "BANK", GroupKind.FLAVOR, NOW) == f"TestDataFlavorsBANK{NOW}"
        assert generate_group_key(small_registry, "CARD", GroupKind.RECON, NOW) == f"TestDataReconCARD{NOW}"
        assert generate_group_key(small_registry, "FS", GroupKind.RECIPES, NOW) == f"TDMRecipesFS{NOW}"

    def test_key_is_unique(self, small_registry):
        first = create_group(small_registry, "BANK", GroupKind.FLAVOR, NOW)
        second = create_group(first.registry, "BANK", GroupKind.FLAVOR, NOW)
        assert second.group_key != first.group_key
        assert second.registry.has_group(first.group_key)


class TestCreateGroup:

    def test_creates_empty_rule_group(self, small_registry):
        result = create_group(small_registry, "CARD", "recon", NOW)
        assert result.ok
        group = result.registry.rule_groups[result.group_key]
        assert group.category is Category.RECON
        assert group.line_of_business == "CARD"
        assert group.rules == ()

    def test_creates_empty_recipe_group(self, small_registry):
        result = create_group(small_registry, "DFS", GroupKind.RECIPES, NOW)
        group = result.registry.recipe_groups[result.group_key]
        assert group.recipes == ()
        assert group.lob == "DFS"

    def test_original_registry_untouched(self, small_registry):
        create_group(small_registry, "BANK", GroupKind.FLAVOR, NOW)
        assert small_registry.group_keys() == ["A", "Empty", "B"]


class TestRenameGroup:
    """Rejected renames leave the registry byte-for-byte unchanged"""

    def test_rename_moves_contents(self, small_registry):
        result = rename_group(small_registry, "A", "  Accounts  ")
        assert result.ok
        assert result.group_key == "Accounts"
        assert result.registry.rule_groups["Accounts"].rules == small_registry.rule_groups["A"].rules
        assert not result.registry.has_group("A")

    @pytest.mark.parametrize(
        "new_name,error",
        [
            ("", AdminError.BLANK_NAME),
            ("   ", AdminError.BLANK_NAME),
            ("A", AdminError.UNCHANGED_NAME),
            (" A ", AdminError.UNCHANGED_NAME),
            ("Empty", AdminError.NAME_TAKEN),
        ],
    )
    def test_rejected_names(self, small_registry, new_name, error):
        result = rename_group(small_registry, "A", new_name)
        assert result.error is error
        assert result.registry is small_registry
        assert result.registry.to_dict() == small_registry.to_dict()

    def test_cross_namespace_collision_rejected(self, small_registry):
        result = rename_group(small_registry, "A", "B")
        assert result.error is AdminError.NAME_TAKEN
        assert result.registry.rule_groups["A"] == small_registry.rule_groups["A"]
        assert result.registry.recipe_groups["B"] == small_registry.recipe_groups["B"]

    def test_missing_group(self, small_registry):
        assert rename_group(small_registry, "Nope", "X").error is AdminError.GROUP_NOT_FOUND

    def test_message_available_for_callers(self, small_registry):
        assert rename_group(small_registry, "A", "B").message


class TestDeleteGroup:

    def test_delete_non_empty_is_noop(self, small_registry):
        result = delete_group(small_registry, "A")
        assert result.error is AdminError.GROUP_NOT_EMPTY
        assert result.registry is small_registry
        assert not can_delete_group(small_registry, "A")

    def test_delete_empty(self, small_registry):
        assert can_delete_group(small_registry, "Empty")
        result = delete_group(small_registry, "Empty")
        assert result.ok
        assert not result.registry.has_group("Empty")

    def test_delete_missing(self, small_registry):
        assert delete_group(small_registry, "Nope").error is AdminError.GROUP_NOT_FOUND
        assert not can_delete_group(small_registry, "Nope")


class TestRules:

    def test_save_appends_new_rule_with_group_values(self, small_registry):
        rule = SemanticRule(id="r2", key="user", validation_pattern="^user:.+$", category=Category.RECON)
        result = save_rule(small_registry, "A", rule)
        saved = result.registry.rule_groups["A"].rules[-1]
        assert saved.id == "r2"
        assert saved.line_of_business == "BANK"
        assert saved.category is Category.FLAVOR

    def test_save_replaces_by_id_in_place(self, small_registry):
        rule = SemanticRule(id="r1", key="account", validation_pattern="^account:primary$")
        result = save_rule(small_registry, "A", rule)
        rules = result.registry.rule_groups["A"].rules
        assert len(rules) == 1
        assert rules[0].validation_pattern == "^account:primary$"

    def test_save_rule_into_recipe_group_rejected(self, small_registry):
        rule = SemanticRule(id="r2", key="user", validation_pattern="")
        assert save_rule(small_registry, "B", rule).error is AdminError.WRONG_GROUP_KIND
        assert save_rule(small_registry, "Nope", rule).error is AdminError.GROUP_NOT_FOUND

    def test_delete_rule_keeps_empty_group(self, small_registry):
        result = delete_rule(small_registry, "A", "r1")
        assert result.ok
        assert result.registry.has_group("A")
        assert result.registry.member_count("A") == 0

    def test_delete_missing_rule(self, small_registry):
        assert delete_rule(small_registry, "A", "nope").error is AdminError.ITEM_NOT_FOUND

    def test_validate_rule(self):
        assert validate_rule(SemanticRule(id="r", key="k", validation_pattern="^k:x$")) == []
        problems = validate_rule(SemanticRule(id="r", key=" ", validation_pattern="(["))
        assert len(problems) == 2


class TestRecipes:

    def test_save_and_delete_recipe(self, small_registry):
        recipe = Recipe(id="p2", name="Second", tags=("user:mfa",))
        saved = save_recipe(small_registry, "B", recipe)
        assert [r.id for r in saved.registry.recipe_groups["B"].recipes] == ["p1", "p2"]
        assert saved.registry.recipe_groups["B"].recipes[-1].line_of_business == "BANK"

        deleted = delete_recipe(saved.registry, "B", "p1")
        assert [r.id for r in deleted.registry.recipe_groups["B"].recipes] == ["p2"]

    def test_recipe_into_rule_group_rejected(self, small_registry):
        recipe = Recipe(id="p2", name="Second")
        assert save_recipe(small_registry, "A", recipe).error is AdminError.WRONG_GROUP_KIND
        assert delete_recipe(small_registry, "B", "nope").error is AdminError.ITEM_NOT_FOUND


class TestSidebar:

    def test_sidebar_buckets_with_counts(self, default_registry):
        sidebar = sidebar_for(default_registry, "BANK")
        assert [(e.group_key, e.item_count) for e in sidebar.flavor] == [("TestDataFlavorsBANK", 6)]
        assert [(e.group_key, e.item_count) for e in sidebar.recon] == [("TestDataReconBANK", 1)]
        assert [(e.group_key, e.item_count) for e in sidebar.recipes] == [("TDMRecipesBANK", 5)]

    def test_new_empty_recipe_group_listed_under_its_lob(self, default_registry):
        result = create_group(default_registry, "FS", GroupKind.RECIPES, NOW)
        sidebar = sidebar_for(result.registry, "FS")
        assert [e.group_key for e in sidebar.recipes] == [f"TDMRecipesFS{NOW}"]
