"""
Unit tests for the immutable Registry value and its wire format.
"""

import pytest

from tdm_classification.data.default_registry import DEFAULT_RECIPE_GROUPS, DEFAULT_RULE_GROUPS, default_payload
from tdm_classification.models.registry import (
    Category,
    Recipe,
    RecipeGroup,
    Registry,
    RegistryFormatError,
    RuleGroup,
    SemanticRule,
)


class TestDefaultRegistry:

    def test_groups_loaded_in_order(self, default_registry):
        assert default_registry.group_keys() == list(DEFAULT_RULE_GROUPS) + list(DEFAULT_RECIPE_GROUPS)

    def test_rules_scoped_by_line_of_business(self, default_registry):
        bank_keys = [rule.key for rule in default_registry.semantic_rules("BANK")]
        assert "schedule" in bank_keys
        assert "card" not in bank_keys
        assert [rule.key for rule in default_registry.semantic_rules("CARD")] == ["card"]

    def test_rule_categories_follow_group(self, default_registry):
        recon = default_registry.rule_groups["TestDataReconBANK"]
        assert recon.category is Category.RECON
        assert all(rule.category is Category.RECON for rule in recon.rules)

    def test_recipes_by_line_of_business(self, default_registry):
        assert len(default_registry.recipes("CARD")) == 3
        assert default_registry.find_recipe("recipe-low-balance").name == "Low Balance Account"
        assert default_registry.find_recipe("missing") is None


class TestSharedNamespace:
    """Group keys are unique across rule groups and recipe groups"""

    def test_shared_key_rejected(self):
        with pytest.raises(RegistryFormatError):
            Registry({"X": RuleGroup("X", "BANK", Category.FLAVOR)}, {"X": RecipeGroup("X")})

    def test_has_group_spans_both_kinds(self, default_registry):
        assert default_registry.has_group("TestDataFlavorsBANK")
        assert default_registry.has_group("TDMRecipesBANK")
        assert not default_registry.has_group("Nope")


class TestPureUpdates:
    """Every update returns a new registry"""

    def test_with_rule_group_leaves_original_untouched(self, default_registry):
        group = default_registry.rule_groups["TestDataFlavorsCARD"].with_members([])
        updated = default_registry.with_rule_group(group)
        assert updated.member_count("TestDataFlavorsCARD") == 0
        assert default_registry.member_count("TestDataFlavorsCARD") == 1

    def test_renamed_keeps_position_and_contents(self, default_registry):
        updated = default_registry.renamed("TestDataFlavorsCARD", "CardFlavors")
        keys = updated.group_keys()
        assert keys.index("CardFlavors") == default_registry.group_keys().index("TestDataFlavorsCARD")
        assert updated.rule_groups["CardFlavors"].rules == default_registry.rule_groups["TestDataFlavorsCARD"].rules
        assert updated.rule_groups["CardFlavors"].group_key == "CardFlavors"

    def test_without_group(self, default_registry):
        updated = default_registry.without_group("TDMRecipesCARD")
        assert not updated.has_group("TDMRecipesCARD")
        assert default_registry.has_group("TDMRecipesCARD")

    def test_mappings_are_read_only(self, default_registry):
        with pytest.raises(TypeError):
            default_registry.rule_groups["X"] = None


class TestWireFormat:
    """Load contract conversion"""

    def test_round_trip(self, default_registry):
        assert Registry.from_dict(default_registry.to_dict()) == default_registry

    def test_to_dict_has_all_sections(self, default_registry):
        payload = default_registry.to_dict()
        assert set(payload) == {"semanticRules", "recipes", "grouped", "recipesGrouped", "recipeGroupsLob"}
        assert payload["grouped"]["TestDataReconBANK"]["type"] == "recon"
        assert payload["semanticRules"][0]["regexString"].startswith("^customer-type")

    def test_flat_lists_grouped_by_line_of_business(self):
        payload = default_payload()
        flat = {
            "semanticRules": Registry.from_dict(payload).to_dict()["semanticRules"],
            "recipes": Registry.from_dict(payload).to_dict()["recipes"],
        }
        registry = Registry.from_dict(flat)
        assert "TestDataFlavorsBANK" in registry.rule_groups
        assert "TestDataReconBANK" in registry.rule_groups
        assert registry.member_count("TDMRecipesCARD") == 3

    def test_group_type_accepted_instead_of_category(self):
        registry = Registry.from_dict({"grouped": {"G": {"lob": "FS", "type": "recon", "items": []}}})
        assert registry.rule_groups["G"].category is Category.RECON

    def test_missing_rule_id_rejected(self):
        with pytest.raises(RegistryFormatError):
            Registry.from_dict({"grouped": {"G": {"lob": "FS", "category": "Flavor", "items": [{"key": "k"}]}}})

    def test_unknown_category_rejected(self):
        with pytest.raises(RegistryFormatError):
            Registry.from_dict({"grouped": {"G": {"lob": "FS", "category": "Other", "items": []}}})

    def test_non_object_payload_rejected(self):
        with pytest.raises(RegistryFormatError):
            Registry.from_dict(["not", "a", "registry"])

    def test_recipe_group_line_of_business_survives_round_trip(self):
        registry = Registry({}, {"Onboarding": RecipeGroup("Onboarding", line_of_business="BANK")})
        payload = registry.to_dict()
        assert payload["recipeGroupsLob"] == {"Onboarding": "BANK"}
        assert Registry.from_dict(payload).recipe_groups["Onboarding"].lob == "BANK"

    def test_recipe_group_line_of_business_must_be_an_object(self):
        with pytest.raises(RegistryFormatError):
            Registry.from_dict({"recipesGrouped": {"Onboarding": []}, "recipeGroupsLob": ["BANK"]})


class TestRecipeGroupLineOfBusiness:

    def test_stored_value_wins(self):
        assert RecipeGroup("X", line_of_business="FS").lob == "FS"

    def test_first_recipe(self):
        group = RecipeGroup("X", recipes=(Recipe(id="r", name="r", line_of_business="CARD"),))
        assert group.lob == "CARD"

    def test_inferred_from_generated_key(self):
        assert RecipeGroup("TDMRecipesDFS1700000000000").lob == "DFS"
        assert RecipeGroup("Unrelated").lob is None


class TestSemanticRule:

    def test_from_dict_inherits_group_values(self):
        rule = SemanticRule.from_dict({"id": "r", "key": "k", "regexString": "^k:x$"}, "CARD", Category.RECON)
        assert rule.line_of_business == "CARD"
        assert rule.category is Category.RECON
        assert rule.suggestions == ()

    def test_suggestions_must_be_a_list(self):
        with pytest.raises(RegistryFormatError):
            SemanticRule.from_dict({"id": "r", "key": "k", "suggestions": "k:x"})
