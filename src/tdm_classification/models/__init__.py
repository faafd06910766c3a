from .classification_set import ClassificationSet
from .registry import (
    Category,
    Recipe,
    RecipeGroup,
    Registry,
    RegistryError,
    RegistryFormatError,
    RuleGroup,
    SemanticRule,
)
from .tag_grammar import ParseResult, try_parse

__all__ = [
    "Category",
    "ClassificationSet",
    "ParseResult",
    "Recipe",
    "RecipeGroup",
    "Registry",
    "RegistryError",
    "RegistryFormatError",
    "RuleGroup",
    "SemanticRule",
    "try_parse",
]
