"""
Classification Service - shared business logic for tag operations.

Used by both the HTTP routes and the MCP tools so parsing, suggestions and
classification-set edits behave the same on every interface. Methods return
plain dictionaries; unexpected errors are logged and reported with
``success: False`` instead of being raised.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from ..models.classification_set import ClassificationSet
from ..models.tag_grammar import normalize_tag, parse_tag, try_parse
from .classification_editor import PickerContext
from .registry_admin import sidebar_for
from .registry_service import RegistryService
from .suggestion_service import build_suggestions

logger = logging.getLogger(__name__)


def _tags_result(current: ClassificationSet, updated: ClassificationSet) -> Dict[str, Any]:
    return {
        "success": True,
        "tags": updated.to_list(),
        "schedule": updated.schedule,
        "changed": updated != current,
    }


class ClassificationService:
    """Tag parsing, suggestion and classification-set edits against the cached registry."""

    def __init__(self, registry_service: RegistryService, default_lob: str = "BANK"):
        self.registry_service = registry_service
        self.default_lob = default_lob

    async def _context(self, lob: Optional[str]) -> PickerContext:
        registry = await self.registry_service.load()
        return PickerContext.from_registry(registry, lob or self.default_lob)

    async def parse(self, text: str, lob: Optional[str] = None) -> Dict[str, Any]:
        """Validate one tag against the rules of a business line."""
        try:
            context = await self._context(lob)
            result = try_parse(text, context.rules)
            tag = normalize_tag(text, context.rules)
            key, values = parse_tag(tag)
            return {
                "success": True,
                "input": text,
                "tag": tag,
                "semantic": result is not None,
                "key": key,
                "values": values,
                "parsed": dict(result.parsed) if result else {},
            }
        except Exception as e:
            logger.exception(f"Unexpected error parsing tag: {e}")
            return {"success": False, "error": f"Failed to parse tag: {str(e)}"}

    async def suggest(
        self,
        text: str,
        already_chosen: Iterable[str] = (),
        lob: Optional[str] = None,
    ) -> Dict[str, Any]:
        try:
            context = await self._context(lob)
            suggestions = build_suggestions(text, context.rules, list(already_chosen), context.vocabulary)
            return {
                "success": True,
                "semantic": suggestions.semantic,
                "plain": suggestions.plain,
                "visible": suggestions.visible,
            }
        except Exception as e:
            logger.exception(f"Unexpected error building suggestions: {e}")
            return {"success": False, "error": f"Failed to build suggestions: {str(e)}"}

    async def add(self, tags: List[str], text: str, lob: Optional[str] = None) -> Dict[str, Any]:
        """Add one tag, replacing any tag with the same singular key."""
        try:
            context = await self._context(lob)
            current = ClassificationSet(tags)
            updated = current.add(text, context.rules)
            return _tags_result(current, updated)
        except Exception as e:
            logger.exception(f"Unexpected error adding classification: {e}")
            return {"success": False, "error": f"Failed to add classification: {str(e)}"}

    async def remove(self, tags: List[str], tag: str) -> Dict[str, Any]:
        current = ClassificationSet(tags)
        updated = current.remove(tag)
        return _tags_result(current, updated)

    async def replace(self, tags: List[str], old: str, new: str, lob: Optional[str] = None) -> Dict[str, Any]:
        try:
            context = await self._context(lob)
            current = ClassificationSet(tags)
            updated = current.replace_tag(old, new, context.rules)
            return _tags_result(current, updated)
        except Exception as e:
            logger.exception(f"Unexpected error replacing classification: {e}")
            return {"success": False, "error": f"Failed to replace classification: {str(e)}"}

    async def merge(self, tags: List[str], recipe_ids: List[str], lob: Optional[str] = None) -> Dict[str, Any]:
        """Merge the tags of the named recipes, in the order given."""
        try:
            registry = await self.registry_service.load()
            recipes = [registry.find_recipe(recipe_id) for recipe_id in recipe_ids]
            missing = [rid for rid, recipe in zip(recipe_ids, recipes) if recipe is None]
            if missing:
                return {"success": False, "error": f"Unknown recipes: {', '.join(missing)}", "missing": missing}

            context = PickerContext.from_registry(registry, lob or self.default_lob)
            current = ClassificationSet(tags)
            updated = current.merge_recipes(recipes, context.singular_keys)
            return _tags_result(current, updated)
        except Exception as e:
            logger.exception(f"Unexpected error merging recipes: {e}")
            return {"success": False, "error": f"Failed to merge recipes: {str(e)}"}

    async def list_groups(self, lob: Optional[str] = None) -> Dict[str, Any]:
        """Sidebar view of one business line: group keys with item counts."""
        try:
            lob = lob or self.default_lob
            registry = await self.registry_service.load()
            sidebar = sidebar_for(registry, lob)

            def _entries(entries):
                return [{"group_key": e.group_key, "item_count": e.item_count} for e in entries]

            return {
                "success": True,
                "lob": lob,
                "flavor": _entries(sidebar.flavor),
                "recon": _entries(sidebar.recon),
                "recipes": _entries(sidebar.recipes),
                "recipe_ids": [recipe.id for recipe in registry.recipes(lob)],
            }
        except Exception as e:
            logger.exception(f"Unexpected error listing rule groups: {e}")
            return {"success": False, "error": f"Failed to list rule groups: {str(e)}"}
