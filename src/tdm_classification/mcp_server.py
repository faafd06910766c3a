#!/usr/bin/env python3
"""
MCP Server for the TDM classification service

Exposes tag parsing, suggestions, classification edits and recipe merges as
MCP tools, backed by the same registry service as the HTTP interface.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from mcp.server.fastmcp import Context, FastMCP

from .services.classification_service import ClassificationService
from .services.registry_service import RegistryService

logger = logging.getLogger(__name__)


@dataclass
class MCPServerContext:
    """Application context for the MCP server."""

    registry_service: RegistryService
    classification_service: ClassificationService


@asynccontextmanager
async def mcp_server_lifespan(server: FastMCP) -> AsyncIterator[MCPServerContext]:
    """Open the shared registry on startup and close it on shutdown."""
    from .config import DEFAULT_LOB
    from .shared_registry import close_shared_registry, get_shared_registry_service

    logger.info("Initializing TDM classification MCP components...")
    registry_service = await get_shared_registry_service()
    classification_service = ClassificationService(registry_service, default_lob=DEFAULT_LOB)

    try:
        yield MCPServerContext(registry_service=registry_service, classification_service=classification_service)
    finally:
        logger.info("Shutting down TDM classification MCP components...")
        await close_shared_registry()


mcp = FastMCP(
    name="TDM Classification Service",
    lifespan=mcp_server_lifespan,
)


def _tag_list(tags: Union[str, List[str], None]) -> List[str]:
    """Accept ["a", "b"] as well as "a,b"."""
    if tags is None:
        return []
    if isinstance(tags, str):
        return [t.strip() for t in tags.split(",") if t.strip()]
    return list(tags)


def _service(ctx: Context) -> ClassificationService:
    return ctx.request_context.lifespan_context.classification_service


# =============================================================================
# CLASSIFICATION TOOLS
# =============================================================================


@mcp.tool()
async def parse_tag(text: str, ctx: Context, lob: Optional[str] = None) -> Dict[str, Any]:
    """
    Validate a tag against the semantic rules of a line of business.

    Args:
        text: Tag text, e.g. "account:primary" or "Active account"
        lob: Line of business (CARD, BANK, FS, DFS); defaults to the configured one

    Returns:
        - tag: Normalized (lowercased, trimmed) tag
        - semantic: True when a rule accepted the text
        - key/values: Segments of the tag
    """
    return await _service(ctx).parse(text, lob)


@mcp.tool()
async def suggest_tags(
    text: str,
    ctx: Context,
    tags: Union[str, List[str], None] = None,
    lob: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Suggest completions for a partially typed tag.

    Blank input lists the "key:" category tokens. Semantic completions win
    over plain-label vocabulary matches.

    Args:
        text: Partial input
        tags: Tags already chosen (excluded from suggestions)
        lob: Line of business
    """
    return await _service(ctx).suggest(text, _tag_list(tags), lob)


@mcp.tool()
async def add_classification(
    tags: Union[str, List[str]],
    text: str,
    ctx: Context,
    lob: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Add a tag to a classification set.

    A tag whose key is configured as singular replaces the existing tag with
    that key (e.g. adding "account:secondary" drops "account:primary").

    Returns:
        - tags: The updated classification set
        - changed: Whether the set changed
    """
    return await _service(ctx).add(_tag_list(tags), text, lob)


@mcp.tool()
async def merge_recipes(
    tags: Union[str, List[str]],
    recipe_ids: Union[str, List[str]],
    ctx: Context,
    lob: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Merge the preset tags of one or more recipes into a classification set.

    Args:
        tags: Current classification set
        recipe_ids: Recipe ids to merge, in order
        lob: Line of business used to resolve singular keys
    """
    return await _service(ctx).merge(_tag_list(tags), _tag_list(recipe_ids), lob)


@mcp.tool()
async def list_rule_groups(ctx: Context, lob: Optional[str] = None) -> Dict[str, Any]:
    """
    List the flavor, recon and recipe groups of a line of business with item counts.
    """
    return await _service(ctx).list_groups(lob)
