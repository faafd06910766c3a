"""
Unit tests for the MCP tool functions, called with a stub request context.
"""

from types import SimpleNamespace

import pytest

from tdm_classification import mcp_server
from tdm_classification.mcp_server import MCPServerContext
from tdm_classification.services.classification_service import ClassificationService
from tdm_classification.services.registry_service import RegistryService
from tdm_classification.storage.memory import InMemoryRegistryStore


@pytest.fixture
def ctx():
    registry_service = RegistryService(InMemoryRegistryStore())
    lifespan_context = MCPServerContext(
        registry_service=registry_service,
        classification_service=ClassificationService(registry_service, default_lob="BANK"),
    )
    return SimpleNamespace(request_context=SimpleNamespace(lifespan_context=lifespan_context))


class TestTagList:

    def test_comma_separated(self):
        assert mcp_server._tag_list("a, b,,c ") == ["a", "b", "c"]

    def test_list_and_none(self):
        assert mcp_server._tag_list(["a:b"]) == ["a:b"]
        assert mcp_server._tag_list(None) == []


class TestTools:

    @pytest.mark.asyncio
    async def test_parse_tag(self, ctx):
        result = await mcp_server.parse_tag("Balance:LOW", ctx)
        assert result["tag"] == "balance:low"
        assert result["semantic"]

    @pytest.mark.asyncio
    async def test_suggest_tags_excludes_chosen(self, ctx):
        result = await mcp_server.suggest_tags("balance:", ctx, tags="balance:low")
        assert result["visible"] == ["balance:high"]

    @pytest.mark.asyncio
    async def test_add_classification(self, ctx):
        result = await mcp_server.add_classification("account:primary", "account:secondary", ctx)
        assert result["tags"] == ["account:secondary"]

    @pytest.mark.asyncio
    async def test_merge_recipes(self, ctx):
        result = await mcp_server.merge_recipes([], "recipe-business-loc", ctx)
        assert result["tags"] == ["customer-type:company", "account-type:line-of-credit", "balance:high"]

    @pytest.mark.asyncio
    async def test_list_rule_groups(self, ctx):
        result = await mcp_server.list_rule_groups(ctx, lob="BANK")
        assert [g["group_key"] for g in result["recon"]] == ["TestDataReconBANK"]
