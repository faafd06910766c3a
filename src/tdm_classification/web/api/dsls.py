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
Registry endpoints for the HTTP interface.

Serves the rule/recipe registry in the load contract format and exposes the
administration operations: group create/rename/delete and rule/recipe
save/delete. Rejected operations answer with {"code", "message"} and leave
the stored registry unchanged.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, ConfigDict, Field

from ...models.registry import Recipe, Registry, RegistryFormatError, SemanticRule
from ...models.vocabulary import LineOfBusiness
from ...services import registry_admin
from ...services.classification_service import ClassificationService
from ...services.registry_admin import AdminError, AdminResult, GroupKind
from ...services.registry_service import RegistryService
from ..dependencies import get_classification_service, get_registry_service

router = APIRouter()
logger = logging.getLogger(__name__)

ADMIN_ERROR_STATUS: Dict[AdminError, int] = {
    AdminError.BLANK_NAME: status.HTTP_400_BAD_REQUEST,
    AdminError.UNCHANGED_NAME: status.HTTP_400_BAD_REQUEST,
    AdminError.NAME_TAKEN: status.HTTP_409_CONFLICT,
    AdminError.GROUP_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    AdminError.GROUP_NOT_EMPTY: status.HTTP_409_CONFLICT,
    AdminError.WRONG_GROUP_KIND: status.HTTP_400_BAD_REQUEST,
    AdminError.ITEM_NOT_FOUND: status.HTTP_404_NOT_FOUND,
    AdminError.NO_SELECTION: status.HTTP_400_BAD_REQUEST,
    AdminError.NO_DRAFT: status.HTTP_400_BAD_REQUEST,
    AdminError.SAVE_FAILED: status.HTTP_502_BAD_GATEWAY,
}


# Request Models
class CreateGroupRequest(BaseModel):
    """Request model for creating an empty group."""

    lob: LineOfBusiness = Field(..., description="Line of business the group belongs to")
    kind: GroupKind = Field(..., description="flavor, recon or recipes")


class RenameGroupRequest(BaseModel):
    name: str = Field(..., description="New group key")


class RuleRequest(BaseModel):
    """Request model for saving a semantic rule."""

    model_config = ConfigDict(populate_by_name=True)

    key: str = Field(..., description="Singular tag key, e.g. 'customer-type'")
    validation_pattern: str = Field(default="", alias="regexString", description="Validation regex")
    suggestions: List[str] = Field(default_factory=list)
    lob: Optional[LineOfBusiness] = None


class RecipeRequest(BaseModel):
    """Request model for saving a recipe."""

    name: str = Field(..., description="Display name")
    description: str = ""
    tags: List[str] = Field(default_factory=list)
    lob: Optional[LineOfBusiness] = None


# Response Models
class GroupResponse(BaseModel):
    group_key: str
    item_count: int


class SaveResponse(BaseModel):
    success: bool
    group_key: Optional[str] = None
    message: str


def _raise_for_update(outcome: Dict[str, Any]) -> AdminResult:
    """Translate a failed RegistryService.update into an HTTP error."""
    result: AdminResult = outcome["result"]
    if outcome["success"]:
        return result
    if outcome["error"] == "save":
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"code": AdminError.SAVE_FAILED.value, "message": outcome.get("message")},
        )
    raise HTTPException(
        status_code=ADMIN_ERROR_STATUS.get(result.error, status.HTTP_400_BAD_REQUEST),
        detail={"code": result.error.value, "message": result.message},
    )


async def _update(service: RegistryService, operation: Callable[[Registry], AdminResult]) -> AdminResult:
    return _raise_for_update(await service.update(operation))


# =============================================================================
# Registry snapshot
# =============================================================================

@router.get("/dsls")
async def get_dsls(service: RegistryService = Depends(get_registry_service)) -> Dict[str, Any]:
    """Return the registry in the load contract format."""
    registry = await service.load()
    return registry.to_dict()


@router.put("/dsls")
async def replace_dsls(
    payload: Dict[str, Any],
    service: RegistryService = Depends(get_registry_service),
) -> Dict[str, Any]:
    """Replace the whole registry with a grouped snapshot."""
    try:
        registry = Registry.from_dict(payload)
    except RegistryFormatError as e:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))

    saved = await service.replace(registry)
    if not saved.success:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"code": AdminError.SAVE_FAILED.value, "message": saved.error},
        )
    return registry.to_dict()


# =============================================================================
# Groups
# =============================================================================

@router.get("/dsls/groups")
async def list_groups(
    lob: Optional[LineOfBusiness] = Query(None, description="Line of business, defaults to the configured one"),
    classification_service: ClassificationService = Depends(get_classification_service),
) -> Dict[str, Any]:
    """Sidebar listing of one line of business."""
    result = await classification_service.list_groups(lob.value if lob else None)
    if not result["success"]:
        raise HTTPException(status_code=500, detail=result["error"])
    return result


@router.post("/dsls/groups", status_code=status.HTTP_201_CREATED, response_model=GroupResponse)
async def create_group(
    request: CreateGroupRequest,
    service: RegistryService = Depends(get_registry_service),
) -> GroupResponse:
    result = await _update(service, lambda r: registry_admin.create_group(r, request.lob.value, request.kind))
    return GroupResponse(group_key=result.group_key, item_count=0)


@router.patch("/dsls/groups/{group_key}", response_model=GroupResponse)
async def rename_group(
    group_key: str,
    request: RenameGroupRequest,
    service: RegistryService = Depends(get_registry_service),
) -> GroupResponse:
    """Rename a group; blank, unchanged and taken names are rejected."""
    result = await _update(service, lambda r: registry_admin.rename_group(r, group_key, request.name))
    return GroupResponse(group_key=result.group_key, item_count=result.registry.member_count(result.group_key))


@router.delete("/dsls/groups/{group_key}", response_model=SaveResponse)
async def delete_group(
    group_key: str,
    service: RegistryService = Depends(get_registry_service),
) -> SaveResponse:
    """Delete a group; only empty groups can be deleted."""
    await _update(service, lambda r: registry_admin.delete_group(r, group_key))
    return SaveResponse(success=True, group_key=group_key, message=f"Group '{group_key}' deleted")


# =============================================================================
# Rules and recipes
# =============================================================================

@router.put("/dsls/groups/{group_key}/rules/{rule_id}")
async def save_rule(
    group_key: str,
    rule_id: str,
    request: RuleRequest,
    service: RegistryService = Depends(get_registry_service),
) -> Dict[str, Any]:
    """Create or replace a rule in a rule group."""
    rule = SemanticRule(
        id=rule_id,
        key=request.key.strip(),
        validation_pattern=request.validation_pattern,
        suggestions=tuple(request.suggestions),
        line_of_business=request.lob.value if request.lob else None,
    )
    problems = registry_admin.validate_rule(rule)
    if problems:
        logger.info(f"Saving rule '{rule_id}' with warnings: {problems}")

    result = await _update(service, lambda r: registry_admin.save_rule(r, group_key, rule))
    saved = next(x for x in result.registry.rule_groups[group_key].rules if x.id == rule_id)
    return {"rule": saved.to_dict(), "warnings": problems}


@router.delete("/dsls/groups/{group_key}/rules/{rule_id}", response_model=SaveResponse)
async def delete_rule(
    group_key: str,
    rule_id: str,
    service: RegistryService = Depends(get_registry_service),
) -> SaveResponse:
    await _update(service, lambda r: registry_admin.delete_rule(r, group_key, rule_id))
    return SaveResponse(success=True, group_key=group_key, message=f"Rule '{rule_id}' deleted")


@router.put("/dsls/groups/{group_key}/recipes/{recipe_id}")
async def save_recipe(
    group_key: str,
    recipe_id: str,
    request: RecipeRequest,
    service: RegistryService = Depends(get_registry_service),
) -> Dict[str, Any]:
    """Create or replace a recipe in a recipe group."""
    recipe = Recipe(
        id=recipe_id,
        name=request.name,
        description=request.description,
        tags=tuple(request.tags),
        line_of_business=request.lob.value if request.lob else None,
    )
    result = await _update(service, lambda r: registry_admin.save_recipe(r, group_key, recipe))
    saved = next(x for x in result.registry.recipe_groups[group_key].recipes if x.id == recipe_id)
    return {"recipe": saved.to_dict()}


@router.delete("/dsls/groups/{group_key}/recipes/{recipe_id}", response_model=SaveResponse)
async def delete_recipe(
    group_key: str,
    recipe_id: str,
    service: RegistryService = Depends(get_registry_service),
) -> SaveResponse:
    await _update(service, lambda r: registry_admin.delete_recipe(r, group_key, recipe_id))
    return SaveResponse(success=True, group_key=group_key, message=f"Recipe '{recipe_id}' deleted")
