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
Classification endpoints for the HTTP interface.

Stateless operations on a client-held classification set: the client sends
its current tags and receives the updated list.
"""

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from ...models.vocabulary import LineOfBusiness
from ...services.classification_service import ClassificationService
from ..dependencies import get_classification_service

router = APIRouter()
logger = logging.getLogger(__name__)


# Request Models
class ParseRequest(BaseModel):
    text: str = Field(..., description="Tag text to validate")
    lob: Optional[LineOfBusiness] = None


class SuggestRequest(BaseModel):
    """Request model for suggestions while typing."""

    text: str = Field(default="", description="Current input buffer")
    tags: List[str] = Field(default_factory=list, description="Tags already chosen")
    lob: Optional[LineOfBusiness] = None


class AddRequest(BaseModel):
    tags: List[str] = Field(default_factory=list)
    text: str = Field(..., description="Tag text to commit")
    lob: Optional[LineOfBusiness] = None


class RemoveRequest(BaseModel):
    tags: List[str] = Field(default_factory=list)
    tag: str


class ReplaceRequest(BaseModel):
    tags: List[str] = Field(default_factory=list)
    old: str = Field(..., description="Tag to replace")
    new: str = Field(..., description="Replacement text, validated like a commit")
    lob: Optional[LineOfBusiness] = None


class MergeRequest(BaseModel):
    """Request model for merging recipe tags."""

    tags: List[str] = Field(default_factory=list)
    recipe_ids: List[str] = Field(..., min_length=1, description="Recipes to merge, in order")
    lob: Optional[LineOfBusiness] = None


# Response Models
class ParseResponse(BaseModel):
    input: str
    tag: str
    semantic: bool
    key: Optional[str] = None
    values: List[str]
    parsed: Dict[str, Any]


class SuggestResponse(BaseModel):
    semantic: List[str]
    plain: List[str]
    visible: List[str]


class TagsResponse(BaseModel):
    tags: List[str]
    schedule: Dict[str, int]
    changed: bool


def _lob(value: Optional[LineOfBusiness]) -> Optional[str]:
    return value.value if value else None


def _unwrap(result: Dict[str, Any]) -> Dict[str, Any]:
    if not result["success"]:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=result["error"])
    return result


@router.post("/classifications/parse", response_model=ParseResponse)
async def parse(
    request: ParseRequest,
    service: ClassificationService = Depends(get_classification_service),
) -> ParseResponse:
    """Validate text against the rules; unmatched text is a lowercased plain label."""
    return ParseResponse(**_unwrap(await service.parse(request.text, _lob(request.lob))))


@router.post("/classifications/suggest", response_model=SuggestResponse)
async def suggest(
    request: SuggestRequest,
    service: ClassificationService = Depends(get_classification_service),
) -> SuggestResponse:
    result = _unwrap(await service.suggest(request.text, request.tags, _lob(request.lob)))
    return SuggestResponse(**result)


@router.post("/classifications/add", response_model=TagsResponse)
async def add(
    request: AddRequest,
    service: ClassificationService = Depends(get_classification_service),
) -> TagsResponse:
    return TagsResponse(**_unwrap(await service.add(request.tags, request.text, _lob(request.lob))))


@router.post("/classifications/remove", response_model=TagsResponse)
async def remove(
    request: RemoveRequest,
    service: ClassificationService = Depends(get_classification_service),
) -> TagsResponse:
    return TagsResponse(**_unwrap(await service.remove(request.tags, request.tag)))


@router.post("/classifications/replace", response_model=TagsResponse)
async def replace(
    request: ReplaceRequest,
    service: ClassificationService = Depends(get_classification_service),
) -> TagsResponse:
    result = await service.replace(request.tags, request.old, request.new, _lob(request.lob))
    return TagsResponse(**_unwrap(result))


@router.post("/classifications/merge", response_model=TagsResponse)
async def merge(
    request: MergeRequest,
    service: ClassificationService = Depends(get_classification_service),
) -> TagsResponse:
    """Merge recipe tags; singular keys replace existing values."""
    result = await service.merge(request.tags, request.recipe_ids, _lob(request.lob))
    if not result["success"] and result.get("missing"):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=result["error"])
    return TagsResponse(**_unwrap(result))
