"""Category endpoints."""

from typing import Any

from fastapi import APIRouter, status

from blog_api.api.deps import AdminUser, DBSession, Services
from blog_api.api.schemas import (
    CategoryCreate,
    CategoryResponse,
    CategoryUpdate,
    SuccessResponse,
)
from blog_api.services.cache import TTL_CATEGORY_LIST, CachedRoute, cache_response

router = APIRouter(prefix="/categories", tags=["Categories"], route_class=CachedRoute)


@router.get("", response_model=list[CategoryResponse], summary="List categories")
@cache_response(TTL_CATEGORY_LIST)
async def list_categories(db: DBSession, services: Services) -> list[dict[str, Any]]:
    return await services.categories.list_categories(db)


@router.get(
    "/{id_or_slug}",
    response_model=CategoryResponse,
    summary="Get a category by id or slug",
    responses={404: {"description": "Category not found"}},
)
async def get_category(id_or_slug: str, db: DBSession, services: Services) -> dict[str, Any]:
    return await services.categories.get_category(db, id_or_slug)


@router.post(
    "",
    response_model=CategoryResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a category (admin)",
    responses={409: {"description": "Category already exists"}},
)
async def create_category(
    data: CategoryCreate,
    admin: AdminUser,
    db: DBSession,
    services: Services,
) -> dict[str, Any]:
    return await services.categories.create_category(db, data.name, data.description)


@router.put(
    "/{category_id}",
    response_model=CategoryResponse,
    summary="Update a category (admin)",
    responses={404: {"description": "Category not found"}, 409: {"description": "Name taken"}},
)
async def update_category(
    category_id: int,
    data: CategoryUpdate,
    admin: AdminUser,
    db: DBSession,
    services: Services,
) -> dict[str, Any]:
    return await services.categories.update_category(
        db, category_id, data.model_dump(exclude_unset=True)
    )


@router.delete(
    "/{category_id}",
    response_model=SuccessResponse,
    summary="Delete a category (admin); its posts become uncategorized",
)
async def delete_category(
    category_id: int,
    admin: AdminUser,
    db: DBSession,
    services: Services,
) -> SuccessResponse:
    await services.categories.delete_category(db, category_id)
    return SuccessResponse(message="Category deleted")
