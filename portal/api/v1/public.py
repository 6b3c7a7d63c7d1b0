"""
Public read endpoints.

No sign-in needed; only records passing the visibility filter are returned,
and a hidden record looks exactly like a missing one.
"""

import uuid
from typing import List, Optional

from fastapi import APIRouter, Query

from portal.api.deps import DbSession
from portal.api.v1.content import KIND_ROUTES, KindRoutes
from portal.kernel.content.content_service import ContentService
from portal.schemas.common import PaginatedResponse
from portal.schemas.content import NoticeCategoryResponse

router = APIRouter()


@router.get("/notice-categories", response_model=List[NoticeCategoryResponse])
async def list_notice_categories(db: DbSession):
    categories = await ContentService(db).list_categories()
    return [NoticeCategoryResponse.model_validate(c) for c in categories]


def build_public_router(routes: KindRoutes) -> APIRouter:
    router = APIRouter()
    kind = routes.kind
    Response = routes.public_response_model

    @router.get("", response_model=PaginatedResponse[Response])
    async def list_public_records(
        db: DbSession,
        page: int = Query(1, ge=1),
        page_size: Optional[int] = Query(None, ge=1, le=100),
        search: Optional[str] = Query(None, max_length=200),
        category: Optional[str] = Query(None, max_length=255),
        featured: Optional[bool] = None,
    ):
        service = ContentService(db)
        items, total = await service.list_public(
            kind,
            page=page,
            page_size=page_size,
            search=search,
            category=category,
            featured=featured,
        )
        return PaginatedResponse.create(
            items=[Response.model_validate(item) for item in items],
            total=total,
            page=page,
            page_size=page_size or service.settings.public_page_size,
        )

    @router.get("/{record_id}", response_model=Response)
    async def get_public_record(record_id: uuid.UUID, db: DbSession):
        """One visible record; each read counts as a view."""
        record = await ContentService(db).get_public(kind, record_id)
        return Response.model_validate(record)

    return router


for _routes in KIND_ROUTES:
    router.include_router(build_public_router(_routes), prefix=f"/{_routes.path}")
