"""
Content management endpoints for notices, news, events and research papers.

Each kind gets the same set of routes; every one of them goes through the
content service, which authorizes with the access control evaluator.
"""

import uuid
from dataclasses import dataclass
from typing import List, Optional, Type

from fastapi import APIRouter, Query, Request, status
from pydantic import BaseModel

from portal.api.deps import CurrentSession, DbSession, get_client_ip
from portal.kernel.content.content_service import ContentService
from portal.kernel.models.content import ContentStatus, EntityKind
from portal.schemas.common import PaginatedResponse, SuccessResponse
from portal.schemas.content import (
    EventCreate,
    EventResponse,
    EventUpdate,
    NewsCreate,
    NewsResponse,
    NewsUpdate,
    NoticeCategoryCreate,
    NoticeCategoryResponse,
    NoticeCreate,
    NoticeResponse,
    NoticeUpdate,
    PublicEventResponse,
    PublicNewsResponse,
    PublicNoticeResponse,
    PublicResearchPaperResponse,
    ResearchPaperCreate,
    ResearchPaperResponse,
    ResearchPaperUpdate,
    ReviewRequest,
    StatusChangeResponse,
)


@dataclass(frozen=True)
class KindRoutes:
    """URL segment and schemas of one content kind."""

    path: str
    kind: EntityKind
    create_schema: Type[BaseModel]
    update_schema: Type[BaseModel]
    response_model: Type[BaseModel]
    public_response_model: Type[BaseModel]


KIND_ROUTES = (
    KindRoutes("notices", EntityKind.NOTICE, NoticeCreate, NoticeUpdate, NoticeResponse, PublicNoticeResponse),
    KindRoutes("news", EntityKind.NEWS, NewsCreate, NewsUpdate, NewsResponse, PublicNewsResponse),
    KindRoutes("events", EntityKind.EVENT, EventCreate, EventUpdate, EventResponse, PublicEventResponse),
    KindRoutes(
        "research-papers",
        EntityKind.RESEARCH_PAPER,
        ResearchPaperCreate,
        ResearchPaperUpdate,
        ResearchPaperResponse,
        PublicResearchPaperResponse,
    ),
)


def build_router(routes: KindRoutes) -> APIRouter:
    """Management routes for one kind."""
    router = APIRouter()
    kind = routes.kind
    Response = routes.response_model
    CreateSchema = routes.create_schema
    UpdateSchema = routes.update_schema

    @router.post("", response_model=Response, status_code=status.HTTP_201_CREATED)
    async def create_record(
        request: Request,
        data: CreateSchema,
        session: CurrentSession,
        db: DbSession,
    ):
        """Create a draft."""
        record = await ContentService(db).create(
            session, kind, data.model_dump(exclude_none=True), ip_address=get_client_ip(request),
        )
        return Response.model_validate(record)

    @router.get("", response_model=PaginatedResponse[Response])
    async def list_records(
        session: CurrentSession,
        db: DbSession,
        status_filter: Optional[ContentStatus] = Query(None, alias="status"),
        search: Optional[str] = Query(None, max_length=200),
        page: int = Query(1, ge=1),
        page_size: int = Query(20, ge=1, le=100),
    ):
        """Records the caller may view privately, in any status."""
        items, total = await ContentService(db).list_private(
            session, kind, status=status_filter, search=search, page=page, page_size=page_size,
        )
        return PaginatedResponse.create(
            items=[Response.model_validate(item) for item in items],
            total=total,
            page=page,
            page_size=page_size,
        )

    @router.get("/{record_id}", response_model=Response)
    async def get_record(record_id: uuid.UUID, session: CurrentSession, db: DbSession):
        """Any-status read. Not counted as a view."""
        record = await ContentService(db).get_private(session, kind, record_id)
        return Response.model_validate(record)

    @router.get("/{record_id}/history", response_model=List[StatusChangeResponse])
    async def record_history(record_id: uuid.UUID, session: CurrentSession, db: DbSession):
        """Status changes with reviewer and notes, oldest first."""
        events = await ContentService(db).status_history(session, kind, record_id)
        return [StatusChangeResponse.from_event(e) for e in events]

    @router.patch("/{record_id}", response_model=Response)
    async def update_record(
        request: Request,
        record_id: uuid.UUID,
        data: UpdateSchema,
        session: CurrentSession,
        db: DbSession,
    ):
        record = await ContentService(db).update(
            session, kind, record_id, data.model_dump(exclude_unset=True), ip_address=get_client_ip(request),
        )
        return Response.model_validate(record)

    @router.delete("/{record_id}", response_model=SuccessResponse)
    async def delete_record(request: Request, record_id: uuid.UUID, session: CurrentSession, db: DbSession):
        await ContentService(db).delete(session, kind, record_id, ip_address=get_client_ip(request))
        return SuccessResponse(message=f"{kind.value} deleted")

    @router.post("/{record_id}/submit", response_model=Response)
    async def submit_record(request: Request, record_id: uuid.UUID, session: CurrentSession, db: DbSession):
        """draft -> pending."""
        record = await ContentService(db).submit_for_review(
            session, kind, record_id, ip_address=get_client_ip(request),
        )
        return Response.model_validate(record)

    @router.post("/{record_id}/approve", response_model=Response)
    async def approve_record(
        request: Request,
        record_id: uuid.UUID,
        session: CurrentSession,
        db: DbSession,
        data: Optional[ReviewRequest] = None,
    ):
        """pending -> published."""
        record = await ContentService(db).approve(
            session, kind, record_id,
            review_notes=data.review_notes if data else None,
            ip_address=get_client_ip(request),
        )
        return Response.model_validate(record)

    @router.post("/{record_id}/reject", response_model=Response)
    async def reject_record(
        request: Request,
        record_id: uuid.UUID,
        session: CurrentSession,
        db: DbSession,
        data: Optional[ReviewRequest] = None,
    ):
        """-> archived; review_notes required."""
        record = await ContentService(db).reject(
            session, kind, record_id,
            review_notes=data.review_notes if data else None,
            ip_address=get_client_ip(request),
        )
        return Response.model_validate(record)

    @router.post("/{record_id}/archive", response_model=Response)
    async def archive_record(
        request: Request,
        record_id: uuid.UUID,
        session: CurrentSession,
        db: DbSession,
        data: Optional[ReviewRequest] = None,
    ):
        """Retract published content."""
        record = await ContentService(db).archive(
            session, kind, record_id,
            review_notes=data.review_notes if data else None,
            ip_address=get_client_ip(request),
        )
        return Response.model_validate(record)

    return router


router = APIRouter()
for _routes in KIND_ROUTES:
    router.include_router(build_router(_routes), prefix=f"/{_routes.path}")


@router.post(
    "/notice-categories",
    response_model=NoticeCategoryResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_notice_category(
    request: Request,
    data: NoticeCategoryCreate,
    session: CurrentSession,
    db: DbSession,
):
    category = await ContentService(db).create_category(
        session,
        data.name,
        slug=data.slug,
        description=data.description,
        display_order=data.display_order,
        ip_address=get_client_ip(request),
    )
    return NoticeCategoryResponse.model_validate(category)
