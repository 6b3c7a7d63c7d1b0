"""
Content service: create, edit, delete and read publishable records.

Status changes go through the publication state machine; everything else
here is authorized by the access control evaluator before it touches the
store. Public reads go through the visibility filter and nothing else.
"""

import re
import uuid
from datetime import datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, List, Optional, Tuple

from sqlalchemy import or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from portal.config import get_settings
from portal.kernel.content.repository import ContentRepository
from portal.kernel.datastore import store_call
from portal.kernel.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
)
from portal.kernel.events.event_store import EventStore
from portal.kernel.identity.session import Session
from portal.kernel.models.base import as_utc, enum_value, utcnow
from portal.kernel.models.content import (
    ContentStatus,
    EntityKind,
    Event,
    NewsArticle,
    Notice,
    NoticeCategory,
    ResearchPaper,
    model_for,
)
from portal.kernel.models.event_log import EventType
from portal.kernel.permissions.access_control import (
    ADMIN_MANAGED_KINDS,
    ContentState,
    Operation,
    authorize,
    evaluate,
    require_session,
)
from portal.kernel.permissions.visibility import is_publicly_visible, public_visibility_clause
from portal.logging_config import get_logger
from portal.orchestration.state_machine import PublicationStateMachine

logger = get_logger(__name__)


# Fields an author may set; lifecycle columns are owned by the state machine
EDITABLE_FIELDS: Dict[EntityKind, FrozenSet[str]] = {
    EntityKind.NOTICE: frozenset({
        "title", "description", "category_id", "target_audience",
        "attachments", "is_pinned", "is_featured", "expires_at",
    }),
    EntityKind.NEWS: frozenset({
        "title", "slug", "content", "excerpt", "featured_image",
        "category", "tags", "is_featured",
    }),
    EntityKind.EVENT: frozenset({
        "title", "description", "event_date", "end_date", "venue",
        "organizer", "featured_image", "attachments", "is_featured",
    }),
    EntityKind.RESEARCH_PAPER: frozenset({
        "department_id", "publication_type", "title", "authors", "abstract",
        "keywords", "journal_conference_name", "publisher", "publication_date",
        "doi_link", "pdf_url", "citation_count", "impact_factor",
    }),
}

REQUIRED_FIELDS: Dict[EntityKind, FrozenSet[str]] = {
    EntityKind.NOTICE: frozenset({"title"}),
    EntityKind.NEWS: frozenset({"title"}),
    EntityKind.EVENT: frozenset({"title", "event_date"}),
    EntityKind.RESEARCH_PAPER: frozenset({"title"}),
}

# Filled in by the service when left empty
REGENERATED_FIELDS: FrozenSet[str] = frozenset({"slug"})

# Columns searched by the public and management listings
SEARCH_FIELDS: Dict[EntityKind, Tuple[str, ...]] = {
    EntityKind.NOTICE: ("title", "description"),
    EntityKind.NEWS: ("title", "excerpt", "content"),
    EntityKind.EVENT: ("title", "description", "venue"),
    EntityKind.RESEARCH_PAPER: ("title", "abstract", "journal_conference_name"),
}

_SLUG_STRIP = re.compile(r"[^a-z0-9]+")


def slugify(text: str) -> str:
    """Lowercase, dash-separated slug."""
    return _SLUG_STRIP.sub("-", text.lower()).strip("-") or "item"


def public_order(kind: EntityKind) -> List[Any]:
    """Ordering of public listings per kind."""
    model = model_for(kind)
    if kind == EntityKind.NOTICE:
        return [Notice.is_pinned.desc(), Notice.published_at.desc(), Notice.created_at.desc()]
    if kind == EntityKind.EVENT:
        return [Event.event_date.asc()]
    if kind == EntityKind.RESEARCH_PAPER:
        return [ResearchPaper.publication_date.desc(), ResearchPaper.published_at.desc()]
    return [model.published_at.desc(), model.created_at.desc()]


class ContentService:
    """Application operations on notices, news, events and research papers."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.event_store = EventStore(session)
        self.state_machine = PublicationStateMachine(session)
        self.settings = get_settings()

    def _repository(self, kind: EntityKind) -> ContentRepository:
        return ContentRepository.for_kind(self.session, kind)

    async def _load(self, kind: EntityKind, record_id: uuid.UUID):
        record = await self._repository(kind).get(record_id)
        if record is None:
            raise NotFoundError(f"{EntityKind(kind).value} not found")
        return record

    def _clean(self, kind: EntityKind, data: Dict[str, Any]) -> Dict[str, Any]:
        """
        Check and normalize author-supplied fields.

        Timestamps are stored as UTC; a naive value is taken to be UTC already.
        """
        unknown = set(data) - EDITABLE_FIELDS[kind]
        if unknown:
            field = sorted(unknown)[0]
            raise ValidationError(f"Field '{field}' cannot be set on a {kind.value}", field=field)
        if "title" in data and not (data["title"] or "").strip():
            raise ValidationError("Title is required", field="title")

        columns = model_for(kind).__table__.columns
        fields = {}
        for key, value in data.items():
            if value is None and key not in REGENERATED_FIELDS and not columns[key].nullable:
                raise ValidationError(f"Field '{key}' cannot be null", field=key)
            if isinstance(value, Enum):
                value = enum_value(value)
            elif isinstance(value, datetime):
                value = as_utc(value)
            fields[key] = value
        return fields

    # -- Mutations ---------------------------------------------------------

    async def create(
        self,
        actor: Optional[Session],
        kind: EntityKind,
        data: Dict[str, Any],
        ip_address: Optional[str] = None,
    ):
        """Create a draft owned by the actor."""
        kind = EntityKind(kind)
        actor = authorize(actor, Operation.CREATE, kind)
        fields = self._clean(kind, data)

        missing = sorted(REQUIRED_FIELDS[kind] - {k for k, v in fields.items() if v is not None})
        if missing:
            raise ValidationError(f"Field '{missing[0]}' is required", field=missing[0])

        if kind == EntityKind.NEWS:
            fields["slug"] = await self._unique_slug(fields.get("slug") or fields["title"])
        if kind == EntityKind.RESEARCH_PAPER:
            fields["submitted_by"] = actor.user_id

        model = model_for(kind)
        record = model(**fields, status=ContentStatus.DRAFT.value, created_by=actor.user_id)
        try:
            record = await self._repository(kind).insert(record)
        except IntegrityError as exc:
            raise ConflictError(f"A {kind.value} with these values already exists") from exc

        await self.event_store.log(
            event_type=EventType.CONTENT_CREATED,
            entity_type=kind.value,
            entity_id=record.id,
            user_id=actor.user_id,
            payload={"title": record.title},
            ip_address=ip_address,
        )
        logger.info("Content created", extra={"entity_kind": kind.value, "entity_id": str(record.id)})
        return record

    async def update(
        self,
        actor: Optional[Session],
        kind: EntityKind,
        record_id: uuid.UUID,
        data: Dict[str, Any],
        ip_address: Optional[str] = None,
    ):
        """
        Edit a record's content fields.

        Admin-managed kinds need editAny; research papers need editOwnDraft,
        which only holds while the paper is draft or pending.
        """
        kind = EntityKind(kind)
        require_session(actor)
        record = await self._load(kind, record_id)
        operation = Operation.EDIT_ANY if kind in ADMIN_MANAGED_KINDS else Operation.EDIT_OWN_DRAFT
        actor = authorize(actor, operation, kind, ContentState.of(record), entity_id=record_id)

        fields = self._clean(kind, data)
        if not fields:
            return record
        if kind == EntityKind.NEWS and "slug" in fields:
            fields["slug"] = await self._unique_slug(fields["slug"] or record.title, exclude_id=record_id)

        repository = self._repository(kind)
        try:
            written = await repository.update_fields(record_id, fields)
        except IntegrityError as exc:
            raise ConflictError(f"A {kind.value} with these values already exists") from exc
        if not written:
            raise NotFoundError(f"{kind.value} not found")

        await self.event_store.log(
            event_type=EventType.CONTENT_UPDATED,
            entity_type=kind.value,
            entity_id=record_id,
            user_id=actor.user_id,
            payload={"fields": sorted(fields)},
            ip_address=ip_address,
        )
        return await repository.get(record_id)

    async def delete(
        self,
        actor: Optional[Session],
        kind: EntityKind,
        record_id: uuid.UUID,
        ip_address: Optional[str] = None,
    ) -> None:
        kind = EntityKind(kind)
        require_session(actor)
        record = await self._load(kind, record_id)
        actor = authorize(actor, Operation.DELETE_ANY, kind, ContentState.of(record), entity_id=record_id)

        await self._repository(kind).delete(record_id)
        await self.event_store.log(
            event_type=EventType.CONTENT_DELETED,
            entity_type=kind.value,
            entity_id=record_id,
            user_id=actor.user_id,
            payload={"title": record.title, "status": record.status},
            ip_address=ip_address,
        )
        logger.info("Content deleted", extra={"entity_kind": kind.value, "entity_id": str(record_id)})

    async def submit_for_review(self, actor, kind, record_id, ip_address=None):
        return await self.state_machine.submit_for_review(actor, kind, record_id, ip_address=ip_address)

    async def approve(self, actor, kind, record_id, review_notes=None, ip_address=None):
        return await self.state_machine.approve(actor, kind, record_id, review_notes, ip_address=ip_address)

    async def reject(self, actor, kind, record_id, review_notes, ip_address=None):
        return await self.state_machine.reject(actor, kind, record_id, review_notes, ip_address=ip_address)

    async def archive(self, actor, kind, record_id, review_notes=None, ip_address=None):
        return await self.state_machine.archive(actor, kind, record_id, review_notes, ip_address=ip_address)

    # -- Authenticated reads -----------------------------------------------

    async def get_private(self, actor: Optional[Session], kind: EntityKind, record_id: uuid.UUID):
        """Any-status read for an authorized actor. Does not count as a view."""
        kind = EntityKind(kind)
        require_session(actor)
        record = await self._load(kind, record_id)
        authorize(actor, Operation.VIEW_PRIVATE, kind, ContentState.of(record), entity_id=record_id)
        return record

    async def status_history(self, actor: Optional[Session], kind: EntityKind, record_id: uuid.UUID):
        """Status changes of a record, oldest first. Same access as get_private."""
        record = await self.get_private(actor, kind, record_id)
        return await self.event_store.status_changes(EntityKind(kind).value, record.id)

    async def list_private(
        self,
        actor: Optional[Session],
        kind: EntityKind,
        *,
        status: Optional[ContentStatus] = None,
        search: Optional[str] = None,
        page: int = 1,
        page_size: Optional[int] = None,
    ) -> Tuple[list, int]:
        """
        Management listing, newest first.

        Actors who may only view their own records get only those.
        """
        kind = EntityKind(kind)
        actor = require_session(actor)
        model = model_for(kind)
        filters = []

        if not evaluate(actor, Operation.VIEW_PRIVATE, kind).allowed:
            # Owner-scoped access only
            authorize(actor, Operation.VIEW_PRIVATE, kind, ContentState(owner_id=actor.user_id))
            filters.append(model.created_by == actor.user_id)

        if status is not None:
            filters.append(model.status == ContentStatus(status).value)
        if search:
            filters.append(self._search_clause(kind, search))

        size = self._page_size(page_size)
        return await self._repository(kind).list_page(
            filters=filters,
            order_by=[model.created_at.desc()],
            offset=(max(page, 1) - 1) * size,
            limit=size,
        )

    # -- Public reads ------------------------------------------------------

    async def get_public(self, kind: EntityKind, record_id: uuid.UUID, now: Optional[datetime] = None):
        """
        Read one publicly visible record and count the view.

        Hidden and missing records are indistinguishable: both raise NotFoundError.
        """
        kind = EntityKind(kind)
        repository = self._repository(kind)

        record = await repository.get(record_id)
        if record is None or not is_publicly_visible(record, now):
            raise NotFoundError(f"{kind.value} not found")

        await repository.increment_views(record_id)
        return await repository.get(record_id)

    async def list_public(
        self,
        kind: EntityKind,
        *,
        page: int = 1,
        page_size: Optional[int] = None,
        search: Optional[str] = None,
        category: Optional[str] = None,
        featured: Optional[bool] = None,
        now: Optional[datetime] = None,
    ) -> Tuple[list, int]:
        """
        Publicly visible records of one kind.

        category is a notice category slug or a news category name; an
        unknown notice category gives an empty page.
        """
        kind = EntityKind(kind)
        model = model_for(kind)
        filters = [public_visibility_clause(model, now or utcnow())]

        if search:
            filters.append(self._search_clause(kind, search))

        if category:
            if kind == EntityKind.NOTICE:
                category_id = await self._category_id(category)
                if category_id is None:
                    return [], 0
                filters.append(Notice.category_id == category_id)
            elif kind == EntityKind.NEWS:
                filters.append(NewsArticle.category == category)
            else:
                raise ValidationError(f"{kind.value} has no categories", field="category")

        if featured is not None:
            if not hasattr(model, "is_featured"):
                raise ValidationError(f"{kind.value} has no featured flag", field="featured")
            filters.append(model.is_featured.is_(featured))

        size = self._page_size(page_size, default=self.settings.public_page_size)
        return await self._repository(kind).list_page(
            filters=filters,
            order_by=public_order(kind),
            offset=(max(page, 1) - 1) * size,
            limit=size,
        )

    # -- Notice categories -------------------------------------------------

    @store_call
    async def list_categories(self, include_inactive: bool = False) -> List[NoticeCategory]:
        query = select(NoticeCategory).order_by(NoticeCategory.display_order, NoticeCategory.name)
        if not include_inactive:
            query = query.where(NoticeCategory.is_active.is_(True))
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def create_category(
        self,
        actor: Optional[Session],
        name: str,
        slug: Optional[str] = None,
        description: Optional[str] = None,
        display_order: int = 0,
        ip_address: Optional[str] = None,
    ) -> NoticeCategory:
        """Categories belong to notice administration."""
        actor = authorize(actor, Operation.CREATE, EntityKind.NOTICE)
        if not name.strip():
            raise ValidationError("Name is required", field="name")

        category = NoticeCategory(
            name=name.strip(),
            slug=slugify(slug or name),
            description=description,
            display_order=display_order,
        )
        if await self._category_id(category.slug) is not None:
            raise ConflictError("Category slug already exists")
        self.session.add(category)
        await self._flush_category(category)

        await self.event_store.log(
            event_type=EventType.CATEGORY_CREATED,
            entity_type="notice_category",
            entity_id=category.id,
            user_id=actor.user_id,
            payload={"slug": category.slug},
            ip_address=ip_address,
        )
        return category

    # -- Helpers -----------------------------------------------------------

    def _page_size(self, requested: Optional[int], default: Optional[int] = None) -> int:
        size = requested or default or self.settings.public_page_size
        return max(1, min(size, self.settings.max_page_size))

    def _search_clause(self, kind: EntityKind, text: str):
        model = model_for(kind)
        pattern = f"%{text.strip()}%"
        return or_(*(getattr(model, name).ilike(pattern) for name in SEARCH_FIELDS[kind]))

    @store_call
    async def _category_id(self, slug: str) -> Optional[uuid.UUID]:
        result = await self.session.execute(
            select(NoticeCategory.id).where(
                NoticeCategory.slug == slug,
                NoticeCategory.is_active.is_(True),
            )
        )
        return result.scalar_one_or_none()

    @store_call
    async def _unique_slug(self, text: str, exclude_id: Optional[uuid.UUID] = None) -> str:
        base = slugify(text)
        candidate = base
        while True:
            query = select(NewsArticle.id).where(NewsArticle.slug == candidate)
            if exclude_id is not None:
                query = query.where(NewsArticle.id != exclude_id)
            if (await self.session.execute(query)).first() is None:
                return candidate
            candidate = f"{base}-{uuid.uuid4().hex[:6]}"

    @store_call
    async def _flush_category(self, category: NoticeCategory) -> None:
        try:
            await self.session.flush()
            await self.session.refresh(category)
        except IntegrityError as exc:
            raise ConflictError("Category slug already exists") from exc
