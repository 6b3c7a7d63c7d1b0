"""
Content schemas for notices, news, events and research papers.

Public*Response models are what anonymous visitors get; the management
responses add the lifecycle and review columns.
"""

import uuid
from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from portal.kernel.models.base import as_utc
from portal.kernel.models.content import ContentStatus, PublicationType


class ContentResponseBase(BaseModel):
    """Columns every publishable record exposes publicly."""

    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    published_at: Optional[datetime] = None
    views: int = 0


class LifecycleFields(BaseModel):
    """Columns only authenticated readers see."""

    model_config = ConfigDict(from_attributes=True)

    status: ContentStatus
    created_by: Optional[uuid.UUID] = None
    created_at: datetime
    updated_at: datetime
    review_notes: Optional[str] = None


class ReviewRequest(BaseModel):
    """Body of approve, reject and archive."""

    review_notes: Optional[str] = Field(None, max_length=5000)


# ============== Notices ==============

class NoticeCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    description: str = ""
    category_id: Optional[uuid.UUID] = None
    target_audience: List[str] = Field(default_factory=list)
    attachments: List[str] = Field(default_factory=list)
    is_pinned: bool = False
    is_featured: bool = False
    expires_at: Optional[datetime] = None


class NoticeUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = None
    category_id: Optional[uuid.UUID] = None
    target_audience: Optional[List[str]] = None
    attachments: Optional[List[str]] = None
    is_pinned: Optional[bool] = None
    is_featured: Optional[bool] = None
    expires_at: Optional[datetime] = None


class PublicNoticeResponse(ContentResponseBase):
    title: str
    description: str
    category_id: Optional[uuid.UUID] = None
    target_audience: List[str] = Field(default_factory=list)
    attachments: List[str] = Field(default_factory=list)
    is_pinned: bool
    is_featured: bool
    expires_at: Optional[datetime] = None


class NoticeResponse(LifecycleFields, PublicNoticeResponse):
    pass


class NoticeCategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    slug: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    display_order: int = 0


class NoticeCategoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    slug: str
    description: Optional[str] = None
    display_order: int
    is_active: bool


# ============== News ==============

class NewsCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    slug: Optional[str] = Field(None, max_length=500)
    content: str = ""
    excerpt: Optional[str] = None
    featured_image: Optional[str] = Field(None, max_length=1000)
    category: Optional[str] = Field(None, max_length=100)
    tags: List[str] = Field(default_factory=list)
    is_featured: bool = False


class NewsUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    slug: Optional[str] = Field(None, max_length=500)
    content: Optional[str] = None
    excerpt: Optional[str] = None
    featured_image: Optional[str] = Field(None, max_length=1000)
    category: Optional[str] = Field(None, max_length=100)
    tags: Optional[List[str]] = None
    is_featured: Optional[bool] = None


class PublicNewsResponse(ContentResponseBase):
    title: str
    slug: str
    content: str
    excerpt: Optional[str] = None
    featured_image: Optional[str] = None
    category: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    is_featured: bool


class NewsResponse(LifecycleFields, PublicNewsResponse):
    pass


# ============== Events ==============

class EventCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    description: Optional[str] = None
    event_date: datetime
    end_date: Optional[datetime] = None
    venue: Optional[str] = Field(None, max_length=500)
    organizer: Optional[str] = Field(None, max_length=255)
    featured_image: Optional[str] = Field(None, max_length=1000)
    attachments: List[str] = Field(default_factory=list)
    is_featured: bool = False

    @model_validator(mode="after")
    def check_dates(self) -> "EventCreate":
        if self.end_date is not None and as_utc(self.end_date) < as_utc(self.event_date):
            raise ValueError("end_date must not be before event_date")
        return self


class EventUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=500)
    description: Optional[str] = None
    event_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    venue: Optional[str] = Field(None, max_length=500)
    organizer: Optional[str] = Field(None, max_length=255)
    featured_image: Optional[str] = Field(None, max_length=1000)
    attachments: Optional[List[str]] = None
    is_featured: Optional[bool] = None


class PublicEventResponse(ContentResponseBase):
    title: str
    description: Optional[str] = None
    event_date: datetime
    end_date: Optional[datetime] = None
    venue: Optional[str] = None
    organizer: Optional[str] = None
    featured_image: Optional[str] = None
    attachments: List[str] = Field(default_factory=list)
    is_featured: bool


class EventResponse(LifecycleFields, PublicEventResponse):
    pass


# ============== Research papers ==============

class ResearchPaperCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=1000)
    publication_type: PublicationType = PublicationType.JOURNAL
    authors: List[str] = Field(default_factory=list)
    abstract: Optional[str] = None
    keywords: List[str] = Field(default_factory=list)
    journal_conference_name: Optional[str] = Field(None, max_length=500)
    publisher: Optional[str] = Field(None, max_length=500)
    publication_date: Optional[date] = None
    doi_link: Optional[str] = Field(None, max_length=1000)
    pdf_url: Optional[str] = Field(None, max_length=1000)
    citation_count: int = Field(0, ge=0)
    impact_factor: Optional[float] = Field(None, ge=0)
    department_id: Optional[uuid.UUID] = None


class ResearchPaperUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=1000)
    publication_type: Optional[PublicationType] = None
    authors: Optional[List[str]] = None
    abstract: Optional[str] = None
    keywords: Optional[List[str]] = None
    journal_conference_name: Optional[str] = Field(None, max_length=500)
    publisher: Optional[str] = Field(None, max_length=500)
    publication_date: Optional[date] = None
    doi_link: Optional[str] = Field(None, max_length=1000)
    pdf_url: Optional[str] = Field(None, max_length=1000)
    citation_count: Optional[int] = Field(None, ge=0)
    impact_factor: Optional[float] = Field(None, ge=0)
    department_id: Optional[uuid.UUID] = None


class PublicResearchPaperResponse(ContentResponseBase):
    title: str
    publication_type: PublicationType
    authors: List[str] = Field(default_factory=list)
    abstract: Optional[str] = None
    keywords: List[str] = Field(default_factory=list)
    journal_conference_name: Optional[str] = None
    publisher: Optional[str] = None
    publication_date: Optional[date] = None
    doi_link: Optional[str] = None
    pdf_url: Optional[str] = None
    citation_count: int = 0
    impact_factor: Optional[float] = None
    submitted_by: uuid.UUID
    department_id: Optional[uuid.UUID] = None


class ResearchPaperResponse(LifecycleFields, PublicResearchPaperResponse):
    submitted_at: Optional[datetime] = None
    reviewed_by: Optional[uuid.UUID] = None
    approved_at: Optional[datetime] = None


# ============== Audit ==============

class StatusChangeResponse(BaseModel):
    """One entry of a record's publication trail."""

    from_status: ContentStatus
    to_status: ContentStatus
    operation: str
    review_notes: Optional[str] = None
    actor_id: Optional[uuid.UUID] = None
    changed_at: datetime

    @classmethod
    def from_event(cls, event) -> "StatusChangeResponse":
        payload = event.payload
        return cls(
            from_status=payload["from_status"],
            to_status=payload["to_status"],
            operation=payload["operation"],
            review_notes=payload.get("review_notes"),
            actor_id=event.user_id,
            changed_at=event.created_at,
        )
