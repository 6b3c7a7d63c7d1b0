"""
Publishable content models: notices, news articles, events, research papers.

All four share the publication lifecycle columns from PublishableMixin.
"""

import uuid
from datetime import date, datetime
from enum import Enum
from typing import Any, ClassVar, List, Optional

from sqlalchemy import (
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    Text,
    Uuid,
    func,
)
from sqlalchemy.orm import Mapped, declared_attr, mapped_column

from portal.kernel.models.base import Base, TimestampMixin, generate_uuid


class ContentStatus(str, Enum):
    """Lifecycle stage of a content record."""
    DRAFT = "draft"
    PENDING = "pending"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class EntityKind(str, Enum):
    """Record kinds the access evaluator reasons about."""
    NOTICE = "notice"
    NEWS = "news"
    EVENT = "event"
    RESEARCH_PAPER = "research_paper"
    ACCOUNT = "account"


class PublicationType(str, Enum):
    JOURNAL = "journal"
    CONFERENCE = "conference"
    BOOK_CHAPTER = "book_chapter"
    PATENT = "patent"
    OTHER = "other"


class PublishableMixin(TimestampMixin):
    """Columns shared by every publishable record."""

    kind: ClassVar[EntityKind]

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
        default=generate_uuid,
    )
    status: Mapped[ContentStatus] = mapped_column(
        String(20),
        default=ContentStatus.DRAFT,
        nullable=False,
        index=True,
    )

    @declared_attr
    def created_by(cls) -> Mapped[Optional[uuid.UUID]]:
        return mapped_column(
            Uuid(),
            ForeignKey("users.id", ondelete="SET NULL"),
            nullable=True,
            index=True,
        )

    # Set once, on the first transition to published
    published_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    views: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    # Last reviewer comment from approve, reject or archive
    review_notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)


class NoticeCategory(Base):
    """Grouping for notices (exam, admission, tender, ...)."""

    __tablename__ = "notice_categories"

    id: Mapped[uuid.UUID] = mapped_column(Uuid(), primary_key=True, default=generate_uuid)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    display_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<NoticeCategory {self.slug}>"


class Notice(Base, PublishableMixin):
    __tablename__ = "notices"
    kind = EntityKind.NOTICE

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    category_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(),
        ForeignKey("notice_categories.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    target_audience: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    attachments: Mapped[List[Any]] = mapped_column(JSON, default=list, nullable=False)
    is_pinned: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_featured: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    expires_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    __table_args__ = (
        Index("ix_notices_status_published", "status", "published_at"),
    )

    def __repr__(self) -> str:
        return f"<Notice {self.title!r} {self.status}>"


class NewsArticle(Base, PublishableMixin):
    __tablename__ = "news"
    kind = EntityKind.NEWS

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    slug: Mapped[str] = mapped_column(String(500), unique=True, nullable=False, index=True)
    content: Mapped[str] = mapped_column(Text, nullable=False, default="")
    excerpt: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    featured_image: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    category: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    tags: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    is_featured: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    def __repr__(self) -> str:
        return f"<NewsArticle {self.slug} {self.status}>"


class Event(Base, PublishableMixin):
    __tablename__ = "events"
    kind = EntityKind.EVENT

    title: Mapped[str] = mapped_column(String(500), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    event_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_date: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    venue: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    organizer: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    featured_image: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    attachments: Mapped[List[Any]] = mapped_column(JSON, default=list, nullable=False)
    is_featured: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    def __repr__(self) -> str:
        return f"<Event {self.title!r} {self.status}>"


class ResearchPaper(Base, PublishableMixin):
    """A teacher's publication, reviewed by an admin before it goes public."""

    __tablename__ = "research_papers"
    kind = EntityKind.RESEARCH_PAPER

    submitted_by: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    department_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid(), nullable=True)
    publication_type: Mapped[PublicationType] = mapped_column(
        String(30),
        default=PublicationType.JOURNAL,
        nullable=False,
    )
    title: Mapped[str] = mapped_column(String(1000), nullable=False)
    authors: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    abstract: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    keywords: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    journal_conference_name: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    publisher: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)
    publication_date: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    doi_link: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    pdf_url: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    citation_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    impact_factor: Mapped[Optional[float]] = mapped_column(Float, nullable=True)

    # Review trail
    submitted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    reviewed_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
    )
    approved_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    def __repr__(self) -> str:
        return f"<ResearchPaper {self.title!r} {self.status}>"


CONTENT_MODELS = {
    EntityKind.NOTICE: Notice,
    EntityKind.NEWS: NewsArticle,
    EntityKind.EVENT: Event,
    EntityKind.RESEARCH_PAPER: ResearchPaper,
}


def model_for(kind: EntityKind) -> type:
    """Return the model class for a content kind."""
    try:
        return CONTENT_MODELS[EntityKind(kind)]
    except (KeyError, ValueError):
        raise ValueError(f"Not a content kind: {kind}") from None
