import uuid
from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, String, Text, func
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from portfolio_api.db.base import Base


class SlugRedirect(Base):
    """A vacated slug and the slug that replaced it.

    ``old_slug`` is unique: a slug can only ever point at one destination.
    ``new_slug`` is indexed because renames retarget every edge that points at
    the slug being vacated. Edges without a project are manually authored.
    """

    __tablename__ = "slug_redirects"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    old_slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False, index=True)
    new_slug: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    project_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("projects.id", ondelete="CASCADE"), nullable=True, index=True
    )
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=func.now(), nullable=False)
