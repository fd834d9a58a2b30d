from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from portfolio_api.models.project import ProjectStatus


class ProjectCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    summary: str | None = None
    status: ProjectStatus = ProjectStatus.draft


class ProjectRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    slug: str
    title: str
    summary: str | None = None
    status: ProjectStatus
    published_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class SlugConflict(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    slug: str


class SlugAvailabilityRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    normalized_slug: str
    available: bool
    conflict: SlugConflict | None = None
    reserved_by_redirect: bool = False


class SlugRegenerateRequest(BaseModel):
    title: str | None = Field(default=None, max_length=200)
    manual_slug: str | None = Field(default=None, max_length=300)

    @model_validator(mode="after")
    def _blank_to_none(self) -> "SlugRegenerateRequest":
        if self.title is not None and not self.title.strip():
            self.title = None
        return self


class SlugChangeRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    old_slug: str
    new_slug: str
    changed: bool
