from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class RedirectTarget(BaseModel):
    new_slug: str


class RedirectPair(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    old_slug: str
    new_slug: str


class RedirectRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    old_slug: str
    new_slug: str
    project_id: UUID | None = None
    note: str | None = None
    created_at: datetime


class RedirectGroupRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    project_id: UUID | None = None
    project_title: str | None = None
    project_slug: str | None = None
    count: int
    redirects: list[RedirectRead] = Field(default_factory=list)


class RedirectListResponse(BaseModel):
    grouped: list[RedirectGroupRead]
    total: int
    projects_affected: int


class RedirectUpsert(BaseModel):
    old_slug: str = Field(min_length=1, max_length=300)
    new_slug: str = Field(min_length=1, max_length=300)
    note: str | None = Field(default=None, max_length=500)
