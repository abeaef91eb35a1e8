from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Job(BaseModel):
    """Job posting record. Owned by the job store; read-only here."""

    id: str
    title: str = ""
    slug: str = ""
    status: Literal["active", "archived"] = "active"
    tags: list[str] = Field(default_factory=list)
    order: int = 0
    company: str | None = None
    location: str | None = None
    type: str | None = None
    salary: str | None = None
    description: str | None = None
    requirements: list[str] = Field(default_factory=list)
    benefits: list[str] = Field(default_factory=list)
    posted_date: str | None = None
    application_deadline: str | None = None
    created_at: str | None = None
    updated_at: str | None = None

    model_config = ConfigDict(extra="allow", populate_by_name=True, alias_generator=to_camel)
