"""Pydantic schemas for dependency edits."""

from pydantic import BaseModel, Field

from msplite.graph.normalize import LinkType

_camel = {"populate_by_name": True}


class DependencyProposal(BaseModel):
    predecessor_id: str | int | None = Field(default=None, alias="predecessorTaskId")
    successor_id: str | int | None = Field(default=None, alias="successorTaskId")

    model_config = _camel


class DependencyCreate(DependencyProposal):
    link_type: LinkType = Field(default=LinkType.FS, alias="linkType")
    lag_days: int = Field(default=0, alias="lagDays")


class DependencyUpdate(BaseModel):
    link_type: LinkType = Field(default=LinkType.FS, alias="linkType")
    lag_days: int = Field(default=0, alias="lagDays")

    model_config = _camel


class DurationUpdate(BaseModel):
    duration_days: int = Field(ge=0, alias="durationDays")

    model_config = _camel


class ProjectLoad(BaseModel):
    project_id: str | int = Field(alias="projectId")

    model_config = _camel
