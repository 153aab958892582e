"""Pydantic models for the admin and public JSON endpoints."""
from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

SampleMode = Literal["daily", "weekly"]


class OkResponse(BaseModel):
    ok: bool = True


class MeResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    is_admin: bool = Field(alias="isAdmin")
    username: Optional[str] = None


class HealthResponse(BaseModel):
    ok: bool
    redis: str


class SummaryResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    days: int
    timezone: str = "UTC"
    total_pageviews: int = Field(alias="totalPageviews")
    total_uniques: int = Field(alias="totalUniques")
    average_pageviews: float = Field(alias="averagePageviews")
    average_uniques: float = Field(alias="averageUniques")


class SampleInfo(BaseModel):
    mode: SampleMode
    step: int


class SeriesPoint(BaseModel):
    date: str
    pageviews: int
    uniques: int


class TimeseriesResponse(BaseModel):
    days: int
    timezone: str = "UTC"
    sample: SampleInfo
    series: List[SeriesPoint]


class RepoCard(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    full_name: str = Field(alias="fullName")
    url: str
    description: Optional[str] = None
    languages: List[str] = Field(default_factory=list)
