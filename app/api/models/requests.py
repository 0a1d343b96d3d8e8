"""
Pydantic models for API request validation.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.domain.models.import_job import CandidateBookmark


class CandidateBookmarkIn(BaseModel):
    """One bookmark as produced by an export-file parser."""

    model_config = ConfigDict(populate_by_name=True)

    url: str = Field(min_length=1, max_length=8192)
    title: str = ""
    description: str | None = None
    created_at: str | None = Field(default=None, alias="createdAt")
    source_tags: list[str] = Field(default_factory=list, alias="sourceTags")

    @field_validator("title", mode="before")
    @classmethod
    def _none_title(cls, value: object) -> object:
        return "" if value is None else value

    def to_domain(self) -> CandidateBookmark:
        return CandidateBookmark(
            url=self.url,
            title=self.title,
            description=self.description or None,
            created_at=self.created_at or None,
            source_tags=tuple(self.source_tags),
        )


class PrepareImportRequest(BaseModel):
    """Request body for preparing an import.

    Candidates arrive already parsed; ``format`` records which parser
    produced them.
    """

    format: str = Field(min_length=1, max_length=64)
    candidates: list[CandidateBookmarkIn] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
