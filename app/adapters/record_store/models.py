"""Pydantic models for the record store XRPC API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class RepoRecord(BaseModel):
    """A record returned by ``com.atproto.repo.listRecords``."""

    uri: str
    cid: str | None = None
    value: dict[str, Any] = Field(default_factory=dict)

    model_config = {"populate_by_name": True, "extra": "ignore"}

    @property
    def rkey(self) -> str:
        return self.uri.rsplit("/", 1)[-1]


class ListRecordsResponse(BaseModel):
    """One page of records."""

    records: list[RepoRecord] = Field(default_factory=list)
    cursor: str | None = None

    model_config = {"populate_by_name": True, "extra": "ignore"}


class CreateWrite(BaseModel):
    """A create operation inside an ``applyWrites`` request."""

    type: str = Field(default="com.atproto.repo.applyWrites#create", alias="$type")
    collection: str
    rkey: str
    value: dict[str, Any]

    model_config = {"populate_by_name": True}


class WriteOpResult(BaseModel):
    """Result entry for one operation of an ``applyWrites`` call."""

    type: str | None = Field(default=None, alias="$type")
    uri: str | None = None
    cid: str | None = None
    error: str | None = None

    model_config = {"populate_by_name": True, "extra": "ignore"}

    @property
    def ok(self) -> bool:
        return self.error is None


class ApplyWritesResponse(BaseModel):
    """Response of ``applyWrites``; ``results`` may be omitted by the server."""

    results: list[WriteOpResult] | None = None

    model_config = {"populate_by_name": True, "extra": "ignore"}


class RecordRef(BaseModel):
    """Reference returned by ``createRecord``/``putRecord``."""

    uri: str
    cid: str | None = None

    model_config = {"populate_by_name": True, "extra": "ignore"}
