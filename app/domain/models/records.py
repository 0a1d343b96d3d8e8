"""Records held in an owner's remote repository.

These are framework-agnostic views of remote records; adapters translate
wire payloads into them.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class BookmarkRecord:
    """An existing bookmark record in the owner's repository."""

    uri: str
    subject: str
    tags: tuple[str, ...] = ()
    created_at: datetime | None = None
    value: dict = field(default_factory=dict, compare=False, repr=False)

    @property
    def rkey(self) -> str:
        return self.uri.rsplit("/", 1)[-1]


@dataclass(frozen=True)
class TagRecord:
    """An existing tag record; ``value`` carries the stored casing."""

    uri: str
    value: str
    created_at: datetime | None = None

    @property
    def rkey(self) -> str:
        return self.uri.rsplit("/", 1)[-1]


@dataclass(frozen=True)
class BookmarkWrite:
    """A new bookmark to be written, with tags already canonicalized."""

    url: str
    title: str
    description: str | None
    created_at: str
    tags: tuple[str, ...] = ()


@dataclass(frozen=True)
class WriteResult:
    """Per-bookmark outcome of a batched write."""

    ok: bool
    uri: str | None = None
    error: str | None = None
