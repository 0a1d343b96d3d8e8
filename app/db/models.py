"""Peewee ORM models for the application database."""

from __future__ import annotations

import datetime as _dt
from typing import Any

import peewee
from playhouse.sqlite_ext import JSONField

from app.core.time_utils import UTC

# A proxy that will be initialised with the concrete database instance at runtime.
database_proxy: peewee.Database = peewee.DatabaseProxy()


class BaseModel(peewee.Model):
    """Base Peewee model bound to the lazily initialised database proxy."""

    def save(self, *args: Any, **kwargs: Any) -> int:
        """Keep updated_at current on every save."""
        if hasattr(self, "updated_at"):
            self.updated_at = _utcnow()
        return super().save(*args, **kwargs)

    class Meta:
        database = database_proxy
        legacy_table_names = False


def _utcnow() -> _dt.datetime:
    """Timezone-aware UTC now (avoids deprecated datetime.utcnow)."""
    return _dt.datetime.now(UTC)


class ImportJob(BaseModel):
    """A chunked bookmark import owned by one repository owner."""

    id = peewee.TextField(primary_key=True)
    owner = peewee.TextField()
    format = peewee.TextField()
    total = peewee.IntegerField(default=0)
    skipped = peewee.IntegerField(default=0)
    imported = peewee.IntegerField(default=0)
    failed = peewee.IntegerField(default=0)
    total_chunks = peewee.IntegerField(default=0)
    processed_chunks = peewee.IntegerField(default=0)
    tags_json = JSONField(default=list)
    status = peewee.TextField(default="pending")
    created_at = peewee.DateTimeField(default=_utcnow)
    updated_at = peewee.DateTimeField(default=_utcnow)

    class Meta:
        table_name = "import_jobs"
        indexes = (
            (("owner",), False),
            (("owner", "status"), False),
            (("created_at",), False),
        )


class ImportChunk(BaseModel):
    """An ordered slice of an import job's candidate bookmarks."""

    id = peewee.AutoField()
    job = peewee.ForeignKeyField(
        ImportJob, backref="chunks", on_delete="CASCADE", column_name="job_id"
    )
    chunk_index = peewee.IntegerField()
    bookmarks_json = JSONField(default=list)
    status = peewee.TextField(default="pending")
    claim_token = peewee.TextField(null=True)
    claimed_at = peewee.DateTimeField(null=True)
    created_at = peewee.DateTimeField(default=_utcnow)

    class Meta:
        table_name = "import_chunks"
        indexes = ((("job", "chunk_index"), True),)


ALL_MODELS: tuple[type[BaseModel], ...] = (
    ImportJob,
    ImportChunk,
)


def model_to_dict(model: BaseModel | None) -> dict[str, Any] | None:
    """Convert a Peewee model instance to a plain dictionary."""
    if model is None:
        return None
    data: dict[str, Any] = {}
    for field_name in model._meta.sorted_field_names:
        value = getattr(model, field_name)
        if isinstance(value, peewee.Model):
            value = value.get_id()
        data[field_name] = value
    return data
