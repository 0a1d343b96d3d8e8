"""Request-scoped context for the import API."""

from contextvars import ContextVar

# Set by correlation_id_middleware; read by response builders outside a request object.
correlation_id_ctx: ContextVar[str | None] = ContextVar("import_api_correlation_id", default=None)


def current_correlation_id() -> str | None:
    return correlation_id_ctx.get()
