"""Logging filters that enrich records with request context.

Add ``RequestIdFilter`` to a handler so JSON log lines carry the id set by
``RequestIdMiddleware``; formatters can then reference ``%(request_id)s``.
"""

from logging import Filter, LogRecord

from .middleware import REQUEST_ID_CTX


class RequestIdFilter(Filter):
    """Attach ``request_id`` to every record ("-" outside a request)."""

    def filter(self, record: LogRecord) -> bool:
        if not getattr(record, "request_id", None):
            record.request_id = REQUEST_ID_CTX.get()
        return True
