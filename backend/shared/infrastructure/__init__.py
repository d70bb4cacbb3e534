"""
Infrastructure module: Database plumbing and correlation IDs.

Provides:
- Engine and session factories (db.py)
- Correlation ID context for requests and connections (correlation.py)
"""

from shared.infrastructure.db import (
    create_db_engine,
    build_session_factory,
    session_scope,
    safe_commit,
)
from shared.infrastructure.correlation import (
    CorrelationIdMiddleware,
    CorrelationIdFilter,
    get_correlation_id,
    new_correlation_id,
)

__all__ = [
    # db
    "create_db_engine",
    "build_session_factory",
    "session_scope",
    "safe_commit",
    # correlation
    "CorrelationIdMiddleware",
    "CorrelationIdFilter",
    "get_correlation_id",
    "new_correlation_id",
]
