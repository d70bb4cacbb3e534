"""
Shared module for plumbing used by the chat gateway and its CLI.

STRUCTURE:
- shared.config: Configuration
  - settings.py: Environment config (Pydantic)
  - logging.py: Structured logging and security audit helpers

- shared.infrastructure: Persistence and request plumbing
  - db.py: SQLAlchemy engine/session factory, safe_commit()
  - correlation.py: Correlation/connection IDs for log records

- shared.security: Session tokens
  - auth.py: Session token signing and verification (JWT)

IMPORT EXAMPLES:
    from shared.config.settings import settings
    from shared.config.logging import get_logger
    from shared.infrastructure.db import build_session_factory, safe_commit
    from shared.security.auth import issue_session_token, verify_session_token
"""
