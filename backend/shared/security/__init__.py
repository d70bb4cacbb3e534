"""
Security module: session token issuance and verification.
"""

from shared.security.auth import (
    issue_session_token,
    verify_session_token,
)

__all__ = [
    "issue_session_token",
    "verify_session_token",
]
