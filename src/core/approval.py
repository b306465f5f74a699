"""
Approval workflow - moves a commit from pending to approved by rewriting its
line in the backing file.

A line is approved at most once: once the pending marker is gone the hash no
longer matches and a second approval is answered with NotFoundError.
"""

import secrets
from typing import Optional

from util.logging import logger
from .codec import approve_line, find_pending_line, replace_line
from .errors import AuthError, NotFoundError, StoreError, StoreNotConfigured, ValidationError
from .store import ILogStore, read_modify_write

MIN_HASH_LENGTH = 3

MISSING_FIELDS_ERROR = "Hash y secret requeridos."
APPROVE_FAILED_ERROR = "Error interno al aprobar."


def check_secret(provided: str, expected: Optional[str]) -> bool:
    """Exact match against the configured credential. Unset credential never matches."""
    if not expected:
        return False
    return secrets.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


class ApprovalService:
    """Approves pending commits on behalf of the administrator."""

    def __init__(self, store: Optional[ILogStore], admin_secret: Optional[str], retries: int = 0):
        self.store = store
        self.admin_secret = admin_secret
        self.retries = retries

    def approve(self, commit_hash, secret) -> str:
        """Approve the pending commit with this hash. Returns the hash."""
        commit_hash = str(commit_hash or "").strip()
        secret = str(secret or "")

        if not commit_hash or not secret or len(commit_hash) < MIN_HASH_LENGTH:
            raise ValidationError(MISSING_FIELDS_ERROR)

        if not check_secret(secret, self.admin_secret):
            logger.log_approval_decision(commit_hash, "rejected", reason="bad_secret")
            raise AuthError()

        if self.store is None:
            raise StoreNotConfigured()

        def _approve(content: str) -> str:
            found = find_pending_line(content, commit_hash)
            if found is None:
                logger.debug(f"No pending line found for hash {commit_hash}")
                raise NotFoundError()
            index, line = found
            return replace_line(content, index, approve_line(line))

        try:
            read_modify_write(
                self.store,
                _approve,
                message=f"chore(log): approve commit {commit_hash}",
                retries=self.retries,
            )
        except StoreError as e:
            logger.error(f"Approval of {commit_hash} failed: {type(e).__name__}")
            raise StoreError(APPROVE_FAILED_ERROR) from e

        logger.log_approval_decision(commit_hash, "approved")
        return commit_hash
