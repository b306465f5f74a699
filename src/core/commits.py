"""
Commit submission - validates visitor input, builds a pending record and appends
it to the backing file.

Persistence is best-effort: when the store is missing or fails, the caller still
gets a well-formed pending record carrying the provisional hash.
"""

from typing import Optional

from util.logging import logger
from .codec import (
    CommitRecord,
    DEFAULT_ALIAS,
    HASH_LENGTH,
    MAX_MESSAGE_LENGTH,
    PENDING_MARKER,
    STATUS_PENDING,
    append_line,
    contains_delimiters,
    encode_line,
    new_hash,
    normalize_tap,
    now_timestamp,
)
from .errors import StoreError, ValidationError
from .store import ILogStore, read_modify_write

EMPTY_MESSAGE_ERROR = "El mensaje del commit es requerido."
DELIMITER_ERROR = "El mensaje o alias contiene secuencias no permitidas."


def _single_line(text: str) -> str:
    # A record must stay on one line of the backing file
    return " ".join(text.replace("\r", "\n").split("\n"))


def clean_message(raw) -> str:
    """Trim, flatten and truncate a message. Raises ValidationError when empty."""
    message = _single_line(str(raw if raw is not None else "")).strip()
    if not message:
        raise ValidationError(EMPTY_MESSAGE_ERROR)
    return message[:MAX_MESSAGE_LENGTH]


def clean_alias(raw) -> str:
    alias = _single_line(str(raw if raw is not None else "")).strip()
    # A leading marker would be read back as the pending flag
    while alias.startswith(PENDING_MARKER.strip()):
        alias = alias[len(PENDING_MARKER.strip()):].strip()
    return alias or DEFAULT_ALIAS


class CommitService:
    """Accepts visitor commits and appends them as pending lines."""

    def __init__(self, store: Optional[ILogStore], retries: int = 0, strict_delimiters: bool = False):
        self.store = store
        self.retries = retries
        self.strict_delimiters = strict_delimiters

    def build_record(self, message, alias=None, beer=None) -> CommitRecord:
        """Validate input and build the pending record (nothing is written)."""
        message = clean_message(message)
        alias = clean_alias(alias)

        if self.strict_delimiters and (contains_delimiters(message) or contains_delimiters(alias)):
            raise ValidationError(DELIMITER_ERROR)

        return CommitRecord(
            hash=new_hash(),
            tap=normalize_tap(beer),
            alias=alias,
            message=message,
            created_at=now_timestamp(),
            status=STATUS_PENDING,
        )

    def submit(self, message, alias=None, beer=None) -> CommitRecord:
        """Validate, append a pending line and return the record.

        If the store assigns a change identifier its first characters become
        the returned hash; the status is pending either way.
        """
        record = self.build_record(message, alias, beer)
        line = encode_line(record)

        if self.store is None:
            logger.log_commit_submitted(record.hash, record.tap, record.alias, persisted=False)
            return record

        try:
            change_id = read_modify_write(
                self.store,
                lambda content: append_line(content, line),
                message=f"feat(log): nuevo brindis pendiente de {record.alias}",
                author=record.alias,
                retries=self.retries,
            )
        except StoreError as e:
            logger.error(f"Commit {record.hash} was not persisted: {type(e).__name__}")
            logger.log_commit_submitted(record.hash, record.tap, record.alias, persisted=False)
            return record

        if change_id:
            record.hash = change_id[:HASH_LENGTH]

        logger.log_commit_submitted(record.hash, record.tap, record.alias, persisted=True)
        return record
