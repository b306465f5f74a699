"""
Error taxonomy for the commit log.
Every error carries a user-safe message and the HTTP status the API answers with.
"""


class CommitLogError(Exception):
    """Base exception for commit log operations."""

    status_code = 500
    default_message = "Error interno."

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(CommitLogError):
    """Invalid or missing request input."""
    status_code = 400
    default_message = "Payload inválido."


class AuthError(CommitLogError):
    """Administrator credential mismatch."""
    status_code = 403
    default_message = "Secret inválido."


class NotFoundError(CommitLogError):
    """No pending line matches the requested hash."""
    status_code = 404
    default_message = "Commit no encontrado o ya aprobado."


class StoreError(CommitLogError):
    """Base exception for backing store failures."""
    status_code = 500
    default_message = "Error interno del almacenamiento."


class StoreUnavailable(StoreError):
    """The store could not be reached or answered with an error."""
    pass


class StoreConflict(StoreError):
    """The version token no longer matches the stored file."""
    pass


class StoreNotConfigured(StoreError):
    """No writable store is configured."""
    default_message = "GitHub no configurado."
