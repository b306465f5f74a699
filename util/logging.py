"""
Structured logging for commit log operations.
"""

import logging
from typing import Any, Dict, List

SENSITIVE_FIELDS = ['secret', 'token', 'password', 'authorization', 'admin_secret', 'github_token']


class StructuredLogger:
    """Structured logger for commit submission, approval and store access."""

    def __init__(self, name: str = "commit_log"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.INFO)

        # Create handler if not already set
        if not self.logger.handlers:
            handler = logging.StreamHandler()
            formatter = logging.Formatter(
                '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    def log_operation(self, operation: str, status: str, details: Dict[str, Any] = None):
        """Log a structured operation."""
        message = f"Operation: {operation}, Status: {status}"
        if details:
            message += f", Details: {details}"

        self.logger.info(message)

    def log_commit_submitted(self, commit_hash: str, tap: str, alias: str, persisted: bool = True):
        """Log a visitor commit."""
        details = {
            "hash": commit_hash,
            "tap": tap,
            "alias": alias[:50] + "..." if len(alias) > 50 else alias,
            "persisted": persisted
        }
        status = "pending" if persisted else "not_persisted"
        self.log_operation("commit.submitted", status, details)

    def log_approval_decision(self, commit_hash: str, decision: str, reason: str = ""):
        """Log an approval attempt and its outcome."""
        details = {"hash": commit_hash, "decision": decision}
        if reason:
            details["reason"] = reason[:100]
        self.log_operation("approval.decision", decision, details)

    def log_store_operation(self, operation: str, store: str, status: str = "success", details: Dict[str, Any] = None):
        """Log a backing store read or write."""
        log_details = {"store": store}
        if details:
            log_details.update(sanitize_payload(details))

        self.log_operation(f"store.{operation}", status, log_details)

    def log_store_failure(self, operation: str, store: str, reason: str):
        """Log a failed store call. Reasons are truncated; credentials never reach here."""
        self.logger.error(
            f"Operation: store.{operation}, Status: failed, Details: {{'store': '{store}', 'reason': '{reason[:200]}'}}"
        )

    # Standard logging methods for compatibility
    def info(self, message: str) -> None:
        """Log an info message."""
        self.logger.info(message)

    def warning(self, message: str) -> None:
        """Log a warning message."""
        self.logger.warning(message)

    def error(self, message: str) -> None:
        """Log an error message."""
        self.logger.error(message)

    def debug(self, message: str) -> None:
        """Log a debug message."""
        self.logger.debug(message)


def sanitize_payload(payload: Any, reveal_sensitive: bool = False, sensitive_fields: List[str] = None) -> Any:
    """Sanitize payloads for audit logging."""
    if sensitive_fields is None:
        sensitive_fields = SENSITIVE_FIELDS

    if isinstance(payload, dict):
        sanitized = {}
        for k, v in payload.items():
            if reveal_sensitive or str(k).lower() not in sensitive_fields:
                sanitized[k] = sanitize_payload(v, reveal_sensitive, sensitive_fields)
            else:
                sanitized[k] = "[REDACTED]"
        return sanitized
    elif isinstance(payload, str):
        # Truncate long strings
        return payload[:100] + "..." if len(payload) > 100 else payload
    elif isinstance(payload, list):
        return [sanitize_payload(item, reveal_sensitive, sensitive_fields) for item in payload]
    else:
        return payload


def audit_event(event_type: str, identifiers: Dict[str, Any], payload: Dict[str, Any] = None):
    """General audit event logging with secrets redacted."""
    log_details = identifiers.copy() if identifiers else {}
    if payload:
        log_details["payload"] = sanitize_payload(payload)

    logger.log_operation(event_type.replace(".", "_"), "audit", log_details)


# Global logger instance
logger = StructuredLogger()
