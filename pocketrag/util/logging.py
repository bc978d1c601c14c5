"""
Structured logging for vector store and RAG operations.
Every record is a single line: Operation, Status and an optional Details dict.
"""

import logging
from typing import Any, Dict, List, Optional

from ..core.config import debug_enabled


class StructuredLogger:
    """Structured logger for vector store, embedding and generation operations."""

    def __init__(self, name: str = "pocketrag"):
        self.logger = logging.getLogger(name)
        self.logger.setLevel(logging.DEBUG if debug_enabled() else logging.INFO)

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

        if status == "failed":
            self.logger.warning(message)
        else:
            self.logger.info(message)

    def log_vector_operation(self, operation: str, record_ids: List[str], details: Dict[str, Any] = None, status: str = "success"):
        """Log a vector store operation against a batch of record ids."""
        log_details = {"count": len(record_ids)}
        if record_ids:
            # Long batches only report a prefix of their ids
            log_details["record_ids"] = record_ids[:5] + (["..."] if len(record_ids) > 5 else [])
        if details:
            log_details.update(details)

        self.log_operation(f"vector.{operation}", status, log_details)

    def log_provider_operation(self, provider: str, operation: str, details: Dict[str, Any] = None, status: str = "success"):
        """Log an embedding or model provider lifecycle event."""
        log_details = {"provider": provider}
        if details:
            log_details.update(details)

        self.log_operation(f"provider.{operation}", status, log_details)

    def log_rag_operation(self, operation: str, details: Dict[str, Any] = None, status: str = "success"):
        """Log an orchestrator step (ingestion, retrieval, generation)."""
        self.log_operation(f"rag.{operation}", status, sanitize_payload(details) if details else None)

    def debug(self, message: str) -> None:
        """Log a debug message."""
        self.logger.debug(message)


# Global logger instance
logger = StructuredLogger()


def sanitize_payload(payload: Any, reveal_sensitive: bool = False, sensitive_fields: Optional[List[str]] = None) -> Any:
    """Sanitize payloads before they are written to the log."""
    if sensitive_fields is None:
        sensitive_fields = ['secret', 'password', 'token', 'api_key']

    if isinstance(payload, dict):
        sanitized = {}
        for k, v in payload.items():
            if reveal_sensitive or k not in sensitive_fields:
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
