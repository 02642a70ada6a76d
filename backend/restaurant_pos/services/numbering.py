"""Human-readable document numbers for orders and reservations."""

from datetime import datetime


def document_number(prefix: str, sequence: int, now: datetime) -> str:
    """``PREFIX-<epoch millis>-<4 digit sequence>``, e.g. ``ORD-1748800800000-0042``."""
    return f"{prefix}-{int(now.timestamp() * 1000)}-{sequence:04d}"
