"""Standardized API response helpers.

Every endpoint answers with the envelope::

    {"success": true, "data": {...}, "message": "..."}

List endpoints put the page under a plural key next to a pagination block:
    {"data": {"orders": [...], "pagination": {"page", "limit", "total", "pages"}}}
"""

import math
from typing import Any, Optional


def success_response(data: Any = None, message: Optional[str] = None) -> dict:
    """Wrap a payload in the success envelope."""
    body = {"success": True, "data": data}
    if message:
        body["message"] = message
    return body


def paginated_response(
    key: str,
    items: list,
    total: int,
    page: int = 1,
    limit: int = 20,
) -> dict:
    """Wrap one page of serialized items in the success envelope.

    Args:
        key: Plural name the items are published under (e.g. "orders").
        items: The page of serialized items.
        total: Total count across all pages.
        page: 1-based page number requested.
        limit: Page size requested.
    """
    return success_response({
        key: items,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": math.ceil(total / limit) if limit else 0,
        },
    })
