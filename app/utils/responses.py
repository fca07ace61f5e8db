import math
from datetime import datetime, timezone
from typing import Any, Dict, Optional

# Helpers Shaping the JSON Envelope Every Endpoint Returns -> {success, message, data, timestamp}

def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()

def build_pagination(page: int, limit: int, total: int) -> Dict[str, Any]:
    total_pages = math.ceil(total / limit) if limit > 0 else 0
    return {
        "currentPage": page,
        "totalPages": total_pages,
        "totalItems": total,
        "itemsPerPage": limit,
        "hasNextPage": page < total_pages,
        "hasPrevPage": page > 1,
    }

def success_response(
    data: Any = None,
    message: str = "Success",
    pagination: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    body = {
        "success": True,
        "message": message,
        "data": data,
        "timestamp": utc_now_iso(),
    }
    if pagination is not None:
        body["pagination"] = pagination
    return body

def paged_response(items: list, page: int, limit: int, total: int, message: str = "Success") -> Dict[str, Any]:
    return success_response(items, message, build_pagination(page, limit, total))
