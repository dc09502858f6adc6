"""
Offset pagination for list endpoints.
"""

import math
from typing import Any, Dict, List, Tuple

from sqlalchemy.orm import Query


def paginate(query: Query, page: int, limit: int) -> Tuple[List[Any], Dict[str, Any]]:
    """
    Apply page/limit to ``query``.

    Returns:
        The page of rows and the pagination fields of the response.
    """
    total = query.count()
    items = query.offset((page - 1) * limit).limit(limit).all()
    total_pages = math.ceil(total / limit) if total else 0

    return items, {
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": total_pages,
        "has_more": page < total_pages,
    }
