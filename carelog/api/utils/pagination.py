from typing import Tuple


def page_window(page: int, limit: int) -> Tuple[int, int]:
    """Return ``(skip, limit)`` for a 1-based page number."""
    page = max(page, 1)
    return (page - 1) * limit, limit


def calculate_pagination(total: int, page: int, limit: int) -> dict:
    """
    Pagination metadata for list responses.

    Examples:
        >>> calculate_pagination(51, 2, 50)
        {'total': 51, 'page': 2, 'limit': 50, 'total_pages': 2, 'has_next': False, 'has_previous': True}
    """
    total_pages = -(-total // limit) if total > 0 else 0

    return {
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": total_pages,
        "has_next": page < total_pages,
        "has_previous": page > 1,
    }
