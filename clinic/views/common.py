import math


def paginated(key: str, items: list, total: int, page: int, limit: int) -> dict:
    """List envelope shared by the collection endpoints."""
    return {
        'ok': True,
        'results': len(items),
        'total': total,
        'pagination': {'page': page, 'limit': limit, 'pages': math.ceil(total / limit) if limit else 0},
        'data': {key: items},
    }
