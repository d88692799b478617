from flask import current_app

MAX_PAGE_SIZE = 100


def page_args(args):
    """Pull ``page`` and ``limit`` out of a request's query args."""
    page = args.get("page", 1, type=int) or 1
    limit = args.get("limit", current_app.config.get("DEFAULT_PAGE_SIZE", 10), type=int)
    return page, limit


def paginate_query(query, page, limit):
    page = max(int(page) if page else 1, 1)
    limit = min(max(int(limit) if limit else 10, 1), MAX_PAGE_SIZE)

    total = query.order_by(None).count()
    items = query.offset((page - 1) * limit).limit(limit).all()

    return items, {
        "total": total,
        "page": page,
        "limit": limit,
        "total_pages": (total + limit - 1) // limit,
    }
