"""Paged reads over repository queries.

Providers apply a default limit to every query, so reads that must see every
matching record walk the result set a page at a time.
"""

PAGE_SIZE = 500


def iterate(query, page_size: int | None = None):
    """Yield every record matched by ``query``, fetching ``page_size`` at a time.

    ``query`` should carry an ``order_by`` so pages do not overlap.
    """
    size = page_size or PAGE_SIZE
    offset = 0
    while True:
        items = query.offset(offset).limit(size).all().items
        yield from items
        if len(items) < size:
            return
        offset += size


def fetch_all(query, page_size: int | None = None) -> list:
    return list(iterate(query, page_size))
