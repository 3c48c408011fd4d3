DEFAULT_PAGE_SIZE = 20


def paginate(qs, query: dict, formatter) -> dict:
    """Slice ``qs`` per ``page``/``pageSize`` and wrap it in the list envelope."""
    page = query.get('page') or 1
    page_size = query.get('pageSize') or DEFAULT_PAGE_SIZE
    total = qs.count()
    start = (page - 1) * page_size
    data = [formatter(obj) for obj in qs[start:start + page_size]]
    return {'ok': True, 'data': data, 'pagination': {'total': total, 'page': page, 'pageSize': page_size}}
