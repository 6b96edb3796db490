from typing import Optional


def parse_id(value) -> Optional[int]:
    """Integer id from a path segment or JSON value, or None when it is not one."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None
