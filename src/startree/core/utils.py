import itertools

_counter = itertools.count(1)


def unique_id(prefix: str = "") -> str:
    """Process-unique client id, e.g. `c12`."""
    return f"{prefix}{next(_counter)}"
