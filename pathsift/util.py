from typing import Any, List

def make_list(value: Any) -> List[Any]:
    # wraps a scalar into a single-element list; lists and tuples are copied.
    if value is None:
        return []
    if isinstance(value, (list, tuple)):
        return list(value)
    return [value]
