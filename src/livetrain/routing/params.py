"""Path parameter converters.

Built-in converters for route path segments like ``{id:int}``.
"""

# (regex_pattern, python_type) for each supported converter
CONVERTERS: dict[str, tuple[str, type]] = {
    "str": (r"[^/]+", str),
    "int": (r"\d+", int),
    "path": (r".+", str),
}


def parse_positive_id(value: str) -> int | None:
    """Return *value* as a positive integer, or ``None``.

    Accepts only ASCII digits, so ``"+4"``, ``" 4"`` and ``"٤"`` are
    rejected even though ``int()`` would take them.
    """
    if not value.isascii() or not value.isdigit():
        return None
    number = int(value)
    return number if number > 0 else None
