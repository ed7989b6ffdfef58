def to_int(value: object) -> int | None:
    """Coerce a value to an integer if possible.

    Booleans are rejected even though they subclass ``int``; JSON payloads use
    them for flags such as ``rated``, never for numbers.

    Args:
        value: Value to coerce.

    Returns:
        Integer value or None.
    """

    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return None
    return None
