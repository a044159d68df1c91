"""Conversion of configured durations into backend duration strings."""

from typing import Union

Duration = Union[int, str]


def normalize_duration(duration: Duration) -> str:
    """Return a backend-native duration string.

    Integers are milliseconds and get an ``ms`` suffix; strings are assumed
    to be already formatted (``"5s"``, ``"120m"``) and pass through.

    Example:
        >>> normalize_duration(1500)
        '1500ms'
        >>> normalize_duration("10s")
        '10s'
    """
    if isinstance(duration, bool):
        raise TypeError("duration must be an int or str, not bool")
    if isinstance(duration, int):
        return f"{duration}ms"
    return duration
