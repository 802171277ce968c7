"""Number formatting shared by the stage handlers.

Filter expressions must be byte-identical across compiles, so every
number goes through one formatter.
"""


def fmt(value: float) -> str:
    """Format a number for a filter expression (``2.0``, ``0.333333``)."""
    return repr(round(float(value), 6))


def seconds(ms: int) -> str:
    """Format milliseconds as fractional seconds."""
    return fmt(ms / 1000.0)


def between(start_ms: int, end_ms: int) -> str:
    """Timeline-gating ``enable`` option for ``[start_ms, end_ms)``."""
    return f"enable='between(t,{seconds(start_ms)},{seconds(end_ms)})'"
