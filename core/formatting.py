"""Human-readable formatting helpers."""

from __future__ import annotations

SIZE_UNITS = ("kB", "MB", "GB", "TB")
SIZE_THRESHOLD = 1000


def human_file_size(num_bytes: int | float) -> str:
    """Format a byte count using SI units.

    Examples:
        500 -> "500 B", 1500 -> "1.5 kB", 1500000 -> "1.5 MB"
    """
    if abs(num_bytes) < SIZE_THRESHOLD:
        return f"{num_bytes} B"

    value = float(num_bytes)
    unit = -1
    while True:
        value /= SIZE_THRESHOLD
        unit += 1
        if abs(value) < SIZE_THRESHOLD or unit >= len(SIZE_UNITS) - 1:
            break
    return f"{value:.1f} {SIZE_UNITS[unit]}"
