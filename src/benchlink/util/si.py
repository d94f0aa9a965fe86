"""Formatting of readings with SI prefixes (e.g. 0.0047 -> '4.7m')."""

import math
from typing import Optional

SI_PREFIXES = {
    "f": 1e-15,
    "p": 1e-12,
    "n": 1e-9,
    "μ": 1e-6,
    "m": 1e-3,
    "": 1e0,
    "k": 1e3,
    "M": 1e6,
    "G": 1e9,
}


def to_si_string(number: Optional[float]) -> str:
    """Format a number with the largest SI prefix not exceeding its magnitude.

    Values below 1f use the femto prefix, values above 1G use giga. Four
    significant figures are kept. None gives an empty string, NaN and
    infinities are printed without a prefix.
    """
    if number is None:
        return ""
    if number == 0:
        return "0"
    if not math.isfinite(number):
        return str(number)

    prefix, scale = "f", SI_PREFIXES["f"]
    for pfx, threshold in SI_PREFIXES.items():
        if abs(number) < threshold:
            break
        prefix, scale = pfx, threshold

    return f"{number / scale:.4g}{prefix}"
