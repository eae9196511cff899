"""Numeric parsing and display rendering shared by every formula path.

Parsing follows the spreadsheet's lenient reading of cell text:
surrounding whitespace is ignored, thousands-separator commas are
dropped, and only finite values count.  Rendering uses the shortest
round-trip digits, so ``60.0`` shows as ``60``, and switches to exponent
notation below ``1e-6`` and from ``1e21`` upward.
"""

from __future__ import annotations

import math
import re
from decimal import Decimal

_DECIMAL_RE = re.compile(r"[+-]?(?:[0-9]+\.?[0-9]*|\.[0-9]+)(?:[eE][+-]?[0-9]+)?")
_RADIX_RE = re.compile(r"0([xXoObB])([0-9A-Za-z]+)")
_RADIX_BASES = {"x": 16, "o": 8, "b": 2}

# Positional notation is used for decimal exponents in this open interval.
_MIN_POSITIONAL_EXP = -7
_MAX_POSITIONAL_EXP = 21


def parse_number(text: str) -> float | None:
    """Parse cell text as a number.

    Args:
        text: Raw text, e.g. ``" 1,234.5 "``.

    Returns:
        The finite value, or ``None`` when the text is empty or not numeric.
    """
    text = text.strip()
    if not text:
        return None
    text = text.replace(",", "").strip()
    if not text:
        # A cell made only of commas reads as zero.
        return 0.0

    if _DECIMAL_RE.fullmatch(text):
        value = float(text)
    else:
        m = _RADIX_RE.fullmatch(text)
        if not m:
            return None
        try:
            value = float(int(m.group(2), _RADIX_BASES[m.group(1).lower()]))
        except (ValueError, OverflowError):
            return None

    if not math.isfinite(value):
        return None
    return value


def format_number(value: float) -> str:
    """Render a number the way the sheet displays it.

    Examples:
        ``60.0`` -> ``"60"``, ``2.5`` -> ``"2.5"``, ``1e-7`` -> ``"1e-7"``,
        ``1e21`` -> ``"1e+21"``, ``-0.0`` -> ``"0"``.
    """
    if math.isnan(value):
        return "NaN"
    if math.isinf(value):
        return "Infinity" if value > 0 else "-Infinity"
    if value == 0:
        return "0"

    text = repr(float(value))
    if "e" not in text:
        return text[:-2] if text.endswith(".0") else text

    mantissa, exp_text = text.split("e")
    exponent = int(exp_text)
    if _MIN_POSITIONAL_EXP < exponent < _MAX_POSITIONAL_EXP:
        return format(Decimal(mantissa).scaleb(exponent), "f")
    sign = "+" if exponent > 0 else "-"
    return f"{mantissa}e{sign}{abs(exponent)}"
