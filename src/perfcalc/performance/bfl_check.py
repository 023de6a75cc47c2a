"""Balanced-field imbalance advisory."""

IMBALANCE_THRESHOLD = 0.25


def imbalance_ratio(todr_m: float, asdr_m: float) -> float:
    """|ASDR - TODR| relative to the larger of the two."""
    larger = max(todr_m, asdr_m)
    return abs(asdr_m - todr_m) / larger


def balanced_field_note(todr_m: float, asdr_m: float) -> str | None:
    """Advisory when TODR and ASDR differ by more than 25 %.

    Returns:
        A note naming the larger distance as limiting, or None when the
        distances are balanced or either is not positive.
    """
    if todr_m <= 0 or asdr_m <= 0:
        return None
    if imbalance_ratio(todr_m, asdr_m) <= IMBALANCE_THRESHOLD:
        return None
    limiting = "ASDR" if asdr_m > todr_m else "TODR"
    return f"BFL note: {limiting} limiting; review V1 selection in AFM."
