"""
Deterministic identifiers.

Every UUID written by the converters is derived from stable content so
converting the same circuit twice produces byte-identical files.
"""

import uuid

# Fixed namespace for all generated identifiers
UUID_NAMESPACE = uuid.UUID("6f1c0b52-6a39-4b8e-9a41-3f6f0c6d2e71")


def deterministic_uuid(data: str) -> str:
    """
    Derive an 8-4-4-4-12 UUID string from ``data``.

    Args:
        data: Stable seed (e.g., "resistor_0402-pad-1")

    Returns:
        Lowercase UUID string, identical for identical seeds
    """
    return str(uuid.uuid5(UUID_NAMESPACE, data))


def format_coord(value: float) -> str:
    """Stable text form of a coordinate for use inside seeds."""
    text = f"{float(value):.4f}".rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text
