"""Canonical names for status literals left over from the fixed-enum era.

Older tasks carry ``todo``/``in_progress``/``completed`` and spelling variants;
they map onto the seeded default statuses.
"""
from typing import Dict, List

TODO = "To Do"
IN_PROGRESS = "In Progress"
REVIEW = "Review"
COMPLETED = "Completed"
ON_HOLD = "On Hold"

_CANONICAL: Dict[str, str] = {
    "todo": TODO,
    "to do": TODO,
    "to_do": TODO,
    "in_progress": IN_PROGRESS,
    "in progress": IN_PROGRESS,
    "completed": COMPLETED,
    "review": REVIEW,
    "on_hold": ON_HOLD,
    "on hold": ON_HOLD,
}


def normalize_status_name(name: str) -> str:
    """Map a legacy or differently-cased status onto its canonical name.

    Unknown names come back unchanged (trimmed).
    """
    cleaned = (name or "").strip()
    return _CANONICAL.get(cleaned.lower(), cleaned)


def is_legacy_variant(name: str) -> bool:
    cleaned = (name or "").strip()
    return cleaned.lower() in _CANONICAL and _CANONICAL[cleaned.lower()] != cleaned


def variants_of(canonical: str) -> List[str]:
    """Every stored spelling that normalizes to ``canonical``, itself included."""
    names = {canonical}
    for key, value in _CANONICAL.items():
        if value == canonical:
            names.add(key)
    return sorted(names)
