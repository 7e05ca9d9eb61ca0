"""
Similarity scoring between two field declarations.

Both scores are pure functions in [0, 1]:

- name similarity: normalized Levenshtein similarity of the field names
- position proximity: closeness of two points, each axis normalized by the
  page size, collapsing to zero at 20% of the page scale
"""

import math
import re

# ISO A4 in points, used when the true page size is unknown
A4_WIDTH = 595.0
A4_HEIGHT = 842.0

# Normalized distance at which proximity reaches zero
MAX_PROXIMITY_DISTANCE = 0.2

_SEPARATORS = re.compile(r"[_\-\s]+")


def normalize_name(name: str) -> str:
    """Lower-case a field name and drop underscores, hyphens and whitespace."""
    return _SEPARATORS.sub("", name.lower())


def edit_distance(a: str, b: str) -> int:
    """Unit-cost Levenshtein distance (insert, delete, substitute)."""
    if a == b:
        return 0
    if not a:
        return len(b)
    if not b:
        return len(a)

    # Two rolling rows of the DP table
    previous = list(range(len(b) + 1))
    for i, ca in enumerate(a, start=1):
        current = [i] + [0] * len(b)
        for j, cb in enumerate(b, start=1):
            if ca == cb:
                current[j] = previous[j - 1]
            else:
                current[j] = 1 + min(
                    previous[j],  # deletion
                    current[j - 1],  # insertion
                    previous[j - 1],  # substitution
                )
        previous = current
    return previous[-1]


def name_similarity(a: str, b: str) -> float:
    """Similarity of two field names after normalization."""
    a_norm = normalize_name(a)
    b_norm = normalize_name(b)
    longest = max(len(a_norm), len(b_norm))
    if longest == 0:
        return 1.0
    return 1.0 - edit_distance(a_norm, b_norm) / longest


def position_proximity(
    p1: tuple[float, float],
    p2: tuple[float, float],
    page_width: float = A4_WIDTH,
    page_height: float = A4_HEIGHT,
) -> float:
    """Proximity of two (x, y) points in PDF space."""
    if page_width <= 0 or page_height <= 0:
        raise ValueError("Page dimensions must be positive")

    dx = abs(p1[0] - p2[0]) / page_width
    dy = abs(p1[1] - p2[1]) / page_height
    distance = math.hypot(dx, dy)
    return max(0.0, 1.0 - distance / MAX_PROXIMITY_DISTANCE)
