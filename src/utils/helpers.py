# ==============================================
# Common utility functions
# ==============================================

import math
from collections import Counter
from typing import Dict, Any, List, Tuple


def safe_get(dictionary: Dict, *keys, default=None) -> Any:
    """
    Safely get nested dictionary values

    Example:
        safe_get(raw, 'fields', 'assignee', 'displayName', default='Unassigned')
    """
    result = dictionary
    for key in keys:
        if isinstance(result, dict):
            result = result.get(key)
            if result is None:
                return default
        else:
            return default
    return result if result is not None else default


def top_counts(counts: Dict[str, int], limit: int) -> List[Tuple[str, int]]:
    """Most frequent values, ties kept in first-seen order"""
    return Counter(counts).most_common(limit)


def chunked(items: List[Any], size: int) -> List[List[Any]]:
    """Split a list into consecutive batches of ``size``"""
    return [items[i:i + size] for i in range(0, len(items), size)]


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves rounded up (87.5 -> 88)"""
    return int(math.floor(value + 0.5))


def normalize_labels(value: Any) -> List[str]:
    """
    Coerce a label value into a list of label strings

    A comma-separated string is split; a list must hold only strings.

    Raises:
        ValueError: If the value is neither a string nor a list of strings
    """
    if value is None:
        return []
    if isinstance(value, str):
        return [label.strip() for label in value.split(',') if label.strip()]
    if isinstance(value, (list, tuple)) and all(isinstance(label, str) for label in value):
        return [label.strip() for label in value if label.strip()]
    raise ValueError("labels must be a list of strings")
