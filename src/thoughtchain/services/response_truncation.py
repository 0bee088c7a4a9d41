"""
Response Truncation Utility

Limits MCP response sizes to avoid filling up context windows.
Configurable via THOUGHTCHAIN_MAX_RESPONSE_SIZE environment variable.
"""

import json
import os
from typing import Any, Dict, List, Optional, Tuple

# Default max response size in bytes (20KB)
DEFAULT_MAX_RESPONSE_SIZE = 20000

# List-bearing fields that may be shortened, in the order they are tried
TRUNCATABLE_FIELDS = ("thoughts", "results", "sessions", "branches")

# Chronological lists whose most recent items are kept when shortened
TAIL_FIELDS = ("thoughts",)


def get_max_response_size() -> int:
    """Get the maximum response size from environment variable."""
    try:
        return int(os.getenv("THOUGHTCHAIN_MAX_RESPONSE_SIZE", str(DEFAULT_MAX_RESPONSE_SIZE)))
    except ValueError:
        return DEFAULT_MAX_RESPONSE_SIZE


def estimate_json_size(obj: Any) -> int:
    """Estimate the JSON-serialized size of an object."""
    try:
        return len(json.dumps(obj, default=str))
    except (TypeError, ValueError):
        # Fallback for non-serializable objects
        return len(str(obj))


def truncate_results_list(
    items: List[Any],
    max_size: int,
    base_response: Dict[str, Any],
    field: str,
    from_end: bool = False
) -> Tuple[List[Any], bool]:
    """
    Truncate a list to fit within size limit.

    Args:
        items: The list to potentially truncate
        max_size: Maximum allowed size in bytes
        base_response: The response dict without ``field`` for size calculation
        field: Name the list is stored under
        from_end: Keep the last items instead of the first, in original order

    Returns:
        Tuple of (truncated_items, was_truncated)
    """
    if not items:
        return items, False

    test_response = dict(base_response)
    test_response[field] = []
    base_size = estimate_json_size(test_response)

    # 200 bytes reserved for the _truncated note
    available_size = max_size - base_size - 200
    if available_size <= 0:
        return [], True

    kept: List[Any] = []
    current_size = 2  # "[]"
    for item in (reversed(items) if from_end else items):
        item_size = estimate_json_size(item) + 2  # ", " separator
        if current_size + item_size > available_size:
            break
        kept.append(item)
        current_size += item_size

    was_truncated = len(kept) < len(items)
    if from_end:
        kept.reverse()
    return kept, was_truncated


def truncate_response(response: Dict[str, Any], max_size: Optional[int] = None) -> Dict[str, Any]:
    """
    Truncate a response dict to fit within the size limit.

    List fields are shortened from the end, except the chronological
    ``TAIL_FIELDS`` which keep their most recent items. A ``_truncated`` note
    records how many items each field originally held and how many were
    returned.

    Args:
        response: The response dictionary to potentially truncate
        max_size: Limit in bytes; defaults to THOUGHTCHAIN_MAX_RESPONSE_SIZE

    Returns:
        The response, unchanged or truncated with a note added
    """
    if max_size is None:
        max_size = get_max_response_size()

    if estimate_json_size(response) <= max_size:
        return response

    result = dict(response)
    original_counts: Dict[str, int] = {}
    returned_counts: Dict[str, int] = {}

    for field in TRUNCATABLE_FIELDS:
        value = result.get(field)
        if not isinstance(value, list) or not value:
            continue

        base = {k: v for k, v in result.items() if k != field}
        kept, was_truncated = truncate_results_list(
            value, max_size, base, field, from_end=field in TAIL_FIELDS
        )
        if was_truncated:
            original_counts[field] = len(value)
            returned_counts[field] = len(kept)
            result[field] = kept
            if estimate_json_size(result) <= max_size:
                break

    if original_counts:
        result["_truncated"] = {
            "original_counts": original_counts,
            "returned_counts": returned_counts,
            "max_response_size": max_size,
            "message": (
                f"Response truncated to {max_size} bytes. "
                "Use limit/offset or narrower filters to see the rest."
            ),
        }
    return result
