"""Render structured listing records as readable, indented text.

Generation prompts work better on labelled text than on raw JSON, so the
Apify output is flattened into lines like::

    Price: $1,250,000
    Living Area: 2,140
    Address:
      Street Address: 12 Elm St
      City: Springfield
    Photos: (2 items)
      - https://...

Field names are title-cased from ``camelCase`` / ``snake_case``; numbers
under keys mentioning price, fee or tax get a ``$`` prefix; booleans become
``Yes`` / ``No``; empty values are skipped.
"""

from __future__ import annotations

import re
from typing import Any

#: Top-level keys that describe the crawl rather than the listing.
SKIPPED_TOP_LEVEL_KEYS: frozenset[str] = frozenset(
    {"__typename", "url", "loadedUrl", "requestId", "requestQueueId"}
)

_MONEY_HINTS = ("price", "fee", "tax")
_CAMEL_RE = re.compile(r"([A-Z])")


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or (isinstance(value, (list, dict)) and not value)


def format_field_name(key: str) -> str:
    """``"livingAreaValue"`` -> ``"Living Area Value"``."""
    spaced = _CAMEL_RE.sub(r" \1", key).replace("_", " ")
    return " ".join(word[:1].upper() + word[1:] for word in spaced.split())


def _format_number(value: int | float) -> str:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, float):
        return f"{value:,.3f}".rstrip("0").rstrip(".")
    return f"{value:,}"


def format_value(value: Any, key: str) -> str | None:
    """Format a scalar for display, or ``None`` if it should be skipped."""
    if _is_empty(value):
        return None
    if isinstance(value, bool):
        return "Yes" if value else "No"
    if isinstance(value, (int, float)):
        text = _format_number(value)
        if any(hint in key.lower() for hint in _MONEY_HINTS):
            return f"${text}"
        return text
    if isinstance(value, str):
        return value
    return None


def _render_list(values: list[Any], key: str, depth: int, lines: list[str]) -> None:
    indent = "  " * depth
    for index, item in enumerate(values, start=1):
        if isinstance(item, (dict, list)):
            lines.append(f"{indent}  {index}.")
            if isinstance(item, dict):
                _render_mapping(item, depth + 2, lines)
            else:
                _render_list(item, key, depth + 1, lines)
        else:
            formatted = format_value(item, key)
            if formatted:
                lines.append(f"{indent}  - {formatted}")


def _render_mapping(obj: dict[str, Any], depth: int, lines: list[str]) -> None:
    indent = "  " * depth
    for key, value in obj.items():
        if _is_empty(value):
            continue
        name = format_field_name(str(key))
        if isinstance(value, dict):
            lines.append(f"{indent}{name}:")
            _render_mapping(value, depth + 1, lines)
        elif isinstance(value, list):
            lines.append(f"{indent}{name}: ({len(value)} items)")
            _render_list(value, str(key), depth, lines)
        else:
            formatted = format_value(value, str(key))
            if formatted:
                lines.append(f"{indent}{name}: {formatted}")


def _render_item(item: Any, lines: list[str]) -> None:
    if not isinstance(item, dict):
        formatted = format_value(item, "")
        if formatted:
            lines.append(formatted)
        return
    for key, value in item.items():
        if _is_empty(value) or key in SKIPPED_TOP_LEVEL_KEYS:
            continue
        name = format_field_name(str(key))
        if isinstance(value, dict):
            lines.append("")
            lines.append(f"{name}:")
            _render_mapping(value, 1, lines)
        elif isinstance(value, list):
            lines.append("")
            lines.append(f"{name}: ({len(value)} items)")
            _render_list(value, str(key), 0, lines)
        else:
            formatted = format_value(value, str(key))
            if formatted:
                lines.append(f"{name}: {formatted}")


def format_json_as_text(data: Any) -> str:
    """Render one record or a list of records as text.

    Multiple records are separated by ``--- Property N ---`` headers.
    """
    if _is_empty(data):
        return ""
    if isinstance(data, dict) and isinstance(data.get("apifyData"), list):
        data = data["apifyData"]
    items = data if isinstance(data, list) else [data]
    lines: list[str] = []
    for index, item in enumerate(items):
        if index > 0:
            lines.extend(["", f"--- Property {index + 1} ---", ""])
        _render_item(item, lines)
    return "\n".join(lines).strip()
