"""
Output parser — the "trust but verify" seam between raw generator text and
the pipeline.

The generator usually follows instructions but may wrap JSON in code fences
or ignore the requested shape entirely.  Fences are stripped; anything else
that is not exactly the expected shape is a ``MalformedOutputError``.  No
other exception type leaves this module.

Public API
----------
strip_code_fences(raw)                -> str
parse_list(raw)                       -> List[str]
parse_record(raw, required_fields)    -> Dict[str, Any]
"""
from __future__ import annotations

import json
import logging
import re
from typing import Any, Dict, List, Mapping, Tuple

from app.services.exceptions import MalformedOutputError

logger = logging.getLogger(__name__)

_OPENING_FENCE = re.compile(r"^```[\w+-]*[ \t]*\n?")
_CLOSING_FENCE = re.compile(r"\n?```\s*$")


def strip_code_fences(raw: str) -> str:
    """Remove ```lang / ``` delimiters and surrounding whitespace."""
    if not raw:
        return ""
    text = raw.strip()
    text = _OPENING_FENCE.sub("", text, count=1)
    text = _CLOSING_FENCE.sub("", text, count=1)
    return text.strip()


def _load_json(raw: str) -> Tuple[str, Any]:
    text = strip_code_fences(raw)
    if not text:
        raise MalformedOutputError("Generator output is empty", raw_text=raw or "")
    try:
        return text, json.loads(text)
    except (json.JSONDecodeError, ValueError, RecursionError) as exc:
        logger.warning("output_parser: invalid JSON (%s). Preview: %s", exc, text[:200])
        raise MalformedOutputError(f"Generator output is not valid JSON: {exc}", raw_text=raw) from exc


def parse_list(raw: str) -> List[str]:
    """
    Parse *raw* as a JSON array of strings.

    Blank items are dropped and the rest trimmed.  A non-array, or an array
    holding anything other than strings, is malformed.
    """
    _text, value = _load_json(raw)
    if not isinstance(value, list):
        raise MalformedOutputError(
            f"Expected a JSON array, got {type(value).__name__}", raw_text=raw
        )

    items: List[str] = []
    for item in value:
        if not isinstance(item, str):
            raise MalformedOutputError(
                f"Expected an array of strings, found {type(item).__name__}", raw_text=raw
            )
        item = item.strip()
        if item:
            items.append(item)
    return items


def _matches(value: Any, expected: type) -> bool:
    # bool is an int subclass; keep them apart
    if expected is int:
        return isinstance(value, int) and not isinstance(value, bool)
    if expected is list:
        return isinstance(value, list) and all(isinstance(v, str) for v in value)
    return isinstance(value, expected)


def parse_record(raw: str, required_fields: Mapping[str, type]) -> Dict[str, Any]:
    """
    Parse *raw* as a JSON object containing every field in *required_fields*.

    ``required_fields`` maps field name to its primitive type; ``list`` means
    "list of strings".  Extra fields are kept.
    """
    _text, value = _load_json(raw)
    if not isinstance(value, dict):
        raise MalformedOutputError(
            f"Expected a JSON object, got {type(value).__name__}", raw_text=raw
        )

    missing = [name for name in required_fields if name not in value]
    if missing:
        raise MalformedOutputError(
            f"Record is missing required field(s): {', '.join(missing)}", raw_text=raw
        )

    for name, expected in required_fields.items():
        if not _matches(value[name], expected):
            raise MalformedOutputError(
                f"Field '{name}' should be {expected.__name__}, "
                f"got {type(value[name]).__name__}",
                raw_text=raw,
            )
    return value
