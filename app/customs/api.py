"""
JSON response helpers shared by every blueprint.

All endpoints answer with the same envelope:
    {"success": true, "data": ...}
    {"success": false, "error": "..."}
"""

from __future__ import annotations

import math
from datetime import date, datetime
from typing import Any

from flask import Request, jsonify


def ok(data: Any = None, status: int = 200, **extra: Any):
    body: dict[str, Any] = {"success": True, "data": data}
    body.update(extra)
    return jsonify(body), status


def fail(error: str, status: int = 400, **extra: Any):
    body: dict[str, Any] = {"success": False, "error": error}
    body.update(extra)
    return jsonify(body), status


def request_payload(req: Request) -> dict[str, Any]:
    """Accept either a JSON object or an HTML form post."""
    if req.is_json:
        data = req.get_json(silent=True)
        return data if isinstance(data, dict) else {}
    return req.form.to_dict()


def clean_str(value: Any) -> str | None:
    """Strip a form/JSON value; empty strings become None."""
    if value is None:
        return None
    v = str(value).strip()
    return v or None


def parse_date(value: Any) -> date | None:
    """Parse YYYY-MM-DD (the format of <input type="date">)."""
    v = clean_str(value)
    if not v:
        return None
    try:
        return date.fromisoformat(v)
    except ValueError:
        raise ValueError(f"Invalid date: {v!r} (expected YYYY-MM-DD).")


def parse_number(value: Any, field: str) -> float | None:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValueError(f"{field} must be a number.")
    # float() also takes "nan" and "inf"
    if not math.isfinite(number):
        raise ValueError(f"{field} must be a number.")
    return number


def isoformat(value: date | datetime | None) -> str | None:
    return value.isoformat() if value is not None else None
