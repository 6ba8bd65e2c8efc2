from __future__ import annotations

import math
from typing import Optional

from ..core.exceptions import ValidationError


def require_non_empty(value: str, field_name: str, *, max_length: Optional[int] = None) -> str:
    if not value or not str(value).strip():
        raise ValidationError(f"{field_name} không hợp lệ")
    text = str(value).strip()
    _check_length(text, field_name, max_length)
    return text


def optional_text(value, field_name: str = "", *, max_length: Optional[int] = None) -> Optional[str]:
    text = str(value).strip() if value is not None else ""
    _check_length(text, field_name, max_length)
    return text or None


def _check_length(text: str, field_name: str, max_length: Optional[int]) -> None:
    if max_length is not None and len(text) > max_length:
        raise ValidationError(f"{field_name} tối đa {max_length} ký tự")


def _to_finite(value, field_name: str) -> float:
    if isinstance(value, bool):
        raise ValidationError(f"{field_name} phải là số")
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field_name} phải là số")
    if not math.isfinite(number):
        raise ValidationError(f"{field_name} phải là số hữu hạn")
    return number


def optional_number(
    value,
    field_name: str,
    *,
    low: Optional[float] = None,
    high: Optional[float] = None,
) -> Optional[float]:
    if value is None or value == "":
        return None
    number = _to_finite(value, field_name)
    if (low is not None and number < low) or (high is not None and number > high):
        raise ValidationError(f"{field_name} phải trong khoảng {low}-{high}")
    return number


def optional_int_in_range(value, field_name: str, *, low: int, high: int) -> Optional[int]:
    if value is None or value == "":
        return None
    number = _to_finite(value, f"{field_name} (số nguyên)")
    if not number.is_integer():
        raise ValidationError(f"{field_name} phải là số nguyên")
    if number < low or number > high:
        raise ValidationError(f"{field_name} phải trong khoảng {low}-{high}")
    return int(number)
