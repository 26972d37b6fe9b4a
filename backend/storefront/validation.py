from __future__ import annotations

import re
from dataclasses import dataclass, field as dc_field
from decimal import Decimal, InvalidOperation
from typing import Any, Callable

from storefront.errors import InvalidInput
from storefront.time_utils import parse_iso_datetime


EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
PINCODE_RE = re.compile(r"^\d{6}$")
# Indian mobile numbers accepted by the SMS provider
MOBILE_RE = re.compile(r"^[6-9]\d{9}$")
# Header-breaking and other non-printing characters
CONTROL_CHARS_RE = re.compile(r"[\x00-\x1f\x7f]")

MAX_PAGE_SIZE = 100
DEFAULT_PAGE_SIZE = 20

_TRUE_STRINGS = {"true", "1", "yes", "on"}
_FALSE_STRINGS = {"false", "0", "no", "off", ""}


def phone_digits(value: str) -> str:
    return re.sub(r"\D", "", value)


def is_valid_phone(value: Any) -> bool:
    """10 digits once every non-digit character is stripped."""
    return isinstance(value, str) and len(phone_digits(value)) == 10


def is_valid_pincode(value: Any) -> bool:
    return isinstance(value, str) and PINCODE_RE.match(value) is not None


def is_valid_email(value: Any) -> bool:
    return isinstance(value, str) and EMAIL_RE.match(value) is not None


def is_valid_mobile(value: Any) -> bool:
    return isinstance(value, str) and MOBILE_RE.match(value) is not None


def is_single_line(value: Any) -> bool:
    return isinstance(value, str) and CONTROL_CHARS_RE.search(value) is None


@dataclass(frozen=True)
class Field:
    """
    One input field of an endpoint schema.

    kind selects coercion and format rules:
    string, text, name, int, number, bool, datetime, list, email, phone, pincode, mobile.
    name is a single-line string (no control characters).
    """
    name: str
    kind: str = "string"
    required: bool = False
    label: str | None = None
    choices: tuple | None = None
    min_value: Any = None
    max_value: Any = None
    # min_value is exclusive unless inclusive_min is set
    inclusive_min: bool = False
    max_length: int | None = None
    min_length: int | None = None
    default: Any = None
    # Custom message for format / range / choice violations
    message: str | None = None
    upper: bool = False

    @property
    def display(self) -> str:
        return self.label or self.name


@dataclass(frozen=True)
class Schema:
    """
    Declarative per-endpoint input description.

    required_message: single message used for any missing required field
    (e.g. "All fields are required"); otherwise "<label> is required".
    checks: cross-field rules run after every field passed, each receives
    the cleaned record and raises InvalidInput.
    """
    fields: tuple[Field, ...]
    required_message: str | None = None
    checks: tuple[Callable[[dict], None], ...] = dc_field(default_factory=tuple)

    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]


def _is_missing(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str) and not value.strip():
        return True
    if isinstance(value, (list, tuple)) and not value:
        return True
    return False


def _coerce_int(f: Field, value: Any) -> int:
    # Reject bool (subclass of int), floats and scientific notation
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if "e" in stripped.lower() or "." in stripped:
            raise InvalidInput(f"{f.display} must be a whole number")
        try:
            return int(stripped)
        except ValueError:
            raise InvalidInput(f"{f.display} must be a whole number")
    if isinstance(value, float) and value.is_integer():
        return int(value)
    raise InvalidInput(f"{f.display} must be a whole number")


def _coerce_number(f: Field, value: Any) -> Decimal:
    if isinstance(value, bool):
        raise InvalidInput(f"{f.display} must be a number")
    if isinstance(value, (int, float, Decimal)):
        result = Decimal(str(value))
    elif isinstance(value, str):
        try:
            result = Decimal(value.strip())
        except InvalidOperation:
            raise InvalidInput(f"{f.display} must be a number")
    else:
        raise InvalidInput(f"{f.display} must be a number")
    if not result.is_finite():
        raise InvalidInput(f"{f.display} must be a number")
    return result


def _coerce_bool(f: Field, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in _TRUE_STRINGS:
            return True
        if lowered in _FALSE_STRINGS:
            return False
    if isinstance(value, int):
        return bool(value)
    raise InvalidInput(f"{f.display} must be true or false")


def _coerce_string(f: Field, value: Any) -> str:
    if isinstance(value, bool) or not isinstance(value, (str, int, float)):
        raise InvalidInput(f"{f.display} must be a string")
    result = str(value).strip()
    return result.upper() if f.upper else result


def _coerce(f: Field, value: Any) -> Any:
    kind = f.kind

    if kind == "int":
        return _coerce_int(f, value)

    if kind == "number":
        return _coerce_number(f, value)

    if kind == "bool":
        return _coerce_bool(f, value)

    if kind == "datetime":
        if not isinstance(value, str):
            raise InvalidInput(f"{f.display} must be an ISO-8601 date")
        try:
            parsed = parse_iso_datetime(value)
        except ValueError:
            raise InvalidInput(f"{f.display} must be an ISO-8601 date")
        if parsed is None:
            raise InvalidInput(f"{f.display} must be an ISO-8601 date")
        return parsed

    if kind == "list":
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise InvalidInput(f"{f.display} must be a list of strings")
        return [v.strip() for v in value if v.strip()]

    if kind == "email":
        result = _coerce_string(f, value).lower()
        if not is_valid_email(result):
            raise InvalidInput(f.message or "Invalid email format")
        return result

    if kind == "phone":
        result = _coerce_string(f, value)
        if not is_valid_phone(result):
            raise InvalidInput(f.message or "Invalid phone number. Please enter 10 digits")
        return result

    if kind == "mobile":
        result = _coerce_string(f, value)
        if not is_valid_mobile(result):
            raise InvalidInput(
                f.message or "Invalid phone number format. Please enter a valid Indian mobile number."
            )
        return result

    if kind == "pincode":
        result = _coerce_string(f, value)
        if not is_valid_pincode(result):
            raise InvalidInput(f.message or "Invalid pincode. Please enter 6 digits")
        return result

    if kind == "name":
        result = _coerce_string(f, value)
        if not is_single_line(result):
            raise InvalidInput(f.message or f"{f.display} contains invalid characters")
        return result

    # string / text
    return _coerce_string(f, value)


def _check_bounds(f: Field, value: Any) -> None:
    if f.choices is not None and value not in f.choices:
        raise InvalidInput(f.message or f"Invalid {f.display}")

    if f.min_value is not None:
        too_small = value < f.min_value if f.inclusive_min else value <= f.min_value
        if too_small:
            if f.message:
                raise InvalidInput(f.message)
            relation = "at least" if f.inclusive_min else "greater than"
            raise InvalidInput(f"{f.display} must be {relation} {f.min_value}")

    if f.max_value is not None and value > f.max_value:
        raise InvalidInput(f.message or f"{f.display} cannot exceed {f.max_value}")

    if isinstance(value, str):
        if f.max_length is not None and len(value) > f.max_length:
            raise InvalidInput(f"{f.display} exceeds max length {f.max_length}")
        if f.min_length is not None and len(value) < f.min_length:
            raise InvalidInput(f"{f.display} must be at least {f.min_length} characters")


def validate_value(f: Field, value: Any) -> Any:
    """Coerce and bounds-check one value outside a schema (list entries, query args)."""
    if _is_missing(value):
        raise InvalidInput(f"{f.display} is required")
    result = _coerce(f, value)
    _check_bounds(f, result)
    return result


def validate_payload(payload: Any, schema: Schema, *, partial: bool = False) -> dict:
    """
    Validate and normalize an input record against a schema.

    Fail-fast: the first violated rule raises InvalidInput and nothing else is
    checked. Required fields are checked first (in declared order), then each
    provided field's type and format, then the schema's cross-field checks.

    partial=False: create semantics; required fields enforced, defaults filled.
    partial=True: update semantics; only provided keys are validated and
    returned, so omitted fields keep their stored value.

    Unknown keys are ignored. Explicit null clears an optional field.
    """
    if payload is None:
        payload = {}
    if not isinstance(payload, dict):
        raise InvalidInput("Invalid JSON payload")

    if not partial:
        for f in schema.fields:
            if f.required and _is_missing(payload.get(f.name)):
                raise InvalidInput(schema.required_message or f"{f.display} is required")

    cleaned: dict = {}
    for f in schema.fields:
        if f.name not in payload:
            if not partial and f.default is not None:
                cleaned[f.name] = f.default() if callable(f.default) else f.default
            continue

        raw = payload[f.name]
        if _is_missing(raw) and f.kind not in ("bool", "list"):
            if f.required:
                raise InvalidInput(schema.required_message or f"{f.display} is required")
            cleaned[f.name] = None
            continue
        if raw is None:
            if f.required:
                raise InvalidInput(schema.required_message or f"{f.display} is required")
            cleaned[f.name] = None
            continue

        value = _coerce(f, raw)
        _check_bounds(f, value)
        cleaned[f.name] = value

    for check in schema.checks:
        check(cleaned)

    return cleaned


@dataclass(frozen=True)
class Pagination:
    page: int
    limit: int

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def parse_pagination(args, default_limit: int = DEFAULT_PAGE_SIZE) -> Pagination:
    try:
        page = int(args.get("page", 1))
        limit = int(args.get("limit", default_limit))
    except (TypeError, ValueError):
        raise InvalidInput("page and limit must be integers")
    if page < 1:
        raise InvalidInput("page must be at least 1")
    if limit < 1:
        raise InvalidInput("limit must be at least 1")
    return Pagination(page=page, limit=min(limit, MAX_PAGE_SIZE))


def parse_bool_arg(args, name: str) -> bool | None:
    """Optional boolean query-string filter; None when absent."""
    raw = args.get(name)
    if raw is None or raw == "":
        return None
    return _coerce_bool(Field(name), raw)


def paginate(query, pagination: Pagination) -> tuple[list, dict]:
    total = query.order_by(None).count()
    rows = query.offset(pagination.offset).limit(pagination.limit).all()
    pages = (total + pagination.limit - 1) // pagination.limit if total else 0
    return rows, {
        "page": pagination.page,
        "limit": pagination.limit,
        "total": total,
        "pages": pages,
    }
