"""
UXBOX Backend - Request Parameter Coercion
===========================================

What:  Field-level validation/coercion steps and the annotated types built
       from them, used to declare every route's path, query and body schema.
How:   Each step is a pure function `value -> value` that either returns the
       (possibly coerced) value or raises ValueError. Steps are chained in
       order and attached to a type through pydantic's BeforeValidator, so a
       route declares `project: UUIDStr` instead of re-implementing parsing.
Who:   Used by uxbox.schemas.page; `validation_error_from_request` is used by
       the global RequestValidationError handler in main.py.

Available steps:
    required      rejects None
    uuid_str      UUID or hyphenated UUID string       → UUID
    integer_str   int or decimal-digit string          → int
    boolean_str   bool or "true"/"false" string        → bool
    string        str only
    integer       int only (bool rejected)
"""

import re
from typing import Annotated, Any, Callable, Dict, List, Sequence
from uuid import UUID

from fastapi.exceptions import RequestValidationError
from pydantic import BeforeValidator

from uxbox.exceptions import ValidationError

Step = Callable[[Any], Any]

_INTEGER_RE = re.compile(r"^[-+]?\d+$")
_UUID_RE = re.compile(
    r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"
)


def required(value: Any) -> Any:
    if value is None:
        raise ValueError("field is required")
    return value


def uuid_str(value: Any) -> UUID:
    if isinstance(value, UUID):
        return value
    # hyphenated 8-4-4-4-12 form only
    if isinstance(value, str) and _UUID_RE.match(value.strip()):
        return UUID(value.strip())
    raise ValueError("must be a valid uuid")


def integer_str(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError("must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str) and _INTEGER_RE.match(value.strip()):
        return int(value.strip())
    raise ValueError("must be an integer")


def boolean_str(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
    raise ValueError("must be a boolean")


def string(value: Any) -> str:
    if not isinstance(value, str):
        raise ValueError("must be a string")
    return value


def integer(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError("must be an integer")
    return value


def chain(*steps: Step) -> Step:
    """
    Compose steps into a single validator, applied left to right.

    Evaluation stops at the first failing step, so a missing value reports
    "field is required" rather than a coercion message.
    """

    def run(value: Any) -> Any:
        for step in steps:
            value = step(value)
        return value

    return run


# ── Annotated field types ─────────────────────────────────────────────────
# Optional fields are declared as `Optional[UUIDStr] = None`; `required` only
# fires when the client sent an explicit null for a mandatory field.

UUIDStr = Annotated[UUID, BeforeValidator(chain(required, uuid_str))]
IntegerStr = Annotated[int, BeforeValidator(chain(required, integer_str))]
BooleanStr = Annotated[bool, BeforeValidator(chain(required, boolean_str))]
String = Annotated[str, BeforeValidator(chain(required, string))]
Integer = Annotated[int, BeforeValidator(chain(required, integer))]
Required = Annotated[Any, BeforeValidator(required)]


# ── Error translation ─────────────────────────────────────────────────────

def _clean_message(message: str) -> str:
    # pydantic prefixes messages raised from validators
    prefix = "Value error, "
    if message.startswith(prefix):
        return message[len(prefix):]
    return message


def describe_errors(errors: Sequence[Dict[str, Any]]) -> List[Dict[str, str]]:
    """
    Flatten pydantic/FastAPI error dicts into {location, field, message}.

    `loc` tuples look like ("query", "project") or ("body", "data"); a body
    that is missing entirely or is not valid JSON reports the field "body".
    """
    described = []
    for error in errors:
        loc = [str(part) for part in error.get("loc", ())]
        location = loc[0] if loc else "request"
        field = ".".join(loc[1:]) or location
        described.append({
            "location": location,
            "field": field,
            "message": _clean_message(str(error.get("msg", "invalid value"))),
        })
    return described


def validation_error_from_request(exc: RequestValidationError) -> ValidationError:
    errors = describe_errors(exc.errors())
    fields = ", ".join(
        e["field"] if e["field"] == e["location"] else f"{e['location']}.{e['field']}"
        for e in errors
    )
    message = f"Invalid request parameters: {fields}" if fields else "Invalid request parameters"
    return ValidationError(message=message, errors=errors)
