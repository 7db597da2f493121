"""Identity generation for reports and log sub-keys."""

import uuid
from collections.abc import Callable

from correlator.core.exceptions import MalformedInputError

IdFactory = Callable[[], str]


def new_report_id() -> str:
    return str(uuid.uuid4())


def new_token() -> str:
    return uuid.uuid4().hex


def parse_report_id(value: str) -> str:
    """Validate a report identity and return its canonical form."""
    if not isinstance(value, str) or not value.strip():
        raise MalformedInputError("report_id", value, "must be a non-empty string")
    try:
        return str(uuid.UUID(value.strip()))
    except ValueError as e:
        raise MalformedInputError("report_id", value, "not a UUID") from e
