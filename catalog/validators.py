"""Form validation and sanitization for catalog records.

Each field runs through a chain of steps in declaration order: trim,
presence/length checks, format parsing, enum membership, then HTML escaping.
All fields are checked on every pass so the caller gets the full list of
violations together with the sanitized values to redisplay.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Tuple, Type

from catalog.exceptions import ValidationError
from catalog.models import Kind, Status

# Same character set as validator.js escape()
_ESCAPE_TABLE = str.maketrans({
    "&": "&amp;",
    '"': "&quot;",
    "'": "&#x27;",
    "<": "&lt;",
    ">": "&gt;",
    "/": "&#x2F;",
    "\\": "&#x5C;",
    "`": "&#96;",
})


class _Violation(Exception):
    pass


@dataclass
class FieldError:
    """A single rejected field."""
    path: str
    msg: str
    value: Any = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"path": self.path, "msg": self.msg, "value": _display(self.value)}


@dataclass
class ValidationResult:
    values: Dict[str, Any]
    errors: List[FieldError] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return not self.errors

    def display_values(self) -> Dict[str, Any]:
        """Sanitized values in a JSON-friendly shape for redisplaying a form."""
        return {k: _display(v) for k, v in self.values.items()}

    def raise_for_errors(self, context: Optional[Dict[str, Any]] = None) -> None:
        if self.errors:
            raise ValidationError(self.errors, self.display_values(), context)


def _display(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, date):
        return value.isoformat()
    return value


class TextSanitizer:
    """String helpers shared by the field rules."""

    @staticmethod
    def escape(text: str) -> str:
        return text.translate(_ESCAPE_TABLE)

    @staticmethod
    def parse_iso_date(text: str) -> date:
        """Parse an ISO-8601 calendar date or date-time into a ``date``.

        A date-time keeps the calendar date as written, regardless of offset.
        """
        if len(text) == 10:
            return date.fromisoformat(text)
        return datetime.fromisoformat(text).date()


class FieldRules:
    """Rule chain for one form field."""

    def __init__(self, name: str) -> None:
        self.name = name
        self._steps: List[Tuple[str, Callable[[Any], Any]]] = []
        self._optional = False
        self._many = False

    def _each(self, value: Any, func: Callable[[Any], Any]) -> Any:
        if self._many and isinstance(value, list):
            return [func(v) for v in value]
        return func(value)

    # ------------------------- Sanitizers ------------------------- #
    def to_list(self) -> "FieldRules":
        self._many = True
        def step(value):
            if value is None or value == "":
                return []
            if isinstance(value, (list, tuple, set)):
                return [v for v in value if v is not None]
            return [value]
        self._steps.append(("sanitize", step))
        return self

    def trim(self) -> "FieldRules":
        def strip(v):
            if v is None or isinstance(v, Enum):
                return v
            return str(v).strip()
        self._steps.append(("sanitize", lambda value: self._each(value, strip)))
        return self

    def escape(self) -> "FieldRules":
        def esc(v):
            if isinstance(v, str) and not isinstance(v, Enum):
                return TextSanitizer.escape(v)
            return v
        self._steps.append(("sanitize", lambda value: self._each(value, esc)))
        return self

    def optional(self) -> "FieldRules":
        """Treat absent/empty values as valid and skip the remaining steps."""
        self._optional = True
        return self

    # ------------------------- Validators ------------------------- #
    def required(self, msg: str) -> "FieldRules":
        def check(value):
            if value is None or value == "":
                raise _Violation(msg)
            return value
        self._steps.append(("validate", check))
        return self

    def max_length(self, limit: int, msg: str) -> "FieldRules":
        def check(value):
            if value is not None and len(value) > limit:
                raise _Violation(msg)
            return value
        self._steps.append(("validate", check))
        return self

    def iso_date(self, msg: str) -> "FieldRules":
        def check(value):
            try:
                return TextSanitizer.parse_iso_date(value)
            except (TypeError, ValueError):
                raise _Violation(msg) from None
        self._steps.append(("validate", check))
        return self

    def one_of(self, choices: Type[Enum], msg: str) -> "FieldRules":
        def check(value):
            try:
                return choices(value)
            except ValueError:
                raise _Violation(msg) from None
        self._steps.append(("validate", check))
        return self

    def run(self, raw: Any) -> Tuple[Any, Optional[FieldError]]:
        """Apply the chain to ``raw``; returns (sanitized value, error or None).

        After the first violation the remaining validators are skipped but the
        sanitizers still run, so the echoed value is always escaped.
        """
        value = raw
        error: Optional[FieldError] = None
        if not self._many and isinstance(raw, (list, tuple, dict)):
            return None, FieldError(self.name, "Invalid value.", "")
        for kind, step in self._steps:
            if self._optional and kind == "validate" and (value is None or value == ""):
                return None, None
            if error is not None and kind == "validate":
                continue
            try:
                value = step(value)
            except _Violation as v:
                error = FieldError(self.name, str(v), value)
        if self._optional and value == "":
            value = None
        return value, error


RULES: Dict[Kind, List[FieldRules]] = {
    Kind.AUTHOR: [
        FieldRules("first_name").trim()
            .required("First name must be specified.")
            .max_length(100, "First name must not exceed 100 characters.")
            .escape(),
        FieldRules("family_name").trim()
            .required("Family name must be specified.")
            .max_length(100, "Family name must not exceed 100 characters.")
            .escape(),
        FieldRules("date_of_birth").trim().optional().iso_date("Invalid date of birth").escape(),
        FieldRules("date_of_death").trim().optional().iso_date("Invalid date of death").escape(),
    ],
    Kind.GENRE: [
        FieldRules("name").trim()
            .required("Genre name must be specified.")
            .max_length(100, "Genre name must not exceed 100 characters.")
            .escape(),
    ],
    Kind.BOOK: [
        FieldRules("title").trim().required("Title must not be empty.").escape(),
        FieldRules("author").trim().required("Author must not be empty.").escape(),
        FieldRules("summary").trim().escape(),
        FieldRules("isbn").trim().escape(),
        FieldRules("genres").to_list().trim().escape(),
    ],
    Kind.BOOK_INSTANCE: [
        FieldRules("book").trim().required("Book must be specified").escape(),
        FieldRules("imprint").trim().required("Imprint must be specified").escape(),
        FieldRules("status").trim()
            .required("Status must be specified")
            .one_of(Status, "Invalid status value.")
            .escape(),
        FieldRules("due_back").trim().optional().iso_date("Invalid date").escape(),
    ],
}


def validate(kind: Kind, form: Optional[Dict[str, Any]]) -> ValidationResult:
    """Run every rule chain for ``kind`` over ``form``; unknown keys are ignored."""
    form = form or {}
    values: Dict[str, Any] = {}
    errors: List[FieldError] = []
    for rules in RULES[kind]:
        value, error = rules.run(form.get(rules.name))
        values[rules.name] = value
        if error is not None:
            errors.append(error)
    # Summary and isbn are free text; keep them as strings
    for name in ("summary", "isbn"):
        if name in values and values[name] is None:
            values[name] = ""
    return ValidationResult(values=values, errors=errors)
