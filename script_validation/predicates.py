"""
Pure validation predicates.

These are plain typed functions with no knowledge of the Lua runtime's
calling convention. The Lua module adapter (lua_module.py) checks and
coerces script arguments, then delegates here.

Values are classified into a closed set of kinds:

    None               -> NIL
    bool               -> BOOLEAN
    int, float         -> NUMBER
    str, bytes         -> STRING
    Lua table, Mapping,
    list, tuple        -> TABLE
    anything else      -> OTHER  (functions, userdata, coroutines, ...)
"""

import enum
import string
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Optional, Tuple, Union
from urllib.parse import urlsplit

import re2
from email_validator import EmailNotValidError, validate_email as _parse_email
from lupa import lua_type

Text = Union[str, bytes]


class ValueKind(enum.Enum):
    """Runtime kind of a script value."""

    NIL = "nil"
    BOOLEAN = "boolean"
    NUMBER = "number"
    STRING = "string"
    TABLE = "table"
    OTHER = "other"


def kind_of(value: Any) -> ValueKind:
    """Classify a value by its runtime kind. Never coerces."""
    if value is None:
        return ValueKind.NIL
    # bool before int: bool is an int subclass
    if isinstance(value, bool):
        return ValueKind.BOOLEAN
    if isinstance(value, (int, float)):
        return ValueKind.NUMBER
    if isinstance(value, (str, bytes)):
        return ValueKind.STRING
    if isinstance(value, (Mapping, list, tuple)):
        return ValueKind.TABLE
    if lua_type(value) == "table":
        return ValueKind.TABLE
    return ValueKind.OTHER


def is_string(value: Any) -> bool:
    return kind_of(value) is ValueKind.STRING


def is_number(value: Any) -> bool:
    return kind_of(value) is ValueKind.NUMBER


def is_table(value: Any) -> bool:
    return kind_of(value) is ValueKind.TABLE


def is_boolean(value: Any) -> bool:
    return kind_of(value) is ValueKind.BOOLEAN


def is_nil(value: Any) -> bool:
    return kind_of(value) is ValueKind.NIL


def is_empty(value: Any) -> bool:
    """
    True for nil, a zero-length string, or a table with no entries.

    Lua tables are enumerated rather than measured with ``#``, so a table
    holding only hash keys is not empty. Every other kind is never empty,
    including ``0`` and ``False``.
    """
    kind = kind_of(value)
    if kind is ValueKind.NIL:
        return True
    if kind is ValueKind.STRING:
        return len(value) == 0
    if kind is ValueKind.TABLE:
        if isinstance(value, (Mapping, list, tuple)):
            return len(value) == 0
        for _ in value.keys():
            return False
        return True
    return False


def byte_length(value: Text) -> int:
    """Length of a string in bytes, encoding text as UTF-8."""
    if isinstance(value, bytes):
        return len(value)
    return len(value.encode("utf-8", "surrogatepass"))


def _as_text(value: Text) -> str:
    if isinstance(value, bytes):
        return value.decode("utf-8", "replace")
    return value


def _as_bytes(value: Text) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8", "surrogatepass")
    return value


# ---------------------------------------------------------------------------
# Format validators
# ---------------------------------------------------------------------------


def validate_email(
    value: Text,
    allow_display_name: bool = True,
    allow_smtputf8: bool = True,
) -> bool:
    """
    Check that value is one syntactically valid email address.

    Syntax only: no DNS lookups, and none of the deliverability rules
    (dotless and special-use domains, quoted local parts and domain
    literals are all accepted). With allow_display_name the
    ``Alice <alice@example.com>`` form is accepted.
    """
    try:
        _parse_email(
            _as_text(value),
            check_deliverability=False,
            globally_deliverable=False,
            allow_quoted_local=True,
            allow_domain_literal=True,
            allow_display_name=allow_display_name,
            allow_smtputf8=allow_smtputf8,
        )
    except EmailNotValidError:
        return False
    return True


_HEX_DIGITS = frozenset(string.hexdigits)


def _has_bad_escape(value: str) -> bool:
    i = value.find("%")
    while i != -1:
        if len(value) < i + 3 or not (
            value[i + 1] in _HEX_DIGITS and value[i + 2] in _HEX_DIGITS
        ):
            return True
        i = value.find("%", i + 3)
    return False


def validate_url(value: Text) -> bool:
    """
    Check that value is an absolute URI usable as a request target.

    A scheme is mandatory: ``example.com`` and ``/path`` are rejected.
    """
    text = _as_text(value)
    if not text or any(c.isspace() or ord(c) < 0x20 or ord(c) == 0x7F for c in text):
        return False
    if _has_bad_escape(text):
        return False

    try:
        parts = urlsplit(text)
        # port parsing is lazy; force it so a malformed port is rejected
        parts.port
    except ValueError:
        return False

    return bool(parts.scheme)


# ---------------------------------------------------------------------------
# Regular expressions
# ---------------------------------------------------------------------------


class RegexStatus(enum.Enum):
    MATCHED = "matched"
    NOT_MATCHED = "not_matched"
    PATTERN_INVALID = "pattern_invalid"


@dataclass(frozen=True)
class RegexResult:
    """Outcome of validate_regex: matched, not matched, or a broken pattern."""

    status: RegexStatus
    message: Optional[str] = None

    @property
    def matched(self) -> bool:
        return self.status is RegexStatus.MATCHED

    def as_pair(self) -> Tuple[bool, Optional[str]]:
        """
        Collapse to the two-slot (matched, error) convention.

        A broken pattern reports ``(False, message)``, never ``(None, message)``.
        """
        if self.status is RegexStatus.PATTERN_INVALID:
            return (False, self.message)
        return (self.matched, None)


def validate_regex(value: Text, pattern: Text) -> RegexResult:
    """
    Search value for pattern using RE2 syntax.

    The match is unanchored; patterns anchor themselves with ``^``/``$``.
    RE2 has no backreferences or lookaround, and such patterns fail to
    compile like any other syntax error.

    When either argument is bytes both are matched as bytes, so strings
    that are not valid UTF-8 are searched as they are.
    """
    if isinstance(value, bytes) or isinstance(pattern, bytes):
        value, pattern = _as_bytes(value), _as_bytes(pattern)

    options = re2.Options()
    # a broken pattern is an expected outcome, not something to log
    options.log_errors = False
    try:
        compiled = re2.compile(pattern, options=options)
    except re2.error as e:
        message = e.args[0] if e.args else ""
        if isinstance(message, bytes):
            message = message.decode("utf-8", "replace")
        return RegexResult(RegexStatus.PATTERN_INVALID, str(message) or "invalid pattern")

    if compiled.search(value) is not None:
        return RegexResult(RegexStatus.MATCHED)
    return RegexResult(RegexStatus.NOT_MATCHED)


# ---------------------------------------------------------------------------
# Length / range
# ---------------------------------------------------------------------------


def min_length(value: Text, minimum: int) -> bool:
    return byte_length(value) >= minimum


def max_length(value: Text, maximum: int) -> bool:
    return byte_length(value) <= maximum


def in_range(number: float, minimum: float, maximum: float) -> bool:
    """Inclusive on both ends. NaN is never in range."""
    return minimum <= number <= maximum
