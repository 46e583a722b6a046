"""
Lua module adapter for the validation predicates.

Installs the predicates into a lupa LuaRuntime as a single module table:

    local validation = require("validation")
    if not validation.validate_email(input.email) then ... end
    local ok, err = validation.validate_regex(input.code, "^[A-Z]{3}$")

Every exported function goes through the same path:

1. Arguments are read positionally and checked the way Lua's auxiliary
   library checks C function arguments (luaL_checkstring and friends).
   A call that breaks the argument contract raises ArgumentError, which
   aborts the script like any other Lua error.
2. The checked values are handed to the pure predicate in predicates.py.
3. The result is converted back to Lua values. validate_regex returns a
   single boolean when the pattern compiles, and ``false, message`` when
   it does not.

Strings that are not valid UTF-8 only reach the predicates when the runtime
hands Lua strings over as bytes, i.e. ``LuaRuntime(encoding=None)``. With
lupa's default UTF-8 decoding such strings fail before any check runs.
Keys and string results are always written as bytes, so the module works
with either kind of runtime.
"""

import logging
from typing import Any, Callable, Dict, NamedTuple, Optional, Sequence

from lupa import LuaError, lua_type

from . import predicates
from .predicates import RegexResult, ValueKind, kind_of

logger = logging.getLogger(__name__)

DEFAULT_MODULE_NAME = "validation"


class ArgumentError(LuaError):
    """A script called a validation function with arguments of the wrong type."""


def type_name(value: Any) -> str:
    """Lua type name of a value, as used in error messages."""
    kind = kind_of(value)
    if kind is ValueKind.OTHER:
        return lua_type(value) or "userdata"
    return kind.value


class Arguments:
    """Positional arguments of a single call, with Lua-style type checks."""

    def __init__(self, function_name: str, values: Sequence[Any]):
        self.function_name = function_name
        self.values = values

    def _bad_argument(self, position: int, expected: str):
        if position > len(self.values):
            got = "no value"
        else:
            got = type_name(self.values[position - 1])
        raise ArgumentError(
            f"bad argument #{position} to '{self.function_name}' "
            f"({expected} expected, got {got})"
        )

    def any(self, position: int) -> Any:
        """Any value; a missing argument reads as nil."""
        if position > len(self.values):
            return None
        return self.values[position - 1]

    def string(self, position: int):
        value = self.any(position)
        if kind_of(value) is not ValueKind.STRING:
            self._bad_argument(position, "string")
        return value

    def number(self, position: int):
        value = self.any(position)
        if kind_of(value) is not ValueKind.NUMBER:
            self._bad_argument(position, "number")
        return value

    def integer(self, position: int) -> int:
        value = self.number(position)
        if isinstance(value, float):
            if not value.is_integer():
                raise ArgumentError(
                    f"bad argument #{position} to '{self.function_name}' "
                    f"(number has no integer representation)"
                )
            return int(value)
        return value


class Export(NamedTuple):
    name: str
    arity: int
    handler: Callable[[Arguments, Dict[str, Any]], Any]


def _classifier(predicate):
    return lambda args, options: predicate(args.any(1))


def _validate_email(args: Arguments, options: Dict[str, Any]) -> bool:
    email_options = options.get("email") or {}
    return predicates.validate_email(
        args.string(1),
        allow_display_name=email_options.get("allow_display_name", True),
        allow_smtputf8=email_options.get("allow_smtputf8", True),
    )


def _validate_url(args: Arguments, options: Dict[str, Any]) -> bool:
    return predicates.validate_url(args.string(1))


def _validate_regex(args: Arguments, options: Dict[str, Any]) -> RegexResult:
    value = args.string(1)
    pattern = args.string(2)
    return predicates.validate_regex(value, pattern)


def _min_length(args: Arguments, options: Dict[str, Any]) -> bool:
    return predicates.min_length(args.string(1), args.integer(2))


def _max_length(args: Arguments, options: Dict[str, Any]) -> bool:
    return predicates.max_length(args.string(1), args.integer(2))


def _in_range(args: Arguments, options: Dict[str, Any]) -> bool:
    return predicates.in_range(args.number(1), args.number(2), args.number(3))


EXPORTS: Dict[str, Export] = {
    export.name: export
    for export in (
        Export("is_empty", 1, _classifier(predicates.is_empty)),
        Export("is_string", 1, _classifier(predicates.is_string)),
        Export("is_number", 1, _classifier(predicates.is_number)),
        Export("is_table", 1, _classifier(predicates.is_table)),
        Export("is_boolean", 1, _classifier(predicates.is_boolean)),
        Export("is_nil", 1, _classifier(predicates.is_nil)),
        Export("validate_email", 1, _validate_email),
        Export("validate_url", 1, _validate_url),
        Export("validate_regex", 2, _validate_regex),
        Export("min_length", 2, _min_length),
        Export("max_length", 2, _max_length),
        Export("in_range", 3, _in_range),
    )
}


def invoke(name: str, values: Sequence[Any], options: Optional[Dict[str, Any]] = None) -> Any:
    """
    Call an exported function with already-converted Python values.

    Returns the predicate's result unchanged (a RegexResult for
    validate_regex). Raises KeyError for an unknown name and
    ArgumentError for a contract violation.
    """
    export = EXPORTS[name]
    return export.handler(Arguments(name, values), options or {})


def to_lua_results(result: Any) -> tuple:
    """
    Values a Lua caller receives for one result.

    The regex message is bytes so that it becomes a Lua string whatever
    the runtime's encoding.
    """
    if isinstance(result, RegexResult):
        matched, message = result.as_pair()
        if message is None:
            return (matched,)
        return (matched, message.encode("utf-8"))
    return (result,)


def _lua_key(name: str) -> bytes:
    return name.encode("utf-8")


# Lua-side wrapper so every export is a real Lua function, and so that
# multiple results come back as multiple values rather than one tuple.
_WRAPPER = """
function(impl)
    local unpack = table.unpack or unpack
    return function(...)
        local results = impl(...)
        return unpack(results, 1, results.n)
    end
end
"""

_FORWARDER = "function(impl) return function(...) return impl(...) end end"


def _bind(runtime, export: Export, options: Dict[str, Any]):
    def call(*values):
        results = to_lua_results(export.handler(Arguments(export.name, values), options))
        packed = runtime.table()
        packed[b"n"] = len(results)
        for i, value in enumerate(results, 1):
            packed[i] = value
        return packed

    return runtime.eval(_WRAPPER)(call)


def loader(runtime, options: Optional[Dict[str, Any]] = None):
    """
    Build the module table for a runtime and return it.

    Args:
        runtime: lupa LuaRuntime the table is created in
        options: Merged configuration dict (see config_loader); only the
            ``email`` section is read here

    Returns:
        Lua table mapping each exported name to a Lua function
    """
    options = options or {}
    module = runtime.table()
    for name, export in EXPORTS.items():
        module[_lua_key(name)] = _bind(runtime, export, options)
    logger.debug(f"Built validation module with {len(EXPORTS)} functions")
    return module


def preload(runtime, name: str = DEFAULT_MODULE_NAME, options: Optional[Dict[str, Any]] = None) -> None:
    """
    Register the module in package.preload so scripts can require() it.

    The table is built on the first require; Lua caches it in
    package.loaded afterwards.
    """

    def load(*_):
        return loader(runtime, options)

    runtime.globals()[b"package"][b"preload"][_lua_key(name)] = runtime.eval(_FORWARDER)(load)
    logger.debug(f"Preloaded validation module as '{name}'")
