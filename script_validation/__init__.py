"""
script-validation-lib: data-validation predicates for embedded Lua scripts

This library provides a validation module for Lua scripts run through lupa:
- Type checks (is_string, is_number, is_table, is_boolean, is_nil)
- Emptiness checks (is_empty)
- Format validators (validate_email, validate_url, validate_regex)
- Length and range bounds (min_length, max_length, in_range)

Example:
    from script_validation import ScriptValidationHost

    host = ScriptValidationHost()
    host.execute('''
        local validation = require("validation")
        assert(validation.in_range(5, 1, 10))
    ''')

Installing into a runtime you already own:
    from lupa import LuaRuntime
    from script_validation import preload

    lua = LuaRuntime()
    preload(lua, "validation")
"""

from .api import ScriptValidationHost
from .lua_module import ArgumentError, loader, preload

__version__ = "0.1.0"
__all__ = ["ScriptValidationHost", "ArgumentError", "loader", "preload"]
