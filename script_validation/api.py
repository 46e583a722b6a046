"""
Public API for script-validation-lib

This is the "front door": a Lua runtime with the validation module
installed and ready to require.
"""

import logging
from collections.abc import Mapping
from typing import Any, List, Optional

from lupa import LuaRuntime

from .config_loader import ConfigLoader
from .lua_module import EXPORTS, preload

logger = logging.getLogger(__name__)

_REQUIRE_ONE = "function(name) return (require(name)) end"


class ScriptValidationHost:
    """
    Lua runtime with the validation module preloaded.

    Example:
        from script_validation import ScriptValidationHost

        host = ScriptValidationHost()
        ok = host.execute('''
            local validation = require("validation")
            return validation.validate_email("user@example.com")
        ''')

        # Or call one function directly with Python values
        matched, err = host.call("validate_regex", "abc123", "[invalid")
    """

    def __init__(self, runtime: Optional[LuaRuntime] = None, config_path: Optional[str] = None):
        """
        Initialize the host.

        Args:
            runtime: Existing LuaRuntime to install into. A new one is
                created with encoding=None when omitted, so script strings
                reach the checks as bytes.
            config_path: Override config file (see ConfigLoader)

        The configured log_level is not applied here because the logger is
        process-wide. Call ConfigLoader.apply_log_level() once from
        application setup.

        Raises:
            ValueError: If the configuration is invalid
        """
        self.config_loader = ConfigLoader(config_path)

        # Lua strings arrive as bytes, so strings that are not valid UTF-8
        # can still be checked
        self.runtime = runtime if runtime is not None else LuaRuntime(encoding=None)
        self.module_name = self.config_loader.get_module_name()

        preload(self.runtime, self.module_name, self.config_loader.get_config())
        self.module = self.runtime.eval(_REQUIRE_ONE)(self.module_name.encode("utf-8"))

        if self.config_loader.get_register_global():
            self.runtime.globals()[self.module_name.encode("utf-8")] = self.module

        logger.info(
            f"Validation module available as '{self.module_name}' "
            f"(global={self.config_loader.get_register_global()})"
        )

    def execute(self, script: str) -> Any:
        """
        Run a Lua chunk and return whatever it returns.

        Multiple return values come back as a tuple, as lupa returns them.
        With the default runtime, Lua strings come back as bytes.

        Raises:
            lupa.LuaError: On a script error, including ArgumentError for a
                bad call into the validation module
        """
        return self.runtime.execute(script)

    def call(self, name: str, *args: Any) -> tuple:
        """
        Call one exported function through Lua.

        Python dicts, lists and tuples are converted to Lua tables and None
        to nil, and str to UTF-8 bytes. Always returns a tuple of the Lua
        results, so validate_regex yields ``(matched,)`` or
        ``(False, message)``.

        Raises:
            ValueError: If name is not an exported function
            lupa.LuaError: On an argument-contract violation
        """
        if name not in EXPORTS:
            raise ValueError(f"Unknown validation function: {name}")

        function = self.module[name.encode("utf-8")]
        results = function(*[self._to_lua(arg) for arg in args])
        if isinstance(results, tuple):
            return results
        return (results,)

    def functions(self) -> List[str]:
        """Names of the exported functions."""
        return sorted(EXPORTS)

    def _to_lua(self, value: Any) -> Any:
        if isinstance(value, str):
            return value.encode("utf-8")
        if isinstance(value, Mapping):
            return self.runtime.table_from({self._to_lua(k): self._to_lua(v) for k, v in value.items()})
        if isinstance(value, (list, tuple)):
            return self.runtime.table_from([self._to_lua(v) for v in value])
        return value
