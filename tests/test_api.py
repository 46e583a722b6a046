"""
Tests for ScriptValidationHost API
"""
import logging

import pytest
from lupa import LuaError, LuaRuntime

from script_validation import ScriptValidationHost
from script_validation.config_loader import CONFIG_ENV_VAR


@pytest.fixture(autouse=True)
def no_env_override(monkeypatch):
    monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)


@pytest.fixture
def host():
    """Create a ScriptValidationHost with bundled configuration."""
    return ScriptValidationHost()


class TestInitialization:
    """Test ScriptValidationHost initialization."""

    def test_create_host(self, host):
        assert host.runtime is not None
        assert host.module_name == "validation"

    def test_adopts_existing_runtime(self):
        runtime = LuaRuntime()
        host = ScriptValidationHost(runtime=runtime)
        assert host.runtime is runtime
        assert runtime.execute('return require("validation").is_nil(nil)') is True

    def test_no_global_by_default(self, host):
        assert host.execute("return validation") is None

    def test_register_global(self, tmp_path):
        config = tmp_path / "config.yaml"
        config.write_text("module_name: checks\nregister_global: true\n")
        host = ScriptValidationHost(config_path=str(config))
        assert host.execute('return checks.is_string("x")') is True

    def test_leaves_logger_level_alone(self, tmp_path):
        """Test that a host does not change the process-wide logger level."""
        config = tmp_path / "config.yaml"
        config.write_text("log_level: DEBUG\n")
        package_logger = logging.getLogger("script_validation")
        before = package_logger.level
        ScriptValidationHost(config_path=str(config))
        assert package_logger.level == before

    def test_functions(self, host):
        names = host.functions()
        assert len(names) == 12
        assert "validate_regex" in names


class TestExecute:
    """Test execute()."""

    def test_script_using_module(self, host):
        result = host.execute("""
            local validation = require("validation")
            local input = { email = "user@example.com", age = 30, name = "" }
            return validation.validate_email(input.email),
                   validation.in_range(input.age, 18, 120),
                   validation.is_empty(input.name)
        """)
        assert result == (True, True, True)

    def test_strings_that_are_not_utf8(self, host):
        result = host.execute(r"""
            local validation = require("validation")
            local s = "\255\254"
            return validation.is_string(s), validation.min_length(s, 2), validation.max_length(s, 1)
        """)
        assert result == (True, True, False)

    def test_strings_come_back_as_bytes(self, host):
        assert host.execute('return type(require("validation"))') == b"table"

    def test_argument_error_propagates(self, host):
        with pytest.raises(LuaError):
            host.execute('return require("validation").min_length(nil, 3)')


class TestCall:
    """Test call()."""

    def test_single_result(self, host):
        assert host.call("validate_url", "https://example.com/path") == (True,)

    def test_regex_results(self, host):
        assert host.call("validate_regex", "abc123", "^[a-z]+[0-9]+$") == (True,)
        matched, message = host.call("validate_regex", "test", "[invalid")
        assert matched is False
        assert message.startswith(b"missing ]")

    def test_bytes_arguments(self, host):
        assert host.call("min_length", b"\xff\xfe", 2) == (True,)
        assert host.call("validate_regex", b"\xff\xfe", "^") == (True,)

    def test_python_containers_become_tables(self, host):
        assert host.call("is_table", {"a": 1}) == (True,)
        assert host.call("is_empty", {}) == (True,)
        assert host.call("is_empty", [1, 2]) == (False,)
        assert host.call("is_empty", {"nested": {"x": 1}}) == (False,)

    def test_none_is_nil(self, host):
        assert host.call("is_nil", None) == (True,)
        assert host.call("is_empty", None) == (True,)

    def test_unknown_function(self, host):
        with pytest.raises(ValueError, match="Unknown validation function"):
            host.call("is_widget", 1)

    def test_argument_error(self, host):
        with pytest.raises(LuaError):
            host.call("in_range", "5", 1, 10)
