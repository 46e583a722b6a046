#!/usr/bin/env python3
"""
JSON-RPC 2.0 Server for the validation functions

Exposes the same checks scripts get from require("validation") to any
process that can spawn a subprocess and talk over stdin/stdout.

Protocol: JSON-RPC 2.0 over stdin/stdout (newline-delimited JSON)
Specification: https://www.jsonrpc.org/specification

Usage:
    python -m script_validation.jsonrpc_server [--debug] [--config PATH]

Example request (stdin):
    {"jsonrpc":"2.0","id":1,"method":"min_length","params":{"args":["hello",3]}}

Example response (stdout):
    {"jsonrpc":"2.0","id":1,"result":true}
"""

import sys
import json
import signal
import argparse
from typing import Any, Dict, Optional

from script_validation.config_loader import ConfigLoader
from script_validation.lua_module import EXPORTS, ArgumentError, invoke
from script_validation.predicates import RegexResult


class InvalidParams(ValueError):
    """Request parameters do not fit the method."""


class ValidationJsonRpcServer:
    """JSON-RPC 2.0 server wrapping the exported validation functions."""

    # JSON-RPC error codes
    ERROR_PARSE = -32700        # Invalid JSON
    ERROR_INVALID_REQUEST = -32600  # Invalid JSON-RPC structure
    ERROR_METHOD_NOT_FOUND = -32601  # Unknown method
    ERROR_INVALID_PARAMS = -32602   # Invalid parameters
    ERROR_INTERNAL = -32000      # Application error (catch-all)

    def __init__(self, debug: bool = False, config_path: Optional[str] = None):
        """
        Initialize JSON-RPC server.

        Args:
            debug: Enable debug logging to stderr
            config_path: Override config file (see ConfigLoader)
        """
        self.config_loader = ConfigLoader(config_path)
        self.config = self.config_loader.get_config()
        self.running = False
        self.debug = debug

    def _log(self, message: str):
        """Log debug message to stderr (doesn't interfere with JSON-RPC on stdout)."""
        if self.debug:
            sys.stderr.write(f"[DEBUG] {message}\n")
            sys.stderr.flush()

    def start_server(self):
        """
        Start the JSON-RPC server loop.

        Reads requests from stdin, processes them, writes responses to stdout.
        Runs until EOF or stop signal received.
        """
        self.running = True
        self._log("Validation JSON-RPC server started")

        while self.running:
            try:
                line = sys.stdin.readline()

                if not line:
                    # EOF - clean shutdown
                    self._log("EOF received, shutting down")
                    break

                if not line.strip():
                    continue

                self._log(f"Received: {line.strip()}")
                response = self.handle_request(line)
                self._send_response(response)

            except KeyboardInterrupt:
                self._log("KeyboardInterrupt received, shutting down")
                break

        self._log("Server stopped")

    def stop_server(self):
        """Stop the server gracefully after the current request."""
        self.running = False
        self._log("Stop signal received")

    def handle_request(self, request_json: str) -> Dict[str, Any]:
        """
        Parse and process a JSON-RPC request.

        Args:
            request_json: JSON-RPC request string

        Returns:
            JSON-RPC response dict (success or error)
        """
        request_id = None

        try:
            try:
                request = json.loads(request_json)
            except json.JSONDecodeError as e:
                return self._error_response(None, self.ERROR_PARSE,
                                           f"Parse error: {e}")

            if not isinstance(request, dict):
                return self._error_response(None, self.ERROR_INVALID_REQUEST,
                                           "Request must be a JSON object")

            if request.get("jsonrpc") != "2.0":
                return self._error_response(None, self.ERROR_INVALID_REQUEST,
                                           f"Invalid JSON-RPC version: {request.get('jsonrpc')}")

            request_id = request.get("id")
            method = request.get("method")
            params = request.get("params", {})

            if not method or not isinstance(method, str):
                return self._error_response(request_id, self.ERROR_INVALID_REQUEST,
                                           "Missing 'method' field")

            if not isinstance(params, dict):
                return self._error_response(request_id, self.ERROR_INVALID_PARAMS,
                                           f"Params must be an object, got {type(params).__name__}")

            if method != "list_functions" and method not in EXPORTS:
                return self._error_response(request_id, self.ERROR_METHOD_NOT_FOUND,
                                           f"Method not found: {method}")

            self._log(f"Dispatching method: {method}")
            try:
                result = self._dispatch(method, params)
            except (ArgumentError, InvalidParams) as e:
                return self._error_response(request_id, self.ERROR_INVALID_PARAMS, str(e))

            return self._success_response(request_id, result)

        except Exception as e:
            # Catch any unexpected errors
            self._log(f"Error processing request: {e}")
            return self._error_response(request_id, self.ERROR_INTERNAL,
                                       f"Internal error: {e}")

    def _dispatch(self, method: str, params: Dict[str, Any]) -> Any:
        """
        Run one method.

        Raises:
            InvalidParams: If 'args' is not a list
            ArgumentError: If the arguments break the function's contract
        """
        if method == "list_functions":
            return self._handle_list_functions()

        args = params.get("args", [])
        if not isinstance(args, list):
            raise InvalidParams(f"'args' must be an array, got {type(args).__name__}")

        result = invoke(method, args, self.config)
        if isinstance(result, RegexResult):
            matched, message = result.as_pair()
            return [matched, message]
        return result

    def _handle_list_functions(self) -> Any:
        """Handle 'list_functions' method."""
        return {name: {"arity": export.arity} for name, export in sorted(EXPORTS.items())}

    # Response formatting

    def _success_response(self, request_id: Any, result: Any) -> Dict[str, Any]:
        """Format successful JSON-RPC response."""
        return {
            "jsonrpc": "2.0",
            "id": request_id,
            "result": result
        }

    def _error_response(self, request_id: Any, code: int, message: str,
                       data: Optional[Any] = None) -> Dict[str, Any]:
        """Format JSON-RPC error response."""
        error = {
            "code": code,
            "message": message
        }
        if data is not None:
            error["data"] = data

        return {
            "jsonrpc": "2.0",
            "id": request_id,
            "error": error
        }

    def _send_response(self, response: Dict[str, Any]):
        """Send JSON-RPC response to stdout."""
        response_json = json.dumps(response)
        self._log(f"Sending: {response_json}")
        sys.stdout.write(response_json + "\n")
        sys.stdout.flush()


def main():
    """Main entry point for JSON-RPC server."""
    parser = argparse.ArgumentParser(
        description="Validation functions over JSON-RPC 2.0",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Example usage:
  python -m script_validation.jsonrpc_server
  python -m script_validation.jsonrpc_server --debug

Supported methods:
  - list_functions
  - is_string, is_number, is_table, is_boolean, is_nil, is_empty
  - validate_email, validate_url, validate_regex
  - min_length, max_length, in_range

Each validation method takes {"args": [...]}.
        """
    )
    parser.add_argument('--debug', action='store_true',
                       help='Enable debug logging to stderr')
    parser.add_argument('--config',
                       help='YAML file merged over the bundled configuration')

    args = parser.parse_args()

    server = ValidationJsonRpcServer(debug=args.debug, config_path=args.config)
    server.config_loader.apply_log_level()

    # Handle signals for graceful shutdown
    def signal_handler(sig, frame):
        server.stop_server()

    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)

    server.start_server()


if __name__ == "__main__":
    main()
