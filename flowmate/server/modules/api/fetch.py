"""
HTTP Fetch Module - HTTP client for external API calls from workflows.

GET requests are treated as reads; any other method counts as a side effect
and is simulated in dry runs.
"""

from typing import Any, Dict, List
from urllib.parse import urljoin

import requests

from flowmate.server.engine.module_interface import (
    ExecutableModule, ModuleExecutionError, ModuleInput, ModuleOutput
)

_READ_METHODS = {"GET", "HEAD", "OPTIONS"}


class HttpFetchModule(ExecutableModule):
    """
    HTTP fetch module for external API calls.

    Inputs:
        - url: Full URL or path (combined with base_url)
        - base_url: Base URL (optional)
        - method: HTTP method (GET, POST, etc.)
        - headers: Request headers
        - body: JSON request body (for POST/PUT)
        - params: Query parameters
        - timeout: Request timeout in seconds
        - extract_path: Dot path to extract from response (e.g., "data.items")
        - error_on_failure: Raise on non-2xx status codes

    Outputs:
        - response: Response data (or extracted portion if extract_path specified)
        - status_code: HTTP status code
        - success: Boolean indicating success (2xx status)
    """

    @property
    def module_id(self) -> str:
        return "api.http.fetch"

    @property
    def description(self) -> str:
        return "Call an HTTP API and return its JSON response"

    @property
    def inputs(self) -> List[ModuleInput]:
        return [
            ModuleInput(name="url", type="string",
                        description="URL or path to fetch (combined with base_url if relative)"),
            ModuleInput(name="base_url", type="string", required=False),
            ModuleInput(name="method", type="string", required=False, default="GET"),
            ModuleInput(name="headers", type="object", required=False),
            ModuleInput(name="body", type="object", required=False),
            ModuleInput(name="params", type="object", required=False),
            ModuleInput(name="timeout", type="number", required=False, default=30),
            ModuleInput(name="extract_path", type="string", required=False),
            ModuleInput(name="error_on_failure", type="boolean", required=False, default=True),
        ]

    @property
    def outputs(self) -> List[ModuleOutput]:
        return [
            ModuleOutput(name="response", type="object"),
            ModuleOutput(name="status_code", type="number"),
            ModuleOutput(name="success", type="boolean"),
        ]

    def is_side_effecting(self, inputs: Dict[str, Any]) -> bool:
        return str(self.get_input_value(inputs, "method")).upper() not in _READ_METHODS

    def get_mock_output(self, inputs: Dict[str, Any]) -> Dict[str, Any]:
        return {
            "response": {"mock": True, "method": str(self.get_input_value(inputs, "method")).upper()},
            "status_code": 200,
            "success": True,
        }

    def execute(self, inputs: Dict[str, Any], context) -> Dict[str, Any]:
        url = self._build_url(inputs)
        method = str(self.get_input_value(inputs, "method")).upper()
        headers = dict(self.get_input_value(inputs, "headers") or {})
        body = self.get_input_value(inputs, "body")
        params = self.get_input_value(inputs, "params")
        timeout = self.get_input_value(inputs, "timeout")
        extract_path = self.get_input_value(inputs, "extract_path")
        error_on_failure = self.get_input_value(inputs, "error_on_failure")
        http = context.services.get("http_session") or requests

        if body and "Content-Type" not in headers:
            headers["Content-Type"] = "application/json"

        context.logger.info(f"[api.http.fetch] {method} {url}")

        try:
            response = http.request(
                method,
                url,
                headers=headers,
                json=body if body else None,
                params=params,
                timeout=timeout,
            )
        except requests.Timeout:
            raise ModuleExecutionError(self.module_id, f"Request timed out after {timeout}s: {url}")
        except requests.ConnectionError as e:
            raise ModuleExecutionError(self.module_id, f"Connection failed: {url} - {e}")
        except requests.RequestException as e:
            raise ModuleExecutionError(self.module_id, f"Request failed: {url} - {e}")

        status_code = response.status_code
        success = 200 <= status_code < 300

        try:
            response_data = response.json()
        except ValueError:
            response_data = {"text": response.text}

        context.logger.info(f"[api.http.fetch] Response: status={status_code}, success={success}")

        if not success and error_on_failure:
            error_msg = response_data.get("error") if isinstance(response_data, dict) else None
            raise ModuleExecutionError(
                self.module_id,
                f"API request failed ({status_code}): {error_msg or response.text[:200]}",
            )

        if extract_path and success:
            response_data = self._extract_path(response_data, extract_path)

        return {"response": response_data, "status_code": status_code, "success": success}

    def _build_url(self, inputs: Dict[str, Any]) -> str:
        url = self.get_input_value(inputs, "url")
        base_url = self.get_input_value(inputs, "base_url")
        if base_url and not url.startswith(("http://", "https://")):
            url = urljoin(base_url.rstrip("/") + "/", url.lstrip("/"))
        return url

    def _extract_path(self, data: Any, path: str) -> Any:
        """
        Extract nested value from response using dot notation.

        Numeric segments index into lists: "data.items.0.id".
        """
        result = data
        for part in path.split("."):
            if isinstance(result, dict):
                if part not in result:
                    raise ModuleExecutionError(
                        self.module_id,
                        f"Path '{path}' not found in response. "
                        f"Available keys at '{part}': {list(result.keys())}",
                    )
                result = result[part]
            elif isinstance(result, list) and part.isdigit() and int(part) < len(result):
                result = result[int(part)]
            else:
                raise ModuleExecutionError(self.module_id, f"Cannot follow '{part}' in path '{path}'")
        return result
