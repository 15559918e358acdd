"""
app/services/functions_service.py

Purpose: Callable serverless function client

- Invokes named functions (createTransaction, adjustWalletBalance, ...)
  using the HTTPS callable protocol
- Forwards the caller's ID token so functions see the signed-in user
- Maps function errors to FunctionCallError (502)

Function behaviour is opaque: the payload sent and the `result` returned
are passed through untouched.
"""

import httpx
from typing import Any, Dict, Optional

from app.core.config import settings
from app.core.exceptions import FunctionCallError
from app.core.logging import get_logger, LogContext

logger = get_logger(__name__)


class FunctionsService:
    """
    Service class for invoking callable functions.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.FUNCTIONS_BASE_URL).rstrip("/")
        self._timeout = timeout or float(settings.FUNCTIONS_TIMEOUT)
        self._transport = transport
        self._http: Optional[httpx.AsyncClient] = None

    def _client(self) -> httpx.AsyncClient:
        if self._http is None or self._http.is_closed:
            self._http = httpx.AsyncClient(timeout=self._timeout, transport=self._transport)
        return self._http

    async def call(self, name: str, payload: Dict[str, Any], id_token: Optional[str] = None) -> Any:
        """
        Invokes a callable function.

        Args:
            name: Function name
            payload: JSON payload (sent as {"data": payload})
            id_token: Caller's ID token, if any

        Returns:
            The function's `result` value

        Raises:
            FunctionCallError: On transport errors, non-2xx responses or
            an `error` body
        """
        headers = {"Content-Type": "application/json"}
        if id_token:
            headers["Authorization"] = f"Bearer {id_token}"

        with LogContext(function=name):
            logger.info(f"Calling function {name}")

            try:
                response = await self._client().post(
                    f"{self.base_url}/{name}",
                    json={"data": payload},
                    headers=headers,
                )
            except httpx.TimeoutException as e:
                logger.error(f"Function {name} timed out")
                raise FunctionCallError(name, f"Function {name} timed out") from e
            except httpx.HTTPError as e:
                logger.error(f"Function {name} request failed: {e}")
                raise FunctionCallError(name, f"Function {name} is unavailable") from e

            body = self._parse_body(response)

            if response.status_code >= 400 or "error" in body:
                error = body.get("error") or {}
                message = error.get("message") or f"Function {name} failed with status {response.status_code}"
                logger.error(
                    f"Function {name} returned an error: {message}",
                    extra={"status_code": response.status_code}
                )
                raise FunctionCallError(name, message, status=error.get("status"), details=error.get("details"))

            logger.info(f"Function {name} completed")
            return body.get("result")

    @staticmethod
    def _parse_body(response: httpx.Response) -> Dict[str, Any]:
        try:
            body = response.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}

    async def close(self):
        """Close the underlying HTTP client."""
        if self._http is not None:
            await self._http.aclose()
            self._http = None


# Global functions service instance
_functions_service: Optional[FunctionsService] = None


def get_functions_service() -> FunctionsService:
    """Get or create the global functions service instance."""
    global _functions_service
    if _functions_service is None:
        _functions_service = FunctionsService()
    return _functions_service


async def close_functions_service():
    """Close functions service and cleanup resources."""
    global _functions_service
    if _functions_service:
        await _functions_service.close()
        _functions_service = None
