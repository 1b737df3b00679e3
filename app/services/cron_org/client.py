"""cron-job.org REST client.

Every call returns a ServiceResult; transport and HTTP failures never raise.
"""

from types import TracebackType
from typing import Any

import httpx

from app.core.logging import get_logger
from app.schemas.common import ErrorKind, ServiceResult

from .errors import ConfigurationError

logger = get_logger(__name__)

ApiResult = ServiceResult[dict[str, Any]]


class CronOrgClient:
    """Authenticated client for the cron-job.org API."""

    BASE_URL = "https://api.cron-job.org"

    def __init__(
        self,
        api_key: str,
        base_url: str | None = None,
        timeout_seconds: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            api_key: cron-job.org API key (sent as a bearer token)
            base_url: API root, defaults to the public endpoint
            timeout_seconds: Per-request timeout
            http_client: Pre-built client to use instead of creating one.
                The caller keeps ownership and is responsible for closing it.

        Raises:
            ConfigurationError: If api_key is empty
        """
        if not api_key:
            raise ConfigurationError("CRON_ORG_API_KEY is required")

        self.base_url = (base_url or self.BASE_URL).rstrip("/")
        self._headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout_seconds)

    async def __aenter__(self) -> "CronOrgClient":
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def request(
        self,
        endpoint: str,
        method: str = "GET",
        body: dict[str, Any] | None = None,
    ) -> ApiResult:
        """
        Call the API and wrap the outcome.

        Args:
            endpoint: Path below the base URL, e.g. "/jobs"
            method: HTTP method
            body: JSON body, only sent for POST/PUT/PATCH

        Returns:
            ok(data) on 2xx; EXTERNAL_API failure with the HTTP status as code
            on non-2xx; NETWORK failure with code 0 on transport errors.
        """
        send_body = body is not None and method.upper() in ("POST", "PUT", "PATCH")

        try:
            response = await self._client.request(
                method.upper(),
                f"{self.base_url}{endpoint}",
                headers=self._headers,
                json=body if send_body else None,
            )
        except httpx.HTTPError as e:
            logger.bind(endpoint=endpoint, method=method, error=str(e)).warning(
                "cron_org_transport_error"
            )
            return ServiceResult.fail(ErrorKind.NETWORK, str(e) or type(e).__name__, code=0)

        try:
            data = response.json() if response.content else {}
        except ValueError as e:
            if response.is_success:
                logger.bind(endpoint=endpoint, error=str(e)).warning("cron_org_invalid_json")
                return ServiceResult.fail(ErrorKind.NETWORK, f"Invalid JSON response: {e}", code=0)
            # Error pages are often HTML; fall back to the status line
            data = {}

        if not response.is_success:
            message = _error_message(data) or f"HTTP {response.status_code}: {response.reason_phrase}"
            logger.bind(
                endpoint=endpoint, method=method, status=response.status_code, error=message
            ).warning("cron_org_http_error")
            return ServiceResult.fail(ErrorKind.EXTERNAL_API, message, code=response.status_code)

        if not isinstance(data, dict):
            data = {"items": data}
        return ServiceResult.ok(data)

    async def list_jobs(self) -> ApiResult:
        return await self.request("/jobs")

    async def get_history(self, external_id: int) -> ApiResult:
        return await self.request(f"/jobs/{external_id}/history")

    async def update_job(self, external_id: int, job: dict[str, Any]) -> ApiResult:
        return await self.request(f"/jobs/{external_id}", "PATCH", {"job": job})

    async def delete_job(self, external_id: int) -> ApiResult:
        return await self.request(f"/jobs/{external_id}", "DELETE")

    async def run_job(self, external_id: int) -> ApiResult:
        """Trigger an immediate run."""
        return await self.request(f"/jobs/{external_id}/run", "PATCH", {})


def _error_message(data: Any) -> str | None:
    """Extract error.message from an error body, if present."""
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
        if isinstance(error, str) and error:
            return error
    return None
