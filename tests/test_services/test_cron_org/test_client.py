"""Tests for the cron-job.org REST client."""

import json

import httpx
import pytest

from app.schemas.common import ErrorKind
from app.services.cron_org import ConfigurationError, CronOrgClient
from tests.fakes import FakeCronOrg, make_external_job


class TestClientConstruction:
    """Tests for CronOrgClient.__init__."""

    def test_missing_api_key_raises(self):
        """An empty API key is a configuration error, not a runtime failure."""
        with pytest.raises(ConfigurationError):
            CronOrgClient(api_key="")

    def test_base_url_trailing_slash_stripped(self):
        client = CronOrgClient(
            api_key="k", base_url="https://api.example.com/", http_client=httpx.AsyncClient()
        )
        assert client.base_url == "https://api.example.com"


@pytest.mark.asyncio
class TestRequest:
    """Tests for CronOrgClient.request."""

    async def test_sends_bearer_token(self, cron_client, fake_cron_org: FakeCronOrg):
        """Every request carries the API key as a bearer token."""
        await cron_client.list_jobs()

        request = fake_cron_org.requests[-1]
        assert request.headers["Authorization"] == "Bearer test-key"
        assert request.headers["Content-Type"] == "application/json"

    async def test_list_jobs_returns_body(self, cron_client, fake_cron_org: FakeCronOrg):
        fake_cron_org.jobs = [make_external_job(1), make_external_job(2)]

        result = await cron_client.list_jobs()

        assert result.success is True
        assert [j["jobId"] for j in result.data["jobs"]] == [1, 2]

    async def test_non_2xx_is_external_api_error(self, cron_client, fake_cron_org: FakeCronOrg):
        """Non-2xx responses carry the HTTP status as error code."""
        fake_cron_org.fail("GET", "/jobs", 429)

        result = await cron_client.list_jobs()

        assert result.success is False
        assert result.error.kind == ErrorKind.EXTERNAL_API
        assert result.error.code == 429
        assert result.error.message == "Simulated failure"

    async def test_non_json_error_body_uses_status_line(self):
        """HTML error pages fall back to "HTTP <code>: <reason>"."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(502, text="<html>Bad gateway</html>")

        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        client = CronOrgClient(api_key="k", http_client=http_client)

        result = await client.list_jobs()

        assert result.error.kind == ErrorKind.EXTERNAL_API
        assert result.error.code == 502
        assert result.error.message == "HTTP 502: Bad Gateway"
        await http_client.aclose()

    async def test_transport_error_is_network_error(self, cron_client, fake_cron_org: FakeCronOrg):
        """Transport failures never raise and report code 0."""
        fake_cron_org.disconnect("GET", "/jobs")

        result = await cron_client.list_jobs()

        assert result.success is False
        assert result.error.kind == ErrorKind.NETWORK
        assert result.error.code == 0

    async def test_invalid_json_success_is_network_error(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="not json")

        http_client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        client = CronOrgClient(api_key="k", http_client=http_client)

        result = await client.list_jobs()

        assert result.error.kind == ErrorKind.NETWORK
        assert result.error.code == 0
        await http_client.aclose()

    async def test_empty_success_body_is_empty_dict(self, cron_client):
        """DELETE returns no body; that is still a success."""

        result = await cron_client.delete_job(7)

        assert result.success is True
        assert result.data == {}

    async def test_body_only_sent_for_write_methods(self, cron_client, fake_cron_org: FakeCronOrg):
        await cron_client.request("/jobs", "GET", {"ignored": True})
        await cron_client.update_job(5, {"enabled": False})

        get_request, patch_request = fake_cron_org.requests
        assert get_request.content == b""
        assert json.loads(patch_request.content) == {"job": {"enabled": False}}

    async def test_run_job_patches_run_endpoint(self, cron_client, fake_cron_org: FakeCronOrg):
        result = await cron_client.run_job(42)

        assert result.success is True
        assert len(fake_cron_org.requests_to("PATCH", "/jobs/42/run")) == 1


@pytest.mark.asyncio
class TestClientLifecycle:
    """Tests for closing the underlying HTTP client."""

    async def test_does_not_close_borrowed_client(self):
        http_client = httpx.AsyncClient()
        async with CronOrgClient(api_key="k", http_client=http_client):
            pass

        assert http_client.is_closed is False
        await http_client.aclose()

    async def test_closes_owned_client(self):
        client = CronOrgClient(api_key="k")
        await client.aclose()

        assert client._client.is_closed is True
