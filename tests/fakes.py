"""Fake cron-job.org API and payload builders shared by tests."""

import re
from typing import Any

import httpx

FAKE_API_URL = "https://api.cron-job.test"


def make_external_job(job_id: int, title: str = "", **overrides: Any) -> dict[str, Any]:
    """A job as cron-job.org returns it from GET /jobs."""
    job = {
        "jobId": job_id,
        "title": title or f"Job {job_id}",
        "url": f"https://example.com/api/cron/{job_id}",
        "enabled": True,
        "saveResponses": False,
        "schedule": {"timezone": "UTC", "hours": [-1], "minutes": [0]},
        "requestTimeout": 30,
        "redirectSuccess": True,
        "requestMethod": 0,
        "lastStatus": 1,
        "lastDuration": 120,
        "lastExecution": 1700000000,
        "nextExecution": 1700003600,
    }
    job.update(overrides)
    return job


def make_history_entry(identifier: str | None, date: int, **overrides: Any) -> dict[str, Any]:
    """One entry of GET /jobs/{id}/history."""
    entry = {
        "identifier": identifier,
        "date": date,
        "datePlanned": date,
        "jitter": 0,
        "duration": 250,
        "status": 1,
        "statusText": "OK",
        "httpStatus": 200,
        "body": "ok",
        "stats": {"total": 250},
    }
    entry.update(overrides)
    return entry


class FakeCronOrg:
    """
    In-memory stand-in for the cron-job.org API.

    Tests mutate jobs/history and register failures per (method, path);
    every request received is recorded for assertions.
    """

    def __init__(self) -> None:
        self.jobs: list[dict[str, Any]] = []
        self.history: dict[int, list[dict[str, Any]]] = {}
        self.failures: dict[tuple[str, str], int] = {}
        self.network_errors: set[tuple[str, str]] = set()
        self.requests: list[httpx.Request] = []

    def fail(self, method: str, path: str, status_code: int = 500) -> None:
        self.failures[(method, path)] = status_code

    def disconnect(self, method: str, path: str) -> None:
        self.network_errors.add((method, path))

    def requests_to(self, method: str, path: str) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == method and r.url.path == path]

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, request.url.path)

        if key in self.network_errors:
            raise httpx.ConnectError("connection refused", request=request)
        if key in self.failures:
            return httpx.Response(
                self.failures[key], json={"error": {"message": "Simulated failure"}}
            )

        path = request.url.path
        if request.method == "GET" and path == "/jobs":
            return httpx.Response(200, json={"jobs": self.jobs, "someFailed": False})

        if match := re.fullmatch(r"/jobs/(\d+)/history", path):
            entries = self.history.get(int(match.group(1)), [])
            return httpx.Response(200, json={"history": entries, "predictions": []})

        if request.method == "PATCH" and re.fullmatch(r"/jobs/\d+(/run)?", path):
            return httpx.Response(200, json={})

        if request.method == "DELETE" and re.fullmatch(r"/jobs/\d+", path):
            return httpx.Response(200, json={})

        return httpx.Response(404, json={"error": {"message": "Not found"}})
