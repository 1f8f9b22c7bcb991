import logging

import pytest

from pixelproof.clients.figma_api import FigmaApiError, FigmaNotConnectedError
from pixelproof.services.baseline import BaselinePreconditionError
from pixelproof.services.baseline_jobs import run_baseline_job


class StubService:
    def __init__(self, error=None) -> None:
        self.error = error
        self.calls: list[str] = []

    async def build_baseline(self, project_id: str):
        self.calls.append(project_id)
        if self.error is not None:
            raise self.error

        class Snapshot:
            id = "snap-1"

        return Snapshot()


@pytest.mark.asyncio
async def test_successful_job_logs_completion(caplog):
    service = StubService()
    with caplog.at_level(logging.INFO, logger="pixelproof.services.baseline_jobs"):
        await run_baseline_job(service, "p1")

    assert service.calls == ["p1"]
    assert "Baseline build finished" in caplog.text


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error",
    [
        BaselinePreconditionError("no frame"),
        FigmaNotConnectedError("p1"),
        FigmaApiError("boom", status_code=502, endpoint="/v1/files/x"),
        RuntimeError("unexpected"),
    ],
)
async def test_job_failures_never_escape(error, caplog):
    service = StubService(error)
    with caplog.at_level(logging.WARNING, logger="pixelproof.services.baseline_jobs"):
        await run_baseline_job(service, "p1")

    assert service.calls == ["p1"]
    assert caplog.records
