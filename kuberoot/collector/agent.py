"""Collector agent: periodically pushes detected failures to the backend.

One cycle = collect failures from the local cluster, wrap them in an
AgentReport and POST it to ``{backend}/api/v1/agent/report`` with the
tenant's API key.  A failed cycle is logged and skipped; the next scheduled
cycle is the retry.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime

import httpx

from kuberoot.api.schemas import AgentReport, FailurePayload
from kuberoot.auth.keys import API_KEY_HEADER
from kuberoot.collector.normalizer import collect_failures
from kuberoot.collector.source import ClusterStateSource
from kuberoot.errors import CollectorError, ReportError
from kuberoot.models.config import AgentConfig
from kuberoot.models.failures import FailureRecord
from kuberoot.observability.logging import get_logger

_logger = get_logger("collector.agent")

REPORT_PATH = "/api/v1/agent/report"


class AgentReporter:
    """Sends failure batches to the backend over HTTP.

    Args:
        config: Agent configuration (backend URL, API key, cluster id).
        client: Optional pre-built httpx.AsyncClient (tests inject one with
                a MockTransport).  When omitted, one is created per reporter.
    """

    def __init__(self, config: AgentConfig, client: httpx.AsyncClient | None = None) -> None:
        self._config = config
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=config.report_timeout)

    def build_report(self, failures: list[FailureRecord]) -> AgentReport:
        return AgentReport(
            cluster_id=self._config.cluster_id,
            timestamp=datetime.now(tz=UTC),
            failures=[FailurePayload.from_record(failure) for failure in failures],
        )

    async def send_report(self, failures: list[FailureRecord]) -> None:
        """POST one batch.  Raises ReportError on transport errors or non-200."""
        report = self.build_report(failures)
        url = f"{self._config.backend_url}{REPORT_PATH}"
        try:
            response = await self._client.post(
                url,
                json=report.model_dump(mode="json", by_alias=True),
                headers={API_KEY_HEADER: self._config.api_key},
            )
        except httpx.TimeoutException as exc:
            raise ReportError(f"send request: timed out after {self._config.report_timeout}s") from exc
        except httpx.HTTPError as exc:
            raise ReportError(f"send request: {exc}") from exc

        if response.status_code != httpx.codes.OK:
            raise ReportError(
                f"backend returned {response.status_code}: {response.text[:200]}",
                status_code=response.status_code,
            )

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()


async def run_cycle(source: ClusterStateSource, reporter: AgentReporter, timeout: float) -> int:
    """Run one detect-and-report cycle.  Returns the number of failures sent."""

    async def _cycle() -> int:
        failures = await collect_failures(source)
        await reporter.send_report(failures)
        return len(failures)

    return await asyncio.wait_for(_cycle(), timeout=timeout)


async def run_agent(
    config: AgentConfig,
    source: ClusterStateSource,
    reporter: AgentReporter | None = None,
    max_cycles: int | None = None,
) -> None:
    """Report immediately, then every ``config.poll_interval`` seconds.

    ``max_cycles`` bounds the loop (tests); ``None`` runs until cancelled.
    """
    reporter = reporter or AgentReporter(config)
    _logger.info(
        "agent_starting",
        backend=config.backend_url,
        cluster_id=config.cluster_id,
        poll_interval=config.poll_interval,
    )
    cycles = 0
    try:
        while max_cycles is None or cycles < max_cycles:
            try:
                sent = await run_cycle(source, reporter, config.cycle_timeout)
                _logger.info("report_sent", cluster_id=config.cluster_id, failures=sent)
            except CollectorError as exc:
                _logger.warning("failure_detection_failed", error=str(exc))
            except ReportError as exc:
                _logger.warning("report_send_failed", error=str(exc), status_code=exc.status_code)
            except TimeoutError:
                _logger.warning("agent_cycle_timed_out", timeout=config.cycle_timeout)
            cycles += 1
            if max_cycles is not None and cycles >= max_cycles:
                break
            await asyncio.sleep(config.poll_interval)
    finally:
        await reporter.close()
