"""Failure normalizer.

Turns raw pod objects (Kubernetes JSON, camelCase keys) into FailureRecord
values and correlates each failing pod with its most recent events.

Detection and correlation are pure functions over dicts; the only I/O lives
in ``collect_failures``, which reads through a ClusterStateSource.
"""

from __future__ import annotations

from dataclasses import replace
from datetime import UTC, datetime
from typing import Any

from kuberoot.collector.source import ClusterStateSource
from kuberoot.errors import CollectorError
from kuberoot.models.failures import MAX_EVENTS, FailureRecord, FailureType
from kuberoot.observability.logging import get_logger

_logger = get_logger("collector.normalizer")

_WAITING_REASONS = {
    FailureType.CRASH_LOOP_BACK_OFF.value: FailureType.CRASH_LOOP_BACK_OFF,
    FailureType.IMAGE_PULL_BACK_OFF.value: FailureType.IMAGE_PULL_BACK_OFF,
}

# Events with no usable timestamp sort last.
_EPOCH = datetime.min.replace(tzinfo=UTC)


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------


def detect_failures(pod: dict[str, Any]) -> list[FailureRecord]:
    """Scan a pod's status for well-known failure states.

    Init containers are checked before regular containers.  Each container
    with at least one recognised state yields one record; every
    ``PodScheduled=False`` condition yields one pod-level record.
    """
    metadata = pod.get("metadata") or {}
    status = pod.get("status") or {}
    namespace = str(metadata.get("namespace") or "")
    name = str(metadata.get("name") or "")

    results: list[FailureRecord] = []
    for key in ("initContainerStatuses", "containerStatuses"):
        for container_status in status.get(key) or []:
            record = _container_failure(namespace, name, container_status)
            if record is not None:
                results.append(record)

    for condition in status.get("conditions") or []:
        if condition.get("type") == "PodScheduled" and condition.get("status") == "False":
            results.append(
                FailureRecord(
                    namespace=namespace,
                    name=name,
                    types=(FailureType.FAILED_SCHEDULING.value,),
                    message=str(condition.get("message") or ""),
                )
            )

    return results


def _container_failure(namespace: str, pod_name: str, container_status: dict[str, Any]) -> FailureRecord | None:
    state = container_status.get("state") or {}
    types: list[str] = []
    message = ""

    waiting = state.get("waiting")
    if waiting:
        failure_type = _WAITING_REASONS.get(str(waiting.get("reason") or ""))
        if failure_type is not None:
            types.append(failure_type.value)
            message = str(waiting.get("message") or "")

    terminated = state.get("terminated")
    if terminated and terminated.get("reason") == FailureType.OOM_KILLED.value:
        types.append(FailureType.OOM_KILLED.value)
        # The terminated message is often empty; keep the waiting one then.
        if terminated.get("message"):
            message = str(terminated["message"])

    if not types:
        return None
    return FailureRecord(
        namespace=namespace,
        name=pod_name,
        container=str(container_status.get("name") or ""),
        types=tuple(types),
        message=message,
    )


# ---------------------------------------------------------------------------
# Event correlation
# ---------------------------------------------------------------------------


def event_text(event: dict[str, Any]) -> str:
    """Render an event as ``"Reason: message"`` (or whichever part is present)."""
    reason = str(event.get("reason") or "").strip()
    message = str(event.get("message") or "").strip()
    if reason and message:
        return f"{reason}: {message}"
    return reason or message


def event_timestamp(event: dict[str, Any]) -> datetime:
    """Best available timestamp for an event.

    Preference order: eventTime, lastTimestamp, series.lastObservedTime,
    firstTimestamp, metadata.creationTimestamp.
    """
    series = event.get("series") or {}
    metadata = event.get("metadata") or {}
    candidates = (
        event.get("eventTime"),
        event.get("lastTimestamp"),
        series.get("lastObservedTime"),
        event.get("firstTimestamp"),
        metadata.get("creationTimestamp"),
    )
    for value in candidates:
        parsed = _parse_timestamp(value)
        if parsed is not None:
            return parsed
    return _EPOCH


def _parse_timestamp(value: object) -> datetime | None:
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=UTC)
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def correlate_events(events: list[dict[str, Any]], limit: int = MAX_EVENTS) -> tuple[str, ...]:
    """Deduplicate, order newest-first and truncate a pod's events.

    Events with neither reason nor message are dropped.  Duplicates (same
    rendered text) keep their first occurrence.
    """
    entries: list[tuple[str, datetime]] = []
    seen: set[str] = set()
    for event in events:
        text = event_text(event)
        if not text or text in seen:
            continue
        seen.add(text)
        entries.append((text, event_timestamp(event)))

    entries.sort(key=lambda entry: entry[1], reverse=True)
    if limit > 0:
        entries = entries[:limit]
    return tuple(text for text, _ in entries)


# ---------------------------------------------------------------------------
# Collection
# ---------------------------------------------------------------------------


async def collect_failures(source: ClusterStateSource, limit: int = MAX_EVENTS) -> list[FailureRecord]:
    """Detect failures across all pods and attach correlated events.

    Events are fetched once per failing pod.  Any fetch error aborts the
    whole call with CollectorError; an empty event list is not an error.
    """
    try:
        pods = await source.list_pods()
    except CollectorError:
        raise
    except Exception as exc:
        raise CollectorError(f"list pods for failures: {exc}") from exc

    out: list[FailureRecord] = []
    for pod in pods:
        failures = detect_failures(pod)
        if not failures:
            continue

        first = failures[0]
        try:
            raw_events = await source.list_pod_events(first.namespace, first.name)
        except CollectorError:
            raise
        except Exception as exc:
            raise CollectorError(f"list events for pod {first.namespace}/{first.name}: {exc}") from exc

        events = correlate_events(raw_events, limit)
        out.extend(replace(failure, events=events) for failure in failures)

    _logger.debug("failures_collected", pods=len(pods), failures=len(out))
    return out
