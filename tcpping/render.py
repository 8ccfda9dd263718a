from __future__ import annotations

import json
import time
from typing import Any, Dict

from .models import DNSUpdateEvent, ProbeEvent, StatsSnapshot, TaskDefinition, uses_dns

JSON_OUTPUT_FORMAT = "json"
TEXT_OUTPUT_FORMAT = "text"
NULL_OUTPUT_FORMAT = "null"

OUTPUT_FORMATS = (JSON_OUTPUT_FORMAT, TEXT_OUTPUT_FORMAT, NULL_OUTPUT_FORMAT)


def log_name(project_id: str, task_id: str) -> str:
    return f"projects/{project_id}/tcpping/{task_id}"


def _ms(value: float) -> str:
    return f"{value:.3f}ms"


class RecordBuilder:
    """Builds the structured records emitted for one task."""

    def __init__(self, task: TaskDefinition, project_id: str = "") -> None:
        self._task = task
        self._log_name = log_name(project_id, task.task_id)

    def _base(self) -> Dict[str, Any]:
        return {
            "id": self._task.task_id,
            "logName": self._log_name,
            "host": self._task.host,
            "timestamp": time.time(),
        }

    def probe(self, event: ProbeEvent) -> Dict[str, Any]:
        record = self._base()
        if event.error is not None:
            record["severity"] = "ERROR"
            record["error"] = str(event.error)
        record["serial"] = event.attempt
        record["target"] = str(event.target)
        record["latency"] = event.latency_ms
        record["delta"] = event.delta_ms

        if uses_dns(self._task.kind):
            where = f"{self._task.hostname}/{event.target}"
        else:
            where = str(event.target)
        record["message"] = f"#:{event.attempt} | @:{where} | latency:{_ms(event.latency_ms)}"
        return record

    def stats(self, snapshot: StatsSnapshot) -> Dict[str, Any]:
        record = self._base()
        record["count"] = {
            "total": snapshot.total_probes,
            "ok": snapshot.total_successful,
            "ko": snapshot.total_failures,
            "consecutive": {
                "ok": snapshot.consecutive_successful,
                "ko": snapshot.consecutive_failures,
            },
        }
        overall_min = snapshot.overall_min_latency if snapshot.total_probes else 0.0
        record["latency"] = {
            "min": snapshot.min_latency,
            "max": snapshot.max_latency,
            "avg": snapshot.average_latency,
            "sigma": snapshot.standard_deviation,
            "skew": snapshot.skewness,
            "overall": {"min": overall_min, "max": snapshot.overall_max_latency},
        }
        record["samples"] = snapshot.sample_count
        record["message"] = (
            f"{self._task.host} | [last {snapshot.sample_count}]: "
            f"min/max/avg/sigma/skew={snapshot.min_latency:.3f}/{snapshot.max_latency:.3f}/"
            f"{snapshot.average_latency:.3f}/{snapshot.standard_deviation:.3f}/{snapshot.skewness:.3f} | "
            f"[total: {snapshot.total_probes}]: min/max={overall_min:.3f}/{snapshot.overall_max_latency:.3f}"
        )
        return record

    def dns_update(self, event: DNSUpdateEvent) -> Dict[str, Any]:
        record = self._base()
        record["required"] = event.required
        record["latency"] = event.latency_ms
        record["hostname"] = event.hostname
        record["IP"] = {"before": event.previous_address}
        if event.error is None:
            record["IP"]["after"] = event.new_address
            record["message"] = (
                f"'{event.hostname}' IP mapping updated [ {_ms(event.latency_ms)} ]: "
                f"{event.previous_address} => {event.new_address}"
            )
        else:
            record["severity"] = "ERROR"
            record["error"] = str(event.error)
            record["message"] = f"'{event.hostname}' IP mapping update failed: {event.error}"
        return record


def format_line(record: Dict[str, Any], output_format: str = JSON_OUTPUT_FORMAT) -> str:
    if output_format == TEXT_OUTPUT_FORMAT:
        return str(record.get("message", ""))
    return json.dumps(record, ensure_ascii=False)
