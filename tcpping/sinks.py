from __future__ import annotations

import logging
import os
import queue
import threading
from abc import ABC, abstractmethod
from logging.handlers import TimedRotatingFileHandler
from typing import Any, Dict, Optional

from .models import DNSUpdateEvent, ProbeEvent, StatsSnapshot, TaskDefinition
from .params import PARAM_LOGZ_DIR, PARAM_LOGZ_NAME, PARAM_LOGZ_ROTATE_SECS, PARAM_LOGZ_SYNC, parse_bool
from .render import (
    JSON_OUTPUT_FORMAT,
    NULL_OUTPUT_FORMAT,
    OUTPUT_FORMATS,
    RecordBuilder,
    format_line,
)

DEFAULT_ROTATE_SECS = 3600
DEFAULT_LOGZ_NAME = "tcpping"


class EventSink(ABC):
    """Receives every event a task produces.

    Implementations render and persist events; the probing core only talks
    to this interface.
    """

    @abstractmethod
    def on_probe(self, task: TaskDefinition, event: ProbeEvent) -> None:
        """Handle the outcome of one probe attempt."""

    @abstractmethod
    def on_stats(self, task: TaskDefinition, snapshot: StatsSnapshot) -> None:
        """Handle a statistics snapshot."""

    @abstractmethod
    def on_dns_update(self, task: TaskDefinition, event: DNSUpdateEvent) -> None:
        """Handle a DNS refresh that was due, successful or not."""

    def close(self) -> None:
        """Flush pending output and release resources."""


class NullSink(EventSink):
    def on_probe(self, task: TaskDefinition, event: ProbeEvent) -> None:
        pass

    def on_stats(self, task: TaskDefinition, snapshot: StatsSnapshot) -> None:
        pass

    def on_dns_update(self, task: TaskDefinition, event: DNSUpdateEvent) -> None:
        pass


class RenderingSink(EventSink):
    """Turns events into records and hands each rendered line to ``write``."""

    def __init__(self, builder: RecordBuilder, output_format: str = JSON_OUTPUT_FORMAT) -> None:
        self._builder = builder
        self._format = output_format

    def on_probe(self, task: TaskDefinition, event: ProbeEvent) -> None:
        self._emit(self._builder.probe(event))

    def on_stats(self, task: TaskDefinition, snapshot: StatsSnapshot) -> None:
        self._emit(self._builder.stats(snapshot))

    def on_dns_update(self, task: TaskDefinition, event: DNSUpdateEvent) -> None:
        self._emit(self._builder.dns_update(event))

    def _emit(self, record: Dict[str, Any]) -> None:
        self.write(format_line(record, self._format))

    @abstractmethod
    def write(self, line: str) -> None:
        ...


class ConsoleSink(RenderingSink):
    """Prints one line per event to stdout."""

    def write(self, line: str) -> None:
        print(line, flush=True)


class RotatingFileSink(RenderingSink):
    """Appends rendered events to a time-rotated file.

    In sync mode lines are written and flushed on the caller's thread;
    otherwise a background writer thread drains a queue.
    """

    def __init__(
        self,
        builder: RecordBuilder,
        path: str,
        rotate_secs: int = DEFAULT_ROTATE_SECS,
        sync: bool = False,
        output_format: str = JSON_OUTPUT_FORMAT,
    ) -> None:
        super().__init__(builder, output_format)
        directory = os.path.dirname(path)
        if directory:
            os.makedirs(directory, exist_ok=True)
        self._handler = TimedRotatingFileHandler(
            path,
            when="S",
            interval=max(1, rotate_secs),
            encoding="utf-8",
            utc=True,
        )
        self._handler.setFormatter(logging.Formatter("%(message)s"))
        self._queue: Optional["queue.Queue[Optional[str]]"] = None
        self._thread: Optional[threading.Thread] = None
        if not sync:
            self._queue = queue.Queue()
            self._thread = threading.Thread(target=self._writer, name=f"logz-{os.path.basename(path)}", daemon=True)
            self._thread.start()

    def write(self, line: str) -> None:
        if self._queue is not None:
            self._queue.put(line)
        else:
            self._write_line(line)

    def close(self) -> None:
        if self._queue is not None and self._thread is not None:
            self._queue.put(None)
            self._thread.join(timeout=5)
        self._handler.close()

    def _write_line(self, line: str) -> None:
        self._handler.handle(logging.makeLogRecord({"msg": line, "levelno": logging.INFO}))

    def _writer(self) -> None:
        while True:
            line = self._queue.get()
            if line is None:
                break
            self._write_line(line)


def create_sink(task: TaskDefinition, project_id: str = "") -> EventSink:
    """Pick the sink variant for a task from its output options."""
    params = task.params
    output_format = params.output_format
    if output_format == NULL_OUTPUT_FORMAT:
        return NullSink()
    if output_format not in OUTPUT_FORMATS:
        output_format = JSON_OUTPUT_FORMAT

    builder = RecordBuilder(task, project_id)
    extras = params.extras
    logz_dir = extras.get(PARAM_LOGZ_DIR)
    if not logz_dir:
        return ConsoleSink(builder, output_format)

    name = extras.get(PARAM_LOGZ_NAME) or f"{DEFAULT_LOGZ_NAME}-{task.task_id}"
    try:
        rotate_secs = int(extras.get(PARAM_LOGZ_ROTATE_SECS, DEFAULT_ROTATE_SECS))
    except ValueError:
        rotate_secs = DEFAULT_ROTATE_SECS
    return RotatingFileSink(
        builder,
        os.path.join(logz_dir, f"{name}.log"),
        rotate_secs=rotate_secs,
        sync=parse_bool(extras.get(PARAM_LOGZ_SYNC)),
        output_format=output_format,
    )
