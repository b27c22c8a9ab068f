# pathsift/core/discovery/diagnostics.py
import threading
from dataclasses import dataclass
from typing import Callable, List, Optional, Tuple

import structlog

log = structlog.get_logger(__name__)

TraceSink = Callable[[str, str], None]

@dataclass(frozen=True)
class DecisionRecord:
    # one trace entry explaining an accept/reject decision.
    component: str
    message: str

def structlog_trace_sink(component: str, message: str) -> None:
    # default sink: forwards decision records to structlog at debug level.
    log.debug("filter_decision", component=component, message=message)

class DiagnosticsLog:
    """
    Append-only trail of DecisionRecords.

    Appends are serialized with a lock so concurrent per-entry evaluations
    (and threads calling ``freeform_check_file``) can share one log. Every
    record is also forwarded to the trace sink; a failing sink is reported
    and otherwise ignored.
    """

    def __init__(self, trace_sink: Optional[TraceSink] = structlog_trace_sink):
        self._records: List[DecisionRecord] = []
        self._lock = threading.Lock()
        self._trace_sink = trace_sink

    def record(self, component: str, message: str) -> DecisionRecord:
        entry = DecisionRecord(component=component, message=message)
        with self._lock:
            self._records.append(entry)
        if self._trace_sink is not None:
            try:
                self._trace_sink(component, message)
            except Exception as e:
                log.warning("trace_sink_failed", component=component, error=str(e))
        return entry

    def clear(self) -> None:
        with self._lock:
            self._records.clear()

    def snapshot(self) -> Tuple[DecisionRecord, ...]:
        with self._lock:
            return tuple(self._records)

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)
