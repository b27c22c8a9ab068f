import json
import sys
from typing import Any, Dict, Optional, Tuple

import structlog
from rich.console import Console as RichConsole
from rich.table import Table
from rich.text import Text

from pathsift.core.discovery.diagnostics import DecisionRecord
from pathsift.core.discovery.walker import WalkResult

log = structlog.get_logger(__name__)

def write_to_stdout(text_content: str):
    # writes text to standard output.
    try:
        sys.stdout.write(text_content)
        sys.stdout.flush()
    except UnicodeEncodeError as e:
        log.warning("stdout_write_failed_trying_binary_fallback", error=str(e))
        sys.stdout.buffer.write(text_content.encode("utf-8", errors="replace"))
        sys.stdout.buffer.flush()

def format_walk_result(result: WalkResult, root: str, json_output: bool = False, nul_separated: bool = False) -> str:
    # renders accepted files as json, NUL-separated or newline-separated text.
    if json_output:
        payload: Dict[str, Any] = {
            "root": root,
            "files": [str(p) for p in result.files],
            "count": len(result.files),
            "aborted": result.aborted,
        }
        return json.dumps(payload, indent=2) + "\n"
    if not result.files:
        return ""
    separator = "\0" if nul_separated else "\n"
    return separator.join(str(p) for p in result.files) + separator

def print_decision_log(records: Tuple[DecisionRecord, ...], console: Optional[RichConsole] = None):
    # renders the diagnostics trail as a table on stderr.
    console = console or RichConsole(stderr=True)
    table = Table(title="filter decisions", show_lines=False)
    table.add_column("#", justify="right", style="dim")
    table.add_column("component", style="cyan")
    table.add_column("message")
    for i, record in enumerate(records, start=1):
        table.add_row(str(i), Text(record.component), Text(record.message))
    console.print(table)
