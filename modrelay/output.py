"""
Output module for modrelay.

Publish results go to stdout as one JSON object per line, or as a Rich
table with --pretty. Failures go to stderr as a single JSON object so
scripts wrapping `modrelay publish` can read both streams.

Usage:
    from modrelay.output import emit, emit_error

    emit([result])
    emit(result.assets, pretty=True, columns=['name', 'size', 'sha256'])

    emit_error("Git revision not found", type="VcsUnavailable", context={"exit_code": 72})
"""

import json
import sys
from typing import Iterable, Any, Dict, Optional, List

from rich.console import Console
from rich.table import Table


def _as_dict(item: Any) -> Dict[str, Any]:
    if hasattr(item, 'to_dict'):
        return item.to_dict()
    if isinstance(item, dict):
        return item
    return {'value': str(item)}


def emit(
    items: Iterable[Any],
    pretty: bool = False,
    columns: Optional[List[str]] = None,
    title: Optional[str] = None,
) -> None:
    """
    Emit items as JSONL or pretty table.

    Args:
        items: Items to emit (should have to_dict() method or be dicts)
        pretty: If True, render as table. If False, output JSONL
        columns: Column names for table (auto-detected if None)
        title: Table title (pretty output only)
    """
    if pretty:
        _emit_table(items, columns, title)
    else:
        _emit_jsonl(items)


def _emit_jsonl(items: Iterable[Any], stream=None) -> None:
    """Emit items as JSONL."""
    stream = stream or sys.stdout
    for item in items:
        print(json.dumps(_as_dict(item), ensure_ascii=False), file=stream, flush=True)


def _emit_table(
    items: Iterable[Any],
    columns: Optional[List[str]] = None,
    title: Optional[str] = None,
) -> None:
    """Emit items as a Rich table."""
    rows = [_as_dict(item) for item in items]
    console = Console()

    if not rows:
        console.print("No results found")
        return

    if not columns:
        columns = list(rows[0].keys())

    table = Table(title=title, show_header=True, header_style="bold")
    for col in columns:
        table.add_column(col)
    for row in rows:
        table.add_row(*[_format_value(row.get(col, '')) for col in columns])

    console.print(table)


def _format_value(value: Any) -> str:
    """Format a value for table display."""
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'Yes' if value else 'No'
    return str(value)


def emit_error(
    error: str,
    type: str = "error",
    context: Optional[Dict[str, Any]] = None
) -> None:
    """
    Emit error to stderr as JSON.

    Args:
        error: Error message
        type: Error type (e.g., "NoRouteError", "BackendFailure")
        context: Additional context dict
    """
    obj: Dict[str, Any] = {
        'error': error,
        'type': type
    }
    if context:
        obj['context'] = context

    print(json.dumps(obj, ensure_ascii=False), file=sys.stderr, flush=True)
