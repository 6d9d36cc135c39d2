"""
ログパーサー
Tab-delimited measurement log parser.

The instrument writes one header line followed by one reading per line.
Columns are positional; numeric columns may use a comma as the decimal
separator depending on the instrument locale.
"""
import logging
import math
import re
from dataclasses import dataclass

logger = logging.getLogger(__name__)

MIN_COLUMNS = 15

FIELD_LAYOUT = (
    "date", "time", "measurement_id", "status", "measurement_group",
    "measurement_style", "color_model", "id1", "id2", "id3",
    "x", "y", "z", "rx", "ry", "rz", "uncertainty", "measurement_time",
    "features_ok", "error_desc",
)
FLOAT_FIELDS = frozenset(("x", "y", "z", "rx", "ry", "rz", "uncertainty"))
INT_FIELDS = frozenset(("id1", "id2", "id3", "measurement_time"))

_INT_PREFIX = re.compile(r"[+-]?\d+")
_FLOAT_PREFIX = re.compile(r"[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?")


@dataclass
class LogEntry:
    date: str = ""
    time: str = ""
    measurement_id: str = ""
    status: str = ""
    measurement_group: str = ""
    measurement_style: str = ""
    color_model: str = ""
    id1: int = 0
    id2: int = 0
    id3: int = 0
    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    rx: float = 0.0
    ry: float = 0.0
    rz: float = 0.0
    uncertainty: float = 0.0
    measurement_time: int = 0
    features_ok: str = ""
    error_desc: str = ""

    @property
    def failed(self) -> bool:
        return self.status.startswith("Failed")


def parse_float(value) -> float:
    """Leading decimal number, '12,5 mm' -> 12.5; unparsable or non-finite -> 0.0"""
    if not value:
        return 0.0
    match = _FLOAT_PREFIX.match(value.strip().replace(",", ".", 1))
    if not match:
        return 0.0
    result = float(match.group())
    if not math.isfinite(result):
        return 0.0
    return result


def parse_int(value) -> int:
    """Leading base-10 integer; anything unparsable -> 0"""
    if not value:
        return 0
    match = _INT_PREFIX.match(value.strip())
    if not match:
        return 0
    return int(match.group(), 10)


def data_lines(content: str) -> list[str]:
    """Non-blank lines after the header, in source order."""
    lines = content.splitlines()
    while lines and not lines[0].strip():
        lines.pop(0)
    return [line for line in lines[1:] if line.strip()]


def parse_line(line: str) -> LogEntry | None:
    columns = line.split("\t")
    if len(columns) < MIN_COLUMNS:
        return None

    values = {}
    for index, name in enumerate(FIELD_LAYOUT):
        raw = columns[index] if index < len(columns) else ""
        if name in FLOAT_FIELDS:
            values[name] = parse_float(raw)
        elif name in INT_FIELDS:
            values[name] = parse_int(raw)
        else:
            values[name] = raw.strip()
    return LogEntry(**values)


def parse_log_content(content: str) -> list[LogEntry]:
    """
    ログ本文を LogEntry のリストに変換する。

    The header line is skipped without looking at it. Lines with fewer than
    MIN_COLUMNS columns are dropped silently; a line that fails to convert
    is logged and skipped. The rest of the batch is unaffected either way.
    """
    entries = []
    lines = content.splitlines()
    start = 0
    while start < len(lines) and not lines[start].strip():
        start += 1

    for lineno in range(start + 1, len(lines)):
        line = lines[lineno]
        if not line.strip():
            continue
        try:
            entry = parse_line(line)
        except (ValueError, TypeError, AttributeError) as e:
            logger.warning("Skipping invalid line %d: %s", lineno + 1, e)
            continue
        if entry is not None:
            entries.append(entry)

    return entries
