"""Shared log text builders for tests."""

from metrolog.parser import FIELD_LAYOUT

HEADER = "\t".join(FIELD_LAYOUT)

DEFAULT_ROW = {
    "date": "2024-01-01",
    "time": "10:00:00",
    "measurement_id": "M-1",
    "status": "OK",
    "measurement_group": "GroupA",
    "measurement_style": "Single",
    "color_model": "RGB",
    "id1": "1",
    "id2": "2",
    "id3": "3",
    "x": "1,5",
    "y": "2,5",
    "z": "3,5",
    "rx": "0,1",
    "ry": "0,2",
    "rz": "0,3",
    "uncertainty": "0,05",
    "measurement_time": "1200",
    "features_ok": "Yes",
    "error_desc": "",
}


def make_line(**overrides) -> str:
    row = dict(DEFAULT_ROW, **overrides)
    return "\t".join(str(row[name]) for name in FIELD_LAYOUT)


def make_log(*rows) -> str:
    """Log text with a header line and one line per overrides dict."""
    return "\n".join([HEADER] + [make_line(**row) for row in rows]) + "\n"
