#!/usr/bin/env python3
"""Spreadsheet CSV reader for the catalog build.

The site data is exported from Google Sheets as plain CSV. This reader is
line-based: the text is split into lines first and each line is then scanned
for quoted fields. A quoted cell that contains a literal newline is therefore
NOT supported and will be split across two rows. The exports we build from do
not contain such cells; keep it that way.

Quote handling per data line:
  ""          inside or outside a quoted field -> literal "
  "           toggles the quoted-field flag (not emitted)
  ,           outside quotes ends the field
  anything    appended to the current field
Every field is trimmed. Header cells are split on plain commas.
"""

from __future__ import annotations

from pathlib import Path


def _header_cells(line: str) -> list[str]:
    cells = []
    for raw in line.split(","):
        cell = raw.strip()
        if cell.startswith('"'):
            cell = cell[1:]
        if cell.endswith('"'):
            cell = cell[:-1]
        cells.append(cell)
    return cells


def split_fields(line: str) -> list[str]:
    """Split one data line into trimmed field values."""
    values: list[str] = []
    current: list[str] = []
    inside_quotes = False
    i = 0
    n = len(line)
    while i < n:
        ch = line[i]
        if ch == '"' and i + 1 < n and line[i + 1] == '"':
            current.append('"')
            i += 2
            continue
        if ch == '"':
            inside_quotes = not inside_quotes
        elif ch == "," and not inside_quotes:
            values.append("".join(current).strip())
            current = []
        else:
            current.append(ch)
        i += 1
    values.append("".join(current).strip())
    return values


def parse_csv(text: str) -> list[dict[str, str]]:
    """Parse CSV text into a list of row dicts keyed by the header line.

    Blank lines are ignored. Missing trailing cells become "", surplus
    cells beyond the header are dropped.
    """
    lines = [ln.rstrip("\r") for ln in text.split("\n") if ln.strip()]
    if not lines:
        return []

    headers = _header_cells(lines[0])
    rows = []
    for line in lines[1:]:
        values = split_fields(line)
        row = {}
        for idx, header in enumerate(headers):
            row[header] = values[idx] if idx < len(values) else ""
        rows.append(row)
    return rows


def read_csv(path: str | Path) -> list[dict[str, str]]:
    """Read and parse a UTF-8 CSV file (a leading BOM is tolerated).

    Raises FileNotFoundError if the file does not exist.
    """
    p = Path(path)
    if not p.is_file():
        raise FileNotFoundError(f"CSV not found: {p}")
    with open(p, encoding="utf-8-sig") as f:
        text = f.read()
    return parse_csv(text)


def require_files(*paths) -> None:
    """Raise FileNotFoundError for the first missing path; None entries are skipped.

    Called before any read_csv so a missing second input aborts before the
    first one is parsed.
    """
    for path in paths:
        if path is not None and not Path(path).is_file():
            raise FileNotFoundError(f"CSV not found: {path}")
