#!/usr/bin/env python3
"""Pre-build validation of the site spreadsheets.

Checks:
  1. Input is non-empty and carries every required column        (error)
  2. Subsection / Subsubsection names with known misspellings     (warning)
  3. Rows with no learning objective in LO 1                      (warning)
  4. LO sets differing between the structure sheet and the link
     sheet for the same Chapter|Section|Subsection|Subsubsection  (warning)

Errors block the build; warnings are reported only.

Usage:
  python -m hubtools.validate_rows [--config site.yaml] [--csv Website.csv] \\
    [--links Automatic-Links.csv] [--report validation_report.json]
"""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import dataclass, field
from pathlib import Path

from hubtools.csv_rows import read_csv, require_files
from hubtools.site_config import load_config

LO_COLUMNS = ("LO 1", "LO 2", "LO 3", "LO 4")
TYPO_CHECK_COLUMNS = ("Subsection", "Subsubsection")


@dataclass
class ValidationResult:
    """Findings of one validation pass. Errors block the build, warnings do not."""
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def error(self, msg: str):
        self.errors.append(msg)

    def warn(self, msg: str):
        self.warnings.append(msg)

    def merge(self, other: "ValidationResult") -> "ValidationResult":
        self.errors.extend(other.errors)
        self.warnings.extend(other.warnings)
        return self

    @property
    def ok(self) -> bool:
        return len(self.errors) == 0

    def summary(self) -> str:
        """Console report: blocking problems first, then advisories, then a verdict."""
        lines = []
        for heading, marker, messages in (
            ("Blocking problems", "✗", self.errors),
            ("Data-quality warnings", "⚠", self.warnings),
        ):
            if messages:
                lines.append(f"{heading} ({len(messages)}):")
                lines.extend(f"  {marker} {m}" for m in messages)
        if not self.ok:
            lines.append("✗ Spreadsheets NOT ready to build")
        elif self.warnings:
            lines.append(f"✓ Spreadsheets ready to build ({len(self.warnings)} warnings)")
        else:
            lines.append("✓ Spreadsheets ready to build, no issues found")
        return "\n".join(lines)

    def to_report(self, **extra) -> dict:
        report = {
            "valid": self.ok,
            "errors": self.errors,
            "warnings": self.warnings,
        }
        report.update(extra)
        return report


def join_key(row: dict) -> str:
    """Case-insensitive Chapter|Section|Subsection|Subsubsection key."""
    parts = [(row.get(col) or "").strip() for col in
             ("Chapter", "Section", "Subsection", "Subsubsection")]
    return "|".join(parts).lower()


def row_objectives(row: dict) -> list[str]:
    """Non-empty trimmed LO 1..LO 4 values of a row, in column order."""
    out = []
    for col in LO_COLUMNS:
        lo = (row.get(col) or "").strip()
        if lo:
            out.append(lo)
    return out


def validate_columns(rows: list[dict], required: list[str], label: str,
                     result: ValidationResult):
    if not rows:
        result.error(f"{label} appears to be empty")
        return
    columns = set(rows[0].keys())
    for col in required:
        if col not in columns:
            result.error(f"Missing required column in {label}: {col}")


def validate_rows(rows: list[dict], required_columns: list[str], typo_patterns,
                  label: str = "Website.csv") -> ValidationResult:
    """Run the single-sheet checks (1-3) over parsed rows."""
    result = ValidationResult()
    validate_columns(rows, required_columns, label, result)

    for idx, row in enumerate(rows):
        line_no = idx + 2  # header is line 1
        for col in TYPO_CHECK_COLUMNS:
            name = row.get(col) or ""
            if not name:
                continue
            for typo in typo_patterns:
                if typo.flags(name):
                    result.warn(f'Possible typo in "{name}" (row {line_no}), '
                                f'did you mean "{typo.correct}"?')

        if not (row.get("LO 1") or "").strip():
            result.warn(f"No learning objectives found for row {line_no}")

    return result


def validate_lo_consistency(structure_rows: list[dict],
                            link_rows: list[dict]) -> ValidationResult:
    """Check 4: compare LO sets across the two sheets for shared keys.

    Only runs when the link sheet carries at least one LO column.
    """
    result = ValidationResult()
    if not link_rows or not any(col in link_rows[0] for col in LO_COLUMNS):
        return result

    link_los: dict[str, set[str]] = {}
    for row in link_rows:
        link_los.setdefault(join_key(row), set(row_objectives(row)))

    reported = set()
    for row in structure_rows:
        key = join_key(row)
        if key not in link_los or key in reported:
            continue
        mine = set(row_objectives(row))
        theirs = link_los[key]
        if mine != theirs:
            reported.add(key)
            only_here = sorted(mine - theirs)
            only_there = sorted(theirs - mine)
            result.warn(f"Learning objectives differ between sheets for '{key}': "
                        f"structure-only={only_here}, links-only={only_there}")
    return result


def validate_inputs(structure_rows: list[dict], link_rows: list[dict] | None,
                    cfg) -> ValidationResult:
    """All checks for one build, using the column lists from the site config."""
    result = validate_rows(structure_rows, cfg.required_columns, cfg.typo_patterns,
                           label=cfg.structure_csv.name)
    if link_rows is not None:
        link_label = cfg.links_csv.name if cfg.links_csv else "links CSV"
        links = ValidationResult()
        validate_columns(link_rows, cfg.link_required_columns, link_label, links)
        result.merge(links)
        result.merge(validate_lo_consistency(structure_rows, link_rows))
    return result


def write_report(path: str, report: dict):
    with open(path, "w", encoding="utf-8") as f:
        json.dump(report, f, ensure_ascii=False, indent=2)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Validate the site spreadsheets before a build.")
    parser.add_argument("--config", help="Path to site.yaml (default: ./site.yaml if present)")
    parser.add_argument("--csv", help="Structure CSV (overrides config)")
    parser.add_argument("--links", help="Link CSV joined by hierarchy key (overrides config)")
    parser.add_argument("--report", help="Write validation report JSON to this path")
    args = parser.parse_args(argv)

    try:
        cfg = load_config(args.config)
    except FileNotFoundError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2
    except ValueError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 1
    if args.csv:
        cfg.structure_csv = Path(args.csv)
    if args.links:
        cfg.links_csv = Path(args.links)

    try:
        require_files(cfg.structure_csv, cfg.links_csv)
    except FileNotFoundError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2
    rows = read_csv(cfg.structure_csv)
    link_rows = read_csv(cfg.links_csv) if cfg.links_csv else None

    print(f"Validating: {len(rows)} rows from {cfg.structure_csv}")
    result = validate_inputs(rows, link_rows, cfg)

    print()
    print(result.summary())

    if args.report:
        write_report(args.report, result.to_report(row_count=len(rows)))
        print(f"\nReport written to {args.report}")

    return 0 if result.ok else 1


if __name__ == "__main__":
    sys.exit(main())
