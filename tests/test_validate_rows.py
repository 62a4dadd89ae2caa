"""Tests for hubtools/validate_rows.py — pre-build spreadsheet checks."""

import json
from pathlib import Path

from hubtools.site_config import (
    DEFAULT_REQUIRED_COLUMNS,
    DEFAULT_TYPO_PATTERNS,
    SiteConfig,
    compile_typo_patterns,
)
from hubtools.validate_rows import (
    ValidationResult,
    join_key,
    main,
    row_objectives,
    validate_inputs,
    validate_lo_consistency,
    validate_rows,
)

TYPOS = compile_typo_patterns(DEFAULT_TYPO_PATTERNS)


def _full_row(**values):
    row = {col: "" for col in DEFAULT_REQUIRED_COLUMNS}
    row["Subsubsection"] = ""
    row["LO 1"] = "an objective"
    row.update(values)
    return row


# ---------------------------------------------------------------------------
# ValidationResult
# ---------------------------------------------------------------------------

class TestValidationResult:

    def test_ok_and_summary(self):
        r = ValidationResult()
        assert r.ok
        assert r.summary().endswith("ready to build, no issues found")
        r.warn("careful")
        assert r.ok
        assert "Data-quality warnings (1):\n  ⚠ careful" in r.summary()
        assert r.summary().endswith("ready to build (1 warnings)")
        r.error("broken")
        assert not r.ok
        assert r.summary().startswith("Blocking problems (1):\n  ✗ broken")
        assert r.summary().endswith("NOT ready to build")

    def test_merge_and_report(self):
        a, b = ValidationResult(), ValidationResult()
        a.warn("w1")
        b.error("e1")
        merged = a.merge(b)
        assert merged is a
        assert merged.to_report(row_count=3) == {
            "valid": False, "errors": ["e1"], "warnings": ["w1"], "row_count": 3}


# ---------------------------------------------------------------------------
# Row helpers
# ---------------------------------------------------------------------------

class TestRowHelpers:

    def test_join_key_case_insensitive(self):
        a = {"Chapter": "Numbers", "Section": "Integers", "Subsection": "Add "}
        b = {"Chapter": "NUMBERS", "Section": "integers", "Subsection": "add",
             "Subsubsection": ""}
        assert join_key(a) == join_key(b) == "numbers|integers|add|"

    def test_row_objectives(self):
        row = {"LO 1": " a ", "LO 2": "", "LO 4": "d"}
        assert row_objectives(row) == ["a", "d"]


# ---------------------------------------------------------------------------
# Single-sheet checks
# ---------------------------------------------------------------------------

class TestValidateRows:

    def test_clean_rows(self):
        result = validate_rows([_full_row()], DEFAULT_REQUIRED_COLUMNS, TYPOS)
        assert result.ok
        assert result.warnings == []

    def test_empty_input_is_error(self):
        result = validate_rows([], DEFAULT_REQUIRED_COLUMNS, TYPOS)
        assert result.errors == ["Website.csv appears to be empty"]

    def test_missing_columns_listed(self):
        result = validate_rows([{"Chapter": "x", "Section": "y", "LO 1": "z"}],
                               DEFAULT_REQUIRED_COLUMNS, TYPOS)
        assert not result.ok
        assert "Missing required column in Website.csv: Subsection" in result.errors
        assert "Missing required column in Website.csv: Lesson Plan Exists" in result.errors
        assert len(result.errors) == len(DEFAULT_REQUIRED_COLUMNS) - 3

    def test_typo_warning(self):
        rows = [_full_row(), _full_row(Subsubsection="Uniform accelaration")]
        result = validate_rows(rows, DEFAULT_REQUIRED_COLUMNS, TYPOS)
        assert result.ok
        assert result.warnings == [
            'Possible typo in "Uniform accelaration" (row 3), did you mean "acceleration"?']

    def test_correct_spelling_not_flagged(self):
        rows = [_full_row(Subsection="Acceleration", Subsubsection="Separate events")]
        assert validate_rows(rows, DEFAULT_REQUIRED_COLUMNS, TYPOS).warnings == []

    def test_missing_lo_warning(self):
        rows = [_full_row(**{"LO 1": "  "})]
        result = validate_rows(rows, DEFAULT_REQUIRED_COLUMNS, TYPOS)
        assert result.ok
        assert result.warnings == ["No learning objectives found for row 2"]


# ---------------------------------------------------------------------------
# Cross-sheet checks
# ---------------------------------------------------------------------------

class TestLoConsistency:

    def _s(self, **lo):
        row = {"Chapter": "C", "Section": "S", "Subsection": "Sub", "Subsubsection": ""}
        row.update({k.replace("_", " "): v for k, v in lo.items()})
        return row

    def test_mismatch_warned_once(self):
        structure = [self._s(LO_1="a", LO_2="b"), self._s(LO_1="a")]
        links = [self._s(LO_1="a", LO_2="c")]
        result = validate_lo_consistency(structure, links)
        assert result.ok
        assert len(result.warnings) == 1
        assert "structure-only=['b']" in result.warnings[0]
        assert "links-only=['c']" in result.warnings[0]

    def test_same_set_any_order(self):
        structure = [self._s(LO_1="a", LO_2="b")]
        links = [self._s(LO_1="b", LO_3="a")]
        assert validate_lo_consistency(structure, links).warnings == []

    def test_skipped_without_lo_columns_in_links(self):
        structure = [self._s(LO_1="a")]
        links = [{"Chapter": "C", "Section": "S", "Subsection": "Sub"}]
        assert validate_lo_consistency(structure, links).warnings == []

    def test_validate_inputs_checks_link_columns(self):
        cfg = SiteConfig(links_csv=Path("Automatic-Links.csv"))
        links = [{"Chapter": "C", "Section": "S"}]
        result = validate_inputs([_full_row()], links, cfg)
        assert "Missing required column in Automatic-Links.csv: Lesson Plan Path" in result.errors


# ---------------------------------------------------------------------------
# CLI
# ---------------------------------------------------------------------------

class TestMain:

    def test_report_written(self, tmp_path):
        csv_path = tmp_path / "Website.csv"
        header = ",".join(DEFAULT_REQUIRED_COLUMNS)
        values = ",".join(["x"] * len(DEFAULT_REQUIRED_COLUMNS))
        csv_path.write_text(f"{header}\n{values}\n", encoding="utf-8")
        cfg = tmp_path / "site.yaml"
        cfg.write_text("{}\n", encoding="utf-8")
        report = tmp_path / "report.json"
        rc = main(["--config", str(cfg), "--csv", str(csv_path), "--report", str(report)])
        assert rc == 0
        data = json.loads(report.read_text(encoding="utf-8"))
        assert data == {"valid": True, "errors": [], "warnings": [], "row_count": 1}

    def test_empty_csv_exits_1(self, tmp_path):
        csv_path = tmp_path / "Website.csv"
        csv_path.write_text("", encoding="utf-8")
        cfg = tmp_path / "site.yaml"
        cfg.write_text("", encoding="utf-8")
        assert main(["--config", str(cfg), "--csv", str(csv_path)]) == 1

    def test_missing_links_file_exits_2(self, tmp_path):
        csv_path = tmp_path / "Website.csv"
        csv_path.write_text("Chapter\nx\n", encoding="utf-8")
        cfg = tmp_path / "site.yaml"
        cfg.write_text("", encoding="utf-8")
        rc = main(["--config", str(cfg), "--csv", str(csv_path),
                   "--links", str(tmp_path / "nope.csv")])
        assert rc == 2

    def test_malformed_config_exits_1(self, tmp_path, capsys):
        csv_path = tmp_path / "Website.csv"
        csv_path.write_text("Chapter\nx\n", encoding="utf-8")
        cfg = tmp_path / "site.yaml"
        cfg.write_text("- not\n- a mapping\n", encoding="utf-8")
        assert main(["--config", str(cfg), "--csv", str(csv_path)]) == 1
        assert "ERROR" in capsys.readouterr().err

    def test_missing_config_exits_2(self, tmp_path):
        assert main(["--config", str(tmp_path / "absent.yaml")]) == 2
