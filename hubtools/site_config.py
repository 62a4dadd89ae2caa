#!/usr/bin/env python3
"""Site build configuration (site.yaml).

Example:

    base_url: https://innodems.github.io/CBC-Grade-10-Maths/external/lesson_plans/
    inputs:
      structure_csv: website-content/data/Website.csv
      links_csv: website-content/data/Automatic-Links.csv   # optional
    output:
      catalog_json: website-content/data/lesson-plans-catalog.json
    validation:
      required_columns: [Chapter, Section, ...]
      link_required_columns: [Chapter, Section, ...]
      typo_patterns:
        - {pattern: "accel[ae]ration", correct: acceleration}

Every key is optional; missing keys fall back to the defaults below.
Relative paths are resolved against the directory holding the config file.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path

import yaml

DEFAULT_CONFIG_NAME = "site.yaml"

DEFAULT_BASE_URL = "https://innodems.github.io/CBC-Grade-10-Maths/external/lesson_plans/"
DEFAULT_STRUCTURE_CSV = "website-content/data/Website.csv"
DEFAULT_CATALOG_JSON = "website-content/data/lesson-plans-catalog.json"

DEFAULT_REQUIRED_COLUMNS = [
    "Chapter", "Section", "Subsection",
    "Chapter Filecase", "Section Filecase", "Subsection Filecase",
    "Lesson Plan Path", "Lesson Plan Exists",
    "LO 1",
]

DEFAULT_LINK_REQUIRED_COLUMNS = [
    "Chapter", "Section", "Subsection",
    "Lesson Plan Path", "Lesson Plan Exists",
]

DEFAULT_TYPO_PATTERNS = [
    ("accel[ae]ration", "acceleration"),
    ("occurance", "occurrence"),
    ("seperate", "separate"),
]


@dataclass
class TypoPattern:
    """A misspelling regex and the word it should have been."""
    pattern: re.Pattern
    correct: str

    def flags(self, text: str) -> bool:
        """True when text matches the misspelling but not the correct word."""
        if not self.pattern.search(text):
            return False
        return re.search(re.escape(self.correct), text, re.IGNORECASE) is None


def compile_typo_patterns(pairs) -> list[TypoPattern]:
    return [TypoPattern(re.compile(p, re.IGNORECASE), c) for p, c in pairs]


@dataclass
class SiteConfig:
    base_url: str = DEFAULT_BASE_URL
    structure_csv: Path = Path(DEFAULT_STRUCTURE_CSV)
    links_csv: Path | None = None
    catalog_json: Path = Path(DEFAULT_CATALOG_JSON)
    required_columns: list[str] = field(default_factory=lambda: list(DEFAULT_REQUIRED_COLUMNS))
    link_required_columns: list[str] = field(
        default_factory=lambda: list(DEFAULT_LINK_REQUIRED_COLUMNS))
    typo_patterns: list[TypoPattern] = field(
        default_factory=lambda: compile_typo_patterns(DEFAULT_TYPO_PATTERNS))


def _section(data: dict, key: str, source: Path) -> dict:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        raise ValueError(f"{source}: '{key}' must be a mapping, got {type(value).__name__}")
    return value


def _path_value(section: dict, key: str, parent: str, source: Path) -> str:
    """A path key under inputs/output; empty or absent -> "" (use the default)."""
    value = section.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        raise ValueError(f"{source}: '{parent}.{key}' must be a string path, "
                         f"got {type(value).__name__}")
    return value.strip()


def _str_list(value, key: str, source: Path) -> list[str]:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise ValueError(f"{source}: '{key}' must be a list of strings")
    return [v.strip() for v in value]


def load_config(path: str | Path | None = None) -> SiteConfig:
    """Load site.yaml, falling back to defaults.

    path=None looks for site.yaml in the current directory and returns the
    defaults if it is absent. An explicit path that does not exist raises
    FileNotFoundError. Malformed YAML raises ValueError.
    """
    if path is None:
        candidate = Path.cwd() / DEFAULT_CONFIG_NAME
        if not candidate.is_file():
            return SiteConfig()
        path = candidate

    cfg_path = Path(path)
    if not cfg_path.is_file():
        raise FileNotFoundError(f"Config not found: {cfg_path}")

    with open(cfg_path, encoding="utf-8") as f:
        try:
            data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"{cfg_path}: invalid YAML: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"{cfg_path}: top level must be a mapping")

    root = cfg_path.resolve().parent
    cfg = SiteConfig()

    if data.get("base_url"):
        cfg.base_url = str(data["base_url"])

    inputs = _section(data, "inputs", cfg_path)
    cfg.structure_csv = root / (_path_value(inputs, "structure_csv", "inputs", cfg_path)
                                or DEFAULT_STRUCTURE_CSV)
    links_csv = _path_value(inputs, "links_csv", "inputs", cfg_path)
    if links_csv:
        cfg.links_csv = root / links_csv

    output = _section(data, "output", cfg_path)
    cfg.catalog_json = root / (_path_value(output, "catalog_json", "output", cfg_path)
                               or DEFAULT_CATALOG_JSON)

    validation = _section(data, "validation", cfg_path)
    if "required_columns" in validation:
        cfg.required_columns = _str_list(
            validation["required_columns"], "validation.required_columns", cfg_path)
    if "link_required_columns" in validation:
        cfg.link_required_columns = _str_list(
            validation["link_required_columns"], "validation.link_required_columns", cfg_path)
    if "typo_patterns" in validation:
        pairs = []
        for entry in validation["typo_patterns"] or []:
            if not isinstance(entry, dict) or "pattern" not in entry or "correct" not in entry:
                raise ValueError(
                    f"{cfg_path}: each typo pattern needs 'pattern' and 'correct' keys")
            pairs.append((str(entry["pattern"]), str(entry["correct"])))
        try:
            cfg.typo_patterns = compile_typo_patterns(pairs)
        except re.error as e:
            raise ValueError(f"{cfg_path}: bad typo pattern: {e}") from e

    return cfg
