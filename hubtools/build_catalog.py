#!/usr/bin/env python3
"""Build lesson-plans-catalog.json from the site spreadsheets.

Input is either a single structure sheet (Website.csv) that carries the
lesson-plan / guide paths itself, or a structure sheet plus a link sheet
(Automatic-Links.csv) joined on Chapter|Section|Subsection|Subsubsection.

Output shape:

    {
      "baseUrl": "...",
      "chapters": [
        {"id", "title", "sections": [
          {"id", "title", "learningObjectives": [...], "course"?: {"title", "url"},
           "subsections": [
             {"id", "title", "hasSubtopics": false, "learningObjectiveRefs": [...],
              "lessonPlan": {"url", "exists"}, "guide": {"url", "exists"}},
             {"id", "title", "hasSubtopics": true, "topics": [
               {"id", "title", "learningObjectiveRefs", "lessonPlan", "guide"}]}
           ]}
        ]}
      ],
      "chapterUrlMap"?: {"chapter-id": "chapter"}
    }

Usage:
  python -m hubtools.build_catalog [--config site.yaml] [--csv Website.csv] \\
    [--links Automatic-Links.csv] [--out lesson-plans-catalog.json] \\
    [--base-url URL] [--chapter-map] [--report validation_report.json]

Exit codes: 0 success, 1 bad config, validation or write failure, 2 missing input.
"""

from __future__ import annotations

import argparse
import json
import os
import re
import sys
import tempfile
from dataclasses import dataclass, field
from pathlib import Path

from hubtools.csv_rows import read_csv, require_files
from hubtools.site_config import load_config
from hubtools.validate_rows import join_key, row_objectives, validate_inputs, write_report

COURSE_URL_PLACEHOLDERS = {"", "#"}


# ---------------------------------------------------------------------------
# Output model
# ---------------------------------------------------------------------------

@dataclass
class ResourceLink:
    url: str = ""
    exists: bool = False

    def to_dict(self) -> dict:
        return {"url": self.url, "exists": self.exists}


@dataclass
class Topic:
    """A leaf payload: either a topic under a branch or a leaf subsection's own data."""
    id: str
    title: str
    learning_objective_refs: list[int]
    lesson_plan: ResourceLink
    guide: ResourceLink
    lesson_name: str = ""

    def payload(self) -> dict:
        out = {
            "learningObjectiveRefs": list(self.learning_objective_refs),
            "lessonPlan": self.lesson_plan.to_dict(),
            "guide": self.guide.to_dict(),
        }
        if self.lesson_name:
            out["lessonName"] = self.lesson_name
        return out

    def to_dict(self) -> dict:
        return {"id": self.id, "title": self.title, **self.payload()}


@dataclass
class Subsection:
    """Leaf when `topics` is empty (payload in `leaf`), branch otherwise."""
    id: str
    title: str
    leaf: Topic | None = None
    topics: list[Topic] = field(default_factory=list)

    @property
    def has_subtopics(self) -> bool:
        return bool(self.topics)

    def to_dict(self) -> dict:
        out = {"id": self.id, "title": self.title, "hasSubtopics": self.has_subtopics}
        if self.has_subtopics:
            out["topics"] = [t.to_dict() for t in self.topics]
        elif self.leaf is not None:
            out.update(self.leaf.payload())
        return out


@dataclass
class Section:
    id: str
    title: str
    learning_objectives: list[str] = field(default_factory=list)
    subsections: list[Subsection] = field(default_factory=list)
    course_url: str = ""

    def to_dict(self) -> dict:
        out = {
            "id": self.id,
            "title": self.title,
            "learningObjectives": list(self.learning_objectives),
            "subsections": [s.to_dict() for s in self.subsections],
        }
        if self.course_url:
            out["course"] = {"title": self.title, "url": self.course_url}
        return out


@dataclass
class Chapter:
    id: str
    title: str
    sections: list[Section] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"id": self.id, "title": self.title,
                "sections": [s.to_dict() for s in self.sections]}


@dataclass
class Catalog:
    base_url: str
    chapters: list[Chapter] = field(default_factory=list)
    chapter_url_map: dict[str, str] | None = None

    def to_dict(self) -> dict:
        out = {"baseUrl": self.base_url, "chapters": [c.to_dict() for c in self.chapters]}
        if self.chapter_url_map is not None:
            out["chapterUrlMap"] = dict(self.chapter_url_map)
        return out


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def generate_id(text: str) -> str:
    """URL-safe slug: "Number & Algebra" -> "number-algebra"."""
    if not text:
        return ""
    slug = text.lower()
    slug = re.sub(r"[^a-z0-9\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"-+", "-", slug)
    return slug.strip("-")


def node_id(row: dict, filecase_col: str, title: str) -> str:
    explicit = (row.get(filecase_col) or "").strip()
    return explicit or generate_id(title)


def resource_link(base_url: str, source: dict, path_col: str, exists_col: str) -> ResourceLink:
    path = source.get(path_col) or ""
    return ResourceLink(
        url=base_url + path if path else "",
        exists=source.get(exists_col) == "YES",
    )


def chapter_url_map(chapters: list[Chapter]) -> dict[str, str]:
    """chapter id -> text before its first hyphen."""
    return {ch.id: ch.id.split("-")[0] for ch in chapters}


def index_link_rows(link_rows: list[dict]) -> dict[str, dict]:
    """Join-key -> link row; the first row for a key wins."""
    index: dict[str, dict] = {}
    for row in link_rows:
        index.setdefault(join_key(row), row)
    return index


def count_unmatched(rows: list[dict], link_rows: list[dict]) -> int:
    index = index_link_rows(link_rows)
    return sum(1 for r in rows
               if r.get("Chapter") and r.get("Section") and join_key(r) not in index)


# ---------------------------------------------------------------------------
# Build
# ---------------------------------------------------------------------------

@dataclass
class _SubsectionAcc:
    id: str
    title: str
    leaf: Topic | None = None
    topics: list[Topic] = field(default_factory=list)


@dataclass
class _SectionAcc:
    section: Section
    lo_index: dict[str, int] = field(default_factory=dict)
    subsections: dict[str, _SubsectionAcc] = field(default_factory=dict)

    def add_objectives(self, los: list[str]) -> list[int]:
        refs = []
        for lo in los:
            if lo not in self.lo_index:
                self.lo_index[lo] = len(self.section.learning_objectives)
                self.section.learning_objectives.append(lo)
            refs.append(self.lo_index[lo])
        return refs


def build_catalog(rows: list[dict], base_url: str, link_rows: list[dict] | None = None,
                  with_chapter_map: bool = False) -> Catalog:
    """Fold flat rows into the chapter/section/subsection/topic hierarchy.

    Rows without a Chapter or Section are skipped. With link_rows, the
    lesson-plan / guide columns come from the link row sharing the row's
    join key; rows with no match get empty links.
    """
    link_index = index_link_rows(link_rows) if link_rows is not None else None

    chapters: dict[str, Chapter] = {}
    sections: dict[tuple[str, str], _SectionAcc] = {}

    for row in rows:
        chapter_name = row.get("Chapter") or ""
        section_name = row.get("Section") or ""
        if not chapter_name or not section_name:
            continue
        subsection_name = row.get("Subsection") or ""
        subsubsection_name = (row.get("Subsubsection") or "").strip()

        chapter = chapters.get(chapter_name)
        if chapter is None:
            chapter = Chapter(id=node_id(row, "Chapter Filecase", chapter_name),
                              title=chapter_name)
            chapters[chapter_name] = chapter

        acc = sections.get((chapter_name, section_name))
        if acc is None:
            acc = _SectionAcc(Section(id=node_id(row, "Section Filecase", section_name),
                                      title=section_name))
            sections[(chapter_name, section_name)] = acc
            chapter.sections.append(acc.section)

        course_url = (row.get("Course URL") or "").strip()
        if course_url not in COURSE_URL_PLACEHOLDERS and not acc.section.course_url:
            acc.section.course_url = course_url

        refs = acc.add_objectives(row_objectives(row))

        if link_index is None:
            source = row
        else:
            source = link_index.get(join_key(row), {})

        sub = acc.subsections.get(subsection_name)
        if sub is None:
            sub = _SubsectionAcc(id=node_id(row, "Subsection Filecase", subsection_name),
                                 title=subsection_name)
            acc.subsections[subsection_name] = sub

        if subsubsection_name:
            topic_id = node_id(row, "Subsubsection Filecase", subsubsection_name)
            topic_title = subsubsection_name
        else:
            if sub.leaf is not None:
                continue
            topic_id, topic_title = sub.id, sub.title

        topic = Topic(
            id=topic_id,
            title=topic_title,
            learning_objective_refs=refs,
            lesson_plan=resource_link(base_url, source, "Lesson Plan Path", "Lesson Plan Exists"),
            guide=resource_link(base_url, source,
                                "Step By Step Guide Path", "Step By Step Guide Exists"),
            lesson_name=(source.get("Lesson Name") or row.get("Lesson Name") or "").strip(),
        )
        if subsubsection_name:
            sub.topics.append(topic)
        else:
            sub.leaf = topic

    # Resolve subsection shape only now that every row has been seen.
    for acc in sections.values():
        for sub in acc.subsections.values():
            if sub.topics:
                acc.section.subsections.append(
                    Subsection(id=sub.id, title=sub.title, topics=list(sub.topics)))
            else:
                acc.section.subsections.append(
                    Subsection(id=sub.id, title=sub.title, leaf=sub.leaf))

    catalog = Catalog(base_url=base_url, chapters=list(chapters.values()))
    if with_chapter_map:
        catalog.chapter_url_map = chapter_url_map(catalog.chapters)
    return catalog


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------

def write_json_atomic(path: str | Path, data) -> None:
    """Write pretty-printed JSON via temp file + rename; never leaves partial output."""
    out_path = Path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_path = tempfile.mkstemp(dir=str(out_path.parent), suffix=".json.tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=2)
            f.write("\n")
        os.replace(tmp_path, str(out_path))
    except Exception:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass  # cleanup failure should not mask the original exception
        raise


def info(msg):
    """Print info to stdout."""
    print(msg)


def warn(msg):
    """Print warning to stderr."""
    print(f"WARNING: {msg}", file=sys.stderr)


def fail(msg):
    """Print error to stderr."""
    print(f"ERROR: {msg}", file=sys.stderr)


def main(argv=None):
    parser = argparse.ArgumentParser(description="Build lesson-plans-catalog.json from CSV.")
    parser.add_argument("--config", help="Path to site.yaml (default: ./site.yaml if present)")
    parser.add_argument("--csv", help="Structure CSV (overrides config)")
    parser.add_argument("--links", help="Link CSV joined by hierarchy key (overrides config)")
    parser.add_argument("--out", help="Output JSON path (overrides config)")
    parser.add_argument("--base-url", help="Prefix for lesson plan / guide paths (overrides config)")
    parser.add_argument("--chapter-map", action="store_true",
                        help="Also emit chapterUrlMap (chapter id -> short slug)")
    parser.add_argument("--report", help="Write validation report JSON to this path")
    args = parser.parse_args(argv)

    try:
        cfg = load_config(args.config)
    except FileNotFoundError as e:
        fail(str(e))
        return 2
    except ValueError as e:
        fail(str(e))
        return 1
    if args.csv:
        cfg.structure_csv = Path(args.csv)
    if args.links:
        cfg.links_csv = Path(args.links)
    if args.out:
        cfg.catalog_json = Path(args.out)
    if args.base_url is not None:
        cfg.base_url = args.base_url

    info("Reading CSV files...")
    try:
        require_files(cfg.structure_csv, cfg.links_csv)
    except FileNotFoundError as e:
        fail(str(e))
        return 2
    rows = read_csv(cfg.structure_csv)
    link_rows = read_csv(cfg.links_csv) if cfg.links_csv else None
    info(f"  {cfg.structure_csv.name}: {len(rows)} rows")
    if link_rows is not None:
        info(f"  {cfg.links_csv.name}: {len(link_rows)} rows")

    info("Validating data...")
    result = validate_inputs(rows, link_rows, cfg)
    info(result.summary())
    if args.report:
        write_report(args.report, result.to_report(row_count=len(rows)))
    if not result.ok:
        fail("Validation failed. Fix the errors above before building.")
        return 1

    info("Building lesson plans catalog...")
    catalog = build_catalog(rows, cfg.base_url, link_rows=link_rows,
                            with_chapter_map=args.chapter_map)
    if link_rows is not None:
        unmatched = count_unmatched(rows, link_rows)
        if unmatched:
            warn(f"{unmatched} rows had no matching entry in {cfg.links_csv.name}; "
                 f"their links are left empty")
    info(f"  Generated {len(catalog.chapters)} chapters")
    for chapter in catalog.chapters:
        info(f"  - {chapter.title}: {len(chapter.sections)} sections")

    try:
        write_json_atomic(cfg.catalog_json, catalog.to_dict())
    except OSError as e:
        fail(f"Could not write {cfg.catalog_json}: {e}")
        return 1
    info(f"WROTE: {cfg.catalog_json}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
