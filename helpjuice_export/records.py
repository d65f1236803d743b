"""
Typed records for the three HelpJuice resources.

The API serves the same fields either as JSON objects or as CSV rows. CSV
cells are always strings, so every parser here accepts both: empty cells
mean "absent", and list-valued cells (question categories, tags) arrive as
a JSON array or a comma-separated string.
"""

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from .errors import RecordError


def _opt_int(value):
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        if value == "" or value.lower() in ("null", "none"):
            return None
    return int(value)


def _text(value):
    return "" if value is None else str(value)


def _list(value):
    if value is None or value == "":
        return []
    if isinstance(value, list):
        return value
    text = str(value).strip()
    if text.startswith("["):
        return json.loads(text)
    return [part.strip() for part in text.split(",") if part.strip()]


@dataclass(slots=True)
class Category:
    id: int
    name: str
    codename: str = ""
    parent_id: int = None
    created_at: str = ""
    updated_at: str = ""
    url: str = ""
    local_path: Path = None  # directory, assigned once by the hierarchy builder

    @classmethod
    def from_record(cls, raw):
        return cls(
            id=int(raw["id"]),
            name=_text(raw.get("name")),
            codename=_text(raw.get("codename")),
            parent_id=_opt_int(raw.get("parent_id")),
            created_at=_text(raw.get("created_at")),
            updated_at=_text(raw.get("updated_at")),
            url=_text(raw.get("url")),
        )


@dataclass(slots=True)
class CategoryRef:
    """Category as embedded in a question record; only the id is reliable."""

    id: int
    name: str = ""
    codename: str = ""

    @classmethod
    def from_record(cls, raw):
        if isinstance(raw, Mapping):
            return cls(id=int(raw["id"]), name=_text(raw.get("name")), codename=_text(raw.get("codename")))
        return cls(id=int(raw))


@dataclass(slots=True)
class Question:
    id: int
    name: str
    codename: str = ""
    accessibility: int = None
    created_at: str = ""
    updated_at: str = ""
    categories: list = field(default_factory=list)
    tags: list = field(default_factory=list)
    local_path: Path = None  # the README.md path, assigned once on placement

    @property
    def primary_category_id(self):
        # The API may list several categories; the first one decides the path.
        return self.categories[0].id if self.categories else None

    @property
    def is_public(self):
        return self.accessibility == 1

    @classmethod
    def from_record(cls, raw):
        tags = []
        for tag in _list(raw.get("tags")):
            # Tags are plain strings in current responses, {name: ...} in some older ones.
            tags.append(_text(tag.get("name")) if isinstance(tag, Mapping) else _text(tag))
        return cls(
            id=int(raw["id"]),
            name=_text(raw.get("name")),
            codename=_text(raw.get("codename")),
            accessibility=_opt_int(raw.get("accessibility")),
            created_at=_text(raw.get("created_at")),
            updated_at=_text(raw.get("updated_at")),
            categories=[CategoryRef.from_record(c) for c in _list(raw.get("categories"))],
            tags=[t for t in tags if t],
        )


@dataclass(slots=True)
class Answer:
    id: int
    question_id: int
    body: str = ""

    @classmethod
    def from_record(cls, raw):
        return cls(id=int(raw["id"]), question_id=int(raw["question_id"]), body=_text(raw.get("body")))


def parse_record(cls, raw):
    """cls.from_record(raw), with bad ids or unparseable cells raised as RecordError."""
    try:
        return cls.from_record(raw)
    except (KeyError, TypeError, ValueError) as e:
        record_id = raw.get("id") if isinstance(raw, Mapping) else None
        raise RecordError(cls.__name__.lower(), record_id, e) from e
