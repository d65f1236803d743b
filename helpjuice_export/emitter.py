"""
Filesystem output: directories, question/category documents, image assets.

Every write failure is re-raised as DocumentWriteError carrying the path, so
the run stops and says which document could not be written.
"""

import logging

import yaml

from .errors import DocumentWriteError

log = logging.getLogger("kb-export.emitter")


def ensure_dir(path):
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise DocumentWriteError(path, e) from e
    return path


def write_text(path, content):
    ensure_dir(path.parent)
    try:
        path.write_text(content, encoding="utf-8")
    except OSError as e:
        raise DocumentWriteError(path, e) from e
    log.debug("  wrote %s", path)


def append_text(path, content):
    ensure_dir(path.parent)
    try:
        with open(path, "a", encoding="utf-8") as fh:
            fh.write(content)
    except OSError as e:
        raise DocumentWriteError(path, e) from e


def write_bytes(path, data):
    ensure_dir(path.parent)
    try:
        path.write_bytes(data)
    except OSError as e:
        raise DocumentWriteError(path, e) from e
    log.debug("  image %s", path)


def frontmatter(fields):
    """
    Render a YAML front matter block from a dict, skipping None values.
    Empty lists should be turned into None at the call site.
    """
    clean = {k: v for k, v in fields.items() if v is not None}
    return "---\n" + yaml.dump(clean, allow_unicode=True, default_flow_style=False, sort_keys=False) + "---\n\n"


def original_url(docs_url, question, category=None):
    parts = [docs_url.rstrip("/")]
    if category is not None and category.codename:
        parts.append(category.codename)
    parts.append(question.codename)
    return "/".join(parts)


def render_question(question, source_url, with_frontmatter=False, category=None):
    """Header of a question document; answer bodies are appended after it."""
    out = []
    if with_frontmatter:
        out.append(frontmatter({
            "title":        question.name.strip(),
            "helpjuice_id": question.id,
            "codename":     question.codename or None,
            "category":     category.codename if category is not None and category.codename else None,
            "visibility":   "external" if question.is_public else "internal",
            "tags":         question.tags or None,
            "created_at":   question.created_at or None,
            "updated_at":   question.updated_at or None,
        }))

    out.append(f"# {question.name.strip()}\n\n")
    out.append(f"**Created At:** {question.created_at}  \n")
    out.append(f"**Updated At:** {question.updated_at}  \n")
    out.append(f"**Original Doc:** [{question.codename}]({source_url})  \n")
    if question.accessibility is not None:
        out.append(f"**Visibility:** {'External' if question.is_public else 'Internal'}  \n")
    out.append("\n")

    if question.tags:
        # <badge> is the inline tag component understood by the docs renderer
        out.append("**Tags:**\n")
        out.extend(f"<badge text='{tag}' vertical='middle' />\n" for tag in question.tags)
        out.append("\n")
    return "".join(out)


def render_category(category, with_frontmatter=False):
    fm = ""
    if with_frontmatter:
        fm = frontmatter({
            "title":        category.name.strip(),
            "helpjuice_id": category.id,
            "codename":     category.codename or None,
            "layout":       "category",
        })
    return f"{fm}# {category.name.strip()}\n"
