"""
Categories -> directories, questions -> question-name-as-folder/README.md.

Directory names for both go through normalize_name(), so a category called
"Getting Started" always lands in getting-started/ no matter where it is
referenced from.
"""

import logging
from collections import deque

from slugify import slugify

from .emitter import ensure_dir, original_url, render_category, render_question, write_text
from .errors import CategoryHierarchyError

log = logging.getLogger("kb-export.hierarchy")


def normalize_name(text):
    """Filesystem-safe slug, max 80 chars. Falls back to 'untitled' if text is empty or all symbols."""
    return slugify(str(text).strip(), max_length=80, separator="-") or "untitled"


def _claim_dir(ctx, parent, name, kind, owner_id):
    """First free directory of name, name-<id>, name-<id>-2, ... under parent."""
    path = parent / name
    n = 1
    while not ctx.store.claim(path, kind, owner_id):
        path = parent / (f"{name}-{owner_id}" if n == 1 else f"{name}-{owner_id}-{n}")
        n += 1
    if path.name != name:
        log.warning("%s %d: %s is taken, using %s", kind.capitalize(), owner_id, name, path.name)
    return path


def build_category_tree(categories, ctx):
    """
    Give every category a directory under ctx.root and add it to the store.

    Kahn-style walk over the parent -> children graph: a category becomes
    ready once its parent is in the store (or it has no parent), so parents
    are always placed before children. Whatever is left when the queue runs
    dry has a missing parent or sits on a cycle, and is reported together.
    Returns the categories in the order they were placed.
    """
    pending = {}
    for category in categories:
        if category.id in pending or category.id in ctx.store.categories:
            log.warning("Duplicate category %d ignored", category.id)
            continue
        pending[category.id] = category

    children = {}
    ready = deque()
    for category in pending.values():
        if category.parent_id is None or category.parent_id in ctx.store.categories:
            ready.append(category)
        else:
            children.setdefault(category.parent_id, []).append(category)

    placed = []
    while ready:
        category = ready.popleft()
        parent = ctx.store.categories.get(category.parent_id)
        base = parent.local_path if parent is not None else ctx.root

        category.local_path = ensure_dir(_claim_dir(ctx, base, normalize_name(category.name), "category", category.id))
        write_text(category.local_path / ctx.settings.index_name,
                   render_category(category, ctx.settings.frontmatter))
        ctx.store.add_category(category)
        placed.append(category)
        ready.extend(children.pop(category.id, []))

    if children:
        raise CategoryHierarchyError({c.id: c.parent_id for group in children.values() for c in group})
    return placed


def place_question(question, ctx):
    """
    Create the question's folder, write its document header and store it.

    The first listed category decides the folder; questions without one go
    straight under the site root. Returns the document path.
    """
    category = None
    parent = ctx.root
    if question.primary_category_id is not None:
        category = ctx.store.categories.get(question.primary_category_id)
        if category is None:
            log.warning("Question %d: category %d was not exported, placing it at the site root",
                        question.id, question.primary_category_id)
        else:
            parent = category.local_path

    folder = ensure_dir(_claim_dir(ctx, parent, normalize_name(question.name), "question", question.id))
    question.local_path = folder / ctx.settings.index_name

    header = render_question(question, original_url(ctx.docs_url, question, category),
                             ctx.settings.frontmatter, category)
    write_text(question.local_path, header)
    ctx.store.add_question(question)
    return question.local_path
