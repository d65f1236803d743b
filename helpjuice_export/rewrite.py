"""
Image and link rewriting for answer bodies.

Tags are found with regular expressions rather than an HTML parser: answer
bodies come out of the HelpJuice editor and are regular enough, and a regex
lets us replace just the attribute value while leaving the rest of the
markup byte-for-byte intact. Known limits: only quoted src/href values are
seen, and a '>' inside an attribute value ends the tag early.

Images that are not on the canonical asset host are downloaded next to the
document and pointed at with ./name. Links into the knowledge base are
resolved against the content store:

    1. question codename          e.g. /setup/install-guide
    2. question id prefix         e.g. /123-install-guide
    3. category codename          e.g. /setup
    4. category id prefix         e.g. /7-setup
    5. trailing id, question then category, e.g. page-123

and replaced with a path relative to the current document. Whatever cannot
be resolved is left as it was and recorded in the ledger.
"""

import html
import logging
import os
import posixpath
import re
from urllib.parse import unquote, urljoin, urlsplit

import requests

from .emitter import write_bytes

log = logging.getLogger("kb-export.rewrite")

IMG_TAG = re.compile(r"<img\b[^>]*>", re.IGNORECASE)
A_TAG = re.compile(r"<a\b[^>]*>", re.IGNORECASE)
SRC_ATTR = re.compile(r"""(?<![\w-])src\s*=\s*(["'])(.*?)\1""", re.IGNORECASE | re.DOTALL)
HREF_ATTR = re.compile(r"""(?<![\w-])href\s*=\s*(["'])(.*?)\1""", re.IGNORECASE | re.DOTALL)
ALT_ATTR = re.compile(r"(?<![\w-])alt\s*=", re.IGNORECASE)
TAG_END = re.compile(r"\s*/?>$")

ID_PREFIX = re.compile(r"^(\d+)(?:-|$)")
ID_SUFFIX = re.compile(r"-(\d+)$")
EXTENSION = re.compile(r"\.[a-z][a-z0-9]{0,4}$", re.IGNORECASE)

# hrefs that never point at a KB page; left alone and not reported
IGNORED_SCHEMES = ("mailto:", "tel:", "javascript:", "ftp:", "data:", "file:")


class LegacyHostTable:
    """Ordered (regex, replacement) rules, each applied once to the output of the previous one."""

    def __init__(self, rules):
        self.rules = [(re.compile(pattern, re.IGNORECASE), replacement) for pattern, replacement in rules]

    def apply(self, url):
        for pattern, replacement in self.rules:
            url = pattern.sub(replacement, url, count=1)
        return url


def image_filename(url):
    """
    Local file name for an image URL: the decoded path basename with spaces
    turned into hyphens, lower-cased. Extension-less names (blob URLs and the like)
    are assumed to be JPEGs.
    """
    name = unquote(posixpath.basename(urlsplit(url).path))
    name = name.replace("/", "-").replace(" ", "-").lower() or "image"
    if not posixpath.splitext(name)[1]:
        name += ".jpg"
    return name


def core_token(path):
    """Last path segment of a link target without its extension, lower-cased."""
    segment = next((s for s in reversed(path.split("/")) if s), "")
    segment = segment.replace("%20", "-").replace(" ", "-")
    return EXTENSION.sub("", segment).lower()


def numeric_id(token):
    match = ID_PREFIX.match(token)
    return int(match.group(1)) if match else None


def trailing_id(token):
    match = ID_SUFFIX.search(token)
    return int(match.group(1)) if match else None


def _bare_host(host):
    host = (host or "").lower()
    return host[4:] if host.startswith("www.") else host


class ReferenceRewriter:
    """
    Rewrites <img src> and <a href> for one site.

    fetch_bytes(url) -> bytes downloads an image and raises
    requests.RequestException on failure. The content store is only read.
    """

    def __init__(self, ctx, fetch_bytes):
        self.ctx = ctx
        self.fetch_bytes = fetch_bytes
        self.legacy = LegacyHostTable(ctx.settings.legacy_hosts)
        self.internal_hosts = {_bare_host(h) for h in ctx.internal_hosts}
        self.asset_host = ctx.settings.asset_host
        # document directory -> {file name: url it was saved from}, shared by
        # every answer appended to the same document
        self._taken = {}

    def rewrite(self, body, document_path, title=""):
        body = self.rewrite_images(body, document_path, title)
        return self.rewrite_links(body, document_path)

    # ---- images ----

    def _on_asset_host(self, url):
        host = (urlsplit(url).hostname or "").lower()
        return host == self.asset_host or host.endswith("." + self.asset_host)

    def rewrite_images(self, body, document_path, title=""):
        doc_dir = document_path.parent
        taken = self._taken.setdefault(doc_dir, {})
        done = {}   # url -> new src, or None after a failed download

        def replace(m):
            tag = m.group(0)
            src = SRC_ATTR.search(tag)
            if not src:
                return tag
            original = html.unescape(src.group(2)).strip()
            if not original or original.lower().startswith("data:") or original.startswith(("./", "../")):
                return tag
            try:
                if self._on_asset_host(original):
                    return tag
                url = urljoin(self.ctx.api_base_url + "/", self.legacy.apply(original))
            except ValueError:
                log.warning("  malformed image URL %s", original)
                self.ctx.ledger.add_image(original)
                return tag

            if url not in done:
                done[url] = self._download(url, original, doc_dir, taken)
            new_src = done[url]
            if new_src is None:
                return tag

            tag = tag[:src.start(2)] + new_src + tag[src.end(2):]
            if not ALT_ATTR.search(tag):
                alt = html.escape(f"{title} - {new_src[2:]}" if title else new_src[2:], quote=True)
                end = TAG_END.search(tag)
                tag = f'{tag[:end.start()]} alt="{alt}"{tag[end.start():]}'
            return tag

        return IMG_TAG.sub(replace, body)

    def _download(self, url, original, doc_dir, taken):
        try:
            data = self.fetch_bytes(url)
        except requests.RequestException as e:
            log.warning("  could not download %s: %s", url, e)
            self.ctx.ledger.add_image(original)
            return None

        name = image_filename(url)
        stem, ext = posixpath.splitext(name)
        n = 1
        while taken.setdefault(name, url) != url:
            n += 1
            name = f"{stem}-{n}{ext}"
        write_bytes(doc_dir / name, data)
        return "./" + name

    # ---- links ----

    def rewrite_links(self, body, document_path):
        doc_dir = document_path.parent

        def replace(m):
            tag = m.group(0)
            href = HREF_ATTR.search(tag)
            if not href:
                return tag
            new_href = self.resolve_link(href.group(2), doc_dir)
            if new_href is None:
                return tag
            return tag[:href.start(2)] + new_href + tag[href.end(2):]

        return A_TAG.sub(replace, body)

    def resolve_link(self, value, doc_dir):
        """New href for a link found in a document inside doc_dir, or None to leave it alone."""
        original = html.unescape(value).strip()
        if not original or original.startswith(("#", "./", "../")) or original.lower().startswith(IGNORED_SCHEMES):
            return None

        try:
            parts = urlsplit(self.legacy.apply(original))
            host = _bare_host(parts.hostname)
        except ValueError:
            self.ctx.ledger.add_link(original)
            return None
        if parts.scheme and parts.scheme.lower() not in ("http", "https"):
            return None
        if parts.netloc and host not in self.internal_hosts:
            self.ctx.ledger.add_link(original)
            return None

        target = self.lookup(core_token(parts.path))
        if target is None:
            self.ctx.ledger.add_link(original)
            return None

        rel = os.path.relpath(target, doc_dir).replace(os.sep, "/")
        new_href = "./" if rel == "." else "./" + rel
        if parts.fragment:
            new_href += "#" + parts.fragment
        return new_href

    def lookup(self, token):
        """Directory of the question or category a core token refers to."""
        if not token:
            return None
        store = self.ctx.store
        ident = numeric_id(token)

        question = store.question_by_codename(token)
        if question is None and ident is not None:
            question = store.questions.get(ident)
        if question is not None:
            return question.local_path.parent

        category = store.category_by_codename(token)
        if category is None and ident is not None:
            category = store.categories.get(ident)
        if category is not None:
            return category.local_path

        # "page-123" style targets, only once every codename has missed
        ident = trailing_id(token)
        if ident in store.questions:
            return store.questions[ident].local_path.parent
        if ident in store.categories:
            return store.categories[ident].local_path
        return None
