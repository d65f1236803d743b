"""Per-site state threaded through the export stages."""

from dataclasses import dataclass, field
from pathlib import Path

from .config import Settings
from .ledger import UnresolvedLedger


class ContentStore:
    """
    Append-only lookup of processed categories and questions for one site.

    The hierarchy builder and question placement are the only writers; the
    rewrite engine only reads. Entries are never replaced or removed, and
    codename lookups are case-insensitive with the first record winning.
    """

    def __init__(self):
        self.categories = {}
        self.questions = {}
        self._category_codenames = {}
        self._question_codenames = {}
        self._claimed = {}  # directory -> ("category" | "question", id)

    def add_category(self, category):
        if category.id in self.categories:
            raise ValueError(f"category {category.id} already stored")
        if category.local_path is None:
            raise ValueError(f"category {category.id} has no local path")
        self.categories[category.id] = category
        if category.codename:
            self._category_codenames.setdefault(category.codename.lower(), category)

    def add_question(self, question):
        if question.id in self.questions:
            raise ValueError(f"question {question.id} already stored")
        if question.local_path is None:
            raise ValueError(f"question {question.id} has no local path")
        self.questions[question.id] = question
        if question.codename:
            self._question_codenames.setdefault(question.codename.lower(), question)

    def category_by_codename(self, codename):
        return self._category_codenames.get(codename.lower())

    def question_by_codename(self, codename):
        return self._question_codenames.get(codename.lower())

    def claim(self, path, kind, owner_id):
        """Reserve a directory for one record. False if someone else holds it."""
        holder = self._claimed.setdefault(Path(path), (kind, owner_id))
        return holder == (kind, owner_id)


@dataclass
class SiteContext:
    site: str
    root: Path
    settings: Settings
    ledger: UnresolvedLedger
    store: ContentStore = field(default_factory=ContentStore)

    @property
    def internal_hosts(self):
        return self.settings.site_internal_hosts(self.site)

    @property
    def docs_url(self):
        return f"https://docs.{self.site.lower()}.com"

    @property
    def api_base_url(self):
        return f"https://{self.site.lower()}.helpjuice.com"
