"""Exceptions raised by the exporter. Everything here is fatal for a run."""


class ExportError(Exception):
    pass


class ConfigError(ExportError):
    pass


class AuthenticationError(ExportError):
    pass


class UnsupportedFormatError(ExportError):
    """The API answered with a content type we cannot parse."""


class CategoryHierarchyError(ExportError):
    """
    Some categories can never be placed: their parent is missing from the
    export, points at itself, or is part of a cycle.
    """

    def __init__(self, unresolved):
        self.unresolved = dict(unresolved)  # category id -> parent id
        detail = ", ".join(f"{cid} (parent {pid})" for cid, pid in sorted(self.unresolved.items()))
        super().__init__(f"Cannot resolve category parents for: {detail}")


class DocumentWriteError(ExportError):
    def __init__(self, path, cause):
        self.path = path
        super().__init__(f"Failed writing {path}: {cause}")


class RecordError(ExportError):
    """A category/question/answer record that cannot be parsed."""

    def __init__(self, kind, record_id, cause):
        self.kind = kind
        self.record_id = record_id
        super().__init__(f"Malformed {kind} record (id {record_id!r}): {cause}")
