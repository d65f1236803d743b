"""Shared fixtures: settings pointing at tmp_path and a fresh site context."""

from __future__ import annotations

import pytest

from helpjuice_export.config import Settings
from helpjuice_export.ledger import UnresolvedLedger
from helpjuice_export.store import SiteContext


@pytest.fixture
def settings(tmp_path):
    return Settings(sites={"jbase": "secret"}, output_dir=tmp_path / "out", rate_limit=0)


@pytest.fixture
def ctx(settings):
    root = settings.output_dir / "jbase"
    root.mkdir(parents=True)
    return SiteContext(site="jbase", root=root, settings=settings, ledger=UnresolvedLedger())
