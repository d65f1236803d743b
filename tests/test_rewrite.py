"""Tests for helpjuice_export.rewrite."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
import requests

from helpjuice_export.hierarchy import build_category_tree, place_question
from helpjuice_export.records import Category, CategoryRef, Question
from helpjuice_export.rewrite import (
    LegacyHostTable,
    ReferenceRewriter,
    core_token,
    image_filename,
    numeric_id,
    trailing_id,
)


@pytest.fixture
def site(ctx):
    """Guides > Setup > Install (id 10), plus Overview (id 123) at the site root."""
    build_category_tree([
        Category(id=1, name="Guides", codename="guides"),
        Category(id=2, name="Setup", codename="setup", parent_id=1),
    ], ctx)
    place_question(Question(id=10, name="Install", codename="install-guide", categories=[CategoryRef(id=2)]), ctx)
    place_question(Question(id=123, name="Overview", codename="overview"), ctx)
    return ctx


@pytest.fixture
def fetch():
    return MagicMock(return_value=b"img-bytes")


@pytest.fixture
def rewriter(site, fetch):
    return ReferenceRewriter(site, fetch)


def _doc(ctx, question_id):
    return ctx.store.questions[question_id].local_path


class TestHelpers:
    def test_image_filename_spaces_and_case(self):
        assert image_filename("https://cdn.example.com/files/My%20Shot Final.PNG?x=1") == "my-shot-final.png"

    def test_image_filename_default_extension(self):
        assert image_filename("https://jbase.helpjuice.com/blob/abcd") == "abcd.jpg"

    def test_image_filename_empty_basename(self):
        assert image_filename("https://cdn.example.com/") == "image.jpg"

    def test_core_token(self):
        assert core_token("/setup/Install%20Guide.html") == "install-guide"
        assert core_token("/setup/install-guide/") == "install-guide"
        assert core_token("") == ""

    def test_core_token_keeps_version_dots(self):
        assert core_token("release-1.2") == "release-1.2"

    def test_numeric_id(self):
        assert numeric_id("123-overview") == 123
        assert numeric_id("123") == 123
        assert numeric_id("page-123") is None
        assert numeric_id("install-5-old") is None
        assert numeric_id("overview") is None

    def test_trailing_id(self):
        assert trailing_id("page-123") == 123
        assert trailing_id("windows-10") == 10
        assert trailing_id("install-5-old") is None
        assert trailing_id("123") is None

    def test_image_filename_decodes_escapes(self):
        assert image_filename("https://cdn.example.com/files/a%28b%29.png") == "a(b).png"
        assert image_filename("https://cdn.example.com/files/Caf%C3%A9%20Menu.PNG") == "caf\u00e9-menu.png"

    def test_legacy_table_in_order(self):
        table = LegacyHostTable([
            (r"^https?://(?:www\.)?old\.com/kb", "https://docs.new.com"),
            (r"^https?://(?:www\.)?old\.com", "https://static.new.com"),
        ])
        assert table.apply("http://www.old.com/kb/page") == "https://docs.new.com/page"
        assert table.apply("HTTPS://old.com/img/a.png") == "https://static.new.com/img/a.png"
        assert table.apply("https://other.com/x") == "https://other.com/x"


class TestLinks:
    def test_question_codename_from_any_depth(self, site, rewriter):
        target = site.store.questions[123].local_path.parent
        for doc_id in (10, 123):
            doc = _doc(site, doc_id)
            out = rewriter.rewrite_links('<a href="overview">x</a>', doc)
            href = out.split('"')[1]
            assert href.startswith("./")
            assert (doc.parent / href).resolve() == target.resolve()

    def test_relative_path_shape(self, site, rewriter):
        out = rewriter.rewrite_links('<a href="/overview">x</a>', _doc(site, 10))
        assert out == '<a href="./../../../overview">x</a>'

    def test_fragment_preserved(self, site, rewriter):
        out = rewriter.rewrite_links('<a href="page-123#section2">x</a>', _doc(site, 10))
        assert out == '<a href="./../../../overview#section2">x</a>'

    def test_question_id_prefix(self, site, rewriter):
        out = rewriter.rewrite_links('<a href="https://jbase.helpjuice.com/123-old-title">x</a>', _doc(site, 10))
        assert out == '<a href="./../../../overview">x</a>'

    def test_category_codename(self, site, rewriter):
        out = rewriter.rewrite_links('<a href="/setup">x</a>', _doc(site, 123))
        assert out == '<a href="./../guides/setup">x</a>'

    def test_category_codename_ending_in_digits(self, site, rewriter):
        build_category_tree([Category(id=3, name="Windows 10", codename="windows-10")], site)
        out = rewriter.rewrite_links('<a href="windows-10">x</a>', _doc(site, 123))
        assert out == '<a href="./../windows-10">x</a>'

    def test_trailing_id_when_no_codename_matches(self, site, rewriter):
        out = rewriter.rewrite_links('<a href="/install-10">x</a>', _doc(site, 123))
        assert out == '<a href="./../guides/setup/install">x</a>'

    def test_category_id(self, site, rewriter):
        out = rewriter.rewrite_links('<a href="/2-renamed">x</a>', _doc(site, 123))
        assert out == '<a href="./../guides/setup">x</a>'

    def test_question_codename_beats_category_codename(self, site, rewriter):
        build_category_tree([Category(id=7, name="Overview Cat", codename="overview")], site)
        out = rewriter.rewrite_links('<a href="overview">x</a>', _doc(site, 10))
        assert out == '<a href="./../../../overview">x</a>'

    def test_internal_host_with_extension(self, site, rewriter):
        out = rewriter.rewrite_links('<a href="https://docs.jbase.com/setup/install-guide.html">x</a>', _doc(site, 123))
        assert out == '<a href="./../guides/setup/install">x</a>'

    def test_link_to_own_document(self, site, rewriter):
        out = rewriter.rewrite_links('<a href="install-guide#top">x</a>', _doc(site, 10))
        assert out == '<a href="./#top">x</a>'

    def test_legacy_host_resolves_internally(self, site, rewriter):
        href = "http://www.jbase.com/r5/knowledgebase/overview.htm"
        out = rewriter.rewrite_links(f'<a href="{href}">x</a>', _doc(site, 10))
        assert out == '<a href="./../../../overview">x</a>'
        assert site.ledger.links == []

    def test_external_link_ledgered(self, site, rewriter):
        html = '<a href="https://example.com/page">x</a>'
        assert rewriter.rewrite_links(html, _doc(site, 10)) == html
        assert site.ledger.links == ["https://example.com/page"]

    def test_unresolved_scenario(self, site, rewriter):
        html = '<a href="install-5-old">see also</a>'
        assert rewriter.rewrite_links(html, _doc(site, 10)) == html
        assert site.ledger.links == ["install-5-old"]

    @pytest.mark.parametrize("href", ["#section", "mailto:help@jbase.com", "tel:+15551234", "javascript:void(0)", ""])
    def test_ignored_hrefs(self, site, rewriter, href):
        html = f'<a href="{href}">x</a>'
        assert rewriter.rewrite_links(html, _doc(site, 10)) == html
        assert site.ledger.links == []

    def test_only_href_value_changes(self, site, rewriter):
        html = "<p><a class='ref' href='overview' data-href='keep'>see <b>overview</b></a></p>"
        out = rewriter.rewrite_links(html, _doc(site, 10))
        assert out == "<p><a class='ref' href='./../../../overview' data-href='keep'>see <b>overview</b></a></p>"

    def test_idempotent(self, site, rewriter):
        html = '<a href="overview">a</a> <a href="https://example.com/page">b</a> <a href="nope">c</a>'
        first = rewriter.rewrite_links(html, _doc(site, 10))
        second = rewriter.rewrite_links(html, _doc(site, 10))
        assert first == second
        assert site.ledger.links == ["https://example.com/page", "nope"]


class TestImages:
    def test_download_and_rewrite(self, site, rewriter, fetch):
        doc = _doc(site, 10)
        out = rewriter.rewrite_images('<img src="https://cdn.example.com/files/My%20Shot.PNG">', doc, "Install")
        assert out == '<img src="./my-shot.png" alt="Install - my-shot.png">'
        assert (doc.parent / "my-shot.png").read_bytes() == b"img-bytes"
        fetch.assert_called_once_with("https://cdn.example.com/files/My%20Shot.PNG")

    def test_extensionless_saved_as_jpg(self, site, rewriter):
        doc = _doc(site, 10)
        out = rewriter.rewrite_images('<img src="https://files.example.com/blob/abcd" />', doc)
        assert out == '<img src="./abcd.jpg" alt="abcd.jpg" />'
        assert (doc.parent / "abcd.jpg").is_file()

    def test_existing_alt_kept(self, site, rewriter):
        out = rewriter.rewrite_images('<img alt="diagram" src="https://x.example.com/a.gif">', _doc(site, 10), "T")
        assert out == '<img alt="diagram" src="./a.gif">'

    def test_asset_host_untouched(self, site, rewriter, fetch):
        html = '<img src="https://helpjuice.s3.amazonaws.com/uploads/a.png">'
        assert rewriter.rewrite_images(html, _doc(site, 10)) == html
        fetch.assert_not_called()
        assert site.ledger.images == []

    def test_legacy_host_rewritten_before_download(self, site, rewriter, fetch):
        rewriter.rewrite_images('<img src="http://www.jbase.com/r5/img/a.gif">', _doc(site, 10))
        fetch.assert_called_once_with("https://static.zumasys.com/jbase/r99/img/a.gif")

    def test_relative_src_uses_site_host(self, site, rewriter, fetch):
        rewriter.rewrite_images('<img src="/uploads/pic.png">', _doc(site, 10))
        fetch.assert_called_once_with("https://jbase.helpjuice.com/uploads/pic.png")

    def test_download_failure_ledgered(self, site, rewriter, fetch):
        fetch.side_effect = requests.ConnectionError("boom")
        html = '<img src="http://www.jbase.com/r5/img/a.gif">'
        assert rewriter.rewrite_images(html, _doc(site, 10)) == html
        assert site.ledger.images == ["http://www.jbase.com/r5/img/a.gif"]

    def test_same_basename_different_urls(self, site, rewriter):
        html = '<img src="https://a.example.com/blob"><img src="https://b.example.com/blob">'
        out = rewriter.rewrite_images(html, _doc(site, 10))
        assert 'src="./blob.jpg"' in out
        assert 'src="./blob-2.jpg"' in out

    def test_same_basename_across_answers(self, site, rewriter, fetch):
        doc = _doc(site, 10)
        fetch.side_effect = lambda url: url.encode()
        first = rewriter.rewrite_images('<img src="https://a.example.com/one/shot.png">', doc)
        second = rewriter.rewrite_images('<img src="https://b.example.com/two/shot.png">', doc)
        assert 'src="./shot.png"' in first
        assert 'src="./shot-2.png"' in second
        assert (doc.parent / "shot.png").read_bytes() == b"https://a.example.com/one/shot.png"
        assert (doc.parent / "shot-2.png").read_bytes() == b"https://b.example.com/two/shot.png"

    def test_same_url_downloaded_once(self, site, rewriter, fetch):
        html = '<img src="https://a.example.com/x.png"><img src="https://a.example.com/x.png">'
        out = rewriter.rewrite_images(html, _doc(site, 10))
        assert out.count('src="./x.png"') == 2
        assert fetch.call_count == 1

    @pytest.mark.parametrize("src", ["data:image/png;base64,AAAA", "./local.png"])
    def test_inline_and_local_sources_skipped(self, site, rewriter, fetch, src):
        html = f'<img src="{src}">'
        assert rewriter.rewrite_images(html, _doc(site, 10)) == html
        fetch.assert_not_called()

    def test_data_src_not_mistaken_for_src(self, site, rewriter, fetch):
        html = '<img data-src="https://x.example.com/lazy.png">'
        assert rewriter.rewrite_images(html, _doc(site, 10)) == html
        fetch.assert_not_called()

    def test_rewrite_runs_both_passes(self, site, rewriter):
        html = '<p><img src="https://x.example.com/a.png"><a href="overview">o</a></p>'
        out = rewriter.rewrite(html, _doc(site, 10), "Install")
        assert 'src="./a.png"' in out
        assert 'href="./../../../overview"' in out
