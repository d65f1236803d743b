"""
Convert HelpJuice knowledge bases to a Markdown tree.

For every configured site the export runs three stages in order, because
each one needs the output of the previous:

  categories -> directories (parents before children)
  questions  -> <category path>/<question>/README.md with a metadata header
  answers    -> HTML body with images downloaded and links rewritten,
                converted to Markdown and appended to the question's README.md

Unresolved images and links from all sites end up in Images.txt and
Links.txt at the output root.
"""

import logging
import sys
import time
from datetime import timedelta

import requests

from .client import HelpjuiceClient, build_session
from .config import load_settings
from .convert import sanitize_html, to_md
from .emitter import append_text, ensure_dir
from .errors import ExportError
from .hierarchy import build_category_tree, place_question
from .ledger import UnresolvedLedger
from .records import Answer, Category, Question, parse_record
from .rewrite import ReferenceRewriter
from .store import SiteContext

log = logging.getLogger("kb-export")


def process_categories(ctx, client):
    categories = [parse_record(Category, r) for _, page in client.iter_pages("categories") for r in page]
    log.info("Converting %d categories into directories", len(categories))
    build_category_tree(categories, ctx)


def process_questions(ctx, client):
    for page, records in client.iter_pages("questions"):
        log.info("Converting %d questions into files (page %d)", len(records), page)
        for record in records:
            question = parse_record(Question, record)
            if question.id in ctx.store.questions:
                log.warning("  question %d seen twice, keeping the first", question.id)
                continue
            place_question(question, ctx)


def process_answers(ctx, client, rewriter):
    for page, records in client.iter_pages("answers"):
        log.info("Converting %d answers HTML into Markdown files (page %d)", len(records), page)
        for record in records:
            export_answer(ctx, rewriter, parse_record(Answer, record))


def export_answer(ctx, rewriter, answer):
    """Append one answer to its question's document. Returns False if the question is unknown."""
    question = ctx.store.questions.get(answer.question_id)
    if question is None:
        log.warning("  answer %d belongs to unknown question %d, skipped", answer.id, answer.question_id)
        return False
    body = rewriter.rewrite(sanitize_html(answer.body), question.local_path, question.name.strip())
    markdown = to_md(body, ctx.settings.md_heading_style)
    if markdown:
        append_text(question.local_path, markdown + "\n")
    return True


def process_site(site, api_key, settings, ledger, session=None, client=None):
    """Export one site into <output>/<site>. Returns its SiteContext."""
    log.info("--- Processing %s", site)
    ctx = SiteContext(site=site, root=ensure_dir(settings.output_dir / site.lower()),
                      settings=settings, ledger=ledger)
    client = client or HelpjuiceClient(site, api_key, session=session,
                                       timeout=settings.request_timeout, rate_limit=settings.rate_limit)
    rewriter = ReferenceRewriter(ctx, client.download)

    process_categories(ctx, client)
    process_questions(ctx, client)
    process_answers(ctx, client, rewriter)
    log.info("%s: %d categories, %d questions", site, len(ctx.store.categories), len(ctx.store.questions))
    return ctx


def run(settings, session=None):
    """Export every configured site and write the ledger. Returns the ledger."""
    ledger = UnresolvedLedger()
    session = session or build_session()
    for site, api_key in settings.sites.items():
        process_site(site, api_key, settings, ledger, session=session)
    ledger.write(settings.output_dir)
    return ledger


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s  %(message)s", datefmt="%H:%M:%S")
    started = time.monotonic()
    try:
        settings = load_settings()
        log.info("Converting docs from HelpJuice to Markdown  |  Sites: %s  |  Output: %s",
                 ", ".join(settings.sites), settings.output_dir)
        ledger = run(settings)
    except ExportError as e:
        sys.exit(str(e))
    except requests.RequestException as e:
        sys.exit(f"HelpJuice API request failed: {e}")

    elapsed = timedelta(seconds=round(time.monotonic() - started))
    log.info("Processing completed in %s  |  unresolved images: %d  |  unresolved links: %d",
             elapsed, len(ledger.images), len(ledger.links))


if __name__ == "__main__":
    main()
