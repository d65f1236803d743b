"""
HelpJuice API access: the record source for categories, questions and answers.

HelpJuice API quirks handled here:
  - Depending on account settings, list endpoints answer with text/csv
    (first line = field names) or application/json (array of objects).
    Anything else is a contract violation and aborts the run.
  - Questions and answers are paginated with ?page=N; an empty page marks
    the end. The categories endpoint is not paginated and ignores ?page,
    so it is fetched exactly once.
  - The API key travels as the api_key query parameter. Image downloads use
    the same session but never carry the key, since most images live on
    third-party hosts.
"""

import csv
import io
import logging
import time

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from .errors import AuthenticationError, UnsupportedFormatError

log = logging.getLogger("kb-export.client")

PAGINATED = {"questions", "answers"}


def build_session(retries=3, backoff=0.5):
    """
    Session whose adapter retries connection errors, timeouts and 429/5xx
    responses. When retries run out requests raises, which callers treat as
    an ordinary I/O failure.
    """
    retry = Retry(
        total=retries,
        backoff_factor=backoff,
        status_forcelist=(429, 500, 502, 503, 504),
        allowed_methods=frozenset({"GET"}),
        raise_on_status=False,
    )
    session = requests.Session()
    adapter = HTTPAdapter(max_retries=retry)
    session.mount("https://", adapter)
    session.mount("http://", adapter)
    session.headers["User-Agent"] = "helpjuice-export"
    return session


def parse_records(resp):
    """Decode a list response into a list of dicts based on its content type."""
    media_type = resp.headers.get("Content-Type", "").split(";")[0].strip().lower()
    if media_type == "text/csv":
        return list(csv.DictReader(io.StringIO(resp.text)))
    if media_type == "application/json":
        data = resp.json()
        if data is None:
            return []
        if not isinstance(data, list):
            raise UnsupportedFormatError(f"Expected a JSON array from {resp.url}, got {type(data).__name__}")
        return data
    raise UnsupportedFormatError(f"HTTP response content type {media_type or '(none)'} not supported ({resp.url})")


class HelpjuiceClient:
    def __init__(self, site, api_key, session=None, timeout=30.0, rate_limit=0.1):
        self.site = site
        self.api_key = api_key
        self.session = session or build_session()
        self.timeout = timeout
        self.rate_limit = rate_limit

    @property
    def base_url(self):
        return f"https://{self.site.lower()}.helpjuice.com"

    def fetch(self, resource, page=None):
        """
        GET /api/{resource} and return its records as a list of dicts.

        401/403 mean the key is wrong for this site and cannot be retried;
        every other HTTP error is raised for the caller.
        """
        params = {"api_key": self.api_key}
        if page is not None:
            params["page"] = page
        resp = self.session.get(f"{self.base_url}/api/{resource}", params=params, timeout=self.timeout)
        time.sleep(self.rate_limit)  # be a polite client
        if resp.status_code in (401, 403):
            raise AuthenticationError(f"HelpJuice rejected the API key for {self.site} ({resp.status_code} on /api/{resource})")
        resp.raise_for_status()
        return parse_records(resp)

    def iter_pages(self, resource):
        """Yield (page, records) until the API returns an empty page."""
        if resource not in PAGINATED:
            records = self.fetch(resource)
            if records:
                yield 1, records
            return
        page = 1
        while True:
            records = self.fetch(resource, page)
            if not records:
                return
            yield page, records
            page += 1

    def download(self, url):
        """Fetch raw bytes of an image. Raises requests.RequestException on failure."""
        resp = self.session.get(url, timeout=self.timeout)
        resp.raise_for_status()
        return resp.content
