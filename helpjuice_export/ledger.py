"""Run-wide record of references the rewrite engine could not resolve."""

import logging

from .emitter import write_text

log = logging.getLogger("kb-export.ledger")

IMAGES_REPORT = "Images.txt"
LINKS_REPORT = "Links.txt"


class UnresolvedLedger:
    def __init__(self):
        # dicts keep insertion order and drop duplicates
        self._images = {}
        self._links = {}

    def add_image(self, url):
        self._images.setdefault(url, None)

    def add_link(self, target):
        self._links.setdefault(target, None)

    @property
    def images(self):
        return list(self._images)

    @property
    def links(self):
        return list(self._links)

    def write(self, output_dir):
        """Write Images.txt and Links.txt (one entry per line) into output_dir."""
        write_text(output_dir / IMAGES_REPORT, "\n".join(self._images))
        write_text(output_dir / LINKS_REPORT, "\n".join(self._links))
        log.info("Unresolved references: %d images, %d links", len(self._images), len(self._links))
