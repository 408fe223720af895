"""Public Drive folder scraping.

Without credentials the only way to enumerate a shared folder is its HTML
page, which embeds the listing in inline page-state JSON. The markup has
no documented contract and varies between layouts, so extraction is an
ordered list of regex strategies from most to least specific. Each
strategy is a pure function of the HTML; ``extract_files`` applies them
in order, deduplicating by ID and stopping early once enough files are
known.
"""

from __future__ import annotations

import html as html_lib
import re
from dataclasses import dataclass
from typing import Callable, Iterator

import httpx

from gallery.core.logging import get_logger
from gallery.services.drive_ids import DRIVE_ID_PATTERN
from gallery.services.google_drive import GENERIC_MIME_TYPE, FileDescriptor

logger = get_logger(__name__)

FOLDER_PAGE_URL = "https://drive.google.com/drive/folders/{folder_id}"
PLACEHOLDER_NAME = "Untitled Media"
DEFAULT_MIN_ITEMS = 5
DEFAULT_MAX_NAME_LENGTH = 150

# Drive serves a script-free page to non-browser agents
BROWSER_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
    ),
    "Accept": (
        "text/html,application/xhtml+xml,application/xml;q=0.9,"
        "image/avif,image/webp,image/apng,*/*;q=0.8"
    ),
    "Accept-Language": "en-US,en;q=0.9",
}

SIGN_IN_HOSTS = ("accounts.google.com",)

# ["ID","Name","mime/type"
STRICT_TRIPLE_REGEX = re.compile(
    rf'\["({DRIVE_ID_PATTERN})"\s*,\s*"([^"]+?)"\s*,\s*"([^"]+?)"'
)
# ["ID","Name",<anything>,"mime/type"
WILDCARD_TUPLE_REGEX = re.compile(
    rf'\["({DRIVE_ID_PATTERN})"\s*,\s*"([^"]+?)"\s*,[^,]*,\s*"([^"]+?)"'
)
# \"ID\",\"Name\",\"image/ - escaped-quote variant, media prefixes only
LAX_ESCAPED_REGEX = re.compile(
    rf'\\?"({DRIVE_ID_PATTERN})\\?",\\?"([^"]+?)\\?",\\?"(video/|image/|application/)'
)
DATA_ID_REGEX = re.compile(rf'data-id=\\?"({DRIVE_ID_PATTERN})\\?"')

UNICODE_ESCAPE_REGEX = re.compile(r"\\u([0-9a-fA-F]{4})")

Triple = tuple[str, str, str]


class ScrapeError(Exception):
    """Raised when the folder page cannot be used for scraping."""

    pass


def _strict_triples(page: str) -> Iterator[Triple]:
    for m in STRICT_TRIPLE_REGEX.finditer(page):
        yield m.group(1), m.group(2), m.group(3)


def _wildcard_tuples(page: str) -> Iterator[Triple]:
    for m in WILDCARD_TUPLE_REGEX.finditer(page):
        yield m.group(1), m.group(2), m.group(3)


def _lax_escaped(page: str) -> Iterator[Triple]:
    # Only the MIME prefix is recovered; complete it with a generic subtype
    for m in LAX_ESCAPED_REGEX.finditer(page):
        yield m.group(1), m.group(2), m.group(3) + "octet-stream"


def _data_ids(page: str) -> Iterator[Triple]:
    for m in DATA_ID_REGEX.finditer(page):
        yield m.group(1), PLACEHOLDER_NAME, GENERIC_MIME_TYPE


@dataclass(frozen=True)
class ScrapeStrategy:
    """One extraction pattern and the condition under which it runs.

    ``max_found`` gates the strategy on the number of files recovered so
    far: it only runs while fewer than ``max_found`` files are known.
    """

    name: str
    extract: Callable[[str], Iterator[Triple]]
    max_found: int | None = None
    require_mime_slash: bool = True

    def applies(self, found: int) -> bool:
        return self.max_found is None or found < self.max_found


def default_strategies(min_items: int = DEFAULT_MIN_ITEMS) -> list[ScrapeStrategy]:
    """Strategies in the order they are tried."""
    return [
        ScrapeStrategy("strict_triple", _strict_triples),
        ScrapeStrategy("wildcard_tuple", _wildcard_tuples),
        ScrapeStrategy("lax_escaped", _lax_escaped, max_found=min_items),
        ScrapeStrategy("data_id", _data_ids, max_found=1, require_mime_slash=False),
    ]


def clean_name(name: str) -> str:
    """Decode ``\\uXXXX`` escapes and HTML entities left in scraped names."""
    name = UNICODE_ESCAPE_REGEX.sub(lambda m: chr(int(m.group(1), 16)), name)
    return html_lib.unescape(name).strip()


def extract_files(
    page: str,
    folder_id: str,
    strategies: list[ScrapeStrategy] | None = None,
    max_name_length: int = DEFAULT_MAX_NAME_LENGTH,
) -> list[FileDescriptor]:
    """Recover file descriptors from a folder page.

    Args:
        page: Raw HTML of the public folder page.
        folder_id: The folder's own ID, which the page also contains.
        strategies: Strategies to apply, in order. Defaults to ``default_strategies()``.
        max_name_length: Names longer than this are treated as garbage.

    Returns:
        Descriptors in discovery order, each ID at most once.
    """
    if strategies is None:
        strategies = default_strategies()

    seen: set[str] = {folder_id}
    files: list[FileDescriptor] = []

    for strategy in strategies:
        if not strategy.applies(len(files)):
            continue

        before = len(files)
        for file_id, name, mime_type in strategy.extract(page):
            if file_id in seen:
                continue
            if len(name) > max_name_length:
                continue
            if strategy.require_mime_slash and "/" not in mime_type:
                continue

            seen.add(file_id)
            files.append(
                FileDescriptor(id=file_id, name=clean_name(name), mime_type=mime_type)
            )

        if len(files) > before:
            logger.debug(
                "scrape_strategy_matched",
                strategy=strategy.name,
                folder_id=folder_id,
                new_files=len(files) - before,
            )

    return files


class FolderScraper:
    """Fetches public folder pages and extracts their files."""

    def __init__(
        self,
        http: httpx.AsyncClient,
        min_items: int = DEFAULT_MIN_ITEMS,
        max_name_length: int = DEFAULT_MAX_NAME_LENGTH,
    ):
        self._http = http
        self._strategies = default_strategies(min_items)
        self._max_name_length = max_name_length

    async def fetch_folder_page(self, folder_id: str) -> str:
        """Download the folder page as a browser would.

        Raises:
            httpx.HTTPError: On transport failures or non-2xx responses.
            ScrapeError: If Drive redirected to a sign-in page.
        """
        response = await self._http.get(
            FOLDER_PAGE_URL.format(folder_id=folder_id),
            headers=BROWSER_HEADERS,
            follow_redirects=True,
        )
        response.raise_for_status()

        if response.url.host in SIGN_IN_HOSTS:
            raise ScrapeError("folder page requires sign-in")

        return response.text

    async def scrape(self, folder_id: str) -> list[FileDescriptor]:
        """Scrape a public folder's file list."""
        page = await self.fetch_folder_page(folder_id)
        files = extract_files(
            page,
            folder_id,
            strategies=self._strategies,
            max_name_length=self._max_name_length,
        )
        logger.info("folder_scraped", folder_id=folder_id, files_count=len(files))
        return files
