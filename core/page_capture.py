# core/page_capture.py
import asyncio
import re
from datetime import datetime, timezone
from typing import List, Optional, Tuple
from urllib.parse import urljoin
import httpx
from bs4 import BeautifulSoup
from config.settings import settings
from model.evidence import PageLink, PageSnapshot
from repository.snapshot_repository import SnapshotRepository
from util import functions
from util.constants import ExternalURIs
import logging
from util.timing import timed

logger = logging.getLogger(__name__)

STRIP_TAGS = ("script", "style", "noscript", "iframe", "svg", "template")
_HIDDEN_STYLE = re.compile(r"display\s*:\s*none|visibility\s*:\s*hidden", re.I)
ARCHIVER_USER_AGENT = "TakedownTrail Evidence Archiver"


def _is_hidden(tag) -> bool:
    if tag.attrs is None:
        return False
    if tag.has_attr("hidden"):
        return True
    if str(tag.get("aria-hidden", "")).lower() == "true":
        return True
    return bool(_HIDDEN_STYLE.search(str(tag.get("style", ""))))


def parse_page(
    html: str,
    base_url: str,
    *,
    max_text_chars: int = settings.CAPTURE_MAX_TEXT_CHARS,
    max_links: int = settings.CAPTURE_MAX_LINKS,
) -> Tuple[str, str, List[PageLink]]:
    """
    Return (title, visible_text, links) for an HTML document.

    Scripts, styles and hidden markup are removed before reading text. Links are
    resolved against `base_url`; fragment-only and javascript: links are skipped.
    """
    soup = BeautifulSoup(html, "html.parser")

    for tag in soup.find_all(STRIP_TAGS):
        tag.decompose()
    for tag in soup.find_all(True):
        if not tag.decomposed and _is_hidden(tag):
            tag.decompose()

    title = ""
    if soup.title is not None:
        title = soup.title.get_text(strip=True)
    if not title:
        og = soup.find("meta", attrs={"property": "og:title"})
        if og is not None:
            title = str(og.get("content") or "").strip()

    body = soup.body or soup
    text = functions.clip_chars(functions.normalize_ws(body.get_text(" ")), max_text_chars)

    links: List[PageLink] = []
    for a in soup.find_all("a", href=True):
        href = str(a["href"]).strip()
        if not href or href.startswith("#") or href.lower().startswith("javascript:"):
            continue
        try:
            full = urljoin(base_url, href)
        except ValueError:
            full = href
        links.append(PageLink(href=full, text=a.get_text(strip=True)[:200]))
        if len(links) >= max_links:
            break
    return title, text, links


def decode_html(raw: bytes, encoding: Optional[str] = None) -> str:
    if not raw:
        return ""
    try:
        return raw.decode(encoding or "utf-8")
    except (LookupError, UnicodeDecodeError):
        return raw.decode("utf-8", errors="replace")


def constructed_archive_url(url: str, at: datetime) -> str:
    return f"{ExternalURIs.WAYBACK_WEB}{at.strftime('%Y%m%d%H%M%S')}/{url}"


def snapshot_from_bytes(
    url: str,
    raw: bytes,
    *,
    captured_at: datetime,
    charset: Optional[str] = None,
    storage_path: Optional[str] = None,
    wayback_url: Optional[str] = None,
) -> PageSnapshot:
    """
    Hash `raw` as received, then parse it. A parse failure leaves title, text and
    links empty but keeps the hash.
    """
    html_hash = functions.sha256_hex(raw) if raw else ""

    title, text, links = "", "", []
    if raw:
        try:
            with timed(logger, "capture.parse", bytes=len(raw)):
                title, text, links = parse_page(decode_html(raw, charset), url)
            logger.info(
                "capture.parse.ok title=%r chars=%d links=%d",
                title[:60],
                len(text),
                len(links),
            )
        except Exception:
            logger.error("capture.parse.error url=%s", url, exc_info=True)

    return PageSnapshot(
        url=url,
        page_title=title,
        page_text=text,
        page_links=links,
        page_html_hash=html_hash,
        html_storage_path=storage_path,
        wayback_url=wayback_url,
        captured_at=captured_at,
        raw_html=raw,
    )


class PageCapturer:
    """
    Fetch -> parse -> store -> archive. Each step is its own failure domain: a
    failure is logged, the affected fields stay empty, and a snapshot is always
    returned.
    """

    def __init__(
        self,
        blobs: Optional[SnapshotRepository] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: Optional[float] = None,
        wayback_enabled: Optional[bool] = None,
    ) -> None:
        self._blobs = blobs
        self._transport = transport
        self._timeout = timeout or settings.CAPTURE_TIMEOUT_SECONDS
        self._wayback_enabled = (
            settings.WAYBACK_ENABLED if wayback_enabled is None else wayback_enabled
        )

    async def fetch(self, url: str) -> Tuple[bytes, Optional[str]]:
        """
        GET the page. Returns (raw_bytes, charset); (b"", None) on any failure.
        """
        headers = {
            "User-Agent": settings.CAPTURE_USER_AGENT,
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.5",
        }
        try:
            with timed(logger, "capture.fetch", url=url):
                async with httpx.AsyncClient(
                    timeout=self._timeout, transport=self._transport, follow_redirects=True
                ) as client:
                    res = await client.get(url, headers=headers)
        except httpx.HTTPError as e:
            logger.error("capture.fetch.error url=%s err=%s", url, type(e).__name__)
            return b"", None

        if not res.is_success:
            logger.warning("capture.fetch.bad_status url=%s status=%d", url, res.status_code)
            return b"", None
        logger.info("capture.fetch.ok url=%s bytes=%d", url, len(res.content))
        return res.content, res.charset_encoding

    async def store(self, raw: bytes, owner_id: str, subject_id: str, at: datetime) -> Optional[str]:
        if not raw or self._blobs is None:
            return None
        path = SnapshotRepository.build_path(owner_id, subject_id, at)
        try:
            with timed(logger, "capture.store", bytes=len(raw)):
                await self._blobs.put_html(path, raw)
        except Exception as e:
            logger.error("capture.store.error path=%s err=%s", path, type(e).__name__)
            return None
        logger.info("capture.store.ok path=%s", path)
        return path

    async def archive(self, url: str) -> Optional[str]:
        """
        Ask the Wayback Machine to save `url`. Location / Content-Location carries the
        archive URL; a bare 2xx gets a constructed best-guess URL; anything else is None.
        """
        if not self._wayback_enabled:
            return None
        try:
            with timed(logger, "capture.archive", url=url):
                async with httpx.AsyncClient(
                    timeout=settings.WAYBACK_TIMEOUT_SECONDS,
                    transport=self._transport,
                    follow_redirects=False,
                ) as client:
                    res = await client.get(
                        f"{ExternalURIs.WAYBACK_SAVE}{url}",
                        headers={"User-Agent": ARCHIVER_USER_AGENT},
                    )
        except httpx.HTTPError as e:
            logger.warning("capture.archive.error url=%s err=%s", url, type(e).__name__)
            return None

        location = res.headers.get("location") or res.headers.get("content-location")
        if location:
            archived = urljoin("https://web.archive.org", location)
            logger.info("capture.archive.ok url=%s archive=%s", url, archived)
            return archived
        if res.is_success:
            archived = constructed_archive_url(url, datetime.now(timezone.utc))
            logger.info("capture.archive.constructed url=%s archive=%s", url, archived)
            return archived
        logger.warning("capture.archive.bad_status url=%s status=%d", url, res.status_code)
        return None

    async def capture(self, url: str, owner_id: str, subject_id: str) -> PageSnapshot:
        captured_at = datetime.now(timezone.utc)

        raw, charset = await self.fetch(url)
        storage_path, wayback_url = await asyncio.gather(
            self.store(raw, owner_id, subject_id, captured_at),
            self.archive(url),
        )
        return snapshot_from_bytes(
            url,
            raw,
            charset=charset,
            captured_at=captured_at,
            storage_path=storage_path,
            wayback_url=wayback_url,
        )
