"""arXiv client retrieving paper metadata from the Atom API or the abstract page."""

import html
import re
import time
from typing import Any, Dict, List, Optional

import httpx

from .affiliations import classify_affiliation
from .config import ArxivAPIConfig, SecurityConfig, get_settings
from .exceptions import ArxivAPIError, NetworkError
from .logging_config import get_logger, log_api_request, log_api_response, log_error
from .models import ArxivMetadata, AuthorAffiliation
from .utils import (
    arxiv_id_from_path,
    build_abs_url,
    build_pdf_url,
    clean_text,
    collapse_whitespace,
    extract_arxiv_id,
    is_arxiv_host,
    validate_domain,
)

logger = get_logger(__name__)

# Atom API
_ENTRY_TITLE = re.compile(r'<entry>[\s\S]*?<title[^>]*>([\s\S]*?)</title>', re.IGNORECASE)
_SUMMARY = re.compile(r'<summary[^>]*>([\s\S]*?)</summary>', re.IGNORECASE)
_AUTHOR = re.compile(r'<author>([\s\S]*?)</author>', re.IGNORECASE)
_AUTHOR_NAME = re.compile(r'<name>([\s\S]*?)</name>', re.IGNORECASE)
_AUTHOR_AFFILIATION = re.compile(r'<arxiv:affiliation[^>]*>([\s\S]*?)</arxiv:affiliation>', re.IGNORECASE)

# Abstract page
_PAGE_TITLE = re.compile(
    r'<h1 class="title[^"]*">[\s\S]*?<span[^>]*>.*?</span>\s*([\s\S]*?)</h1>', re.IGNORECASE
)
_PAGE_ABSTRACT = re.compile(
    r'<blockquote class="abstract[^"]*">\s*<span[^>]*>.*?</span>([\s\S]*?)</blockquote>', re.IGNORECASE
)
_PAGE_AUTHORS = re.compile(r'<div class="authors[^"]*">([\s\S]*?)</div>', re.IGNORECASE)
_ANCHOR_TEXT = re.compile(r'<a\b[^>]*>([\s\S]*?)</a>', re.IGNORECASE)
_ANCHOR_HREF = re.compile(r'<a\s[^>]*href="(https?:[^"]+)"', re.IGNORECASE)

_CODE_LINK = re.compile(r'github\.com/', re.IGNORECASE)
_VIDEO_LINK = re.compile(r'youtu(be)?\.com|vimeo\.com', re.IGNORECASE)
_MODEL_LINK = re.compile(r'huggingface\.co/', re.IGNORECASE)


def _atom_text(raw: str) -> str:
    return collapse_whitespace(html.unescape(raw))


def parse_atom_response(xml: str, arxiv_id: str) -> ArxivMetadata:
    """
    Extract title, abstract and authors from an Atom API response.

    Missing elements leave the corresponding field empty.

    Args:
        xml: Response body of the Atom query API
        arxiv_id: The id that was queried

    Returns:
        Parsed ArxivMetadata
    """
    title_match = _ENTRY_TITLE.search(xml)
    summary_match = _SUMMARY.search(xml)

    authors: List[str] = []
    authors_detailed: List[AuthorAffiliation] = []
    for block in _AUTHOR.finditer(xml):
        name_match = _AUTHOR_NAME.search(block.group(1))
        name = _atom_text(name_match.group(1)) if name_match else ''
        if not name:
            continue
        affiliation_match = _AUTHOR_AFFILIATION.search(block.group(1))
        affiliation = _atom_text(affiliation_match.group(1)) if affiliation_match else None
        authors.append(name)
        authors_detailed.append(AuthorAffiliation(
            name=name,
            affiliation=affiliation or None,
            category=classify_affiliation(affiliation),
        ))

    return ArxivMetadata(
        id=arxiv_id,
        title=_atom_text(title_match.group(1)) if title_match else None,
        abstract=_atom_text(summary_match.group(1)) if summary_match else None,
        authors=authors,
        abs_url=build_abs_url(arxiv_id),
        pdf_url=build_pdf_url(arxiv_id),
        authors_detailed=authors_detailed,
    )


def scrape_abstract_page(page: str, fields: Dict[str, Any]) -> None:
    """
    Scrape an arXiv abstract page into ``fields``.

    Fields are filled one at a time so that whatever was collected survives
    a failure further down.
    """
    title_match = _PAGE_TITLE.search(page)
    if title_match:
        fields['title'] = clean_text(title_match.group(1)) or None

    abstract_match = _PAGE_ABSTRACT.search(page)
    if abstract_match:
        fields['abstract'] = clean_text(abstract_match.group(1)) or None

    authors_match = _PAGE_AUTHORS.search(page)
    if authors_match:
        names = [clean_text(m.group(1)) for m in _ANCHOR_TEXT.finditer(authors_match.group(1))]
        names = [name for name in names if name]
        fields['authors'] = names
        # The abstract page carries no affiliations
        fields['authors_detailed'] = [AuthorAffiliation(name=name, category="Other") for name in names]

    code_links: List[str] = []
    video_links: List[str] = []
    model_links: List[str] = []
    for match in _ANCHOR_HREF.finditer(page):
        link = html.unescape(match.group(1)).strip().split('#', 1)[0]
        if _CODE_LINK.search(link):
            bucket = code_links
        elif _VIDEO_LINK.search(link):
            bucket = video_links
        elif _MODEL_LINK.search(link):
            bucket = model_links
        else:
            continue
        if link not in bucket:
            bucket.append(link)
    fields['code_links'] = code_links
    fields['video_links'] = video_links
    fields['model_links'] = model_links


class ArxivClient:
    """Client for retrieving paper metadata from arXiv."""

    def __init__(
        self,
        config: Optional[ArxivAPIConfig] = None,
        security_config: Optional[SecurityConfig] = None,
        timeout: Optional[int] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the arXiv client.

        Args:
            config: arXiv API settings (defaults to the global settings)
            security_config: Security settings (defaults to the global settings)
            timeout: Request timeout in seconds (overrides config)
            http_client: Pre-built HTTP client; the caller keeps ownership
        """
        if config is None or security_config is None:
            settings = get_settings()
            config = config or settings.arxiv_api
            security_config = security_config or settings.security
        self.config = config
        self.security_config = security_config
        self.timeout = timeout or self.config.timeout

        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout),
            headers={"User-Agent": self.config.user_agent},
            follow_redirects=True,
        )

    async def close(self):
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def _make_request(self, url: str, params: Optional[Dict[str, Any]] = None) -> httpx.Response:
        """
        Issue a single GET request. No retries.

        Raises:
            ArxivAPIError: For non-success status codes
            NetworkError: For transport failures
        """
        validate_domain(url, self.security_config.allowed_domains)

        start_time = time.time()
        log_api_request(url, params=params)
        try:
            response = await self._client.get(url, params=params)
        except httpx.HTTPError as e:
            log_error(e, context={'url': url})
            raise NetworkError(f"HTTP error: {str(e)}", original_error=e)

        log_api_response(url, response.status_code, time.time() - start_time)

        if not response.is_success:
            raise ArxivAPIError(
                f"arXiv API error {response.status_code}",
                status_code=response.status_code,
                response_text=response.text
            )
        return response

    async def fetch_metadata(self, url: str) -> ArxivMetadata:
        """
        Retrieve metadata for the paper behind a canonical URL.

        The Atom API is used whenever an id can be read from the URL and its
        failures propagate. Otherwise arxiv.org URLs fall back to scraping the
        abstract page, which never raises.

        Args:
            url: Canonical paper URL

        Returns:
            ArxivMetadata for the paper

        Raises:
            ArxivAPIError: If the Atom API answers with an error status
            NetworkError: If the Atom API cannot be reached
        """
        arxiv_id = extract_arxiv_id(url)
        if arxiv_id:
            return await self.fetch_from_api(arxiv_id)
        if is_arxiv_host(url):
            return await self.fetch_from_abstract_page(url)

        logger.info(f"No arXiv id in {url}, returning empty metadata")
        return ArxivMetadata()

    async def fetch_from_api(self, arxiv_id: str) -> ArxivMetadata:
        """Query the Atom API for a single id."""
        response = await self._make_request(self.config.base_url, params={'id_list': arxiv_id})
        metadata = parse_atom_response(response.text, arxiv_id)
        if metadata.title is None:
            logger.warning(f"Atom API returned no entry for {arxiv_id}")
        else:
            logger.info(f"Fetched metadata for {arxiv_id}: {len(metadata.authors)} authors")
        return metadata

    async def fetch_from_abstract_page(self, url: str) -> ArxivMetadata:
        """Best-effort scrape of the abstract page. Never raises."""
        arxiv_id = arxiv_id_from_path(url)
        fields: Dict[str, Any] = {
            'id': arxiv_id or None,
            'abs_url': build_abs_url(arxiv_id),
            'pdf_url': build_pdf_url(arxiv_id),
        }
        try:
            response = await self._make_request(f"{self.config.abs_base_url}/{arxiv_id}")
            scrape_abstract_page(response.text, fields)
        except Exception as e:
            logger.warning(f"Abstract page scrape for {url} degraded: {e}")
        return ArxivMetadata(**fields)
