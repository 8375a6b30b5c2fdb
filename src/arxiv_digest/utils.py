"""Utility functions for the arXiv digest pipeline."""

import html
import re
from typing import Any, List, Optional
from urllib.parse import urlparse

from .exceptions import ValidationError
from .logging_config import get_logger

logger = get_logger(__name__)

ARXIV_HOST = "arxiv.org"
ARCHIVE_PROXY_PREFIX = "https://web.archive.org/web/2/"

_PDF_SUFFIX = re.compile(r'\.pdf$', re.IGNORECASE)
_ARXIV_PREFIX = re.compile(r'^arxiv:\s*', re.IGNORECASE)
_TAG = re.compile(r'<[^>]+>')
_WHITESPACE = re.compile(r'\s+')


def build_abs_url(arxiv_id: str) -> str:
    """Canonical abstract page URL for an arXiv id."""
    return f"https://arxiv.org/abs/{arxiv_id}"


def build_pdf_url(arxiv_id: str) -> str:
    """Canonical PDF URL for an arXiv id."""
    return f"https://arxiv.org/pdf/{arxiv_id}.pdf"


def _path_parts(path: str) -> List[str]:
    return [part for part in path.split('/') if part]


def _id_from_parts(parts: List[str]) -> str:
    # /abs/<id> and /pdf/<id> may carry old-style ids such as hep-th/9901001
    if len(parts) >= 2 and parts[0] in ('abs', 'pdf'):
        return _PDF_SUFFIX.sub('', '/'.join(parts[1:]))
    return _PDF_SUFFIX.sub('', parts[-1]) if parts else ''


def _parse_absolute_url(value: str):
    try:
        parsed = urlparse(value)
    except ValueError:
        return None
    if not parsed.scheme or not parsed.netloc:
        return None
    return parsed


def normalize_paper_reference(reference: str) -> str:
    """
    Turn a user supplied paper reference into a canonical URL.

    ``https://arxiv.org/abs/<id>`` URLs are returned as is, PDF and bare-id
    arxiv.org URLs are rewritten to the abstract page, other URLs are routed
    through the Wayback Machine, and anything that is not a URL is taken as
    an arXiv id. Never raises.

    Args:
        reference: arXiv URL, bare arXiv id or any other URL

    Returns:
        Canonical paper URL
    """
    reference = (reference or '').strip()

    parsed = _parse_absolute_url(reference)
    if parsed is None:
        return build_abs_url(_ARXIV_PREFIX.sub('', reference))

    if (parsed.hostname or '').lower() != ARXIV_HOST:
        return f"{ARCHIVE_PROXY_PREFIX}{reference}"

    parts = _path_parts(parsed.path)
    if len(parts) >= 2 and parts[0] == 'abs':
        return reference
    if len(parts) >= 2 and parts[0] == 'pdf':
        return build_abs_url(_id_from_parts(parts))
    if len(parts) == 1:
        return build_abs_url(_id_from_parts(parts))

    logger.debug(f"Unrecognised arxiv.org path, leaving as is: {reference}")
    return reference


def is_arxiv_host(url: str) -> bool:
    """True when the URL points at arxiv.org or one of its subdomains."""
    parsed = _parse_absolute_url(url)
    if parsed is None:
        return False
    host = (parsed.hostname or '').lower()
    return host == ARXIV_HOST or host.endswith('.' + ARXIV_HOST)


def extract_arxiv_id(url: str) -> Optional[str]:
    """
    Extract the arXiv id from an arxiv.org URL.

    Returns:
        The id, or None for non-arXiv hosts and paths without segments
    """
    if not is_arxiv_host(url):
        return None
    return arxiv_id_from_path(url) or None


def arxiv_id_from_path(url: str) -> str:
    """Read an id from the URL path regardless of host; '' when there is none."""
    try:
        path = urlparse(url).path
    except ValueError:
        return ''
    return _id_from_parts(_path_parts(path))


def validate_domain(url: str, allowed_domains: List[str]) -> None:
    """
    Validate that the URL's host is an allowed domain or a subdomain of one.

    Raises:
        ValidationError: If domain is not allowed
    """
    domain = (urlparse(url).hostname or '').lower()
    for allowed in allowed_domains:
        allowed = allowed.lower()
        if domain == allowed or domain.endswith('.' + allowed):
            return
    raise ValidationError(f"Domain not allowed: {domain}", field="url", value=url)


def collapse_whitespace(text: str) -> str:
    """Collapse runs of whitespace to single spaces and trim."""
    return _WHITESPACE.sub(' ', text).strip()


def strip_tags(markup: str) -> str:
    """Remove HTML tags and collapse whitespace."""
    return collapse_whitespace(_TAG.sub('', markup))


def clean_text(markup: str) -> str:
    """Strip tags, decode entities and collapse whitespace."""
    return collapse_whitespace(html.unescape(strip_tags(markup)))


def sanitize_input(value: Any, max_length: int = 2048) -> str:
    """
    Sanitize user input by removing potentially harmful content.

    Args:
        value: Input value to sanitize
        max_length: Maximum allowed length

    Returns:
        Sanitized string

    Raises:
        ValidationError: If input is too long
    """
    if value is None:
        return ""

    if not isinstance(value, str):
        value = str(value)

    value = re.sub(r'[\x00-\x1f\x7f-\x9f]', ' ', value)
    value = collapse_whitespace(value)

    if len(value) > max_length:
        raise ValidationError(f"Input too long (max {max_length} characters)", field="paper")

    return value


def build_share_text(summary, share_url: Optional[str] = None) -> str:
    """
    Build a plain-text message for sharing a summary by mail or chat.

    Args:
        summary: StructuredSummary to share
        share_url: Link to put in the message; defaults to the abstract page

    Returns:
        Share message
    """
    lines = []
    link = share_url or summary.arxiv_abs_url or summary.arxiv_pdf_url
    if summary.title:
        lines.append(f"Title: {summary.title}")
    if link:
        lines.append(f"Link: {link}")
    if summary.one_liner:
        lines.append(f"\nOne-liner: {summary.one_liner}")

    for heading, items in (
        ("Problems solved", summary.problems_solved),
        ("Key innovations", summary.key_innovations),
        ("Takeaways", summary.takeaways),
    ):
        if items:
            lines.append(f"\n{heading}:")
            lines.extend(f"- {item}" for item in items)

    return '\n'.join(lines)
