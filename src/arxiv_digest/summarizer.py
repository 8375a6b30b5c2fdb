"""Summary resolution: prompt the LLM, parse its JSON, degrade to metadata when it can't be parsed."""

import json
import math
import re
from typing import Any, Dict, List, Optional

from .affiliations import classify_affiliation, count_affiliations, infer_collaboration_type
from .arxiv_client import ArxivClient
from .config import Settings, get_settings
from .llm_client import GeminiClient
from .logging_config import get_logger, logged_function
from .models import (
    AFFILIATION_CATEGORIES,
    COLLABORATION_TYPES,
    AffiliationBreakdown,
    ArxivMetadata,
    AuthorAffiliation,
    Benchmark,
    Resources,
    StructuredSummary,
    SummaryParseResult,
)
from .prompts import build_summary_prompt
from .utils import normalize_paper_reference

logger = get_logger(__name__)

FALLBACK_ONE_LINER = "Summary generation failed, but paper metadata was retrieved."
FALLBACK_NOTE = "Summary generation failed - please try again"

RELIABILITY_WEIGHT = 0.6
APPLICABILITY_WEIGHT = 0.4

_FENCE = re.compile(r'```[\w-]*[ \t]*\n?([\s\S]*?)\s*```')


def strip_code_fence(text: str) -> str:
    """Return the body of the first fenced code block, or the trimmed text when there is none."""
    text = (text or '').strip()
    match = _FENCE.search(text)
    if match:
        return match.group(1).strip()
    return text


def _reject_constant(name: str):
    raise ValueError(f"{name} is not valid JSON")


def _load_object(text: str) -> Any:
    return json.loads(text, parse_constant=_reject_constant)


def parse_summary_text(text: str) -> SummaryParseResult:
    """
    Parse the model's raw output as a JSON object.

    The trimmed text is tried as is before any code fence is unwrapped, so
    backticks inside JSON strings survive. ``NaN`` and ``Infinity`` are
    rejected. Never raises: malformed JSON and non-object documents yield a
    failed result.
    """
    trimmed = (text or '').strip()
    try:
        data = _load_object(trimmed)
    except ValueError:
        try:
            data = _load_object(strip_code_fence(trimmed))
        except ValueError as e:
            return SummaryParseResult.failure(f"invalid JSON: {e}")
    if not isinstance(data, dict):
        return SummaryParseResult.failure(f"expected a JSON object, got {type(data).__name__}")
    return SummaryParseResult.success(data)


def weighted_overall_score(reliability: float, applicability: float) -> int:
    """0.6 * reliability + 0.4 * applicability, rounded half up."""
    return math.floor(reliability * RELIABILITY_WEIGHT + applicability * APPLICABILITY_WEIGHT + 0.5)


def _is_number(value: Any) -> bool:
    # 1e400 parses to inf
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _text(value: Any) -> Optional[str]:
    return value if isinstance(value, str) and value else None


def _string_list(value: Any) -> List[str]:
    if not isinstance(value, list):
        return []
    items = []
    for item in value:
        if isinstance(item, str):
            items.append(item)
        elif _is_number(item):
            items.append(str(item))
    return items


def _benchmarks(value: Any) -> List[Benchmark]:
    if not isinstance(value, list):
        return []
    benchmarks = []
    for item in value:
        if isinstance(item, dict) and item.get('metric') not in (None, ''):
            benchmarks.append(Benchmark(
                metric=item['metric'],
                value=item.get('value'),
                baseline=item.get('baseline'),
                improvement=item.get('improvement'),
            ))
    return benchmarks


def _category(value: Any, affiliation: Optional[str]):
    if isinstance(value, str):
        for category in AFFILIATION_CATEGORIES:
            if value.strip().lower() == category.lower():
                return category
    return classify_affiliation(affiliation)


def _affiliations(value: Any) -> List[AuthorAffiliation]:
    if not isinstance(value, list):
        return []
    authors = []
    for item in value:
        if not isinstance(item, dict) or not _text(item.get('name')):
            continue
        affiliation = _text(item.get('affiliation'))
        authors.append(AuthorAffiliation(
            name=item['name'],
            affiliation=affiliation,
            category=_category(item.get('category'), affiliation),
        ))
    return authors


def _breakdown(value: Any, authors: List[AuthorAffiliation]) -> AffiliationBreakdown:
    if isinstance(value, dict):
        return AffiliationBreakdown(**{
            category: int(value[category])
            for category in AFFILIATION_CATEGORIES
            if _is_number(value.get(category))
        })
    return count_affiliations(authors)


def _resources(value: Any) -> Resources:
    if not isinstance(value, dict):
        return Resources()
    return Resources(
        code=_string_list(value.get('code')),
        video=_string_list(value.get('video')),
        checkpoints=_string_list(value.get('checkpoints')),
    )


def build_structured_summary(data: Dict[str, Any], metadata: ArxivMetadata) -> StructuredSummary:
    """
    Build a summary from the model's parsed JSON, filling gaps from metadata.

    Ill-typed fields are treated as missing. Authors and their affiliations
    fall back to the fetched metadata when the model leaves them out.
    """
    authors = _string_list(data.get('authors')) or list(metadata.authors)
    affiliations = _affiliations(data.get('authors_affiliations')) or list(metadata.authors_detailed)

    collaboration_type = data.get('collaboration_type')
    if collaboration_type not in COLLABORATION_TYPES:
        collaboration_type = infer_collaboration_type(affiliations)

    total_authors = data.get('total_authors')
    total_authors = int(total_authors) if _is_number(total_authors) else len(authors)

    reliability = data.get('reliability_score') if _is_number(data.get('reliability_score')) else None
    applicability = data.get('applicability_score') if _is_number(data.get('applicability_score')) else None
    overall = data.get('overall_score') if _is_number(data.get('overall_score')) else None
    if overall is None and reliability is not None and applicability is not None:
        overall = weighted_overall_score(reliability, applicability)

    return StructuredSummary(
        title=_text(data.get('title')) or metadata.title,
        arxiv_id=_text(data.get('arxiv_id')) or metadata.id,
        arxiv_abs_url=_text(data.get('arxiv_abs_url')) or metadata.abs_url,
        arxiv_pdf_url=_text(data.get('arxiv_pdf_url')) or metadata.pdf_url,
        one_liner=_text(data.get('one_liner')) or '',
        simplified_summary=_text(data.get('simplified_summary')),
        practical_problem=_text(data.get('practical_problem')),
        problems_solved=_string_list(data.get('problems_solved')),
        key_innovations=_string_list(data.get('key_innovations')),
        impact_potential=_string_list(data.get('impact_potential')),
        use_cases=_string_list(data.get('use_cases')),
        benchmarks=_benchmarks(data.get('benchmarks')),
        collaboration_type=collaboration_type,
        takeaways=_string_list(data.get('takeaways')),
        notes=_string_list(data.get('notes')),
        resources=_resources(data.get('resources')),
        reliability_score=reliability,
        applicability_score=applicability,
        overall_score=overall,
        total_authors=total_authors,
        authors=authors,
        authors_affiliations=affiliations,
        affiliation_breakdown=_breakdown(data.get('affiliation_breakdown'), affiliations),
    )


def build_fallback_summary(metadata: ArxivMetadata) -> StructuredSummary:
    """Degraded summary built from metadata alone."""
    return StructuredSummary(
        title=metadata.title,
        arxiv_id=metadata.id,
        arxiv_abs_url=metadata.abs_url,
        arxiv_pdf_url=metadata.pdf_url,
        one_liner=FALLBACK_ONE_LINER,
        problems_solved=[],
        key_innovations=[],
        collaboration_type=infer_collaboration_type(metadata.authors_detailed),
        total_authors=len(metadata.authors),
        authors=list(metadata.authors),
        takeaways=[],
        notes=[FALLBACK_NOTE],
        benchmarks=[],
        resources=Resources(
            code=list(metadata.code_links),
            video=list(metadata.video_links),
            checkpoints=list(metadata.model_links),
        ),
        authors_affiliations=list(metadata.authors_detailed),
        affiliation_breakdown=count_affiliations(metadata.authors_detailed),
    )


class SummaryResolver:
    """Turns paper metadata into a StructuredSummary with one generation call."""

    def __init__(self, llm_client: GeminiClient):
        self.llm_client = llm_client

    async def resolve(self, metadata: ArxivMetadata) -> StructuredSummary:
        """
        Summarize a paper.

        Errors from the generation endpoint propagate. Output that cannot be
        parsed or converted produces the degraded summary instead.
        """
        text = await self.llm_client.generate(build_summary_prompt(metadata))

        result = parse_summary_text(text)
        if not result.ok:
            logger.warning(f"Unparseable summary for {metadata.id}: {result.error}")
            return build_fallback_summary(metadata)

        try:
            return build_structured_summary(result.data, metadata)
        except Exception as e:
            logger.warning(f"Could not build summary for {metadata.id} from model output: {e}")
            return build_fallback_summary(metadata)


class PaperSummarizer:
    """Entry point running normalize, fetch and resolve for one paper reference."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        arxiv_client: Optional[ArxivClient] = None,
        llm_client: Optional[GeminiClient] = None,
    ):
        self.settings = settings or get_settings()
        self._owns_arxiv_client = arxiv_client is None
        self._owns_llm_client = llm_client is None
        self.arxiv_client = arxiv_client or ArxivClient(self.settings.arxiv_api, self.settings.security)
        self.llm_client = llm_client or GeminiClient(self.settings.llm, self.settings.security)
        self.resolver = SummaryResolver(self.llm_client)

    async def close(self):
        if self._owns_arxiv_client:
            await self.arxiv_client.close()
        if self._owns_llm_client:
            await self.llm_client.close()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def fetch_metadata(self, reference: str) -> ArxivMetadata:
        """Normalize a paper reference and fetch its metadata."""
        canonical_url = normalize_paper_reference(reference)
        logger.info(f"Resolved paper reference {reference!r} to {canonical_url}")
        with logged_function('fetch_metadata', url=canonical_url):
            return await self.arxiv_client.fetch_metadata(canonical_url)

    async def summarize(self, reference: str) -> StructuredSummary:
        """Run the full pipeline for a paper reference."""
        metadata = await self.fetch_metadata(reference)
        with logged_function('resolve_summary', arxiv_id=metadata.id):
            return await self.resolver.resolve(metadata)


async def summarize_paper(reference: str, settings: Optional[Settings] = None) -> StructuredSummary:
    """
    Summarize one paper with clients built from ``settings``.

    Args:
        reference: arXiv URL, bare arXiv id or other paper URL
        settings: Configuration (defaults to the global settings)

    Returns:
        StructuredSummary for the paper
    """
    async with PaperSummarizer(settings) as summarizer:
        return await summarizer.summarize(reference)
