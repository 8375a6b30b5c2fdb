"""Data models for paper metadata and structured summaries."""

from typing import Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


AffiliationCategory = Literal["Academia", "Industry", "Other"]
CollaborationType = Literal["Academia-only", "Industry-only", "Academia-Industry", "Unknown"]

AFFILIATION_CATEGORIES = ("Academia", "Industry", "Other")
COLLABORATION_TYPES = ("Academia-only", "Industry-only", "Academia-Industry", "Unknown")

Score = Union[int, float]


class AuthorAffiliation(BaseModel):
    """An author with an optional affiliation and its derived category."""
    model_config = ConfigDict(frozen=True)

    name: str
    affiliation: Optional[str] = None
    category: AffiliationCategory = "Other"


class ArxivMetadata(BaseModel):
    """Metadata recovered for one paper. Every field may be missing."""
    model_config = ConfigDict(frozen=True, protected_namespaces=())

    id: Optional[str] = Field(default=None, description="arXiv identifier (e.g., 2506.01667)")
    title: Optional[str] = None
    abstract: Optional[str] = None
    authors: List[str] = Field(default_factory=list)
    abs_url: Optional[str] = None
    pdf_url: Optional[str] = None
    authors_detailed: List[AuthorAffiliation] = Field(default_factory=list)
    code_links: List[str] = Field(default_factory=list)
    video_links: List[str] = Field(default_factory=list)
    model_links: List[str] = Field(default_factory=list)


class Benchmark(BaseModel):
    """A quantitative result reported by the paper."""
    model_config = ConfigDict(frozen=True)

    metric: str
    value: Optional[str] = None
    baseline: Optional[str] = None
    improvement: Optional[str] = None

    @field_validator('metric', 'value', 'baseline', 'improvement', mode='before')
    @classmethod
    def stringify_numbers(cls, v):
        # Models often report figures as bare numbers
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return str(v)
        return v


class Resources(BaseModel):
    """Links to code, videos and model checkpoints."""
    model_config = ConfigDict(frozen=True)

    code: List[str] = Field(default_factory=list)
    video: List[str] = Field(default_factory=list)
    checkpoints: List[str] = Field(default_factory=list)


class AffiliationBreakdown(BaseModel):
    """Author count per affiliation category."""
    model_config = ConfigDict(frozen=True)

    Academia: int = 0
    Industry: int = 0
    Other: int = 0


class StructuredSummary(BaseModel):
    """The summary record handed to callers."""
    model_config = ConfigDict(frozen=True)

    title: Optional[str] = None
    arxiv_id: Optional[str] = None
    arxiv_abs_url: Optional[str] = None
    arxiv_pdf_url: Optional[str] = None
    one_liner: str = ""
    problems_solved: List[str] = Field(default_factory=list)
    key_innovations: List[str] = Field(default_factory=list)
    collaboration_type: CollaborationType = "Unknown"
    total_authors: int = 0
    authors: Optional[List[str]] = None
    takeaways: List[str] = Field(default_factory=list)
    notes: Optional[List[str]] = None
    simplified_summary: Optional[str] = None
    practical_problem: Optional[str] = None
    impact_potential: Optional[List[str]] = None
    use_cases: Optional[List[str]] = None
    benchmarks: Optional[List[Benchmark]] = None
    resources: Optional[Resources] = None
    reliability_score: Optional[Score] = None
    applicability_score: Optional[Score] = None
    overall_score: Optional[Score] = None
    authors_affiliations: Optional[List[AuthorAffiliation]] = None
    affiliation_breakdown: Optional[AffiliationBreakdown] = None

    def to_output(self) -> Dict[str, Any]:
        """JSON-ready dict; optional fields that were never produced are omitted."""
        return self.model_dump(exclude_none=True)


class SummaryParseResult(BaseModel):
    """Outcome of parsing the model's raw text as a JSON object."""
    model_config = ConfigDict(frozen=True)

    ok: bool
    data: Optional[Dict[str, Any]] = None
    error: Optional[str] = None

    @classmethod
    def success(cls, data: Dict[str, Any]) -> "SummaryParseResult":
        return cls(ok=True, data=data)

    @classmethod
    def failure(cls, error: str) -> "SummaryParseResult":
        return cls(ok=False, error=error)
