"""Prompt template for structured paper summaries."""

from .models import ArxivMetadata

SUMMARY_SCHEMA = (
    '{"title": string, "arxiv_id": string, "arxiv_abs_url": string, "arxiv_pdf_url": string, '
    '"one_liner": string, "simplified_summary": string, "practical_problem": string, '
    '"problems_solved": string[], "key_innovations": string[], "impact_potential": string[], '
    '"use_cases": string[], '
    '"benchmarks": [{"metric": string, "value": string, "baseline": string, "improvement": string}], '
    '"collaboration_type": "Academia-only"|"Industry-only"|"Academia-Industry"|"Unknown", '
    '"takeaways": string[], "notes": string[], '
    '"resources": {"code": string[], "video": string[], "checkpoints": string[]}, '
    '"reliability_score": number, "applicability_score": number, "overall_score": number, '
    '"total_authors": number, "authors": string[], '
    '"authors_affiliations": [{"name": string, "affiliation": string, "category": string}], '
    '"affiliation_breakdown": {"Academia": number, "Industry": number, "Other": number}}'
)

SUMMARY_RULES = [
    '- title: The paper title.',
    '- arxiv_id: The arXiv ID if applicable.',
    '- arxiv_abs_url: The abstract URL.',
    '- arxiv_pdf_url: The PDF URL.',
    '- one_liner: <= 25 words plain language value prop.',
    '- simplified_summary: Plain, non-academic explanation (<=300 words) covering what, how, why it matters.',
    '- practical_problem: Real-world problem addressed in one concise sentence.',
    '- problems_solved: 3-6 concrete pain points; each <= 12 words.',
    '- key_innovations: 3-6 technical or methodological novelties.',
    '- impact_potential: 3-5 bullets broader potential (societal/economic/scientific).',
    '- use_cases: 3-6 practical scenarios.',
    '- benchmarks: Only include reported quantitative results. {metric, value, baseline, improvement}. '
    'No invention. [] if none.',
    '- collaboration_type: Infer from affiliations; Academia-Industry if >=1 of each.',
    '- takeaways: 3-6 actionable distilled lessons.',
    '- notes: Limitations/risks (0-5).',
    '- resources.*: Only URLs found in the paper or clearly present; no hallucinated domains.',
    '- reliability_score: 0-100 (soundness: clarity, evidence, benchmarks, openness).',
    '- applicability_score: 0-100 (ease of adoption, code/resources, clarity).',
    '- overall_score: Weighted 0-100 (0.6*reliability + 0.4*applicability).',
    '- total_authors: Number of authors.',
    '- authors: List of author names.',
    '- authors_affiliations: List with name, affiliation, category (Academia/Industry/Other).',
    '- affiliation_breakdown: Count of each category.',
    '- NEVER fabricate benchmarks or links. Use empty collections if absent.',
    '- Keep wording neutral, concise, concrete. No hype.',
]


def build_summary_prompt(metadata: ArxivMetadata) -> str:
    """
    Build the generation prompt for a paper.

    Args:
        metadata: Metadata fetched for the paper

    Returns:
        Prompt text
    """
    lines = [
        'You are an assistant creating a practitioner-friendly structured summary of a research paper.',
        'Here is the paper information:',
        f'Title: {metadata.title or "Unknown"}',
        f'arXiv ID: {metadata.id or "Unknown"}',
        f'Abstract: {metadata.abstract or "No abstract available"}',
        f'Authors: {", ".join(metadata.authors) or "Unknown authors"}',
        f'Abstract URL: {metadata.abs_url or "Unknown"}',
        f'PDF URL: {metadata.pdf_url or "Unknown"}',
        '',
        'Based on this paper information, create a structured summary and return ONLY strict JSON '
        '(no markdown fences) matching this full schema:',
        SUMMARY_SCHEMA,
        'Definitions & Rules:',
        *SUMMARY_RULES,
    ]
    return '\n'.join(lines)
