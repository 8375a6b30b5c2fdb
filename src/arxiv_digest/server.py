"""arXiv digest MCP server - exposes the summary pipeline as tools."""

import json
from typing import Optional

from mcp.server.fastmcp import FastMCP

from .config import get_config, validate_configuration
from .exceptions import ArxivDigestError, ValidationError, format_error_for_user
from .logging_config import get_logger, log_function_call_decorator as log_function_call, setup_logging
from .summarizer import PaperSummarizer
from .utils import build_share_text, normalize_paper_reference, sanitize_input

config = get_config()
logger = get_logger(__name__)

mcp = FastMCP(config.server.name)

# Global pipeline instance
paper_summarizer: Optional[PaperSummarizer] = None


async def get_summarizer() -> PaperSummarizer:
    """Get or create the pipeline instance."""
    global paper_summarizer
    if paper_summarizer is None:
        paper_summarizer = PaperSummarizer(config)
    return paper_summarizer


def _clean_reference(paper: str) -> str:
    if config.security.sanitize_inputs:
        paper = sanitize_input(paper, max_length=config.security.max_input_length)
    else:
        paper = (paper or '').strip()
    if not paper:
        raise ValidationError("Paper reference cannot be empty", field="paper")
    return paper


def _error_response(tool: str, error: Exception) -> str:
    if isinstance(error, ValidationError):
        logger.warning(f"Validation error in {tool}: {error}")
    elif isinstance(error, ArxivDigestError):
        logger.error(f"Error in {tool}: {error}")
    else:
        logger.error(f"Unexpected error in {tool}: {error}", exc_info=error)
        return "An unexpected error occurred. Please try again later."
    return format_error_for_user(error)


@mcp.tool()
@log_function_call(logger)
async def summarize_paper(paper: str) -> str:
    """
    Produce a structured, practitioner-friendly summary of an arXiv paper.

    Args:
        paper: arXiv URL (abs or pdf), bare arXiv ID (e.g. "2506.01667") or another paper URL

    Returns:
        JSON object with one_liner, problems_solved, key_innovations, takeaways,
        benchmarks, resources, scores and author affiliations
    """
    try:
        paper = _clean_reference(paper)
        pipeline = await get_summarizer()

        logger.info(f"Summarizing paper: '{paper}'")
        summary = await pipeline.summarize(paper)

        logger.info(f"Successfully summarized paper: {summary.title}")
        return json.dumps(summary.to_output(), ensure_ascii=False, indent=2)

    except Exception as e:
        return _error_response("summarize_paper", e)


@mcp.tool()
@log_function_call(logger)
async def get_paper_metadata(paper: str) -> str:
    """
    Fetch title, abstract, authors, affiliations and resource links for a paper.

    Args:
        paper: arXiv URL (abs or pdf), bare arXiv ID or another paper URL

    Returns:
        JSON object with the paper metadata
    """
    try:
        paper = _clean_reference(paper)
        pipeline = await get_summarizer()

        logger.info(f"Fetching metadata for: '{paper}'")
        metadata = await pipeline.fetch_metadata(paper)
        return metadata.model_dump_json(indent=2)

    except Exception as e:
        return _error_response("get_paper_metadata", e)


@mcp.tool()
@log_function_call(logger)
async def normalize_paper(paper: str) -> str:
    """
    Resolve a paper reference to its canonical URL without any network access.

    Args:
        paper: arXiv URL, bare arXiv ID or another paper URL

    Returns:
        https://arxiv.org/abs/<id> for arXiv papers, a Wayback Machine URL otherwise
    """
    try:
        return normalize_paper_reference(_clean_reference(paper))
    except Exception as e:
        return _error_response("normalize_paper", e)


@mcp.tool()
@log_function_call(logger)
async def share_summary(paper: str, share_url: Optional[str] = None) -> str:
    """
    Summarize a paper and format the result as a plain-text message for sharing.

    Args:
        paper: arXiv URL (abs or pdf), bare arXiv ID or another paper URL
        share_url: Link to include instead of the arXiv abstract page

    Returns:
        Title, link, one-liner, problems solved, key innovations and takeaways
    """
    try:
        paper = _clean_reference(paper)
        pipeline = await get_summarizer()
        summary = await pipeline.summarize(paper)
        return build_share_text(summary, share_url=share_url)

    except Exception as e:
        return _error_response("share_summary", e)


def main():
    """Main entry point for the arXiv digest MCP server."""
    setup_logging(config.logging, debug=config.server.debug)
    try:
        logger.info("Starting arXiv digest MCP server")
        logger.info(f"Configuration loaded: {config.model_dump(exclude={'llm': {'api_key'}})}")
        for problem in validate_configuration(config):
            logger.warning(f"Configuration issue: {problem}")
        mcp.run(transport='stdio')
    except KeyboardInterrupt:
        logger.info("Server shutdown requested by user")
    except Exception as e:
        logger.error(f"Fatal error in main: {e}", exc_info=True)
        raise


if __name__ == "__main__":
    main()
