"""Tests for metadata retrieval from the Atom API and the abstract page."""

from unittest.mock import patch

import httpx
import pytest

from src.arxiv_digest.arxiv_client import ArxivClient, parse_atom_response, scrape_abstract_page
from src.arxiv_digest.config import ArxivAPIConfig, SecurityConfig
from src.arxiv_digest.exceptions import ArxivAPIError, NetworkError, UpstreamFetchError, ValidationError


ATOM_FIXTURE = """<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title type="html">ArXiv Query: search_query=&amp;id_list=2506.01667</title>
  <entry>
    <id>http://arxiv.org/abs/2506.01667v1</id>
    <title>Efficient Retrieval
      for Long   Documents</title>
    <summary>  We study retrieval over long documents.
    It works &amp; scales.  </summary>
    <author>
      <name>Ada Lovelace</name>
      <arxiv:affiliation xmlns:arxiv="http://arxiv.org/schemas/atom">University of
        Cambridge</arxiv:affiliation>
    </author>
    <author>
      <name>Grace Hopper</name>
      <arxiv:affiliation xmlns:arxiv="http://arxiv.org/schemas/atom">Google Inc</arxiv:affiliation>
    </author>
    <author>
      <name>Anonymous Contributor</name>
    </author>
    <author>
      <name>   </name>
    </author>
  </entry>
</feed>
"""

EMPTY_FEED = """<?xml version="1.0" encoding="UTF-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title type="html">ArXiv Query: id_list=0000.00000</title>
</feed>
"""

ABS_PAGE = """<html><body>
<h1 class="title mathjax"><span class="descriptor">Title:</span>Scraped Title &amp; More</h1>
<div class="authors"><span class="descriptor">Authors:</span><a href="https://arxiv.org/a/doe_j_1">Jane Doe</a>,
  <a href="https://arxiv.org/a/roe_r_1">Richard <b>Roe</b></a></div>
<blockquote class="abstract mathjax">
  <span class="descriptor">Abstract:</span>An abstract
  across lines.
</blockquote>
<a href="https://github.com/acme/repo#readme">code</a>
<a href="https://www.youtube.com/watch?v=abc&amp;t=1">talk</a>
<a href="https://vimeo.com/12345">talk mirror</a>
<a href="https://huggingface.co/acme/model">weights</a>
<a href="https://github.com/acme/repo">code again</a>
<a href="https://example.com/unrelated">other</a>
</body></html>
"""


def make_client(handler, **security):
    transport = httpx.MockTransport(handler)
    http_client = httpx.AsyncClient(transport=transport)
    return ArxivClient(
        config=ArxivAPIConfig(),
        security_config=SecurityConfig(**security),
        http_client=http_client,
    ), http_client


class TestAtomParsing:
    """Test pattern-based extraction from the Atom API response."""

    def test_parse_atom_response(self):
        metadata = parse_atom_response(ATOM_FIXTURE, "2506.01667")
        assert metadata.id == "2506.01667"
        assert metadata.title == "Efficient Retrieval for Long Documents"
        assert metadata.abstract == "We study retrieval over long documents. It works & scales."
        assert metadata.abs_url == "https://arxiv.org/abs/2506.01667"
        assert metadata.pdf_url == "https://arxiv.org/pdf/2506.01667.pdf"

    def test_authors_and_affiliations_are_parallel(self):
        metadata = parse_atom_response(ATOM_FIXTURE, "2506.01667")
        assert metadata.authors == ["Ada Lovelace", "Grace Hopper", "Anonymous Contributor"]
        assert [a.name for a in metadata.authors_detailed] == metadata.authors
        assert metadata.authors_detailed[0].affiliation == "University of Cambridge"
        assert metadata.authors_detailed[0].category == "Academia"
        assert metadata.authors_detailed[1].category == "Industry"
        assert metadata.authors_detailed[2].affiliation is None
        assert metadata.authors_detailed[2].category == "Other"

    def test_missing_entry_yields_empty_fields(self):
        metadata = parse_atom_response(EMPTY_FEED, "0000.00000")
        assert metadata.title is None
        assert metadata.abstract is None
        assert metadata.authors == []
        assert metadata.abs_url == "https://arxiv.org/abs/0000.00000"


class TestAbstractPageScrape:
    """Test extraction from the abstract HTML page."""

    def test_scrape_abstract_page(self):
        fields = {}
        scrape_abstract_page(ABS_PAGE, fields)
        assert fields['title'] == "Scraped Title & More"
        assert fields['abstract'] == "An abstract across lines."
        assert fields['authors'] == ["Jane Doe", "Richard Roe"]
        assert all(a.category == "Other" and a.affiliation is None for a in fields['authors_detailed'])
        assert len(fields['authors_detailed']) == len(fields['authors'])

    def test_resource_links(self):
        fields = {}
        scrape_abstract_page(ABS_PAGE, fields)
        assert fields['code_links'] == ["https://github.com/acme/repo"]
        assert fields['video_links'] == ["https://www.youtube.com/watch?v=abc&t=1", "https://vimeo.com/12345"]
        assert fields['model_links'] == ["https://huggingface.co/acme/model"]

    def test_unrelated_markup(self):
        fields = {}
        scrape_abstract_page("<html><p>nothing here</p></html>", fields)
        assert 'title' not in fields
        assert 'authors' not in fields
        assert fields['code_links'] == []


@pytest.mark.asyncio
class TestArxivClient:
    """Test the metadata fetcher against mocked upstreams."""

    async def test_primary_path(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, text=ATOM_FIXTURE)

        client, http_client = make_client(handler)
        async with http_client:
            metadata = await client.fetch_metadata("https://arxiv.org/abs/2506.01667")

        assert len(requests) == 1
        assert requests[0].url.host == "export.arxiv.org"
        assert requests[0].url.path == "/api/query"
        assert requests[0].url.params["id_list"] == "2506.01667"
        assert metadata.id == "2506.01667"
        assert len(metadata.authors) == 3

    async def test_primary_path_error_status_propagates(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(500, text="internal error")

        client, http_client = make_client(handler)
        async with http_client:
            with pytest.raises(ArxivAPIError) as exc_info:
                await client.fetch_metadata("https://arxiv.org/abs/2506.01667")

        assert isinstance(exc_info.value, UpstreamFetchError)
        assert exc_info.value.status_code == 500
        assert exc_info.value.response_text == "internal error"
        # no silent fallback to the abstract page
        assert len(requests) == 1

    async def test_primary_path_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client, http_client = make_client(handler)
        async with http_client:
            with pytest.raises(NetworkError):
                await client.fetch_metadata("https://arxiv.org/abs/2506.01667")

    async def test_fallback_scrapes_abstract_page(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, text=ABS_PAGE)

        client, http_client = make_client(handler)
        async with http_client:
            metadata = await client.fetch_from_abstract_page("https://arxiv.org/abs/2506.01667")

        assert str(requests[0].url) == "https://arxiv.org/abs/2506.01667"
        assert metadata.id == "2506.01667"
        assert metadata.title == "Scraped Title & More"
        assert metadata.authors == ["Jane Doe", "Richard Roe"]
        assert metadata.code_links == ["https://github.com/acme/repo"]
        assert metadata.pdf_url == "https://arxiv.org/pdf/2506.01667.pdf"

    async def test_url_without_id_uses_fallback(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, text=ABS_PAGE)

        client, http_client = make_client(handler)
        async with http_client:
            metadata = await client.fetch_metadata("https://arxiv.org/")

        assert requests[0].url.host == "arxiv.org"
        assert requests[0].url.path == "/abs/"
        assert metadata.title == "Scraped Title & More"

    async def test_fallback_swallows_error_status(self):
        def handler(request):
            return httpx.Response(503, text="unavailable")

        client, http_client = make_client(handler)
        async with http_client:
            metadata = await client.fetch_from_abstract_page("https://arxiv.org/abs/2506.01667")

        assert metadata.id == "2506.01667"
        assert metadata.title is None
        assert metadata.authors == []
        assert metadata.abs_url == "https://arxiv.org/abs/2506.01667"

    async def test_fallback_swallows_network_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        client, http_client = make_client(handler)
        async with http_client:
            metadata = await client.fetch_from_abstract_page("https://arxiv.org/abs/2506.01667")

        assert metadata.title is None
        assert metadata.code_links == []

    async def test_fallback_keeps_partial_fields(self):
        def handler(request):
            return httpx.Response(200, text=ABS_PAGE)

        def explode(page, fields):
            fields['title'] = "Partial"
            raise RuntimeError("markup changed")

        client, http_client = make_client(handler)
        async with http_client:
            with patch('src.arxiv_digest.arxiv_client.scrape_abstract_page', side_effect=explode):
                metadata = await client.fetch_from_abstract_page("https://arxiv.org/abs/2506.01667")

        assert metadata.title == "Partial"
        assert metadata.abstract is None

    async def test_non_arxiv_url_makes_no_request(self):
        requests = []

        def handler(request):
            requests.append(request)
            return httpx.Response(200, text="")

        client, http_client = make_client(handler)
        async with http_client:
            metadata = await client.fetch_metadata("https://web.archive.org/web/2/https://example.com/paper")

        assert requests == []
        assert metadata.id is None
        assert metadata.authors == []

    async def test_domain_validation(self):
        def handler(request):
            return httpx.Response(200, text=ATOM_FIXTURE)

        client, http_client = make_client(handler, allowed_domains=["example.org"])
        async with http_client:
            with pytest.raises(ValidationError):
                await client.fetch_metadata("https://arxiv.org/abs/2506.01667")

    async def test_client_context_manager(self):
        async with ArxivClient(config=ArxivAPIConfig(), security_config=SecurityConfig()) as client:
            assert client.timeout == ArxivAPIConfig().timeout
        assert client._client.is_closed

    async def test_injected_client_is_not_closed(self):
        http_client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(200)))
        async with ArxivClient(
            config=ArxivAPIConfig(), security_config=SecurityConfig(), http_client=http_client
        ):
            pass
        assert not http_client.is_closed
        await http_client.aclose()


@pytest.mark.integration
@pytest.mark.asyncio
class TestArxivIntegration:
    """Integration tests that call the real arXiv API."""

    async def test_fetch_metadata_live(self):
        async with ArxivClient() as client:
            metadata = await client.fetch_metadata("https://arxiv.org/abs/1706.03762")
        assert metadata.title
        assert "attention" in metadata.title.lower()
        assert len(metadata.authors) > 0
