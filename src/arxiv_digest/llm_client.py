"""Client for the Gemini generateContent endpoint."""

import time
from typing import Any, Dict, Optional

import httpx

from .config import LLMConfig, SecurityConfig, get_settings
from .exceptions import ConfigurationError, LLMAPIError, NetworkError
from .logging_config import get_logger, log_api_request, log_api_response, log_error
from .utils import validate_domain

logger = get_logger(__name__)


def extract_candidate_text(payload: Any) -> str:
    """Return ``candidates[0].content.parts[0].text`` or '' when any step is missing."""
    try:
        text = payload['candidates'][0]['content']['parts'][0]['text']
    except (KeyError, IndexError, TypeError):
        return ''
    return text if isinstance(text, str) else ''


class GeminiClient:
    """Sends a single prompt to the generation endpoint and returns the raw text."""

    def __init__(
        self,
        config: Optional[LLMConfig] = None,
        security_config: Optional[SecurityConfig] = None,
        api_key: Optional[str] = None,
        http_client: Optional[httpx.AsyncClient] = None,
    ):
        """
        Initialize the generation client.

        Args:
            config: LLM settings (defaults to the global settings)
            security_config: Security settings (defaults to the global settings)
            api_key: API key (overrides config)
            http_client: Pre-built HTTP client; the caller keeps ownership
        """
        if config is None or security_config is None:
            settings = get_settings()
            config = config or settings.llm
            security_config = security_config or settings.security
        self.config = config
        self.security_config = security_config

        if api_key is None and config.api_key is not None:
            api_key = config.api_key.get_secret_value()
        self._api_key = api_key

        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=httpx.Timeout(self.config.timeout))

    @property
    def endpoint(self) -> str:
        return f"{self.config.base_url}/models/{self.config.model}:generateContent"

    async def close(self):
        """Close the HTTP client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def generate(self, prompt: str) -> str:
        """
        Run one generation request.

        Args:
            prompt: Prompt text

        Returns:
            The model's raw text output ('' when the response carries none)

        Raises:
            ConfigurationError: If no API key is configured
            LLMAPIError: For non-success status codes
            NetworkError: For transport failures
        """
        if not self._api_key:
            raise ConfigurationError("No API key configured for the generation endpoint", config_key="llm.api_key")

        url = self.endpoint
        validate_domain(url, self.security_config.allowed_domains)
        body: Dict[str, Any] = {"contents": [{"parts": [{"text": prompt}]}]}

        start_time = time.time()
        log_api_request(url, method='POST', model=self.config.model, prompt_chars=len(prompt))
        try:
            response = await self._client.post(
                url,
                json=body,
                headers={"x-goog-api-key": self._api_key},
            )
        except httpx.HTTPError as e:
            log_error(e, context={'url': url})
            raise NetworkError(f"HTTP error: {str(e)}", original_error=e)

        log_api_response(url, response.status_code, time.time() - start_time)

        if not response.is_success:
            raise LLMAPIError(
                f"Gemini error {response.status_code}: {response.text}",
                status_code=response.status_code,
                response_text=response.text,
            )

        try:
            payload = response.json()
        except ValueError:
            logger.warning("Generation response body is not JSON")
            return ''
        text = extract_candidate_text(payload)
        logger.info(f"Generation returned {len(text)} characters")
        return text
