"""
Ollama inference API client implementation.
"""

import logging
from typing import Optional

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from ..config import LLMConfig

logger = logging.getLogger(__name__)


class OllamaError(Exception):
    """Base exception for Ollama client errors."""

    pass


class OllamaAPIError(OllamaError):
    """API returned an error response."""

    def __init__(self, status_code: int, message: str, response_body: Optional[str] = None):
        self.status_code = status_code
        self.message = message
        self.response_body = response_body
        super().__init__(f"Ollama API error {status_code}: {message}")


class OllamaConnectionError(OllamaError):
    """Failed to connect to Ollama."""

    pass


class OllamaClient:
    """
    Client for a local Ollama server.

    Features:
    - Health probe (GET /api/tags), never retried
    - Non-streaming JSON-mode generation (POST /api/generate)
    - Automatic retry with backoff for transient generation failures
      (connection errors and 429/5xx; a read timeout is final, so a slow
      generation costs at most one timeout)
    """

    DEFAULT_TIMEOUT = 120
    HEALTH_TIMEOUT = 10

    def __init__(
        self,
        base_url: str,
        model: str,
        timeout: int = DEFAULT_TIMEOUT,
        max_retries: int = 2,
        backoff_factor: float = 0.5,
    ):
        """
        Initialize Ollama client.

        Args:
            base_url: Ollama server URL (e.g., "http://localhost:11434")
            model: Model name used for every generate call
            timeout: Per-attempt generation timeout in seconds
            max_retries: Maximum retry attempts for transient failures
            backoff_factor: Backoff factor for retries
        """
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout

        self.session = requests.Session()
        self.session.headers.update({"Accept": "application/json"})

        retry_strategy = Retry(
            total=max_retries,
            backoff_factor=backoff_factor,
            read=0,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET", "POST"],
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        self.session.mount("http://", adapter)
        self.session.mount("https://", adapter)

        # Separate session without retries so the health probe fails fast.
        self._probe_session = requests.Session()
        self._probe_session.headers.update({"Accept": "application/json"})

    @classmethod
    def from_config(cls, config: LLMConfig) -> "OllamaClient":
        return cls(
            base_url=config.ollama_url,
            model=config.model,
            timeout=config.timeout_seconds,
            max_retries=config.max_retries,
            backoff_factor=config.backoff_factor,
        )

    def _request(
        self,
        method: str,
        endpoint: str,
        json_data: Optional[dict] = None,
        session: Optional[requests.Session] = None,
        timeout: Optional[int] = None,
    ) -> requests.Response:
        """Make an API request with error handling."""
        url = f"{self.base_url}{endpoint}"
        session = session or self.session

        try:
            response = session.request(
                method=method,
                url=url,
                json=json_data,
                timeout=timeout or self.timeout,
            )
        except requests.exceptions.ConnectionError as e:
            raise OllamaConnectionError(
                f"Failed to connect to Ollama at {self.base_url}: {e}"
            ) from e
        except requests.exceptions.Timeout as e:
            raise OllamaConnectionError(f"Request to Ollama timed out: {e}") from e
        except requests.exceptions.RequestException as e:
            raise OllamaError(f"Request failed: {e}") from e

        if not response.ok:
            raise OllamaAPIError(
                status_code=response.status_code,
                message=response.reason or "",
                response_body=response.text,
            )

        return response

    def health_check(self) -> None:
        """
        Verify the server is reachable.

        Raises:
            OllamaConnectionError: server unreachable or timed out
            OllamaAPIError: server answered with a non-2xx status
        """
        self._request(
            "GET", "/api/tags", session=self._probe_session, timeout=self.HEALTH_TIMEOUT
        )

    def generate(self, prompt: str) -> str:
        """
        Run one non-streaming, JSON-mode completion.

        Args:
            prompt: Full prompt text

        Returns:
            The model's raw "response" string

        Raises:
            OllamaError: transport failure, non-2xx status, or malformed body
        """
        payload = {
            "model": self.model,
            "prompt": prompt,
            "stream": False,
            "format": "json",
        }

        logger.debug(f"Calling Ollama model {self.model} at {self.base_url}")
        response = self._request("POST", "/api/generate", json_data=payload)

        try:
            data = response.json()
        except ValueError as e:
            raise OllamaError(f"Ollama returned a non-JSON body: {e}") from e

        if not isinstance(data, dict) or not isinstance(data.get("response"), str):
            raise OllamaError("Ollama response has no 'response' field")

        return data["response"]
