# agrimarket/services/ai_client.py
import requests

from agrimarket.domain.errors import Unavailable, RateLimited
from agrimarket.utils.logging import get_logger
from agrimarket.utils.retry import http_retry
from agrimarket.utils.settings import AI_API_KEY, AI_MODEL, AI_BASE_URL, AI_TIMEOUT_SECONDS

logger = get_logger(__name__)

QUOTA_RETRY_AFTER = 3600
OVERLOAD_RETRY_AFTER = 60


class AIClient:
    """
    Text in, text out over the generative model's REST endpoint.

    Provider failures are mapped onto Unavailable / RateLimited so the API
    layer can answer 503 / 429 with a retry hint.
    """

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        timeout: int | None = None,
    ):
        self.api_key = api_key if api_key is not None else AI_API_KEY
        self.model = model or AI_MODEL
        self.base_url = (base_url or AI_BASE_URL).rstrip("/")
        self.timeout = timeout or AI_TIMEOUT_SECONDS

    @property
    def available(self) -> bool:
        return bool(self.api_key)

    def generate(self, prompt: str) -> str:
        if not self.available:
            raise Unavailable("AI services are not available")

        try:
            resp = self._post(prompt)
        except requests.Timeout:
            logger.warning(f"AI request to {self.model} timed out after {self.timeout}s")
            raise Unavailable(
                "The AI model did not respond in time. Please try again in a few minutes.",
                retry_after=OVERLOAD_RETRY_AFTER,
            )
        except requests.ConnectionError as e:
            logger.warning(f"AI provider unreachable: {e}")
            raise Unavailable("AI services are not available", retry_after=OVERLOAD_RETRY_AFTER)

        if resp.status_code >= 400:
            self._raise_for(resp)

        try:
            payload = resp.json()
        except ValueError:
            logger.warning(f"AI provider sent a non-JSON reply ({resp.status_code})")
            raise Unavailable("The AI model returned no content")
        return self._text(payload)

    @http_retry()
    def _post(self, prompt: str) -> requests.Response:
        url = f"{self.base_url}/models/{self.model}:generateContent"
        logger.info(f"AIClient POST {url} ({len(prompt)} chars)")

        return requests.post(
            url,
            params={"key": self.api_key},
            json={"contents": [{"parts": [{"text": prompt}]}]},
            timeout=self.timeout,
        )

    def _raise_for(self, resp: requests.Response) -> None:
        body = resp.text.lower()
        logger.warning(f"AI provider answered {resp.status_code}")

        if resp.status_code == 429 or "quota" in body:
            raise RateLimited(
                "AI service quota exceeded. Please try again later.",
                retry_after=QUOTA_RETRY_AFTER,
            )
        if resp.status_code == 503 or "overloaded" in body:
            raise Unavailable(
                "The AI model is currently overloaded. Please try again in a few minutes.",
                retry_after=OVERLOAD_RETRY_AFTER,
            )
        raise Unavailable("Failed to generate content with the AI model")

    @staticmethod
    def _text(payload: dict) -> str:
        try:
            parts = payload["candidates"][0]["content"]["parts"]
        except (KeyError, IndexError, TypeError):
            raise Unavailable("The AI model returned no content")
        return "".join(p.get("text", "") for p in parts)
