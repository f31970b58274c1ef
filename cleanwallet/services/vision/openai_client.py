"""
Vision-Language Extraction Client

Sends one screenshot or receipt photo to a hosted chat-completion
endpoint and returns the raw answer.

One image means one POST. Requests are never retried or batched; the
caller decides what to do with a failure. Non-2xx answers are returned
to the caller (ok=False) rather than raised, so the scan flow can report
the status and body to the user.

Prompts, keys and image payloads are never logged.
"""

import json
from typing import Optional, Sequence

import httpx

from cleanwallet.config import VisionSettings, get_settings
from cleanwallet.logger import get_logger
from cleanwallet.models.scan import PreparedImage, VisionResponse

logger = get_logger(__name__)


BASE_PROMPT = (
    "Look at this screenshot of a banking app or this receipt and extract "
    "every transaction. For each transaction give the date, the name and "
    "the amount. Return a JSON array in exactly this format: "
    '[{"date":"YYYY-MM-DD","name":"Transaction name","mount":NUMBER,'
    '"category":"Category"}]. '
    "The amount must be a number without symbols. If it is an expense the "
    "number is positive. If it is income the number is negative."
)

CATEGORY_PROMPT = (
    " Assign each transaction one of these categories, using the name "
    "exactly as written: {categories}. If none fits, use \"{fallback}\"."
)

PROMPT_SUFFIX = " IMPORTANT: return ONLY the JSON array with no additional text."


class VisionError(Exception):
    """Base exception for vision extraction errors."""
    pass


class VisionRequestError(VisionError):
    """The request never got an HTTP answer (network, timeout, DNS...)."""
    pass


class VisionAPIError(VisionError):
    """The endpoint answered with a non-2xx status."""

    def __init__(self, status: int, body: str):
        self.status = status
        self.body = body
        super().__init__(f"Vision API error ({status}): {body[:500]}")


class VisionResponseFormatError(VisionError):
    """The endpoint answered 2xx but not in chat-completion shape."""
    pass


def build_prompt(
    categories: Optional[Sequence[str]] = None,
    fallback_category: str = "Others",
) -> str:
    """Build the extraction prompt, listing allowed categories if given."""
    prompt = BASE_PROMPT
    if categories:
        prompt += CATEGORY_PROMPT.format(
            categories=", ".join(categories),
            fallback=fallback_category,
        )
    return prompt + PROMPT_SUFFIX


def extract_message_content(response_text: str) -> str:
    """
    Pull `choices[0].message.content` out of a chat-completion body.

    Raises:
        VisionResponseFormatError: If the body is not JSON or lacks the field
    """
    try:
        data = json.loads(response_text)
    except json.JSONDecodeError as e:
        raise VisionResponseFormatError(f"Response body is not JSON: {e}")

    choices = data.get("choices") if isinstance(data, dict) else None
    if not choices or not isinstance(choices, list):
        raise VisionResponseFormatError("Unexpected response format: no choices")

    message = choices[0].get("message") if isinstance(choices[0], dict) else None
    if not isinstance(message, dict) or not isinstance(message.get("content"), str):
        raise VisionResponseFormatError("Unexpected response format: no message content")

    return message["content"]


class VisionClient:
    """
    Chat-completion client for receipt extraction.

    Pass `http_client` to reuse a connection pool (or a mock transport in
    tests). Without it a short-lived client is opened per request, which
    keeps the client usable across event loops.
    """

    def __init__(
        self,
        settings: Optional[VisionSettings] = None,
        http_client: Optional[httpx.AsyncClient] = None,
        fallback_category: Optional[str] = None,
    ):
        self._settings = settings or get_settings().vision
        self._http_client = http_client
        self._fallback_category = fallback_category or get_settings().app.default_category

    @property
    def endpoint(self) -> str:
        return f"{self._settings.base_url}/chat/completions"

    def _headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._settings.api_key}",
        }

    def _timeout(self) -> httpx.Timeout:
        return httpx.Timeout(
            connect=10.0,
            read=self._settings.timeout_seconds,
            write=30.0,
            pool=10.0,
        )

    def build_payload(
        self,
        image: PreparedImage,
        categories: Optional[Sequence[str]] = None,
    ) -> dict:
        """Build the chat-completion request body."""
        return {
            "model": self._settings.model,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "text",
                            "text": build_prompt(categories, self._fallback_category),
                        },
                        {
                            "type": "image_url",
                            "image_url": {"url": image.data_url},
                        },
                    ],
                }
            ],
            "max_tokens": self._settings.max_tokens,
        }

    async def complete(
        self,
        image: PreparedImage,
        categories: Optional[Sequence[str]] = None,
    ) -> VisionResponse:
        """
        Send one image for extraction.

        Returns:
            VisionResponse with the HTTP status and raw body

        Raises:
            VisionRequestError: If no HTTP answer was received
        """
        payload = self.build_payload(image, categories)
        logger.info(
            "vision_request_started",
            model=self._settings.model,
            source=image.source,
            image_bytes=image.size_bytes,
            category_count=len(categories or []),
        )

        try:
            if self._http_client is not None:
                response = await self._http_client.post(
                    self.endpoint,
                    json=payload,
                    headers=self._headers(),
                    timeout=self._timeout(),
                )
            else:
                async with httpx.AsyncClient(timeout=self._timeout()) as client:
                    response = await client.post(
                        self.endpoint,
                        json=payload,
                        headers=self._headers(),
                    )
        except httpx.TimeoutException as e:
            logger.warning("vision_request_timeout", source=image.source)
            raise VisionRequestError(f"Vision request timed out: {e}")
        except httpx.RequestError as e:
            logger.error("vision_request_failed", source=image.source, error=str(e))
            raise VisionRequestError(f"Vision request failed: {e}")

        result = VisionResponse(
            status=response.status_code,
            ok=response.is_success,
            text=response.text,
        )
        logger.info(
            "vision_response_received",
            source=image.source,
            status=result.status,
            ok=result.ok,
            body_chars=len(result.text),
        )
        return result
