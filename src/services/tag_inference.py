"""Completion-provider client that infers tags for a bookmark."""
import asyncio
import json
import logging

from openai import APIError, AsyncOpenAI
from pydantic import ValidationError

from core.config import Settings
from schemas.bookmark import TaggableBookmark
from schemas.tagging import TagInferenceResponse
from services.exceptions import MalformedResponseError, ProviderCallError
from services.prompt_builder import build_prompt

logger = logging.getLogger(__name__)


def normalize_tags(tags: list[str]) -> list[str]:
    """Strip a single leading '#' from each tag. Nothing else is changed."""
    return [tag[1:] if tag.startswith("#") else tag for tag in tags]


def parse_tags_response(job_id: str, response: str | None) -> list[str]:
    """
    Parse the provider's JSON body into normalized tag names.

    Args:
        job_id: Job id, used in error messages.
        response: Raw message content returned by the provider.

    Returns:
        Tag names in the order the provider returned them.

    Raises:
        MalformedResponseError: If the body is empty, not JSON, or not {"tags": [str, ...]}.
    """
    if not response:
        raise MalformedResponseError(job_id, "got no message content from provider")
    try:
        parsed = TagInferenceResponse.model_validate(json.loads(response))
    except (json.JSONDecodeError, ValidationError) as e:
        raise MalformedResponseError(job_id, str(e)) from e
    return normalize_tags(parsed.tags)


class TagInferenceClient:
    """
    Tagging provider using OpenAI's chat API with JSON output.

    The SDK's own retries are disabled: a failed call fails the job, and
    redelivery is left to the queue.
    """

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-3.5-turbo-0125",
        timeout: float = 30.0,
        base_url: str | None = None,
        client: AsyncOpenAI | None = None,
    ) -> None:
        self.model = model
        self.timeout = timeout
        self._client = client or AsyncOpenAI(
            api_key=api_key,
            base_url=base_url,
            timeout=timeout,
            max_retries=0,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> "TagInferenceClient | None":
        """Build a client, or return None when no credential is configured."""
        if not settings.inference_enabled:
            return None
        return cls(
            api_key=settings.openai_api_key,
            model=settings.inference_model,
            timeout=settings.inference_timeout_seconds,
            base_url=settings.openai_base_url,
        )

    async def infer_tags(self, job_id: str, bookmark: TaggableBookmark) -> list[str]:
        """
        Ask the provider for tags describing a bookmark.

        Raises:
            EmptyContentError: If the bookmark has nothing to infer from (no call is made).
            UnsupportedContentError: If the content variant is unknown (no call is made).
            ProviderCallError: On network errors, API errors or timeout.
            MalformedResponseError: If the response is empty or has the wrong shape.
        """
        prompt = build_prompt(bookmark)

        try:
            async with asyncio.timeout(self.timeout):
                completion = await self._client.chat.completions.create(
                    model=self.model,
                    messages=[{"role": "system", "content": prompt}],
                    response_format={"type": "json_object"},
                )
        except TimeoutError as e:
            raise ProviderCallError(job_id, f"timed out after {self.timeout}s") from e
        except APIError as e:
            raise ProviderCallError(job_id, str(e)) from e

        if not completion.choices:
            raise MalformedResponseError(job_id, "got no choices from provider")
        tags = parse_tags_response(job_id, completion.choices[0].message.content)

        total_tokens = completion.usage.total_tokens if completion.usage else None
        logger.info(
            "[tagging][%s] Inferring tag for bookmark '%s' used %s tokens and inferred: %s",
            job_id,
            bookmark.id,
            total_tokens,
            tags,
        )
        return tags
