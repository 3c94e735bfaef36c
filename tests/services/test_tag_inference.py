"""
Tests for the completion-provider tag inference client.

The OpenAI SDK client is replaced with a mock; no network calls are made.
"""
import asyncio
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock
from uuid import uuid4

import httpx
import pytest
from openai import APIConnectionError, APITimeoutError

from core.config import Settings
from schemas.bookmark import LinkContent, TaggableBookmark, TextContent
from services.exceptions import EmptyContentError, MalformedResponseError, ProviderCallError
from services.tag_inference import (
    TagInferenceClient,
    normalize_tags,
    parse_tags_response,
)

OPENAI_REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def make_completion(content: str | None, total_tokens: int = 42) -> SimpleNamespace:
    """Shape of a chat completion as far as the client reads it."""
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=SimpleNamespace(total_tokens=total_tokens),
    )


def make_openai_mock(**create_kwargs: object) -> MagicMock:
    """AsyncOpenAI stand-in whose chat.completions.create is an AsyncMock."""
    openai_client = MagicMock()
    openai_client.chat.completions.create = AsyncMock(**create_kwargs)
    return openai_client


@pytest.fixture
def link_bookmark() -> TaggableBookmark:
    """A link bookmark with a description."""
    return TaggableBookmark(
        id=uuid4(),
        user_id=uuid4(),
        content=LinkContent(
            url="https://example.com/rust",
            description="A great article about rust programming",
        ),
    )


# =============================================================================
# Response parsing
# =============================================================================


class TestParseTagsResponse:
    """Tests for parse_tags_response and normalize_tags."""

    def test__parse_tags_response__strips_leading_hashtag(self) -> None:
        """'#news' becomes 'news'; other tags are untouched."""
        assert parse_tags_response("job-1", '{"tags": ["#news", "tech"]}') == ["news", "tech"]

    def test__normalize_tags__strips_only_one_hashtag(self) -> None:
        """Only the first leading '#' is removed, and nothing else changes."""
        assert normalize_tags(["##double", "Mixed Case", "mid#dle"]) == [
            "#double",
            "Mixed Case",
            "mid#dle",
        ]

    def test__parse_tags_response__preserves_order_and_duplicates(self) -> None:
        """Deduplication happens in the tag store, not here."""
        assert parse_tags_response("job-1", '{"tags": ["b", "a", "b"]}') == ["b", "a", "b"]

    def test__parse_tags_response__empty_tag_list(self) -> None:
        """No good tags is a valid answer."""
        assert parse_tags_response("job-1", '{"tags": []}') == []

    def test__parse_tags_response__ignores_extra_keys(self) -> None:
        """Only the tags key matters."""
        assert parse_tags_response("job-1", '{"tags": ["a"], "reason": "x"}') == ["a"]

    @pytest.mark.parametrize(
        "response",
        [
            "not json",
            '{"tags": "rust"}',
            '{"tags": [1, 2]}',
            '{"labels": ["rust"]}',
            '["rust"]',
            "null",
        ],
    )
    def test__parse_tags_response__rejects_bad_shapes(self, response: str) -> None:
        """Invalid JSON or the wrong shape is a malformed response."""
        with pytest.raises(MalformedResponseError, match=r"\[tagging\]\[job-1\]"):
            parse_tags_response("job-1", response)

    @pytest.mark.parametrize("response", [None, ""])
    def test__parse_tags_response__rejects_missing_content(self, response: str | None) -> None:
        """No message content at all is a malformed response."""
        with pytest.raises(MalformedResponseError, match="no message content"):
            parse_tags_response("job-1", response)


# =============================================================================
# Provider calls
# =============================================================================


class TestInferTags:
    """Tests for TagInferenceClient.infer_tags."""

    async def test__infer_tags__sends_prompt_as_json_request(
        self, link_bookmark: TaggableBookmark,
    ) -> None:
        """One call with the built prompt, the configured model and JSON output."""
        openai_client = make_openai_mock(
            return_value=make_completion(json.dumps({"tags": ["rust", "#programming"]})),
        )
        client = TagInferenceClient(api_key="sk-test", model="test-model", client=openai_client)

        tags = await client.infer_tags("job-1", link_bookmark)

        assert tags == ["rust", "programming"]
        openai_client.chat.completions.create.assert_awaited_once()
        kwargs = openai_client.chat.completions.create.await_args.kwargs
        assert kwargs["model"] == "test-model"
        assert kwargs["response_format"] == {"type": "json_object"}
        assert len(kwargs["messages"]) == 1
        assert kwargs["messages"][0]["role"] == "system"
        assert "A great article about rust programming" in kwargs["messages"][0]["content"]

    async def test__infer_tags__text_bookmark(self) -> None:
        """Text bookmarks are tagged from their text."""
        openai_client = make_openai_mock(return_value=make_completion('{"tags": ["notes"]}'))
        client = TagInferenceClient(api_key="sk-test", client=openai_client)
        bookmark = TaggableBookmark(
            id=uuid4(), user_id=uuid4(), content=TextContent(text="my snippet"),
        )

        assert await client.infer_tags("job-2", bookmark) == ["notes"]
        prompt = openai_client.chat.completions.create.await_args.kwargs["messages"][0]["content"]
        assert "my snippet" in prompt

    async def test__infer_tags__empty_link_never_calls_provider(self) -> None:
        """The prompt fails first, so the provider is not contacted."""
        openai_client = make_openai_mock(return_value=make_completion('{"tags": []}'))
        client = TagInferenceClient(api_key="sk-test", client=openai_client)
        bookmark = TaggableBookmark(
            id=uuid4(),
            user_id=uuid4(),
            content=LinkContent(url="https://example.com", title="No body"),
        )

        with pytest.raises(EmptyContentError):
            await client.infer_tags("job-3", bookmark)
        openai_client.chat.completions.create.assert_not_awaited()

    async def test__infer_tags__invalid_json_is_malformed(
        self, link_bookmark: TaggableBookmark,
    ) -> None:
        """A body that isn't JSON fails the job."""
        openai_client = make_openai_mock(return_value=make_completion("Sure! Here are tags:"))
        client = TagInferenceClient(api_key="sk-test", client=openai_client)

        with pytest.raises(MalformedResponseError):
            await client.infer_tags("job-4", link_bookmark)

    async def test__infer_tags__no_choices_is_malformed(
        self, link_bookmark: TaggableBookmark,
    ) -> None:
        """An empty choices list is treated like missing content."""
        completion = SimpleNamespace(choices=[], usage=None)
        client = TagInferenceClient(
            api_key="sk-test", client=make_openai_mock(return_value=completion),
        )

        with pytest.raises(MalformedResponseError):
            await client.infer_tags("job-5", link_bookmark)

    async def test__infer_tags__missing_usage_is_fine(
        self, link_bookmark: TaggableBookmark,
    ) -> None:
        """Token usage is only logged; its absence doesn't matter."""
        completion = make_completion('{"tags": ["a"]}')
        completion.usage = None
        client = TagInferenceClient(
            api_key="sk-test", client=make_openai_mock(return_value=completion),
        )

        assert await client.infer_tags("job-6", link_bookmark) == ["a"]

    async def test__infer_tags__connection_error_is_provider_error(
        self, link_bookmark: TaggableBookmark,
    ) -> None:
        """SDK errors are wrapped with the job id and keep their cause."""
        openai_client = make_openai_mock(side_effect=APIConnectionError(request=OPENAI_REQUEST))
        client = TagInferenceClient(api_key="sk-test", client=openai_client)

        with pytest.raises(ProviderCallError, match=r"\[tagging\]\[job-7\]") as exc_info:
            await client.infer_tags("job-7", link_bookmark)
        assert isinstance(exc_info.value.__cause__, APIConnectionError)

    async def test__infer_tags__sdk_timeout_is_provider_error(
        self, link_bookmark: TaggableBookmark,
    ) -> None:
        """The SDK's own timeout is a provider error too."""
        openai_client = make_openai_mock(side_effect=APITimeoutError(request=OPENAI_REQUEST))
        client = TagInferenceClient(api_key="sk-test", client=openai_client)

        with pytest.raises(ProviderCallError):
            await client.infer_tags("job-8", link_bookmark)

    async def test__infer_tags__slow_provider_times_out(
        self, link_bookmark: TaggableBookmark,
    ) -> None:
        """A call that outlives the timeout fails instead of hanging the worker."""

        async def never_answers(**_: object) -> None:
            await asyncio.sleep(10)

        openai_client = make_openai_mock(side_effect=never_answers)
        client = TagInferenceClient(api_key="sk-test", timeout=0.05, client=openai_client)

        with pytest.raises(ProviderCallError, match="timed out"):
            await client.infer_tags("job-9", link_bookmark)


class TestFromSettings:
    """Tests for building the client from configuration."""

    def test__from_settings__none_without_credential(self) -> None:
        """No credential, no client: the worker skips inference."""
        settings = Settings(
            _env_file=None, database_url="postgresql+asyncpg://test", OPENAI_API_KEY="",
        )
        assert TagInferenceClient.from_settings(settings) is None

    def test__from_settings__uses_configured_model_and_timeout(self) -> None:
        """Model and timeout are taken from settings."""
        settings = Settings(
            _env_file=None,
            database_url="postgresql+asyncpg://test",
            OPENAI_API_KEY="sk-test",
            INFERENCE_MODEL="gpt-4.1-mini",
            INFERENCE_TIMEOUT_SECONDS="7",
        )
        client = TagInferenceClient.from_settings(settings)
        assert client is not None
        assert client.model == "gpt-4.1-mini"
        assert client.timeout == 7.0
