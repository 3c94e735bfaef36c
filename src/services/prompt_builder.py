"""Build the tagging prompt sent to the completion provider."""
from uuid import UUID

from schemas.bookmark import LinkContent, TaggableBookmark, TextContent
from services.exceptions import EmptyContentError, UnsupportedContentError

# Link content longer than this many space-separated words is cut down before
# it goes into the prompt. Only the words after this index are kept.
MAX_CONTENT_WORDS = 2000

PROMPT_BASE = """
I'm building a read-it-later app and I need your help with automatic tagging.
Please analyze the text after the sentence "CONTENT START HERE:" and suggest relevant tags that describe its key themes, topics, and main ideas.
Aim for a variety of tags, including broad categories, specific keywords, and potential sub-genres. If it's a famous website
you may also include a tag for the website. Tags should be lowercases and don't contain spaces. If the tag is not generic enough, don't
include it. Aim for 3-5 tags. If there are no good tags, don't emit any. The content can include text for cookie consent and privacy policy, ignore those while tagging.
You must respond in JSON with the key "tags" and the value is list of tags.
CONTENT START HERE:
"""


def truncate_content(content: str) -> str:
    """
    Apply the word limit to link content.

    Words are split on single spaces. When there are more than MAX_CONTENT_WORDS,
    the first MAX_CONTENT_WORDS are dropped and the remainder is kept.
    """
    words = content.split(" ")
    if len(words) > MAX_CONTENT_WORDS:
        return " ".join(words[MAX_CONTENT_WORDS:])
    return content


def _build_link_prompt(bookmark_id: UUID, link: LinkContent) -> str:
    if not link.description and not link.content:
        raise EmptyContentError(bookmark_id)

    content = truncate_content(link.content) if link.content else ""
    return f"""
{PROMPT_BASE}
URL: {link.url}
Title: {link.title or ""}
Description: {link.description or ""}
Content: {content}
  """


def _build_text_prompt(text: TextContent) -> str:
    return f"""
{PROMPT_BASE}
{text.text}
  """


def build_prompt(bookmark: TaggableBookmark) -> str:
    """
    Build the provider prompt for a bookmark.

    Args:
        bookmark: The bookmark with its content variant loaded.

    Returns:
        The prompt text.

    Raises:
        EmptyContentError: If a link bookmark has no description and no content.
        UnsupportedContentError: If the content variant is not link or text.
    """
    content = bookmark.content
    if isinstance(content, LinkContent):
        return _build_link_prompt(bookmark.id, content)
    if isinstance(content, TextContent):
        return _build_text_prompt(content)
    raise UnsupportedContentError(bookmark.id, type(content).__name__)
