"""Text normalization applied before embedding."""

import re

IMAGE_REF_PATTERN = re.compile(r'\[Image "[^"]*"\]')
MARKDOWN_LINK_PATTERN = re.compile(r'\[([^\]]+)\]\([^\)]+\)')
URL_PATTERN = re.compile(
    r'http[s]?://(?:[a-zA-Z]|[0-9]|[$-_@.&+]|[!*\(\),]|(?:%[0-9a-fA-F][0-9a-fA-F]))+'
)
EMOJI_PATTERN = re.compile(
    '[\U0001F600-\U0001F64F\U0001F300-\U0001F5FF\U0001F680-\U0001F6FF\u2600-\u26FF\u2700-\u27BF]'
)


def clean_text(text) -> str:
    """Strip image references, links, bare URLs and emoji from ``text``.

    Markdown links keep their anchor text. Non-string input yields ``""``.
    """
    if not isinstance(text, str):
        return ""

    text = IMAGE_REF_PATTERN.sub("", text)
    text = MARKDOWN_LINK_PATTERN.sub(r"\1", text)
    text = URL_PATTERN.sub("", text)
    text = EMOJI_PATTERN.sub("", text)
    return text
