import html
from typing import Optional

import bleach


def clean_text(value: Optional[str]) -> str:
    """Strip markup and surrounding whitespace from free text.

    bleach escapes the characters it leaves behind; the result is stored
    as plain text and escaped on output, so entities are decoded again.
    """
    stripped = bleach.clean((value or '').strip(), tags=set(), strip=True)
    return html.unescape(stripped).strip()


def clean_optional(value: Optional[str]) -> Optional[str]:
    cleaned = clean_text(value)
    return cleaned or None
