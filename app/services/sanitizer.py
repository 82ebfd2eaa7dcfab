# app/services/sanitizer.py
from typing import Optional

from bs4 import BeautifulSoup, Comment

# elements whose text content is code, not prose
DROP_ELEMENTS = ["script", "style", "template", "noscript"]


def _strip_once(text: str) -> str:
    soup = BeautifulSoup(text, "html.parser")
    for el in soup.find_all(DROP_ELEMENTS):
        el.decompose()
    for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
        comment.extract()
    return soup.get_text()


def sanitize_text(raw: Optional[str]) -> str:
    """
    Strip markup from user text; keeps the plain words. Never raises.

    Parsing repeats until the text stops changing, so markup that only
    appears once an inner tag (or an entity) is removed is stripped too.
    """
    if not raw:
        return ""
    text = str(raw)
    while True:
        stripped = _strip_once(text)
        if len(stripped) >= len(text):
            return stripped.strip()
        text = stripped
