from __future__ import annotations

import re
from dataclasses import dataclass

from bs4 import BeautifulSoup

NOISE_TAGS = ["script", "noscript", "style", "link", "svg", "img", "video", "iframe", "canvas"]
_HEADING = re.compile(r"^h([1-6])$")
_SPACES = re.compile(r"[ \t\xa0]+")


@dataclass(slots=True)
class PageText:
    title: str
    content: str


def html_to_text(html: str) -> PageText:
    """Readable text of a page: noise tags dropped, ``article``/``main`` preferred, headings as ``#``."""
    soup = BeautifulSoup(html, "html.parser")
    title = soup.title.get_text(strip=True) if soup.title else ""
    for tag in soup.find_all(NOISE_TAGS):
        tag.decompose()
    for tag in soup.select(".reflist"):
        tag.decompose()

    root = soup.find("article") or soup.find("main") or soup.body or soup
    for heading in root.find_all(_HEADING):
        level = int(heading.name[1])
        heading.string = f"{'#' * level} {heading.get_text(' ', strip=True)}"

    lines = [_SPACES.sub(" ", line).strip() for line in root.get_text("\n", strip=True).splitlines()]
    return PageText(title=title, content="\n".join(line for line in lines if line))
