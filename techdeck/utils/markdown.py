"""
Markdown helpers for heading-tagged model output.

Extraction side: H1 title, H2 sections by exact heading, bullet lists and
comma-separated lines. Rendering side: the Challenge and Feedback Markdown
consumed by the email renderer, written so the extractors read it back.
"""

from typing import List, Optional
import re

from techdeck.models.records import Challenge, Feedback

H1_RE = re.compile(r"^#[ \t]+(.+?)[ \t]*#*[ \t]*$", re.MULTILINE)
BULLET_RE = re.compile(r"^(?:[-*+]|\d+[.)])\s+")


def extract_h1(markdown: str) -> Optional[str]:
    """Text of the first H1 heading, or None."""
    match = H1_RE.search(markdown)
    if not match:
        return None
    title = match.group(1).strip()
    return title or None


def extract_h2(markdown: str, heading: str) -> Optional[str]:
    """
    Body of the H2 section whose heading text equals `heading`.

    The body runs until the next H2 heading or the end of the text (lines
    starting with a single `#` are kept, they are usually code comments).
    Matching is case-insensitive on the exact heading text; `## Topics:` and
    `## **Topics**` are tolerated since models decorate headings.

    Returns:
        Trimmed section body, or None if the heading is absent or empty
    """
    pattern = re.compile(
        rf"^##[ \t]+\**{re.escape(heading)}\**[ \t]*:?[ \t]*$\n?(.*?)(?=^##[ \t]|\Z)",
        re.IGNORECASE | re.MULTILINE | re.DOTALL
    )
    match = pattern.search(markdown)
    if not match:
        return None
    body = match.group(1).strip()
    return body or None


def parse_list(content: Optional[str]) -> List[str]:
    """Split a section body into items, stripping `-`, `*`, `+` and `1.` markers."""
    if not content:
        return []
    items = []
    for line in content.split("\n"):
        item = BULLET_RE.sub("", line.strip()).strip()
        if item:
            items.append(item)
    return items


def parse_comma_separated(content: Optional[str]) -> List[str]:
    """Split a single-line (or bulleted) comma-separated section into items."""
    if not content:
        return []
    items = []
    for line in parse_list(content):
        items.extend(part.strip() for part in line.split(","))
    return [item for item in items if item]


def _bullets(items: List[str]) -> str:
    return "\n".join(f"- {item}" for item in items)


def render_challenge_markdown(challenge: Challenge) -> str:
    """Challenge Markdown for downstream renderers (optional sections only when present)."""
    lines = [
        f"# {challenge.title}",
        "",
        "## Description",
        challenge.description,
        "",
        "## Topics",
        ", ".join(challenge.topics),
    ]

    if challenge.requirements:
        lines += ["", "## Requirements", _bullets(challenge.requirements)]
    if challenge.examples:
        # MCQ choices travel as options
        heading = "## Options" if challenge.type.value == "mcq" else "## Examples"
        lines += ["", heading, _bullets(challenge.examples)]
    if challenge.hints:
        lines += ["", "## Hints", _bullets(challenge.hints)]

    return "\n".join(lines) + "\n"


def render_feedback_markdown(feedback: Feedback) -> str:
    """Feedback Markdown for downstream renderers."""
    lines = []
    for heading, items in (
        ("## Strengths", feedback.strengths),
        ("## Weaknesses", feedback.weaknesses),
        ("## Suggestions", feedback.suggestions),
    ):
        lines += [heading, _bullets(items) if items else "- None noted", ""]

    if feedback.score is not None:
        lines += ["## Score", f"{feedback.score}/100", ""]

    lines += ["## Improvement Path", feedback.improvement_path]
    return "\n".join(lines) + "\n"
