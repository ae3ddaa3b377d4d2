# communicator/utils/slack_formatter.py
"""Convert generated text into Slack mrkdwn and Block Kit blocks.

Generated replies arrive either as Block Kit JSON (summaries) or as loosely
Markdown-formatted text (conversation, mentions). This module handles both:

- parse_blocks: detect a Block Kit payload in a reply
- markdown_to_mrkdwn: inline Markdown -> Slack mrkdwn
- text_to_blocks: line-oriented conversion into section blocks
"""

import json
import re
from typing import Any

# Slack rejects section text longer than this
SECTION_TEXT_LIMIT = 3000
# Slack rejects messages with more blocks than this
MAX_BLOCKS = 50

BULLET = "•"


def parse_blocks(text: str) -> list[dict[str, Any]] | None:
    """Return Block Kit blocks if text is a Block Kit JSON payload.

    Accepts either a bare JSON array of blocks or an object with a
    "blocks" key.

    Args:
        text: Reply text that may contain JSON.

    Returns:
        List of block dicts, or None if text is not a block payload.
    """
    if not text:
        return None
    stripped = text.strip()
    if not stripped or stripped[0] not in "[{":
        return None

    try:
        payload = json.loads(stripped)
    except json.JSONDecodeError:
        return None

    if isinstance(payload, dict):
        payload = payload.get("blocks")
    if not isinstance(payload, list) or not payload:
        return None
    if not all(isinstance(block, dict) and "type" in block for block in payload):
        return None
    return payload


def markdown_to_mrkdwn(text: str) -> str:
    """Convert inline Markdown to Slack mrkdwn.

    Handles links, bold and strikethrough. Code spans are left untouched.

    Args:
        text: Markdown text.

    Returns:
        Slack mrkdwn formatted text.
    """
    if not text:
        return text

    codes: list[str] = []

    def save_code(match: re.Match) -> str:
        codes.append(match.group(0))
        return f"\x00CODE{len(codes) - 1}\x00"

    result = re.sub(r"`[^`]+`", save_code, text)

    # [text](url) -> <url|text>
    result = re.sub(r"\[([^\]]+)\]\(([^)]+)\)", r"<\2|\1>", result)
    # **text** -> *text*
    result = re.sub(r"\*\*([^*]+)\*\*", r"*\1*", result)
    # ~~text~~ -> ~text~
    result = re.sub(r"~~([^~]+)~~", r"~\1~", result)

    for i, code in enumerate(codes):
        result = result.replace(f"\x00CODE{i}\x00", code)
    return result


def _section(text: str) -> dict[str, Any]:
    return {
        "type": "section",
        "text": {"type": "mrkdwn", "text": text[:SECTION_TEXT_LIMIT]},
    }


def text_to_blocks(text: str) -> list[dict[str, Any]]:
    """Convert plain or Markdown text into Slack section blocks.

    One section block per non-empty line:
    - "# Heading" lines become bold text
    - fence lines (```) are kept verbatim
    - "-" / "*" bullet lines get a bullet character
    - everything else is converted with markdown_to_mrkdwn

    Output is capped at MAX_BLOCKS; overflow lines are merged into the last block.

    Args:
        text: Reply text.

    Returns:
        List of section blocks (empty if text has no content).
    """
    lines: list[str] = []
    for raw_line in (text or "").split("\n"):
        line = raw_line.strip()
        if not line:
            continue

        if line.startswith("```"):
            lines.append(line)
        elif line.startswith("#"):
            lines.append("*" + line.lstrip("# ").strip() + "*")
        elif re.match(r"^[-*]\s+", line):
            bullet = re.sub(r"^[-*]\s+", "", line)
            lines.append(f"{BULLET} {markdown_to_mrkdwn(bullet)}")
        else:
            lines.append(markdown_to_mrkdwn(line))

    if len(lines) > MAX_BLOCKS:
        head = lines[: MAX_BLOCKS - 1]
        tail = "\n".join(lines[MAX_BLOCKS - 1 :])
        lines = head + [tail]

    return [_section(line) for line in lines]


def blocks_fallback_text(blocks: list[dict[str, Any]]) -> str:
    """Build the plain-text fallback for a list of blocks.

    Slack uses the top-level text for notifications; this collects the
    text of header, section and context blocks.

    Args:
        blocks: Block Kit blocks.

    Returns:
        Newline-joined text content of the blocks.
    """
    parts: list[str] = []
    for block in blocks:
        text = block.get("text")
        if isinstance(text, dict) and text.get("text"):
            parts.append(str(text["text"]))
        for element in block.get("elements", []) or []:
            if isinstance(element, dict) and element.get("text"):
                parts.append(str(element["text"]))
    return "\n".join(parts)[:SECTION_TEXT_LIMIT]
