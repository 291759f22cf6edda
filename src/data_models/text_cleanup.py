# Copyright (c) Microsoft Corporation.
# Licensed under the MIT license.

import re

SENTENCE_TERMINATORS = ".!?"

# Length of the label the analysis endpoint puts in front of its text
ANALYSIS_LABEL_LENGTH = 11

_HEADER_PATTERN = re.compile(r"#{1,6}\s+")
_BOLD_PATTERN = re.compile(r"\*\*(.+?)\*\*")
_ITALIC_PATTERN = re.compile(r"\*(.+?)\*")
_BULLET_PATTERN = re.compile(r"^\s*[-*]\s+", re.MULTILINE)
_NUMBERED_PATTERN = re.compile(r"^\s*(\d+)\.\s+", re.MULTILINE)


def format_with_line_breaks(text: str) -> str:
    """
    Reflows free-form text into one sentence per paragraph.

    Whitespace runs (newlines included) collapse to single spaces, the text is cut after
    every terminal punctuation mark, and the trimmed sentences are joined by blank lines.
    Text without terminal punctuation comes back as a single sentence.
    """
    normalized = " ".join(text.split())

    sentences = []
    current = ""
    for char in normalized:
        current += char
        if char in SENTENCE_TERMINATORS:
            sentences.append(current.strip())
            current = ""
    if current:
        sentences.append(current.strip())

    return "\n\n".join(sentence for sentence in sentences if sentence)


def strip_analysis_label(text: str) -> str:
    return text[ANALYSIS_LABEL_LENGTH:]


def clean_markdown_text(text: str) -> str:
    """Removes markdown syntax from an assistant reply, keeping list markers readable."""
    cleaned = _HEADER_PATTERN.sub("", text)
    cleaned = _BOLD_PATTERN.sub(r"\1", cleaned)
    cleaned = _ITALIC_PATTERN.sub(r"\1", cleaned)
    cleaned = _BULLET_PATTERN.sub("- ", cleaned)
    cleaned = _NUMBERED_PATTERN.sub(r"\1. ", cleaned)
    return cleaned.replace("`", "")
