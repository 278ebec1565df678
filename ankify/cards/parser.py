"""Parser turning free-form LLM replies into flashcard records.

Three reply shapes are recognised, tried in priority order:

- multi-line blocks (``Q:`` / ``A:`` / ``annotation:`` / ``tags:`` lines,
  cards separated by blank lines)
- a table whose header reads ``Q A annotation tags``
- one card per line, either ``Q: ... A: ...`` or ``question:::answer``

The format is sniffed once over the whole text, then the matching parser
runs. Parsing never raises: text without recognisable cards gives ``[]``.
"""
from __future__ import annotations

import re
from typing import Callable, Dict, List, Optional

from ankify.cards.models import Card, CardFormat
from ankify.utils import get_logger

LOG = get_logger()

MULTI_LINE_PATTERN = re.compile(
    r'^[ \t]*Q:.*\n(?:[ \t]*(?:annotation|tags):.*\n)*[ \t]*A:',
    re.IGNORECASE | re.MULTILINE,
)
TABLE_HEADER_PATTERN = re.compile(r'^Q\s+A\s+annotation\s+tags$', re.IGNORECASE)
BLOCK_SEPARATOR = re.compile(r'\n\s*\n+')
TABLE_COLUMN_SEPARATOR = re.compile(r'\s{2,}')
TAG_SEPARATOR = re.compile(r'[\s,]+')

INLINE_QA_PATTERN = re.compile(r'Q:\s*(.*?)\s*A:\s*(.*?)(?:\s*annotation:|$|\s*tags:)', re.IGNORECASE)
INLINE_ANNOTATION_PATTERN = re.compile(r'annotation:\s*(.*?)(?:\s*tags:|$)', re.IGNORECASE)
INLINE_TAGS_PATTERN = re.compile(r'tags:\s*(.*?)$', re.IGNORECASE)
INLINE_DELIMITER = ':::'


def _normalize(text: str) -> str:
    return (text or '').replace('\r\n', '\n').replace('\r', '\n')


def _non_empty_lines(text: str) -> List[str]:
    return [line for line in text.split('\n') if line.strip()]


def split_hash_tags(text: str) -> List[str]:
    return [tag.strip() for tag in text.split('#') if tag.strip()]


def split_tags(text: str) -> List[str]:
    """Split tag text written either as ``#a #b`` or as ``a, b`` / ``a b``."""
    if '#' in text:
        return split_hash_tags(text)
    return [tag for tag in TAG_SEPARATOR.split(text) if tag]


def detect_format(text: str) -> CardFormat:
    text = _normalize(text)
    if MULTI_LINE_PATTERN.search(text):
        return CardFormat.MULTI_LINE
    lines = _non_empty_lines(text)
    if lines and TABLE_HEADER_PATTERN.match(lines[0].strip()):
        return CardFormat.TABLE
    return CardFormat.FALLBACK


def _parse_block(block: str) -> Optional[Card]:
    question = answer = ''
    annotation = None
    tags = None
    for raw_line in block.split('\n'):
        line = raw_line.strip()
        if not line:
            continue
        if line[:2].upper() == 'Q:':
            question = line[2:].strip()
        elif line[:2].upper() == 'A:':
            answer = line[2:].strip()
        elif line[:11].lower() == 'annotation:':
            annotation = line[11:].strip()
        elif line[:5].lower() == 'tags:':
            tags = split_tags(line[5:].strip())
    if not (question and answer):
        return None
    return Card(question=question, answer=answer, annotation=annotation, tags=tags)


def parse_multi_line(text: str) -> List[Card]:
    cards: List[Card] = []
    for block in BLOCK_SEPARATOR.split(_normalize(text)):
        if not block.strip():
            continue
        card = _parse_block(block)
        if card is not None:
            cards.append(card)
    return cards


def _split_row(line: str) -> List[str]:
    if '\t' in line:
        return line.split('\t')
    return TABLE_COLUMN_SEPARATOR.split(line)


def parse_table(text: str) -> List[Card]:
    cards: List[Card] = []
    # first line is the header
    for line in _non_empty_lines(_normalize(text))[1:]:
        parts = _split_row(line.strip())
        if len(parts) < 2:
            continue
        question, answer = parts[0].strip(), parts[1].strip()
        if not (question and answer):
            continue
        card = Card(question=question, answer=answer)
        if len(parts) >= 3 and parts[2].strip():
            card.annotation = parts[2].strip()
        if len(parts) >= 4 and parts[3].strip():
            card.tags = split_tags(parts[3].strip())
        cards.append(card)
    return cards


def _parse_inline(line: str) -> Optional[Card]:
    qa = INLINE_QA_PATTERN.search(line)
    if qa:
        card = Card(question=(qa.group(1) or '').strip(), answer=(qa.group(2) or '').strip())
        annotation = INLINE_ANNOTATION_PATTERN.search(line)
        if annotation:
            card.annotation = (annotation.group(1) or '').strip()
        tags = INLINE_TAGS_PATTERN.search(line)
        if tags and tags.group(1):
            # only the '#tag' style is understood on a single line
            card.tags = split_hash_tags(tags.group(1))
        return card

    pieces = line.split(INLINE_DELIMITER)
    if len(pieces) >= 2:
        return Card(question=pieces[0].strip(), answer=pieces[1].strip())
    return None


def parse_fallback(text: str) -> List[Card]:
    cards: List[Card] = []
    for line in _non_empty_lines(_normalize(text)):
        card = _parse_inline(line)
        if card is not None:
            cards.append(card)
    return cards


PARSERS: Dict[CardFormat, Callable[[str], List[Card]]] = {
    CardFormat.MULTI_LINE: parse_multi_line,
    CardFormat.TABLE: parse_table,
    CardFormat.FALLBACK: parse_fallback,
}


class CardParser:
    """Stateless entry point; safe to share between callers."""

    def detect_format(self, text: str) -> CardFormat:
        return detect_format(text)

    def parse(self, text: str) -> List[Card]:
        card_format = detect_format(text)
        cards = PARSERS[card_format](text)
        LOG.debug('cards_parsed', extra={'card_format': card_format.value, 'card_count': len(cards)})
        return cards


def parse_cards(text: str) -> List[Card]:
    return CardParser().parse(text)
