"""Map parsed cards onto the fields of an Anki note type.

Note types are matched by the names of their fields. Rules are tried in
order and the first whose predicate accepts the declared field names picks
the (front, back) pair; the last rule always matches and refuses.
"""
from __future__ import annotations

from typing import Callable, Dict, List, NamedTuple, Optional, Sequence, Tuple, Union

from ankify.cards.models import Card

ANNOTATION_TEMPLATE = '\n<hr>\n<span style="color: rgb(143, 53, 8);">{annotation}</span>'


class MappingError(Exception):
    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class FieldRule(NamedTuple):
    name: str
    matches: Callable[[Sequence[str]], bool]
    select: Callable[[Sequence[str]], Tuple[str, str]]


def _has(front: str, back: str) -> Callable[[Sequence[str]], bool]:
    return lambda names: front in names and back in names


def _keys(front: str, back: str) -> Callable[[Sequence[str]], Tuple[str, str]]:
    return lambda names: (front, back)


def _unmapped(names: Sequence[str]) -> Tuple[str, str]:
    raise MappingError('cannot determine field mapping for schema')


FIELD_RULES: List[FieldRule] = [
    FieldRule('front_back', _has('Front', 'Back'), _keys('Front', 'Back')),
    FieldRule('front_back_zh', _has('正面', '背面'), _keys('正面', '背面')),
    FieldRule('cloze', _has('Text', 'Extra'), _keys('Text', 'Extra')),
    FieldRule('positional', lambda names: len(names) >= 2, lambda names: (names[0], names[1])),
    FieldRule('unmapped', lambda names: True, _unmapped),
]


def answer_with_annotation(card: Card) -> str:
    if not card.annotation:
        return card.answer
    return card.answer + ANNOTATION_TEMPLATE.format(annotation=card.annotation)


def resolve_rule(field_names: Sequence[str]) -> FieldRule:
    names = list(field_names or [])
    for rule in FIELD_RULES:
        if rule.matches(names):
            return rule


def map_fields(card: Card, field_names: Sequence[str]) -> Dict[str, str]:
    """Build the ``{field name: content}`` mapping for one note.

    Raises:
        MappingError: the note type declares fewer than two fields, or the
            card's question or answer is blank. An annotation does not
            count towards the answer.
    """
    names = list(field_names or [])
    front, back = resolve_rule(names).select(names)
    for key, value in ((front, card.question), (back, card.answer)):
        if not value or not value.strip():
            raise MappingError(f'field "{key}" must not be empty', field=key)
    return {
        front: card.question,
        back: answer_with_annotation(card),
    }


def map_cards(cards: Sequence[Card], field_names: Sequence[str]) -> List[Union[Dict[str, str], MappingError]]:
    """Map every card independently; a failing card yields its MappingError in place."""
    out: List[Union[Dict[str, str], MappingError]] = []
    for card in cards:
        try:
            out.append(map_fields(card, field_names))
        except MappingError as e:
            out.append(e)
    return out
