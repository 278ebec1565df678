"""
Flashcard records: parsing LLM replies into cards and mapping cards onto note fields.
"""

from .models import Card, CardFormat, NoteResult, AddNotesResult
from .parser import CardParser, parse_cards, detect_format, split_tags
from .field_mapper import FieldRule, FIELD_RULES, MappingError, map_fields, map_cards, resolve_rule, answer_with_annotation
from .document import append_cards_section

__all__ = [
	'Card',
	'CardFormat',
	'NoteResult',
	'AddNotesResult',
	'CardParser',
	'parse_cards',
	'detect_format',
	'split_tags',
	'FieldRule',
	'FIELD_RULES',
	'MappingError',
	'map_fields',
	'map_cards',
	'resolve_rule',
	'answer_with_annotation',
	'append_cards_section',
]
