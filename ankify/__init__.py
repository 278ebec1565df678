"""
Ankify: turn free-form notes into Anki flashcards.

The note text is summarised by an LLM, the reply is parsed into cards
(``ankify.cards``) and the chosen cards are submitted to Anki through
AnkiConnect (``ankify.anki``).
"""
from .cards import Card, CardFormat, CardParser, MappingError, parse_cards, map_fields

__version__ = '1.0.0'

__all__ = [
	'Card',
	'CardFormat',
	'CardParser',
	'MappingError',
	'parse_cards',
	'map_fields',
	'__version__',
]
