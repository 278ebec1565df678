"""
LLM-backed generation of flashcard text from free-form notes.
"""
from .card_generator import CardGenerator, generate_cards, GenerateCardsResponse, CardGeneratorError, CardGeneratorValidationError, CardGeneratorAPIError, CardGeneratorTimeoutError, PROVIDERS

__all__ = [
	'CardGenerator', 'generate_cards', 'GenerateCardsResponse', 'PROVIDERS',
	'CardGeneratorError', 'CardGeneratorValidationError', 'CardGeneratorAPIError', 'CardGeneratorTimeoutError',
]
