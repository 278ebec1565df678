"""Utility subpackage for Ankify modules"""

from .logger import (
	get_logger,
	log_request,
	log_error,
	log_llm_call,
	log_card_parse,
	log_note_submission,
	set_request_context,
	get_request_context,
)

__all__ = [
	'get_logger',
	'log_request',
	'log_error',
	'log_llm_call',
	'log_card_parse',
	'log_note_submission',
	'set_request_context',
	'get_request_context',
]
