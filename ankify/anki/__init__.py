"""
AnkiConnect access: listing decks and note types, submitting cards as notes.
"""
from .anki_connect import AnkiConnectClient, AnkiConnectError, AnkiConnectionError, ANKI_CONNECT_URL

__all__ = [
	'AnkiConnectClient',
	'AnkiConnectError',
	'AnkiConnectionError',
	'ANKI_CONNECT_URL',
]
