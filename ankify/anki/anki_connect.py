"""AnkiConnect client.

Talks to the AnkiConnect add-on over its JSON-RPC style HTTP API
(``{"action", "version", "params"}`` posted to ``ANKI_CONNECT_URL``) and
submits mapped cards as notes.
"""
import os
import time
from typing import Any, Dict, List, Optional, Sequence

import requests
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

from ankify.cards import AddNotesResult, Card, MappingError, NoteResult, map_fields
from ankify.utils import get_logger, log_note_submission

LOG = get_logger()

ANKI_CONNECT_URL = os.getenv('ANKI_CONNECT_URL', 'http://127.0.0.1:8765')
ANKI_CONNECT_VERSION = 6
ANKI_CONNECT_TIMEOUT = float(os.getenv('ANKI_CONNECT_TIMEOUT', '10'))
ANKI_CONNECT_RETRY_ATTEMPTS = int(os.getenv('ANKI_CONNECT_RETRY_ATTEMPTS', '3'))
ANKI_CONNECT_RETRY_MAX_WAIT = float(os.getenv('ANKI_CONNECT_RETRY_MAX_WAIT', '4'))


class AnkiConnectError(Exception):
    pass


class AnkiConnectionError(AnkiConnectError):
    """Anki is not running or the AnkiConnect add-on is not installed."""


class AnkiConnectClient:
    def __init__(self, url: Optional[str] = None, timeout: Optional[float] = None):
        self.url = url or ANKI_CONNECT_URL
        self.timeout = timeout or ANKI_CONNECT_TIMEOUT

    @retry(stop=stop_after_attempt(ANKI_CONNECT_RETRY_ATTEMPTS), wait=wait_exponential(multiplier=1, max=ANKI_CONNECT_RETRY_MAX_WAIT), retry=retry_if_exception_type(AnkiConnectionError), reraise=True)
    def invoke(self, action: str, **params) -> Any:
        payload = {
            'action': action,
            'version': ANKI_CONNECT_VERSION,
            'params': params,
        }
        LOG.debug('anki_connect_request', extra={'url': self.url, 'action': action})
        try:
            response = requests.post(self.url, json=payload, timeout=self.timeout)
        except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
            raise AnkiConnectionError(f'Cannot connect to Anki at {self.url}: {e}')
        if not response.ok:
            raise AnkiConnectError(f'AnkiConnect request failed: {response.status_code} {response.reason}')
        try:
            data = response.json()
        except ValueError:
            raise AnkiConnectError('AnkiConnect returned invalid JSON')
        if data.get('error'):
            raise AnkiConnectError(f"AnkiConnect error: {data['error']}")
        return data.get('result')

    def deck_names(self) -> List[str]:
        return self.invoke('deckNames') or []

    def model_names(self) -> List[str]:
        return self.invoke('modelNames') or []

    def model_field_names(self, model_name: str) -> List[str]:
        return self.invoke('modelFieldNames', modelName=model_name) or []

    @staticmethod
    def build_note(card: Card, field_names: Sequence[str], deck_name: str, model_name: str) -> Dict[str, Any]:
        return {
            'deckName': deck_name,
            'modelName': model_name,
            'fields': map_fields(card, field_names),
            'tags': list(card.tags or []),
            'options': {'allowDuplicate': False},
        }

    def add_cards(self, cards: Sequence[Card], deck_name: str, model_name: str, request_id: Optional[str] = None) -> AddNotesResult:
        """Map each card onto ``model_name`` and add the notes to ``deck_name``.

        A card that cannot be mapped is reported with its error and left
        out of the ``addNotes`` call; the other cards are still submitted.
        """
        if not deck_name or not model_name:
            raise ValueError('deck_name and model_name must not be empty')
        start = time.time()
        field_names = self.model_field_names(model_name)

        results: List[NoteResult] = []
        notes: List[Dict[str, Any]] = []
        submitted: List[NoteResult] = []
        for index, card in enumerate(cards):
            try:
                note = self.build_note(card, field_names, deck_name, model_name)
            except MappingError as e:
                LOG.warning('card_mapping_failed', extra={'index': index, 'error': str(e), 'model_name': model_name})
                results.append(NoteResult(index=index, error=str(e)))
                continue
            item = NoteResult(index=index, fields=note['fields'])
            results.append(item)
            submitted.append(item)
            notes.append(note)

        if notes:
            ids = self.invoke('addNotes', notes=notes)
            if not isinstance(ids, list) or len(ids) != len(notes):
                raise AnkiConnectError('AnkiConnect returned an invalid addNotes result')
            for item, note_id in zip(submitted, ids):
                if note_id is None:
                    item.error = 'note was rejected by Anki (duplicate or invalid)'
                else:
                    item.note_id = note_id

        success_count = len([r for r in results if r.ok])
        if success_count < len(results):
            LOG.warning('notes_partially_added', extra={'failed_count': len(results) - success_count, 'total_count': len(results)})
        duration_ms = int((time.time() - start) * 1000)
        log_note_submission(request_id or '', deck_name, model_name, success_count, len(results), duration_ms)
        return AddNotesResult(
            deck_name=deck_name,
            model_name=model_name,
            results=results,
            success_count=success_count,
            total_count=len(results),
        )
