import os
import time
import asyncio
from datetime import datetime, timezone
from typing import Optional, List

from dotenv import load_dotenv

load_dotenv()

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from ankify import __version__
from ankify.cards import (
    Card,
    CardFormat,
    CardParser,
    MappingError,
    AddNotesResult,
    map_fields,
    resolve_rule,
    append_cards_section,
)
from ankify.semantic import (
    generate_cards,
    PROVIDERS,
    CardGeneratorError,
    CardGeneratorValidationError,
    CardGeneratorAPIError,
    CardGeneratorTimeoutError,
)
from ankify.anki import AnkiConnectClient, AnkiConnectError, AnkiConnectionError
from ankify.utils import get_logger, set_request_context, log_card_parse, log_request, log_error

LOG = get_logger()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(extra='ignore')

    HOST: str = '0.0.0.0'
    PORT: int = 8000
    ENVIRONMENT: str = 'development'
    LOG_LEVEL: str = 'INFO'
    CORS_ORIGIN: str = '*'
    ANKIFY_PROVIDER: str = 'deepseek'
    ANKI_CONNECT_URL: str = 'http://127.0.0.1:8765'
    DEFAULT_DECK: str = 'Default'
    DEFAULT_NOTE_TYPE: str = 'Basic'
    ANKI_REQUIRED_FOR_READY: bool = False


settings = Settings()

app = FastAPI(title='Ankify', version=__version__, description='Turn notes into Anki flashcards with an LLM')

origins = [o.strip() for o in settings.CORS_ORIGIN.split(',') if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins or ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_parser = CardParser()


def get_anki_client() -> AnkiConnectClient:
    return AnkiConnectClient(url=settings.ANKI_CONNECT_URL)


def _request_id(request: Request) -> str:
    return getattr(request.state, 'request_id', None) or os.urandom(8).hex()


def _error(status_code: int, error: str, details: str, request_id: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={'success': False, 'error': error, 'details': details, 'request_id': request_id})


@app.middleware('http')
async def add_request_id_and_logging(request: Request, call_next):
    # prefer incoming X-Request-ID header for cross-service tracing
    request_id = request.headers.get('x-request-id') or os.urandom(8).hex()
    request.state.request_id = request_id
    set_request_context(request_id)
    start = time.time()
    LOG.info('http_request_start', extra={'method': request.method, 'path': request.url.path, 'request_id': request_id, 'client': request.client.host if request.client else None})
    try:
        response: Response = await call_next(request)
    except Exception as exc:
        log_error(exc, {'request_id': request_id, 'path': request.url.path})
        body = {'success': False, 'error': {'message': 'Internal server error', 'request_id': request_id}}
        return JSONResponse(status_code=500, content=body)
    duration = int((time.time() - start) * 1000)
    log_request(request_id, request.method, request.url.path, response.status_code, duration, ip=request.client.host if request.client else None)
    response.headers['X-Request-ID'] = request_id
    return response


@app.get('/health')
async def health():
    return {'status': 'ok', 'timestamp': datetime.now(timezone.utc).isoformat(), 'service': 'ankify'}


def _check_anki():
    try:
        version = get_anki_client().invoke('version')
        return f'ok: v{version}'
    except AnkiConnectError as e:
        return f'error: {e}'


def _check_provider():
    config = PROVIDERS.get(settings.ANKIFY_PROVIDER.lower())
    if config is None:
        return f'error: unknown provider {settings.ANKIFY_PROVIDER}'
    if not os.getenv(config['api_key_env']):
        return f"error: {config['api_key_env']} not set"
    return 'ok'


@app.get('/ready')
async def ready():
    services = {
        'anki': await asyncio.to_thread(_check_anki),
        'llm': _check_provider(),
    }
    ready_ok = not services['llm'].startswith('error')
    if settings.ANKI_REQUIRED_FOR_READY and services['anki'].startswith('error'):
        ready_ok = False
    status_code = 200 if ready_ok else 503
    return JSONResponse(status_code=status_code, content={'status': 'ready' if ready_ok else 'not ready', 'services': services})


class ParseCardsRequest(BaseModel):
    text: str = Field(..., description='Raw LLM reply to parse')


class ParseCardsResponse(BaseModel):
    success: bool
    cards: List[Card]
    format: CardFormat
    count: int
    request_id: str


class GenerateCardsRequest(BaseModel):
    text: str = Field(..., description='Note text to turn into cards')
    provider: Optional[str] = Field(None, description='openai, deepseek or claude')
    insert_to_document: bool = Field(False, description='Append the reply to `document` instead of only returning cards')
    document: Optional[str] = Field(None, description='Full note the text was selected from')


class GenerateCardsResponse(BaseModel):
    success: bool
    raw: str
    cards: List[Card]
    format: CardFormat
    document: Optional[str] = None
    metadata: dict
    request_id: str


class MapFieldsRequest(BaseModel):
    card: Card
    field_names: List[str]


class MapFieldsResponse(BaseModel):
    success: bool
    fields: dict
    rule: str
    request_id: str


class AddNotesRequest(BaseModel):
    cards: List[Card]
    deck_name: Optional[str] = None
    note_type: Optional[str] = None


class AddNotesResponse(BaseModel):
    success: bool
    result: AddNotesResult
    request_id: str


@app.post('/cards/parse', response_model=ParseCardsResponse)
async def parse_cards_endpoint(req: ParseCardsRequest, fastapi_request: Request):
    request_id = _request_id(fastapi_request)
    card_format = _parser.detect_format(req.text)
    cards = _parser.parse(req.text)
    log_card_parse(request_id, card_format.value, len(cards), len(req.text))
    return ParseCardsResponse(success=True, cards=cards, format=card_format, count=len(cards), request_id=request_id)


@app.post('/cards/generate', response_model=GenerateCardsResponse)
async def generate_cards_endpoint(req: GenerateCardsRequest, fastapi_request: Request):
    request_id = _request_id(fastapi_request)
    provider = req.provider or settings.ANKIFY_PROVIDER
    LOG.info('card_generation_start', extra={'request_id': request_id, 'provider': provider, 'text_length': len(req.text)})
    try:
        result = await asyncio.to_thread(generate_cards, req.text, provider, request_id)
    except CardGeneratorValidationError as e:
        return _error(400, 'Invalid input', str(e), request_id)
    except CardGeneratorTimeoutError as e:
        LOG.exception('card_generation_timeout', exc_info=True)
        return _error(504, 'LLM timeout', str(e), request_id)
    except CardGeneratorAPIError as e:
        LOG.exception('card_generation_api_error', exc_info=True)
        return _error(502, 'LLM API error', str(e), request_id)
    except CardGeneratorError as e:
        LOG.exception('card_generation_failed', exc_info=True)
        return _error(500, 'Card generation failed', str(e), request_id)

    document = None
    if req.insert_to_document:
        document = append_cards_section(req.document or '', result['raw'])
    LOG.info('card_generation_complete', extra={'request_id': request_id, 'count': len(result['cards'])})
    return GenerateCardsResponse(
        success=True,
        raw=result['raw'],
        cards=result['cards'],
        format=result['format'],
        document=document,
        metadata=result.get('metadata', {}),
        request_id=request_id,
    )


@app.post('/cards/map', response_model=MapFieldsResponse)
async def map_fields_endpoint(req: MapFieldsRequest, fastapi_request: Request):
    request_id = _request_id(fastapi_request)
    try:
        fields = map_fields(req.card, req.field_names)
    except MappingError as e:
        return _error(422, 'Mapping failed', str(e), request_id)
    return MapFieldsResponse(success=True, fields=fields, rule=resolve_rule(req.field_names).name, request_id=request_id)


async def _anki_call(request_id: str, fn, *args):
    try:
        return await asyncio.to_thread(fn, *args), None
    except AnkiConnectionError as e:
        LOG.warning('anki_unreachable', extra={'request_id': request_id, 'error': str(e)})
        return None, _error(503, 'Anki unavailable', str(e), request_id)
    except AnkiConnectError as e:
        LOG.exception('anki_connect_error', exc_info=True)
        return None, _error(502, 'AnkiConnect error', str(e), request_id)


@app.get('/anki/decks')
async def list_decks(fastapi_request: Request):
    request_id = _request_id(fastapi_request)
    decks, err = await _anki_call(request_id, get_anki_client().deck_names)
    if err:
        return err
    return {'success': True, 'decks': decks, 'default': settings.DEFAULT_DECK, 'request_id': request_id}


@app.get('/anki/note-types')
async def list_note_types(fastapi_request: Request):
    request_id = _request_id(fastapi_request)
    names, err = await _anki_call(request_id, get_anki_client().model_names)
    if err:
        return err
    return {'success': True, 'note_types': names, 'default': settings.DEFAULT_NOTE_TYPE, 'request_id': request_id}


@app.get('/anki/note-types/{name}/fields')
async def list_note_type_fields(name: str, fastapi_request: Request):
    request_id = _request_id(fastapi_request)
    fields, err = await _anki_call(request_id, get_anki_client().model_field_names, name)
    if err:
        return err
    return {'success': True, 'note_type': name, 'fields': fields, 'request_id': request_id}


@app.post('/anki/notes', response_model=AddNotesResponse)
async def add_notes(req: AddNotesRequest, fastapi_request: Request):
    request_id = _request_id(fastapi_request)
    if not req.cards:
        return _error(400, 'No cards', 'cards must not be empty', request_id)
    deck_name = req.deck_name or settings.DEFAULT_DECK
    note_type = req.note_type or settings.DEFAULT_NOTE_TYPE
    client = get_anki_client()
    result, err = await _anki_call(request_id, client.add_cards, req.cards, deck_name, note_type, request_id)
    if err:
        return err
    return AddNotesResponse(success=result.success_count > 0, result=result, request_id=request_id)


if __name__ == '__main__':
    import uvicorn

    uvicorn.run(
        'main:app',
        host=settings.HOST,
        port=settings.PORT,
        log_level=settings.LOG_LEVEL.lower(),
        reload=settings.ENVIRONMENT == 'development',
    )
