"""LLM-backed flashcard generation.

Provides:
- CardGenerator wrapping the OpenAI / DeepSeek / Claude chat APIs with retries
- generate_cards convenience function returning the raw reply and parsed cards

Custom exceptions: CardGeneratorError, CardGeneratorValidationError,
CardGeneratorAPIError, CardGeneratorTimeoutError
"""
from __future__ import annotations

import os
import time
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field
from tenacity import retry, stop_after_attempt, wait_exponential, retry_if_exception_type

import openai
from openai import OpenAI
import anthropic
from anthropic import Anthropic

from ankify.cards import Card, CardFormat, CardParser
from ankify.utils import get_logger, log_llm_call, log_card_parse

LOG = get_logger()


class CardGeneratorError(Exception):
    pass


class CardGeneratorValidationError(CardGeneratorError):
    pass


class CardGeneratorAPIError(CardGeneratorError):
    pass


class CardGeneratorTimeoutError(CardGeneratorError):
    pass


class GenerateCardsResponse(BaseModel):
    raw: str
    cards: List[Card] = Field(default_factory=list)
    format: CardFormat
    metadata: Dict[str, Any] = Field(default_factory=dict)


DEFAULT_PROMPT = (
    'Create Anki cards from the following content, formatted as "question:::answer", '
    'one card per line. Extract the key concepts and facts.\n\n'
)
EMPTY_REPLY_PLACEHOLDER = 'Unable to generate card content'

# Config
ANKIFY_PROVIDER = os.getenv('ANKIFY_PROVIDER', 'deepseek')
ANKIFY_PROMPT = os.getenv('ANKIFY_PROMPT', DEFAULT_PROMPT)
OPENAI_MODEL = os.getenv('OPENAI_MODEL', 'gpt-3.5-turbo')
DEEPSEEK_MODEL = os.getenv('DEEPSEEK_MODEL', 'deepseek-chat')
DEEPSEEK_BASE_URL = os.getenv('DEEPSEEK_BASE_URL', 'https://api.deepseek.com/v1')
CLAUDE_MODEL = os.getenv('CLAUDE_MODEL', 'claude-3-haiku-20240307')
CARD_TEMPERATURE = float(os.getenv('CARD_TEMPERATURE', '0.7'))
CARD_MAX_TOKENS = int(os.getenv('CARD_MAX_TOKENS', '1000'))
LLM_TIMEOUT = float(os.getenv('LLM_TIMEOUT', '60'))
CARD_GENERATOR_MAX_TEXT_LENGTH = int(os.getenv('CARD_GENERATOR_MAX_TEXT_LENGTH', '50000'))
OPENAI_RETRY_ATTEMPTS = int(os.getenv('OPENAI_RETRY_ATTEMPTS', '3'))
OPENAI_RETRY_MULTIPLIER = float(os.getenv('OPENAI_RETRY_MULTIPLIER', '2'))
OPENAI_RETRY_MAX_WAIT = float(os.getenv('OPENAI_RETRY_MAX_WAIT', '10'))

PROVIDERS: Dict[str, Dict[str, Any]] = {
    'openai': {'sdk': 'openai', 'model': OPENAI_MODEL, 'base_url': None, 'api_key_env': 'OPENAI_API_KEY'},
    'deepseek': {'sdk': 'openai', 'model': DEEPSEEK_MODEL, 'base_url': DEEPSEEK_BASE_URL, 'api_key_env': 'DEEPSEEK_API_KEY'},
    'claude': {'sdk': 'anthropic', 'model': CLAUDE_MODEL, 'base_url': None, 'api_key_env': 'ANTHROPIC_API_KEY'},
}

_retry_policy = retry(
    stop=stop_after_attempt(OPENAI_RETRY_ATTEMPTS),
    wait=wait_exponential(multiplier=OPENAI_RETRY_MULTIPLIER, max=OPENAI_RETRY_MAX_WAIT),
    retry=retry_if_exception_type((CardGeneratorAPIError, CardGeneratorTimeoutError)),
    reraise=True,
)


class CardGenerator:
    _instances: Dict[str, 'CardGenerator'] = {}

    def __init__(self, provider: Optional[str] = None, api_key: Optional[str] = None, prompt: Optional[str] = None):
        self.provider = (provider or ANKIFY_PROVIDER).lower()
        config = PROVIDERS.get(self.provider)
        if config is None:
            raise CardGeneratorError(f'Unsupported provider: {self.provider}')
        key = api_key or os.getenv(config['api_key_env'])
        if not key:
            raise CardGeneratorError(f"{config['api_key_env']} not set")
        self.sdk = config['sdk']
        self.model = config['model']
        self.prompt = prompt if prompt is not None else ANKIFY_PROMPT
        self.timeout = LLM_TIMEOUT
        if self.sdk == 'anthropic':
            self._client = Anthropic(api_key=key, timeout=self.timeout)
        else:
            self._client = OpenAI(api_key=key, base_url=config['base_url'], timeout=self.timeout)
        self._parser = CardParser()
        LOG.info('CardGenerator initialized', extra={'provider': self.provider, 'model': self.model})

    @classmethod
    def get_instance(cls, provider: Optional[str] = None) -> 'CardGenerator':
        name = (provider or ANKIFY_PROVIDER).lower()
        if name not in cls._instances:
            cls._instances[name] = CardGenerator(provider=name)
        return cls._instances[name]

    def build_prompt(self, content: str) -> str:
        return self.prompt + content

    @_retry_policy
    def _call_openai(self, messages: List[Dict[str, str]]) -> Tuple[Optional[str], int, int]:
        try:
            resp = self._client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=CARD_TEMPERATURE,
            )
        except openai.APITimeoutError as e:
            LOG.exception('llm_timeout', exc_info=True)
            raise CardGeneratorTimeoutError(str(e))
        except openai.OpenAIError as e:
            LOG.exception('llm_api_error', exc_info=True)
            raise CardGeneratorAPIError(str(e))
        choices = resp.choices or []
        text = choices[0].message.content if choices and choices[0].message else None
        usage = resp.usage
        return text, getattr(usage, 'prompt_tokens', 0) or 0, getattr(usage, 'completion_tokens', 0) or 0

    @_retry_policy
    def _call_claude(self, messages: List[Dict[str, str]]) -> Tuple[Optional[str], int, int]:
        try:
            resp = self._client.messages.create(
                model=self.model,
                messages=messages,
                max_tokens=CARD_MAX_TOKENS,
                temperature=CARD_TEMPERATURE,
            )
        except anthropic.APITimeoutError as e:
            LOG.exception('llm_timeout', exc_info=True)
            raise CardGeneratorTimeoutError(str(e))
        except anthropic.AnthropicError as e:
            LOG.exception('llm_api_error', exc_info=True)
            raise CardGeneratorAPIError(str(e))
        blocks = resp.content or []
        text = getattr(blocks[0], 'text', None) if blocks else None
        usage = resp.usage
        return text, getattr(usage, 'input_tokens', 0) or 0, getattr(usage, 'output_tokens', 0) or 0

    def complete(self, content: str, request_id: Optional[str] = None) -> str:
        """Send ``prompt + content`` to the provider and return the reply text."""
        if not content or not content.strip():
            raise CardGeneratorValidationError('Empty text')
        if len(content) > CARD_GENERATOR_MAX_TEXT_LENGTH:
            raise CardGeneratorValidationError(f'Text too long ({len(content)} > {CARD_GENERATOR_MAX_TEXT_LENGTH})')
        messages = [{'role': 'user', 'content': self.build_prompt(content)}]
        start = time.time()
        if self.sdk == 'anthropic':
            text, prompt_tokens, completion_tokens = self._call_claude(messages)
        else:
            text, prompt_tokens, completion_tokens = self._call_openai(messages)
        duration_ms = int((time.time() - start) * 1000)
        log_llm_call(request_id or '', self.model, prompt_tokens, completion_tokens, duration_ms, provider=self.provider)
        return text or EMPTY_REPLY_PLACEHOLDER

    def generate(self, content: str, request_id: Optional[str] = None) -> GenerateCardsResponse:
        start = time.time()
        raw = self.complete(content, request_id=request_id)
        card_format = self._parser.detect_format(raw)
        cards = self._parser.parse(raw)
        log_card_parse(request_id or '', card_format.value, len(cards), len(raw))
        metadata = {
            'provider': self.provider,
            'model_used': self.model,
            'card_count': len(cards),
            'processing_time_ms': int((time.time() - start) * 1000),
        }
        return GenerateCardsResponse(raw=raw, cards=cards, format=card_format, metadata=metadata)


def generate_cards(content: str, provider: Optional[str] = None, request_id: Optional[str] = None) -> Dict[str, Any]:
    gen = CardGenerator.get_instance(provider)
    resp = gen.generate(content, request_id=request_id)
    return resp.model_dump(mode='json')
