import os
import pytest
from pathlib import Path

from dotenv import load_dotenv

# load test env first
env_path = Path(__file__).resolve().parents[1] / '.env.test'
if env_path.exists():
    load_dotenv(env_path)

os.environ.setdefault('TESTING', '1')
os.environ.setdefault('LOG_LEVEL', 'WARNING')
# no backoff between retries under test
os.environ.setdefault('OPENAI_RETRY_MULTIPLIER', '0')
os.environ.setdefault('OPENAI_RETRY_MAX_WAIT', '0')
os.environ.setdefault('ANKI_CONNECT_RETRY_MAX_WAIT', '0')
os.environ.setdefault('DEEPSEEK_API_KEY', 'sk-test-deepseek')
os.environ.setdefault('OPENAI_API_KEY', 'sk-test-openai')
os.environ.setdefault('ANTHROPIC_API_KEY', 'sk-ant-test')

from tests.fixtures.sample_data import (  # noqa: E402
    MULTI_LINE_REPLY,
    TABLE_REPLY,
    FALLBACK_REPLY,
    TRIPLE_COLON_REPLY,
)
from tests.fixtures.mock_anki import FakeAnkiConnect  # noqa: E402


@pytest.fixture
def multi_line_reply():
    return MULTI_LINE_REPLY


@pytest.fixture
def table_reply():
    return TABLE_REPLY


@pytest.fixture
def fallback_reply():
    return FALLBACK_REPLY


@pytest.fixture
def triple_colon_reply():
    return TRIPLE_COLON_REPLY


@pytest.fixture(autouse=True)
def reset_generator_instances():
    from ankify.semantic.card_generator import CardGenerator
    CardGenerator._instances.clear()
    yield
    CardGenerator._instances.clear()


@pytest.fixture
def mock_openai_client(monkeypatch):
    from tests.fixtures.mock_openai import FakeOpenAI
    import ankify.semantic.card_generator as cg
    FakeOpenAI.reset()
    monkeypatch.setattr(cg, 'OpenAI', FakeOpenAI)
    return FakeOpenAI


@pytest.fixture
def mock_anthropic_client(monkeypatch):
    from tests.fixtures.mock_openai import FakeAnthropic
    import ankify.semantic.card_generator as cg
    FakeAnthropic.reset()
    monkeypatch.setattr(cg, 'Anthropic', FakeAnthropic)
    return FakeAnthropic


@pytest.fixture
def anki(monkeypatch):
    """Fake AnkiConnect server answering requests.post calls."""
    fake = FakeAnkiConnect()
    import ankify.anki.anki_connect as ac
    monkeypatch.setattr(ac.requests, 'post', fake.post)
    return fake
