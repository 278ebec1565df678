import importlib.util
from pathlib import Path

import pytest

_path = Path(__file__).resolve().parents[2] / 'scripts' / 'validate_env.py'
_spec = importlib.util.spec_from_file_location('validate_env', _path)
validate_env = importlib.util.module_from_spec(_spec)
_spec.loader.exec_module(validate_env)


def _env(**overrides):
    env = {'ANKIFY_PROVIDER': 'deepseek', 'DEEPSEEK_API_KEY': 'sk-abc'}
    env.update(overrides)
    return env


def test_valid_env():
    errors, warnings = validate_env.validate(_env())
    assert errors == []
    assert warnings == []


def test_missing_provider_key():
    errors, _ = validate_env.validate({'ANKIFY_PROVIDER': 'claude'})
    assert errors == ['claude: Missing ANTHROPIC_API_KEY']


def test_unknown_provider():
    errors, _ = validate_env.validate({'ANKIFY_PROVIDER': 'gemini'})
    assert 'ANKIFY_PROVIDER' in errors[0]


@pytest.mark.parametrize('overrides', [
    {'PORT': '70000'},
    {'PORT': 'abc'},
    {'CARD_TEMPERATURE': 'hot'},
    {'ANKI_CONNECT_URL': 'localhost:8765'},
    {'DEFAULT_DECK': '  '},
    {'LOG_FORMAT': 'xml'},
    {'LOG_LEVEL': 'LOUD'},
])
def test_invalid_values(overrides):
    errors, _ = validate_env.validate(_env(**overrides))
    assert len(errors) == 1


def test_key_prefix_warning():
    _, warnings = validate_env.validate(_env(OPENAI_API_KEY='not-a-key'))
    assert warnings and 'OPENAI_API_KEY' in warnings[0]


def test_main_exit_codes(monkeypatch, tmp_path):
    env_file = tmp_path / '.env'
    env_file.write_text('')
    for name in ('ANKIFY_PROVIDER', 'DEEPSEEK_API_KEY', 'OPENAI_API_KEY', 'ANTHROPIC_API_KEY', 'PORT', 'LOG_FORMAT', 'LOG_LEVEL'):
        monkeypatch.delenv(name, raising=False)
    assert validate_env.main(['--env-file', str(env_file)]) == 1
    monkeypatch.setenv('DEEPSEEK_API_KEY', 'sk-abc')
    assert validate_env.main(['--env-file', str(env_file)]) == 0
    monkeypatch.setenv('OPENAI_API_KEY', 'nope')
    assert validate_env.main(['--env-file', str(env_file), '--strict']) == 1
