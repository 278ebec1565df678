import os
import re
import sys
import argparse
from pathlib import Path
from urllib.parse import urlparse

from dotenv import load_dotenv

PROVIDER_KEYS = {
    'openai': 'OPENAI_API_KEY',
    'deepseek': 'DEEPSEEK_API_KEY',
    'claude': 'ANTHROPIC_API_KEY',
}


def validate(env=None):
    """Return (errors, warnings) for the given environment mapping."""
    env = os.environ if env is None else env
    errors = []
    warnings = []

    provider = env.get('ANKIFY_PROVIDER', 'deepseek').lower()
    if provider not in PROVIDER_KEYS:
        errors.append(f"ANKIFY_PROVIDER must be one of {', '.join(PROVIDER_KEYS)}")
    elif not env.get(PROVIDER_KEYS[provider]):
        errors.append(f'{provider}: Missing {PROVIDER_KEYS[provider]}')

    openai_key = env.get('OPENAI_API_KEY', '')
    if openai_key and not openai_key.startswith('sk-'):
        warnings.append('OPENAI_API_KEY does not start with sk-; verify provider')
    claude_key = env.get('ANTHROPIC_API_KEY', '')
    if claude_key and not claude_key.startswith('sk-ant-'):
        warnings.append('ANTHROPIC_API_KEY does not start with sk-ant-; verify provider')

    try:
        port = int(env.get('PORT', '8000'))
        if port < 1 or port > 65535:
            errors.append('PORT must be integer between 1 and 65535')
    except ValueError:
        errors.append('PORT must be an integer')

    try:
        temperature = float(env.get('CARD_TEMPERATURE', '0.7'))
        if temperature < 0.0 or temperature > 2.0:
            errors.append('CARD_TEMPERATURE must be between 0.0 and 2.0')
    except ValueError:
        errors.append('CARD_TEMPERATURE must be a float')

    anki_url = env.get('ANKI_CONNECT_URL', 'http://127.0.0.1:8765')
    parsed = urlparse(anki_url)
    if parsed.scheme not in ('http', 'https') or not parsed.hostname:
        errors.append('ANKI_CONNECT_URL must be an http(s) URL')

    for name in ('DEFAULT_DECK', 'DEFAULT_NOTE_TYPE'):
        if name in env and not env[name].strip():
            errors.append(f'{name} must not be blank')

    log_format = env.get('LOG_FORMAT', 'json')
    if log_format not in ('json', 'text'):
        errors.append("LOG_FORMAT must be 'json' or 'text'")
    if not re.match(r'^(DEBUG|INFO|WARNING|ERROR|CRITICAL)$', env.get('LOG_LEVEL', 'INFO').upper()):
        errors.append('LOG_LEVEL is not a valid logging level')

    return errors, warnings


def check_anki(url):
    # AnkiConnect reachability - best effort
    import requests
    payload = {'action': 'version', 'version': 6}
    resp = requests.post(url, json=payload, timeout=3)
    resp.raise_for_status()
    return resp.json().get('result')


def main(argv=None):
    parser = argparse.ArgumentParser(description='Validate Ankify environment configuration')
    parser.add_argument('--strict', '-s', action='store_true', help='Convert warnings to failures')
    parser.add_argument('--env-file', default=str(Path(__file__).parent.parent / '.env'), help='Path to .env file')
    parser.add_argument('--check-anki', action='store_true', help='Also try to reach AnkiConnect')
    args = parser.parse_args(argv)

    load_dotenv(args.env_file)
    errors, warnings = validate()

    if args.check_anki:
        url = os.getenv('ANKI_CONNECT_URL', 'http://127.0.0.1:8765')
        try:
            print(f'AnkiConnect: v{check_anki(url)} at {url}')
        except Exception as e:
            warnings.append(f'AnkiConnect check failed: {e}')

    if errors:
        print('\nENV validation failed:')
        for e in errors:
            print(' -', e)
        return 1

    if warnings:
        print('\nWarnings:')
        for w in warnings:
            print(' -', w)
        if args.strict:
            print('\nStrict mode enabled: treating warnings as errors')
            return 1

    print('\nAll critical validations passed')
    return 0


if __name__ == '__main__':
    sys.exit(main())
