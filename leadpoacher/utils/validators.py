import re
from urllib.parse import urlparse

EMAIL_REGEX = re.compile(r'^[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}$')
DOMAIN_REGEX = re.compile(r'^(?=.{4,253}$)([a-z0-9](?:[a-z0-9-]{0,61}[a-z0-9])?\.)+[a-z]{2,24}$')

MIN_COMPETITOR_LENGTH = 2


def normalize_competitor_name(value: str) -> str:
    return ' '.join(value.split())


def is_valid_competitor(value: object) -> bool:
    if not isinstance(value, str):
        return False
    return len(normalize_competitor_name(value)) >= MIN_COMPETITOR_LENGTH


def is_valid_email(email: str | None) -> bool:
    if not email:
        return False
    return bool(EMAIL_REGEX.match(email.strip()))


def normalize_domain(value: str) -> str | None:
    """Reduce a URL or host to a lowercase domain without scheme, port or ``www.``."""
    if not value:
        return None

    text = value.strip().lower()
    if '://' not in text:
        text = f'https://{text}'

    try:
        host = urlparse(text).hostname or ''
    except ValueError:
        return None
    if host.startswith('www.'):
        host = host[4:]
    host = host.rstrip('.')

    if not DOMAIN_REGEX.match(host):
        return None
    return host
