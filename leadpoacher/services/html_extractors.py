"""
Regex heuristics that read raw HTML text.

Nothing here needs well-formed markup. Every heuristic that looks at HTML lives
in this module and is reached through :class:`RegexPageExtractor`, so a switch
to a real parser only touches this file.
"""

from __future__ import annotations

import html as html_lib
import logging
import re
from urllib.parse import unquote, urljoin, urlparse

from leadpoacher.logging_utils import log_event
from leadpoacher.models import ExtractedLead
from leadpoacher.utils.validators import is_valid_email, normalize_domain

logger = logging.getLogger(__name__)

EMAIL_PATTERN = re.compile(r'\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b')
MAILTO_PATTERN = re.compile(r'mailto:([^"\'>\s?&]+)', re.IGNORECASE)
TAG_PATTERN = re.compile(r'<[^>]*>')
TITLE_PATTERN = re.compile(r'<title[^>]*>([^<]+)</title>', re.IGNORECASE)
HREF_PATTERN = re.compile(r'href\s*=\s*["\']?(https?://[^"\'\s>]+)', re.IGNORECASE)
ANCHOR_PATTERN = re.compile(r'<a\b[^>]*?href\s*=\s*["\']([^"\']+)["\'][^>]*>(.*?)</a>', re.IGNORECASE | re.DOTALL)
NAME_PATTERN = re.compile(r'[A-ZÄÖÜ][a-zäöüß]+(?:\s+[A-ZÄÖÜ][a-zäöüß]+){1,2}(?=\s|,|:|\.|$)')
TITLE_SEPARATOR_PATTERN = re.compile(r'\s*[-|].*$')
TITLE_SUFFIX_PATTERNS = (
    re.compile(r'\s*Home\s*$', re.IGNORECASE),
    re.compile(r'\s*Welcome\s*$', re.IGNORECASE),
)

NAME_CONTEXT_CHARS = 200
NAME_STOP_TOKENS = ('Email', 'Contact', 'Info')
MIN_NAME_LENGTH = 4

DENIED_LOCAL_PARTS = {'admin', 'webmaster', 'support', 'test'}
DENIED_LOCAL_FRAGMENTS = ('noreply', 'no-reply')
DENIED_EMAIL_DOMAINS = ('example.com',)
ASSET_SUFFIXES = ('.png', '.jpg', '.jpeg', '.gif', '.svg', '.webp', '.css', '.js')

PRIVACY_LINK_KEYWORDS = ('datenschutz', 'privacy', 'data-protection', 'data protection')
SECOND_LEVEL_LABELS = {'co', 'com', 'org', 'net', 'ac', 'gov', 'edu', 'ltd', 'plc', 'or', 'ne'}


def strip_tags(html: str) -> str:
    return TAG_PATTERN.sub(' ', html)


def extract_title(html: str) -> str | None:
    match = TITLE_PATTERN.search(html)
    if not match:
        return None
    title = ' '.join(html_lib.unescape(match.group(1)).split())
    return title or None


def is_denied_email(email: str) -> bool:
    local, _, domain = email.lower().partition('@')
    if local in DENIED_LOCAL_PARTS:
        return True
    if any(fragment in local for fragment in DENIED_LOCAL_FRAGMENTS):
        return True
    if any(domain == denied or domain.endswith('.' + denied) for denied in DENIED_EMAIL_DOMAINS):
        return True
    return domain.endswith(ASSET_SUFFIXES)


def page_domain(source_url: str) -> str:
    try:
        host = (urlparse(source_url).hostname or '').lower()
    except ValueError:
        return ''
    return normalize_domain(host) or host


def extract_emails(html: str, source_url: str) -> list[ExtractedLead]:
    """
    Return one lead per distinct, non-denylisted email found in ``html``.

    Plain-text matches come first, then ``mailto:`` targets that were not
    already seen.
    """

    domain = page_domain(source_url)
    seen: set[str] = set()
    leads: list[ExtractedLead] = []

    candidates = [match.group(0) for match in EMAIL_PATTERN.finditer(html)]
    candidates.extend(unquote(match.group(1)) for match in MAILTO_PATTERN.finditer(html))

    for raw in candidates:
        email = raw.strip().lower()
        if email in seen or not is_valid_email(email) or is_denied_email(email):
            continue
        seen.add(email)
        leads.append(
            ExtractedLead(
                email=email,
                name=extract_name_near_email(html, email),
                source_url=source_url,
                domain=domain,
            )
        )

    log_event(logger, logging.DEBUG, 'extract_emails', source_domain=domain, emails_found=len(leads))
    return leads


def extract_name_near_email(html: str, email: str) -> str | None:
    text = strip_tags(html)
    index = text.lower().find(email.lower())
    if index == -1:
        return None

    context = text[max(0, index - NAME_CONTEXT_CHARS):index]
    # closest candidate to the email wins
    for match in reversed(list(NAME_PATTERN.finditer(context))):
        name = ' '.join(match.group(0).split())
        if len(name) < MIN_NAME_LENGTH:
            continue
        if any(token in name for token in NAME_STOP_TOKENS):
            continue
        return name
    return None


def prettify_domain(domain: str) -> str:
    host = domain.lower()
    if host.startswith('www.'):
        host = host[4:]

    labels = [label for label in host.split('.') if label]
    if len(labels) >= 3 and labels[-2] in SECOND_LEVEL_LABELS and len(labels[-1]) == 2:
        labels = labels[:-2]
    elif len(labels) >= 2:
        labels = labels[:-1]

    words = re.split(r'[-_.\s]+', ' '.join(labels))
    pretty = ' '.join(word[:1].upper() + word[1:] for word in words if word)
    return pretty or domain


def extract_company_name(html: str, domain: str) -> str:
    title = extract_title(html)
    if title:
        cleaned = TITLE_SEPARATOR_PATTERN.sub('', title)
        for pattern in TITLE_SUFFIX_PATTERNS:
            cleaned = pattern.sub('', cleaned)
        cleaned = cleaned.strip()
        if 2 < len(cleaned) < 50:
            return cleaned

    return prettify_domain(domain)


def extract_domains_from_html(html: str, exclude: tuple[str, ...] = ()) -> list[str]:
    """Outbound link hosts in first-seen order, minus ``exclude`` and their subdomains."""
    domains: list[str] = []
    seen: set[str] = set()
    for match in HREF_PATTERN.finditer(html):
        domain = normalize_domain(match.group(1))
        if not domain or domain in seen:
            continue
        if any(domain == skip or domain.endswith('.' + skip) for skip in exclude):
            continue
        seen.add(domain)
        domains.append(domain)
    return domains


def find_privacy_policy_url(html: str, base_url: str) -> str | None:
    for match in ANCHOR_PATTERN.finditer(html):
        href = match.group(1).strip()
        if href.startswith(('mailto:', 'javascript:', '#', 'tel:')):
            continue
        label = strip_tags(match.group(2)).lower()
        haystack = f'{href.lower()} {label}'
        if any(keyword in haystack for keyword in PRIVACY_LINK_KEYWORDS):
            return urljoin(base_url, html_lib.unescape(href))
    return None


class RegexPageExtractor:
    """Single entry point for the HTML heuristics used by the pipeline."""

    def extract_leads(self, html: str, source_url: str) -> list[ExtractedLead]:
        return extract_emails(html, source_url)

    def extract_name(self, html: str, email: str) -> str | None:
        return extract_name_near_email(html, email)

    def extract_company_name(self, html: str, domain: str) -> str:
        return extract_company_name(html, domain)

    def extract_domains(self, html: str, exclude: tuple[str, ...] = ()) -> list[str]:
        return extract_domains_from_html(html, exclude)

    def find_privacy_policy_url(self, html: str, base_url: str) -> str | None:
        return find_privacy_policy_url(html, base_url)
