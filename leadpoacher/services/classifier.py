"""
Shallow business-likeness checks for crawled pages.

The score only decides which crawled domains discovery keeps. It is never
applied to leads extracted from pages a user asked for.
"""

from __future__ import annotations

import re

from leadpoacher.models import BusinessIndicator

LEGAL_NOTICE_PATTERN = re.compile(r'impressum|imprint|legal[\s_-]?notice|mentions[\s_-]l[ée]gales', re.IGNORECASE)
VAT_PATTERN = re.compile(
    r'\bDE\s?\d{9}\b|\bATU\s?\d{8}\b|\bCHE[-\s]?\d{3}\.?\d{3}\.?\d{3}\b|USt\.?[\s-]?Id(?:Nr|ent)?',
    re.IGNORECASE,
)
LANG_ATTRIBUTE_PATTERN = re.compile(r'<html[^>]*\blang\s*=\s*["\']?de', re.IGNORECASE)
LOCAL_LANGUAGE_WORDS = re.compile(r'\b(?:und|oder|nicht|wir|unsere|für|über|mit|sie)\b', re.IGNORECASE)
BUSINESS_KEYWORD_PATTERN = re.compile(r'\b(?:GmbH|AG|UG|KG|OHG|e\.K\.|Unternehmen|Firma)\b')
CONTACT_PATTERN = re.compile(r'href\s*=\s*["\'][^"\']*(?:kontakt|contact)', re.IGNORECASE)
PRIVACY_PATTERN = re.compile(r'datenschutz|privacy[\s_-]?policy|href\s*=\s*["\'][^"\']*privacy', re.IGNORECASE)

MIN_LOCAL_WORD_HITS = 3

INDICATOR_WEIGHTS: dict[str, float] = {
    'has_legal_notice': 0.30,
    'has_vat_number': 0.25,
    'has_local_language': 0.15,
    'has_privacy_policy': 0.12,
    'has_contact_info': 0.10,
    'has_business_keywords': 0.08,
}


def classify_domain(html: str) -> BusinessIndicator:
    has_lang_attribute = bool(LANG_ATTRIBUTE_PATTERN.search(html))
    local_word_hits = len(LOCAL_LANGUAGE_WORDS.findall(html))

    return BusinessIndicator(
        has_legal_notice=bool(LEGAL_NOTICE_PATTERN.search(html)),
        has_vat_number=bool(VAT_PATTERN.search(html)),
        has_local_language=has_lang_attribute or local_word_hits >= MIN_LOCAL_WORD_HITS,
        has_business_keywords=bool(BUSINESS_KEYWORD_PATTERN.search(html)),
        has_contact_info=bool(CONTACT_PATTERN.search(html)),
        has_privacy_policy=bool(PRIVACY_PATTERN.search(html)),
    )


def calculate_confidence(indicators: BusinessIndicator) -> float:
    total = sum(INDICATOR_WEIGHTS.values())
    score = sum(weight for name, weight in INDICATOR_WEIGHTS.items() if getattr(indicators, name))
    return round(min(max(score / total, 0.0), 1.0), 4)


class BusinessClassifier:
    def __init__(self, min_confidence: float = 0.3) -> None:
        self.min_confidence = min_confidence

    def classify(self, html: str) -> tuple[BusinessIndicator, float]:
        indicators = classify_domain(html)
        return indicators, calculate_confidence(indicators)

    def is_business_like(self, html: str) -> bool:
        _, confidence = self.classify(html)
        return confidence >= self.min_confidence
