"""
Rule-based résumé analysis.

Extracts skills, years of experience, education, certifications and
contact details from normalized résumé text using the skill table and
a fixed set of regular expressions.  None of the extractors raise on
missing information: an absent signal is an empty tuple or zero.
"""

from __future__ import annotations

import logging
import re
from typing import Iterable, List, Optional, Pattern, Tuple

from ..schema import ContactInfo, CVAnalysis
from .extract_text import DocumentTextExtractor
from .normalize import normalize_text
from .skill_table import DEFAULT_SKILL_TABLE, SkillTable

logger = logging.getLogger(__name__)

_EXPERIENCE_PATTERNS = [
    re.compile(r"(\d+)\+?\s*years?\s+(?:of\s+)?experience", re.IGNORECASE),
    re.compile(r"experience\s*:?\s*(\d+)\+?\s*years?", re.IGNORECASE),
    re.compile(r"(\d+)\+?\s*yrs?\s+(?:of\s+)?experience", re.IGNORECASE),
]

# Abbreviations must not be glued to other letters, so "jobs" is not a B.S.
_NOT_LETTER_BEFORE = r"(?<![a-z])"
_NOT_LETTER_AFTER = r"(?![a-z])"

_DEGREE_FIELD = r"(?:\s+of)?(?:\s+(?:science|arts|engineering|technology|business))?"

_EDUCATION_PATTERNS = [
    re.compile(r"\bbachelor(?:'s|s)?\b" + _DEGREE_FIELD, re.IGNORECASE),
    re.compile(r"(?<!scrum\s)\bmaster(?:'s|s)?\b" + _DEGREE_FIELD, re.IGNORECASE),
    re.compile(_NOT_LETTER_BEFORE + r"(?:ph\.?d\.?|doctorate|doctoral)" + _NOT_LETTER_AFTER, re.IGNORECASE),
    re.compile(_NOT_LETTER_BEFORE + r"(?:mba|m\.b\.a\.?)" + _NOT_LETTER_AFTER, re.IGNORECASE),
    re.compile(_NOT_LETTER_BEFORE + r"(?:b\.?tech|b\.[esa]\.?)" + _NOT_LETTER_AFTER, re.IGNORECASE),
    re.compile(_NOT_LETTER_BEFORE + r"(?:m\.?tech|m\.[esa]\.?)" + _NOT_LETTER_AFTER, re.IGNORECASE),
]

# Certification phrases stay on one line.
_CERTIFICATION_PATTERNS = [
    re.compile(r"certified[ \t]+[\w \t]+", re.IGNORECASE),
    re.compile(r"certification[ \t]+in[ \t]+[\w \t]+", re.IGNORECASE),
    re.compile(r"\b(?:aws|microsoft|google)[ \t]+certified\b", re.IGNORECASE),
    re.compile(r"\b(?:pmp|scrum[ \t]+master|csm|psm)\b", re.IGNORECASE),
]

_EMAIL_PATTERN = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")
_PHONE_PATTERN = re.compile(r"(?:\+?\d{1,3}[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}")


def _unique(values: Iterable[str]) -> Tuple[str, ...]:
    """Drop duplicates while keeping first-seen order."""
    return tuple(dict.fromkeys(values))


def _find_all(patterns: List[Pattern[str]], text: str) -> List[str]:
    found: List[str] = []
    for pattern in patterns:
        found.extend(m.group(0).strip() for m in pattern.finditer(text))
    return [f for f in found if f]


def extract_skills(text: str, table: SkillTable = DEFAULT_SKILL_TABLE) -> Tuple[str, ...]:
    """Return canonical ids of every table entry found in ``text``."""
    return tuple(canonical for canonical, pattern in table.matchers() if pattern.search(text))


def extract_experience(text: str) -> int:
    """Largest "N years of experience" style figure in the text, else 0."""
    years = [int(m.group(1)) for pattern in _EXPERIENCE_PATTERNS for m in pattern.finditer(text)]
    return max(years, default=0)


def extract_education(text: str) -> Tuple[str, ...]:
    return _unique(_find_all(_EDUCATION_PATTERNS, text))


def extract_certifications(text: str) -> Tuple[str, ...]:
    return _unique(_find_all(_CERTIFICATION_PATTERNS, text))


def extract_contact_info(text: str) -> ContactInfo:
    emails = _unique(m.group(0) for m in _EMAIL_PATTERN.finditer(text))
    phones = _unique(m.group(0).strip() for m in _PHONE_PATTERN.finditer(text))
    return ContactInfo(emails=emails, phones=phones)


class SkillEntityExtractor:
    """Run every extractor over one normalized text."""

    def __init__(self, table: Optional[SkillTable] = None) -> None:
        self.table = table or DEFAULT_SKILL_TABLE

    def analyze(self, text: str) -> CVAnalysis:
        analysis = CVAnalysis(
            skills=extract_skills(text, self.table),
            experience_years=extract_experience(text),
            education=extract_education(text),
            certifications=extract_certifications(text),
            contact=extract_contact_info(text),
            raw_text=text,
        )
        logger.debug(
            "Analysed CV: %d skills, %d years, %d education, %d certifications",
            len(analysis.skills),
            analysis.experience_years,
            len(analysis.education),
            len(analysis.certifications),
        )
        return analysis


def analyze_cv(text: str, table: Optional[SkillTable] = None) -> CVAnalysis:
    """Analyse already normalized résumé text."""
    return SkillEntityExtractor(table).analyze(text)


def analyze_document(
    data: bytes,
    content_type: str,
    *,
    extractor: Optional[DocumentTextExtractor] = None,
    table: Optional[SkillTable] = None,
) -> CVAnalysis:
    """Extract, normalize and analyse a résumé document in one step.

    Raises:
        UnsupportedFormatError: For content types other than PDF/Word.
        ExtractionError: If the document cannot be decoded.
    """
    text = (extractor or DocumentTextExtractor()).extract(data, content_type)
    return analyze_cv(normalize_text(text), table)
