"""Tests for the rule-based résumé analyser."""

from __future__ import annotations

import re
from typing import Callable

import pytest  # type: ignore

from cvrank.errors import UnsupportedFormatError
from cvrank.resume.analyze import (
    SkillEntityExtractor,
    analyze_cv,
    analyze_document,
    extract_certifications,
    extract_contact_info,
    extract_education,
    extract_experience,
    extract_skills,
)
from cvrank.resume.extract_text import DOCX_MIME
from cvrank.resume.normalize import normalize_text
from cvrank.schema import CVAnalysis


def test_sample_cv_analysis(sample_cv: str) -> None:
    text = normalize_text(sample_cv)
    analysis = analyze_cv(text)
    assert analysis.skills == (
        "javascript", "python", "typescript",
        "react", "angular", "vue", "node.js", "express", "django",
        "postgresql", "mongodb", "redis",
        "aws", "docker", "kubernetes", "ci/cd",
        "git", "agile", "scrum",
    )
    assert analysis.experience_years == 5
    assert analysis.education == ("Bachelor of Science",)
    assert analysis.certifications == (
        "Certified Solutions Architect",
        "Certified Scrum Master",
        "AWS Certified",
        "Scrum Master",
    )
    assert analysis.contact.emails == ("john.doe@example.com",)
    assert analysis.contact.phones == ("+1 555-123-4567",)
    assert analysis.raw_text == text


def test_skills_are_whole_words() -> None:
    skills = extract_skills("Wrote JavaScript and some C++ plus C# tooling")
    assert "javascript" in skills
    assert "java" not in skills
    assert "c++" in skills
    assert "c#" in skills


def test_symbol_skills_match_where_word_boundaries_would_not() -> None:
    # A trailing \b after "+" or "#" only matches when a word character follows.
    assert re.search(r"\bc\+\+\b", "c++ developer") is None
    assert "c++" in extract_skills("C++ developer")
    assert "c#" in extract_skills("C# tooling")
    assert "node.js" in extract_skills("node.js services")
    assert "java" not in extract_skills("javascript only")


def test_skills_are_unique_canonical_ids() -> None:
    skills = extract_skills("Python, PYTHON and python. Leadership and leadership.")
    assert skills.count("python") == 1
    assert skills.count("leadership") == 1


def test_experience_takes_the_largest_figure() -> None:
    text = "3 yrs of experience in support. Experience: 8 years in backend. 10+ years experience overall"
    assert extract_experience(text) == 10
    assert extract_experience("Experience: 4 years") == 4
    assert extract_experience("No numbers here") == 0


def test_education_phrases() -> None:
    text = "Master of Science in Physics\nB.S. Mathematics\nPh.D. candidate\nMBA 2019"
    education = extract_education(text)
    assert "Master of Science" in education
    assert "B.S." in education
    assert "Ph.D." in education
    assert "MBA" in education


def test_education_ignores_look_alikes() -> None:
    text = "Certified Scrum Master who mastered many jobs as a webmaster"
    assert extract_education(text) == ()


def test_certifications_stay_on_one_line() -> None:
    text = "Certified Kubernetes Administrator\nLed migration work\nCertification in Data Engineering"
    certs = extract_certifications(text)
    assert "Certified Kubernetes Administrator" in certs
    assert "Certification in Data Engineering" in certs
    assert all("\n" not in c for c in certs)


def test_contact_info_deduplicates() -> None:
    text = "a@b.io, (555) 123-4567, again a@b.io and 555.123.4567"
    contact = extract_contact_info(text)
    assert contact.emails == ("a@b.io",)
    assert "(555) 123-4567" in contact.phones
    assert "555.123.4567" in contact.phones


def test_empty_text_gives_empty_analysis() -> None:
    analysis = SkillEntityExtractor().analyze("")
    assert analysis == CVAnalysis()


def test_analyze_document_from_word(make_docx: Callable[..., bytes]) -> None:
    data = make_docx(["Python and Docker engineer", "6 years of experience"])
    analysis = analyze_document(data, DOCX_MIME)
    assert analysis.skills == ("python", "docker")
    assert analysis.experience_years == 6


def test_analyze_document_rejects_unknown_types() -> None:
    with pytest.raises(UnsupportedFormatError):
        analyze_document(b"plain", "text/plain")


def test_analysis_dict_round_trip(sample_cv: str) -> None:
    analysis = analyze_cv(normalize_text(sample_cv))
    assert CVAnalysis.from_dict(analysis.to_dict()) == analysis
