"""
Skill dictionary used by the rule-based extractor.

The dictionary is a versioned table of :class:`SkillEntry` rows mapping
a canonical skill id to one or more regular expressions.  Entries
without explicit patterns match their canonical id as a literal,
case-insensitively, delimited by non-word characters.  Extra entries can
be loaded from YAML and appended with :meth:`SkillTable.extend` without
touching the extraction code.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Pattern, Tuple

import yaml  # type: ignore

TECHNICAL = "technical"
SOFT = "soft"


def literal_pattern(term: str) -> str:
    """Whole-word pattern for a literal term such as ``c++`` or ``node.js``."""
    return rf"(?<!\w){re.escape(term)}(?!\w)"


@dataclass(frozen=True)
class SkillEntry:
    canonical: str
    category: str = TECHNICAL
    patterns: Tuple[str, ...] = ()

    def compile(self) -> Pattern[str]:
        sources = self.patterns or (literal_pattern(self.canonical),)
        return re.compile("|".join(f"(?:{p})" for p in sources), re.IGNORECASE)


@dataclass
class SkillTable:
    version: str
    entries: List[SkillEntry] = field(default_factory=list)
    _compiled: Optional[List[Tuple[str, Pattern[str]]]] = field(
        default=None, init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        # Canonical ids are unique; the first declaration wins.
        seen = set()
        unique: List[SkillEntry] = []
        for entry in self.entries:
            key = entry.canonical.lower()
            if key in seen:
                continue
            seen.add(key)
            unique.append(SkillEntry(key, entry.category, tuple(entry.patterns)))
        self.entries = unique

    def __len__(self) -> int:
        return len(self.entries)

    @property
    def canonical_ids(self) -> List[str]:
        return [e.canonical for e in self.entries]

    def matchers(self) -> List[Tuple[str, Pattern[str]]]:
        """Compiled ``(canonical, pattern)`` pairs in declaration order."""
        if self._compiled is None:
            self._compiled = [(e.canonical, e.compile()) for e in self.entries]
        return self._compiled

    def extend(self, other: "SkillTable") -> "SkillTable":
        """Return a new table with ``other``'s new entries appended."""
        return SkillTable(
            version=f"{self.version}+{other.version}",
            entries=list(self.entries) + list(other.entries),
        )


def _entries(terms: Iterable[str], category: str) -> List[SkillEntry]:
    return [SkillEntry(term, category) for term in terms]


_TECHNICAL_TERMS = [
    # Programming languages
    "javascript", "python", "java", "c++", "c#", "ruby", "php", "swift",
    "kotlin", "go", "rust", "typescript", "scala", "r", "matlab", "perl",
    "shell", "bash",
    # Web
    "html", "css", "react", "angular", "vue", "node.js", "express", "django",
    "flask", "spring", "asp.net", "laravel", "rails", "next.js", "nuxt.js",
    "gatsby", "svelte", "jquery", "bootstrap", "tailwind", "sass", "less",
    # Databases
    "sql", "mysql", "postgresql", "mongodb", "redis", "elasticsearch",
    "cassandra", "oracle", "sqlite", "dynamodb", "firebase", "mariadb", "neo4j",
    # Cloud and DevOps
    "aws", "azure", "gcp", "docker", "kubernetes", "jenkins", "gitlab",
    "github", "terraform", "ansible", "chef", "puppet", "circleci",
    "travis ci", "nginx", "apache", "linux", "unix", "ci/cd", "devops",
    # Data science and AI
    "machine learning", "deep learning", "tensorflow", "pytorch", "keras",
    "scikit-learn", "pandas", "numpy", "data analysis", "data science", "nlp",
    "computer vision", "ai", "artificial intelligence", "neural networks",
    # Mobile
    "ios", "android", "react native", "flutter", "xamarin", "ionic",
    # Testing
    "jest", "mocha", "chai", "selenium", "cypress", "junit", "pytest",
    "unit testing", "integration testing", "test automation",
    # Tools and methodologies
    "git", "agile", "scrum", "kanban", "jira", "confluence", "slack",
    "rest api", "graphql", "microservices", "api", "json", "xml", "oauth",
    "jwt", "websocket", "grpc",
    # Design
    "ui/ux", "figma", "sketch", "adobe xd", "photoshop", "illustrator",
    "wireframing", "prototyping",
    # Business
    "project management", "leadership", "communication", "problem solving",
    "team collaboration", "analytical thinking", "strategic planning",
]

_SOFT_TERMS = [
    "leadership", "communication", "teamwork", "problem solving",
    "critical thinking", "time management", "adaptability", "creativity",
    "collaboration", "organization", "attention to detail", "analytical",
    "interpersonal", "presentation", "negotiation", "conflict resolution",
    "decision making", "emotional intelligence", "mentoring",
]

DEFAULT_SKILL_TABLE = SkillTable(
    version="1",
    entries=_entries(_TECHNICAL_TERMS, TECHNICAL) + _entries(_SOFT_TERMS, SOFT),
)


def load_skill_table(path: str) -> SkillTable:
    """Load a skill table from YAML.

    The file looks like::

        version: "acme-2"
        skills:
          - canonical: fastapi
          - canonical: k8s
            patterns: ['(?<!\\w)k8s(?!\\w)', '(?<!\\w)kubernetes(?!\\w)']
          - canonical: stakeholder management
            category: soft

    Raises:
        FileNotFoundError: If the file does not exist.
        ValueError: If an entry has no ``canonical`` id.
    """
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"Skill table not found: {path}")
    with open(file_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    entries: List[SkillEntry] = []
    for row in data.get("skills", []) or []:
        canonical = str(row.get("canonical") or "").strip()
        if not canonical:
            raise ValueError(f"Skill entry without canonical id in {path}: {row}")
        entries.append(
            SkillEntry(
                canonical=canonical,
                category=row.get("category", TECHNICAL),
                patterns=tuple(row.get("patterns") or ()),
            )
        )
    return SkillTable(version=str(data.get("version", file_path.stem)), entries=entries)
