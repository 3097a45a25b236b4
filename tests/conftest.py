"""Shared fixtures for the cvrank test-suite.

No fixture downloads a model: embedding engines are built on the
offline hashing provider or on small fakes defined here.
"""

from __future__ import annotations

import io
import threading
from typing import Callable, Dict, List, Optional, Sequence

import docx  # type: ignore
import numpy as np
import pytest

from cvrank.rank.embed import EmbeddingEngine, EmbeddingProvider, HashingProvider
from cvrank.schema import JobSignal

SAMPLE_CV = """John Doe
Software Engineer
john.doe@example.com | +1 555-123-4567

EXPERIENCE
Senior Full Stack Developer at Tech Corp (2020-2024)
- Developed web applications using React, Node.js, and MongoDB
- Led a team of 5 developers
- Implemented CI/CD pipelines using Docker and Kubernetes
- 5 years of experience in software development

SKILLS
- JavaScript, TypeScript, Python
- React, Angular, Vue.js
- Node.js, Express, Django
- MongoDB, PostgreSQL, Redis
- AWS, Docker, Kubernetes
- Git, Agile, Scrum

EDUCATION
Bachelor of Science in Computer Science
University of Technology (2015-2019)

CERTIFICATIONS
- AWS Certified Solutions Architect
- Certified Scrum Master
"""

DOCX_MIME = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


class RecordingProvider(EmbeddingProvider):
    """Fake provider that records every text it encodes.

    Vectors come from ``vectors`` when the text is a key there and from
    a hashing embedding otherwise.
    """

    def __init__(self, vectors: Optional[Dict[str, Sequence[float]]] = None, dim: int = 8) -> None:
        self.vectors = {k: np.asarray(v, dtype=np.float32) for k, v in (vectors or {}).items()}
        self._fallback = HashingProvider(dim)
        self.calls: List[str] = []
        self._lock = threading.Lock()

    @property
    def dimension(self) -> int:
        return self._fallback.dimension

    def encode(self, text: str) -> np.ndarray:
        with self._lock:
            self.calls.append(text)
        if text in self.vectors:
            return self.vectors[text]
        return self._fallback.encode(text)


@pytest.fixture
def sample_cv() -> str:
    return SAMPLE_CV


@pytest.fixture
def sample_job() -> JobSignal:
    return JobSignal.from_dict(
        {
            "title": "Senior Full Stack Developer",
            "description": "We are looking for an experienced Full Stack Developer to join our team.",
            "skills": ["JavaScript", "React", "Node.js", "MongoDB", "AWS", "Docker"],
            "requirements": [
                "Bachelor's degree in Computer Science or related field",
                "5+ years of experience in web development",
                "Strong knowledge of React and Node.js",
            ],
            "experience_level": "senior",
        }
    )


@pytest.fixture
def hashing_engine() -> EmbeddingEngine:
    return EmbeddingEngine(lambda: HashingProvider(64))


@pytest.fixture
def make_docx() -> Callable[..., bytes]:
    """Return a builder producing .docx bytes from paragraphs and table rows."""

    def _build(paragraphs: Sequence[str], table_rows: Sequence[Sequence[str]] = ()) -> bytes:
        document = docx.Document()
        for paragraph in paragraphs:
            document.add_paragraph(paragraph)
        if table_rows:
            table = document.add_table(rows=len(table_rows), cols=len(table_rows[0]))
            for r, row in enumerate(table_rows):
                for c, value in enumerate(row):
                    table.cell(r, c).text = value
        buffer = io.BytesIO()
        document.save(buffer)
        return buffer.getvalue()

    return _build
