"""
Data records exchanged by the cvrank pipeline.

All records are dataclasses.  Records that describe one résumé
(`CVAnalysis`, `ContactInfo`) are frozen because an analysis is created
once and may be cached and handed back in by the caller.  Every output
record exposes ``to_dict()`` returning JSON-ready plain data.
"""

from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ContactInfo:
    emails: Tuple[str, ...] = ()
    phones: Tuple[str, ...] = ()


@dataclass(frozen=True)
class CVAnalysis:
    """Signals extracted from one résumé.

    ``skills`` holds canonical lowercase skill ids in skill-table order;
    ``education`` and ``certifications`` hold the matched phrases
    verbatim.  ``raw_text`` is the normalized résumé text the analysis
    was computed from and is what the semantic score embeds.
    """

    skills: Tuple[str, ...] = ()
    experience_years: int = 0
    education: Tuple[str, ...] = ()
    certifications: Tuple[str, ...] = ()
    contact: ContactInfo = field(default_factory=ContactInfo)
    raw_text: str = ""

    def to_dict(self) -> Dict[str, object]:
        data = asdict(self)
        for key in ("skills", "education", "certifications"):
            data[key] = list(data[key])
        data["contact"] = {
            "emails": list(self.contact.emails),
            "phones": list(self.contact.phones),
        }
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "CVAnalysis":
        """Rebuild a cached analysis, e.g. one loaded back from JSON."""
        contact = data.get("contact") or {}
        return cls(
            skills=tuple(data.get("skills") or ()),
            experience_years=int(data.get("experience_years") or 0),
            education=tuple(data.get("education") or ()),
            certifications=tuple(data.get("certifications") or ()),
            contact=ContactInfo(
                emails=tuple(contact.get("emails") or ()),
                phones=tuple(contact.get("phones") or ()),
            ),
            raw_text=str(data.get("raw_text") or ""),
        )


class ExperienceLevel(str, Enum):
    ENTRY = "entry"
    MID = "mid"
    SENIOR = "senior"
    EXECUTIVE = "executive"

    @property
    def required_years(self) -> int:
        return _REQUIRED_YEARS[self]


_REQUIRED_YEARS = {
    ExperienceLevel.ENTRY: 0,
    ExperienceLevel.MID: 3,
    ExperienceLevel.SENIOR: 7,
    ExperienceLevel.EXECUTIVE: 10,
}


def _parse_level(raw: object) -> Optional[ExperienceLevel]:
    """Coerce a job-store level value; empty or unknown values mean unset."""
    if not raw:
        return None
    if isinstance(raw, ExperienceLevel):
        return raw
    try:
        return ExperienceLevel(str(raw).strip().lower())
    except ValueError:
        logger.warning("Unknown experience level %r; treating as unset", raw)
        return None


@dataclass
class JobSignal:
    """The parts of a job posting used for comparison."""

    title: str
    description: str = ""
    skills: List[str] = field(default_factory=list)
    requirements: List[str] = field(default_factory=list)
    experience_level: Optional[ExperienceLevel] = None

    @property
    def required_years(self) -> int:
        """Years of experience implied by the level; 0 when unset."""
        return self.experience_level.required_years if self.experience_level else 0

    def __post_init__(self) -> None:
        self.experience_level = _parse_level(self.experience_level)

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "JobSignal":
        """Build a job from a job-store record.

        Missing list fields become empty lists and an unknown
        ``experience_level`` is treated as unset.
        """
        return cls(
            title=str(data.get("title") or ""),
            description=str(data.get("description") or ""),
            skills=[str(s) for s in data.get("skills") or []],
            requirements=[str(r) for r in data.get("requirements") or []],
            experience_level=data.get("experience_level"),
        )


class Tier(str, Enum):
    EXCELLENT = "excellent"
    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"


@dataclass
class ScoreBreakdown:
    semantic_match: int
    skill_match: int
    experience_match: int
    education_match: int


@dataclass
class RankingResult:
    """Score of one candidate against one job.

    ``tier`` and ``insights`` stay unset until the result has been
    post-processed by the ranking aggregator.
    """

    overall_score: int
    breakdown: ScoreBreakdown
    matched_skills: List[str] = field(default_factory=list)
    missing_skills: List[str] = field(default_factory=list)
    tier: Optional[Tier] = None
    insights: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, object]:
        data = asdict(self)
        data["tier"] = self.tier.value if self.tier else None
        return data


@dataclass
class ResumeDocument:
    data: bytes
    content_type: str


@dataclass
class Application:
    """One candidate's application as supplied by the caller."""

    application_id: str
    applicant_id: Optional[str] = None
    applicant_name: str = "Unknown"
    resume: Optional[ResumeDocument] = None
    cv_analysis: Optional[CVAnalysis] = None

    @property
    def has_resume(self) -> bool:
        return self.resume is not None and bool(self.resume.data)


@dataclass
class CandidateFailure:
    application_id: str
    kind: str
    message: str


@dataclass
class CandidateOutcome:
    """Explicit per-candidate result: either a score or a failure."""

    application: Application
    result: Optional[RankingResult] = None
    failure: Optional[CandidateFailure] = None

    @property
    def success(self) -> bool:
        return self.result is not None

    def to_dict(self) -> Dict[str, object]:
        return {
            "success": self.success,
            "application_id": self.application.application_id,
            "ranking": self.result.to_dict() if self.result else None,
            "error": asdict(self.failure) if self.failure else None,
        }


@dataclass
class RankedCandidate:
    rank: int
    application_id: str
    applicant_id: Optional[str]
    applicant_name: str
    result: RankingResult

    def to_dict(self) -> Dict[str, object]:
        data: Dict[str, object] = {
            "rank": self.rank,
            "application_id": self.application_id,
            "applicant_id": self.applicant_id,
            "applicant_name": self.applicant_name,
        }
        data.update(self.result.to_dict())
        return data


@dataclass
class TierSummary:
    total: int = 0
    excellent: int = 0
    good: int = 0
    fair: int = 0
    poor: int = 0

    @classmethod
    def from_results(cls, results: Iterable[RankingResult]) -> "TierSummary":
        summary = cls()
        for result in results:
            summary.total += 1
            if result.tier is not None:
                setattr(summary, result.tier.value, getattr(summary, result.tier.value) + 1)
        return summary


@dataclass
class BatchRankingResult:
    rankings: List[RankedCandidate] = field(default_factory=list)
    summary: TierSummary = field(default_factory=TierSummary)
    failures: List[CandidateFailure] = field(default_factory=list)
    skipped: int = 0

    @property
    def failed(self) -> int:
        return len(self.failures)

    def to_dict(self) -> Dict[str, object]:
        return {
            "rankings": [r.to_dict() for r in self.rankings],
            "summary": asdict(self.summary),
            "failed": self.failed,
            "failures": [asdict(f) for f in self.failures],
            "skipped": self.skipped,
        }
