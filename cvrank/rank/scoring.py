"""
Composite candidate scoring.

Combines four sub-scores, each an integer in ``[0, 100]``, into one
``overall_score`` using fixed weights that sum to 1.0:

* ``semantic`` (0.40) – embedding similarity of the résumé text to the
  composed job text, clamped to ``[0, 100]``.
* ``skills`` (0.35) – share of the job's skills matched by a candidate
  skill under the bidirectional substring rule.
* ``experience`` (0.15) – extracted years against the years implied by
  the job's experience level.
* ``education`` (0.10) – highest degree level on each side; partial
  credit is scaled to at most 80.

A job that lists no skills scores 0 on ``skills``, not 100.
"""

from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from ..schema import CVAnalysis, JobSignal, RankingResult, ScoreBreakdown
from .embed import EmbeddingEngine, cosine_similarity, round_half_up, similarity_to_percent

logger = logging.getLogger(__name__)

WEIGHTS: Dict[str, float] = {
    "semantic": 0.40,
    "skills": 0.35,
    "experience": 0.15,
    "education": 0.10,
}

# Checked in order; the highest level found wins.
EDUCATION_LEVELS: Tuple[Tuple[str, int], ...] = (
    ("phd", 5),
    ("doctorate", 5),
    ("doctoral", 5),
    ("master", 4),
    ("mba", 4),
    ("bachelor", 3),
    ("associate", 2),
    ("diploma", 1),
)

EDUCATION_PARTIAL_CAP = 80


def skills_overlap(candidate_skill: str, job_skill: str) -> bool:
    """True when either skill contains the other, ignoring case."""
    a = candidate_skill.lower()
    b = job_skill.lower()
    return a in b or b in a


def _is_covered(job_skill: str, candidate_skills: Sequence[str]) -> bool:
    return any(skills_overlap(c, job_skill) for c in candidate_skills)


def skill_match_score(candidate_skills: Sequence[str], job_skills: Sequence[str]) -> int:
    if not job_skills:
        return 0
    matched = sum(1 for job_skill in job_skills if _is_covered(job_skill, candidate_skills))
    return round_half_up(matched / len(job_skills) * 100)


def matched_and_missing_skills(
    candidate_skills: Sequence[str], job_skills: Sequence[str]
) -> Tuple[List[str], List[str]]:
    """Split skills using the same rule as :func:`skill_match_score`.

    Returns:
        ``(matched, missing)``: candidate skills that cover some job
        skill, and job skills no candidate skill covers (job spelling).
    """
    matched = [c for c in candidate_skills if any(skills_overlap(c, j) for j in job_skills)]
    missing = [j for j in job_skills if not _is_covered(j, candidate_skills)]
    return matched, missing


def experience_match_score(candidate_years: int, required_years: int) -> int:
    if required_years <= 0:
        return 100
    if candidate_years >= required_years:
        return 100
    if candidate_years <= 0:
        return 0
    return round_half_up(candidate_years / required_years * 100)


def education_level(phrases: Iterable[str]) -> int:
    """Highest ordinal degree level mentioned in ``phrases`` (0 if none)."""
    level = 0
    for phrase in phrases:
        lowered = phrase.lower()
        for keyword, value in EDUCATION_LEVELS:
            if keyword in lowered and value > level:
                level = value
    return level


def education_level_score(candidate_level: int, required_level: int) -> int:
    if required_level <= 0:
        return 100
    if candidate_level <= 0:
        return 0
    if candidate_level >= required_level:
        return 100
    return round_half_up(candidate_level / required_level * EDUCATION_PARTIAL_CAP)


def education_match_score(candidate_education: Iterable[str], requirements: Iterable[str]) -> int:
    return education_level_score(education_level(candidate_education), education_level(requirements))


def composite_score(semantic: int, skills: int, experience: int, education: int) -> int:
    return round_half_up(
        semantic * WEIGHTS["semantic"]
        + skills * WEIGHTS["skills"]
        + experience * WEIGHTS["experience"]
        + education * WEIGHTS["education"]
    )


def compose_job_text(job: JobSignal) -> str:
    """Text embedded for the job side of the semantic score."""
    level = job.experience_level.value if job.experience_level else ""
    lines = [
        job.title,
        job.description,
        f"Skills: {', '.join(job.skills)}",
        f"Requirements: {', '.join(job.requirements)}",
        f"Experience Level: {level}",
    ]
    return "\n".join(lines).strip()


class ScoringEngine:
    """Score one analysed résumé against one job."""

    def __init__(self, embeddings: EmbeddingEngine) -> None:
        self.embeddings = embeddings

    def score(self, analysis: CVAnalysis, job: JobSignal) -> RankingResult:
        semantic = self.embeddings.similarity_percent(analysis.raw_text, compose_job_text(job))
        return self.combine(semantic, analysis, job)

    async def aembed_job(self, job: JobSignal) -> np.ndarray:
        return await self.embeddings.aembed(compose_job_text(job))

    async def ascore(
        self, analysis: CVAnalysis, job: JobSignal, job_vector: Optional[np.ndarray] = None
    ) -> RankingResult:
        """Async :meth:`score`.

        A ``job_vector`` from :meth:`aembed_job` skips re-embedding the job
        text when many candidates are scored against the same job.
        """
        if job_vector is None:
            semantic = await self.embeddings.asimilarity_percent(analysis.raw_text, compose_job_text(job))
        else:
            cv_vector = await self.embeddings.aembed(analysis.raw_text)
            semantic = similarity_to_percent(cosine_similarity(cv_vector, job_vector))
        return self.combine(semantic, analysis, job)

    def combine(self, semantic_percent: int, analysis: CVAnalysis, job: JobSignal) -> RankingResult:
        """Build the result from a precomputed semantic percentage."""
        semantic = max(0, min(100, semantic_percent))
        skills = skill_match_score(analysis.skills, job.skills)
        experience = experience_match_score(analysis.experience_years, job.required_years)
        education = education_match_score(analysis.education, job.requirements)
        matched, missing = matched_and_missing_skills(analysis.skills, job.skills)
        result = RankingResult(
            overall_score=composite_score(semantic, skills, experience, education),
            breakdown=ScoreBreakdown(
                semantic_match=semantic,
                skill_match=skills,
                experience_match=experience,
                education_match=education,
            ),
            matched_skills=matched,
            missing_skills=missing,
        )
        logger.debug(
            "Scored candidate: overall=%d semantic=%d skills=%d experience=%d education=%d",
            result.overall_score, semantic, skills, experience, education,
        )
        return result
