"""
Batch ranking of applications for one job.

Every application is scored independently (in parallel up to a
concurrency limit), and each produces an explicit `CandidateOutcome`:
either a scored result or a recorded failure.  A failed candidate is
excluded from the ranking and listed in ``failures``; it never aborts
the batch.  Applications without résumé data are skipped and counted.

Successful results are sorted by ``overall_score`` descending (stable,
so ties keep input order), numbered from 1, assigned a tier and given
rule-based insights.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
import threading
from typing import List, Optional, Sequence

import numpy as np

from ..errors import BatchCancelledError, CVRankError
from ..resume.analyze import analyze_document
from ..resume.extract_text import DocumentTextExtractor
from ..resume.skill_table import SkillTable
from ..schema import (
    Application,
    BatchRankingResult,
    CandidateFailure,
    CandidateOutcome,
    JobSignal,
    RankedCandidate,
    RankingResult,
    Tier,
    TierSummary,
)
from .embed import DEFAULT_CONCURRENCY
from .scoring import ScoringEngine

logger = logging.getLogger(__name__)

# Inclusive lower bounds, checked top down.
TIER_THRESHOLDS = (
    (85, Tier.EXCELLENT),
    (70, Tier.GOOD),
    (55, Tier.FAIR),
)

TIER_HEADLINES = {
    Tier.EXCELLENT: "Highly qualified candidate with strong alignment to job requirements",
    Tier.GOOD: "Well-qualified candidate with good fit for the position",
    Tier.FAIR: "Candidate meets some requirements but may need additional evaluation",
    Tier.POOR: "Candidate may not be the best fit for this position",
}


def ranking_tier(score: int) -> Tier:
    for threshold, tier in TIER_THRESHOLDS:
        if score >= threshold:
            return tier
    return Tier.POOR


def generate_insights(result: RankingResult) -> List[str]:
    """Advisory sentences describing a result; not used for scoring."""
    insights = [TIER_HEADLINES[ranking_tier(result.overall_score)]]
    skill = result.breakdown.skill_match
    if skill >= 80:
        insights.append("Excellent skill match")
    elif skill < 50:
        insights.append(f"Missing {len(result.missing_skills)} key skills")
    experience = result.breakdown.experience_match
    if experience >= 100:
        insights.append("Meets or exceeds experience requirements")
    elif experience < 70:
        insights.append("May need more experience for this role")
    return insights


def annotate(result: RankingResult) -> RankingResult:
    """Copy of ``result`` with tier and insights filled in."""
    return dataclasses.replace(
        result,
        tier=ranking_tier(result.overall_score),
        insights=generate_insights(result),
    )


def _check_cancelled(cancel_event: Optional[threading.Event]) -> None:
    if cancel_event is not None and cancel_event.is_set():
        raise BatchCancelledError("Batch ranking cancelled")


class RankingAggregator:
    """Score and rank a pool of applications against one job.

    Args:
        scoring: Engine used for each (candidate, job) pair.
        extractor: Document decoder for applications without analysis.
        skill_table: Skill table for résumé analysis; default table if None.
        concurrency: Default number of candidates scored at once.
    """

    def __init__(
        self,
        scoring: ScoringEngine,
        *,
        extractor: Optional[DocumentTextExtractor] = None,
        skill_table: Optional[SkillTable] = None,
        concurrency: int = DEFAULT_CONCURRENCY,
    ) -> None:
        self.scoring = scoring
        self.extractor = extractor or DocumentTextExtractor()
        self.skill_table = skill_table
        self.concurrency = concurrency

    async def _embed_job(self, job: JobSignal) -> Optional[np.ndarray]:
        # On failure each candidate embeds the job itself and records its own error.
        try:
            return await self.scoring.aembed_job(job)
        except CVRankError as exc:
            logger.warning("Could not embed job text for the batch: %s", exc)
            return None

    async def score_application(
        self,
        application: Application,
        job: JobSignal,
        *,
        job_vector: Optional[np.ndarray] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> CandidateOutcome:
        """Score one application, returning a failure outcome instead of raising.

        Args:
            application: The candidate to score.
            job: The job to score against.
            job_vector: Precomputed embedding of the job text, shared by a batch.
            cancel_event: Checked again once the résumé has been analysed.

        Raises:
            BatchCancelledError: If ``cancel_event`` is set before scoring.
        """
        app_id = application.application_id
        try:
            analysis = application.cv_analysis
            if analysis is None:
                if not application.has_resume:
                    return CandidateOutcome(
                        application,
                        failure=CandidateFailure(app_id, "missing_resume", "No CV data available"),
                    )
                resume = application.resume
                analysis = await asyncio.to_thread(
                    analyze_document,
                    resume.data,
                    resume.content_type,
                    extractor=self.extractor,
                    table=self.skill_table,
                )
            _check_cancelled(cancel_event)
            result = await self.scoring.ascore(analysis, job, job_vector=job_vector)
        except BatchCancelledError:
            raise
        except Exception as exc:  # noqa: BLE001
            logger.error("Failed to score application %s: %s", app_id, exc)
            kind = getattr(exc, "kind", type(exc).__name__)
            return CandidateOutcome(application, failure=CandidateFailure(app_id, kind, str(exc)))
        return CandidateOutcome(application, result=annotate(result))

    async def arank_batch(
        self,
        applications: Sequence[Application],
        job: JobSignal,
        *,
        concurrency: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> BatchRankingResult:
        """Rank ``applications`` for ``job``.

        The job text is embedded once and shared by every candidate.
        Cancelling the awaiting task, or setting ``cancel_event``, stops
        the remaining work; partial results are discarded.

        Raises:
            BatchCancelledError: If ``cancel_event`` is set mid-batch.
        """
        limit = concurrency or self.concurrency
        semaphore = asyncio.Semaphore(limit)
        eligible = [a for a in applications if a.has_resume]
        skipped = len(applications) - len(eligible)
        if skipped:
            logger.warning("Skipping %d applications without resume data", skipped)
        job_vector = await self._embed_job(job) if eligible else None

        async def _bounded(application: Application) -> CandidateOutcome:
            async with semaphore:
                _check_cancelled(cancel_event)
                return await self.score_application(
                    application, job, job_vector=job_vector, cancel_event=cancel_event
                )

        tasks = [asyncio.ensure_future(_bounded(a)) for a in eligible]
        try:
            outcomes: List[CandidateOutcome] = list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            raise
        _check_cancelled(cancel_event)

        succeeded = [o for o in outcomes if o.success]
        failures = [o.failure for o in outcomes if o.failure is not None]
        # sorted() is stable, so equal scores keep their input order.
        succeeded = sorted(succeeded, key=lambda o: o.result.overall_score, reverse=True)
        rankings = [
            RankedCandidate(
                rank=index + 1,
                application_id=o.application.application_id,
                applicant_id=o.application.applicant_id,
                applicant_name=o.application.applicant_name,
                result=o.result,
            )
            for index, o in enumerate(succeeded)
        ]
        batch = BatchRankingResult(
            rankings=rankings,
            summary=TierSummary.from_results(r.result for r in rankings),
            failures=failures,
            skipped=skipped,
        )
        logger.info(
            "Ranked %d candidates (%d failed, %d skipped, concurrency=%d)",
            len(rankings), batch.failed, skipped, limit,
        )
        return batch

    def rank_batch(
        self,
        applications: Sequence[Application],
        job: JobSignal,
        *,
        concurrency: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> BatchRankingResult:
        """Blocking wrapper around :meth:`arank_batch` for synchronous callers."""
        return asyncio.run(
            self.arank_batch(applications, job, concurrency=concurrency, cancel_event=cancel_event)
        )
