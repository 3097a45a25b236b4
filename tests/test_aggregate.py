"""
Tests for tiering, insights and concurrent batch ranking.

Most batch tests use a stub scoring engine that returns a fixed overall
score per résumé so ordering and failure handling can be asserted
exactly; one end-to-end test runs real Word documents through the
hashing embedding engine.
"""

from __future__ import annotations

import asyncio
import json
import threading
from typing import Callable, Dict, Union

import pytest  # type: ignore

from cvrank.errors import BatchCancelledError, ExtractionError
from cvrank.rank.aggregate import RankingAggregator, annotate, generate_insights, ranking_tier
from cvrank.rank.embed import EmbeddingEngine
from cvrank.rank.scoring import ScoringEngine, compose_job_text
from cvrank.resume.extract_text import DOCX_MIME, DocumentTextExtractor
from cvrank.schema import (
    Application,
    CVAnalysis,
    JobSignal,
    RankingResult,
    ResumeDocument,
    ScoreBreakdown,
    Tier,
)

from conftest import RecordingProvider


def _result(overall: int, skill: int = 60, experience: int = 80, missing=()) -> RankingResult:
    return RankingResult(
        overall_score=overall,
        breakdown=ScoreBreakdown(overall, skill, experience, 100),
        missing_skills=list(missing),
    )


class StubScoring:
    """Scores analyses by looking up their raw text."""

    def __init__(self, scores: Dict[str, Union[int, Exception]], delay: float = 0.0) -> None:
        self.scores = scores
        self.delay = delay
        self.in_flight = 0
        self.max_in_flight = 0

    async def aembed_job(self, job: JobSignal) -> None:
        return None

    async def ascore(self, analysis: CVAnalysis, job: JobSignal, job_vector=None) -> RankingResult:
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            value = self.scores[analysis.raw_text]
            if isinstance(value, Exception):
                raise value
            return _result(value)
        finally:
            self.in_flight -= 1


def _app(app_id: str, text: str = "", resume: bool = True) -> Application:
    document = ResumeDocument(b"%PDF-stub", "application/pdf") if resume else None
    return Application(
        application_id=app_id,
        applicant_id=f"user-{app_id}",
        applicant_name=f"Candidate {app_id}",
        resume=document,
        cv_analysis=CVAnalysis(raw_text=text or app_id),
    )


@pytest.mark.parametrize(
    "score, tier",
    [(100, Tier.EXCELLENT), (85, Tier.EXCELLENT), (84, Tier.GOOD), (70, Tier.GOOD),
     (69, Tier.FAIR), (55, Tier.FAIR), (54, Tier.POOR), (0, Tier.POOR)],
)
def test_ranking_tier_boundaries(score: int, tier: Tier) -> None:
    assert ranking_tier(score) is tier


def test_insights_for_strong_candidate() -> None:
    insights = generate_insights(_result(90, skill=85, experience=100))
    assert insights == [
        "Highly qualified candidate with strong alignment to job requirements",
        "Excellent skill match",
        "Meets or exceeds experience requirements",
    ]


def test_insights_for_weak_candidate() -> None:
    insights = generate_insights(_result(40, skill=30, experience=50, missing=["AWS", "Docker", "Go"]))
    assert insights == [
        "Candidate may not be the best fit for this position",
        "Missing 3 key skills",
        "May need more experience for this role",
    ]


def test_insights_middle_band_adds_nothing() -> None:
    assert generate_insights(_result(72, skill=60, experience=80)) == [
        "Well-qualified candidate with good fit for the position"
    ]


def test_annotate_copies_result() -> None:
    original = _result(60)
    annotated = annotate(original)
    assert annotated.tier is Tier.FAIR
    assert annotated.insights
    assert original.tier is None


def test_batch_sorted_and_ranked(sample_job: JobSignal) -> None:
    scoring = StubScoring({"a": 50, "b": 90, "c": 70, "d": 90})
    aggregator = RankingAggregator(scoring)  # type: ignore[arg-type]
    batch = aggregator.rank_batch([_app("a"), _app("b"), _app("c"), _app("d")], sample_job)
    assert [r.application_id for r in batch.rankings] == ["b", "d", "c", "a"]
    assert [r.rank for r in batch.rankings] == [1, 2, 3, 4]
    assert batch.rankings[0].applicant_name == "Candidate b"
    assert batch.rankings[0].result.tier is Tier.EXCELLENT
    assert batch.summary.total == 4
    assert (batch.summary.excellent, batch.summary.good, batch.summary.fair, batch.summary.poor) == (2, 1, 0, 1)
    assert batch.failed == 0 and batch.skipped == 0


def test_applications_without_resume_are_skipped(sample_job: JobSignal) -> None:
    scoring = StubScoring({"a": 60, "b": 80})
    aggregator = RankingAggregator(scoring)  # type: ignore[arg-type]
    batch = aggregator.rank_batch([_app("a"), _app("b", resume=False)], sample_job)
    assert [r.application_id for r in batch.rankings] == ["a"]
    assert batch.skipped == 1
    assert batch.summary.total == 1


def test_failures_are_isolated(sample_job: JobSignal) -> None:
    scoring = StubScoring({"a": 60, "b": ExtractionError("Failed to parse PDF file"), "c": ValueError("odd")})
    aggregator = RankingAggregator(scoring)  # type: ignore[arg-type]
    batch = aggregator.rank_batch([_app("a"), _app("b"), _app("c")], sample_job)
    assert [r.application_id for r in batch.rankings] == ["a"]
    assert batch.failed == 2
    kinds = {f.application_id: f.kind for f in batch.failures}
    assert kinds == {"b": "extraction_failed", "c": "ValueError"}
    json.dumps(batch.to_dict())


def test_unreadable_resume_becomes_failure(sample_job: JobSignal, hashing_engine: EmbeddingEngine) -> None:
    aggregator = RankingAggregator(ScoringEngine(hashing_engine))
    apps = [
        Application("corrupt", resume=ResumeDocument(b"not a pdf", "application/pdf")),
        Application("text", resume=ResumeDocument(b"plain text", "text/plain")),
    ]
    batch = aggregator.rank_batch(apps, sample_job)
    assert batch.rankings == []
    assert sorted(f.kind for f in batch.failures) == ["extraction_failed", "unsupported_format"]


def test_concurrency_is_bounded(sample_job: JobSignal) -> None:
    scoring = StubScoring({str(i): i for i in range(10)}, delay=0.01)
    aggregator = RankingAggregator(scoring, concurrency=4)  # type: ignore[arg-type]
    batch = aggregator.rank_batch([_app(str(i)) for i in range(10)], sample_job, concurrency=3)
    assert len(batch.rankings) == 10
    assert 1 <= scoring.max_in_flight <= 3


def test_cancel_event_stops_batch(sample_job: JobSignal) -> None:
    cancel = threading.Event()
    cancel.set()
    aggregator = RankingAggregator(StubScoring({"a": 60}))  # type: ignore[arg-type]
    with pytest.raises(BatchCancelledError):
        aggregator.rank_batch([_app("a")], sample_job, cancel_event=cancel)


def test_task_cancellation_propagates(sample_job: JobSignal) -> None:
    scoring = StubScoring({"a": 60, "b": 70}, delay=10)
    aggregator = RankingAggregator(scoring)  # type: ignore[arg-type]

    async def _run() -> None:
        task = asyncio.ensure_future(aggregator.arank_batch([_app("a"), _app("b")], sample_job))
        await asyncio.sleep(0.05)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(_run())
    assert scoring.in_flight == 0


def test_cancel_event_set_while_candidates_run(sample_job: JobSignal) -> None:
    """Every candidate is already scoring when the caller cancels."""
    cancel = threading.Event()
    scoring = StubScoring({"a": 60, "b": 70, "c": 80}, delay=0.5)
    aggregator = RankingAggregator(scoring, concurrency=4)  # type: ignore[arg-type]
    timer = threading.Timer(0.05, cancel.set)
    timer.start()
    try:
        with pytest.raises(BatchCancelledError):
            aggregator.rank_batch([_app("a"), _app("b"), _app("c")], sample_job, cancel_event=cancel)
    finally:
        timer.cancel()
    assert scoring.max_in_flight == 3


def test_cancel_event_checked_after_resume_analysis(sample_job: JobSignal, make_docx: Callable[..., bytes]) -> None:
    cancel = threading.Event()
    scoring = StubScoring({})

    class CancellingExtractor(DocumentTextExtractor):
        def extract(self, data: bytes, content_type: str) -> str:
            cancel.set()
            return super().extract(data, content_type)

    aggregator = RankingAggregator(scoring, extractor=CancellingExtractor())  # type: ignore[arg-type]
    application = Application("a", resume=ResumeDocument(make_docx(["Python developer"]), DOCX_MIME))
    with pytest.raises(BatchCancelledError):
        aggregator.rank_batch([application], sample_job, cancel_event=cancel)
    assert scoring.max_in_flight == 0


def test_job_text_embedded_once_per_batch(sample_job: JobSignal) -> None:
    provider = RecordingProvider(dim=32)
    engine = EmbeddingEngine(lambda: provider)
    aggregator = RankingAggregator(ScoringEngine(engine), concurrency=2)
    texts = ["python docker", "react node.js", "aws kubernetes"]
    apps = [_app(str(i), text) for i, text in enumerate(texts)]
    batch = aggregator.rank_batch(apps, sample_job)
    job_text = compose_job_text(sample_job)
    assert provider.calls.count(job_text) == 1
    assert len(provider.calls) == len(texts) + 1
    # Sharing the job vector does not change the scores.
    single = ScoringEngine(engine)
    expected = {
        str(i): single.score(CVAnalysis(raw_text=text), sample_job).overall_score
        for i, text in enumerate(texts)
    }
    assert {r.application_id: r.result.overall_score for r in batch.rankings} == expected


def test_end_to_end_with_word_resumes(
    sample_cv: str,
    sample_job: JobSignal,
    hashing_engine: EmbeddingEngine,
    make_docx: Callable[..., bytes],
) -> None:
    strong = make_docx(sample_cv.splitlines())
    weak = make_docx(["Barista", "2 years of experience serving coffee"])
    apps = [
        Application("weak", resume=ResumeDocument(weak, DOCX_MIME)),
        Application("strong", applicant_id="u-1", applicant_name="John Doe", resume=ResumeDocument(strong, DOCX_MIME)),
        Application("none"),
    ]
    batch = RankingAggregator(ScoringEngine(hashing_engine)).rank_batch(apps, sample_job)
    assert [r.application_id for r in batch.rankings] == ["strong", "weak"]
    assert batch.skipped == 1
    top = batch.rankings[0]
    assert top.result.breakdown.skill_match == 100
    assert top.result.tier is not None
    payload = batch.to_dict()
    assert payload["rankings"][0]["applicant_name"] == "John Doe"
    assert payload["rankings"][0]["tier"] in {"excellent", "good", "fair", "poor"}
    json.dumps(payload)
