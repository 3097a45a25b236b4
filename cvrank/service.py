"""
Service facade over the cvrank pipeline.

`CVRankService` wires settings, the embedding engine, scoring and batch
ranking together, and exposes the operations an API layer needs.  The
per-item operations return explicit outcome records (``success`` plus
either a value or an error kind) so callers never have to catch
pipeline errors themselves.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from dataclasses import dataclass
from typing import Dict, Optional, Sequence

from .config import Settings
from .errors import CVRankError, ModelLoadError
from .rank.aggregate import RankingAggregator
from .rank.embed import EmbeddingEngine
from .rank.scoring import ScoringEngine
from .resume.analyze import SkillEntityExtractor
from .resume.extract_text import DocumentTextExtractor
from .resume.normalize import normalize_text
from .resume.skill_table import DEFAULT_SKILL_TABLE, SkillTable, load_skill_table
from .schema import Application, BatchRankingResult, CandidateOutcome, CVAnalysis, JobSignal

logger = logging.getLogger(__name__)


@dataclass
class ProcessOutcome:
    """Result of turning one résumé document into an analysis."""

    success: bool
    analysis: Optional[CVAnalysis] = None
    text: str = ""
    error: Optional[str] = None
    error_kind: Optional[str] = None

    def to_dict(self) -> Dict[str, object]:
        return {
            "success": self.success,
            "analysis": self.analysis.to_dict() if self.analysis else None,
            "text": self.text,
            "error": self.error,
            "error_kind": self.error_kind,
        }


def _resolve_skill_table(settings: Settings) -> SkillTable:
    if not settings.skills_file:
        return DEFAULT_SKILL_TABLE
    extra = load_skill_table(settings.skills_file)
    logger.info("Extending skill table with %d entries from %s", len(extra), settings.skills_file)
    return DEFAULT_SKILL_TABLE.extend(extra)


class CVRankService:
    """Entry point for callers that process CVs and rank applications.

    Args:
        settings: Configuration; defaults to :class:`Settings()`.
        engine: Embedding engine to share; built from ``settings`` if None.
    """

    def __init__(self, settings: Optional[Settings] = None, engine: Optional[EmbeddingEngine] = None) -> None:
        self.settings = settings or Settings()
        self.engine = engine or EmbeddingEngine(settings=self.settings)
        self.extractor = DocumentTextExtractor()
        self.skill_table = _resolve_skill_table(self.settings)
        self.analyzer = SkillEntityExtractor(self.skill_table)
        self.scoring = ScoringEngine(self.engine)
        self.aggregator = RankingAggregator(
            self.scoring,
            extractor=self.extractor,
            skill_table=self.skill_table,
            concurrency=self.settings.batch_concurrency,
        )

    def initialize(self) -> bool:
        """Preload the embedding model; False if it could not be loaded."""
        logger.info("Initializing embedding model")
        try:
            dimension = self.engine.warm_up()
        except ModelLoadError as exc:
            logger.error("Error initializing embedding model: %s", exc)
            return False
        logger.info("Embedding model ready (%d dimensions)", dimension)
        return True

    def process_cv(self, data: bytes, content_type: str) -> ProcessOutcome:
        """Extract, normalize and analyse one résumé document."""
        try:
            text = normalize_text(self.extractor.extract(data, content_type))
        except CVRankError as exc:
            logger.error("Error processing CV: %s", exc)
            return ProcessOutcome(success=False, error=str(exc), error_kind=exc.kind)
        return ProcessOutcome(success=True, analysis=self.analyzer.analyze(text), text=text)

    def rank_application(self, application: Application, job: JobSignal) -> CandidateOutcome:
        """Score one application with tier and insights attached."""
        return asyncio.run(self.aggregator.score_application(application, job))

    def rank_applications(
        self,
        applications: Sequence[Application],
        job: JobSignal,
        *,
        concurrency: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> BatchRankingResult:
        return self.aggregator.rank_batch(
            applications, job, concurrency=concurrency, cancel_event=cancel_event
        )

    async def arank_applications(
        self,
        applications: Sequence[Application],
        job: JobSignal,
        *,
        concurrency: Optional[int] = None,
        cancel_event: Optional[threading.Event] = None,
    ) -> BatchRankingResult:
        """Async :meth:`rank_applications` for callers already on an event loop."""
        return await self.aggregator.arank_batch(
            applications, job, concurrency=concurrency, cancel_event=cancel_event
        )
