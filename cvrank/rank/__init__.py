"""
Ranking subsystem for cvrank.

The `rank` package turns résumé analyses into comparable scores:

* `embed` – Embedding providers and the lazily initialised
  `EmbeddingEngine` used for semantic similarity.
* `scoring` – Weighted composite of semantic, skill, experience and
  education sub-scores for one candidate.
* `aggregate` – Scores a pool of applications concurrently, sorts them,
  assigns tiers and writes insights.
"""

from .aggregate import RankingAggregator, generate_insights, ranking_tier  # noqa: F401
from .embed import (  # noqa: F401
    EmbeddingEngine,
    EmbeddingProvider,
    HashingProvider,
    OpenAIEmbeddingProvider,
    SentenceTransformerProvider,
    build_provider,
    cosine_similarity,
)
from .scoring import ScoringEngine, WEIGHTS, skills_overlap  # noqa: F401
