"""
cvrank: CV analysis and candidate ranking.

This package turns a candidate's résumé and a job posting into a ranked,
explainable compatibility score.  Each submodule implements one step of
the pipeline:

1. **resume** – Convert PDF/Word bytes into text, normalize it, and run
   rule‑based extraction of skills, years of experience, education,
   certifications and contact details into a `CVAnalysis`.
2. **rank** – Embed résumé and job text with a pluggable embedding
   provider, combine the semantic similarity with the extracted signals
   into a weighted `RankingResult`, and rank whole pools of applications
   into a `BatchRankingResult` with tiers and insights.
3. **service** – A small facade that mirrors how an API layer consumes
   the pipeline (process one CV, rank one application, rank all
   applications for a job).
4. **cli** – Command line entry point wiring together the above.

Persistence, HTTP routing and notifications are left to the caller; the
core only consumes bytes and job records and returns plain data.
"""

from importlib import metadata

from .errors import (  # noqa: F401
    BatchCancelledError,
    CVRankError,
    DimensionMismatchError,
    ExtractionError,
    ModelLoadError,
    UnsupportedFormatError,
)
from .schema import (  # noqa: F401
    Application,
    BatchRankingResult,
    CVAnalysis,
    JobSignal,
    RankingResult,
)

try:
    __version__ = metadata.version("cvrank")
except metadata.PackageNotFoundError:
    __version__ = "0.0.0"
