"""
Résumé parsing.

This package turns résumé documents into a structured `CVAnalysis`:
`extract_text` decodes PDF/Word bytes, `normalize` cleans the text,
`skill_table` holds the versioned skill dictionary and `analyze` runs
the rule-based extractors.
"""

from .analyze import SkillEntityExtractor, analyze_cv, analyze_document  # noqa: F401
from .extract_text import DocumentTextExtractor  # noqa: F401
from .normalize import normalize_text  # noqa: F401
from .skill_table import DEFAULT_SKILL_TABLE, SkillEntry, SkillTable, load_skill_table  # noqa: F401
