"""
Command line interface for cvrank.

Subcommands run the pipeline on local files: analysing a résumé,
scoring one résumé against a job, ranking a manifest of applications,
and preloading the embedding model.  Job files are YAML (or JSON) with
``title``, ``description``, ``skills``, ``requirements`` and
``experience_level`` keys.  An applications manifest looks like::

    applications:
      - application_id: app-1
        applicant: {id: user-1, first_name: Jane, last_name: Doe}
        resume: resumes/jane.pdf

Résumé paths are resolved relative to the manifest.
"""

from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from pathlib import Path
from typing import Dict, List, Optional

import yaml  # type: ignore

from .config import load_settings
from .errors import CVRankError
from .resume.extract_text import EXTENSION_CONTENT_TYPES
from .schema import Application, JobSignal, ResumeDocument
from .service import CVRankService

logger = logging.getLogger("cvrank.cli")


def _content_type_for(path: Path) -> str:
    return EXTENSION_CONTENT_TYPES.get(path.suffix.lower(), "application/octet-stream")


def _read_resume(path: Path) -> ResumeDocument:
    return ResumeDocument(data=path.read_bytes(), content_type=_content_type_for(path))


def _load_yaml(path: str) -> Dict[str, object]:
    with open(path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _load_job(path: str) -> JobSignal:
    return JobSignal.from_dict(_load_yaml(path))


def _applicant_name(applicant: Dict[str, object]) -> str:
    first = applicant.get("first_name")
    last = applicant.get("last_name")
    return f"{first} {last}" if first and last else "Unknown"


def _load_applications(path: str) -> List[Application]:
    manifest = _load_yaml(path)
    base_dir = Path(path).resolve().parent
    applications: List[Application] = []
    for index, entry in enumerate(manifest.get("applications", []) or []):
        applicant = entry.get("applicant") or {}
        resume_path = entry.get("resume")
        resume = _read_resume(base_dir / resume_path) if resume_path else None
        applications.append(
            Application(
                application_id=str(entry.get("application_id") or f"application-{index + 1}"),
                applicant_id=applicant.get("id"),
                applicant_name=_applicant_name(applicant),
                resume=resume,
            )
        )
    return applications


def _emit(payload: Dict[str, object], out: Optional[str]) -> None:
    text = json.dumps(payload, indent=2)
    if out:
        with open(out, "w", encoding="utf-8") as f:
            f.write(text + "\n")
        logger.info("Wrote %s", out)
    else:
        print(text)


def cmd_analyze(service: CVRankService, args: argparse.Namespace) -> int:
    """Analyse a résumé file and print the extracted signals."""
    document = _read_resume(Path(args.file))
    outcome = service.process_cv(document.data, document.content_type)
    if not outcome.success:
        logger.error("Could not analyse %s: %s", args.file, outcome.error)
        return 1
    _emit(outcome.analysis.to_dict(), args.out)
    return 0


def cmd_score(service: CVRankService, args: argparse.Namespace) -> int:
    """Score one résumé against a job file."""
    job = _load_job(args.job)
    application = Application(
        application_id=os.path.basename(args.file),
        resume=_read_resume(Path(args.file)),
    )
    outcome = service.rank_application(application, job)
    if not outcome.success:
        logger.error("Could not score %s: %s", args.file, outcome.failure.message)
        return 1
    _emit(outcome.result.to_dict(), args.out)
    return 0


def cmd_rank(service: CVRankService, args: argparse.Namespace) -> int:
    """Rank every application in a manifest against a job file."""
    job = _load_job(args.job)
    applications = _load_applications(args.applications)
    batch = service.rank_applications(applications, job, concurrency=args.concurrency)
    _emit(batch.to_dict(), args.out)
    for failure in batch.failures:
        logger.warning("Application %s failed: %s (%s)", failure.application_id, failure.message, failure.kind)
    return 0


def cmd_warmup(service: CVRankService, args: argparse.Namespace) -> int:
    """Load the embedding model and report its dimension."""
    if not service.initialize():
        return 1
    print(f"Embedding model ready: {service.engine.dimension} dimensions")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="cvrank", description="CV analysis and candidate ranking")
    parser.add_argument("--config", help="YAML configuration file")
    subparsers = parser.add_subparsers(dest="command", required=True)

    analyze_cmd = subparsers.add_parser("analyze", help="Extract skills and other signals from a résumé")
    analyze_cmd.add_argument("--file", required=True, help="Résumé file (pdf, doc, docx)")
    analyze_cmd.add_argument("--out", help="Write JSON here instead of stdout")
    analyze_cmd.set_defaults(func=cmd_analyze)

    score_cmd = subparsers.add_parser("score", help="Score one résumé against a job")
    score_cmd.add_argument("--file", required=True, help="Résumé file (pdf, doc, docx)")
    score_cmd.add_argument("--job", required=True, help="Job YAML/JSON file")
    score_cmd.add_argument("--out", help="Write JSON here instead of stdout")
    score_cmd.set_defaults(func=cmd_score)

    rank_cmd = subparsers.add_parser("rank", help="Rank a manifest of applications against a job")
    rank_cmd.add_argument("--job", required=True, help="Job YAML/JSON file")
    rank_cmd.add_argument("--applications", required=True, help="Applications manifest (YAML)")
    rank_cmd.add_argument("--concurrency", type=int, help="Candidates scored in parallel")
    rank_cmd.add_argument("--out", help="Write JSON here instead of stdout")
    rank_cmd.set_defaults(func=cmd_rank)

    warmup_cmd = subparsers.add_parser("warmup", help="Preload the embedding model")
    warmup_cmd.set_defaults(func=cmd_warmup)
    return parser


def main(argv: List[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    settings = load_settings(args.config)
    logging.basicConfig(level=settings.log_level.upper(), format="[%(levelname)s] %(message)s")
    try:
        service = CVRankService(settings)
        return args.func(service, args)
    except CVRankError as exc:
        logger.error("%s", exc)
        return 1


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
