"""Orchestrator: chunked scheduling, tree rebuild, summary and report."""

from dephealth.engines.orchestrator.classifier import classify, collect_issues, summarize
from dephealth.engines.orchestrator.collector import (
    build_tree,
    chunked,
    collect_dependencies,
    flatten_tree,
    scoped_key,
)
from dephealth.engines.orchestrator.progress import ProgressTracker
from dephealth.engines.orchestrator.runner import AnalysisOrchestrator

__all__ = [
    "AnalysisOrchestrator",
    "ProgressTracker",
    "build_tree",
    "chunked",
    "classify",
    "collect_dependencies",
    "collect_issues",
    "flatten_tree",
    "scoped_key",
    "summarize",
]
