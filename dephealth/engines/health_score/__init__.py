"""Health score engine."""

from dephealth.engines.health_score.calculator import HealthScoreCalculator, perfect_score

__all__ = ["HealthScoreCalculator", "perfect_score"]
