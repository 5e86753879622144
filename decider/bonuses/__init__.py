"""Bonuses package."""

from decider.bonuses.evaluator import BonusEvaluator

__all__ = ["BonusEvaluator"]
