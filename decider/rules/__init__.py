"""Rules package: cached, operator-editable rule values."""

from decider.rules.cache import RulesCache
from decider.rules.store import RuleNotFoundError, RulesStore

__all__ = [
    "RuleNotFoundError",
    "RulesCache",
    "RulesStore",
]
