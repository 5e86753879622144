"""
Rules Store

DESIGN DECISION: Every amount, threshold and rate the engines use is a
named rule the operator can edit (and temporarily scale with a modifier).
The store is the only way the core reads them.

READS:
- All rules are read in one call and cached under a single key
- A storage error during a plain read propagates
- get_numeric_value() is the best-effort lookup: anything wrong
  (missing rule, unparsable value, storage down) yields the default

WRITES:
- Modifiers recompute calculated_value from base_value
- Every write invalidates the cache immediately
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Optional

import structlog

from decider.audit import AuditLogger
from decider.models.money import ZERO, parse_amount
from decider.models.results import BatchFailure, BatchResult
from decider.models.rules import (
    Rule,
    RuleFrequency,
    RuleModification,
    RuleModifierUpdate,
    RuleType,
    apply_modifier,
)
from decider.rules.cache import RulesCache
from decider.rules.names import DEFAULTS
from decider.services.storage import NotFoundError, RuleStorageInterface
from decider.validation import ValidationError, parse_modifier_percent

logger = structlog.get_logger(__name__)


class RulesStore:
    """Cached access to rule definitions, plus modifier updates."""

    def __init__(
        self,
        storage: RuleStorageInterface,
        cache: Optional[RulesCache] = None,
        audit_logger: Optional[AuditLogger] = None,
        now: Callable[[], datetime] = datetime.utcnow,
    ):
        self._storage = storage
        self._cache = cache or RulesCache()
        self._audit_logger = audit_logger
        self._now = now

    # =========================================================================
    # READS
    # =========================================================================

    async def get_all_rules(self) -> dict[str, Rule]:
        """All rules keyed by name. Storage errors propagate."""
        cached = self._cache.get(RulesCache.ALL_RULES)
        if cached is not None:
            return cached

        rules = {rule.name: rule for rule in await self._storage.list_rules()}
        self._cache.set(RulesCache.ALL_RULES, rules)
        return rules

    async def get_rule(self, name: str) -> Optional[Rule]:
        rules = await self.get_all_rules()
        return rules.get(name)

    async def get_numeric_value(self, name: str, default: Decimal = ZERO) -> Decimal:
        """
        Parsed value of a rule, never raising.

        Returns `default` when the rule is missing, zero, not numeric,
        or the rules cannot be read at all.
        """
        try:
            rule = await self.get_rule(name)
        except Exception as e:
            logger.warning("rule_lookup_failed", rule_name=name, error=str(e))
            return default

        if rule is None:
            return default
        value = rule.numeric_value
        return value if value else default

    async def get_threshold(self, name: str) -> Decimal:
        """Numeric value falling back to the built-in default for `name`."""
        return await self.get_numeric_value(name, DEFAULTS.get(name, ZERO))

    async def get_rules_by_frequency(self, frequency: RuleFrequency) -> dict[str, Rule]:
        rules = await self.get_all_rules()
        return {name: r for name, r in rules.items() if r.frequency == frequency}

    async def get_rules_by_type(self, rule_type: RuleType) -> dict[str, Rule]:
        rules = await self.get_all_rules()
        return {name: r for name, r in rules.items() if r.type == rule_type}

    async def get_punishable_expectations(self) -> dict[str, Rule]:
        """Expectations whose shortfall triggers a punishment."""
        expectations = await self.get_rules_by_type(RuleType.EXPECTATION)
        return {name: r for name, r in expectations.items() if r.punishable}

    async def get_bonus_amounts(self) -> dict[str, Decimal]:
        bonuses = await self.get_rules_by_type(RuleType.BONUS)
        return {name: r.numeric_value for name, r in bonuses.items()}

    async def get_modified_rules(self) -> dict[str, Rule]:
        rules = await self.get_all_rules()
        return {name: r for name, r in rules.items() if r.is_modified}

    # =========================================================================
    # WRITES
    # =========================================================================

    async def update_modifier(
        self,
        name: str,
        modifier_percent: Any,
        reason: Optional[str] = None,
    ) -> RuleModification:
        """
        Set a rule's modifier and recompute its calculated value.

        Raises:
            RuleNotFoundError: If no rule has this name
            ValidationError: If the modifier is not a number above -100,
                or the rule's base value is not numeric
        """
        modifier = parse_modifier_percent(modifier_percent)
        rule = await self.get_rule(name)
        if rule is None:
            raise RuleNotFoundError(name)

        try:
            calculated = apply_modifier(rule.base_value, modifier)
        except ValueError as e:
            raise ValidationError(str(e), field="modifier_percent")

        updated_at = self._now()
        updated = rule.model_copy(update={
            "modifier_percent": modifier,
            "calculated_value": calculated,
            "modified_date": updated_at,
            "modifier_reason": reason,
        })

        try:
            await self._storage.update_rule(updated)
        except NotFoundError:
            raise RuleNotFoundError(name)
        finally:
            self._cache.invalidate()

        logger.info(
            "rule_modifier_updated",
            rule_name=name,
            modifier_percent=str(modifier),
            calculated_value=calculated,
        )
        if self._audit_logger:
            await self._audit_logger.log_rule_modified(
                rule_name=name,
                modifier_percent=str(modifier),
                new_value=calculated,
                reason=reason,
            )

        return RuleModification(
            rule_name=name,
            base_value=rule.base_value,
            modifier_percent=modifier,
            new_calculated_value=calculated,
            reason=reason,
            updated_at=updated_at,
        )

    async def reset_modifier(self, name: str) -> RuleModification:
        """Restore calculated_value to base_value."""
        return await self.update_modifier(name, 0, "Reset to base value")

    async def update_multiple_modifiers(
        self,
        updates: list[RuleModifierUpdate],
    ) -> BatchResult[RuleModification]:
        """Apply updates in order; one bad rule does not stop the rest."""
        result: BatchResult[RuleModification] = BatchResult()
        for update in updates:
            try:
                result.succeeded.append(await self.update_modifier(
                    update.rule_name,
                    update.modifier_percent,
                    update.reason,
                ))
            except Exception as e:
                logger.warning(
                    "rule_modifier_update_failed",
                    rule_name=update.rule_name,
                    error=str(e),
                )
                result.failed.append(BatchFailure(item=update.rule_name, error=str(e)))
        return result

    def invalidate_cache(self) -> None:
        self._cache.invalidate()


# =============================================================================
# EXCEPTIONS
# =============================================================================

class RuleNotFoundError(LookupError):
    """No rule with the requested name exists."""

    def __init__(self, rule_name: str):
        self.rule_name = rule_name
        super().__init__(f"Rule not found: {rule_name}")
