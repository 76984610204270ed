from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, Optional, Type

D = Decimal

# Decisions (avoid string typos)
DECISION_APPLIED = "APPLIED"
DECISION_SKIPPED = "SKIPPED"

if TYPE_CHECKING:
    from ..engine.context import CategoryLine, DiscountContext


@dataclass(frozen=True)
class RuleResult:
    """
    Result of applying a rule to one category.
    - decision: APPLIED / SKIPPED
    - pct: discount contribution in percent of the gross value (0..n, uncapped)
    - meta: explainability payload
    """

    decision: str
    pct: D
    meta: Dict[str, Any]

    @staticmethod
    def applied(pct: D, meta: Optional[Dict[str, Any]] = None) -> "RuleResult":
        return RuleResult(decision=DECISION_APPLIED, pct=pct, meta=meta or {})

    @staticmethod
    def skipped(meta: Optional[Dict[str, Any]] = None) -> "RuleResult":
        return RuleResult(decision=DECISION_SKIPPED, pct=D("0"), meta=meta or {})


class Rule:
    """
    Base class for all discount sources. Every rule implements apply(ctx, line)
    and returns its percent contribution; summing and capping happen in the runner.
    """

    type_name: str = "base"

    def __init__(self, rule_id: str, title: str, params: Dict[str, Any]):
        self.rule_id = str(rule_id)
        self.title = str(title)
        self.params = params or {}

    def apply(self, ctx: "DiscountContext", line: "CategoryLine") -> RuleResult:
        raise NotImplementedError

    def pct_param(self, name: str, default: str) -> D:
        return D(str(self.params.get(name, default)))

    @property
    def code(self) -> str:
        return str(self.rule_id).strip().upper().replace("-", "_").replace(" ", "_")


# Registry: rule_type -> Rule class
rule_registry: Dict[str, Type[Rule]] = {}


def register(rule_cls: Type[Rule]) -> Type[Rule]:
    """
    Decorator to register a rule by its type_name.
    Fails fast on duplicate registrations.
    """
    key = getattr(rule_cls, "type_name", None)
    if not key:
        raise ValueError(f"Rule class {rule_cls.__name__} has no type_name")

    if key in rule_registry and rule_registry[key] is not rule_cls:
        raise ValueError(
            f"Duplicate rule registration for type '{key}': "
            f"{rule_registry[key].__name__} vs {rule_cls.__name__}"
        )

    rule_registry[key] = rule_cls
    return rule_cls
