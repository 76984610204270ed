from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple, Type

from ..domain.models import (
    CATEGORIES,
    Category,
    GeneralChecklist,
    ServiceChecklist,
    ServiceFinancials,
    TermiteChecklist,
)
from ..domain.money import round_half_up
from ..explain.breakdown_builder import BreakdownBuilder, CheckStatus
from ..rule_types.base import DECISION_APPLIED, Rule, RuleResult, rule_registry
from .context import CategoryLine, DiscountContext, DiscountInput

D = Decimal

HUNDRED = D("100")


# -----------------------
# Policy models
# -----------------------


@dataclass(frozen=True)
class RuleSpec:
    id: str
    type: str
    title: str
    enabled: bool = True
    applies_to: Tuple[Category, ...] = CATEGORIES
    params: Dict[str, Any] | None = None

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "RuleSpec":
        applies = d.get("appliesTo")
        return RuleSpec(
            id=str(d["id"]),
            type=str(d["type"]),
            title=str(d.get("title") or d["id"]),
            enabled=bool(d.get("enabled", True)),
            applies_to=tuple(Category(c) for c in applies) if applies is not None else CATEGORIES,
            params=dict(d.get("params") or {}),
        )


def _duplicates(ids: List[str]) -> List[str]:
    seen, dups = set(), []
    for rid in ids:
        if rid in seen and rid not in dups:
            dups.append(rid)
        seen.add(rid)
    return dups


@dataclass(frozen=True)
class DiscountPolicy:
    version: str
    cap_pct: D
    execution_order: List[str]
    rules: List[RuleSpec]

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "DiscountPolicy":
        rules = [RuleSpec.from_dict(x) for x in d.get("rules", [])]
        execution_order = list(d.get("executionOrder") or [])
        version = str(d.get("version") or "v1")
        cap_pct = D(str(d.get("capPct", "100")))

        ids = [r.id for r in rules]

        dups = _duplicates(ids)
        if dups:
            raise ValueError(f"Duplicate rule ids in policy: {dups}")

        dups = _duplicates(execution_order)
        if dups:
            raise ValueError(f"Duplicate rule ids in executionOrder: {dups}")

        missing = sorted(set(execution_order) - set(ids))
        if missing:
            raise ValueError(f"executionOrder references unknown rule ids: {missing}")

        unlisted = sorted(set(ids) - set(execution_order))
        if unlisted:
            raise ValueError(f"Rules not listed in executionOrder: {unlisted}")

        if not execution_order:
            raise ValueError("executionOrder must contain at least one rule id.")

        unknown_types = sorted({r.type for r in rules if r.type not in rule_registry})
        if unknown_types:
            raise ValueError(f"Unknown rule types in policy: {unknown_types}")

        if cap_pct <= 0:
            raise ValueError("capPct must be > 0")

        return DiscountPolicy(
            version=version,
            cap_pct=cap_pct,
            execution_order=execution_order,
            rules=rules,
        )


# -----------------------
# Output models
# -----------------------


@dataclass(frozen=True)
class CategoryDiscount:
    category: Category
    gross_cents: int
    pct: D  # summed, uncapped
    capped_pct: D
    discount_cents: int
    steps: List[str] = field(default_factory=list)
    # rule id -> percent contributed, in execution order
    contributions: Dict[str, D] = field(default_factory=dict)
    rule_meta: Dict[str, Dict[str, Any]] = field(default_factory=dict)

    @property
    def capped(self) -> bool:
        return self.capped_pct < self.pct

    @property
    def applied_rules(self) -> List[str]:
        return list(self.contributions)


@dataclass(frozen=True)
class DiscountOutcome:
    policy_version: str
    categories: Dict[Category, CategoryDiscount]
    warnings: List[Dict[str, Any]] = field(default_factory=list)

    def discounts(self) -> Dict[Category, int]:
        return {c: r.discount_cents for c, r in self.categories.items()}

    def __getitem__(self, category: Category) -> CategoryDiscount:
        return self.categories[category]


# -----------------------
# Runner
# -----------------------


class DiscountRunner:
    """
    Deterministic, side-effect free.

    Per category:
      pct        = sum of rule contributions (not compounded)
      capped_pct = min(cap, pct)            (cap after summation)
      discount   = round_half_up(area x unit_price_cents x capped_pct / 100)
    """

    def __init__(self, policy: DiscountPolicy):
        self.policy = policy
        specs = {r.id: r for r in policy.rules}
        self._rules: List[Tuple[RuleSpec, Rule]] = []
        for rule_id in policy.execution_order:
            spec = specs[rule_id]
            rule_cls: Type[Rule] = rule_registry[spec.type]
            self._rules.append((spec, rule_cls(rule_id=spec.id, title=spec.title, params=spec.params or {})))

    def run(self, data: DiscountInput) -> DiscountOutcome:
        ctx = DiscountContext(input=data)
        builder = BreakdownBuilder()
        results: Dict[Category, CategoryDiscount] = {}

        for category in CATEGORIES:
            fin = data.financials_for(category)
            line = CategoryLine(category=category, area=fin.area, unit_price_cents=fin.unit_price_cents)

            for spec, rule in self._rules:
                if not spec.enabled or category not in spec.applies_to:
                    continue
                result: RuleResult = rule.apply(ctx=ctx, line=line)
                if result.decision == DECISION_APPLIED and result.pct > 0:
                    line.pct_total += result.pct
                    line.contributions[spec.id] = result.pct
                    line.rule_meta[spec.id] = result.meta

            capped_pct = min(self.policy.cap_pct, line.pct_total)
            if capped_pct < line.pct_total:
                message = f"Desconto limitado a {capped_pct.normalize():f}% do valor"
                line.breakdown.add_check("DISCOUNT_CAP", message, status=CheckStatus.CAPPED)
                ctx.warn(
                    "DISCOUNT_CAPPED",
                    message,
                    category=category.value,
                    pct=format(line.pct_total.normalize(), "f"),
                )

            discount = round_half_up(line.area * D(line.unit_price_cents) * capped_pct / HUNDRED)

            results[category] = CategoryDiscount(
                category=category,
                gross_cents=line.gross_cents,
                pct=line.pct_total,
                capped_pct=capped_pct,
                discount_cents=discount,
                steps=builder.build(line.breakdown),
                contributions=dict(line.contributions),
                rule_meta=dict(line.rule_meta),
            )

        return DiscountOutcome(
            policy_version=self.policy.version,
            categories=results,
            warnings=list(ctx.warnings),
        )


def compute_discounts(
    general: GeneralChecklist,
    insect: Optional[ServiceChecklist],
    rodent: Optional[ServiceChecklist],
    termite: Optional[TermiteChecklist],
    financials: Dict[Category, ServiceFinancials],
    *,
    policy: Optional[DiscountPolicy] = None,
) -> Dict[Category, int]:
    """Checklist state + (area, unit price) -> discount cents per category."""
    if policy is None:
        from .policy_loader import default_policy

        policy = default_policy()

    data = DiscountInput(
        general=general,
        insect=insect,
        rodent=rodent,
        termite=termite,
        financials=dict(financials),
    )
    return DiscountRunner(policy).run(data).discounts()
