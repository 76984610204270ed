from __future__ import annotations

from decimal import Decimal

import pytest

from qualitrust.evaluation.domain.models import (
    Category,
    GeneralChecklist,
    ServiceChecklist,
    ServiceFinancials,
    TermiteChecklist,
)
from qualitrust.evaluation.engine.context import CategoryLine, DiscountContext, DiscountInput


@pytest.fixture
def make_ctx():
    def _make(general=None, insect=None, rodent=None, termite=None):
        return DiscountContext(
            input=DiscountInput(
                general=general or GeneralChecklist(),
                insect=insect if insect is not None else ServiceChecklist(),
                rodent=rodent if rodent is not None else ServiceChecklist(),
                termite=termite if termite is not None else TermiteChecklist(),
                financials={c: ServiceFinancials(area=Decimal("100"), unit_price_cents=1000) for c in Category},
            )
        )

    return _make


@pytest.fixture
def make_line():
    def _make(category=Category.INSECT):
        return CategoryLine(category=category, area=Decimal("100"), unit_price_cents=1000)

    return _make
