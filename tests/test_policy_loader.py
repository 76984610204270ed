from __future__ import annotations

import copy
from decimal import Decimal

import pytest
import yaml
from jsonschema import ValidationError

from qualitrust.evaluation.domain.models import Category, ServiceChecklist, ServiceFinancials
from qualitrust.evaluation.engine.context import DiscountInput
from qualitrust.evaluation.engine.policy_loader import DEFAULT_POLICY_PATH, load_policy, policy_from_dict
from qualitrust.evaluation.engine.rule_runner import DiscountRunner


@pytest.fixture
def policy_dict():
    with open(DEFAULT_POLICY_PATH, "r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def test_packaged_policy_loads(policy):
    assert policy.version == "v1"
    assert policy.cap_pct == Decimal("100")
    assert policy.execution_order == [
        "general_compliance",
        "schedule_delay",
        "trap_maintenance",
        "extra_call",
        "chemical_barrier",
    ]
    specs = {r.id: r for r in policy.rules}
    assert specs["chemical_barrier"].applies_to == (Category.TERMITE,)
    assert specs["general_compliance"].applies_to == (Category.INSECT, Category.RODENT, Category.TERMITE)


def test_duplicate_rule_id_rejected(policy_dict):
    d = copy.deepcopy(policy_dict)
    d["rules"].append(copy.deepcopy(d["rules"][0]))
    with pytest.raises(ValueError, match="Duplicate rule ids in policy"):
        policy_from_dict(d)


def test_unknown_id_in_execution_order_rejected(policy_dict):
    d = copy.deepcopy(policy_dict)
    d["executionOrder"].append("does_not_exist")
    with pytest.raises(ValueError, match="unknown rule ids"):
        policy_from_dict(d)


def test_unlisted_rule_rejected(policy_dict):
    d = copy.deepcopy(policy_dict)
    d["executionOrder"].remove("extra_call")
    with pytest.raises(ValueError, match="not listed in executionOrder"):
        policy_from_dict(d)


def test_unknown_rule_type_rejected(policy_dict):
    d = copy.deepcopy(policy_dict)
    d["rules"][0]["type"] = "loyalty_bonus"
    with pytest.raises(ValueError, match="Unknown rule types"):
        policy_from_dict(d)


def test_schema_rejects_missing_rules(policy_dict):
    d = copy.deepcopy(policy_dict)
    del d["rules"]
    with pytest.raises(ValidationError):
        policy_from_dict(d)


def test_disabled_rule_does_not_contribute(policy_dict, tmp_path):
    d = copy.deepcopy(policy_dict)
    for rule in d["rules"]:
        if rule["id"] == "trap_maintenance":
            rule["enabled"] = False
    path = tmp_path / "policy.yaml"
    path.write_text(yaml.safe_dump(d, allow_unicode=True), encoding="utf-8")

    runner = DiscountRunner(load_policy(path))
    out = runner.run(
        DiscountInput(
            insect=ServiceChecklist(traps_maintained=False),
            financials={Category.INSECT: ServiceFinancials(area=Decimal("10"), unit_price_cents=1000)},
        )
    )
    assert out[Category.INSECT].discount_cents == 0
