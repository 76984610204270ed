from __future__ import annotations

import json
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from jsonschema import validate

from qualitrust.config import get_settings
from qualitrust.core.logging_config import logger

from .rule_runner import DiscountPolicy, DiscountRunner

PACKAGE_ROOT = Path(__file__).resolve().parents[1]
DEFAULT_POLICY_PATH = PACKAGE_ROOT / "rules" / "discount_policy.v1.yaml"
SCHEMA_PATH = PACKAGE_ROOT / "schemas" / "discount_policy.schema.json"


@lru_cache(maxsize=1)
def _policy_schema() -> Dict[str, Any]:
    with SCHEMA_PATH.open("r", encoding="utf-8") as f:
        return json.load(f)


def policy_from_dict(d: Dict[str, Any]) -> DiscountPolicy:
    """Schema validation first, then cross-validation of ids/order/types."""
    validate(instance=d, schema=_policy_schema())
    return DiscountPolicy.from_dict(d)


def load_policy(path: str | Path) -> DiscountPolicy:
    policy_path = Path(path)
    with policy_path.open("r", encoding="utf-8") as f:
        d = yaml.safe_load(f) or {}

    policy = policy_from_dict(d)
    logger.bind(path=str(policy_path), version=policy.version, rules=len(policy.rules)).info(
        "discount_policy_loaded"
    )
    return policy


@lru_cache(maxsize=1)
def default_policy() -> DiscountPolicy:
    configured: Optional[str] = get_settings().discount_policy_path
    return load_policy(configured or DEFAULT_POLICY_PATH)


def default_runner() -> DiscountRunner:
    return DiscountRunner(default_policy())
