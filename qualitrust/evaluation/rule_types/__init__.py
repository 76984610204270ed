# importing the modules registers every rule type
from . import chemical_barrier, extra_call, general_compliance, schedule_delay, trap_maintenance  # noqa: F401
from .base import Rule, RuleResult, register, rule_registry

__all__ = ["Rule", "RuleResult", "register", "rule_registry"]
