"""
Policy evaluation for point permission checks.

- PolicyEvaluator: Deny-overrides, default-deny statement evaluation
- system_policies: built-in FullAdmin / ChatAdmin / TeamManager / Agent
"""

from .evaluator import PolicyEvaluator, evaluate_policies
from .system import SYSTEM_POLICY_DOCUMENTS, system_policies

__all__ = [
    "PolicyEvaluator",
    "evaluate_policies",
    "SYSTEM_POLICY_DOCUMENTS",
    "system_policies",
]
