"""
Built-in system policies.

System policies are loaded read-only; ``Policy.ensure_mutable`` refuses
to let administrative operations change or delete them.
"""

from ..models import Policy, load_policies

SYSTEM_POLICY_DOCUMENTS: list[dict] = [
    {
        "name": "FullAdminPolicy",
        "description": "Full access to every service",
        "isSystemPolicy": True,
        "statement": [
            {"effect": "Allow", "action": ["*"], "resource": ["*"]},
        ],
    },
    {
        "name": "ChatAdminPolicy",
        "description": "Manage chats and tags; read-only on users, teams and categories",
        "isSystemPolicy": True,
        "statement": [
            {"effect": "Allow", "action": ["chat:*"], "resource": ["urn:chat:*:*:*"]},
            {"effect": "Allow", "action": ["tag:*"], "resource": ["urn:tag:*:*:*"]},
            {"effect": "Allow", "action": ["user:View"], "resource": ["urn:user:*:*:*"]},
            {"effect": "Allow", "action": ["team:View", "team:List"], "resource": ["urn:team:*:*:*"]},
            {"effect": "Allow", "action": ["category:View", "category:List"], "resource": ["urn:category:*:*:*"]},
            {
                "effect": "Deny",
                "action": [
                    "user:Create", "user:Update", "user:Delete",
                    "team:Create", "team:Update", "team:Delete",
                    "category:Create", "category:Update", "category:Delete",
                    "iam:*", "kb:*",
                ],
                "resource": ["*"],
            },
        ],
    },
    {
        "name": "TeamManagerPolicy",
        "description": "Manage chats and teams within the manager's own teams",
        "isSystemPolicy": True,
        "statement": [
            {"effect": "Allow", "action": ["chat:*"], "resource": ["urn:chat:team:${context:user.teamIds}:*"]},
            {
                "effect": "Allow",
                "action": ["team:View", "team:List", "team:Update"],
                "resource": ["urn:team:${context:user.teamIds}:*:*"],
            },
            {"effect": "Allow", "action": ["user:View", "user:List"], "resource": ["urn:user:*:*:*"]},
            {"effect": "Allow", "action": ["kb:View", "kb:List"], "resource": ["urn:kb:*:*:*"]},
        ],
    },
    {
        "name": "AgentPolicy",
        "description": "Support agent: chats assigned to the agent or the agent's teams",
        "isSystemPolicy": True,
        "statement": [
            {
                "effect": "Allow",
                "action": ["chat:View", "chat:List", "chat:Reply"],
                "resource": ["urn:chat:agent:${context:user.id}:*", "urn:chat:team:${context:user.teamIds}:*"],
            },
            {"effect": "Allow", "action": ["kb:View", "kb:List"], "resource": ["urn:kb:*:*:*"]},
            {"effect": "Deny", "action": ["chat:Delete"], "resource": ["urn:chat:*:*:*"]},
        ],
    },
]


def system_policies() -> dict[str, Policy]:
    """Validated system policies keyed by name."""
    return {policy.name: policy for policy in load_policies(SYSTEM_POLICY_DOCUMENTS)}
