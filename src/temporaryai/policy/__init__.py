"""
Navigation policy module for TemporaryAI.

This module implements the privacy model of the wrapper: a session may only
show its service's temporary mode, and everything else is cancelled, reset,
or offered to the user for opening elsewhere.

Key concepts:
    - NavigationRequest: One navigation attempt reported by the browser
    - PolicyDecision: ALLOW / CANCEL / FORCE_RESET / PROMPT_EXTERNAL(url)
    - NavigationPolicyEngine: Stateless evaluator parameterized by service

The policy engine must be:
    - Total: It never raises; malformed input becomes CANCEL
    - Predictable: Same inputs always produce same decisions
    - Auditable: All decisions carry a reason and the rule that fired
"""

from temporaryai.policy.engine import NavigationPolicyEngine, domain_matches

__all__ = [
    "NavigationPolicyEngine",
    "domain_matches",
]
