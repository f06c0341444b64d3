"""Policy subsystem: criteria matching, decisioning and policy import.

Components
----------

- ``matches``: pure equality check of ``MatchCriteria`` against a
  ``DecisionInput``.
- ``PolicyEngine``: loads a tenant's policies in priority order, returns the
  first match's decision, and falls back to ``allow`` when nothing matches or
  the store fails. Also replaces a tenant's policy set on import.
"""

from .engine import DecisionResult, PolicyEngine
from .matcher import MATCH_FIELDS, matches

__all__ = [
    "DecisionResult",
    "MATCH_FIELDS",
    "PolicyEngine",
    "matches",
]
