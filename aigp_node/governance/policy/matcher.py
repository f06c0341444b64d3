"""Equality matching of policy criteria against a decision input."""

from __future__ import annotations

from typing import Tuple

from ..schemas.domain import DecisionInput, MatchCriteria

# criteria fields are a subset of the decision input fields
MATCH_FIELDS: Tuple[str, ...] = tuple(MatchCriteria.model_fields)


def matches(criteria: MatchCriteria, request: DecisionInput) -> bool:
    """
    Check whether a policy's criteria hold for a decision input.

    Every criterion that is set must equal the corresponding input field
    exactly (case-sensitive). Unset criteria are wildcards. An input field
    that is missing never equals a set criterion.

    Args:
        criteria: The policy's match criteria.
        request: The decision input being evaluated.

    Returns:
        True when all set criteria are satisfied.
    """
    for name in MATCH_FIELDS:
        expected = getattr(criteria, name)
        if expected is None:
            continue
        actual = getattr(request, name, None)
        if actual is None or actual != expected:
            return False
    return True
