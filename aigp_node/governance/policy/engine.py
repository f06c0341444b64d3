from __future__ import annotations

"""Policy decisioning and policy import.

``PolicyEngine`` is the runtime authority that answers "may this action
proceed?" for a tenant.

Decision semantics
------------------

- Policies are evaluated in store order: ``priority`` descending, then import
  position, then id. The first policy whose criteria match wins.
- No match yields a bare ``allow`` (the ``default`` path).
- Any failure other than input validation while loading or evaluating yields
  the same bare ``allow`` (the ``fallback`` path). The path is kept on the
  internal ``DecisionResult`` so logs and monitoring can tell the two apart.

Import semantics
----------------

``import_policies`` replaces a tenant's whole set in one transaction. Each
rule gets a fresh id and its index in the request as ``position``. The
``version`` label is only logged; it is not stored.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Sequence
from uuid import uuid4

from ...core import monitoring
from ...core.errors import ValidationError
from ...core.logging_config import get_logger
from ..repos.interfaces import PolicyRepository
from ..schemas.domain import (
    Decision,
    DecisionInput,
    DecisionPath,
    Policy,
    PolicyRule,
)
from .matcher import matches

logger = get_logger(__name__)


@dataclass(frozen=True)
class DecisionResult:
    """Outcome of one evaluation, before fail-open is applied.

    Exactly one of ``decision`` and ``error`` is set. ``error`` is only set on
    the ``fallback`` path.
    """

    path: DecisionPath
    decision: Optional[Decision] = None
    error: Optional[BaseException] = None

    def resolve(self) -> Decision:
        """Return the decision to hand to the caller."""
        if self.decision is not None:
            return self.decision
        return Decision.default_allow()


def _require_tenant(tenant_id: Optional[str]) -> str:
    if not isinstance(tenant_id, str) or not tenant_id.strip():
        raise ValidationError("tenantId must be a non-empty string", {"tenantId": "must be a non-empty string"})
    return tenant_id


class PolicyEngine:
    """Evaluate and import tenant policies against a ``PolicyRepository``."""

    def __init__(self, policies: PolicyRepository) -> None:
        self._policies = policies

    async def evaluate(self, request: DecisionInput) -> DecisionResult:
        """
        Evaluate a decision input without applying fail-open.

        Args:
            request: The action descriptor.

        Returns:
            A ``DecisionResult`` tagged with the path taken.

        Raises:
            ValidationError: If ``tenant_id`` is empty.
        """
        tenant_id = _require_tenant(request.tenant_id)
        try:
            policies = await self._policies.list_by_tenant(tenant_id)
            for policy in policies:
                if matches(policy.match, request):
                    decision = Decision(
                        **policy.decision.model_dump(),
                        policy_id=policy.id,
                        policy_name=policy.name,
                    )
                    return DecisionResult(path=DecisionPath.matched, decision=decision)
        except ValidationError:
            raise
        except Exception as e:
            return DecisionResult(path=DecisionPath.fallback, error=e)
        return DecisionResult(path=DecisionPath.default, decision=Decision.default_allow())

    async def decide(self, request: DecisionInput) -> Decision:
        """
        Decide whether an action may proceed.

        Never raises on store or evaluation failure; those return ``allow``.

        Args:
            request: The action descriptor.

        Returns:
            The matching policy's decision annotated with its identity, or a
            bare ``allow``.

        Raises:
            ValidationError: If ``tenant_id`` is empty.
        """
        result = await self.evaluate(request)
        decision = result.resolve()

        if result.path is DecisionPath.fallback:
            logger.error(
                f"Policy evaluation failed for tenant '{request.tenant_id}'; failing open with allow: {result.error}"
            )
            monitoring.log_error(
                "PolicyEvaluationError",
                str(result.error),
                {"tenant_id": request.tenant_id, "decision_path": result.path.value},
            )
        elif result.path is DecisionPath.matched:
            logger.info(
                f"Policy matched for tenant '{request.tenant_id}': "
                f"policy={decision.policy_id} ({decision.policy_name}) effect={decision.effect.value}"
            )
        else:
            logger.debug(f"No policy matched for tenant '{request.tenant_id}'; default allow")

        monitoring.log_policy_decision(
            tenant_id=request.tenant_id,
            effect=decision.effect.value,
            path=result.path.value,
            policy_id=decision.policy_id,
        )
        return decision

    async def import_policies(self, tenant_id: str, version: str, rules: Sequence[PolicyRule]) -> int:
        """
        Replace a tenant's policy set.

        Args:
            tenant_id: The tenant whose policies are replaced.
            version: Caller-supplied label for the policy set.
            rules: The rules, in the order that breaks priority ties.

        Returns:
            The number of imported rules.

        Raises:
            ValidationError: If ``tenant_id`` is empty.
            StoreError: If the replacement transaction fails.
        """
        tenant_id = _require_tenant(tenant_id)
        now = datetime.now(timezone.utc)
        policies = [
            Policy(
                id=str(uuid4()),
                tenant_id=tenant_id,
                name=rule.name,
                priority=rule.priority,
                position=i,
                match=rule.match,
                decision=rule.decision,
                created_at=now,
                updated_at=now,
            )
            for i, rule in enumerate(rules)
        ]
        logger.info(f"Importing {len(policies)} policies for tenant '{tenant_id}' (version={version})")
        count = await self._policies.replace(tenant_id, policies)
        logger.info(f"Imported {count} policies for tenant '{tenant_id}' (version={version})")
        return count
