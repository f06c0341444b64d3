"""
Policy Endpoints.

This module exposes policy decisioning and the wholesale import of a tenant's
policy set.
"""

from fastapi import APIRouter, status

from aigp_node.governance.schemas import Decision
from aigp_node.server.schemas import DecideRequest, PolicyImportRequest, PolicyImportResponse
from aigp_node.server.services.deps import GovernanceDep

router = APIRouter()


@router.post(
    "/decide",
    response_model=Decision,
    response_model_exclude_none=True,
    summary="Decide",
    description="Evaluate an intended action against the tenant's policies.",
    response_description="The decision of the first matching policy, or a bare allow.",
)
async def decide(body: DecideRequest, governance: GovernanceDep) -> Decision:
    """
    Decide whether an action may proceed.

    The highest-priority policy whose criteria all equal the request's fields
    wins. When nothing matches, or when the policy store cannot be read, the
    response is ``{"effect": "allow"}``.
    """
    return await governance.policies.decide(body)


@router.post(
    "/import",
    response_model=PolicyImportResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Import Policies",
    description="Replace the tenant's complete policy set in one transaction.",
    response_description="The number of imported rules.",
)
async def import_policies(body: PolicyImportRequest, governance: GovernanceDep) -> PolicyImportResponse:
    """
    Import policies.

    Deletes every existing policy of the tenant and inserts the given rules.
    On failure the previous set stays in place.
    """
    count = await governance.policies.import_policies(body.tenant_id, body.version, body.rules)
    return PolicyImportResponse(tenant_id=body.tenant_id, version=body.version, imported_count=count)
