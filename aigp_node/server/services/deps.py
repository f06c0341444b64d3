"""
Governance Dependency.

Provides the application's GovernanceService instance for API endpoints.
"""

from typing import Annotated

from fastapi import Depends

from aigp_node.server.services.governance import (
    GovernanceService,
    get_governance,
)

GovernanceDep = Annotated[GovernanceService, Depends(get_governance)]
