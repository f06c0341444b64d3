"""AIGP Node.

This package implements a governance decision-and-audit node for AI
workloads. Callers ask the node whether an intended action is permitted and,
independently, record what the action actually did.

High-level architecture
-----------------------

The codebase is organized around two stateful subsystems:

- **Policy decisioning**: tenants import an ordered rule set; ``decide``
  returns the decision of the highest-priority rule whose match criteria are
  satisfied by the request. Decisioning is fail-open: infrastructure errors
  degrade to ``allow`` instead of blocking the governed action.
- **Trace ledger**: a trace is opened when an action starts, accumulates
  immutable model-call, agent-call and audit events, and is closed exactly
  once with a terminal status.

A read-only stats view aggregates the ledger per tenant, environment and use
case.

Core subpackages
----------------

- ``aigp_node.governance``:

  - Domain schemas (decision inputs, policies, traces, ledger events).
  - The pure policy matcher and the policy engine.
  - The trace lifecycle manager and the stats aggregator.
  - Repository interfaces and SQL implementations for persistence.

- ``aigp_node.server``: the FastAPI application exposing the operations over
  HTTP.

- ``aigp_node.core``: logging, monitoring hooks and the error taxonomy shared
  by every layer.
"""
