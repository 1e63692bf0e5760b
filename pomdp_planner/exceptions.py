"""
exceptions.py — planner error hierarchy.

    PlannerError
    ├── NoActiveSessionError   expansion requested without a session
    ├── NoTenantError          legacy entry point found zero tenants
    ├── SessionNotFoundError   session id does not resolve
    └── PlanStoreError         store used before init() or after close()

Precondition errors are never recovered inside the planner; they propagate
to the caller. Data gaps (no candidates, no leaves) are handled by fallbacks
and never raise.
"""

from __future__ import annotations


class PlannerError(Exception):
    """Base class for all planner exceptions."""


class NoActiveSessionError(PlannerError):
    """The search engine was asked to expand without a plan session."""


class NoTenantError(PlannerError):
    """No tenant is configured, so there is no one to plan for."""


class SessionNotFoundError(PlannerError):
    """A plan session id did not resolve in the store."""


class PlanStoreError(PlannerError):
    """The plan store is not usable (not initialised, or closed)."""
