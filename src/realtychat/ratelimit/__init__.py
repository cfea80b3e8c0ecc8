"""Client-side mirror of the backend's prompt quota.

The governor only gates the UI. The backend enforces the real limit.
"""

from .governor import RateGovernor
from .models import DEFAULT_LIMITS, CallerRole, RateLimitInfo, RolePolicy

__all__ = [
    "CallerRole",
    "DEFAULT_LIMITS",
    "RateGovernor",
    "RateLimitInfo",
    "RolePolicy",
]
