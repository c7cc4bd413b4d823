"""HTTP route registration for the skill service."""

from .admin import register_admin_routes
from .skill import register_skill_routes, request_verifiers

__all__ = ["register_admin_routes", "register_skill_routes", "request_verifiers"]
