"""
Trust & Safety Routes
=====================

API route handlers for the Trust & Safety Service.
"""

from services.trust_safety.routes import clients, profiles, providers, warnings


__all__ = ["clients", "profiles", "providers", "warnings"]
