"""
Marketplace Services
====================

Services:
- trust_safety: Entity lifecycle and scoring engine (profiles, providers,
  clients, warnings)
"""

__all__ = [
    "trust_safety",
]
