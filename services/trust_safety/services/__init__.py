"""
Trust & Safety Services
=======================

Lifecycle and scoring logic for profiles, providers, clients and warnings.

Services:
- ProfileService: Profile lifecycle and completeness
- ProviderService: Provider risk, penalties and operations
- ClientService: Trust score, bookings and suspensions
- WarningService: Warning lifecycle, sweeps and count reconciliation

Version: 0.1.0
"""

from services.trust_safety.services.clients import ClientService
from services.trust_safety.services.profiles import ProfileService
from services.trust_safety.services.providers import ProviderService
from services.trust_safety.services.repository import Repository
from services.trust_safety.services.transitions import WarningAction, WarningWorkflow
from services.trust_safety.services.warnings import WarningService


__all__ = [
    "Repository",
    # Lifecycle
    "ProfileService",
    "ProviderService",
    "ClientService",
    "WarningService",
    # Workflow
    "WarningAction",
    "WarningWorkflow",
]
