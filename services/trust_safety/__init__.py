"""
Trust & Safety Service
======================

Entity lifecycle and scoring engine for the marketplace.

Features:
- Profile completeness and moderation
- Provider penalties, risk assessment and mitigation measures
- Client trust score and behavioural risk
- Warning issue, acknowledgement, resolution and expiry
- Administrative rollups

Port: 8010
"""

__version__ = "0.1.0"
