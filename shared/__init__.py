"""
Marketplace Trust & Safety Shared Library
=========================================

Common utilities, configuration, and abstractions shared by the marketplace
trust and safety services.

Modules:
    - config: Configuration management with Pydantic Settings
    - logging: Structured logging with structlog
    - auth: JWT authentication and role checks
    - database: MongoDB client lifecycle
    - store: Document store abstraction (MongoDB / in-memory mock)
    - exceptions: Domain error hierarchy
    - models: Shared Pydantic response models

Version: 0.1.0
"""

__version__ = "0.1.0"
__author__ = "Marketplace Trust & Safety Team"

from shared.config import settings
from shared.logging import get_logger, setup_logging

__all__ = [
    "settings",
    "get_logger",
    "setup_logging",
    "__version__",
]
