"""
GymFlow - multi-tenant gym management API.

This package contains the complete application:
- core: Framework-agnostic business logic
- infrastructure: Database and token integrations
- api: FastAPI routes and dependencies
- config: Application configuration
"""

__version__ = "0.1.0"
