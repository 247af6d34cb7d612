"""
Infrastructure layer - external service integrations.

Each subdirectory wraps an external dependency:
- snowflake: Database persistence
- auth: JWT access token verification

These wrappers translate between external formats and our domain models.
"""
