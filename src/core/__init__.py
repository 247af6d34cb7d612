"""
Core business logic for gym management.

This module is framework-agnostic - it doesn't import FastAPI, Snowflake,
or any infrastructure concerns. Scheduling rules, program volume analysis,
and tenant access rules can all be tested in isolation.
"""
