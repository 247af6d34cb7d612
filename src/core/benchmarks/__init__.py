"""
Benchmark templates: the tests a gym tracks its members against.
"""

from .models import (
    VALID_UNITS,
    BenchmarkTemplate,
    BenchmarkType,
    BenchmarkUnit,
    clean_tags,
)

__all__ = [
    "VALID_UNITS",
    "BenchmarkTemplate",
    "BenchmarkType",
    "BenchmarkUnit",
    "clean_tags",
]
