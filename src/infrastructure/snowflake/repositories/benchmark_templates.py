"""
Snowflake repository for benchmark templates.

Tags live in their own VARIANT array column so listings can filter on
them with ARRAYS_OVERLAP. Deletes are hard deletes.
"""

import logging
from collections import Counter
from typing import Optional
from uuid import UUID

from src.core.benchmarks.models import BenchmarkTemplate, BenchmarkType, BenchmarkUnit

from .common import (
    NotFoundError,
    SnowflakeConnection,
    page_offset,
    parse_datetime,
    parse_variant_json,
    to_json,
)


logger = logging.getLogger(__name__)


class BenchmarkTemplateNotFoundError(NotFoundError):
    """Raised when a requested benchmark template doesn't exist."""
    pass


class BenchmarkTemplateRepository:
    """Repository for benchmark template persistence."""

    def __init__(self, connection: SnowflakeConnection) -> None:
        self._conn = connection

    def save(self, template: BenchmarkTemplate) -> None:
        cursor = self._conn.cursor()

        try:
            cursor.execute("""
                MERGE INTO benchmark_templates AS target
                USING (SELECT
                    %s AS template_id,
                    %s AS gym_id,
                    %s AS name,
                    %s AS type,
                    %s AS unit,
                    PARSE_JSON(%s) AS tags,
                    %s AS is_active,
                    PARSE_JSON(%s) AS document,
                    %s AS created_at,
                    %s AS updated_at
                ) AS source
                ON target.template_id = source.template_id
                WHEN MATCHED THEN UPDATE SET
                    name = source.name,
                    type = source.type,
                    unit = source.unit,
                    tags = source.tags,
                    is_active = source.is_active,
                    document = source.document,
                    updated_at = source.updated_at
                WHEN NOT MATCHED THEN INSERT (
                    template_id, gym_id, name, type, unit, tags, is_active,
                    document, created_at, updated_at
                ) VALUES (
                    source.template_id, source.gym_id, source.name, source.type,
                    source.unit, source.tags, source.is_active, source.document,
                    source.created_at, source.updated_at
                )
            """, (
                str(template.id),
                template.gym_id,
                template.name,
                template.type.value,
                template.unit.value,
                to_json(template.tags),
                template.is_active,
                to_json(self._to_document(template)),
                template.created_at,
                template.updated_at,
            ))
            self._conn.commit()

        except Exception as e:
            logger.error(
                "Failed to save benchmark template",
                extra={"template_id": str(template.id), "error": str(e)}
            )
            raise
        finally:
            cursor.close()

    def get(self, template_id: UUID) -> BenchmarkTemplate:
        cursor = self._conn.cursor()

        try:
            cursor.execute("""
                SELECT document, is_active
                FROM benchmark_templates
                WHERE template_id = %s AND is_active = TRUE
            """, (str(template_id),))

            row = cursor.fetchone()
            if not row:
                raise BenchmarkTemplateNotFoundError(f"Benchmark template {template_id} not found")
            return self._from_row(row)

        finally:
            cursor.close()

    def delete(self, template_id: UUID) -> None:
        cursor = self._conn.cursor()

        try:
            cursor.execute("""
                DELETE FROM benchmark_templates
                WHERE template_id = %s
            """, (str(template_id),))
            self._conn.commit()

            if cursor.rowcount == 0:
                raise BenchmarkTemplateNotFoundError(f"Benchmark template {template_id} not found")

        finally:
            cursor.close()

    def list_visible(
        self,
        gym_id: Optional[str],
        type: Optional[BenchmarkType] = None,
        unit: Optional[BenchmarkUnit] = None,
        tags: Optional[list[str]] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 50,
    ) -> list[BenchmarkTemplate]:
        """
        Templates of one gym plus the global ones, by name.

        gym_id=None lists every gym (admin view).
        """
        cursor = self._conn.cursor()

        try:
            where, params = self._filter(gym_id, type=type, unit=unit, tags=tags, search=search)
            cursor.execute(f"""
                SELECT document, is_active
                FROM benchmark_templates
                WHERE {where}
                ORDER BY name ASC
                LIMIT %s OFFSET %s
            """, params + (limit, page_offset(page, limit)))

            return [self._from_row(row) for row in cursor.fetchall()]

        finally:
            cursor.close()

    def count_visible(
        self,
        gym_id: Optional[str],
        type: Optional[BenchmarkType] = None,
        unit: Optional[BenchmarkUnit] = None,
        tags: Optional[list[str]] = None,
        search: Optional[str] = None,
    ) -> int:
        cursor = self._conn.cursor()

        try:
            where, params = self._filter(gym_id, type=type, unit=unit, tags=tags, search=search)
            cursor.execute(f"""
                SELECT COUNT(*)
                FROM benchmark_templates
                WHERE {where}
            """, params)

            row = cursor.fetchone()
            return row[0] if row else 0

        finally:
            cursor.close()

    def tag_counts(self, gym_id: Optional[str], global_only: bool = False) -> list[tuple[str, int]]:
        """
        How many visible templates carry each tag, sorted by tag.

        gym_id=None counts across every gym unless global_only is set.
        """
        cursor = self._conn.cursor()

        try:
            where, params = self._filter(gym_id, global_only=global_only)
            cursor.execute(f"""
                SELECT tags
                FROM benchmark_templates
                WHERE {where}
            """, params)

            counts: Counter = Counter()
            for row in cursor.fetchall():
                counts.update(parse_variant_json(row[0]) or [])
            return sorted(counts.items())

        finally:
            cursor.close()

    def find_by_name(
        self,
        gym_id: Optional[str],
        name: str,
        exclude_id: Optional[UUID] = None,
    ) -> Optional[BenchmarkTemplate]:
        cursor = self._conn.cursor()

        try:
            if gym_id is None:
                query = """
                    SELECT document, is_active
                    FROM benchmark_templates
                    WHERE gym_id IS NULL AND LOWER(name) = LOWER(%s) AND is_active = TRUE
                """
                params: tuple = (name.strip(),)
            else:
                query = """
                    SELECT document, is_active
                    FROM benchmark_templates
                    WHERE gym_id = %s AND LOWER(name) = LOWER(%s) AND is_active = TRUE
                """
                params = (gym_id, name.strip())

            if exclude_id is not None:
                query += " AND template_id <> %s"
                params += (str(exclude_id),)

            cursor.execute(query, params)
            row = cursor.fetchone()
            return self._from_row(row) if row else None

        finally:
            cursor.close()

    # -----------------------------------------------------------------------
    # Private Methods
    # -----------------------------------------------------------------------

    @staticmethod
    def _filter(
        gym_id: Optional[str],
        global_only: bool = False,
        type: Optional[BenchmarkType] = None,
        unit: Optional[BenchmarkUnit] = None,
        tags: Optional[list[str]] = None,
        search: Optional[str] = None,
    ) -> tuple[str, tuple]:
        where = "is_active = TRUE"
        params: tuple = ()
        if global_only:
            where += " AND gym_id IS NULL"
        elif gym_id is not None:
            where += " AND (gym_id = %s OR gym_id IS NULL)"
            params += (gym_id,)
        if type is not None:
            where += " AND type = %s"
            params += (type.value,)
        if unit is not None:
            where += " AND unit = %s"
            params += (unit.value,)
        if tags:
            where += " AND ARRAYS_OVERLAP(tags, PARSE_JSON(%s))"
            params += (to_json(tags),)
        if search:
            where += " AND name ILIKE %s"
            params += (f"%{search}%",)
        return where, params

    @staticmethod
    def _to_document(template: BenchmarkTemplate) -> dict:
        return {
            "id": str(template.id),
            "gym_id": template.gym_id,
            "name": template.name,
            "type": template.type.value,
            "unit": template.unit.value,
            "description": template.description,
            "instructions": template.instructions,
            "notes": template.notes,
            "tags": template.tags,
            "created_by": template.created_by,
            "created_at": template.created_at,
            "updated_at": template.updated_at,
        }

    def _from_row(self, row) -> BenchmarkTemplate:
        doc = parse_variant_json(row[0]) or {}

        return BenchmarkTemplate(
            id=UUID(doc["id"]),
            gym_id=doc.get("gym_id"),
            name=doc["name"],
            type=BenchmarkType(doc["type"]),
            unit=BenchmarkUnit(doc["unit"]),
            description=doc.get("description"),
            instructions=doc.get("instructions"),
            notes=doc.get("notes"),
            tags=doc.get("tags") or [],
            created_by=doc.get("created_by"),
            is_active=bool(row[1]),
            created_at=parse_datetime(doc.get("created_at")),
            updated_at=parse_datetime(doc.get("updated_at")),
        )
