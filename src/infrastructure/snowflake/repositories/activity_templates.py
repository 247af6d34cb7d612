"""
Snowflake repository for the activity template catalog.

Templates with a NULL gym_id are global and visible to every gym.
"""

import logging
from typing import Iterable, Optional
from uuid import UUID

from src.core.programs.models import ActivityTemplate, TemplateType

from .common import (
    NotFoundError,
    SnowflakeConnection,
    page_offset,
    parse_datetime,
    parse_variant_json,
    to_json,
)


logger = logging.getLogger(__name__)


class ActivityTemplateNotFoundError(NotFoundError):
    """Raised when a requested activity template doesn't exist."""
    pass


class ActivityTemplateRepository:
    """Repository for activity template persistence."""

    def __init__(self, connection: SnowflakeConnection) -> None:
        self._conn = connection

    def save(self, template: ActivityTemplate) -> None:
        cursor = self._conn.cursor()

        try:
            cursor.execute("""
                MERGE INTO activity_templates AS target
                USING (SELECT
                    %s AS template_id,
                    %s AS gym_id,
                    %s AS name,
                    %s AS activity_group,
                    %s AS is_active,
                    PARSE_JSON(%s) AS document,
                    %s AS created_at,
                    %s AS updated_at
                ) AS source
                ON target.template_id = source.template_id
                WHEN MATCHED THEN UPDATE SET
                    gym_id = source.gym_id,
                    name = source.name,
                    activity_group = source.activity_group,
                    is_active = source.is_active,
                    document = source.document,
                    updated_at = source.updated_at
                WHEN NOT MATCHED THEN INSERT (
                    template_id, gym_id, name, activity_group, is_active,
                    document, created_at, updated_at
                ) VALUES (
                    source.template_id, source.gym_id, source.name,
                    source.activity_group, source.is_active, source.document,
                    source.created_at, source.updated_at
                )
            """, (
                str(template.id),
                template.gym_id,
                template.name,
                template.activity_group,
                template.is_active,
                to_json(self._to_document(template)),
                template.created_at,
                template.updated_at,
            ))
            self._conn.commit()

        except Exception as e:
            logger.error(
                "Failed to save activity template",
                extra={"template_id": str(template.id), "error": str(e)}
            )
            raise
        finally:
            cursor.close()

    def get(self, template_id: UUID) -> ActivityTemplate:
        cursor = self._conn.cursor()

        try:
            cursor.execute("""
                SELECT document, is_active
                FROM activity_templates
                WHERE template_id = %s AND is_active = TRUE
            """, (str(template_id),))

            row = cursor.fetchone()
            if not row:
                raise ActivityTemplateNotFoundError(f"Activity template {template_id} not found")
            return self._from_row(row)

        finally:
            cursor.close()

    def get_many(
        self,
        template_ids: Iterable[str],
        include_inactive: bool = False,
    ) -> list[ActivityTemplate]:
        """
        Load the templates among template_ids. Unknown ids are skipped.

        Deleted templates are left out unless include_inactive is set;
        volume analysis still needs their groups for existing programs.
        """
        ids = sorted({str(template_id) for template_id in template_ids})
        if not ids:
            return []

        cursor = self._conn.cursor()

        try:
            placeholders = ", ".join(["%s"] * len(ids))
            where = f"template_id IN ({placeholders})"
            if not include_inactive:
                where += " AND is_active = TRUE"

            cursor.execute(f"""
                SELECT document, is_active
                FROM activity_templates
                WHERE {where}
            """, tuple(ids))

            return [self._from_row(row) for row in cursor.fetchall()]

        finally:
            cursor.close()

    def list_visible(
        self,
        gym_id: Optional[str],
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 50,
    ) -> list[ActivityTemplate]:
        """
        Templates visible to a gym: its own plus the global catalog.

        gym_id=None lists everything (admin view).
        """
        cursor = self._conn.cursor()

        try:
            where, params = self._filter(gym_id, search)
            cursor.execute(f"""
                SELECT document, is_active
                FROM activity_templates
                WHERE {where}
                ORDER BY name ASC
                LIMIT %s OFFSET %s
            """, params + (limit, page_offset(page, limit)))

            return [self._from_row(row) for row in cursor.fetchall()]

        finally:
            cursor.close()

    def count_visible(self, gym_id: Optional[str], search: Optional[str] = None) -> int:
        cursor = self._conn.cursor()

        try:
            where, params = self._filter(gym_id, search)
            cursor.execute(f"""
                SELECT COUNT(*)
                FROM activity_templates
                WHERE {where}
            """, params)

            row = cursor.fetchone()
            return row[0] if row else 0

        finally:
            cursor.close()

    def list_groups(self, gym_id: Optional[str]) -> list[tuple[str, int]]:
        """
        Distinct activity groups among visible templates, with how many
        templates use each. gym_id=None covers every gym.
        """
        cursor = self._conn.cursor()

        try:
            where, params = self._filter(gym_id, None)
            cursor.execute(f"""
                SELECT activity_group, COUNT(*)
                FROM activity_templates
                WHERE {where}
                GROUP BY activity_group
                ORDER BY activity_group ASC
            """, params)

            return [(row[0], row[1]) for row in cursor.fetchall() if row[0]]

        finally:
            cursor.close()

    def find_by_name(
        self,
        gym_id: Optional[str],
        name: str,
        exclude_id: Optional[UUID] = None,
    ) -> Optional[ActivityTemplate]:
        cursor = self._conn.cursor()

        try:
            if gym_id is None:
                query = """
                    SELECT document, is_active
                    FROM activity_templates
                    WHERE gym_id IS NULL AND LOWER(name) = LOWER(%s) AND is_active = TRUE
                """
                params: tuple = (name.strip(),)
            else:
                query = """
                    SELECT document, is_active
                    FROM activity_templates
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
    def _filter(gym_id: Optional[str], search: Optional[str]) -> tuple[str, tuple]:
        where = "is_active = TRUE"
        params: tuple = ()
        if gym_id is not None:
            where += " AND (gym_id = %s OR gym_id IS NULL)"
            params += (gym_id,)
        if search:
            where += " AND name ILIKE %s"
            params += (f"%{search}%",)
        return where, params

    @staticmethod
    def _to_document(template: ActivityTemplate) -> dict:
        return {
            "id": str(template.id),
            "gym_id": template.gym_id,
            "name": template.name,
            "activity_group": template.activity_group,
            "type": template.type.value,
            "description": template.description,
            "instructions": template.instructions,
            "created_at": template.created_at,
            "updated_at": template.updated_at,
        }

    def _from_row(self, row) -> ActivityTemplate:
        doc = parse_variant_json(row[0]) or {}

        return ActivityTemplate(
            id=UUID(doc["id"]),
            gym_id=doc.get("gym_id"),
            name=doc["name"],
            activity_group=doc.get("activity_group", ""),
            type=TemplateType(doc.get("type", "primary lift")),
            description=doc.get("description"),
            instructions=doc.get("instructions"),
            is_active=bool(row[1]),
            created_at=parse_datetime(doc.get("created_at")),
            updated_at=parse_datetime(doc.get("updated_at")),
        )
