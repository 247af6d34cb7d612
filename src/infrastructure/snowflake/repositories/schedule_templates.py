"""
Snowflake repository for schedule templates.

Timeslots are embedded in the template document; the row's plain
columns (gym, name, default and active flags, timestamps) drive the
list queries and the single-default update.
"""

import logging
from typing import Optional
from uuid import UUID

from src.core.scheduling.models import ScheduleTemplate, Timeslot

from .common import (
    NotFoundError,
    SnowflakeConnection,
    page_offset,
    parse_datetime,
    parse_variant_json,
    to_json,
)


logger = logging.getLogger(__name__)


class ScheduleTemplateNotFoundError(NotFoundError):
    """Raised when a requested schedule template doesn't exist."""
    pass


class ScheduleTemplateRepository:
    """
    Repository for schedule template persistence.

    Deletes are soft: a deleted template keeps its row with
    is_active = FALSE and disappears from every query here.
    """

    def __init__(self, connection: SnowflakeConnection) -> None:
        self._conn = connection

    def save(self, template: ScheduleTemplate) -> None:
        """Insert or update a template. Idempotent."""
        cursor = self._conn.cursor()

        try:
            cursor.execute("""
                MERGE INTO schedule_templates AS target
                USING (SELECT
                    %s AS template_id,
                    %s AS gym_id,
                    %s AS name,
                    %s AS is_default,
                    %s AS is_active,
                    PARSE_JSON(%s) AS document,
                    %s AS created_at,
                    %s AS updated_at
                ) AS source
                ON target.template_id = source.template_id
                WHEN MATCHED THEN UPDATE SET
                    gym_id = source.gym_id,
                    name = source.name,
                    is_default = source.is_default,
                    is_active = source.is_active,
                    document = source.document,
                    updated_at = source.updated_at
                WHEN NOT MATCHED THEN INSERT (
                    template_id, gym_id, name, is_default, is_active,
                    document, created_at, updated_at
                ) VALUES (
                    source.template_id, source.gym_id, source.name,
                    source.is_default, source.is_active, source.document,
                    source.created_at, source.updated_at
                )
            """, (
                str(template.id),
                template.gym_id,
                template.name,
                template.is_default,
                template.is_active,
                to_json(self._to_document(template)),
                template.created_at,
                template.updated_at,
            ))
            self._conn.commit()

        except Exception as e:
            logger.error(
                "Failed to save schedule template",
                extra={"template_id": str(template.id), "error": str(e)}
            )
            raise
        finally:
            cursor.close()

    def get(self, template_id: UUID) -> ScheduleTemplate:
        cursor = self._conn.cursor()

        try:
            cursor.execute("""
                SELECT document, is_default, is_active
                FROM schedule_templates
                WHERE template_id = %s AND is_active = TRUE
            """, (str(template_id),))

            row = cursor.fetchone()
            if not row:
                raise ScheduleTemplateNotFoundError(f"Schedule template {template_id} not found")

            return self._from_row(row)

        finally:
            cursor.close()

    def list_for_gym(
        self,
        gym_id: str,
        page: int = 1,
        limit: int = 20,
        search: Optional[str] = None,
    ) -> list[ScheduleTemplate]:
        """Active templates for a gym, default first, then most recently updated."""
        cursor = self._conn.cursor()

        try:
            where, params = self._gym_filter(gym_id, search)
            cursor.execute(f"""
                SELECT document, is_default, is_active
                FROM schedule_templates
                WHERE {where}
                ORDER BY is_default DESC, updated_at DESC
                LIMIT %s OFFSET %s
            """, params + (limit, page_offset(page, limit)))

            return [self._from_row(row) for row in cursor.fetchall()]

        finally:
            cursor.close()

    def count_for_gym(self, gym_id: str, search: Optional[str] = None) -> int:
        cursor = self._conn.cursor()

        try:
            where, params = self._gym_filter(gym_id, search)
            cursor.execute(f"""
                SELECT COUNT(*)
                FROM schedule_templates
                WHERE {where}
            """, params)

            row = cursor.fetchone()
            return row[0] if row else 0

        finally:
            cursor.close()

    def find_by_name(
        self,
        gym_id: str,
        name: str,
        exclude_id: Optional[UUID] = None,
    ) -> Optional[ScheduleTemplate]:
        """Case-insensitive lookup of an active template name within a gym."""
        cursor = self._conn.cursor()

        try:
            query = """
                SELECT document, is_default, is_active
                FROM schedule_templates
                WHERE gym_id = %s AND LOWER(name) = LOWER(%s) AND is_active = TRUE
            """
            params: tuple = (gym_id, name.strip())
            if exclude_id is not None:
                query += " AND template_id <> %s"
                params += (str(exclude_id),)

            cursor.execute(query, params)
            row = cursor.fetchone()
            return self._from_row(row) if row else None

        finally:
            cursor.close()

    def list_defaults(self, gym_id: str) -> list[ScheduleTemplate]:
        """Active templates of a gym currently flagged as default (normally zero or one)."""
        cursor = self._conn.cursor()

        try:
            cursor.execute("""
                SELECT document, is_default, is_active
                FROM schedule_templates
                WHERE gym_id = %s AND is_default = TRUE AND is_active = TRUE
            """, (gym_id,))

            return [self._from_row(row) for row in cursor.fetchall()]

        finally:
            cursor.close()

    # -----------------------------------------------------------------------
    # Private Methods
    # -----------------------------------------------------------------------

    @staticmethod
    def _gym_filter(gym_id: str, search: Optional[str]) -> tuple[str, tuple]:
        where = "gym_id = %s AND is_active = TRUE"
        params: tuple = (gym_id,)
        if search:
            where += " AND name ILIKE %s"
            params += (f"%{search}%",)
        return where, params

    @staticmethod
    def _to_document(template: ScheduleTemplate) -> dict:
        return {
            "id": str(template.id),
            "gym_id": template.gym_id,
            "name": template.name,
            "description": template.description,
            "is_default": template.is_default,
            "is_active": template.is_active,
            "created_by": template.created_by,
            "created_at": template.created_at,
            "updated_at": template.updated_at,
            "timeslots": [
                {
                    "timeslot_id": str(slot.timeslot_id),
                    "day_of_week": slot.day_of_week,
                    "start_time": slot.start_time,
                    "end_time": slot.end_time,
                    "location_id": slot.location_id,
                    "coach_id": slot.coach_id,
                    "program_id": slot.program_id,
                    "max_capacity": slot.max_capacity,
                    "class_name": slot.class_name,
                    "notes": slot.notes,
                    "is_active": slot.is_active,
                }
                for slot in template.timeslots
            ],
        }

    def _from_row(self, row) -> ScheduleTemplate:
        doc = parse_variant_json(row[0]) or {}

        timeslots = [
            Timeslot(
                timeslot_id=UUID(slot["timeslot_id"]),
                day_of_week=slot["day_of_week"],
                start_time=slot["start_time"],
                end_time=slot["end_time"],
                location_id=slot.get("location_id"),
                coach_id=slot.get("coach_id"),
                program_id=slot.get("program_id"),
                max_capacity=slot.get("max_capacity", 20),
                class_name=slot.get("class_name"),
                notes=slot.get("notes"),
                is_active=slot.get("is_active", True),
            )
            for slot in doc.get("timeslots", [])
        ]

        return ScheduleTemplate(
            id=UUID(doc["id"]),
            gym_id=doc["gym_id"],
            name=doc["name"],
            description=doc.get("description"),
            created_by=doc.get("created_by", ""),
            timeslots=timeslots,
            is_default=bool(row[1]),
            is_active=bool(row[2]),
            created_at=parse_datetime(doc.get("created_at")),
            updated_at=parse_datetime(doc.get("updated_at")),
        )
