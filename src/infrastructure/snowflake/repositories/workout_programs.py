"""
Snowflake repository for workout programs.

The block/week/day/activity tree is stored whole in the document column.
Programs are read far more often than written and always as a unit, so
there is no benefit in normalizing the tree into separate tables.
"""

import logging
from typing import Optional
from uuid import UUID

from src.core.programs.models import (
    ActivityType,
    ProgramActivity,
    ProgramBlock,
    ProgramDay,
    ProgramWeek,
    VolumeTarget,
    WorkoutProgram,
)

from .common import (
    NotFoundError,
    SnowflakeConnection,
    page_offset,
    parse_datetime,
    parse_variant_json,
    to_json,
)


logger = logging.getLogger(__name__)


class WorkoutProgramNotFoundError(NotFoundError):
    """Raised when a requested workout program doesn't exist."""
    pass


class WorkoutProgramRepository:
    """
    Repository for workout program persistence.

    Every read can be scoped to a gym; pass gym_id=None only for admins.
    """

    def __init__(self, connection: SnowflakeConnection) -> None:
        self._conn = connection

    def save(self, program: WorkoutProgram) -> None:
        cursor = self._conn.cursor()

        try:
            cursor.execute("""
                MERGE INTO workout_programs AS target
                USING (SELECT
                    %s AS program_id,
                    %s AS gym_id,
                    %s AS name,
                    %s AS is_template,
                    %s AS is_active,
                    %s AS version,
                    PARSE_JSON(%s) AS document,
                    %s AS created_at,
                    %s AS updated_at
                ) AS source
                ON target.program_id = source.program_id
                WHEN MATCHED THEN UPDATE SET
                    gym_id = source.gym_id,
                    name = source.name,
                    is_template = source.is_template,
                    is_active = source.is_active,
                    version = source.version,
                    document = source.document,
                    updated_at = source.updated_at
                WHEN NOT MATCHED THEN INSERT (
                    program_id, gym_id, name, is_template, is_active, version,
                    document, created_at, updated_at
                ) VALUES (
                    source.program_id, source.gym_id, source.name,
                    source.is_template, source.is_active, source.version,
                    source.document, source.created_at, source.updated_at
                )
            """, (
                str(program.id),
                program.gym_id,
                program.name,
                program.is_template,
                program.is_active,
                program.version,
                to_json(self._to_document(program)),
                program.created_at,
                program.updated_at,
            ))
            self._conn.commit()

        except Exception as e:
            logger.error(
                "Failed to save workout program",
                extra={"program_id": str(program.id), "error": str(e)}
            )
            raise
        finally:
            cursor.close()

    def get(self, program_id: UUID, gym_id: Optional[str] = None) -> WorkoutProgram:
        """Load an active program, optionally requiring it to belong to gym_id."""
        cursor = self._conn.cursor()

        try:
            query = """
                SELECT document, is_active
                FROM workout_programs
                WHERE program_id = %s AND is_active = TRUE
            """
            params: tuple = (str(program_id),)
            if gym_id is not None:
                query += " AND gym_id = %s"
                params += (gym_id,)

            cursor.execute(query, params)
            row = cursor.fetchone()
            if not row:
                raise WorkoutProgramNotFoundError(f"Workout program {program_id} not found")

            return self._from_row(row)

        finally:
            cursor.close()

    def list_programs(
        self,
        gym_id: Optional[str] = None,
        is_template: Optional[bool] = None,
        search: Optional[str] = None,
        page: int = 1,
        limit: int = 20,
    ) -> list[WorkoutProgram]:
        """Active programs, newest first."""
        cursor = self._conn.cursor()

        try:
            where, params = self._filter(gym_id, is_template, search)
            cursor.execute(f"""
                SELECT document, is_active
                FROM workout_programs
                WHERE {where}
                ORDER BY created_at DESC
                LIMIT %s OFFSET %s
            """, params + (limit, page_offset(page, limit)))

            return [self._from_row(row) for row in cursor.fetchall()]

        finally:
            cursor.close()

    def count(
        self,
        gym_id: Optional[str] = None,
        is_template: Optional[bool] = None,
        search: Optional[str] = None,
    ) -> int:
        cursor = self._conn.cursor()

        try:
            where, params = self._filter(gym_id, is_template, search)
            cursor.execute(f"""
                SELECT COUNT(*)
                FROM workout_programs
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
    ) -> Optional[WorkoutProgram]:
        cursor = self._conn.cursor()

        try:
            query = """
                SELECT document, is_active
                FROM workout_programs
                WHERE gym_id = %s AND LOWER(name) = LOWER(%s) AND is_active = TRUE
            """
            params: tuple = (gym_id, name.strip())
            if exclude_id is not None:
                query += " AND program_id <> %s"
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
        is_template: Optional[bool],
        search: Optional[str],
    ) -> tuple[str, tuple]:
        where = "is_active = TRUE"
        params: tuple = ()
        if gym_id is not None:
            where += " AND gym_id = %s"
            params += (gym_id,)
        if is_template is not None:
            where += " AND is_template = %s"
            params += (is_template,)
        if search:
            where += " AND name ILIKE %s"
            params += (f"%{search}%",)
        return where, params

    @staticmethod
    def _to_document(program: WorkoutProgram) -> dict:
        def targets(items: list[VolumeTarget]) -> list[dict]:
            return [
                {"activity_group": t.activity_group, "target_percentage": t.target_percentage}
                for t in items
            ]

        return {
            "id": str(program.id),
            "gym_id": program.gym_id,
            "name": program.name,
            "description": program.description,
            "is_template": program.is_template,
            "version": program.version,
            "parent_program_id": str(program.parent_program_id) if program.parent_program_id else None,
            "created_at": program.created_at,
            "updated_at": program.updated_at,
            "blocks": [
                {
                    "block_id": str(block.block_id),
                    "name": block.name,
                    "description": block.description,
                    "order_index": block.order_index,
                    "volume_targets": targets(block.volume_targets),
                    "weeks": [
                        {
                            "week_id": str(week.week_id),
                            "week_number": week.week_number,
                            "description": week.description,
                            "volume_targets": targets(week.volume_targets),
                            "days": [
                                {
                                    "day_id": str(day.day_id),
                                    "day_of_week": day.day_of_week,
                                    "name": day.name,
                                    "activities": [
                                        {
                                            "activity_id": str(a.activity_id),
                                            "template_id": a.template_id,
                                            "type": a.type.value,
                                            "order_index": a.order_index,
                                            "sets": a.sets,
                                            "reps": a.reps,
                                            "rest_period": a.rest_period,
                                            "intensity_percentage": a.intensity_percentage,
                                            "duration": a.duration,
                                            "distance": a.distance,
                                            "notes": a.notes,
                                        }
                                        for a in day.activities
                                    ],
                                }
                                for day in week.days
                            ],
                        }
                        for week in block.weeks
                    ],
                }
                for block in program.blocks
            ],
        }

    def _from_row(self, row) -> WorkoutProgram:
        doc = parse_variant_json(row[0]) or {}

        def targets(items) -> list[VolumeTarget]:
            return [
                VolumeTarget(
                    activity_group=t["activity_group"],
                    target_percentage=t["target_percentage"],
                )
                for t in items or []
            ]

        blocks = [
            ProgramBlock(
                block_id=UUID(b["block_id"]),
                name=b["name"],
                description=b.get("description"),
                order_index=b.get("order_index", 0),
                volume_targets=targets(b.get("volume_targets")),
                weeks=[
                    ProgramWeek(
                        week_id=UUID(w["week_id"]),
                        week_number=w["week_number"],
                        description=w.get("description"),
                        volume_targets=targets(w.get("volume_targets")),
                        days=[
                            ProgramDay(
                                day_id=UUID(d["day_id"]),
                                day_of_week=d["day_of_week"],
                                name=d.get("name"),
                                activities=[
                                    ProgramActivity(
                                        activity_id=UUID(a["activity_id"]),
                                        template_id=a["template_id"],
                                        type=ActivityType(a.get("type", "strength")),
                                        order_index=a.get("order_index", 0),
                                        sets=a.get("sets"),
                                        reps=a.get("reps"),
                                        rest_period=a.get("rest_period", 60),
                                        intensity_percentage=a.get("intensity_percentage"),
                                        duration=a.get("duration"),
                                        distance=a.get("distance"),
                                        notes=a.get("notes"),
                                    )
                                    for a in d.get("activities", [])
                                ],
                            )
                            for d in w.get("days", [])
                        ],
                    )
                    for w in b.get("weeks", [])
                ],
            )
            for b in doc.get("blocks", [])
        ]

        parent = doc.get("parent_program_id")

        return WorkoutProgram(
            id=UUID(doc["id"]),
            gym_id=doc["gym_id"],
            name=doc["name"],
            description=doc.get("description"),
            blocks=blocks,
            is_active=bool(row[1]),
            is_template=doc.get("is_template", False),
            version=doc.get("version", 1),
            parent_program_id=UUID(parent) if parent else None,
            created_at=parse_datetime(doc.get("created_at")),
            updated_at=parse_datetime(doc.get("updated_at")),
        )
