"""
API tests for workout programs and the volume endpoint.
"""

from uuid import uuid4

import pytest

from src.core.programs import ActivityTemplate, TemplateType


URL = "/api/workout-programs"


@pytest.fixture
def catalog(activity_repo):
    """A global squat, a gym-1 bench, and a gym-2 lift gym-1 must not see."""
    squat = ActivityTemplate(name="Back Squat", activity_group="squat", type=TemplateType.PRIMARY_LIFT)
    bench = ActivityTemplate(name="Bench Press", activity_group="bench", type=TemplateType.PRIMARY_LIFT, gym_id="gym-1")
    foreign = ActivityTemplate(name="Log Press", activity_group="press", type=TemplateType.PRIMARY_LIFT, gym_id="gym-2")
    row = ActivityTemplate(name="Row Erg", activity_group="engine", type=TemplateType.CONDITIONING)
    for template in (squat, bench, foreign, row):
        activity_repo.save(template)
    return {"squat": str(squat.id), "bench": str(bench.id), "foreign": str(foreign.id), "row": str(row.id)}


def strength(template_id, sets=5, reps=5):
    return {"template_id": template_id, "type": "strength", "sets": sets, "reps": reps}


def program(name="Strength Cycle", activities=(), **extra):
    return {
        "name": name,
        "blocks": [
            {
                "name": "Accumulation",
                "volume_targets": [
                    {"activity_group": "squat", "target_percentage": 60},
                    {"activity_group": "bench", "target_percentage": 40},
                ],
                "weeks": [{"week_number": 1, "days": [{"day_of_week": 1, "activities": list(activities)}]}],
            }
        ],
        **extra,
    }


class TestCreateProgram:

    def test_creates_program(self, client, owner_headers, catalog):
        response = client.post(
            URL,
            json=program(activities=[strength(catalog["squat"]), strength(catalog["bench"])]),
            headers=owner_headers,
        )

        assert response.status_code == 201
        body = response.json()
        assert body["gym_id"] == "gym-1"
        assert body["version"] == 1
        assert body["duration_weeks"] == 1
        assert body["total_activities"] == 2
        assert body["parent_program_id"] is None

    def test_empty_program_is_invalid_structure(self, client, owner_headers):
        response = client.post(URL, json={"name": "Empty", "blocks": []}, headers=owner_headers)

        assert response.status_code == 400
        assert response.json() == {
            "detail": "Invalid program structure",
            "errors": ["Program must have at least one block"],
        }

    def test_duplicate_days_are_invalid_structure(self, client, owner_headers):
        body = program()
        body["blocks"][0]["weeks"][0]["days"].append({"day_of_week": 1})

        response = client.post(URL, json=body, headers=owner_headers)

        assert response.status_code == 400
        assert response.json()["errors"] == ["Block 1, Week 1 has duplicate days of week"]

    def test_unknown_template_is_rejected(self, client, owner_headers, catalog):
        missing = str(uuid4())

        response = client.post(
            URL,
            json=program(activities=[strength(catalog["squat"]), strength(missing)]),
            headers=owner_headers,
        )

        assert response.status_code == 400
        assert response.json()["invalid_template_ids"] == [missing]

    def test_other_gyms_template_is_rejected(self, client, owner_headers, catalog):
        response = client.post(URL, json=program(activities=[strength(catalog["foreign"])]), headers=owner_headers)

        assert response.status_code == 400
        assert response.json()["invalid_template_ids"] == [catalog["foreign"]]

    def test_strength_needs_positive_sets(self, client, owner_headers, catalog):
        response = client.post(
            URL,
            json=program(activities=[strength(catalog["squat"], sets=0)]),
            headers=owner_headers,
        )

        assert response.status_code == 422

    def test_intensity_above_200_is_rejected(self, client, owner_headers, catalog):
        activity = {**strength(catalog["squat"]), "intensity_percentage": 250}

        response = client.post(URL, json=program(activities=[activity]), headers=owner_headers)

        assert response.status_code == 422

    def test_duplicate_name_is_400(self, client, owner_headers):
        client.post(URL, json=program(name="Cycle"), headers=owner_headers)

        response = client.post(URL, json=program(name="CYCLE"), headers=owner_headers)

        assert response.status_code == 400
        assert "already exists" in response.json()["detail"]

    def test_member_can_create(self, client, member_headers):
        """Programs are open to every member of the gym."""
        assert client.post(URL, json=program(), headers=member_headers).status_code == 201


class TestReadPrograms:

    def test_other_gym_sees_404(self, client, owner_headers, other_owner_headers):
        created = client.post(URL, json=program(), headers=owner_headers).json()

        assert client.get(f"{URL}/{created['id']}", headers=other_owner_headers).status_code == 404

    def test_admin_reads_any_gym(self, client, owner_headers, admin_headers):
        created = client.post(URL, json=program(), headers=owner_headers).json()

        assert client.get(f"{URL}/{created['id']}", headers=admin_headers).status_code == 200

    def test_list_filters_templates(self, client, owner_headers):
        client.post(URL, json=program(name="Regular"), headers=owner_headers)
        client.post(URL, json=program(name="Reusable", is_template=True), headers=owner_headers)

        body = client.get(URL, params={"is_template": True}, headers=owner_headers).json()

        assert [p["name"] for p in body["programs"]] == ["Reusable"]
        assert body["pagination"]["total"] == 1

    def test_list_is_scoped_to_gym(self, client, owner_headers, other_owner_headers):
        client.post(URL, json=program(name="Mine"), headers=owner_headers)
        client.post(URL, json=program(name="Theirs"), headers=other_owner_headers)

        body = client.get(URL, headers=owner_headers).json()

        assert [p["name"] for p in body["programs"]] == ["Mine"]

    def test_admin_lists_every_gym(self, client, owner_headers, other_owner_headers, admin_headers):
        client.post(URL, json=program(name="Mine"), headers=owner_headers)
        client.post(URL, json=program(name="Theirs"), headers=other_owner_headers)

        assert client.get(URL, headers=admin_headers).json()["pagination"]["total"] == 2
        assert client.get(URL, params={"gym_id": "gym-2"}, headers=admin_headers).json()["pagination"]["total"] == 1


class TestUpdateCopyDelete:

    def test_update_bumps_version(self, client, owner_headers, catalog):
        created = client.post(URL, json=program(), headers=owner_headers).json()

        response = client.put(
            f"{URL}/{created['id']}",
            json={"description": "Phase two", "blocks": program(activities=[strength(catalog["squat"])])["blocks"]},
            headers=owner_headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["version"] == 2
        assert body["description"] == "Phase two"
        assert body["total_activities"] == 1

    def test_update_with_bad_structure_keeps_program(self, client, owner_headers):
        created = client.post(URL, json=program(), headers=owner_headers).json()

        response = client.put(f"{URL}/{created['id']}", json={"blocks": []}, headers=owner_headers)

        assert response.status_code == 400
        assert client.get(f"{URL}/{created['id']}", headers=owner_headers).json()["version"] == 1

    def test_copy_links_parent_and_resets_version(self, client, owner_headers, catalog):
        source = client.post(URL, json=program(activities=[strength(catalog["squat"])]), headers=owner_headers).json()
        client.put(f"{URL}/{source['id']}", json={"description": "v2"}, headers=owner_headers)

        response = client.post(
            f"{URL}/{source['id']}/copy",
            json={"name": "Strength Cycle (copy)", "is_template": True},
            headers=owner_headers,
        )

        assert response.status_code == 201
        copy = response.json()
        assert copy["parent_program_id"] == source["id"]
        assert copy["version"] == 1
        assert copy["is_template"] is True
        assert copy["total_activities"] == 1
        assert copy["blocks"][0]["block_id"] != source["blocks"][0]["block_id"]
        source_activity = source["blocks"][0]["weeks"][0]["days"][0]["activities"][0]
        copied_activity = copy["blocks"][0]["weeks"][0]["days"][0]["activities"][0]
        assert copied_activity["activity_id"] != source_activity["activity_id"]
        assert copied_activity["template_id"] == source_activity["template_id"]

    def test_copy_needs_unique_name(self, client, owner_headers):
        source = client.post(URL, json=program(name="Base"), headers=owner_headers).json()

        response = client.post(f"{URL}/{source['id']}/copy", json={"name": "base"}, headers=owner_headers)

        assert response.status_code == 400

    def test_delete_hides_program(self, client, owner_headers):
        created = client.post(URL, json=program(), headers=owner_headers).json()

        assert client.delete(f"{URL}/{created['id']}", headers=owner_headers).status_code == 204
        assert client.get(f"{URL}/{created['id']}", headers=owner_headers).status_code == 404


class TestProgramVolume:

    def test_reports_actual_percentages_per_block(self, client, owner_headers, catalog):
        created = client.post(
            URL,
            json=program(activities=[
                strength(catalog["squat"], sets=5, reps=5),
                strength(catalog["bench"], sets=5, reps=5),
                {"template_id": catalog["row"], "type": "conditioning", "duration": 600},
            ]),
            headers=owner_headers,
        ).json()

        response = client.get(f"{URL}/{created['id']}/volume", headers=owner_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["program_id"] == created["id"]
        assert body["program_name"] == "Strength Cycle"
        [block] = body["block_calculations"]
        assert block["block_name"] == "Accumulation"
        assert {p["activity_group"]: p["actual_percentage"] for p in block["actual_percentages"]} == {
            "squat": 50,
            "bench": 50,
        }
        assert [t["activity_group"] for t in block["volume_targets"]] == ["squat", "bench"]

    def test_block_without_strength_work_is_empty(self, client, owner_headers, catalog):
        created = client.post(
            URL,
            json=program(activities=[{"template_id": catalog["row"], "type": "conditioning", "duration": 600}]),
            headers=owner_headers,
        ).json()

        body = client.get(f"{URL}/{created['id']}/volume", headers=owner_headers).json()

        assert body["block_calculations"][0]["actual_percentages"] == []

    def test_other_gym_cannot_see_volume(self, client, owner_headers, other_owner_headers):
        created = client.post(URL, json=program(), headers=owner_headers).json()

        response = client.get(f"{URL}/{created['id']}/volume", headers=other_owner_headers)

        assert response.status_code == 404

    def test_deleted_template_still_counts_toward_volume(self, client, owner_headers, catalog):
        created = client.post(
            URL,
            json=program(activities=[strength(catalog["squat"]), strength(catalog["bench"])]),
            headers=owner_headers,
        ).json()
        deleted = client.delete(f"/api/activity-templates/{catalog['bench']}", headers=owner_headers)
        assert deleted.status_code == 204

        body = client.get(f"{URL}/{created['id']}/volume", headers=owner_headers).json()

        [block] = body["block_calculations"]
        assert {p["activity_group"]: p["actual_percentage"] for p in block["actual_percentages"]} == {
            "squat": 50,
            "bench": 50,
        }
