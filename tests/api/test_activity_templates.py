"""
API tests for the activity template catalog.
"""

from uuid import uuid4


URL = "/api/activity-templates"


def template(name="Back Squat", group="squat", type_="primary lift", **extra):
    return {"name": name, "activity_group": group, "type": type_, **extra}


class TestCreateActivityTemplate:

    def test_coach_creates_gym_template(self, client, coach_headers):
        response = client.post(URL, json=template(), headers=coach_headers)

        assert response.status_code == 201
        body = response.json()
        assert body["gym_id"] == "gym-1"
        assert body["is_global"] is False
        assert body["type"] == "primary lift"

    def test_admin_creates_global_template(self, client, admin_headers):
        response = client.post(URL, json=template(is_global=True), headers=admin_headers)

        assert response.status_code == 201
        assert response.json()["gym_id"] is None
        assert response.json()["is_global"] is True

    def test_only_admin_creates_global(self, client, owner_headers):
        response = client.post(URL, json=template(is_global=True), headers=owner_headers)

        assert response.status_code == 403

    def test_member_cannot_create(self, client, member_headers):
        assert client.post(URL, json=template(), headers=member_headers).status_code == 403

    def test_duplicate_name_in_gym_is_409(self, client, coach_headers, other_owner_headers):
        client.post(URL, json=template(), headers=coach_headers)

        assert client.post(URL, json=template(name="back squat"), headers=coach_headers).status_code == 409
        assert client.post(URL, json=template(), headers=other_owner_headers).status_code == 201

    def test_unknown_type_is_422(self, client, coach_headers):
        assert client.post(URL, json=template(type_="cardio"), headers=coach_headers).status_code == 422


class TestListActivityTemplates:

    def test_gym_sees_own_and_global(self, client, admin_headers, owner_headers, other_owner_headers):
        client.post(URL, json=template(name="Deadlift", group="hinge", is_global=True), headers=admin_headers)
        client.post(URL, json=template(name="Box Squat"), headers=owner_headers)
        client.post(URL, json=template(name="Yoke Walk", group="carry"), headers=other_owner_headers)

        body = client.get(URL, headers=owner_headers).json()

        assert [t["name"] for t in body["templates"]] == ["Box Squat", "Deadlift"]
        assert body["pagination"]["total"] == 2

    def test_admin_sees_everything_without_gym(self, client, admin_headers, owner_headers, other_owner_headers):
        client.post(URL, json=template(name="Box Squat"), headers=owner_headers)
        client.post(URL, json=template(name="Yoke Walk", group="carry"), headers=other_owner_headers)

        assert client.get(URL, headers=admin_headers).json()["pagination"]["total"] == 2

    def test_search_filters_by_name(self, client, owner_headers):
        client.post(URL, json=template(name="Box Squat"), headers=owner_headers)
        client.post(URL, json=template(name="Bench Press", group="bench"), headers=owner_headers)

        body = client.get(URL, params={"search": "bench"}, headers=owner_headers).json()

        assert [t["name"] for t in body["templates"]] == ["Bench Press"]


class TestModifyActivityTemplate:

    def test_coach_updates_gym_template(self, client, coach_headers):
        created = client.post(URL, json=template(), headers=coach_headers).json()

        response = client.put(
            f"{URL}/{created['id']}",
            json={"activity_group": "legs", "instructions": "Brace, then descend"},
            headers=coach_headers,
        )

        assert response.status_code == 200
        assert response.json()["activity_group"] == "legs"
        assert response.json()["instructions"] == "Brace, then descend"

    def test_owner_cannot_edit_global(self, client, admin_headers, owner_headers):
        created = client.post(URL, json=template(is_global=True), headers=admin_headers).json()

        response = client.put(f"{URL}/{created['id']}", json={"name": "Mine now"}, headers=owner_headers)

        assert response.status_code == 403

    def test_other_gym_cannot_read_private_template(self, client, owner_headers, other_owner_headers):
        created = client.post(URL, json=template(), headers=owner_headers).json()

        assert client.get(f"{URL}/{created['id']}", headers=other_owner_headers).status_code == 403

    def test_global_template_readable_by_any_gym(self, client, admin_headers, other_owner_headers):
        created = client.post(URL, json=template(is_global=True), headers=admin_headers).json()

        assert client.get(f"{URL}/{created['id']}", headers=other_owner_headers).status_code == 200

    def test_delete_hides_template(self, client, owner_headers):
        created = client.post(URL, json=template(), headers=owner_headers).json()

        assert client.delete(f"{URL}/{created['id']}", headers=owner_headers).status_code == 204
        assert client.get(f"{URL}/{created['id']}", headers=owner_headers).status_code == 404

    def test_unknown_id_is_404(self, client, owner_headers):
        assert client.get(f"{URL}/{uuid4()}", headers=owner_headers).status_code == 404


class TestActivityGroups:

    def test_lists_groups_visible_to_gym_with_counts(self, client, admin_headers, owner_headers, other_owner_headers):
        client.post(URL, json=template(name="Back Squat", is_global=True), headers=admin_headers)
        client.post(URL, json=template(name="Box Squat"), headers=owner_headers)
        client.post(URL, json=template(name="Bench Press", group="bench"), headers=owner_headers)
        client.post(URL, json=template(name="Yoke Walk", group="carry"), headers=other_owner_headers)

        response = client.get(f"{URL}/groups", headers=owner_headers)

        assert response.status_code == 200
        assert response.json() == {
            "groups": [
                {"activity_group": "bench", "count": 1},
                {"activity_group": "squat", "count": 2},
            ]
        }

    def test_deleted_templates_drop_out_of_counts(self, client, owner_headers):
        created = client.post(URL, json=template(), headers=owner_headers).json()
        client.delete(f"{URL}/{created['id']}", headers=owner_headers)

        assert client.get(f"{URL}/groups", headers=owner_headers).json() == {"groups": []}

    def test_admin_without_gym_sees_all_groups(self, client, admin_headers, owner_headers, other_owner_headers):
        client.post(URL, json=template(name="Box Squat"), headers=owner_headers)
        client.post(URL, json=template(name="Yoke Walk", group="carry"), headers=other_owner_headers)

        body = client.get(f"{URL}/groups", headers=admin_headers).json()

        assert [g["activity_group"] for g in body["groups"]] == ["carry", "squat"]

    def test_requires_token(self, client):
        assert client.get(f"{URL}/groups").status_code == 401
