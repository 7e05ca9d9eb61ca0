"""API endpoint tests."""

import fitz  # PyMuPDF
import pytest
from httpx import AsyncClient


pytestmark = pytest.mark.asyncio

API = "/api/v1"


async def create_fields(client: AsyncClient, template_id: str, fields: list[dict]) -> list[dict]:
    response = await client.post(f"{API}/templates/{template_id}/fields/bulk", json=fields)
    assert response.status_code == 200
    return response.json()


class TestHealth:
    """Health check endpoint tests."""

    async def test_health_check(self, client: AsyncClient):
        """Test health check returns healthy status."""
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    async def test_root_endpoint(self, client: AsyncClient):
        """Test root endpoint returns app info."""
        response = await client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert "app" in data
        assert "version" in data


class TestTemplates:
    """Template endpoint tests."""

    async def test_upload_template(self, client: AsyncClient, sample_pdf: bytes):
        """Test uploading a PDF template."""
        response = await client.post(
            f"{API}/templates",
            files={"file": ("contract.pdf", sample_pdf, "application/pdf")},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["original_filename"] == "contract.pdf"
        assert data["page_count"] == 3
        assert data["page_width"] == pytest.approx(612)

        response = await client.get(f"{API}/templates")
        assert [t["id"] for t in response.json()] == [data["id"]]

    async def test_upload_rejects_non_pdf(self, client: AsyncClient):
        response = await client.post(
            f"{API}/templates",
            files={"file": ("notes.txt", b"hello", "text/plain")},
        )
        assert response.status_code == 400

    async def test_upload_rejects_unreadable_pdf(self, client: AsyncClient):
        response = await client.post(
            f"{API}/templates",
            files={"file": ("broken.pdf", b"%PDF-nonsense", "application/pdf")},
        )
        assert response.status_code == 422
        assert response.json()["error"] == "Document could not be processed"

    async def test_unknown_template(self, client: AsyncClient):
        response = await client.get(f"{API}/templates/does-not-exist")
        assert response.status_code == 404
        assert response.json()["issues"] == ["Not found: does-not-exist"]

    async def test_template_detail_lists_fields(self, client: AsyncClient, template):
        await create_fields(
            client,
            template.id,
            [
                {"field_name": "name", "page_number": 1, "x_coordinate": 100, "y_coordinate": 700},
                {"field_name": "date", "field_type": "date", "page_number": 2, "x_coordinate": 100, "y_coordinate": 100},
            ],
        )

        response = await client.get(f"{API}/templates/{template.id}")

        assert response.status_code == 200
        fields = response.json()["fields"]
        assert [f["field_name"] for f in fields] == ["name", "date"]
        assert fields[1]["field_type"] == "date"
        assert fields[0]["metadata"] is None


class TestFields:
    """Field endpoint tests."""

    async def test_create_field_on_invalid_page(self, client: AsyncClient, template):
        response = await client.post(
            f"{API}/templates/{template.id}/fields",
            json={"field_name": "name", "page_number": 7, "x_coordinate": 1, "y_coordinate": 1},
        )
        assert response.status_code == 400

    async def test_update_field(self, client: AsyncClient, template):
        created = await create_fields(
            client,
            template.id,
            [{"field_name": "name", "x_coordinate": 100, "y_coordinate": 700}],
        )

        response = await client.patch(
            f"{API}/templates/{template.id}/fields/{created[0]['id']}",
            json={"x_coordinate": 150, "field_label": "Full name"},
        )

        assert response.status_code == 200
        assert response.json()["x_coordinate"] == 150
        assert response.json()["field_label"] == "Full name"

    async def test_grouped_field_type_is_locked(self, client: AsyncClient, template):
        created = await create_fields(
            client,
            template.id,
            [
                {"field_name": "name", "page_number": 1, "x_coordinate": 100, "y_coordinate": 700},
                {"field_name": "name", "page_number": 2, "x_coordinate": 100, "y_coordinate": 700},
            ],
        )
        await client.post(
            f"{API}/templates/{template.id}/merge-fields",
            json={"primary_field_id": created[0]["id"], "alias_field_ids": [created[1]["id"]]},
        )

        response = await client.patch(
            f"{API}/templates/{template.id}/fields/{created[1]['id']}",
            json={"field_type": "number"},
        )
        assert response.status_code == 400

        response = await client.delete(
            f"{API}/templates/{template.id}/fields/{created[1]['id']}"
        )
        assert response.status_code == 400

    async def test_delete_field(self, client: AsyncClient, template):
        created = await create_fields(
            client,
            template.id,
            [{"field_name": "name", "x_coordinate": 100, "y_coordinate": 700}],
        )

        response = await client.delete(
            f"{API}/templates/{template.id}/fields/{created[0]['id']}"
        )
        assert response.status_code == 200

        response = await client.get(f"{API}/templates/{template.id}/fields")
        assert response.json() == []


class TestIdentity:
    """Detection, merge and group endpoint tests."""

    async def test_detect_redundant_fields(self, client: AsyncClient, template):
        await create_fields(
            client,
            template.id,
            [
                {"field_name": "fullname", "page_number": 1, "x_coordinate": 100, "y_coordinate": 700},
                {"field_name": "full_name", "page_number": 3, "x_coordinate": 98, "y_coordinate": 702},
                {"field_name": "signature", "field_type": "signature", "page_number": 3, "x_coordinate": 300, "y_coordinate": 80},
            ],
        )

        response = await client.post(f"{API}/templates/{template.id}/detect-redundant")

        assert response.status_code == 200
        data = response.json()
        assert data["total_fields"] == 3
        assert len(data["redundant_groups"]) == 1
        group = data["redundant_groups"][0]
        assert group["match_reason"] in ("fuzzy_name", "combined")
        assert group["confidence"] >= 0.85
        assert {f["name"] for f in group["fields"]} == {"fullname", "full_name"}
        assert data["merge_suggestions"][0]["auto_mergeable"] is False
        assert data["detection_options"]["page_width"] == pytest.approx(612)

    async def test_detect_with_options(self, client: AsyncClient, template):
        await create_fields(
            client,
            template.id,
            [
                {"field_name": "fullname", "page_number": 1, "x_coordinate": 100, "y_coordinate": 700},
                {"field_name": "full_name", "page_number": 3, "x_coordinate": 98, "y_coordinate": 702},
            ],
        )

        response = await client.post(
            f"{API}/templates/{template.id}/detect-redundant",
            json={"exact_match_only": True, "name_similarity_threshold": 0.99},
        )

        assert response.status_code == 200
        assert response.json()["detection_options"]["exact_match_only"] is True

    async def test_merge_and_list_groups(self, client: AsyncClient, template):
        created = await create_fields(
            client,
            template.id,
            [
                {"field_name": "name", "page_number": 1, "x_coordinate": 100, "y_coordinate": 700},
                {"field_name": "name", "page_number": 2, "x_coordinate": 100, "y_coordinate": 700},
                {"field_name": "name", "page_number": 3, "x_coordinate": 100, "y_coordinate": 700},
            ],
        )
        ids = [f["id"] for f in created]

        response = await client.post(
            f"{API}/templates/{template.id}/merge-fields",
            json={"primary_field_id": ids[0], "alias_field_ids": ids[1:], "group_name": "Client"},
        )
        assert response.status_code == 200
        merged = response.json()
        assert merged["merged_count"] == 2
        assert merged["group_name"] == "Client"

        response = await client.get(f"{API}/templates/{template.id}/merge-fields")
        data = response.json()
        assert data["total_groups"] == 1
        group = data["field_groups"][0]
        assert group["primary_field"]["id"] == ids[0]
        assert [f["id"] for f in group["merged_fields"]] == ids[1:]
        assert group["total_fields"] == 3

        response = await client.get(f"{API}/templates/{template.id}/fields")
        alias = next(f for f in response.json() if f["id"] == ids[1])
        assert alias["metadata"]["primary_field_id"] == ids[0]
        assert alias["metadata"]["is_primary"] is False

    async def test_merge_incompatible_types(self, client: AsyncClient, template):
        created = await create_fields(
            client,
            template.id,
            [
                {"field_name": "start", "field_type": "text", "x_coordinate": 100, "y_coordinate": 700},
                {"field_name": "start", "field_type": "date", "page_number": 2, "x_coordinate": 100, "y_coordinate": 700},
            ],
        )

        response = await client.post(
            f"{API}/templates/{template.id}/merge-fields",
            json={"primary_field_id": created[0]["id"], "alias_field_ids": [created[1]["id"]]},
        )

        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "Fields are not compatible for merging"
        assert "Fields have different types: date, text" in data["issues"]

    async def test_merge_unknown_field(self, client: AsyncClient, template):
        created = await create_fields(
            client,
            template.id,
            [{"field_name": "name", "x_coordinate": 100, "y_coordinate": 700}],
        )

        response = await client.post(
            f"{API}/templates/{template.id}/merge-fields",
            json={"primary_field_id": created[0]["id"], "alias_field_ids": ["nope"]},
        )

        assert response.status_code == 404

    async def test_merge_requires_an_alias(self, client: AsyncClient, template):
        response = await client.post(
            f"{API}/templates/{template.id}/merge-fields",
            json={"primary_field_id": "a", "alias_field_ids": []},
        )
        assert response.status_code == 422

    async def test_group_maintenance(self, client: AsyncClient, template):
        created = await create_fields(
            client,
            template.id,
            [
                {"field_name": "name", "page_number": 1, "x_coordinate": 100, "y_coordinate": 700},
                {"field_name": "name", "page_number": 2, "x_coordinate": 100, "y_coordinate": 700},
                {"field_name": "name", "page_number": 3, "x_coordinate": 100, "y_coordinate": 700},
            ],
        )
        ids = [f["id"] for f in created]
        response = await client.post(
            f"{API}/templates/{template.id}/merge-fields",
            json={"primary_field_id": ids[0], "alias_field_ids": [ids[1]]},
        )
        group_id = response.json()["group_id"]

        response = await client.post(
            f"{API}/templates/{template.id}/field-groups/{group_id}/fields",
            json={"alias_field_ids": [ids[2]]},
        )
        assert response.status_code == 200
        assert response.json()["merged_count"] == 1

        response = await client.delete(
            f"{API}/templates/{template.id}/field-groups/{group_id}/fields/{ids[0]}"
        )
        assert response.status_code == 400

        response = await client.delete(
            f"{API}/templates/{template.id}/field-groups/{group_id}/fields/{ids[2]}"
        )
        assert response.status_code == 200

        response = await client.delete(f"{API}/templates/{template.id}/field-groups/{group_id}")
        assert response.status_code == 200

        response = await client.get(f"{API}/templates/{template.id}/merge-fields")
        assert response.json()["total_groups"] == 0

        response = await client.delete(f"{API}/templates/{template.id}/field-groups/{group_id}")
        assert response.status_code == 404


class TestGenerate:
    """Resolve and generate endpoint tests."""

    async def _merged_template(self, client: AsyncClient, template) -> list[str]:
        created = await create_fields(
            client,
            template.id,
            [
                {"field_name": "fullname", "page_number": 1, "x_coordinate": 100, "y_coordinate": 600},
                {"field_name": "full_name", "page_number": 3, "x_coordinate": 98, "y_coordinate": 602},
                {"field_name": "city", "page_number": 2, "x_coordinate": 200, "y_coordinate": 400},
            ],
        )
        ids = [f["id"] for f in created]
        response = await client.post(
            f"{API}/templates/{template.id}/merge-fields",
            json={"primary_field_id": ids[0], "alias_field_ids": [ids[1]]},
        )
        assert response.status_code == 200
        return ids

    async def test_resolve(self, client: AsyncClient, template):
        ids = await self._merged_template(client, template)

        response = await client.post(
            f"{API}/templates/{template.id}/resolve",
            json={"values": {"fullname": "Jane Doe"}},
        )

        assert response.status_code == 200
        instructions = response.json()["instructions"]
        assert [(i["field_id"], i["page"], i["text"]) for i in instructions] == [
            (ids[0], 1, "Jane Doe"),
            (ids[1], 3, "Jane Doe"),
        ]

    async def test_generate_pdf(self, client: AsyncClient, template, sample_pdf: bytes):
        await self._merged_template(client, template)

        response = await client.post(
            f"{API}/templates/{template.id}/generate",
            json={"values": {"fullname": "Jane Doe", "city": "Lyon"}},
        )

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.headers["x-fields-filled"] == "3"
        assert response.headers["x-render-warnings"] == "0"
        assert response.content.startswith(sample_pdf)

        with fitz.open(stream=response.content, filetype="pdf") as doc:
            assert "Jane Doe" in doc[0].get_text()
            assert "Lyon" in doc[1].get_text()
            assert "Jane Doe" in doc[2].get_text()

        response = await client.get(f"{API}/templates/{template.id}/generated")
        documents = response.json()
        assert len(documents) == 1
        assert documents[0]["fields_filled"] == 3
        assert documents[0]["status"] == "success"

    async def test_generate_reports_skipped_glyphs(self, client: AsyncClient, template):
        await self._merged_template(client, template)

        response = await client.post(
            f"{API}/templates/{template.id}/generate",
            json={"values": {"fullname": "Jane Doe", "city": "東京"}},
        )

        assert response.status_code == 200
        assert response.headers["x-fields-filled"] == "2"
        assert response.headers["x-render-warnings"] == "1"

    async def test_event_trail(self, client: AsyncClient, template):
        await self._merged_template(client, template)
        await client.post(
            f"{API}/templates/{template.id}/generate",
            json={"values": {"city": "Lyon"}},
        )

        response = await client.get(f"{API}/templates/{template.id}/events")
        assert [e["event_type"] for e in response.json()] == [
            "FIELDS_CREATED",
            "FIELDS_MERGED",
            "DOCUMENT_GENERATED",
        ]

        response = await client.get(f"{API}/templates/{template.id}/events/verify")
        assert response.json()["valid"] is True
