"""
API tests over the ASGI app.

Each request runs in its own committed session, so these tests see the
same transaction boundaries as production requests.
"""

import httpx
from httpx import AsyncClient

from caseflow.core.config import Settings
from caseflow.core.dependencies import get_llm_provider
from caseflow.core.security import create_access_token
from caseflow.main import app
from caseflow.services.llm_provider import LLMProvider

API = "/api/v1"
NOT_FOUND_MESSAGE = "Resource not found or access denied"


def auth_headers(user_id) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token(user_id)}"}


async def create_case(client: AsyncClient, user_id, title: str = "Unpaid invoice - Northwind") -> dict:
    response = await client.post(
        f"{API}/cases",
        json={"title": title, "contact_info": {"recipientName": "Northwind Traders"}},
        headers=auth_headers(user_id),
    )
    assert response.status_code == 201, response.text
    return response.json()


# =============================================================================
# TEST: AUTHENTICATION
# =============================================================================


class TestAuthentication:
    async def test_health_needs_no_token(self, client: AsyncClient):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    async def test_missing_token(self, client: AsyncClient, tenants):
        response = await client.get(f"{API}/cases")

        assert response.status_code == 401
        assert response.json()["error"] == "not_authenticated"
        assert response.headers["WWW-Authenticate"] == "Bearer"

    async def test_garbage_token(self, client: AsyncClient, tenants):
        response = await client.get(f"{API}/cases", headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == 401

    async def test_me(self, client: AsyncClient, tenants):
        response = await client.get(f"{API}/me", headers=auth_headers(tenants.user_id))

        assert response.status_code == 200
        body = response.json()
        assert body["id"] == str(tenants.user_id)
        assert body["organization"] == {"id": str(tenants.org_id), "name": "Hale & Partners"}

    async def test_organization_users(self, client: AsyncClient, tenants):
        response = await client.get(
            f"{API}/me/organization/users", headers=auth_headers(tenants.user_id)
        )

        assert response.status_code == 200
        assert {u["id"] for u in response.json()} == {
            str(tenants.user_id),
            str(tenants.colleague_id),
        }

    async def test_unregistered_user_cannot_create_case(self, client: AsyncClient, tenants):
        response = await client.post(
            f"{API}/cases",
            json={"title": "Orphan case"},
            headers=auth_headers(tenants.unregistered_id),
        )

        assert response.status_code == 403
        assert response.json()["error"] == "profile_not_found"


# =============================================================================
# TEST: CASES
# =============================================================================


class TestCases:
    async def test_create_case_adds_creator_as_member(self, client: AsyncClient, tenants):
        case = await create_case(client, tenants.user_id)

        assert case["creator_id"] == str(tenants.user_id)
        assert case["organization_id"] == str(tenants.org_id)
        assert case["contact_info"] == {"recipientName": "Northwind Traders"}

        members = await client.get(
            f"{API}/cases/{case['id']}/members", headers=auth_headers(tenants.user_id)
        )
        assert members.status_code == 200
        assert [m["user_id"] for m in members.json()] == [str(tenants.user_id)]
        assert members.json()[0]["user"]["display_name"] == "Alice Hale"

    async def test_foreign_organization_id_rejected(self, client: AsyncClient, tenants):
        response = await client.post(
            f"{API}/cases",
            json={"title": "Sneaky", "organization_id": str(tenants.other_org_id)},
            headers=auth_headers(tenants.user_id),
        )

        assert response.status_code == 422
        assert response.json()["error"] == "validation_error"

    async def test_cross_organization_read_is_404(self, client: AsyncClient, tenants):
        case = await create_case(client, tenants.user_id)

        response = await client.get(
            f"{API}/cases/{case['id']}", headers=auth_headers(tenants.outsider_id)
        )

        assert response.status_code == 404
        assert response.json() == {
            "error": "not_found",
            "message": NOT_FOUND_MESSAGE,
            "details": [],
        }

    async def test_added_member_sees_case(self, client: AsyncClient, tenants):
        case = await create_case(client, tenants.user_id)
        url = f"{API}/cases/{case['id']}"

        assert (await client.get(url, headers=auth_headers(tenants.colleague_id))).status_code == 404

        added = await client.post(
            f"{url}/members",
            json={"user_id": str(tenants.colleague_id)},
            headers=auth_headers(tenants.user_id),
        )
        assert added.status_code == 201

        assert (await client.get(url, headers=auth_headers(tenants.colleague_id))).status_code == 200
        listed = await client.get(f"{API}/cases", headers=auth_headers(tenants.colleague_id))
        assert [c["id"] for c in listed.json()] == [case["id"]]

    async def test_delete_case(self, client: AsyncClient, tenants):
        case = await create_case(client, tenants.user_id)
        url = f"{API}/cases/{case['id']}"

        response = await client.delete(url, headers=auth_headers(tenants.user_id))

        assert response.status_code == 204
        assert (await client.get(url, headers=auth_headers(tenants.user_id))).status_code == 404

    async def test_messages_are_per_user(self, client: AsyncClient, tenants):
        case = await create_case(client, tenants.user_id)
        url = f"{API}/cases/{case['id']}"
        await client.post(
            f"{url}/members",
            json={"user_id": str(tenants.colleague_id)},
            headers=auth_headers(tenants.user_id),
        )

        posted = await client.post(
            f"{url}/messages",
            json={"text": "Invoice 1042 is 90 days overdue.", "metadata": {"source": "chat"}},
            headers=auth_headers(tenants.user_id),
        )
        assert posted.status_code == 201
        assert posted.json()["metadata"] == {"source": "chat"}

        mine = await client.get(f"{url}/messages", headers=auth_headers(tenants.user_id))
        theirs = await client.get(f"{url}/messages", headers=auth_headers(tenants.colleague_id))
        assert len(mine.json()) == 1
        assert theirs.json() == []


# =============================================================================
# TEST: DRAFTS
# =============================================================================


class TestDrafts:
    async def test_draft_lifecycle(self, client: AsyncClient, tenants):
        case = await create_case(client, tenants.user_id)
        headers = auth_headers(tenants.user_id)
        case_url = f"{API}/cases/{case['id']}"

        current = await client.get(f"{case_url}/drafts/current", headers=headers)
        assert current.status_code == 200
        assert current.json() is None

        v1 = await client.post(f"{case_url}/drafts", json={"content": "Dear Northwind,"}, headers=headers)
        assert v1.status_code == 201
        assert v1.json()["version_number"] == 1
        assert v1.json()["status"] == "draft"

        saved = await client.post(f"{API}/drafts/{v1.json()['id']}/save", headers=headers)
        assert saved.json()["status"] == "saved"
        assert saved.json()["saved_by"] == str(tenants.user_id)

        v2 = await client.post(
            f"{case_url}/drafts/regenerate", json={"content": "Dear Northwind Traders,"}, headers=headers
        )
        assert v2.json()["version_number"] == 2

        deleted = await client.delete(f"{API}/drafts/{v1.json()['id']}", headers=headers)
        assert deleted.status_code == 204

        versions = await client.get(f"{case_url}/drafts", headers=headers)
        assert [d["version_number"] for d in versions.json()] == [2]

        next_version = await client.get(f"{case_url}/drafts/next-version", headers=headers)
        assert next_version.json()["next_version"] == 3

    async def test_edit_in_place(self, client: AsyncClient, tenants):
        case = await create_case(client, tenants.user_id)
        headers = auth_headers(tenants.user_id)
        draft = (
            await client.post(f"{API}/cases/{case['id']}/drafts", json={"content": "Dear N,"}, headers=headers)
        ).json()

        response = await client.patch(
            f"{API}/drafts/{draft['id']}", json={"content": "Dear Northwind,"}, headers=headers
        )

        assert response.status_code == 200
        assert response.json()["version_number"] == 1
        assert response.json()["rendered_content"] == "Dear Northwind,"

    async def test_outsider_cannot_read_draft(self, client: AsyncClient, tenants):
        case = await create_case(client, tenants.user_id)
        draft = (
            await client.post(
                f"{API}/cases/{case['id']}/drafts",
                json={"content": "Dear Northwind,"},
                headers=auth_headers(tenants.user_id),
            )
        ).json()

        response = await client.get(f"{API}/drafts/{draft['id']}", headers=auth_headers(tenants.outsider_id))

        assert response.status_code == 404
        assert response.json()["message"] == NOT_FOUND_MESSAGE

    async def test_export(self, client: AsyncClient, tenants):
        case = await create_case(client, tenants.user_id)
        headers = auth_headers(tenants.user_id)
        draft = (
            await client.post(
                f"{API}/cases/{case['id']}/drafts",
                json={"content": "<p>Dear Northwind,</p><p>Please pay.</p>"},
                headers=headers,
            )
        ).json()

        docx_response = await client.get(f"{API}/drafts/{draft['id']}/export", headers=headers)
        pdf_response = await client.get(
            f"{API}/drafts/{draft['id']}/export", params={"format": "pdf"}, headers=headers
        )

        assert docx_response.status_code == 200
        assert docx_response.headers["content-type"].startswith(
            "application/vnd.openxmlformats-officedocument.wordprocessingml.document"
        )
        assert 'filename="draft_v1.docx"' in docx_response.headers["content-disposition"]
        assert docx_response.content[:2] == b"PK"

        assert pdf_response.headers["content-type"] == "application/pdf"
        assert pdf_response.content.startswith(b"%PDF")

    async def test_compose(self, client: AsyncClient, tenants):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(
                200, json={"choices": [{"message": {"content": "Dear Northwind Traders,"}}]}
            )

        settings = Settings(LLM_API_KEY="test-key", LLM_API_BASE_URL="https://llm.test/v1")
        app.dependency_overrides[get_llm_provider] = lambda: LLMProvider(
            settings, transport=httpx.MockTransport(handler)
        )

        case = await create_case(client, tenants.user_id)
        response = await client.post(
            f"{API}/cases/{case['id']}/drafts/compose",
            json={},
            headers=auth_headers(tenants.user_id),
        )

        assert response.status_code == 201
        assert response.json()["rendered_content"] == "Dear Northwind Traders,"
        assert response.json()["version_number"] == 1

    async def test_compose_provider_failure(self, client: AsyncClient, tenants):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, json={"error": {"message": "Model overloaded"}})

        settings = Settings(LLM_API_KEY="test-key", LLM_API_BASE_URL="https://llm.test/v1")
        app.dependency_overrides[get_llm_provider] = lambda: LLMProvider(
            settings, transport=httpx.MockTransport(handler)
        )

        case = await create_case(client, tenants.user_id)
        headers = auth_headers(tenants.user_id)
        response = await client.post(f"{API}/cases/{case['id']}/drafts/compose", json={}, headers=headers)

        assert response.status_code == 502
        assert response.json()["message"] == "Model overloaded"
        versions = await client.get(f"{API}/cases/{case['id']}/drafts", headers=headers)
        assert versions.json() == []


# =============================================================================
# TEST: TEMPLATES
# =============================================================================


class TestTemplates:
    async def test_snapshot_is_idempotent(self, client: AsyncClient, tenants):
        headers = auth_headers(tenants.user_id)
        case = await create_case(client, tenants.user_id)
        template = await client.post(
            f"{API}/templates", json={"name": "Demand", "content": "Dear {{recipient}},"}, headers=headers
        )
        assert template.status_code == 201
        assert template.json()["type"] == "demand-letter"

        url = f"{API}/cases/{case['id']}/snapshots"
        body = {"template_id": template.json()["id"]}
        first = await client.post(url, json=body, headers=headers)
        second = await client.post(url, json=body, headers=headers)

        assert first.status_code == second.status_code == 200
        assert first.json()["id"] == second.json()["id"]

    async def test_templates_hidden_from_other_organization(self, client: AsyncClient, tenants):
        created = await client.post(
            f"{API}/templates",
            json={"name": "Demand", "content": "Dear {{recipient}},"},
            headers=auth_headers(tenants.user_id),
        )

        listed = await client.get(f"{API}/templates", headers=auth_headers(tenants.outsider_id))
        fetched = await client.get(
            f"{API}/templates/{created.json()['id']}", headers=auth_headers(tenants.outsider_id)
        )

        assert listed.json() == []
        assert fetched.status_code == 404
