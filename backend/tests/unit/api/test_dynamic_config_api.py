"""
Unit Tests for Admin Dynamic Configuration API endpoints
"""
import pytest
from httpx import AsyncClient
from faker import Faker

fake = Faker()

BASE = "/api/v1/admin/dynamic-config"


class TestConfigAccess:
    """Test authentication and role checks"""

    @pytest.mark.asyncio
    async def test_requires_auth(self, client: AsyncClient):
        """Test the admin document without credentials"""
        response = await client.get(BASE)
        assert response.status_code in (401, 403)

    @pytest.mark.asyncio
    async def test_invalid_token(self, client: AsyncClient):
        """Test a malformed bearer token"""
        response = await client.get(BASE, headers={"Authorization": "Bearer not-a-jwt"})

        assert response.status_code == 401
        assert response.json()["success"] is False

    @pytest.mark.asyncio
    async def test_student_forbidden(self, client: AsyncClient, student_auth_headers):
        """Test non-admins cannot read the admin document"""
        response = await client.get(BASE, headers=student_auth_headers)

        assert response.status_code == 403
        assert response.json()["error"]["code"] == "NOT_AUTHORIZED"

    @pytest.mark.asyncio
    async def test_public_without_auth(self, client: AsyncClient):
        """Test the public projection needs no credentials"""
        response = await client.get(f"{BASE}/public")

        assert response.status_code == 200
        data = response.json()["data"]
        assert [level["code"] for level in data["educationLevels"]] == ["PRIMARY", "OL", "AL"]
        assert data["profileSections"] == []


class TestConfigDocument:
    """Test the whole-document endpoints"""

    @pytest.mark.asyncio
    async def test_get_creates_default(self, client: AsyncClient, admin_auth_headers):
        """Test the first read returns the default document"""
        response = await client.get(BASE, headers=admin_auth_headers)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["key"] == "default"
        assert len(body["data"]["grades"]) == 13
        assert body["data"]["version"] == 1

    @pytest.mark.asyncio
    async def test_update_config(self, client: AsyncClient, admin_auth_headers):
        """Test replacing top-level fields"""
        await client.get(BASE, headers=admin_auth_headers)

        response = await client.put(BASE, headers=admin_auth_headers, json={
            "description": "Island-wide configuration",
            "provinces": [{"code": "WP", "name": "Western"}],
        })

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["description"] == "Island-wide configuration"
        assert data["provinces"][0]["code"] == "WP"
        assert response.json()["message"] == "Configuration updated successfully"

    @pytest.mark.asyncio
    async def test_update_missing_config(self, client: AsyncClient, admin_auth_headers):
        """Test updating a key that was never created"""
        response = await client.put(f"{BASE}?key=nothing", headers=admin_auth_headers, json={"name": "X"})

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "CONFIGURATION_NOT_FOUND"

    @pytest.mark.asyncio
    async def test_general_settings(self, client: AsyncClient, admin_auth_headers):
        """Test the general settings merge"""
        response = await client.put(f"{BASE}/settings/general", headers=admin_auth_headers,
                                    json={"supportEmail": "help@tutorhub.lk"})

        assert response.status_code == 200
        general = response.json()["data"]["generalSettings"]
        assert general["supportEmail"] == "help@tutorhub.lk"
        assert general["platformName"] == "Tuition Management System"

    @pytest.mark.asyncio
    async def test_branding_settings(self, client: AsyncClient, admin_auth_headers):
        """Test the branding settings merge"""
        response = await client.put(f"{BASE}/settings/branding", headers=admin_auth_headers,
                                    json={"logoUrl": "https://cdn.example.com/logo.png"})

        assert response.status_code == 200
        branding = response.json()["data"]["brandingSettings"]
        assert branding["logoUrl"] == "https://cdn.example.com/logo.png"
        assert branding["primaryColor"] == "#3b82f6"


class TestCollectionItems:
    """Test the generated item routes"""

    @pytest.mark.asyncio
    async def test_add_subject(self, client: AsyncClient, admin_auth_headers):
        """Test adding a subject returns 201 and the document"""
        response = await client.post(f"{BASE}/subjects", headers=admin_auth_headers,
                                     json={"code": "ART", "name": "Art", "educationLevels": ["OL"]})

        assert response.status_code == 201
        codes = [s["code"] for s in response.json()["data"]["subjects"]]
        assert codes == ["MATHEMATICS", "SCIENCE", "ENGLISH", "ART"]
        assert response.json()["message"] == "Subject added successfully"

    @pytest.mark.asyncio
    async def test_add_duplicate(self, client: AsyncClient, admin_auth_headers):
        """Test adding an existing code"""
        response = await client.post(f"{BASE}/subjects", headers=admin_auth_headers,
                                     json={"code": "MATHEMATICS", "name": "Maths"})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "DUPLICATE_ITEM"

    @pytest.mark.asyncio
    async def test_invalid_body(self, client: AsyncClient, admin_auth_headers):
        """Test request validation uses the error envelope"""
        response = await client.post(f"{BASE}/grades", headers=admin_auth_headers, json={"code": "14"})

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "VALIDATION_ERROR"
        assert error["details"]["errors"][0]["field"] == "name"

    @pytest.mark.asyncio
    async def test_update_item(self, client: AsyncClient, admin_auth_headers):
        """Test a partial item update"""
        response = await client.put(f"{BASE}/education-levels/AL", headers=admin_auth_headers,
                                    json={"name": "A/L"})

        assert response.status_code == 200
        levels = {level["code"]: level for level in response.json()["data"]["educationLevels"]}
        assert levels["AL"]["name"] == "A/L"
        assert levels["AL"]["defaultGrades"] == ["12", "13"]

    @pytest.mark.asyncio
    async def test_update_missing_item(self, client: AsyncClient, admin_auth_headers):
        """Test updating an unknown code"""
        response = await client.put(f"{BASE}/grades/99", headers=admin_auth_headers, json={"name": "Grade 99"})
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_remove_missing_item(self, client: AsyncClient, admin_auth_headers):
        """Test removing an unknown code still succeeds"""
        response = await client.delete(f"{BASE}/subjects/NONEXISTENT", headers=admin_auth_headers)

        assert response.status_code == 200
        assert len(response.json()["data"]["subjects"]) == 3

    @pytest.mark.asyncio
    async def test_location_routes(self, client: AsyncClient, admin_auth_headers):
        """Test the city routes end to end"""
        city = fake.city()
        response = await client.post(f"{BASE}/cities", headers=admin_auth_headers,
                                     json={"code": "C1", "name": city})
        assert response.status_code == 201

        response = await client.delete(f"{BASE}/cities/C1", headers=admin_auth_headers)
        assert response.status_code == 200
        assert response.json()["data"]["cities"] == []

    @pytest.mark.asyncio
    async def test_list_items(self, client: AsyncClient, admin_auth_headers):
        """Test listing with pagination and search"""
        response = await client.get(f"{BASE}/grades?page=1&limit=5", headers=admin_auth_headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert len(data["items"]) == 5
        assert data["total"] == 13
        assert data["hasNext"] is True

        response = await client.get(f"{BASE}/subjects?search=math", headers=admin_auth_headers)
        assert [s["code"] for s in response.json()["data"]["items"]] == ["MATHEMATICS"]


class TestProfileSectionRoutes:
    """Test the section catalog routes"""

    @pytest.mark.asyncio
    async def test_reorder(self, client: AsyncClient, admin_auth_headers):
        """Test reorder is not mistaken for a section id"""
        for section_id, order in (("a", 1), ("b", 2)):
            response = await client.post(f"{BASE}/profile-sections", headers=admin_auth_headers,
                                         json={"id": section_id, "type": "custom", "title": section_id, "order": order})
            assert response.status_code == 201

        response = await client.put(f"{BASE}/profile-sections/reorder", headers=admin_auth_headers,
                                    json=[{"id": "a", "order": 3}])

        assert response.status_code == 200
        assert [s["id"] for s in response.json()["data"]["profileSections"]] == ["b", "a"]

    @pytest.mark.asyncio
    async def test_section_fields(self, client: AsyncClient, admin_auth_headers):
        """Test field add, update and delete"""
        await client.post(f"{BASE}/profile-sections", headers=admin_auth_headers,
                          json={"id": "about", "type": "custom", "title": "About"})

        response = await client.post(f"{BASE}/profile-sections/about/fields", headers=admin_auth_headers,
                                     json={"id": "bio", "type": "textarea", "label": "Bio"})
        assert response.status_code == 201

        response = await client.put(f"{BASE}/profile-sections/about/fields/bio", headers=admin_auth_headers,
                                    json={"validation": {"required": True}})
        assert response.status_code == 200
        section = response.json()["data"]["profileSections"][0]
        assert section["fields"][0]["validation"] == {"required": True}

        response = await client.delete(f"{BASE}/profile-sections/about/fields/bio", headers=admin_auth_headers)
        assert response.status_code == 200
        assert response.json()["data"]["profileSections"][0]["fields"] == []

    @pytest.mark.asyncio
    async def test_field_in_unknown_section(self, client: AsyncClient, admin_auth_headers):
        """Test adding a field to a missing section"""
        response = await client.post(f"{BASE}/profile-sections/ghost/fields", headers=admin_auth_headers,
                                     json={"id": "bio", "type": "text", "label": "Bio"})
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_field_with_invalid_pattern(self, client: AsyncClient, admin_auth_headers):
        """Test a field whose pattern does not compile is refused"""
        await client.post(f"{BASE}/profile-sections", headers=admin_auth_headers,
                          json={"id": "about", "type": "custom", "title": "About"})

        response = await client.post(f"{BASE}/profile-sections/about/fields", headers=admin_auth_headers,
                                     json={"id": "code", "type": "text", "label": "Code",
                                           "validation": {"pattern": "["}})

        assert response.status_code == 400
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"


class TestAuditLogs:
    """Test audit trail of configuration changes"""

    @pytest.mark.asyncio
    async def test_mutations_are_audited(self, client: AsyncClient, admin_auth_headers, admin_user):
        """Test each mutation leaves an entry"""
        await client.post(f"{BASE}/subjects", headers=admin_auth_headers, json={"code": "ART", "name": "Art"})
        await client.delete(f"{BASE}/subjects/ART", headers=admin_auth_headers)

        response = await client.get("/api/v1/admin/audit-logs?sort=action&order=asc", headers=admin_auth_headers)

        assert response.status_code == 200
        items = response.json()["data"]["items"]
        assert [item["action"] for item in items] == ["config.subject.added", "config.subject.removed"]
        assert items[0]["adminEmail"] == admin_user.email
        assert items[0]["details"] == {"key": "default", "itemId": "ART"}

    @pytest.mark.asyncio
    async def test_filter_by_action(self, client: AsyncClient, admin_auth_headers):
        """Test the action filter"""
        await client.put(f"{BASE}/settings/general", headers=admin_auth_headers, json={"platformName": "X"})
        await client.post(f"{BASE}/grades", headers=admin_auth_headers, json={"code": "14", "name": "Grade 14"})

        response = await client.get("/api/v1/admin/audit-logs?action=config.grade.added",
                                    headers=admin_auth_headers)

        data = response.json()["data"]
        assert data["total"] == 1
        assert data["items"][0]["targetId"] == "default"

    @pytest.mark.asyncio
    async def test_student_forbidden(self, client: AsyncClient, student_auth_headers):
        """Test non-admins cannot read the audit trail"""
        response = await client.get("/api/v1/admin/audit-logs", headers=student_auth_headers)
        assert response.status_code == 403

    @pytest.mark.asyncio
    async def test_noop_remove_not_audited(self, client: AsyncClient, admin_auth_headers):
        """Test removing an absent item or field leaves no entry"""
        await client.post(f"{BASE}/profile-sections", headers=admin_auth_headers,
                          json={"id": "about", "type": "custom", "title": "About"})

        await client.delete(f"{BASE}/subjects/NONEXISTENT", headers=admin_auth_headers)
        await client.delete(f"{BASE}/profile-sections/about/fields/ghost", headers=admin_auth_headers)

        response = await client.get("/api/v1/admin/audit-logs", headers=admin_auth_headers)
        actions = [item["action"] for item in response.json()["data"]["items"]]
        assert actions == ["config.profile_section.added"]
