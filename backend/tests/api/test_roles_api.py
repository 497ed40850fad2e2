"""Tests for role discovery and health endpoints."""

from fastapi.testclient import TestClient

ROLE_CLAIM = "http://schemas.microsoft.com/ws/2008/06/identity/claims/role"


class TestRoles:
    """POST /api/roles and its /api/GetRoles alias"""

    def test_roles_from_claims_and_user_roles(self, client: TestClient, encode_principal):
        principal = encode_principal(
            {
                "identityProvider": "aad",
                "userId": "user-1",
                "claims": [
                    {"typ": "roles", "val": "VM.Operator"},
                    {"typ": ROLE_CLAIM, "val": "VM.Admin"},
                    {"typ": "name", "val": "Ops"},
                ],
                "userRoles": ["anonymous", "authenticated", "VM.Operator"],
            }
        )

        response = client.post("/api/roles", headers={"x-ms-client-principal": principal})

        assert response.status_code == 200
        assert response.json() == {"roles": ["VM.Operator", "VM.Admin", "anonymous", "authenticated"]}

    def test_get_roles_alias(self, client: TestClient, encode_principal):
        principal = encode_principal({"userRoles": ["authenticated"]})

        response = client.post("/api/GetRoles", headers={"x-ms-client-principal": principal})

        assert response.status_code == 200
        assert response.json() == {"roles": ["authenticated"]}

    def test_missing_header_gives_no_roles(self, client: TestClient):
        response = client.post("/api/roles")

        assert response.status_code == 200
        assert response.json() == {"roles": []}

    def test_malformed_header_gives_no_roles(self, client: TestClient):
        response = client.post("/api/roles", headers={"x-ms-client-principal": "%%%not-base64%%%"})

        assert response.status_code == 200
        assert response.json() == {"roles": []}


class TestHealth:
    def test_health(self, client: TestClient):
        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "service": "VM Portal", "environment": "test"}
