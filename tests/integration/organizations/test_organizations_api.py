import uuid

import pytest
from fastapi.testclient import TestClient

from orgspace.api.deps import get_org_config_store
from orgspace.api.main import app
from orgspace.config import ConfigStore, OrganizationConfig


@pytest.fixture
def api_config_store():
    store = ConfigStore(OrganizationConfig())
    app.dependency_overrides[get_org_config_store] = lambda: store
    yield store
    app.dependency_overrides.pop(get_org_config_store, None)


@pytest.fixture
def client(api_config_store):
    """Test client fixture."""
    return TestClient(app)


@pytest.fixture
def scope_headers():
    return {"X-App-Id": str(uuid.uuid4()), "X-Environment-Id": str(uuid.uuid4())}


def _headers(user_id, scope_headers=None):
    headers = {"X-User-Id": str(user_id)}
    headers.update(scope_headers or {})
    return headers


def _create_org(client, owner_id, scope_headers, slug=None):
    slug = slug or f"org-{uuid.uuid4().hex[:8]}"
    response = client.post(
        "/organizations/",
        json={"name": slug.title(), "slug": slug, "metadata": {"source": "api"}},
        headers=_headers(owner_id, scope_headers),
    )
    assert response.status_code == 201, response.text
    return response.json()


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


class TestOrganizationEndpoints:
    def test_create_and_read(self, client, scope_headers):
        owner = uuid.uuid4()
        org = _create_org(client, owner, scope_headers, slug="acme")
        assert org["slug"] == "acme"
        assert org["created_by"] == str(owner)
        assert org["metadata"] == {"source": "api"}

        detail = client.get(f"/organizations/{org['id']}", headers=_headers(owner))
        assert detail.status_code == 200
        assert detail.json()["member_count"] == 1

        mine = client.get("/organizations/", headers=_headers(owner))
        assert [o["id"] for o in mine.json()["items"]] == [org["id"]]

        by_slug = client.get("/organizations/by-slug/acme", headers=_headers(owner, scope_headers))
        assert by_slug.json()["id"] == org["id"]

    def test_missing_identity_headers(self, client, scope_headers):
        response = client.post("/organizations/", json={"name": "x", "slug": "x"}, headers=scope_headers)
        assert response.status_code == 401

        response = client.post(
            "/organizations/", json={"name": "x", "slug": "x"}, headers=_headers(uuid.uuid4())
        )
        assert response.status_code == 400

    def test_invalid_slug_rejected(self, client, scope_headers):
        response = client.post(
            "/organizations/",
            json={"name": "Bad", "slug": "Not A Slug"},
            headers=_headers(uuid.uuid4(), scope_headers),
        )
        assert response.status_code == 422

    def test_duplicate_slug_is_conflict(self, client, scope_headers):
        _create_org(client, uuid.uuid4(), scope_headers, slug="taken")
        response = client.post(
            "/organizations/",
            json={"name": "Taken", "slug": "taken"},
            headers=_headers(uuid.uuid4(), scope_headers),
        )
        assert response.status_code == 409
        assert response.json()["error"]["code"] == "SLUG_ALREADY_EXISTS"

    def test_quota_error_body(self, client, api_config_store, scope_headers):
        api_config_store.update({"max_organizations_per_user": 0})
        response = client.post(
            "/organizations/",
            json={"name": "Nope", "slug": "nope"},
            headers=_headers(uuid.uuid4(), scope_headers),
        )
        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "MAX_ORGANIZATIONS_REACHED"
        assert error["kind"] == "quota_exceeded"
        assert error["details"]["limit"] == 0

    def test_creation_disabled(self, client, api_config_store, scope_headers):
        api_config_store.update({"enable_user_creation": False})
        response = client.post(
            "/organizations/",
            json={"name": "Nope", "slug": "nope"},
            headers=_headers(uuid.uuid4(), scope_headers),
        )
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "CREATION_DISABLED"

    def test_non_member_cannot_read(self, client, scope_headers):
        org = _create_org(client, uuid.uuid4(), scope_headers)
        stranger = uuid.uuid4()
        response = client.get(f"/organizations/{org['id']}", headers=_headers(stranger))
        assert response.status_code == 403
        response = client.get(f"/organizations/by-slug/{org['slug']}", headers=_headers(stranger, scope_headers))
        assert response.status_code == 404

    def test_update_and_delete(self, client, scope_headers):
        owner = uuid.uuid4()
        org = _create_org(client, owner, scope_headers)
        response = client.put(f"/organizations/{org['id']}", json={"name": "Renamed"}, headers=_headers(owner))
        assert response.status_code == 200
        assert response.json()["name"] == "Renamed"

        response = client.delete(f"/organizations/{org['id']}", headers=_headers(uuid.uuid4()))
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "NOT_OWNER"

        response = client.delete(f"/organizations/{org['id']}", headers=_headers(owner))
        assert response.status_code == 204
        assert client.get(f"/organizations/{org['id']}", headers=_headers(owner)).status_code == 404

    def test_outsider_cannot_list_or_search_other_organizations(self, client, scope_headers):
        _create_org(client, uuid.uuid4(), scope_headers, slug="secret-acme")
        outsider = _headers(uuid.uuid4(), scope_headers)

        # no tenant-wide listing: "all" is not an organization id
        response = client.get("/organizations/all", params={"search": "secret"}, headers=outsider)
        assert response.status_code == 422

        response = client.get("/organizations/", params={"search": "secret"}, headers=outsider)
        assert response.status_code == 200
        assert response.json()["items"] == []
        assert response.json()["total"] == 0

        response = client.get("/organizations/by-slug/secret-acme", headers=outsider)
        assert response.status_code == 404

    def test_names_are_stripped_and_must_not_be_blank(self, client, scope_headers):
        owner = uuid.uuid4()
        response = client.post(
            "/organizations/",
            json={"name": "   ", "slug": "blank"},
            headers=_headers(owner, scope_headers),
        )
        assert response.status_code == 422

        response = client.post(
            "/organizations/",
            json={"name": "  Padded  ", "slug": "padded"},
            headers=_headers(owner, scope_headers),
        )
        assert response.status_code == 201
        org = response.json()
        assert org["name"] == "Padded"

        response = client.put(f"/organizations/{org['id']}", json={"name": " \t "}, headers=_headers(owner))
        assert response.status_code == 422

        response = client.post(f"/organizations/{org['id']}/teams", json={"name": "  "}, headers=_headers(owner))
        assert response.status_code == 422


class TestMemberEndpoints:
    def test_member_lifecycle(self, client, scope_headers):
        owner = uuid.uuid4()
        org = _create_org(client, owner, scope_headers)
        new_user = uuid.uuid4()

        response = client.post(
            f"/organizations/{org['id']}/members",
            json={"user_id": str(new_user), "role": "admin", "display_name": "Ada"},
            headers=_headers(owner),
        )
        assert response.status_code == 201
        member = response.json()
        assert member["role"] == "admin"

        listing = client.get(f"/organizations/{org['id']}/members?role=admin", headers=_headers(owner))
        assert [m["id"] for m in listing.json()["items"]] == [member["id"]]

        response = client.put(
            f"/organizations/{org['id']}/members/{member['id']}",
            json={"role": "member"},
            headers=_headers(owner),
        )
        assert response.json()["role"] == "member"

        response = client.delete(f"/organizations/{org['id']}/members/{member['id']}", headers=_headers(owner))
        assert response.status_code == 204

    def test_owner_cannot_be_demoted(self, client, scope_headers):
        owner = uuid.uuid4()
        org = _create_org(client, owner, scope_headers)
        members = client.get(f"/organizations/{org['id']}/members", headers=_headers(owner)).json()["items"]
        owner_member = members[0]

        response = client.put(
            f"/organizations/{org['id']}/members/{owner_member['id']}",
            json={"role": "member"},
            headers=_headers(owner),
        )
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "CANNOT_REMOVE_OWNER"

    def test_require_invitation(self, client, api_config_store, scope_headers):
        owner = uuid.uuid4()
        org = _create_org(client, owner, scope_headers)
        api_config_store.update({"require_invitation": True})
        response = client.post(
            f"/organizations/{org['id']}/members",
            json={"user_id": str(uuid.uuid4())},
            headers=_headers(owner),
        )
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "INVITATION_REQUIRED"

    def test_member_of_other_org_is_not_found(self, client, scope_headers):
        owner = uuid.uuid4()
        org = _create_org(client, owner, scope_headers)
        other_owner = uuid.uuid4()
        other = _create_org(client, other_owner, scope_headers)
        other_member = client.get(f"/organizations/{other['id']}/members", headers=_headers(other_owner)).json()[
            "items"
        ][0]
        response = client.delete(f"/organizations/{org['id']}/members/{other_member['id']}", headers=_headers(owner))
        assert response.status_code == 404


class TestTeamEndpoints:
    def test_team_flow_with_provisioning_warning(self, client, scope_headers):
        owner = uuid.uuid4()
        org = _create_org(client, owner, scope_headers)
        response = client.post(
            f"/organizations/{org['id']}/teams",
            json={"name": "Synced", "provisioned_by": "scim"},
            headers=_headers(owner),
        )
        assert response.status_code == 201
        team = response.json()

        response = client.put(
            f"/organizations/{org['id']}/teams/{team['id']}",
            json={"description": "local edit"},
            headers=_headers(owner),
        )
        assert response.status_code == 200
        body = response.json()
        assert body["team"]["description"] == "local edit"
        assert "scim" in body["warning"]

        owner_member = client.get(f"/organizations/{org['id']}/members", headers=_headers(owner)).json()["items"][0]
        response = client.post(
            f"/organizations/{org['id']}/teams/{team['id']}/members",
            json={"member_id": owner_member["id"]},
            headers=_headers(owner),
        )
        assert response.status_code == 201
        roster = client.get(f"/organizations/{org['id']}/teams/{team['id']}/members", headers=_headers(owner))
        assert roster.json()["total"] == 1

        response = client.delete(f"/organizations/{org['id']}/teams/{team['id']}", headers=_headers(owner))
        assert response.status_code == 200
        assert response.json()["deleted"] is True
        assert response.json()["warning"] is not None

    def test_non_member_cannot_create_team(self, client, scope_headers):
        org = _create_org(client, uuid.uuid4(), scope_headers)
        response = client.post(
            f"/organizations/{org['id']}/teams", json={"name": "X"}, headers=_headers(uuid.uuid4())
        )
        assert response.status_code == 403
        assert response.json()["error"]["code"] == "NOT_MEMBER"


class TestInvitationEndpoints:
    def test_invite_preview_accept(self, client, scope_headers):
        owner = uuid.uuid4()
        org = _create_org(client, owner, scope_headers)
        response = client.post(
            f"/organizations/{org['id']}/invitations",
            json={"email": "Guest@Example.com", "role": "member"},
            headers=_headers(owner),
        )
        assert response.status_code == 201
        invitation = response.json()
        token = invitation["token"]
        assert invitation["email"] == "guest@example.com"

        preview = client.get(f"/invitations/{token}")
        assert preview.status_code == 200
        assert preview.json()["organization_name"] == org["name"]
        assert preview.json()["status"] == "pending"
        assert "token" not in preview.json()

        guest = uuid.uuid4()
        response = client.post(f"/invitations/{token}/accept", json={"display_name": "Guest"}, headers=_headers(guest))
        assert response.status_code == 200
        assert response.json()["user_id"] == str(guest)

        replay = client.post(f"/invitations/{token}/accept", headers=_headers(uuid.uuid4()))
        assert replay.status_code == 400
        assert replay.json()["error"]["code"] == "INVITATION_NOT_PENDING"

        listing = client.get(f"/organizations/{org['id']}/invitations?status=accepted", headers=_headers(owner))
        assert [i["id"] for i in listing.json()["items"]] == [invitation["id"]]
        assert "token" not in listing.json()["items"][0]

    def test_accept_requires_identity(self, client, scope_headers):
        owner = uuid.uuid4()
        org = _create_org(client, owner, scope_headers)
        token = client.post(
            f"/organizations/{org['id']}/invitations",
            json={"email": "a@example.com"},
            headers=_headers(owner),
        ).json()["token"]
        assert client.post(f"/invitations/{token}/accept").status_code == 401

    def test_decline_and_cancel(self, client, scope_headers):
        owner = uuid.uuid4()
        org = _create_org(client, owner, scope_headers)
        first = client.post(
            f"/organizations/{org['id']}/invitations", json={"email": "one@example.com"}, headers=_headers(owner)
        ).json()
        second = client.post(
            f"/organizations/{org['id']}/invitations", json={"email": "two@example.com"}, headers=_headers(owner)
        ).json()

        response = client.post(f"/invitations/{first['token']}/decline")
        assert response.json() == {"status": "declined"}

        response = client.delete(f"/organizations/{org['id']}/invitations/{second['id']}", headers=_headers(owner))
        assert response.status_code == 200
        assert response.json()["status"] == "cancelled"

        response = client.post(f"/invitations/{second['token']}/decline")
        assert response.status_code == 400

    def test_resend_rotates_token(self, client, scope_headers):
        owner = uuid.uuid4()
        org = _create_org(client, owner, scope_headers)
        invitation = client.post(
            f"/organizations/{org['id']}/invitations", json={"email": "r@example.com"}, headers=_headers(owner)
        ).json()
        response = client.post(
            f"/organizations/{org['id']}/invitations/{invitation['id']}/resend", headers=_headers(owner)
        )
        assert response.status_code == 200
        new_token = response.json()["token"]
        assert new_token != invitation["token"]
        assert client.get(f"/invitations/{invitation['token']}").status_code == 404
        assert client.get(f"/invitations/{new_token}").status_code == 200

    def test_unknown_token(self, client):
        response = client.get(f"/invitations/{'b' * 64}")
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "INVITATION_NOT_FOUND"

    def test_invalid_status_filter(self, client, scope_headers):
        owner = uuid.uuid4()
        org = _create_org(client, owner, scope_headers)
        response = client.get(f"/organizations/{org['id']}/invitations?status=lost", headers=_headers(owner))
        assert response.status_code == 400
        assert response.json()["error"]["code"] == "INVALID_STATUS"
