"""
Tests for /api/clients and /api/users.
"""

from .conftest import CLIENT_ID, CLIENT_USER_ID, HIL_USER_ID, OTHER_CLIENT_ID


def _profile(**overrides):
    profile = {
        "id": CLIENT_USER_ID,
        "email": "buyer@acme-title.com",
        "full_name": "Casey Buyer",
        "user_type": "client_user",
        "role": "CLIENT_ADMIN",
        "company_id": CLIENT_ID,
    }
    profile.update(overrides)
    return profile


class TestClients:
    """Test the client directory."""

    def test_hil_lists_every_client(self, client, client_repo):
        client_repo.list_all.return_value = [
            {"id": CLIENT_ID, "name": "Acme Title", "domain": "acme-title.com"},
        ]

        response = client.get("/api/clients")

        assert response.json()["data"][0]["name"] == "Acme Title"
        client_repo.list_all.assert_awaited_once_with(client_id=None)

    def test_client_user_sees_own_company(self, client, login, client_user, client_repo):
        login(client_user)
        client_repo.list_all.return_value = []

        client.get("/api/clients")

        client_repo.list_all.assert_awaited_once_with(client_id=CLIENT_ID)

    def test_get(self, client, client_repo):
        client_repo.get.return_value = {"id": CLIENT_ID, "name": "Acme Title"}

        assert client.get(f"/api/clients/{CLIENT_ID}").json()["data"]["id"] == CLIENT_ID

    def test_get_missing(self, client, client_repo):
        client_repo.get.return_value = None

        response = client.get(f"/api/clients/{CLIENT_ID}")

        assert response.status_code == 404
        assert response.json()["error"]["message"] == "Client not found"

    def test_other_company_is_hidden(self, client, login, client_user, client_repo):
        login(client_user)

        assert client.get(f"/api/clients/{OTHER_CLIENT_ID}").status_code == 404
        client_repo.get.assert_not_awaited()


class TestUsers:
    """Test the user directory."""

    def test_search(self, client, user_repo):
        user_repo.search.return_value = [
            _profile(),
            _profile(id=HIL_USER_ID, email="operator@rexera.com", full_name=None,
                     user_type="hil_user", role="HIL_ADMIN"),
        ]

        response = client.get("/api/users", params={"q": "a", "limit": 5})

        data = response.json()["data"]
        assert data[0] == {
            "id": CLIENT_USER_ID,
            "name": "Casey Buyer",
            "email": "buyer@acme-title.com",
            "user_type": "client_user",
            "role": "CLIENT_ADMIN",
        }
        assert data[1]["name"] == "operator@rexera.com"
        user_repo.search.assert_awaited_once_with(q="a", user_type=None, company_id=None, limit=5)

    def test_client_user_search_is_scoped(self, client, login, client_user, user_repo):
        login(client_user)
        user_repo.search.return_value = []

        client.get("/api/users", params={"user_type": "client_user"})

        kwargs = user_repo.search.call_args.kwargs
        assert kwargs["company_id"] == CLIENT_ID
        assert kwargs["user_type"] == "client_user"
        assert kwargs["limit"] == 20

    def test_invalid_user_type(self, client):
        assert client.get("/api/users", params={"user_type": "robot"}).status_code == 400

    def test_get(self, client, user_repo):
        user_repo.get_profile.return_value = _profile()

        data = client.get(f"/api/users/{CLIENT_USER_ID}").json()["data"]

        assert data["company_id"] == CLIENT_ID
        assert data["name"] == "Casey Buyer"

    def test_get_missing(self, client, user_repo):
        user_repo.get_profile.return_value = None

        response = client.get(f"/api/users/{CLIENT_USER_ID}")

        assert response.status_code == 404
        assert response.json()["error"]["message"] == "User not found"

    def test_other_company_profile_is_hidden(self, client, login, client_user, user_repo):
        login(client_user)
        user_repo.get_profile.return_value = _profile(company_id=OTHER_CLIENT_ID)

        assert client.get(f"/api/users/{CLIENT_USER_ID}").status_code == 404
