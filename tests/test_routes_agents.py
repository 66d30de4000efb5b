"""
Tests for /api/agents.
"""

from .conftest import AGENT_ID


class TestAgents:
    """Test the agent registry."""

    def test_list(self, client, agent_repo):
        agent_repo.list_page.return_value = ([{"id": AGENT_ID, "name": "payoff-agent"}], 1)

        response = client.get("/api/agents", params={"is_active": "true"})

        assert response.json()["data"][0]["name"] == "payoff-agent"
        assert agent_repo.list_page.call_args.kwargs["is_active"] is True

    def test_get_with_recent_tasks(self, client, agent_repo, task_repo):
        agent_repo.get.return_value = {"id": AGENT_ID, "name": "payoff-agent"}
        task_repo.list_for_agent.return_value = [{"id": "t1"}]

        response = client.get(f"/api/agents/{AGENT_ID}")

        assert response.json()["data"]["recent_tasks"] == [{"id": "t1"}]
        task_repo.list_for_agent.assert_awaited_once_with(AGENT_ID, 10)

    def test_get_missing(self, client, agent_repo):
        agent_repo.get.return_value = None
        assert client.get(f"/api/agents/{AGENT_ID}").status_code == 404

    def test_update(self, client, agent_repo):
        agent_repo.get.return_value = {"id": AGENT_ID}
        agent_repo.update.return_value = {"id": AGENT_ID, "is_active": False}

        response = client.patch(f"/api/agents/{AGENT_ID}", json={"is_active": False})

        assert response.json()["data"]["is_active"] is False
        agent_repo.update.assert_awaited_once_with(AGENT_ID, {"is_active": False})

    def test_update_hil_only(self, client, login, client_user, agent_repo):
        login(client_user)

        assert client.patch(f"/api/agents/{AGENT_ID}", json={"is_active": False}).status_code == 403
        agent_repo.update.assert_not_awaited()

    def test_update_empty(self, client):
        assert client.patch(f"/api/agents/{AGENT_ID}", json={}).status_code == 400
