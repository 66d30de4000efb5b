"""
Tests for /api/notifications.
"""

import asyncpg

from .conftest import CLIENT_USER_ID, HIL_USER_ID

NOTIFICATION_ID = "55555555-6666-4777-8888-999900001111"


class TestNotifications:
    """Test the caller's notification inbox."""

    def test_list_is_scoped_to_caller(self, client, login, client_user, notification_repo):
        login(client_user)
        notification_repo.list_page.return_value = ([], 0)

        response = client.get("/api/notifications", params={"read": "false", "type": "SLA_WARNING"})

        assert response.json()["pagination"]["limit"] == 50
        assert notification_repo.list_page.call_args.args == (CLIENT_USER_ID,)
        kwargs = notification_repo.list_page.call_args.kwargs
        assert kwargs["read"] is False
        assert kwargs["type"] == "SLA_WARNING"

    def test_stats(self, client, notification_repo):
        notification_repo.stats.return_value = {"total": 4, "unread": 1}

        response = client.get("/api/notifications/stats")

        assert response.json()["data"] == {"total": 4, "unread": 1}
        notification_repo.stats.assert_awaited_once_with(HIL_USER_ID)

    def test_mark_all_read(self, client, notification_repo):
        notification_repo.mark_all_read.return_value = 3

        response = client.patch("/api/notifications/mark-all-read")

        assert response.json()["data"] == {"updated_count": 3}

    def test_create(self, client, notification_repo):
        notification_repo.create.return_value = {"id": NOTIFICATION_ID, "read": False}

        response = client.post(
            "/api/notifications",
            json={
                "user_id": CLIENT_USER_ID,
                "type": "WORKFLOW_UPDATE",
                "title": "Payoff received",
                "message": "The lender sent the payoff statement",
            },
        )

        assert response.status_code == 201
        values = notification_repo.create.call_args.args[0]
        assert values["priority"] == "NORMAL"
        assert values["metadata"] == {}

    def test_create_for_unknown_user(self, client, notification_repo):
        notification_repo.create.side_effect = asyncpg.exceptions.ForeignKeyViolationError("fk")

        response = client.post(
            "/api/notifications",
            json={"user_id": CLIENT_USER_ID, "type": "WORKFLOW_UPDATE", "title": "t", "message": "m"},
        )

        assert response.status_code == 400
        assert response.json()["error"]["message"] == "Unknown user_id"

    def test_get_other_users_notification(self, client, notification_repo):
        notification_repo.get.return_value = None

        response = client.get(f"/api/notifications/{NOTIFICATION_ID}")

        assert response.status_code == 404
        notification_repo.get.assert_awaited_once_with(NOTIFICATION_ID, HIL_USER_ID)

    def test_mark_read(self, client, notification_repo):
        notification_repo.mark_read.return_value = {"id": NOTIFICATION_ID, "read": True}

        response = client.patch(f"/api/notifications/{NOTIFICATION_ID}/read")

        assert response.json()["data"]["read"] is True

    def test_delete_missing(self, client, notification_repo):
        notification_repo.delete.return_value = False
        assert client.delete(f"/api/notifications/{NOTIFICATION_ID}").status_code == 404
