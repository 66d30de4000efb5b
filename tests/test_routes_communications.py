"""
Tests for /api/communications.
"""

from datetime import datetime, timezone

import asyncpg

from rexera.models.enums import AuditAction, CommunicationStatus
from rexera.repositories.communications import group_email_threads

from .conftest import (
    CLIENT_ID,
    COMMUNICATION_ID,
    HIL_USER_ID,
    OTHER_CLIENT_ID,
    WORKFLOW_ID,
)

REPLY_ID = "e1e1e1e1-2f2f-4a3a-8b4b-5c5c5c5c5c5c"


def _at(hour: int) -> datetime:
    return datetime(2025, 7, 1, hour, 0, tzinfo=timezone.utc)


class TestListCommunications:
    """Test listing and lookup."""

    def test_list_scoped_to_client_company(self, client, login, client_user, communication_repo, communication_row):
        login(client_user)
        communication_repo.list_page.return_value = ([communication_row], 1)

        response = client.get(
            "/api/communications",
            params={"workflow_id": WORKFLOW_ID, "direction": "OUTBOUND", "include": "sender,bogus"},
        )

        assert response.status_code == 200
        assert response.json()["pagination"]["total"] == 1
        kwargs = communication_repo.list_page.call_args.kwargs
        assert kwargs["client_id"] == CLIENT_ID
        assert kwargs["direction"] == "OUTBOUND"
        assert kwargs["sort_by"] == "created_at"
        assert kwargs["sort_direction"] == "desc"
        assert communication_repo.attach_relations.call_args.args[1] == {"sender"}

    def test_hil_user_sees_every_company(self, client, communication_repo):
        communication_repo.list_page.return_value = ([], 0)

        client.get("/api/communications", params={"sortBy": "subject", "sortDirection": "asc"})

        kwargs = communication_repo.list_page.call_args.kwargs
        assert kwargs["client_id"] is None
        assert kwargs["sort_by"] == "subject"

    def test_invalid_type(self, client):
        response = client.get("/api/communications", params={"communication_type": "fax"})
        assert response.status_code == 400

    def test_get(self, client, communication_repo, communication_row):
        communication_repo.get.return_value = communication_row

        response = client.get(
            f"/api/communications/{COMMUNICATION_ID}", params={"include": "email_metadata"}
        )

        data = response.json()["data"]
        assert data["id"] == COMMUNICATION_ID
        assert "workflow_client_id" not in data
        assert communication_repo.attach_relations.call_args.args[1] == {"email_metadata"}

    def test_get_missing(self, client, communication_repo):
        communication_repo.get.return_value = None

        response = client.get(f"/api/communications/{COMMUNICATION_ID}")

        assert response.status_code == 404
        assert response.json()["error"]["message"] == "Communication not found"

    def test_other_company_is_hidden(self, client, login, client_user, communication_repo, communication_row):
        login(client_user)
        communication_repo.get.return_value = {**communication_row, "workflow_client_id": OTHER_CLIENT_ID}

        assert client.get(f"/api/communications/{COMMUNICATION_ID}").status_code == 404


class TestEmailThreads:
    """Test GET /api/communications/threads."""

    def test_requires_workflow(self, client):
        assert client.get("/api/communications/threads").status_code == 400

    def test_threads(self, client, workflow_repo, workflow_row, communication_repo):
        workflow_repo.get.return_value = workflow_row
        communication_repo.email_thread_rows.return_value = []

        response = client.get("/api/communications/threads", params={"workflow_id": "1042"})

        assert response.json()["data"] == []
        communication_repo.email_thread_rows.assert_awaited_once_with(WORKFLOW_ID)

    def test_grouping(self):
        rows = [
            {"id": "m1", "thread_id": "t1", "workflow_id": WORKFLOW_ID, "subject": "Payoff",
             "direction": "OUTBOUND", "status": "SENT", "recipient_email": "lender@fnl.example",
             "sender_email": "operator@rexera.com", "created_at": _at(9)},
            {"id": "m2", "thread_id": None, "workflow_id": WORKFLOW_ID, "subject": None,
             "direction": "INBOUND", "status": "READ", "recipient_email": None,
             "sender_email": "hoa@board.example", "created_at": _at(10)},
            {"id": "m3", "thread_id": "t1", "workflow_id": WORKFLOW_ID, "subject": "Re: Payoff",
             "direction": "INBOUND", "status": "DELIVERED", "recipient_email": "operator@rexera.com",
             "sender_email": "lender@fnl.example", "created_at": _at(11)},
        ]

        threads = group_email_threads(rows)

        assert [t["thread_id"] for t in threads] == ["t1", "m2"]
        payoff, lone = threads
        assert payoff["subject"] == "Payoff"
        assert payoff["communication_count"] == 2
        assert payoff["last_activity"] == _at(11)
        assert payoff["participants"] == ["lender@fnl.example", "operator@rexera.com"]
        assert payoff["has_unread"] is True
        assert lone["subject"] == "(No Subject)"
        assert lone["participants"] == ["hoa@board.example"]
        assert lone["has_unread"] is False


class TestCreateCommunication:
    """Test POST /api/communications."""

    def test_outbound_email(self, client, workflow_repo, workflow_row, communication_repo, communication_row, audit_logger):
        workflow_repo.get.return_value = workflow_row
        communication_repo.create.return_value = communication_row
        communication_repo.add_email_metadata.return_value = {"message_id": "abc@fnl.example"}

        response = client.post(
            "/api/communications",
            json={
                "workflow_id": WORKFLOW_ID,
                "recipient_email": "payoffs@fnl.example",
                "subject": "Payoff statement for 12 Main St",
                "body": "Please send the payoff statement.",
                "email_metadata": {"message_id": "abc@fnl.example"},
                "phone_metadata": {"phone_number": "+15550100"},
            },
        )

        assert response.status_code == 201
        values = communication_repo.create.call_args.args[0]
        assert values["sender_id"] == HIL_USER_ID
        assert values["status"] == CommunicationStatus.SENT
        assert values["thread_id"] is not None
        assert communication_repo.add_email_metadata.call_args.args[1]["message_id"] == "abc@fnl.example"
        communication_repo.add_phone_metadata.assert_not_awaited()
        assert response.json()["data"]["email_metadata"] == {"message_id": "abc@fnl.example"}
        assert audit_logger.communication_event.call_args.args[1] == AuditAction.CREATE

    def test_inbound_is_delivered(self, client, communication_repo, communication_row):
        communication_repo.create.return_value = {**communication_row, "direction": "INBOUND"}

        client.post(
            "/api/communications",
            json={"body": "Statement attached", "direction": "INBOUND"},
        )

        assert communication_repo.create.call_args.args[0]["status"] == CommunicationStatus.DELIVERED

    def test_metadata_failure_keeps_communication(self, client, communication_repo, communication_row):
        communication_repo.create.return_value = communication_row
        communication_repo.add_email_metadata.side_effect = asyncpg.PostgresError("duplicate")

        response = client.post(
            "/api/communications",
            json={"body": "Hello", "email_metadata": {"message_id": "x@y"}},
        )

        assert response.status_code == 201

    def test_body_required(self, client, communication_repo):
        assert client.post("/api/communications", json={"subject": "Empty"}).status_code == 400
        communication_repo.create.assert_not_awaited()

    def test_other_company_workflow(self, client, login, client_user, workflow_repo, workflow_row, communication_repo):
        login(client_user)
        workflow_repo.get.return_value = {**workflow_row, "client_id": OTHER_CLIENT_ID}

        response = client.post(
            "/api/communications", json={"workflow_id": WORKFLOW_ID, "body": "Hi"}
        )

        assert response.status_code == 404
        communication_repo.create.assert_not_awaited()


class TestUpdateAndDelete:
    """Test PATCH and DELETE."""

    def test_mark_read(self, client, communication_repo, communication_row, audit_logger):
        communication_repo.get.return_value = communication_row
        communication_repo.update.return_value = {**communication_row, "status": "READ"}

        response = client.patch(
            f"/api/communications/{COMMUNICATION_ID}",
            json={"status": "READ", "metadata": {"opened_by": "lender"}},
        )

        assert response.json()["data"]["status"] == "READ"
        args = communication_repo.update.call_args
        assert args.args[1] == {"status": CommunicationStatus.READ}
        assert args.kwargs["metadata"] == {"opened_by": "lender"}
        assert audit_logger.communication_event.call_args.args[3] == {
            "old_status": "SENT",
            "new_status": "READ",
        }

    def test_empty_patch(self, client):
        assert client.patch(f"/api/communications/{COMMUNICATION_ID}", json={}).status_code == 400

    def test_delete(self, client, communication_repo, communication_row):
        communication_repo.get.return_value = communication_row
        communication_repo.delete.return_value = True

        response = client.delete(f"/api/communications/{COMMUNICATION_ID}")

        body = response.json()
        assert body["message"] == "Communication deleted successfully"
        assert body["data"]["deleted"] is True

    def test_delete_missing(self, client, communication_repo):
        communication_repo.get.return_value = None
        assert client.delete(f"/api/communications/{COMMUNICATION_ID}").status_code == 404
        communication_repo.delete.assert_not_awaited()


class TestReplyAndForward:
    """Test reply and forward threading."""

    def test_reply_stays_in_thread(self, client, communication_repo, communication_row):
        communication_repo.get.return_value = communication_row
        communication_repo.create.return_value = {**communication_row, "id": REPLY_ID}
        communication_repo.get_email_metadata.return_value = {
            "message_id": "orig@fnl.example",
            "email_references": ["root@fnl.example"],
        }

        response = client.post(
            f"/api/communications/{COMMUNICATION_ID}/reply",
            json={"recipient_email": "payoffs@fnl.example", "body": "Thanks"},
        )

        assert response.status_code == 201
        values = communication_repo.create.call_args.args[0]
        assert values["thread_id"] == COMMUNICATION_ID
        assert values["subject"] == "Re: Payoff statement for 12 Main St"
        metadata = communication_repo.add_email_metadata.call_args.args[1]
        assert metadata["message_id"] == f"{REPLY_ID}@rexera.com"
        assert metadata["in_reply_to"] == "orig@fnl.example"
        assert metadata["email_references"] == ["root@fnl.example", "orig@fnl.example"]

    def test_reply_keeps_existing_prefix(self, client, communication_repo, communication_row):
        communication_repo.get.return_value = {
            **communication_row, "subject": "Re: Payoff", "thread_id": "t-1",
        }
        communication_repo.create.return_value = {**communication_row, "id": REPLY_ID}
        communication_repo.get_email_metadata.return_value = None

        client.post(
            f"/api/communications/{COMMUNICATION_ID}/reply",
            json={"recipient_email": "payoffs@fnl.example", "body": "Thanks"},
        )

        values = communication_repo.create.call_args.args[0]
        assert values["subject"] == "Re: Payoff"
        assert values["thread_id"] == "t-1"
        metadata = communication_repo.add_email_metadata.call_args.args[1]
        assert metadata["in_reply_to"] == COMMUNICATION_ID

    def test_forward_starts_new_thread(self, client, communication_repo, communication_row):
        communication_repo.get.return_value = communication_row
        communication_repo.create.return_value = {**communication_row, "id": REPLY_ID}

        response = client.post(
            f"/api/communications/{COMMUNICATION_ID}/forward",
            json={"recipient_email": "closer@title.example", "subject": "Fwd: payoff", "body": "FYI"},
        )

        assert response.status_code == 201
        values = communication_repo.create.call_args.args[0]
        assert str(values["thread_id"]) != COMMUNICATION_ID
        metadata = communication_repo.add_email_metadata.call_args.args[1]
        assert metadata["in_reply_to"] is None
        assert metadata["email_references"] == []

    def test_phone_reply_has_no_email_metadata(self, client, communication_repo, communication_row):
        phone = {**communication_row, "communication_type": "phone"}
        communication_repo.get.return_value = phone
        communication_repo.create.return_value = {**phone, "id": REPLY_ID}

        client.post(
            f"/api/communications/{COMMUNICATION_ID}/reply",
            json={"recipient_email": "payoffs@fnl.example", "body": "Called back"},
        )

        communication_repo.get_email_metadata.assert_not_awaited()
        communication_repo.add_email_metadata.assert_not_awaited()
