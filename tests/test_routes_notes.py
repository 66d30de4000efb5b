"""
Tests for /api/hil-notes.
"""

from uuid import UUID

from rexera.models.enums import AuditAction, NotificationType, PriorityLevel

from .conftest import HIL_USER_ID, NOTE_ID, OTHER_HIL_USER_ID, WORKFLOW_ID


class TestListNotes:
    """Test GET /api/hil-notes."""

    def test_requires_workflow(self, client):
        assert client.get("/api/hil-notes").status_code == 400

    def test_hil_only(self, client, login, client_user):
        login(client_user)
        assert client.get("/api/hil-notes", params={"workflow_id": "1042"}).status_code == 403

    def test_with_replies(self, client, workflow_repo, workflow_row, note_repo, note_row):
        workflow_repo.get.return_value = workflow_row
        note_repo.list_page.return_value = ([note_row], 1)
        note_repo.replies.return_value = {NOTE_ID: [{"id": "reply-1"}]}

        response = client.get(
            "/api/hil-notes",
            params={"workflow_id": "1042", "include": "author,replies", "is_resolved": "false"},
        )

        body = response.json()
        assert body["data"][0]["replies"] == [{"id": "reply-1"}]
        assert body["pagination"]["limit"] == 50
        kwargs = note_repo.list_page.call_args.kwargs
        assert kwargs["workflow_id"] == WORKFLOW_ID
        assert kwargs["is_resolved"] is False
        assert kwargs["include_author"] is True


class TestCreateNote:
    """Test POST /api/hil-notes."""

    def test_create_notifies_mentions(
        self, client, workflow_repo, workflow_row, note_repo, note_row, notifier, audit_logger
    ):
        workflow_repo.get.return_value = workflow_row
        note_repo.create.return_value = {**note_row, "mentions": [OTHER_HIL_USER_ID]}

        response = client.post(
            "/api/hil-notes",
            json={
                "workflow_id": "1042",
                "content": "@second please call the lender",
                "priority": "HIGH",
                "mentions": [OTHER_HIL_USER_ID],
            },
        )

        assert response.status_code == 201
        values = note_repo.create.call_args.args[0]
        assert values["workflow_id"] == WORKFLOW_ID
        assert values["author_id"] == HIL_USER_ID
        assert values["is_resolved"] is False

        args = notifier.notify_mentions.call_args.args
        assert args[1] == HIL_USER_ID
        assert args[3] == [UUID(OTHER_HIL_USER_ID)]
        assert args[4] == "1042"
        assert audit_logger.note_event.call_args.args[1] == AuditAction.CREATE

    def test_parent_from_other_workflow(self, client, workflow_repo, workflow_row, note_repo, note_row):
        workflow_repo.get.return_value = workflow_row
        note_repo.get.return_value = {**note_row, "workflow_id": "another-workflow"}

        response = client.post(
            "/api/hil-notes",
            json={"workflow_id": "1042", "content": "follow-up", "parent_note_id": NOTE_ID},
        )

        assert response.status_code == 400
        note_repo.create.assert_not_awaited()


class TestUpdateNote:
    """Test PATCH /api/hil-notes/{id}."""

    def test_only_author_edits_content(self, client, login, other_hil_user, note_repo, note_row):
        login(other_hil_user)
        note_repo.get.return_value = note_row

        response = client.patch(f"/api/hil-notes/{NOTE_ID}", json={"content": "rewritten"})

        assert response.status_code == 403
        note_repo.update.assert_not_awaited()

    def test_anyone_resolves(self, client, login, other_hil_user, note_repo, note_row, notifier):
        login(other_hil_user)
        note_repo.get.return_value = note_row
        note_repo.update.return_value = {**note_row, "is_resolved": True}

        response = client.patch(f"/api/hil-notes/{NOTE_ID}", json={"is_resolved": True})

        assert response.status_code == 200
        note_repo.update.assert_awaited_once_with(NOTE_ID, {"is_resolved": True})
        notifier.notify_mentions.assert_not_awaited()

    def test_new_mentions_only_are_notified(
        self, client, note_repo, note_row, workflow_repo, workflow_row, notifier
    ):
        third = "33333333-3333-4333-8333-333333333333"
        note_repo.get.return_value = {**note_row, "mentions": [OTHER_HIL_USER_ID]}
        note_repo.update.return_value = {**note_row, "mentions": [OTHER_HIL_USER_ID, third]}
        workflow_repo.get_plain.return_value = workflow_row

        client.patch(f"/api/hil-notes/{NOTE_ID}", json={"mentions": [OTHER_HIL_USER_ID, third]})

        assert notifier.notify_mentions.call_args.args[3] == [UUID(third)]

    def test_empty_body(self, client):
        assert client.patch(f"/api/hil-notes/{NOTE_ID}", json={}).status_code == 400


class TestReplyAndDelete:
    """Test replies and deletion."""

    def test_reply_notifies_parent_author(
        self, client, login, other_hil_user, note_repo, note_row, workflow_repo, workflow_row, notifier
    ):
        login(other_hil_user)
        note_repo.get.return_value = note_row
        note_repo.create.return_value = {
            **note_row,
            "id": "reply-1",
            "author_id": OTHER_HIL_USER_ID,
            "parent_note_id": NOTE_ID,
        }
        workflow_repo.get_plain.return_value = workflow_row

        response = client.post(f"/api/hil-notes/{NOTE_ID}/reply", json={"content": "Done, called them"})

        assert response.status_code == 201
        values = note_repo.create.call_args.args[0]
        assert values["parent_note_id"] == NOTE_ID
        assert values["priority"] == "HIGH"

        args = notifier.notify_users.call_args.args
        assert args[0] == [HIL_USER_ID]
        assert args[1] == NotificationType.HIL_MENTION
        assert args[2] == PriorityLevel.HIGH
        assert args[3] == "New reply on workflow 1042"

    def test_reply_to_own_note_skips_notification(
        self, client, note_repo, note_row, workflow_repo, workflow_row, notifier
    ):
        note_repo.get.return_value = note_row
        note_repo.create.return_value = {**note_row, "id": "reply-1", "parent_note_id": NOTE_ID}
        workflow_repo.get_plain.return_value = workflow_row

        client.post(f"/api/hil-notes/{NOTE_ID}/reply", json={"content": "note to self"})

        notifier.notify_users.assert_not_awaited()

    def test_reply_to_missing_note(self, client, note_repo):
        note_repo.get.return_value = None
        assert client.post(f"/api/hil-notes/{NOTE_ID}/reply", json={"content": "x"}).status_code == 404

    def test_only_author_deletes(self, client, login, other_hil_user, note_repo, note_row):
        login(other_hil_user)
        note_repo.get.return_value = note_row

        assert client.delete(f"/api/hil-notes/{NOTE_ID}").status_code == 403
        note_repo.delete.assert_not_awaited()

    def test_delete(self, client, note_repo, note_row, audit_logger):
        note_repo.get.return_value = note_row
        note_repo.delete.return_value = True

        response = client.delete(f"/api/hil-notes/{NOTE_ID}")

        assert response.json()["data"] == {"id": NOTE_ID, "deleted": True}
        assert audit_logger.note_event.call_args.args[1] == AuditAction.DELETE
