"""
Tests for the repositories against a mocked Database.
"""

import typing
from typing import Any
from unittest.mock import AsyncMock

import pytest

from rexera.clients.database import Database
from rexera.repositories.agents import AgentRepository
from rexera.repositories.audit import AuditRepository
from rexera.repositories.clients import ClientRepository
from rexera.repositories.communications import CommunicationRepository
from rexera.repositories.counterparties import CounterpartyRepository
from rexera.repositories.documents import DocumentRepository
from rexera.repositories.notes import HilNoteRepository
from rexera.repositories.notifications import NotificationRepository
from rexera.repositories.tasks import TaskRepository
from rexera.repositories.users import UserRepository
from rexera.repositories.workflows import WorkflowRepository

from .conftest import CLIENT_ID, NOTE_ID


@pytest.fixture
def db() -> AsyncMock:
    return AsyncMock(spec=Database)


class TestListPage:
    """Test the paginated listing shared by the repositories."""

    @pytest.mark.parametrize(
        "repository_cls",
        [
            AgentRepository,
            AuditRepository,
            CommunicationRepository,
            CounterpartyRepository,
            DocumentRepository,
            HilNoteRepository,
            NotificationRepository,
            TaskRepository,
            WorkflowRepository,
        ],
    )
    def test_page_annotation_resolves(self, repository_cls):
        hints = typing.get_type_hints(repository_cls.list_page)

        assert hints["return"] == tuple[list[dict[str, Any]], int]

    async def test_rows_and_total(self, db):
        db.fetch.return_value = [{"id": "c1", "name": "First Lender"}]
        db.fetchval.return_value = 41

        rows, total = await CounterpartyRepository(db).list_page(page=3, limit=20, type="lender")

        assert rows == [{"id": "c1", "name": "First Lender"}]
        assert total == 41
        sql, *params = db.fetch.call_args.args
        assert "c.type = $1" in sql
        assert params == ["lender", 20, 40]
        count_sql, *count_params = db.fetchval.call_args.args
        assert count_sql.startswith("SELECT COUNT(*) FROM counterparties c")
        assert count_params == ["lender"]


class TestHilNoteDelete:
    """Test HilNoteRepository.delete on threaded notes."""

    async def test_deletes_the_whole_thread(self, db):
        db.fetchval.return_value = 3

        assert await HilNoteRepository(db).delete(NOTE_ID) is True

        sql, note_id = db.fetchval.call_args.args
        assert note_id == NOTE_ID
        assert "WITH RECURSIVE thread" in sql
        assert "JOIN thread t ON n.parent_note_id = t.id" in sql
        assert "DELETE FROM hil_notes WHERE id IN (SELECT id FROM thread)" in sql
        db.execute.assert_not_awaited()

    async def test_missing_note(self, db):
        db.fetchval.return_value = 0

        assert await HilNoteRepository(db).delete(NOTE_ID) is False


class TestCompanyScoping:
    """Test the client_id filters used for client users."""

    async def test_communications_join_workflow_client(self, db):
        db.fetch.return_value = []
        db.fetchval.return_value = 0

        await CommunicationRepository(db).list_page(
            page=1, limit=20, direction="INBOUND", client_id=CLIENT_ID
        )

        sql, *params = db.fetch.call_args.args
        assert "LEFT JOIN workflows w ON w.id = c.workflow_id" in sql
        assert "c.direction = $1 AND w.client_id = $2" in sql
        assert "ORDER BY c.created_at DESC NULLS LAST" in sql
        assert params == ["INBOUND", CLIENT_ID, 20, 0]

    async def test_document_tags_overlap(self, db):
        db.fetch.return_value = []
        db.fetchval.return_value = 0

        await DocumentRepository(db).list_page(
            page=1, limit=20, tags=["payoff"], client_id=CLIENT_ID
        )

        sql, *params = db.fetch.call_args.args
        assert "w.client_id = $1" in sql
        assert "d.tags && $2" in sql
        assert params[:2] == [CLIENT_ID, ["payoff"]]

    async def test_clients_of_one_company(self, db):
        db.fetch.return_value = [{"id": CLIENT_ID, "name": "Acme Title"}]

        rows = await ClientRepository(db).list_all(client_id=CLIENT_ID)

        assert rows[0]["name"] == "Acme Title"
        sql, client_id = db.fetch.call_args.args
        assert "WHERE id = $1 ORDER BY name ASC" in sql
        assert client_id == CLIENT_ID

    async def test_user_search(self, db):
        db.fetch.return_value = []

        await UserRepository(db).search(q="ann", user_type="hil_user", limit=5)

        sql, *params = db.fetch.call_args.args
        assert "u.full_name::text ILIKE $1 OR u.email::text ILIKE $1" in sql
        assert "u.company_id" not in sql
        assert params == ["%ann%", "hil_user", 5, 0]
