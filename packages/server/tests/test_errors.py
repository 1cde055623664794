"""
Tests for problem payload helpers.
"""

from __future__ import annotations

import json
import sqlite3

import pytest
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.exc import IntegrityError, OperationalError

from app.core.errors import (
    describe_store_error,
    is_foreign_key_violation,
    problem_response,
    register_exception_handlers,
    validation_errors,
)


class _PgError(Exception):
    sqlstate = "23505"


class TestDescribeStoreError:
    def test_sqlite_error_code(self):
        orig = sqlite3.IntegrityError("UNIQUE constraint failed: org_members.user_sub")
        orig.sqlite_errorcode = 2067
        orig.sqlite_errorname = "SQLITE_CONSTRAINT_UNIQUE"
        exc = IntegrityError("INSERT ...", {}, orig)
        assert describe_store_error(exc) == (
            "SQLite[2067/SQLITE_CONSTRAINT_UNIQUE]: UNIQUE constraint failed: org_members.user_sub"
        )

    def test_postgres_sqlstate(self):
        exc = IntegrityError("INSERT ...", {}, _PgError("duplicate key value"))
        assert describe_store_error(exc) == "PostgreSQL[23505]: duplicate key value"

    def test_plain_message(self):
        exc = OperationalError("SELECT 1", {}, Exception("connection refused"))
        assert describe_store_error(exc) == "connection refused"


class TestValidationErrors:
    def test_groups_by_field(self):
        errors = [
            {"loc": ("body", "name"), "msg": "Field required"},
            {"loc": ("body", "role"), "msg": "Input should be 'Owner' or 'Member'"},
            {"loc": ("body", "name"), "msg": "too short"},
        ]
        assert validation_errors(errors) == {
            "name": ["Field required", "too short"],
            "role": ["Input should be 'Owner' or 'Member'"],
        }

    def test_whole_body_errors(self):
        assert validation_errors([{"loc": ("body",), "msg": "Field required"}]) == {
            "body": ["Field required"]
        }

    def test_query_prefix_dropped(self):
        assert validation_errors([{"loc": ("query", "page"), "msg": "bad"}]) == {"page": ["bad"]}


class TestProblemResponse:
    def test_default_title(self):
        resp = problem_response(409, detail="Member already exists.")
        assert resp.status_code == 409
        assert resp.media_type == "application/problem+json"
        assert json.loads(resp.body) == {
            "title": "Conflict",
            "detail": "Member already exists.",
            "status": 409,
        }

    def test_extra_fields(self):
        resp = problem_response(400, "Bad", errors={"name": ["x"]})
        assert json.loads(resp.body)["errors"] == {"name": ["x"]}


class TestForeignKeyViolation:
    def test_sqlite_name(self):
        orig = sqlite3.IntegrityError("FOREIGN KEY constraint failed")
        orig.sqlite_errorname = "SQLITE_CONSTRAINT_FOREIGNKEY"
        assert is_foreign_key_violation(IntegrityError("INSERT ...", {}, orig))

    def test_sqlite_unique_is_not_fk(self):
        orig = sqlite3.IntegrityError("UNIQUE constraint failed: org_members.user_sub")
        orig.sqlite_errorname = "SQLITE_CONSTRAINT_UNIQUE"
        assert not is_foreign_key_violation(IntegrityError("INSERT ...", {}, orig))

    def test_postgres_sqlstate(self):
        class _FkError(Exception):
            sqlstate = "23503"

        assert is_foreign_key_violation(IntegrityError("INSERT ...", {}, _FkError("fk")))
        assert not is_foreign_key_violation(IntegrityError("INSERT ...", {}, _PgError("dup")))

    def test_message_fallback(self):
        exc = IntegrityError("INSERT ...", {}, Exception("FOREIGN KEY constraint failed"))
        assert is_foreign_key_violation(exc)


class TestUnhandledErrors:
    @pytest.mark.asyncio
    async def test_unexpected_exception_becomes_problem(self):
        app = FastAPI()
        register_exception_handlers(app)

        @app.get("/boom")
        async def boom():
            raise RuntimeError("kaboom")

        transport = ASGITransport(app=app, raise_app_exceptions=False)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.get("/boom")

        assert resp.status_code == 500
        assert resp.headers["content-type"].startswith("application/problem+json")
        body = resp.json()
        assert body["status"] == 500
        assert body["title"] == "Internal Server Error"
        assert "kaboom" not in body["detail"]
