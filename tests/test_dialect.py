"""Tests for content/dialect.py — dialect detection, upsert, constraint errors."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import create_async_engine
from sqlmodel import select

from cookshare.content.dialect import (
    constraint_violation,
    dedupe_rows,
    get_dialect,
    insert_rows,
    translate_constraint_errors,
    upsert_rows,
)
from cookshare.content.exceptions import (
    ConstraintViolationError,
    ForeignKeyViolationError,
    UniqueViolationError,
)
from cookshare.models import Content, ContentMember

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


class _DriverError(Exception):
    """Stands in for a DBAPI error carrying driver codes."""

    def __init__(self, **attrs: object) -> None:
        super().__init__("driver error")
        for key, value in attrs.items():
            setattr(self, key, value)


def _integrity_error(orig: BaseException) -> IntegrityError:
    return IntegrityError("INSERT ...", {}, orig)


async def _content(session: AsyncSession, owner: str, count: int = 1) -> list[str]:
    rows = [Content(created_by=owner).model_dump() for _ in range(count)]
    await insert_rows(session, Content, rows)
    return [row["content_id"] for row in rows]


class TestGetDialect:
    async def test_sqlite_async(self):
        engine = create_async_engine("sqlite+aiosqlite://", echo=False)
        assert get_dialect(engine) == "sqlite"
        await engine.dispose()

    def test_sqlite_sync(self):
        from sqlmodel import create_engine

        engine = create_engine("sqlite://", echo=False)
        assert get_dialect(engine) == "sqlite"


class TestDedupeRows:
    def test_last_wins_first_order_kept(self):
        rows = [
            {"k": 1, "v": "a"},
            {"k": 2, "v": "b"},
            {"k": 1, "v": "c"},
        ]
        assert dedupe_rows(rows, ["k"]) == [{"k": 1, "v": "c"}, {"k": 2, "v": "b"}]


class TestUpsertRows:
    async def test_insert_then_update(self, async_session: AsyncSession, users):
        [cid] = await _content(async_session, "alice")
        key = ["content_id", "user_id"]
        await upsert_rows(
            async_session, "sqlite", ContentMember,
            [{"content_id": cid, "user_id": "bob", "status": "P"}], key,
        )
        await upsert_rows(
            async_session, "sqlite", ContentMember,
            [{"content_id": cid, "user_id": "bob", "status": "M"}], key,
        )
        result = await async_session.execute(
            select(ContentMember.status).where(ContentMember.content_id == cid)
        )
        assert result.scalars().all() == ["M"]

    async def test_do_nothing(self, async_session: AsyncSession, users):
        [cid] = await _content(async_session, "alice")
        key = ["content_id", "user_id"]
        await upsert_rows(
            async_session, "sqlite", ContentMember,
            [{"content_id": cid, "user_id": "bob", "status": "A"}], key,
        )
        await upsert_rows(
            async_session, "sqlite", ContentMember,
            [{"content_id": cid, "user_id": "bob", "status": "P"}], key,
            update_keys=[],
        )
        result = await async_session.execute(
            select(ContentMember.status).where(ContentMember.content_id == cid)
        )
        assert result.scalar_one() == "A"

    async def test_duplicate_keys_in_one_call(self, async_session: AsyncSession, users):
        [cid] = await _content(async_session, "alice")
        await upsert_rows(
            async_session, "sqlite", ContentMember,
            [
                {"content_id": cid, "user_id": "bob", "status": "P"},
                {"content_id": cid, "user_id": "bob", "status": "A"},
            ],
            ["content_id", "user_id"],
        )
        result = await async_session.execute(
            select(ContentMember.status).where(ContentMember.content_id == cid)
        )
        assert result.scalars().all() == ["A"]

    async def test_empty_rows(self, async_session: AsyncSession):
        assert await upsert_rows(async_session, "sqlite", ContentMember, [], ["user_id"]) == 0

    async def test_unsupported_dialect(self, async_session: AsyncSession):
        with pytest.raises(ValueError, match="Unsupported dialect"):
            await upsert_rows(
                async_session, "mssql", ContentMember,
                [{"content_id": "c", "user_id": "u", "status": "P"}],
                ["content_id", "user_id"],
            )

    async def test_unknown_user_is_foreign_key_violation(
        self, async_session: AsyncSession, users
    ):
        [cid] = await _content(async_session, "alice")
        with pytest.raises(ForeignKeyViolationError):
            await upsert_rows(
                async_session, "sqlite", ContentMember,
                [{"content_id": cid, "user_id": "ghost", "status": "M"}],
                ["content_id", "user_id"],
            )


class TestInsertRows:
    async def test_duplicate_primary_key(self, async_session: AsyncSession, users):
        row = Content(created_by="alice").model_dump()
        await insert_rows(async_session, Content, [row])
        with pytest.raises(UniqueViolationError):
            await insert_rows(async_session, Content, [row])

    async def test_not_null_propagates_unchanged(self, async_session: AsyncSession, users):
        row = {**Content(created_by="alice").model_dump(), "created_at": None}
        with pytest.raises(IntegrityError) as info:
            await insert_rows(async_session, Content, [row])
        assert not isinstance(info.value, ConstraintViolationError)


class TestConstraintViolation:
    def test_postgres_pgcode_foreign_key(self):
        err = constraint_violation(_integrity_error(_DriverError(pgcode="23503")))
        assert isinstance(err, ForeignKeyViolationError)

    def test_postgres_sqlstate_unique(self):
        err = constraint_violation(_integrity_error(_DriverError(sqlstate="23505")))
        assert isinstance(err, UniqueViolationError)

    def test_asyncpg_cause(self):
        orig = _DriverError()
        orig.__cause__ = _DriverError(sqlstate="23503")
        err = constraint_violation(_integrity_error(orig))
        assert isinstance(err, ForeignKeyViolationError)

    def test_sqlite_codes(self):
        fk = constraint_violation(_integrity_error(_DriverError(sqlite_errorcode=787)))
        pk = constraint_violation(_integrity_error(_DriverError(sqlite_errorcode=1555)))
        assert isinstance(fk, ForeignKeyViolationError)
        assert isinstance(pk, UniqueViolationError)

    def test_message_text_is_ignored(self):
        orig = _DriverError()
        orig.args = ("FOREIGN KEY constraint failed",)
        assert constraint_violation(_integrity_error(orig)) is None

    def test_other_codes_are_not_classified(self):
        not_null = _integrity_error(_DriverError(sqlite_errorcode=1299))
        check = _integrity_error(_DriverError(pgcode="23514"))
        assert constraint_violation(not_null) is None
        assert constraint_violation(check) is None

    def test_original_is_kept(self):
        source = _integrity_error(_DriverError(pgcode="23505"))
        assert constraint_violation(source).original is source

    def test_context_manager_translates(self):
        with pytest.raises(UniqueViolationError) as info:
            with translate_constraint_errors():
                raise _integrity_error(_DriverError(pgcode="23505"))
        assert isinstance(info.value.__cause__, IntegrityError)

    def test_context_manager_passes_other_errors(self):
        with pytest.raises(KeyError):
            with translate_constraint_errors():
                raise KeyError("x")

    def test_context_manager_passes_other_integrity_errors(self):
        source = _integrity_error(_DriverError(pgcode="23502"))
        with pytest.raises(IntegrityError) as info:
            with translate_constraint_errors():
                raise source
        assert info.value is source
        assert not isinstance(info.value, ConstraintViolationError)
