"""Tests for content/modifiers.py — pagination, author and hero columns."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from sqlmodel import select

from cookshare.content.attachments import AttachmentStore
from cookshare.content.ledger import ContentLedger
from cookshare.content.modifiers import (
    paginate,
    with_content_author,
    with_hero_attachment,
    with_pagination,
    with_read_permissions,
)
from cookshare.content.types import HeroImage
from cookshare.models import Content, ContentMember

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


class TestPagination:
    def test_paginate_has_more(self):
        page = paginate([1, 2, 3], page=1, page_size=2)
        assert page.items == [1, 2]
        assert page.has_more is True

    def test_paginate_last_page(self):
        page = paginate([5], page=3, page_size=2)
        assert page.items == [5]
        assert page.has_more is False
        assert page.page == 3

    def test_limit_and_offset(self):
        query = with_pagination(select(Content.content_id), page=3, page_size=10)
        sql = str(query.compile(compile_kwargs={"literal_binds": True}))
        assert "LIMIT 11" in sql
        assert "OFFSET 20" in sql

    @pytest.mark.parametrize(("page", "page_size"), [(0, 10), (1, 0)])
    def test_invalid(self, page: int, page_size: int):
        with pytest.raises(ValueError):
            with_pagination(select(Content.content_id), page, page_size)

    async def test_pages_through_rows(self, async_session: AsyncSession, users):
        ids = await ContentLedger().create(async_session, "alice", 5)
        base = select(Content.content_id).where(Content.content_id.in_(ids)).order_by(
            Content.content_id
        )
        seen: list[str] = []
        page_number = 1
        while True:
            rows = (
                await async_session.execute(with_pagination(base, page_number, 2))
            ).scalars().all()
            page = paginate(rows, page_number, 2)
            seen.extend(page.items)
            if not page.has_more:
                break
            page_number += 1
        assert seen == sorted(ids)
        assert page_number == 3


class TestContentAuthor:
    async def test_adds_owner_name(self, async_session: AsyncSession, users):
        [cid] = await ContentLedger().create(async_session, "alice", 1)
        query = with_content_author(
            select(Content.content_id).where(Content.content_id == cid)
        )
        row = (await async_session.execute(query)).mappings().one()
        assert row["created_by"] == "alice"
        assert row["owner_first_name"] == "Alice"


class TestHeroAttachment:
    async def test_with_and_without_hero(self, async_session: AsyncSession, users):
        with_hero, without_hero = await ContentLedger().create(async_session, "alice", 2)
        await AttachmentStore("sqlite").set_heroes(
            async_session, "alice", {with_hero: HeroImage("att-1", "s3://bucket/a.jpg")}
        )
        query = with_hero_attachment(
            select(Content.content_id).where(Content.content_id.in_([with_hero, without_hero])),
            Content.content_id,
        )
        rows = {
            row["content_id"]: row for row in (await async_session.execute(query)).mappings()
        }
        assert rows[with_hero]["hero_attachment_uri"] == "s3://bucket/a.jpg"
        assert rows[without_hero]["hero_attachment_id"] is None

    async def test_replacing_hero_keeps_one_row(self, async_session: AsyncSession, users):
        [cid] = await ContentLedger().create(async_session, "alice", 1)
        store = AttachmentStore("sqlite")
        await store.set_heroes(async_session, "alice", {cid: HeroImage("att-1", "a.jpg")})
        await store.set_heroes(
            async_session, "alice", {cid: {"attachment_id": "att-2", "uri": "b.jpg"}}
        )
        query = with_hero_attachment(
            select(Content.content_id).where(Content.content_id == cid), Content.content_id
        )
        rows = (await async_session.execute(query)).mappings().all()
        assert [r["hero_attachment_id"] for r in rows] == ["att-2"]

    async def test_none_removes_hero(self, async_session: AsyncSession, users):
        [cid] = await ContentLedger().create(async_session, "alice", 1)
        store = AttachmentStore("sqlite")
        await store.set_heroes(async_session, "alice", {cid: HeroImage("att-1", "a.jpg")})
        await store.set_heroes(async_session, "alice", {cid: None})
        query = with_hero_attachment(
            select(Content.content_id).where(Content.content_id == cid), Content.content_id
        )
        row = (await async_session.execute(query)).mappings().one()
        assert row["hero_attachment_id"] is None


class TestReadPermissions:
    async def test_extra_grants_do_not_beat_blacklist(self, async_session: AsyncSession, users):
        [cid] = await ContentLedger().create(async_session, "alice", 1)
        async_session.add(ContentMember(content_id=cid, user_id="bob", status="B"))
        await async_session.flush()

        def visible_to(user_id: str):
            return with_read_permissions(
                select(Content.content_id).where(Content.content_id == cid),
                user_id=user_id,
                id_column=Content.content_id,
                statuses={"O"},
                extra_grants=(Content.content_id.is_not(None),),
            )

        assert (await async_session.execute(visible_to("carol"))).scalars().all() == [cid]
        assert (await async_session.execute(visible_to("bob"))).scalars().all() == []
