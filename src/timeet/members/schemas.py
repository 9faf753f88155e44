"""Pydantic v2 schemas for members."""

from __future__ import annotations

import uuid

from pydantic import BaseModel, Field


class Member(BaseModel):
    """A member as seen by the meeting core."""

    id: uuid.UUID = Field(default_factory=uuid.uuid4)
    nickname: str
    email: str | None = None
    image_url: str | None = None


class MemberDetail(BaseModel):
    """Member entry in a meeting's member listing."""

    member_id: uuid.UUID
    nickname: str
    image_url: str | None = None

    @classmethod
    def from_member(cls, member: Member) -> MemberDetail:
        return cls(
            member_id=member.id,
            nickname=member.nickname,
            image_url=member.image_url,
        )
