"""Pydantic request bodies for API endpoints."""

from pydantic import BaseModel, Field


class SendMessage(BaseModel):
    text: str


class CreateRoom(BaseModel):
    name: str
    min_rank: str = "IRON"
    max_rank: str = "CHALLENGER"
    id: str | None = None


class JoinRoom(BaseModel):
    role: str


class EnterQueue(BaseModel):
    preferred_roles: list[str] = Field(default_factory=list)
