"""Pydantic schemas for the chat proxy."""

from typing import Optional

from pydantic import BaseModel


class ChatRequest(BaseModel):
    message: Optional[str] = None


class ChatResponse(BaseModel):
    response: str
