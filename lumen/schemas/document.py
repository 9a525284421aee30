"""Pydantic schemas for document import."""

from pydantic import BaseModel


class DocumentImportResponse(BaseModel):
    filename: str
    content: str
