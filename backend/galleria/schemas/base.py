"""Shared schema base classes"""
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

T = TypeVar("T")


class APIModel(BaseModel):
    """Responses are serialised with camelCase keys (``nextCursor``, ``accessToken``)"""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


class Page(APIModel, Generic[T]):
    """One page of a cursor-paginated listing"""

    items: List[T]
    next_cursor: Optional[str] = Field(None, description="Pass as ?cursor= to fetch the next page; null on the last page")


class MessageResponse(APIModel):
    message: str
