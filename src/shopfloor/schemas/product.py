"""Pydantic schemas for catalog products."""

from typing import Optional

from pydantic import BaseModel, Field


class ProductCreate(BaseModel):
    """Inbound product. An id makes the save an upsert of that row."""

    id: Optional[int] = Field(None, ge=1)
    title: str = Field(..., min_length=1, max_length=200)
    price: float = Field(..., ge=0)
    thumbnail: Optional[str] = None


class ProductRead(BaseModel):
    id: int
    title: str
    price: float
    thumbnail: Optional[str] = None

    model_config = {"from_attributes": True}
