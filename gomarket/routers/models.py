"""
Cart API Pydantic Models
"""
from typing import List

from pydantic import BaseModel, ConfigDict, Field


class AddToCartRequest(BaseModel):
    """Product to add. Quantity is always one unit per call."""
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(min_length=1)
    title: str
    image_url: str = Field(default="", alias="imageUrl")
    price: float = Field(ge=0, allow_inf_nan=False)


class CartItemResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    title: str
    image_url: str = Field(alias="imageUrl")
    price: float
    quantity: int


class CartResponse(BaseModel):
    items: List[CartItemResponse]
    total_items: int
