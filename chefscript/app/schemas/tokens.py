from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class BalanceResponse(BaseModel):
    tokens: int


class PackageOut(BaseModel):
    tokens: int
    price: int
    description: str


class CreateOrderRequest(BaseModel):
    tokens: int


class CreateOrderResponse(BaseModel):
    orderId: str
    package: PackageOut


class CaptureResponse(BaseModel):
    orderId: str
    tokensAdded: int
    balance: int


class FeedSpyResponse(BaseModel):
    recipes: str
    tokensCharged: int


class AccountResponse(BaseModel):
    id: str
    email: Optional[str] = None
    name: Optional[str] = None
    tokens: int
