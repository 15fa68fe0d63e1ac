from enum import StrEnum
from typing import Any, List, Optional

from pydantic import BaseModel, Field

# Stored documents


class KioskStatus(StrEnum):
    LIVE = "live"
    MAINTENANCE = "maintenance"
    OUT_OF_SERVICE = "out_of_service"


DEFAULT_THEME = {
    "primary": "#6366f1",
    "accent": "#0ea5e9",
    "backgroundTop": "#f5f8ff",
    "backgroundBottom": "#eef2fb",
}

DEFAULT_CATEGORIES = ["Drinks"]


class Theme(BaseModel):
    primary: str = DEFAULT_THEME["primary"]
    accent: str = DEFAULT_THEME["accent"]
    backgroundTop: str = DEFAULT_THEME["backgroundTop"]
    backgroundBottom: str = DEFAULT_THEME["backgroundBottom"]


class KioskConfig(BaseModel):
    status: KioskStatus = KioskStatus.LIVE
    categories: List[str] = Field(default_factory=lambda: list(DEFAULT_CATEGORIES))
    theme: Theme = Field(default_factory=Theme)


class Product(BaseModel):
    id: str
    title: str = "Untitled"
    category: str = "Misc"
    price: float = 0
    # Not constrained: admin saves pass negative stock through unchanged
    stock: int = 0


# Request bodies. Fields stay loose so the admin sanitizers see raw values.


class AuthRequest(BaseModel):
    pin: Optional[Any] = Field(None, alias="pass")


class ProductsRequest(BaseModel):
    products: Optional[Any] = None


class ConfigRequest(BaseModel):
    status: Optional[Any] = None
    categories: Optional[Any] = None
    theme: Optional[Any] = None


class PasswordRequest(BaseModel):
    newPass: Optional[Any] = None
