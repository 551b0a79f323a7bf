from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime
from ..models.enums import FoodCategory


class ResponseBase(BaseModel):
    name: str = Field(..., max_length=100)
    attending: bool = True
    category: FoodCategory = FoodCategory.MAIN
    dish: Optional[str] = Field(None, max_length=200)


class ResponseDraft(ResponseBase):
    """Values submitted when adding a new dish"""

    @field_validator("name")
    @classmethod
    def name_required(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Please enter your name")
        return value


class ResponsePatch(BaseModel):
    """Partial change applied to one existing row"""

    attending: Optional[bool] = None
    category: Optional[FoodCategory] = None
    dish: Optional[str] = Field(None, max_length=200)

    def to_values(self) -> dict:
        return self.model_dump(mode="json", exclude_unset=True)


class ResponseRow(BaseModel):
    """A row as it comes back from the shared table.

    ``category`` stays a plain string: nothing on the backend enforces the
    fixed set, so foreign values must still load.
    """

    id: str
    name: str
    attending: bool = True
    category: str
    dish: Optional[str] = None
    created_at: Optional[datetime] = None

    @field_validator("id", mode="before")
    @classmethod
    def coerce_id(cls, value):
        if value is None or value == "":
            raise ValueError("row id is required")
        return str(value)

    @field_validator("attending", mode="before")
    @classmethod
    def missing_attending(cls, value):
        return True if value is None else value

    @property
    def has_known_category(self) -> bool:
        return self.category in FoodCategory.values()

    class Config:
        from_attributes = True
