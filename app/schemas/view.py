from pydantic import BaseModel, Field
from typing import Dict, List, Optional
from ..models.enums import FoodCategory


class FormFields(BaseModel):
    name: str = ""
    attending: bool = True
    category: FoodCategory = FoodCategory.MAIN
    dish: str = ""


class FormUpdate(BaseModel):
    """Partial edit of the local form; only provided fields change"""

    name: Optional[str] = Field(None, max_length=100)
    attending: Optional[bool] = None
    category: Optional[FoodCategory] = None
    dish: Optional[str] = Field(None, max_length=200)


class RosterEntry(BaseModel):
    id: str
    category: str
    dish: Optional[str] = None
    attending: bool
    can_edit: bool = False


class RosterGroup(BaseModel):
    name: str
    attending: bool
    entries: List[RosterEntry]


class ViewState(BaseModel):
    form: FormFields
    mode: str
    editing_id: Optional[str] = None
    owned_id: Optional[str] = None
    form_title: str
    submit_label: str
    counts: Dict[str, int]
    total_attending: int
    roster: List[RosterGroup]
    categories: List[str] = Field(default_factory=FoodCategory.values)
