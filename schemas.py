from pydantic import BaseModel, EmailStr, Field, TypeAdapter
from typing import Dict, List, Optional
from models import EateryStatus, MenuSourceType, MenuStatus
from menu_parser import MenuItem
from datetime import date

StructuredMenuModel = Dict[str, List[MenuItem]]


class EateryCreate(BaseModel):
    name: str
    location: Optional[str] = None
    status: EateryStatus = EateryStatus.PENDING
    has_daily_specials: bool = False
    daily_specials_email: Optional[EmailStr] = None

class EateryResponse(BaseModel):
    id: int
    name: str
    location: Optional[str] = None
    status: EateryStatus
    has_daily_specials: bool
    daily_specials_email: Optional[str] = None

    class Config:
        from_attributes = True

class MenuExtra(BaseModel):
    name: Optional[str] = Field(default=None, max_length=255)
    price: Optional[str] = Field(default=None, max_length=50)

    def is_empty(self) -> bool:
        return not self.name and not self.price

class ExtractResponse(BaseModel):
    extracted_text: str
    structured_menu: StructuredMenuModel

class DailyMenuResponse(BaseModel):
    id: int
    eatery_id: int
    menu_date: date
    source_type: Optional[MenuSourceType] = None
    source_file: Optional[str] = None
    extracted_text: Optional[str] = None
    structured_menu: StructuredMenuModel
    extras: Optional[List[MenuExtra]] = None
    status: MenuStatus

    class Config:
        from_attributes = True

class UploadFormResponse(BaseModel):
    eatery: EateryResponse
    menu_date: date
    already_uploaded: bool


structured_menu_adapter = TypeAdapter(StructuredMenuModel)
extras_adapter = TypeAdapter(List[MenuExtra])
