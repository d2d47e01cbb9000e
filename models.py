from sqlalchemy import (
    Boolean, Column, ForeignKey, Integer, String, Enum, Date, DateTime, Text, JSON, UniqueConstraint
)
from sqlalchemy.orm import relationship, declarative_base
import enum
from datetime import datetime

Base = declarative_base()


class EateryStatus(str, enum.Enum):
    PENDING = "PENDING"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"


class MenuSourceType(str, enum.Enum):
    PDF = "pdf"
    IMAGE = "image"


class MenuStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSED = "processed"
    FAILED = "failed"
    ACTIVE = "active"


class Eatery(Base):
    __tablename__ = "eateries"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, index=True)
    location = Column(String, nullable=True)
    status = Column(Enum(EateryStatus), default=EateryStatus.PENDING)
    has_daily_specials = Column(Boolean, default=False)
    daily_specials_email = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)

    daily_menus = relationship(
        "EateryMenu", back_populates="eatery", cascade="all, delete-orphan"
    )


class EateryMenu(Base):
    __tablename__ = "eatery_menus"
    __table_args__ = (
        UniqueConstraint("eatery_id", "menu_date", name="uq_eatery_menu_date"),
    )

    id = Column(Integer, primary_key=True, index=True)
    eatery_id = Column(Integer, ForeignKey("eateries.id", ondelete="CASCADE"), nullable=False)
    menu_date = Column(Date, nullable=False)
    source_type = Column(Enum(MenuSourceType), nullable=True)
    source_file = Column(String, nullable=True)
    extracted_text = Column(Text, nullable=True)
    structured_menu = Column(JSON, nullable=True)  # {"Lunch": [{"name": "Jollof Rice", "price": "₦1500"}]}
    extras = Column(JSON, nullable=True)
    status = Column(Enum(MenuStatus), default=MenuStatus.PENDING)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    eatery = relationship("Eatery", back_populates="daily_menus")
