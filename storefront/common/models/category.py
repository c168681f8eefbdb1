from sqlalchemy import Boolean, Column, DateTime, Integer, String
from .base import Base, utcnow


class Category(Base):
    __tablename__ = "category"

    id = Column(String(36), primary_key=True)
    name = Column(String(255), nullable=False, unique=True)
    slug = Column(String(255), nullable=False, unique=True)
    sort_order = Column(Integer, nullable=False, default=0)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)
