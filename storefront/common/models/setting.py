from sqlalchemy import Column, DateTime, JSON, String
from .base import Base, utcnow


class Setting(Base):
    __tablename__ = "setting"

    key = Column(String(128), primary_key=True)
    value = Column(JSON, nullable=True)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
