from sqlalchemy import Boolean, Column, DateTime, Index, String, Text, text
from .base import Base, utcnow


class Address(Base):
    __tablename__ = "address"
    __table_args__ = (
        # 每位使用者最多一個預設地址
        Index(
            "uq_address_default_per_user",
            "user_id",
            unique=True,
            sqlite_where=text("is_default = 1"),
            postgresql_where=text("is_default"),
        ),
    )

    id = Column(String(36), primary_key=True)
    user_id = Column(String(128), nullable=False, index=True)
    name = Column(String(128), nullable=False)
    phone = Column(String(32), nullable=False)
    province = Column(String(64), nullable=False)
    city = Column(String(64), nullable=False)
    district = Column(String(64), nullable=False)
    detail = Column(Text, nullable=False)
    postal_code = Column(String(16), nullable=True)
    is_default = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
