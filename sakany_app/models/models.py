import uuid
from datetime import datetime
from typing import List, Optional
from uuid import uuid4

from bcrypt import checkpw, gensalt, hashpw
from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from core.date_helper import utcnow
from core.get_db import Base

from .enums import ApprovalStatus, PropertyStatus, PropertyTypes, TwoFactorMethod


class User(Base):
    __tablename__ = "users"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    phone_number: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    hashed_password: Mapped[str] = mapped_column(String(255), nullable=False)

    is_landlord: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    two_factor_enabled: Mapped[bool] = mapped_column(
        Boolean, default=False, nullable=False
    )
    two_factor_method: Mapped[TwoFactorMethod] = mapped_column(
        Enum(TwoFactorMethod, native_enum=False),
        default=TwoFactorMethod.EMAIL,
        nullable=False,
    )
    two_factor_code_hash: Mapped[Optional[str]] = mapped_column(
        String(128), nullable=True
    )
    two_factor_code_expires: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    preferences: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
    last_login: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    properties: Mapped[List["Property"]] = relationship(
        "Property", back_populates="owner", cascade="all, delete-orphan"
    )

    def set_password(self, raw_password: str):
        salt = gensalt()
        self.hashed_password = hashpw(raw_password.encode("utf-8"), salt).decode(
            "utf-8"
        )

    def check_password(self, raw_password: str) -> bool:
        return checkpw(
            raw_password.encode("utf-8"), self.hashed_password.encode("utf-8")
        )

    def normalize(self) -> None:
        self.email = self.email.strip().lower()
        self.name = self.name.strip()

    def __repr__(self):
        return f"<User {self.email} ({self.id})>"


class Property(Base):
    __tablename__ = "properties"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    owner_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    owner: Mapped["User"] = relationship("User", back_populates="properties")

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False)
    price: Mapped[int] = mapped_column(Integer, nullable=False)
    location: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    bedrooms: Mapped[int] = mapped_column(Integer, nullable=False)
    bathrooms: Mapped[int] = mapped_column(Integer, nullable=False)
    area: Mapped[int] = mapped_column(Integer, nullable=False)
    property_type: Mapped[PropertyTypes] = mapped_column(
        Enum(PropertyTypes, native_enum=False), nullable=False
    )
    features: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)
    images: Mapped[List[str]] = mapped_column(JSON, default=list, nullable=False)

    for_sale: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    for_rent: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    is_featured: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    status: Mapped[PropertyStatus] = mapped_column(
        Enum(PropertyStatus, native_enum=False),
        default=PropertyStatus.ACTIVE,
        nullable=False,
    )
    approval_status: Mapped[ApprovalStatus] = mapped_column(
        Enum(ApprovalStatus, native_enum=False),
        default=ApprovalStatus.PENDING,
        nullable=False,
        index=True,
    )
    rejection_note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )

    __table_args__ = (
        CheckConstraint("for_sale OR for_rent", name="ck_property_sale_or_rent"),
    )


class Conversation(Base):
    __tablename__ = "conversations"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_low_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    user_high_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    last_message_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    __table_args__ = (
        UniqueConstraint("user_low_id", "user_high_id", name="uq_conversation_pair"),
    )

    @staticmethod
    def canonical_pair(
        user_a: uuid.UUID, user_b: uuid.UUID
    ) -> tuple[uuid.UUID, uuid.UUID]:
        return (user_a, user_b) if str(user_a) <= str(user_b) else (user_b, user_a)

    def participants(self) -> tuple[uuid.UUID, uuid.UUID]:
        return self.user_low_id, self.user_high_id

    def other_participant(self, user_id: uuid.UUID) -> uuid.UUID:
        return self.user_high_id if user_id == self.user_low_id else self.user_low_id


class Message(Base):
    __tablename__ = "messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    sender_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    receiver_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    is_read: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    read_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )

    __table_args__ = (
        Index("ix_messages_pair_created", "sender_id", "receiver_id", "created_at"),
        Index("ix_messages_receiver_unread", "receiver_id", "is_read"),
    )
