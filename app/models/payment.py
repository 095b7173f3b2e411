import enum
from datetime import datetime

from sqlalchemy import Column, Integer, String, Float, Boolean, Enum, ForeignKey, JSON, DateTime
from sqlalchemy.orm import relationship

from app.core.base import Base


class SubscriptionPlanEnum(str, enum.Enum):
    basic = "BASIC"
    premium = "PREMIUM"
    professional = "PROFESSIONAL"


class SubscriptionStatusEnum(str, enum.Enum):
    active = "ACTIVE"
    past_due = "PAST_DUE"
    cancelled = "CANCELLED"
    pending = "PENDING"


class PaymentStatusEnum(str, enum.Enum):
    pending = "PENDING"
    succeeded = "SUCCEEDED"
    failed = "FAILED"
    refunded = "REFUNDED"


class Subscription(Base):
    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True)
    trainer_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True, index=True)
    plan = Column(Enum(SubscriptionPlanEnum), nullable=False, default=SubscriptionPlanEnum.basic)
    status = Column(Enum(SubscriptionStatusEnum), nullable=False, default=SubscriptionStatusEnum.active)
    amount = Column(Float, nullable=False, default=0)
    currency = Column(String, nullable=False, default="ARS")
    current_period_start = Column(DateTime, nullable=False, default=datetime.utcnow)
    current_period_end = Column(DateTime, nullable=False)
    cancel_at_period_end = Column(Boolean, default=False, nullable=False)
    external_id = Column(String, nullable=True, unique=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)

    user = relationship("User", foreign_keys=[user_id])
    payments = relationship("Payment", back_populates="subscription", cascade="all, delete-orphan")


class Payment(Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True)
    subscription_id = Column(Integer, ForeignKey("subscriptions.id", ondelete="CASCADE"), nullable=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    amount = Column(Float, nullable=False)
    currency = Column(String, nullable=False, default="ARS")
    status = Column(Enum(PaymentStatusEnum), nullable=False, default=PaymentStatusEnum.pending)
    description = Column(String, nullable=True)
    external_id = Column(String, nullable=True, index=True)
    paid_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, index=True)

    subscription = relationship("Subscription", back_populates="payments")


class PaymentPreference(Base):
    """A Mercado Pago checkout preference created by a trainer for a client."""

    __tablename__ = "payment_preferences"

    id = Column(Integer, primary_key=True)
    trainer_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    client_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    preference_id = Column(String, nullable=False, unique=True)
    external_reference = Column(String, nullable=False, unique=True)
    amount = Column(Float, nullable=False)
    description = Column(String, nullable=True)
    plan = Column(Enum(SubscriptionPlanEnum), nullable=True)
    status = Column(String, nullable=False, default="pending")
    init_point = Column(String, nullable=True)
    provider_payment_id = Column(String, nullable=True)
    metadata_json = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class Invoice(Base):
    __tablename__ = "invoices"

    id = Column(Integer, primary_key=True)
    number = Column(String, nullable=False, unique=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    subscription_id = Column(Integer, ForeignKey("subscriptions.id", ondelete="SET NULL"), nullable=True)
    payment_id = Column(Integer, ForeignKey("payments.id", ondelete="SET NULL"), nullable=True)
    amount = Column(Float, nullable=False)
    currency = Column(String, nullable=False, default="ARS")
    status = Column(String, nullable=False, default="issued")
    issued_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    due_date = Column(DateTime, nullable=True)
    paid_at = Column(DateTime, nullable=True)
