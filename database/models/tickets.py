from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import DateTime, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from core.lifecycle import TicketStatus
from core.utils.datetime import now
from database.engine import Base
from database.mixins import BigIntId, TimestampMixin, enum_column


class TicketType(str, PyEnum):
    HR = "hr"
    IT = "it"


class Ticket(Base, TimestampMixin):
    """
    Support request raised by an active site staff member.
    """

    __tablename__: str = "tickets"
    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    created_by_user_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    ticket_type: Mapped[TicketType] = mapped_column(
        enum_column(TicketType, length=10), nullable=False
    )
    subject: Mapped[str | None] = mapped_column(String(255))
    description: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[TicketStatus] = mapped_column(
        enum_column(TicketStatus, length=20),
        nullable=False,
        default=TicketStatus.OPEN,
    )
    assigned_to_user_id: Mapped[int | None] = mapped_column(
        BigIntId, ForeignKey("users.id", ondelete="SET NULL")
    )
    assigned_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    resolved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    __table_args__ = (
        Index("idx_tickets_created_by", "created_by_user_id"),
        Index("idx_tickets_assigned_to", "assigned_to_user_id"),
        Index("idx_tickets_status", "status"),
    )


class TicketMessage(Base):
    """
    Append-only reply on a ticket thread.
    """

    __tablename__: str = "ticket_messages"
    id: Mapped[int] = mapped_column(BigIntId, primary_key=True, autoincrement=True)
    ticket_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False
    )
    sender_user_id: Mapped[int] = mapped_column(
        BigIntId, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    message: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=now
    )

    __table_args__ = (Index("idx_ticket_messages_ticket", "ticket_id", "created_at"),)
