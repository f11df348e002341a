"""SOS recipient model - contact notified for an SOS alert."""

from sqlalchemy import ForeignKey, String
from sqlalchemy.orm import Mapped, mapped_column

from proxalert.db.base import Base


class SosRecipient(Base):
    """Frozen recipient of an SOS alert with the outcome of its delivery."""

    __tablename__ = "sos_recipients"

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    sos_alert_id: Mapped[int] = mapped_column(ForeignKey("sos_alerts.id", ondelete="CASCADE"), nullable=False, index=True)
    recipient_id: Mapped[int] = mapped_column(ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    delivery_status: Mapped[str | None] = mapped_column(String(20), nullable=True)  # ok | no_channel | failed
