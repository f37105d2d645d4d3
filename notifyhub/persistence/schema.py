"""Database schema definition and ORM models.

Tables mirror the notification platform's store. The engine writes only
schedules (last/next execution), notifications and delivery logs; the other
tables are owned by administrative tooling and read here.
"""

from datetime import datetime

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    insert,
    inspect,
    select,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base

from notifyhub.domain.models import DeliveryLogEntry, Notification
from notifyhub.logging import get_logger

logger = get_logger(__name__, component="database")

Base = declarative_base()

DEFAULT_CHANNELS = ("email", "in_app", "sms")


class DepartmentModel(Base):
    __tablename__ = "notif_departments"

    department_id = Column(Integer, primary_key=True, autoincrement=True)
    department_code = Column(String(20), nullable=False, unique=True)
    department_name = Column(String(100), nullable=False, unique=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)


class SubDepartmentModel(Base):
    __tablename__ = "notif_sub_departments"

    sub_department_id = Column(Integer, primary_key=True, autoincrement=True)
    department_id = Column(
        Integer, ForeignKey("notif_departments.department_id", ondelete="CASCADE"), nullable=False
    )
    sub_department_name = Column(String(100), nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)

    __table_args__ = (UniqueConstraint("department_id", "sub_department_name"),)


class UserModel(Base):
    __tablename__ = "notif_users"

    user_id = Column(Integer, primary_key=True, autoincrement=True)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    email = Column(String(255), nullable=False, unique=True)
    phone_number = Column(String(20), nullable=True)
    department_id = Column(Integer, ForeignKey("notif_departments.department_id"), nullable=False)
    sub_department_id = Column(
        Integer, ForeignKey("notif_sub_departments.sub_department_id"), nullable=True
    )
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)


class ChannelModel(Base):
    """Channel registry. Only ``email`` is dispatched today."""

    __tablename__ = "notif_notification_channels"

    channel_id = Column(Integer, primary_key=True, autoincrement=True)
    channel_name = Column(String(20), nullable=False, unique=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)


class TemplateModel(Base):
    __tablename__ = "notif_notification_templates"

    template_id = Column(Integer, primary_key=True, autoincrement=True)
    template_name = Column(String(100), nullable=False)
    department_id = Column(Integer, ForeignKey("notif_departments.department_id"), nullable=False)
    subject = Column(String(200), nullable=False)
    body = Column(Text, nullable=False)
    is_active = Column(Boolean, nullable=False, default=True)
    created_by = Column(Integer, ForeignKey("notif_users.user_id"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)


class ScheduleModel(Base):
    """Recurring delivery instruction.

    ``schedule_time`` is zero-padded ``HH:MM`` text, so string comparison in
    SQL orders the same way as time of day.
    """

    __tablename__ = "notif_notification_schedules"

    schedule_id = Column(Integer, primary_key=True, autoincrement=True)
    template_id = Column(
        Integer, ForeignKey("notif_notification_templates.template_id"), nullable=False
    )
    department_id = Column(Integer, ForeignKey("notif_departments.department_id"), nullable=False)
    sub_department_id = Column(
        Integer, ForeignKey("notif_sub_departments.sub_department_id"), nullable=True
    )
    schedule_type = Column(String(20), nullable=False)
    schedule_time = Column(String(5), nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=True)
    template_variables = Column(Text, nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)
    last_executed = Column(DateTime, nullable=True)
    next_execution = Column(DateTime, nullable=True)
    created_by = Column(Integer, ForeignKey("notif_users.user_id"), nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now)
    updated_at = Column(DateTime, nullable=False, default=datetime.now, onupdate=datetime.now)

    __table_args__ = (
        CheckConstraint(
            "schedule_type IN ('once', 'daily', 'weekly', 'monthly')",
            name="ck_schedule_type",
        ),
        CheckConstraint(
            "length(schedule_time) = 5 AND schedule_time LIKE '__:__'",
            name="ck_schedule_time",
        ),
        CheckConstraint("end_date IS NULL OR end_date >= start_date", name="ck_schedule_window"),
        Index("idx_schedules_due", "is_active", "schedule_time"),
    )


class ScheduleRecipientModel(Base):
    __tablename__ = "notif_schedule_recipients"

    id = Column(Integer, primary_key=True, autoincrement=True)
    schedule_id = Column(
        Integer,
        ForeignKey("notif_notification_schedules.schedule_id", ondelete="CASCADE"),
        nullable=False,
    )
    user_id = Column(Integer, ForeignKey("notif_users.user_id"), nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.now)

    __table_args__ = (UniqueConstraint("schedule_id", "user_id", name="uq_schedule_recipient"),)


class NotificationModel(Base):
    __tablename__ = "notif_notifications"

    notification_id = Column(Integer, primary_key=True, autoincrement=True)
    template_id = Column(
        Integer, ForeignKey("notif_notification_templates.template_id"), nullable=True
    )
    schedule_id = Column(
        Integer, ForeignKey("notif_notification_schedules.schedule_id"), nullable=True
    )
    user_id = Column(Integer, ForeignKey("notif_users.user_id"), nullable=False)
    department_id = Column(Integer, ForeignKey("notif_departments.department_id"), nullable=False)
    sub_department_id = Column(Integer, nullable=True)
    subject = Column(String(500), nullable=False)
    body = Column(Text, nullable=False)
    status = Column(String(20), nullable=False, default="pending")
    sent_at = Column(DateTime, nullable=True)
    read_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)

    __table_args__ = (
        CheckConstraint(
            "status IN ('pending', 'sent', 'failed', 'read')", name="ck_notification_status"
        ),
        Index("idx_notifications_user", "user_id", "created_at"),
        Index("idx_notifications_schedule", "schedule_id"),
    )

    def to_domain(self) -> Notification:
        return Notification(
            notification_id=self.notification_id,
            user_id=self.user_id,
            template_id=self.template_id,
            schedule_id=self.schedule_id,
            department_id=self.department_id,
            sub_department_id=self.sub_department_id,
            subject=self.subject,
            body=self.body,
            status=self.status,
            sent_at=self.sent_at,
            read_at=self.read_at,
            created_at=self.created_at,
        )


class DeliveryLogModel(Base):
    """Append-only record of delivery attempts."""

    __tablename__ = "notif_notification_delivery_log"

    log_id = Column(Integer, primary_key=True, autoincrement=True)
    notification_id = Column(
        Integer,
        ForeignKey("notif_notifications.notification_id", ondelete="CASCADE"),
        nullable=False,
    )
    channel_id = Column(
        Integer, ForeignKey("notif_notification_channels.channel_id"), nullable=False
    )
    delivery_status = Column(String(20), nullable=False)
    error_message = Column(String(500), nullable=True)
    delivery_attempts = Column(Integer, nullable=False, default=1)
    provider_message_id = Column(String(255), nullable=True)
    delivered_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False)

    __table_args__ = (
        CheckConstraint(
            "delivery_status IN ('pending', 'delivered', 'failed', 'bounced')",
            name="ck_delivery_status",
        ),
        Index("idx_delivery_log_notification", "notification_id", "channel_id"),
    )

    def to_domain(self) -> DeliveryLogEntry:
        return DeliveryLogEntry(
            log_id=self.log_id,
            notification_id=self.notification_id,
            channel_id=self.channel_id,
            delivery_status=self.delivery_status,
            error_message=self.error_message,
            delivery_attempts=self.delivery_attempts,
            provider_message_id=self.provider_message_id,
            delivered_at=self.delivered_at,
            created_at=self.created_at,
        )


def create_schema(engine: Engine) -> None:
    """Create missing tables and seed the channel registry (idempotent)."""
    Base.metadata.create_all(engine, checkfirst=True)

    with engine.begin() as conn:
        existing = set(conn.execute(select(ChannelModel.channel_name)).scalars())
        missing = [name for name in DEFAULT_CHANNELS if name not in existing]
        if missing:
            conn.execute(
                insert(ChannelModel),
                [
                    {"channel_name": name, "is_active": True, "created_at": datetime.now()}
                    for name in missing
                ],
            )

    logger.info(
        "Database schema ready",
        extra={
            "event": "database.schema.ready",
            "tables": sorted(inspect(engine).get_table_names()),
            "seeded_channels": missing,
        },
    )
