"""Data access layer (repositories) for the schedule engine.

Repositories run inside the caller's session and never commit; the
``get_session()`` block around them decides whether the work is kept.
All filters are SQLAlchemy expressions with bound parameters.
"""

import json
from datetime import date, datetime
from typing import List, Optional, Sequence

from pydantic import ValidationError
from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from notifyhub.domain.models import (
    DeliveryLogEntry,
    DeliveryStatus,
    NewSchedule,
    Notification,
    NotificationStatus,
    Recipient,
    ScheduleExecutionContext,
    ScheduleType,
)
from notifyhub.logging import get_logger

from .exceptions import (
    DataIntegrityError,
    InvalidStatusTransitionError,
    PersistenceError,
    RecordNotFoundError,
)
from .schema import (
    ChannelModel,
    DeliveryLogModel,
    DepartmentModel,
    NotificationModel,
    ScheduleModel,
    ScheduleRecipientModel,
    SubDepartmentModel,
    TemplateModel,
    UserModel,
)

logger = get_logger(__name__, component="repository")


def _context_query():
    """Schedule joined with template, department and optional sub-department."""
    return (
        select(
            ScheduleModel.schedule_id,
            ScheduleModel.template_id,
            ScheduleModel.department_id,
            ScheduleModel.sub_department_id,
            ScheduleModel.schedule_type,
            ScheduleModel.schedule_time,
            ScheduleModel.start_date,
            ScheduleModel.end_date,
            ScheduleModel.template_variables,
            ScheduleModel.last_executed,
            ScheduleModel.next_execution,
            TemplateModel.template_name,
            TemplateModel.subject,
            TemplateModel.body,
            DepartmentModel.department_name,
            SubDepartmentModel.sub_department_name,
        )
        .join(TemplateModel, ScheduleModel.template_id == TemplateModel.template_id)
        .join(DepartmentModel, ScheduleModel.department_id == DepartmentModel.department_id)
        .outerjoin(
            SubDepartmentModel,
            ScheduleModel.sub_department_id == SubDepartmentModel.sub_department_id,
        )
    )


class ScheduleRepository:
    """Reads and writes schedules and their recipient assignments."""

    def __init__(self, session: Session):
        self.session = session

    def select_due(
        self, today: date, time_of_day: str, day_start: datetime
    ) -> List[ScheduleExecutionContext]:
        """Return schedules eligible to run at ``time_of_day`` on ``today``.

        This is the coarse store-side filter: active schedule and template,
        inside its date window, schedule_time already reached, not run since
        ``day_start``, and not a one-time schedule that has already fired.
        Ordered earliest-due first, ties by id.

        Args:
            today: Current calendar date
            time_of_day: Current time as "HH:MM"
            day_start: Midnight of ``today``

        Raises:
            PersistenceError: If database error occurs
        """
        stmt = (
            _context_query()
            .where(
                ScheduleModel.is_active.is_(True),
                TemplateModel.is_active.is_(True),
                ScheduleModel.start_date <= today,
                or_(ScheduleModel.end_date.is_(None), ScheduleModel.end_date >= today),
                ScheduleModel.schedule_time <= time_of_day,
                or_(
                    ScheduleModel.last_executed.is_(None),
                    ScheduleModel.last_executed < day_start,
                ),
                # A fired one-time schedule stays active but is never selected again
                or_(
                    ScheduleModel.schedule_type != ScheduleType.ONCE.value,
                    ScheduleModel.last_executed.is_(None),
                ),
            )
            .order_by(ScheduleModel.schedule_time.asc(), ScheduleModel.schedule_id.asc())
        )
        try:
            rows = self.session.execute(stmt).mappings().all()
        except SQLAlchemyError as e:
            logger.error(f"Error selecting due schedules: {e}", exc_info=True)
            raise PersistenceError(f"Failed to select due schedules: {e}") from e

        contexts = []
        for row in rows:
            try:
                contexts.append(ScheduleExecutionContext.model_validate(dict(row)))
            except ValidationError as e:
                # Skip the corrupt row, keep the rest of the pass
                logger.warning(
                    f"Skipping schedule {row['schedule_id']} with invalid stored data: {e}",
                    extra={"event": "schedule.invalid", "schedule_id": row["schedule_id"]},
                )
        return contexts

    def get(self, schedule_id: int) -> Optional[ScheduleExecutionContext]:
        """Return one schedule with its joined template data, or None."""
        try:
            row = (
                self.session.execute(
                    _context_query().where(ScheduleModel.schedule_id == schedule_id)
                )
                .mappings()
                .one_or_none()
            )
        except SQLAlchemyError as e:
            logger.error(f"Error retrieving schedule {schedule_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve schedule: {e}") from e
        return ScheduleExecutionContext.model_validate(dict(row)) if row else None

    def get_last_executed(self, schedule_id: int) -> Optional[datetime]:
        """Read the current ``last_executed`` value inside this transaction.

        Raises:
            RecordNotFoundError: If the schedule does not exist
            PersistenceError: If database error occurs
        """
        try:
            row = self.session.execute(
                select(ScheduleModel.last_executed).where(
                    ScheduleModel.schedule_id == schedule_id
                )
            ).one_or_none()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to read last_executed: {e}") from e
        if row is None:
            raise RecordNotFoundError(f"Schedule {schedule_id} not found")
        return row.last_executed

    def get_active_recipients(self, schedule_id: int) -> List[Recipient]:
        """Active users assigned to the schedule, in assignment order."""
        stmt = (
            select(
                UserModel.user_id,
                UserModel.first_name,
                UserModel.last_name,
                UserModel.email,
                UserModel.phone_number,
            )
            .join(ScheduleRecipientModel, ScheduleRecipientModel.user_id == UserModel.user_id)
            .where(
                ScheduleRecipientModel.schedule_id == schedule_id,
                UserModel.is_active.is_(True),
            )
            .order_by(ScheduleRecipientModel.id.asc())
        )
        try:
            rows = self.session.execute(stmt).mappings().all()
        except SQLAlchemyError as e:
            logger.error(f"Error fetching recipients for schedule {schedule_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to fetch recipients: {e}") from e
        return [Recipient.model_validate(dict(row)) for row in rows]

    def advance(
        self, schedule_id: int, executed_at: datetime, next_execution: Optional[datetime]
    ) -> None:
        """Record a completed run.

        ``last_executed`` never moves backwards: the update only applies when
        the stored value is empty or not later than ``executed_at``.

        Raises:
            RecordNotFoundError: If the schedule does not exist
            PersistenceError: If the update would move last_executed backwards
        """
        stmt = (
            update(ScheduleModel)
            .where(
                ScheduleModel.schedule_id == schedule_id,
                or_(
                    ScheduleModel.last_executed.is_(None),
                    ScheduleModel.last_executed <= executed_at,
                ),
            )
            .values(
                last_executed=executed_at,
                next_execution=next_execution,
                updated_at=executed_at,
            )
        )
        try:
            result = self.session.execute(stmt)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to advance schedule {schedule_id}: {e}") from e

        if result.rowcount == 0:
            if self.session.get(ScheduleModel, schedule_id) is None:
                raise RecordNotFoundError(f"Schedule {schedule_id} not found")
            raise PersistenceError(
                f"Refusing to move last_executed of schedule {schedule_id} backwards"
            )

    def create(self, new_schedule: NewSchedule, created_by: Optional[int] = None) -> int:
        """Insert a schedule and its recipients; returns the new schedule id."""
        model = ScheduleModel(
            template_id=new_schedule.template_id,
            department_id=new_schedule.department_id,
            sub_department_id=new_schedule.sub_department_id,
            schedule_type=new_schedule.schedule_type.value,
            schedule_time=new_schedule.schedule_time,
            start_date=new_schedule.start_date,
            end_date=new_schedule.end_date,
            template_variables=(
                json.dumps(new_schedule.template_variables)
                if new_schedule.template_variables
                else None
            ),
            is_active=True,
            created_by=created_by,
        )
        try:
            self.session.add(model)
            self.session.flush()
            self._insert_recipients(model.schedule_id, new_schedule.recipient_ids)
        except IntegrityError as e:
            raise DataIntegrityError(f"Failed to create schedule: {e}") from e
        except SQLAlchemyError as e:
            logger.error(f"Error creating schedule: {e}", exc_info=True)
            raise PersistenceError(f"Failed to create schedule: {e}") from e

        logger.info(
            "Schedule created",
            extra={
                "event": "schedule.created",
                "schedule_id": model.schedule_id,
                "schedule_type": model.schedule_type,
                "recipient_count": len(new_schedule.recipient_ids),
            },
        )
        return model.schedule_id

    def replace_recipients(self, schedule_id: int, user_ids: Sequence[int]) -> None:
        """Replace the whole recipient set (delete all, then insert)."""
        if self.session.get(ScheduleModel, schedule_id) is None:
            raise RecordNotFoundError(f"Schedule {schedule_id} not found")
        try:
            self.session.execute(
                delete(ScheduleRecipientModel).where(
                    ScheduleRecipientModel.schedule_id == schedule_id
                )
            )
            self._insert_recipients(schedule_id, list(dict.fromkeys(user_ids)))
        except IntegrityError as e:
            raise DataIntegrityError(f"Failed to replace recipients: {e}") from e
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to replace recipients: {e}") from e

    def deactivate(self, schedule_id: int) -> None:
        """Soft-deactivate a schedule so the selector no longer returns it."""
        try:
            result = self.session.execute(
                update(ScheduleModel)
                .where(ScheduleModel.schedule_id == schedule_id)
                .values(is_active=False, updated_at=datetime.now())
            )
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to deactivate schedule: {e}") from e
        if result.rowcount == 0:
            raise RecordNotFoundError(f"Schedule {schedule_id} not found")

    def _insert_recipients(self, schedule_id: int, user_ids: Sequence[int]) -> None:
        for user_id in user_ids:
            self.session.add(ScheduleRecipientModel(schedule_id=schedule_id, user_id=user_id))
        self.session.flush()


class NotificationRepository:
    """Notification rows and their status transitions."""

    def __init__(self, session: Session):
        self.session = session

    def create_pending(
        self,
        context: ScheduleExecutionContext,
        recipient: Recipient,
        subject: str,
        body: str,
        created_at: datetime,
    ) -> int:
        """Insert a ``pending`` notification and return its id."""
        model = NotificationModel(
            user_id=recipient.user_id,
            template_id=context.template_id,
            schedule_id=context.schedule_id,
            department_id=context.department_id,
            sub_department_id=context.sub_department_id,
            subject=subject,
            body=body,
            status=NotificationStatus.PENDING.value,
            created_at=created_at,
            updated_at=created_at,
        )
        try:
            self.session.add(model)
            self.session.flush()
        except IntegrityError as e:
            raise DataIntegrityError(f"Failed to create notification: {e}") from e
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to create notification: {e}") from e
        return model.notification_id

    def finalize(self, notification_id: int, sent: bool, at: datetime) -> NotificationStatus:
        """Move a pending notification to ``sent`` (stamping sent_at) or ``failed``."""
        status = NotificationStatus.SENT if sent else NotificationStatus.FAILED
        values = {"status": status.value, "updated_at": at}
        if sent:
            values["sent_at"] = at
        self._transition(notification_id, NotificationStatus.PENDING, values)
        return status

    def mark_read(self, notification_id: int, read_at: datetime) -> None:
        """Move a sent notification to ``read``."""
        self._transition(
            notification_id,
            NotificationStatus.SENT,
            {"status": NotificationStatus.READ.value, "read_at": read_at, "updated_at": read_at},
        )

    def get(self, notification_id: int) -> Optional[Notification]:
        try:
            model = self.session.get(NotificationModel, notification_id)
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to retrieve notification: {e}") from e
        return model.to_domain() if model else None

    def list_for_user(self, user_id: int, limit: Optional[int] = None) -> List[Notification]:
        """Notifications addressed to a user, newest first."""
        stmt = (
            select(NotificationModel)
            .where(NotificationModel.user_id == user_id)
            .order_by(NotificationModel.created_at.desc(), NotificationModel.notification_id.desc())
        )
        if limit is not None:
            stmt = stmt.limit(limit)
        try:
            return [m.to_domain() for m in self.session.execute(stmt).scalars()]
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to list notifications: {e}") from e

    def list_for_schedule(self, schedule_id: int) -> List[Notification]:
        stmt = (
            select(NotificationModel)
            .where(NotificationModel.schedule_id == schedule_id)
            .order_by(NotificationModel.notification_id.asc())
        )
        try:
            return [m.to_domain() for m in self.session.execute(stmt).scalars()]
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to list notifications: {e}") from e

    def _transition(self, notification_id: int, expected: NotificationStatus, values: dict) -> None:
        try:
            result = self.session.execute(
                update(NotificationModel)
                .where(
                    NotificationModel.notification_id == notification_id,
                    NotificationModel.status == expected.value,
                )
                .values(**values)
            )
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to update notification {notification_id}: {e}") from e

        if result.rowcount == 0:
            current = self.session.execute(
                select(NotificationModel.status).where(
                    NotificationModel.notification_id == notification_id
                )
            ).scalar_one_or_none()
            if current is None:
                raise RecordNotFoundError(f"Notification {notification_id} not found")
            raise InvalidStatusTransitionError(
                f"Notification {notification_id} is '{current}', "
                f"cannot move to '{values['status']}'"
            )


class DeliveryLogRepository:
    """Append-only delivery attempt log."""

    def __init__(self, session: Session):
        self.session = session

    def record(
        self,
        notification_id: int,
        channel_id: int,
        status: DeliveryStatus,
        created_at: datetime,
        error_message: Optional[str] = None,
        provider_message_id: Optional[str] = None,
    ) -> DeliveryLogEntry:
        """Append one attempt; the attempt number continues any earlier ones
        for the same notification and channel."""
        try:
            previous = self.session.execute(
                select(func.count())
                .select_from(DeliveryLogModel)
                .where(
                    DeliveryLogModel.notification_id == notification_id,
                    DeliveryLogModel.channel_id == channel_id,
                )
            ).scalar_one()
            model = DeliveryLogModel(
                notification_id=notification_id,
                channel_id=channel_id,
                delivery_status=status.value,
                error_message=error_message[:500] if error_message else None,
                delivery_attempts=previous + 1,
                provider_message_id=provider_message_id,
                delivered_at=created_at if status == DeliveryStatus.DELIVERED else None,
                created_at=created_at,
            )
            self.session.add(model)
            self.session.flush()
        except IntegrityError as e:
            raise DataIntegrityError(f"Failed to record delivery: {e}") from e
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to record delivery: {e}") from e
        return model.to_domain()

    def list_for_notification(self, notification_id: int) -> List[DeliveryLogEntry]:
        stmt = (
            select(DeliveryLogModel)
            .where(DeliveryLogModel.notification_id == notification_id)
            .order_by(DeliveryLogModel.log_id.asc())
        )
        try:
            return [m.to_domain() for m in self.session.execute(stmt).scalars()]
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to list delivery log: {e}") from e


class ChannelRepository:
    """Lookups in the channel registry."""

    def __init__(self, session: Session):
        self.session = session

    def get_id(self, channel_name: str) -> int:
        """Return the id of an active channel.

        Raises:
            RecordNotFoundError: If the channel is unknown or inactive
        """
        try:
            channel_id = self.session.execute(
                select(ChannelModel.channel_id).where(
                    ChannelModel.channel_name == channel_name,
                    ChannelModel.is_active.is_(True),
                )
            ).scalar_one_or_none()
        except SQLAlchemyError as e:
            raise PersistenceError(f"Failed to look up channel {channel_name}: {e}") from e
        if channel_id is None:
            raise RecordNotFoundError(f"Channel '{channel_name}' is not registered or inactive")
        return channel_id
