"""Schedule execution: one transaction per schedule run."""

import time
from datetime import datetime

from sqlalchemy.orm import Session

from notifyhub.domain.models import DeliveryStatus, Recipient, ScheduleExecutionContext
from notifyhub.logging import get_logger
from notifyhub.logging.context import log_context
from notifyhub.notifications.channels import DispatchChannel
from notifyhub.notifications.models import DispatchResult
from notifyhub.persistence.database import get_session
from notifyhub.persistence.repositories import (
    ChannelRepository,
    DeliveryLogRepository,
    NotificationRepository,
    ScheduleRepository,
)
from notifyhub.utils.timestamps import format_timestamp_for_log

from .models import RunStatus, ScheduleRunResult
from .recurrence import is_due_today, next_execution
from .renderer import build_recipient_variables, parse_schedule_variables, render

logger = get_logger(__name__, component="executor")


class ScheduleExecutor:
    """
    Runs a single selected schedule end to end.

    Everything written for the schedule (notifications, delivery logs and
    the last/next execution stamps) lives in one transaction. The run is
    committed when it is executed, skipped or has no recipients, and rolled
    back entirely when anything unexpected is raised, which leaves the
    schedule due for the next pass.

    Each recipient runs inside its own savepoint so a store failure for one
    recipient discards only that recipient's rows. Channel errors are not
    store failures: they are logged as a failed delivery.
    """

    def __init__(self, channel: DispatchChannel):
        """
        Initialize the executor.

        Args:
            channel: Channel used to dispatch every notification
        """
        self.channel = channel

    def execute(self, context: ScheduleExecutionContext, now: datetime) -> ScheduleRunResult:
        """
        Execute one schedule. Never raises.

        Args:
            context: Schedule as returned by the selector
            now: Naive wall-clock time of the pass

        Returns:
            ScheduleRunResult describing how the run ended
        """
        run_start = time.time()

        with log_context(schedule_id=context.schedule_id):
            logger.info(
                f"Processing schedule {context.schedule_id}",
                extra={
                    "event": "schedule.run.started",
                    "template_name": context.template_name,
                    "schedule_type": context.schedule_type.value,
                    "schedule_time": context.schedule_time,
                },
            )

            try:
                with get_session() as session:
                    result = self._run(session, context, now)
            except Exception as e:
                result = ScheduleRunResult(
                    schedule_id=context.schedule_id,
                    status=RunStatus.ABORTED,
                    error=str(e),
                )
                logger.error(
                    f"Schedule {context.schedule_id} aborted, changes rolled back: {e}",
                    exc_info=True,
                    extra={"event": "schedule.run.aborted", "error_type": type(e).__name__},
                )

            result.duration_seconds = time.time() - run_start
            return result

    def _run(
        self, session: Session, context: ScheduleExecutionContext, now: datetime
    ) -> ScheduleRunResult:
        schedules = ScheduleRepository(session)

        # Authoritative due check against the row as it is inside this transaction
        last_executed = schedules.get_last_executed(context.schedule_id)
        if not is_due_today(context.schedule_type, context.start_date, last_executed, now.date()):
            logger.info(
                "Skipping schedule: already executed or not due today",
                extra={
                    "event": "schedule.skipped",
                    "last_executed": format_timestamp_for_log(last_executed),
                },
            )
            return ScheduleRunResult(schedule_id=context.schedule_id, status=RunStatus.SKIPPED)

        recipients = schedules.get_active_recipients(context.schedule_id)
        if not recipients:
            logger.warning(
                "No active recipients found, skipping schedule",
                extra={"event": "schedule.no_recipients"},
            )
            return ScheduleRunResult(
                schedule_id=context.schedule_id, status=RunStatus.NO_RECIPIENTS
            )

        schedule_vars = parse_schedule_variables(context.template_variables)
        channel_id = ChannelRepository(session).get_id(self.channel.name)

        logger.debug(
            f"Dispatching to {len(recipients)} recipient(s)",
            extra={"event": "schedule.recipients.loaded", "recipient_count": len(recipients)},
        )

        sent_count = 0
        failed_count = 0
        for recipient in recipients:
            if self._deliver(session, context, recipient, schedule_vars, channel_id, now):
                sent_count += 1
            else:
                failed_count += 1

        next_run = next_execution(
            context.schedule_type, context.start_date, context.schedule_time, now
        )
        schedules.advance(context.schedule_id, now, next_run)

        logger.info(
            "Schedule executed",
            extra={
                "event": "schedule.executed",
                "sent_count": sent_count,
                "failed_count": failed_count,
                "next_execution": format_timestamp_for_log(next_run),
            },
        )
        return ScheduleRunResult(
            schedule_id=context.schedule_id,
            status=RunStatus.EXECUTED,
            sent_count=sent_count,
            failed_count=failed_count,
            next_execution=next_run,
        )

    def _dispatch(self, recipient: Recipient, subject: str, body: str) -> DispatchResult:
        """Send through the channel; an exception becomes a failed result."""
        try:
            return self.channel.send(recipient.email, subject, body, recipient.display_name)
        except Exception as e:
            logger.error(
                f"Channel {self.channel.name} raised while sending: {e}",
                exc_info=True,
                extra={"event": "notification.dispatch.error", "error_type": type(e).__name__},
            )
            return DispatchResult.failed(f"{type(e).__name__}: {e}")

    def _deliver(
        self,
        session: Session,
        context: ScheduleExecutionContext,
        recipient: Recipient,
        schedule_vars,
        channel_id: int,
        now: datetime,
    ) -> bool:
        """Create, dispatch and finalize one notification. Returns True when sent.

        A channel error is recorded like any other failed dispatch. The
        savepoint only discards the recipient's rows on a store or render fault.
        """
        try:
            with session.begin_nested():
                variables = build_recipient_variables(context, recipient, schedule_vars, now)
                subject = render(context.subject, variables)
                body = render(context.body, variables)

                notifications = NotificationRepository(session)
                notification_id = notifications.create_pending(
                    context, recipient, subject, body, created_at=now
                )

                with log_context(notification_id=notification_id, user_id=recipient.user_id):
                    outcome = self._dispatch(recipient, subject, body)

                    DeliveryLogRepository(session).record(
                        notification_id,
                        channel_id,
                        DeliveryStatus.DELIVERED if outcome.success else DeliveryStatus.FAILED,
                        created_at=now,
                        error_message=outcome.error_detail,
                        provider_message_id=outcome.provider_message_id,
                    )
                    notifications.finalize(notification_id, sent=outcome.success, at=now)

                    if outcome.success:
                        logger.info(
                            "Notification sent",
                            extra={
                                "event": "notification.dispatch.sent",
                                "channel": self.channel.name,
                                "provider_message_id": outcome.provider_message_id,
                            },
                        )
                    else:
                        logger.warning(
                            f"Notification dispatch failed: {outcome.error_detail}",
                            extra={
                                "event": "notification.dispatch.failed",
                                "channel": self.channel.name,
                            },
                        )
                    return outcome.success

        except Exception as e:
            logger.error(
                f"Error processing recipient {recipient.email}: {e}",
                exc_info=True,
                extra={
                    "event": "notification.recipient.error",
                    "user_id": recipient.user_id,
                    "error_type": type(e).__name__,
                },
            )
            return False
