"""
Report moderation and user bans.

Reports move pending -> reviewed | resolved | rejected and only admins may
move them. Closing a report is a compare-and-set on status='pending', so a
report handled twice (two admins, a double click) fails instead of being
applied again; reopen() puts it back to pending.

ban_and_resolve() bans the reported user and resolves the report in one
transaction: either both changes land or neither does.
"""

import logging

from django.db import DatabaseError, transaction
from django.db.models import Count
from django.utils import timezone

from .exceptions import (
    AccountBanned,
    ActionNotAllowed,
    BusinessRuleViolation,
    ConcurrentUpdateError,
    InvalidTransition,
    ModerationIncomplete,
)
from .models import Booking, Product, Report, User

logger = logging.getLogger(__name__)

PENDING = 'pending'
REVIEWED = 'reviewed'
RESOLVED = 'resolved'
REJECTED = 'rejected'

CLOSED_STATUSES = (REVIEWED, RESOLVED, REJECTED)


def require_admin(actor):
    """
    Raises:
        ActionNotAllowed: Actor is anonymous or not an admin
        AccountBanned: Actor is a banned admin
    """
    if actor is None or not actor.is_authenticated or not actor.is_admin():
        raise ActionNotAllowed('Only admins can perform moderation actions.')
    if actor.is_banned:
        raise AccountBanned()


class ReportModerationWorkflow:
    """Admin actions on reports and user accounts."""

    def file_report(self, reporter, report_type, reason, description='',
                    reported_user=None, reported_product=None):
        """
        Create a pending report.

        For product reports the reported user is the product's owner.

        Raises:
            AccountBanned: Reporter is banned
            ValidationError: Missing reason, wrong target or self-report
        """
        if reporter.is_banned:
            raise AccountBanned()

        report = Report.objects.create(
            reporter=reporter,
            report_type=report_type,
            reason=(reason or '').strip(),
            description=description or '',
            reported_user=reported_user,
            reported_product=reported_product,
        )
        logger.info(
            f"Report filed. Report ID: {report.pk}, Type: {report_type}, "
            f"Reporter ID: {reporter.pk}, Reported User ID: {report.reported_user_id}, "
            f"Reported Product ID: {report.reported_product_id}"
        )
        return report

    def mark_reviewed(self, report, actor, notes=''):
        return self._close(report, actor, REVIEWED, notes)

    def dismiss(self, report, actor, status=REJECTED, notes=''):
        """
        Close a report without touching the reported user.

        Args:
            status: 'resolved' or 'rejected'
        """
        if status not in (RESOLVED, REJECTED):
            raise InvalidTransition("A report can only be dismissed as 'resolved' or 'rejected'.")
        return self._close(report, actor, status, notes)

    def ban_and_resolve(self, report, actor, notes=''):
        """
        Ban the reported user and resolve the report atomically.

        Raises:
            ActionNotAllowed: Actor is not an admin, or the target is an admin
            InvalidTransition: Report is no longer pending
            BusinessRuleViolation: Report has no user to ban
            ModerationIncomplete: Database failure; nothing was applied
        """
        require_admin(actor)

        try:
            with transaction.atomic():
                report = Report.objects.select_for_update().get(pk=report.pk)
                if report.status != PENDING:
                    raise InvalidTransition(f'Report has already been {report.status}.')

                if report.reported_user_id is None:
                    raise BusinessRuleViolation('This report has no user to ban.')

                target = User.objects.select_for_update().get(pk=report.reported_user_id)
                self._check_bannable(target, actor)

                now = timezone.now()
                self._ban(target, actor, report.reason, now)
                self._resolve_report(report, actor, notes, now)
        except DatabaseError as e:
            logger.error(
                f"Ban and resolve rolled back. Report ID: {report.pk}, "
                f"Admin ID: {actor.pk}, Error: {str(e)}"
            )
            raise ModerationIncomplete() from e

        logger.warning(
            f"User banned from report. User ID: {target.pk}, Report ID: {report.pk}, "
            f"Admin ID: {actor.pk}, Reason: {report.reason}"
        )
        report.refresh_from_db()
        return report

    def reopen(self, report, actor):
        """Return a handled report to pending so it can be acted on again."""
        require_admin(actor)

        with transaction.atomic():
            updated = Report.objects.filter(pk=report.pk, status__in=CLOSED_STATUSES).update(
                status=PENDING,
                reviewed_by=None,
                reviewed_at=None,
                updated_at=timezone.now(),
            )
            if not updated:
                raise InvalidTransition('Report is already pending.')

        logger.info(f"Report reopened. Report ID: {report.pk}, Admin ID: {actor.pk}")
        report.refresh_from_db()
        return report

    def ban_user(self, target, actor, reason):
        """Ban a user outside the report flow."""
        require_admin(actor)

        reason = (reason or '').strip()
        if not reason:
            raise BusinessRuleViolation('A ban reason is required.')

        with transaction.atomic():
            target = User.objects.select_for_update().get(pk=target.pk)
            self._check_bannable(target, actor)
            self._ban(target, actor, reason, timezone.now())

        logger.warning(f"User banned. User ID: {target.pk}, Admin ID: {actor.pk}, Reason: {reason}")
        target.refresh_from_db()
        return target

    def unban_user(self, target, actor):
        require_admin(actor)

        with transaction.atomic():
            updated = User.objects.filter(pk=target.pk, is_banned=True).update(
                is_banned=False,
                banned_at=None,
                banned_by=None,
                ban_reason='',
                updated_at=timezone.now(),
            )
            if not updated:
                raise InvalidTransition('User is not banned.')

        logger.info(f"User unbanned. User ID: {target.pk}, Admin ID: {actor.pk}")
        target.refresh_from_db()
        return target

    def statistics(self, actor):
        """Dashboard counts for admins."""
        require_admin(actor)

        report_counts = {status: 0 for status, _label in Report.STATUS_CHOICES}
        for row in Report.objects.values('status').order_by().annotate(count=Count('id')):
            report_counts[row['status']] = row['count']

        return {
            'total_users': User.objects.count(),
            'banned_users': User.objects.filter(is_banned=True).count(),
            'total_reports': sum(report_counts.values()),
            'pending_reports': report_counts[PENDING],
            'reports_by_status': report_counts,
            'total_products': Product.objects.count(),
            'total_bookings': Booking.objects.count(),
        }

    def _close(self, report, actor, new_status, notes):
        require_admin(actor)

        with transaction.atomic():
            updated = Report.objects.filter(pk=report.pk, status=PENDING).update(
                status=new_status,
                reviewed_by=actor,
                reviewed_at=timezone.now(),
                admin_notes=notes or '',
                updated_at=timezone.now(),
            )
            if not updated:
                current = Report.objects.values_list('status', flat=True).get(pk=report.pk)
                raise InvalidTransition(f'Report has already been {current}.')

        logger.info(
            f"Report closed. Report ID: {report.pk}, Status: {new_status}, Admin ID: {actor.pk}"
        )
        report.refresh_from_db()
        return report

    @staticmethod
    def _check_bannable(target, actor):
        if target.pk == actor.pk:
            raise ActionNotAllowed('You cannot ban yourself.')
        if target.is_admin() or target.is_superuser:
            raise ActionNotAllowed('Admins cannot be banned.')

    @staticmethod
    def _ban(target, actor, reason, now):
        # An existing ban keeps its original details
        User.objects.filter(pk=target.pk, is_banned=False).update(
            is_banned=True,
            banned_at=now,
            banned_by=actor,
            ban_reason=reason,
            updated_at=now,
        )

    @staticmethod
    def _resolve_report(report, actor, notes, now):
        updated = Report.objects.filter(pk=report.pk, status=PENDING).update(
            status=RESOLVED,
            reviewed_by=actor,
            reviewed_at=now,
            admin_notes=notes or '',
            updated_at=now,
        )
        if updated != 1:
            raise ConcurrentUpdateError()
