# Sync Pending Payments Management Command
from datetime import timedelta

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from core.exceptions import PaymentGatewayError
from core.models import Payment
from core.payments import get_payment_service, map_transaction_status


class Command(BaseCommand):
    help = 'Polls the payment gateway for unfinished payments and applies their current status.'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Query the gateway but do not save any changes.',
        )
        parser.add_argument(
            '--batch-size',
            type=int,
            default=100,
            help='Maximum number of payments to check in one run.',
        )
        parser.add_argument(
            '--older-than-minutes',
            type=int,
            default=5,
            help='Only check payments not updated for at least this many minutes.',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        batch_size = options['batch_size']
        older_than = options['older_than_minutes']

        if batch_size <= 0:
            raise CommandError('--batch-size must be greater than 0.')
        if older_than < 0:
            raise CommandError('--older-than-minutes cannot be negative.')

        cutoff = timezone.now() - timedelta(minutes=older_than)
        payments = list(
            Payment.objects
            .filter(status__in=('pending', 'processing'), updated_at__lte=cutoff)
            .order_by('updated_at')[:batch_size]
        )

        self.stdout.write(f'Checking {len(payments)} unfinished payment(s)...')

        service = get_payment_service()
        changed = 0
        failed = 0

        for payment in payments:
            try:
                data = service.gateway.status(payment.order_id)
            except PaymentGatewayError as e:
                failed += 1
                self.stderr.write(f'  {payment.order_id}: {e.message}')
                continue

            new_status = map_transaction_status(data.get('transaction_status'))
            if new_status == payment.status:
                continue

            if dry_run:
                self.stdout.write(f'  [DRY-RUN] {payment.order_id}: {payment.status} -> {new_status}')
            else:
                service.apply_gateway_status(payment.pk, data)
                self.stdout.write(f'  {payment.order_id}: {payment.status} -> {new_status}')
            changed += 1

        summary = f'{changed} payment(s) changed, {failed} gateway error(s).'
        if dry_run:
            self.stdout.write(self.style.SUCCESS(f'Dry run completed. {summary} No changes saved.'))
        else:
            self.stdout.write(self.style.SUCCESS(f'Sync completed. {summary}'))
