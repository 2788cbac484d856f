# Revalue Prices Management Command
from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from core.exceptions import StoreUnavailable
from core.pricing import get_decay_rate, run_price_revaluation


class Command(BaseCommand):
    help = 'Lowers the current price of every active listing according to how close it is to expiry.'

    def add_arguments(self, parser):
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Compute new prices without saving them.',
        )
        parser.add_argument(
            '--now',
            type=str,
            default=None,
            help='Evaluate prices at this ISO 8601 instant instead of the current time.',
        )
        parser.add_argument(
            '--decay-rate',
            type=float,
            default=None,
            help='Exponential decay constant (defaults to the PRICE_DECAY_RATE setting).',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        now = self.parse_now(options['now'])

        decay_rate = options['decay_rate']
        if decay_rate is None:
            decay_rate = get_decay_rate()
        if decay_rate < 0:
            raise CommandError('Decay rate cannot be negative.')

        self.stdout.write(f'Revaluing prices at {now.isoformat()} with decay rate {decay_rate}...')

        try:
            result = run_price_revaluation(now=now, decay_rate=decay_rate, dry_run=dry_run)
        except StoreUnavailable as e:
            raise CommandError(f'Price revaluation aborted: {e.detail}')

        self.stdout.write(
            f"Examined {result['examined']} listings, "
            f"updated {result['updated']}, failed {result['failed']}."
        )

        if result['failed']:
            self.stdout.write(self.style.WARNING(
                f"{result['failed']} listing(s) could not be updated. See the log for details."
            ))

        if dry_run:
            self.stdout.write(self.style.SUCCESS('Dry run completed. No changes saved.'))
        else:
            self.stdout.write(self.style.SUCCESS('Price revaluation completed successfully.'))

    def parse_now(self, value):
        if not value:
            return timezone.now()

        try:
            parsed = parse_datetime(value)
        except ValueError:
            parsed = None
        if parsed is None:
            raise CommandError(f'Invalid --now value "{value}". Use ISO 8601, e.g. 2025-01-31T00:00:00Z.')

        if timezone.is_naive(parsed):
            parsed = timezone.make_aware(parsed, timezone.get_current_timezone())
        return parsed
