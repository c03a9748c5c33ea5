"""
Rebuild the monthly stock ledger of every product and report the months whose
balances or carry-forward had drifted
"""
from django.core.management.base import BaseCommand
from django.db import transaction
from backend.catalog.models import Product
from backend.inventory.services import StockService


class Command(BaseCommand):
    help = 'Recalculate monthly stock balances and carry-forward for every product'

    def add_arguments(self, parser):
        parser.add_argument(
            '--theater-id',
            type=int,
            help='Only rebuild products of this theater',
        )
        parser.add_argument(
            '--product-id',
            type=int,
            help='Only rebuild this product',
        )
        parser.add_argument(
            '--dry-run',
            action='store_true',
            help='Report drift without saving changes',
        )

    def handle(self, *args, **options):
        dry_run = options['dry_run']
        if dry_run:
            self.stdout.write(self.style.WARNING("DRY RUN MODE: No changes will be saved."))

        products = Product.objects.filter(track_stock=True).select_related('theater').order_by('theater_id', 'id')
        if options['theater_id']:
            products = products.filter(theater_id=options['theater_id'])
        if options['product_id']:
            products = products.filter(id=options['product_id'])

        self.stdout.write(f"Rebuilding stock ledger for {products.count()} products...")

        total_fixed = 0
        with transaction.atomic():
            for product in products:
                fixed = StockService.rebuild(product.theater, product)
                if fixed:
                    total_fixed += fixed
                    self.stdout.write(self.style.NOTICE(
                        f"  - {product.theater.name} / {product.name} (ID: {product.id}): {fixed} month(s) corrected"
                    ))

            if dry_run:
                self.stdout.write(self.style.WARNING(f"\nDry run complete, {total_fixed} month(s) would change. Rolling back."))
                transaction.set_rollback(True)
            else:
                self.stdout.write(self.style.SUCCESS(f"\nRebuild complete, {total_fixed} month(s) corrected."))
