import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('catalog', '0001_initial'),
        ('theaters', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='MonthlyStock',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('year', models.PositiveIntegerField()),
                ('month_number', models.PositiveSmallIntegerField(validators=[django.core.validators.MinValueValidator(1), django.core.validators.MaxValueValidator(12)])),
                ('old_stock', models.IntegerField(default=0)),
                ('total_invord_stock', models.IntegerField(default=0)),
                ('total_sales', models.IntegerField(default=0)),
                ('total_expired_stock', models.IntegerField(default=0)),
                ('total_damage_stock', models.IntegerField(default=0)),
                ('closing_balance', models.IntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='monthly_stocks', to='catalog.product')),
                ('theater', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='monthly_stocks', to='theaters.theater')),
            ],
            options={
                'db_table': 'monthly_stocks',
                'ordering': ['year', 'month_number'],
                'indexes': [
                    models.Index(fields=['theater', 'year', 'month_number'], name='idx_monthly_theater_period'),
                    models.Index(fields=['product', 'year', 'month_number'], name='idx_monthly_product_period'),
                ],
                'constraints': [models.UniqueConstraint(fields=('theater', 'product', 'year', 'month_number'), name='unique_monthly_stock_period')],
            },
        ),
        migrations.CreateModel(
            name='StockEntry',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('date', models.DateField(db_index=True)),
                ('entry_type', models.CharField(choices=[('ADDED', 'Stock Added'), ('SOLD', 'Sold'), ('EXPIRED', 'Expired'), ('DAMAGED', 'Damaged'), ('RETURNED', 'Returned'), ('ADJUSTMENT', 'Adjustment')], max_length=20)),
                ('quantity', models.IntegerField()),
                ('invord_stock', models.IntegerField(default=0)),
                ('sales', models.IntegerField(default=0)),
                ('expired_stock', models.IntegerField(default=0)),
                ('damage_stock', models.IntegerField(default=0)),
                ('old_stock', models.IntegerField(default=0)),
                ('balance', models.IntegerField(default=0)),
                ('expire_date', models.DateField(blank=True, null=True)),
                ('batch_number', models.CharField(blank=True, max_length=100)),
                ('notes', models.TextField(blank=True)),
                ('consumed_stock', models.IntegerField(default=0)),
                ('written_off_stock', models.IntegerField(default=0)),
                ('fifo_details', models.JSONField(blank=True, default=list)),
                ('reference', models.CharField(blank=True, help_text='Order number or other origin of the entry', max_length=100)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='stock_entries', to=settings.AUTH_USER_MODEL)),
                ('monthly_stock', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='entries', to='inventory.monthlystock')),
                ('source_entry', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='write_offs', to='inventory.stockentry')),
            ],
            options={
                'db_table': 'stock_entries',
                'ordering': ['date', 'id'],
                'verbose_name_plural': 'stock entries',
                'indexes': [
                    models.Index(fields=['monthly_stock', 'date'], name='idx_entry_monthly_date'),
                    models.Index(fields=['entry_type', 'expire_date'], name='idx_entry_type_expire'),
                ],
            },
        ),
    ]
