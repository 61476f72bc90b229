"""
Initial migration for Palletman models.
"""

from decimal import Decimal

import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):
    """Create Palletman models: Warehouse, Product, Pallet, Reservation, Move, StockAlert."""

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Warehouse',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('code', models.SlugField(help_text='Unique identifier (e.g. north-cold, packing-house)', unique=True, verbose_name='Code')),
                ('name', models.CharField(max_length=100, verbose_name='Name')),
                ('is_active', models.BooleanField(default=True, verbose_name='Active')),
                ('metadata', models.JSONField(blank=True, default=dict, verbose_name='Metadata')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Warehouse',
                'verbose_name_plural': 'Warehouses',
                'ordering': ['code'],
            },
        ),
        migrations.CreateModel(
            name='Product',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('sku', models.CharField(max_length=50, unique=True, verbose_name='SKU')),
                ('name', models.CharField(max_length=200, verbose_name='Name')),
                ('variety', models.CharField(blank=True, default='', max_length=100, verbose_name='Variety')),
                ('unit', models.CharField(default='kg', max_length=10, verbose_name='Unit')),
                ('price_per_kg', models.DecimalField(decimal_places=2, default=Decimal('0'), max_digits=10, verbose_name='Price per kg')),
                ('is_active', models.BooleanField(default=True, verbose_name='Active')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Product',
                'verbose_name_plural': 'Products',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='Pallet',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('code', models.CharField(help_text='Readable pallet identifier printed on the label.', max_length=50, unique=True, verbose_name='Pallet code')),
                ('entry_date', models.DateTimeField(db_index=True, default=django.utils.timezone.now, help_text='When the pallet arrived. FIFO key.', verbose_name='Entry date')),
                ('expiry_date', models.DateField(blank=True, db_index=True, help_text='Last day the produce on this pallet can be sold', null=True, verbose_name='Expiry date')),
                ('batch_number', models.CharField(blank=True, default='', max_length=50, verbose_name='Batch number')),
                ('initial_quantity', models.DecimalField(decimal_places=3, max_digits=12, verbose_name='Initial quantity (kg)')),
                ('current_quantity', models.DecimalField(decimal_places=3, default=Decimal('0'), max_digits=12, verbose_name='Current quantity (kg)')),
                ('is_depleted', models.BooleanField(db_index=True, default=False, verbose_name='Depleted')),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='pallets', to='palletman.product', verbose_name='Product')),
                ('warehouse', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='pallets', to='palletman.warehouse', verbose_name='Warehouse')),
            ],
            options={
                'verbose_name': 'Pallet',
                'verbose_name_plural': 'Pallets',
                'ordering': ['entry_date', 'pk'],
                'indexes': [
                    models.Index(fields=['product', 'is_depleted', 'entry_date'], name='palletman_p_product_8c1a2e_idx'),
                ],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('current_quantity__gte', 0)), name='pallet_current_quantity_non_negative'),
                    models.CheckConstraint(condition=models.Q(('current_quantity__lte', models.F('initial_quantity'))), name='pallet_current_quantity_within_initial'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Reservation',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('order_ref', models.CharField(db_index=True, max_length=64, verbose_name='Order reference')),
                ('requested_quantity', models.DecimalField(decimal_places=3, max_digits=12, verbose_name='Requested quantity (kg)')),
                ('status', models.CharField(choices=[('active', 'Active'), ('committed', 'Committed'), ('released', 'Released'), ('expired', 'Expired')], db_index=True, default='active', max_length=20, verbose_name='Status')),
                ('created_at', models.DateTimeField(default=django.utils.timezone.now)),
                ('expires_at', models.DateTimeField(db_index=True, help_text='Released automatically if not committed by this time', verbose_name='Expires at')),
                ('resolved_at', models.DateTimeField(blank=True, help_text='When the reservation was committed, released or expired', null=True, verbose_name='Resolved at')),
                ('metadata', models.JSONField(blank=True, default=dict)),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='reservations', to='palletman.product', verbose_name='Product')),
            ],
            options={
                'verbose_name': 'Reservation',
                'verbose_name_plural': 'Reservations',
                'ordering': ['created_at', 'pk'],
                'indexes': [
                    models.Index(fields=['status', 'expires_at'], name='palletman_r_status_5d0b7f_idx'),
                    models.Index(fields=['order_ref', 'status'], name='palletman_r_order_r_3e9c41_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='ReservationLine',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('quantity', models.DecimalField(decimal_places=3, max_digits=12)),
                ('sequence', models.PositiveSmallIntegerField(default=0)),
                ('pallet', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='reservation_lines', to='palletman.pallet')),
                ('reservation', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='lines', to='palletman.reservation')),
            ],
            options={
                'verbose_name': 'Reservation line',
                'verbose_name_plural': 'Reservation lines',
                'ordering': ['reservation', 'sequence'],
                'constraints': [
                    models.UniqueConstraint(fields=('reservation', 'pallet'), name='unique_reservation_line_pallet'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Move',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('delta', models.DecimalField(decimal_places=3, help_text='Positive = into the pallet, negative = out of it', max_digits=12, verbose_name='Delta')),
                ('kind', models.CharField(choices=[('receive', 'Received'), ('reserve', 'Reserved'), ('release', 'Released'), ('expire', 'Expired'), ('restock', 'Restocked')], max_length=20, verbose_name='Kind')),
                ('reason', models.CharField(help_text='Required. E.g. "Intake truck 14", "Order 5531"', max_length=255, verbose_name='Reason')),
                ('metadata', models.JSONField(blank=True, default=dict, verbose_name='Metadata')),
                ('timestamp', models.DateTimeField(db_index=True, default=django.utils.timezone.now, verbose_name='Timestamp')),
                ('pallet', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='moves', to='palletman.pallet', verbose_name='Pallet')),
                ('reservation', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name='moves', to='palletman.reservation', verbose_name='Reservation')),
                ('user', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, to=settings.AUTH_USER_MODEL, verbose_name='User')),
            ],
            options={
                'verbose_name': 'Move',
                'verbose_name_plural': 'Moves',
                'ordering': ['timestamp', 'pk'],
                'indexes': [
                    models.Index(fields=['pallet', 'timestamp'], name='palletman_m_pallet__7a2f90_idx'),
                    models.Index(fields=['timestamp'], name='palletman_m_timesta_b41e6d_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='StockAlert',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('min_quantity', models.DecimalField(decimal_places=3, help_text='Triggers when available < this value', max_digits=12, verbose_name='Minimum quantity (kg)')),
                ('is_active', models.BooleanField(default=True, verbose_name='Active')),
                ('last_triggered_at', models.DateTimeField(blank=True, null=True, verbose_name='Last triggered at')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='alerts', to='palletman.product', verbose_name='Product')),
                ('warehouse', models.ForeignKey(blank=True, help_text='Empty = sum of all warehouses', null=True, on_delete=django.db.models.deletion.CASCADE, related_name='alerts', to='palletman.warehouse', verbose_name='Warehouse')),
            ],
            options={
                'verbose_name': 'Stock alert',
                'verbose_name_plural': 'Stock alerts',
                'indexes': [
                    models.Index(fields=['is_active'], name='palletman_s_is_acti_0c5d82_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('product', 'warehouse'), name='unique_stock_alert_per_product_warehouse'),
                ],
            },
        ),
    ]
