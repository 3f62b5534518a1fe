from decimal import Decimal

import django.db.models.deletion
import django.utils.timezone
from django.db import migrations, models

import inventory.models

ITEM_TYPE_CHOICES = [('MATERIAL', 'Material'), ('PRODUCT', 'Product')]
PARTY_STATUS_CHOICES = [('ACTIVE', 'Active'), ('INACTIVE', 'Inactive')]


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='StockMovement',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('item_type', models.CharField(choices=ITEM_TYPE_CHOICES, db_index=True, max_length=20)),
                ('fk_id', models.PositiveIntegerField(db_index=True, help_text='Material id or product id, depending on item_type')),
                ('sku', models.CharField(blank=True, max_length=100, null=True)),
                ('variant_id', models.CharField(blank=True, max_length=100, null=True)),
                ('item_name', models.CharField(blank=True, max_length=255, null=True)),
                ('unit', models.CharField(blank=True, max_length=50, null=True)),
                ('batch_number', models.CharField(blank=True, max_length=100, null=True)),
                ('description', models.TextField(blank=True, null=True)),
                ('movement_type', models.CharField(choices=[('IN', 'Stock In'), ('OUT', 'Stock Out')], max_length=3)),
                ('source', models.CharField(choices=[
                    ('PURCHASE', 'Purchase'), ('PRODUCTION', 'Production'), ('SALES', 'Sales'),
                    ('ADJUSTMENT', 'Adjustment'), ('RETURN', 'Return'), ('CUSTOMER_RETURN', 'Customer Return'),
                    ('VENDOR_RETURN', 'Vendor Return'), ('OPENING_STOCK', 'Opening Stock'), ('CONVERSION', 'Conversion'),
                ], default='ADJUSTMENT', max_length=20)),
                ('qty', models.DecimalField(decimal_places=2, max_digits=14)),
                ('unit_cost', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=18)),
                ('value', models.DecimalField(decimal_places=2, default=Decimal('0.00'), help_text='Monetary value of the movement (qty x unit cost unless given)', max_digits=18)),
                ('date', models.DateTimeField(db_index=True, default=django.utils.timezone.now, help_text='When the stock event happened (not when it was recorded)')),
                ('status', models.CharField(choices=[
                    ('ACTIVE', 'Active'), ('INACTIVE', 'Inactive'), ('PENDING', 'Pending'),
                    ('COMPLETED', 'Completed'), ('REJECTED', 'Rejected'), ('DELETED', 'Deleted'),
                ], default='ACTIVE', max_length=20)),
                ('created_by', models.PositiveIntegerField(blank=True, null=True)),
                ('updated_by', models.PositiveIntegerField(blank=True, null=True)),
                ('deleted_by', models.PositiveIntegerField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('deleted_at', models.DateTimeField(blank=True, null=True)),
            ],
            options={
                'verbose_name': 'Stock Movement',
                'verbose_name_plural': 'Stock Movements',
                'db_table': 'stock_records',
                'ordering': ['date', 'id'],
                'indexes': [
                    models.Index(fields=['item_type', 'fk_id', 'date'], name='stock_item_date_idx'),
                    models.Index(fields=['movement_type'], name='stock_movement_type_idx'),
                    models.Index(fields=['status'], name='stock_status_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='MonthlySummary',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('year', models.PositiveSmallIntegerField()),
                ('month', models.PositiveSmallIntegerField()),
                ('item_type', models.CharField(choices=ITEM_TYPE_CHOICES, max_length=20)),
                ('fk_id', models.PositiveIntegerField()),
                ('sku', models.CharField(blank=True, max_length=100, null=True)),
                ('variant_id', models.CharField(blank=True, max_length=100, null=True)),
                ('item_name', models.CharField(blank=True, max_length=255, null=True)),
                ('unit', models.CharField(blank=True, max_length=50, null=True)),
                ('opening_qty', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('in_qty', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('out_qty', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('closing_qty', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=14)),
                ('opening_value', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=18)),
                ('in_value', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=18)),
                ('out_value', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=18)),
                ('closing_value', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=18)),
                ('created_by', models.PositiveIntegerField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'verbose_name': 'Monthly Stock Summary',
                'verbose_name_plural': 'Monthly Stock Summaries',
                'db_table': 'stock_monthly_summaries',
                'ordering': ['year', 'month', 'item_type', 'fk_id'],
                'indexes': [
                    models.Index(fields=['item_type', 'fk_id', 'year', 'month'], name='summary_item_period_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('year', 'month', 'item_type', 'fk_id'), name='uniq_summary_period_item'),
                ],
            },
        ),
        migrations.CreateModel(
            name='SummaryPeriodLock',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('year', models.PositiveSmallIntegerField()),
                ('month', models.PositiveSmallIntegerField()),
                ('last_generated_at', models.DateTimeField(blank=True, null=True)),
            ],
            options={
                'db_table': 'stock_summary_period_locks',
                'constraints': [
                    models.UniqueConstraint(fields=('year', 'month'), name='uniq_summary_lock_period'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Vendor',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('unique_id', models.CharField(max_length=50, unique=True)),
                ('company_name', models.CharField(max_length=255)),
                ('supplier_name', models.CharField(blank=True, max_length=255, null=True)),
                ('contact_no', models.CharField(blank=True, max_length=50, null=True)),
                ('address', models.TextField(blank=True, null=True)),
                ('remarks', models.TextField(blank=True, null=True)),
                ('status', models.CharField(choices=PARTY_STATUS_CHOICES, default='ACTIVE', max_length=20)),
                ('created_by', models.PositiveIntegerField(blank=True, null=True)),
                ('updated_by', models.PositiveIntegerField(blank=True, null=True)),
                ('deleted_by', models.PositiveIntegerField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('deleted_at', models.DateTimeField(blank=True, null=True)),
            ],
            options={
                'db_table': 'vendors',
                'ordering': ['-created_at', '-id'],
            },
        ),
        migrations.CreateModel(
            name='Customer',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('unique_id', models.CharField(max_length=50, unique=True)),
                ('company_name', models.CharField(max_length=255)),
                ('supplier_name', models.CharField(blank=True, max_length=255, null=True)),
                ('contact_no', models.CharField(blank=True, max_length=50, null=True)),
                ('address', models.TextField(blank=True, null=True)),
                ('remarks', models.TextField(blank=True, null=True)),
                ('type', models.CharField(choices=[('customer', 'Customer'), ('supplier', 'Supplier'), ('both', 'Customer & Supplier')], default='customer', max_length=20)),
                ('status', models.CharField(choices=PARTY_STATUS_CHOICES, default='ACTIVE', max_length=20)),
                ('created_by', models.PositiveIntegerField(blank=True, null=True)),
                ('updated_by', models.PositiveIntegerField(blank=True, null=True)),
                ('deleted_by', models.PositiveIntegerField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('deleted_at', models.DateTimeField(blank=True, null=True)),
            ],
            options={
                'db_table': 'customers',
                'ordering': ['-created_at', '-id'],
            },
        ),
        migrations.CreateModel(
            name='ConversionTemplate',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('template_name', models.CharField(max_length=255, unique=True)),
                ('description', models.TextField(blank=True, null=True)),
                ('template_data', models.JSONField(validators=[inventory.models.validate_template_data])),
                ('status', models.CharField(choices=[('ACTIVE', 'Active'), ('INACTIVE', 'Inactive'), ('ARCHIVED', 'Archived')], default='ACTIVE', max_length=20)),
                ('created_by', models.PositiveIntegerField(blank=True, null=True)),
                ('updated_by', models.PositiveIntegerField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'conversion_templates',
                'ordering': ['template_name'],
            },
        ),
        migrations.CreateModel(
            name='ConversionRecord',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('conversion_ref', models.CharField(max_length=100, unique=True)),
                ('production_ref', models.CharField(db_index=True, max_length=100)),
                ('template_name', models.CharField(max_length=255)),
                ('quantity', models.DecimalField(decimal_places=2, default=Decimal('1.00'), max_digits=14)),
                ('inputs', models.JSONField(default=list)),
                ('outputs', models.JSONField(default=list)),
                ('total_input_cost', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=18)),
                ('notes', models.TextField(blank=True, null=True)),
                ('status', models.CharField(choices=[('PENDING', 'Pending'), ('COMPLETED', 'Completed'), ('REJECTED', 'Rejected'), ('ROLLED_BACK', 'Rolled Back')], default='COMPLETED', max_length=20)),
                ('created_by', models.PositiveIntegerField(blank=True, null=True)),
                ('created_at', models.DateTimeField(db_index=True, default=django.utils.timezone.now)),
                ('template', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='records', to='inventory.conversiontemplate')),
            ],
            options={
                'db_table': 'conversion_records',
                'ordering': ['-created_at', '-id'],
            },
        ),
    ]
