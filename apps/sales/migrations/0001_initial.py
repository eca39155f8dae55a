# Generated manually for the initial sales schema

import uuid
from decimal import Decimal

import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('dealers', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='DocumentCounter',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('document_type', models.CharField(choices=[('INVOICE', 'Invoice'), ('DEPOSIT_RECEIPT', 'Deposit Receipt'), ('PAYMENT_RECEIPT', 'Payment Receipt'), ('SELF_BILL_INVOICE', 'Self-Bill Invoice')], max_length=20)),
                ('next_number', models.PositiveIntegerField(default=1)),
                ('prefix', models.CharField(blank=True, default='', max_length=10)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('dealer', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='document_counters', to='dealers.dealer')),
            ],
            options={
                'db_table': 'document_counters',
                'ordering': ['dealer', 'document_type'],
                'constraints': [
                    models.UniqueConstraint(fields=('dealer', 'document_type'), name='unique_counter_per_dealer_type'),
                ],
            },
        ),
        migrations.CreateModel(
            name='Deal',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('customer_name', models.CharField(blank=True, max_length=200)),
                ('customer_email', models.EmailField(blank=True, max_length=254)),
                ('customer_phone', models.CharField(blank=True, max_length=40)),
                ('customer_address', models.TextField(blank=True)),
                ('vehicle_vrm', models.CharField(blank=True, max_length=10)),
                ('vehicle_description', models.CharField(blank=True, max_length=200)),
                ('vehicle_price_gross', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('delivery_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10)),
                ('part_exchange_allowance', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10)),
                ('part_exchange_settlement', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=10)),
                ('sale_channel', models.CharField(choices=[('IN_PERSON', 'In Person'), ('DISTANCE', 'Distance')], default='IN_PERSON', max_length=20)),
                ('status', models.CharField(choices=[('DRAFT', 'Draft'), ('DEPOSIT_TAKEN', 'Deposit Taken'), ('INVOICED', 'Invoiced'), ('DELIVERED', 'Delivered'), ('COMPLETED', 'Completed'), ('CANCELLED', 'Cancelled')], default='DRAFT', max_length=20)),
                ('deposit_taken_at', models.DateTimeField(blank=True, null=True)),
                ('invoiced_at', models.DateTimeField(blank=True, null=True)),
                ('delivered_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('completion_notes', models.TextField(blank=True)),
                ('cancelled_at', models.DateTimeField(blank=True, null=True)),
                ('cancellation_reason', models.CharField(blank=True, max_length=255)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='deals_created', to=settings.AUTH_USER_MODEL)),
                ('dealer', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='deals', to='dealers.dealer')),
                ('updated_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'deals',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['dealer', 'status'], name='deals_dealer_status_idx'),
                    models.Index(fields=['dealer', 'created_at'], name='deals_dealer_created_idx'),
                ],
            },
        ),
        migrations.CreateModel(
            name='DealPayment',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('payment_type', models.CharField(choices=[('DEPOSIT', 'Deposit'), ('BALANCE', 'Balance'), ('FINANCE_ADVANCE', 'Finance Advance'), ('OTHER', 'Other')], max_length=20)),
                ('amount', models.DecimalField(decimal_places=2, max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0.01'))])),
                ('method', models.CharField(choices=[('CASH', 'Cash'), ('CARD', 'Card'), ('BANK_TRANSFER', 'Bank Transfer'), ('FINANCE', 'Finance'), ('OTHER', 'Other')], max_length=20)),
                ('reference', models.CharField(blank=True, max_length=100)),
                ('notes', models.TextField(blank=True)),
                ('paid_at', models.DateTimeField()),
                ('is_refunded', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('deal', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='payments', to='sales.deal')),
            ],
            options={
                'db_table': 'deal_payments',
                'ordering': ['paid_at'],
            },
        ),
        migrations.CreateModel(
            name='SalesDocument',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('document_type', models.CharField(choices=[('INVOICE', 'Invoice'), ('DEPOSIT_RECEIPT', 'Deposit Receipt'), ('PAYMENT_RECEIPT', 'Payment Receipt'), ('SELF_BILL_INVOICE', 'Self-Bill Invoice')], max_length=20)),
                ('document_number', models.CharField(max_length=30)),
                ('status', models.CharField(choices=[('DRAFT', 'Draft'), ('ISSUED', 'Issued'), ('VOID', 'Void')], default='DRAFT', max_length=10)),
                ('issued_at', models.DateTimeField(blank=True, null=True)),
                ('paid_at', models.DateTimeField(blank=True, null=True)),
                ('voided_at', models.DateTimeField(blank=True, null=True)),
                ('void_reason', models.TextField(blank=True)),
                ('snapshot_data', models.JSONField(blank=True, default=dict)),
                ('share_token_hash', models.CharField(blank=True, db_index=True, max_length=64)),
                ('share_expires_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('created_by', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='sales_documents_created', to=settings.AUTH_USER_MODEL)),
                ('deal', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='documents', to='sales.deal')),
                ('dealer', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='sales_documents', to='dealers.dealer')),
                ('voided_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'sales_documents',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['dealer', 'document_type', 'status'], name='sales_docs_type_status_idx'),
                    models.Index(fields=['deal', 'document_type'], name='sales_docs_deal_type_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(
                        condition=models.Q(('status', 'VOID'), _negated=True),
                        fields=('dealer', 'document_type', 'document_number'),
                        name='unique_live_document_number',
                    ),
                ],
            },
        ),
    ]
