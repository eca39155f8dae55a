# Generated manually for the initial dealers schema

import uuid
from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Dealer',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=200)),
                ('slug', models.SlugField(max_length=80, unique=True)),
                ('company_name', models.CharField(blank=True, max_length=200)),
                ('company_address', models.TextField(blank=True)),
                ('company_phone', models.CharField(blank=True, max_length=40)),
                ('company_email', models.EmailField(blank=True, max_length=254)),
                ('company_number', models.CharField(blank=True, max_length=20)),
                ('vat_registered', models.BooleanField(default=True)),
                ('vat_number', models.CharField(blank=True, max_length=20)),
                ('invoice_number_prefix', models.CharField(blank=True, default='INV', max_length=10)),
                ('deposit_receipt_prefix', models.CharField(blank=True, default='DEP', max_length=10)),
                ('payment_receipt_prefix', models.CharField(blank=True, default='PAY', max_length=10)),
                ('self_bill_prefix', models.CharField(blank=True, default='SB', max_length=10)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'dealers',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='DealerMembership',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('role', models.CharField(choices=[('OWNER', 'Owner'), ('ADMIN', 'Admin'), ('STAFF', 'Staff'), ('WORKSHOP', 'Workshop')], default='STAFF', max_length=20)),
                ('last_active_at', models.DateTimeField(auto_now_add=True)),
                ('removed_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('dealer', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='memberships', to='dealers.dealer')),
                ('removed_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='dealer_memberships', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'dealer_memberships',
                'ordering': ['created_at'],
                'indexes': [
                    models.Index(fields=['dealer', 'role'], name='dealer_memb_role_idx'),
                    models.Index(fields=['user', 'removed_at'], name='dealer_memb_active_idx'),
                ],
                'unique_together': {('user', 'dealer')},
            },
        ),
    ]
