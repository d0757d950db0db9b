from django.db import migrations, models
import django.utils.timezone


class Migration(migrations.Migration):

	initial = True

	dependencies = []

	operations = [
		migrations.CreateModel(
			name="Order",
			fields=[
				("id", models.CharField(max_length=64, primary_key=True, serialize=False)),
				("business_id", models.CharField(blank=True, default="", max_length=64)),
				("business_slug", models.CharField(blank=True, default="", max_length=120)),
				("amount_kobo", models.BigIntegerField(blank=True, null=True)),
				("currency", models.CharField(default="NGN", max_length=8)),
				("escrow_status", models.CharField(default="held", max_length=16)),
				("order_status", models.CharField(blank=True, default="", max_length=40)),
				("hold_until_ms", models.BigIntegerField(default=0)),
				("payment_reference", models.CharField(blank=True, max_length=128, null=True)),
				("payment_provider", models.CharField(blank=True, default="", max_length=32)),
				("disputed_at_ms", models.BigIntegerField(blank=True, null=True)),
				("released_at", models.DateTimeField(blank=True, null=True)),
				("created_at", models.DateTimeField(default=django.utils.timezone.now)),
				("updated_at", models.DateTimeField(blank=True, null=True)),
				("version", models.PositiveIntegerField(default=0)),
			],
			options={
				"indexes": [models.Index(fields=["escrow_status", "hold_until_ms"], name="order_escrow_hold_idx")],
			},
		),
		migrations.CreateModel(
			name="Wallet",
			fields=[
				("business_id", models.CharField(max_length=64, primary_key=True, serialize=False)),
				("pending_balance_kobo", models.BigIntegerField(default=0)),
				("available_balance_kobo", models.BigIntegerField(default=0)),
				("total_earned_kobo", models.BigIntegerField(default=0)),
				("updated_at", models.DateTimeField(blank=True, null=True)),
				("version", models.PositiveIntegerField(default=0)),
			],
		),
		migrations.CreateModel(
			name="PaymentTransaction",
			fields=[
				("reference", models.CharField(max_length=128, primary_key=True, serialize=False)),
				("order_id", models.CharField(blank=True, default="", max_length=64)),
				("business_id", models.CharField(blank=True, default="", max_length=64)),
				("business_slug", models.CharField(blank=True, default="", max_length=120)),
				("amount_kobo", models.BigIntegerField(blank=True, null=True)),
				("status", models.CharField(blank=True, default="", max_length=16)),
				("provider", models.CharField(blank=True, default="", max_length=32)),
				("hold_until_ms", models.BigIntegerField(default=0)),
				("released_at", models.DateTimeField(blank=True, null=True)),
				("created_at", models.DateTimeField(default=django.utils.timezone.now)),
				("updated_at", models.DateTimeField(blank=True, null=True)),
				("version", models.PositiveIntegerField(default=0)),
			],
		),
	]
