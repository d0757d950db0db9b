from django.contrib import admin

from .models import Order, PaymentTransaction, Wallet


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
	list_display = ("id", "business_id", "amount_kobo", "escrow_status", "order_status", "hold_until_ms")
	list_filter = ("escrow_status",)
	search_fields = ("id", "business_id", "payment_reference")
	# Balances only move through the ledger transaction
	readonly_fields = ("amount_kobo", "escrow_status", "version")


@admin.register(Wallet)
class WalletAdmin(admin.ModelAdmin):
	list_display = ("business_id", "pending_balance_kobo", "available_balance_kobo", "total_earned_kobo")
	readonly_fields = ("pending_balance_kobo", "available_balance_kobo", "total_earned_kobo", "version")


@admin.register(PaymentTransaction)
class PaymentTransactionAdmin(admin.ModelAdmin):
	list_display = ("reference", "order_id", "business_id", "amount_kobo", "status")
	search_fields = ("reference", "order_id")
