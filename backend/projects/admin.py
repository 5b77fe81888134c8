# backend/projects/admin.py
from __future__ import annotations

from django.contrib import admin

from .models import (
    Agreement,
    AgreementDeliverable,
    AgreementPaymentTerm,
    Client,
    Project,
)
from .models_signatures import AgreementClientLink, AgreementSignature


@admin.register(Client)
class ClientAdmin(admin.ModelAdmin):
    list_display = ("id", "full_name", "email", "organization", "owner", "created_at")
    search_fields = ("full_name", "email", "organization", "owner__email")
    ordering = ("full_name",)


@admin.register(Project)
class ProjectAdmin(admin.ModelAdmin):
    list_display = ("id", "name", "owner", "created_at")
    search_fields = ("name", "owner__email")


class DeliverableInline(admin.TabularInline):
    model = AgreementDeliverable
    extra = 0
    fields = ("order", "description")
    ordering = ("order",)


class PaymentTermInline(admin.StackedInline):
    model = AgreementPaymentTerm
    extra = 0
    can_delete = False


class SignatureInline(admin.TabularInline):
    model = AgreementSignature
    extra = 0
    can_delete = False
    fields = ("signer_type", "client", "signer_name", "timestamp", "document_id", "ip_address")
    readonly_fields = fields


class ClientLinkInline(admin.TabularInline):
    model = AgreementClientLink
    extra = 0
    can_delete = False
    # Tokens are credentials; keep them out of the admin.
    fields = ("client", "status", "expires_at", "signed_at", "email_sent_at")
    readonly_fields = fields


@admin.register(Agreement)
class AgreementAdmin(admin.ModelAdmin):
    list_display = (
        "id",
        "project",
        "owner",
        "service_provider_name",
        "service_type",
        "status",
        "agreement_date",
        "created_at",
    )
    search_fields = ("id", "project__name", "owner__email", "service_provider_name")
    list_filter = ("status",)
    # Status is derived from signing links, never edited by hand.
    readonly_fields = ("status", "created_at", "updated_at")
    inlines = (DeliverableInline, PaymentTermInline, SignatureInline, ClientLinkInline)
