# backend/projects/models_signatures.py
# String FKs keep this module free of imports from projects.models.

from django.db import models
from django.db.models import Q


class SignerType(models.TextChoices):
    SERVICE_PROVIDER = "service_provider", "Service Provider"
    CLIENT = "client", "Client"


class LinkStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    CLIENT_SIGNED = "client_signed", "Client Signed"
    EXPIRED = "expired", "Expired"


class AgreementSignature(models.Model):
    agreement = models.ForeignKey(
        "projects.Agreement",
        on_delete=models.CASCADE,
        related_name="signatures",
    )
    signer_type = models.CharField(max_length=20, choices=SignerType.choices)
    client = models.ForeignKey(
        "projects.Client",
        null=True,
        blank=True,
        on_delete=models.CASCADE,
        related_name="agreement_signatures",
    )
    signer_name = models.CharField(max_length=255)
    signature_image_name = models.CharField(max_length=255)
    signature_image_path = models.CharField(max_length=512)
    ip_address = models.GenericIPAddressField(null=True, blank=True)
    timestamp = models.DateTimeField()
    document_id = models.CharField(max_length=128, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["agreement", "signer_type"], name="sig_agreement_signer_idx"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["agreement"],
                condition=Q(signer_type="service_provider"),
                name="uniq_provider_signature_per_agreement",
            ),
            models.UniqueConstraint(
                fields=["agreement", "client"],
                condition=Q(signer_type="client"),
                name="uniq_client_signature_per_agreement",
            ),
            models.CheckConstraint(
                condition=(
                    Q(signer_type="client", client__isnull=False)
                    | Q(signer_type="service_provider", client__isnull=True)
                ),
                name="signature_client_matches_signer_type",
            ),
        ]

    def __str__(self):
        return f"{self.agreement_id} / {self.signer_type} / {self.signer_name or '-'}"


class AgreementClientLink(models.Model):
    """
    Time-limited signing link for one client of one agreement.
    The token is rotated on every (re)send.
    """
    agreement = models.ForeignKey(
        "projects.Agreement",
        on_delete=models.CASCADE,
        related_name="client_links",
    )
    client = models.ForeignKey(
        "projects.Client",
        on_delete=models.CASCADE,
        related_name="agreement_links",
    )
    token = models.CharField(max_length=64, unique=True)
    expires_at = models.DateTimeField()
    status = models.CharField(
        max_length=20,
        choices=LinkStatus.choices,
        default=LinkStatus.PENDING,
        db_index=True,
    )
    signed_at = models.DateTimeField(null=True, blank=True)
    email_sent_at = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["created_at", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["agreement", "client"],
                name="uniq_link_per_agreement_client",
            ),
        ]

    def __str__(self):
        return f"{self.agreement_id} / client {self.client_id} / {self.status}"
