# backend/projects/models.py
from django.conf import settings
from django.db import models

from .models_signatures import (  # noqa: F401  (registered with the app)
    AgreementClientLink,
    AgreementSignature,
    LinkStatus,
    SignerType,
)


# --- TextChoices for status fields ---
class AgreementStatus(models.TextChoices):
    DRAFT = 'draft', 'Draft'
    PENDING = 'pending', 'Pending'
    COMPLETED = 'completed', 'Completed'


class DurationUnit(models.TextChoices):
    DAYS = 'days', 'Days'
    WEEKS = 'weeks', 'Weeks'
    MONTHS = 'months', 'Months'


class PaymentStructure(models.TextChoices):
    FIFTY_FIFTY = '50-50', '50% Upfront & 50% Upon Completion'
    FULL_UPFRONT = '100-upfront', '100% Upfront'
    FULL_COMPLETION = '100-completion', '100% Upon Completion'
    MILESTONE_BASED = 'milestone-based', 'Milestone-based'


class Client(models.Model):
    """A person or organisation in the owner's client directory."""
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='clients',
    )
    full_name = models.CharField(max_length=255)
    email = models.EmailField(blank=True)
    organization = models.CharField(max_length=255, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['full_name']

    def __str__(self):
        return self.full_name


class Project(models.Model):
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='projects',
    )
    name = models.CharField(max_length=255)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return self.name


class Agreement(models.Model):
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name='agreements',
    )
    project = models.ForeignKey(
        Project,
        on_delete=models.CASCADE,
        related_name='agreements',
    )

    service_provider_name = models.CharField(max_length=255)
    agreement_date = models.DateField()
    service_type = models.CharField(max_length=255)

    start_date = models.DateField(null=True, blank=True)
    end_date = models.DateField(null=True, blank=True)
    duration = models.PositiveIntegerField(null=True, blank=True)
    duration_unit = models.CharField(max_length=10, choices=DurationUnit.choices, null=True, blank=True)

    number_of_revisions = models.PositiveIntegerField(default=0)
    jurisdiction = models.CharField(max_length=255, null=True, blank=True)

    # Derived from the signing links; never written by API callers.
    status = models.CharField(
        max_length=20,
        choices=AgreementStatus.choices,
        default=AgreementStatus.DRAFT,
        db_index=True,
    )

    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ['-created_at']

    def __str__(self):
        return f"Agreement #{self.pk} – {self.service_type}"


class AgreementDeliverable(models.Model):
    agreement = models.ForeignKey(
        Agreement,
        on_delete=models.CASCADE,
        related_name='deliverables',
    )
    description = models.TextField()
    order = models.PositiveIntegerField(default=0)

    class Meta:
        ordering = ['order', 'id']

    def __str__(self):
        return f"{self.order}: {self.description[:40]}"


class AgreementPaymentTerm(models.Model):
    agreement = models.OneToOneField(
        Agreement,
        on_delete=models.CASCADE,
        related_name='payment_term',
    )
    payment_structure = models.CharField(max_length=20, choices=PaymentStructure.choices)
    payment_method = models.CharField(max_length=255, null=True, blank=True)

    def __str__(self):
        return f"{self.agreement_id} / {self.payment_structure}"


class AgreementPaymentMilestone(models.Model):
    payment_term = models.ForeignKey(
        AgreementPaymentTerm,
        on_delete=models.CASCADE,
        related_name='milestones',
    )
    description = models.TextField()
    amount = models.DecimalField(max_digits=15, decimal_places=2)
    order = models.PositiveIntegerField(default=0)
    milestone_date = models.DateField(null=True, blank=True)

    class Meta:
        ordering = ['order', 'id']

    def __str__(self):
        return f"{self.description[:40]} ({self.amount})"
