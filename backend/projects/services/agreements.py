# backend/projects/services/agreements.py
"""
Agreement aggregate: the agreement row plus its deliverables, payment term,
payment milestones and the service provider's signature.

The aggregate is written as one unit. The provider's signature image goes to the
object store inside the same AssetSaga so a failed insert never leaves an orphan.
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field, fields
from datetime import date, timedelta
from decimal import Decimal
from typing import Any, ClassVar, Dict, List, Optional, Tuple

from django.conf import settings
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import APIException

from projects.exceptions import AgreementNotFound, EditWindowClosed, InternalFailure, ProjectNotFound
from projects.models import (
    Agreement,
    AgreementDeliverable,
    AgreementPaymentMilestone,
    AgreementPaymentTerm,
    PaymentStructure,
    Project,
)
from projects.models_signatures import AgreementSignature, SignerType
from projects.services.storage import AssetSaga

logger = logging.getLogger(__name__)

SIGNATURE_CATEGORY = "signatures"
SIGNATURE_CONTENT_TYPE = "image/png"


def epoch_ms() -> int:
    return int(time.time() * 1000)


# ---------------------------------------------------------------------------
# Input shapes
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class SignaturePayload:
    signer_name: str
    image: bytes


@dataclass(frozen=True)
class MilestoneData:
    description: str
    amount: Decimal
    date: Optional[date] = None


@dataclass
class AgreementCreateData:
    project_id: int
    service_provider_name: str
    agreement_date: date
    service_type: str
    payment_structure: str
    provider_signature: SignaturePayload
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    duration: Optional[int] = None
    duration_unit: Optional[str] = None
    number_of_revisions: int = 0
    jurisdiction: Optional[str] = None
    deliverables: List[str] = field(default_factory=list)
    payment_method: Optional[str] = None
    payment_milestones: List[MilestoneData] = field(default_factory=list)


class _Unset:
    """Marks a patch field the caller did not send (distinct from an explicit None)."""

    def __repr__(self):
        return "UNSET"

    def __bool__(self):
        return False


UNSET: Any = _Unset()


@dataclass
class AgreementPatch:
    service_provider_name: Any = UNSET
    agreement_date: Any = UNSET
    service_type: Any = UNSET
    start_date: Any = UNSET
    end_date: Any = UNSET
    duration: Any = UNSET
    duration_unit: Any = UNSET
    number_of_revisions: Any = UNSET
    jurisdiction: Any = UNSET
    deliverables: Any = UNSET
    payment_structure: Any = UNSET
    payment_method: Any = UNSET
    payment_milestones: Any = UNSET

    # Columns on the Agreement row itself.
    SCALAR_FIELDS: ClassVar[Tuple[str, ...]] = (
        "service_provider_name",
        "agreement_date",
        "service_type",
        "start_date",
        "end_date",
        "duration",
        "duration_unit",
        "number_of_revisions",
        "jurisdiction",
    )

    @classmethod
    def from_mapping(cls, data: Dict[str, Any]) -> "AgreementPatch":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})

    def is_set(self, name: str) -> bool:
        return getattr(self, name) is not UNSET

    def scalar_changes(self) -> Dict[str, Any]:
        return {name: getattr(self, name) for name in self.SCALAR_FIELDS if self.is_set(name)}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def aggregate_queryset():
    return (
        Agreement.objects
        .select_related("project", "owner", "payment_term")
        .prefetch_related("deliverables", "payment_term__milestones", "signatures")
    )


def load_owned_agreement(agreement_id, owner, for_update: bool = False) -> Agreement:
    qs = Agreement.objects.filter(pk=agreement_id, owner=owner)
    if for_update:
        qs = qs.select_for_update()
    agreement = qs.first()
    if agreement is None:
        raise AgreementNotFound()
    return agreement


def is_editable(agreement: Agreement, now=None) -> bool:
    now = now or timezone.now()
    window = timedelta(hours=settings.AGREEMENT_EDIT_WINDOW_HOURS)
    return now - agreement.created_at <= window


def _insert_deliverables(agreement: Agreement, descriptions: List[str]) -> None:
    AgreementDeliverable.objects.bulk_create([
        AgreementDeliverable(agreement=agreement, description=text, order=i)
        for i, text in enumerate(descriptions or [])
    ])


def _insert_milestones(term: AgreementPaymentTerm, milestones: List[MilestoneData]) -> None:
    AgreementPaymentMilestone.objects.bulk_create([
        AgreementPaymentMilestone(
            payment_term=term,
            description=m.description,
            amount=m.amount,
            order=i,
            milestone_date=m.date,
        )
        for i, m in enumerate(milestones or [])
    ])


def _insert_payment_term(agreement: Agreement, structure: str, method, milestones) -> AgreementPaymentTerm:
    term = AgreementPaymentTerm.objects.create(
        agreement=agreement,
        payment_structure=structure,
        payment_method=method or None,
    )
    # Milestones are only meaningful for milestone-based payment.
    if structure == PaymentStructure.MILESTONE_BASED:
        _insert_milestones(term, milestones)
    return term


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

def create_agreement(owner, data: AgreementCreateData) -> Agreement:
    try:
        project = Project.objects.filter(pk=data.project_id, owner=owner).first()
        if project is None:
            raise ProjectNotFound()

        with AssetSaga() as saga:
            with transaction.atomic():
                agreement = Agreement.objects.create(
                    owner=owner,
                    project=project,
                    service_provider_name=data.service_provider_name,
                    agreement_date=data.agreement_date,
                    service_type=data.service_type,
                    start_date=data.start_date,
                    end_date=data.end_date,
                    duration=data.duration,
                    duration_unit=data.duration_unit,
                    number_of_revisions=data.number_of_revisions or 0,
                    jurisdiction=data.jurisdiction,
                )
                _insert_deliverables(agreement, data.deliverables)
                _insert_payment_term(agreement, data.payment_structure, data.payment_method, data.payment_milestones)

                stamp = epoch_ms()
                filename = f"signature-{stamp}.png"
                path = saga.upload(
                    data.provider_signature.image, filename, SIGNATURE_CATEGORY, project.pk, SIGNATURE_CONTENT_TYPE
                )
                AgreementSignature.objects.create(
                    agreement=agreement,
                    signer_type=SignerType.SERVICE_PROVIDER,
                    signer_name=data.provider_signature.signer_name,
                    signature_image_name=filename,
                    signature_image_path=path,
                    timestamp=timezone.now(),
                    document_id=f"AGREEMENT-{agreement.pk}-{stamp}",
                )

        logger.info("Agreement %s created for project %s", agreement.pk, project.pk)
        return get_agreement(agreement.pk, owner)
    except APIException:
        raise
    except Exception:
        logger.exception("Error creating agreement for project %s", data.project_id)
        raise InternalFailure("Failed to create agreement.")


def get_agreement(agreement_id, owner) -> Agreement:
    agreement = aggregate_queryset().filter(pk=agreement_id, owner=owner).first()
    if agreement is None:
        raise AgreementNotFound()
    return agreement


def get_agreement_by_project(project_id, owner) -> Agreement:
    agreement = aggregate_queryset().filter(project_id=project_id, owner=owner).first()
    if agreement is None:
        raise AgreementNotFound()
    return agreement


def update_agreement(agreement_id, owner, patch: AgreementPatch) -> Agreement:
    try:
        with transaction.atomic():
            agreement = load_owned_agreement(agreement_id, owner, for_update=True)
            if not is_editable(agreement):
                raise EditWindowClosed(
                    f"Agreement can only be edited within {settings.AGREEMENT_EDIT_WINDOW_HOURS} hours of creation."
                )

            changes = patch.scalar_changes()
            if "number_of_revisions" in changes and changes["number_of_revisions"] is None:
                changes["number_of_revisions"] = 0
            if changes:
                for name, value in changes.items():
                    setattr(agreement, name, value)
                agreement.save(update_fields=[*changes.keys(), "updated_at"])
            else:
                agreement.save(update_fields=["updated_at"])

            if patch.is_set("deliverables"):
                agreement.deliverables.all().delete()
                _insert_deliverables(agreement, patch.deliverables)

            if patch.is_set("payment_structure"):
                # Milestones cascade with the term.
                AgreementPaymentTerm.objects.filter(agreement=agreement).delete()
                _insert_payment_term(
                    agreement,
                    patch.payment_structure,
                    None if patch.payment_method is UNSET else patch.payment_method,
                    [] if patch.payment_milestones is UNSET else patch.payment_milestones,
                )
            else:
                _patch_existing_term(agreement, patch)

        logger.info("Agreement %s updated", agreement.pk)
        return get_agreement(agreement.pk, owner)
    except APIException:
        raise
    except Exception:
        logger.exception("Error updating agreement %s", agreement_id)
        raise InternalFailure("Failed to update agreement.")


def _patch_existing_term(agreement: Agreement, patch: AgreementPatch) -> None:
    """Method / milestones sent without a new payment structure apply to the current term."""
    if not (patch.is_set("payment_method") or patch.is_set("payment_milestones")):
        return
    term = AgreementPaymentTerm.objects.filter(agreement=agreement).first()
    if term is None:
        return
    if patch.is_set("payment_method"):
        term.payment_method = patch.payment_method or None
        term.save(update_fields=["payment_method"])
    if patch.is_set("payment_milestones") and term.payment_structure == PaymentStructure.MILESTONE_BASED:
        term.milestones.all().delete()
        _insert_milestones(term, patch.payment_milestones)


def delete_agreement(agreement_id, owner) -> None:
    try:
        saga = AssetSaga()
        with transaction.atomic():
            agreement = load_owned_agreement(agreement_id, owner, for_update=True)
            paths = list(
                agreement.signatures.exclude(signature_image_path="").values_list("signature_image_path", flat=True)
            )
            agreement.delete()
            # Each asset is removed independently once the rows are gone.
            for path in paths:
                saga.delete_after_commit(path)
        logger.info("Agreement %s deleted (%d assets queued for removal)", agreement_id, len(paths))
    except APIException:
        raise
    except Exception:
        logger.exception("Error deleting agreement %s", agreement_id)
        raise InternalFailure("Failed to delete agreement.")
