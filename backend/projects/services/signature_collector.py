# backend/projects/services/signature_collector.py
"""
Client signatures collected through a signing link.

The signature row, the link status and the derived agreement status change in one
transaction. Once it commits, the signed PDF is rendered, stored and emailed to both
parties; that part is best-effort and never undoes the signature.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from django.conf import settings
from django.db import IntegrityError, transaction
from django.utils import timezone
from rest_framework.exceptions import APIException

from projects.exceptions import InternalFailure, InvalidToken, LinkExpired, SignatureConflict
from projects.models import Agreement
from projects.models_signatures import AgreementClientLink, AgreementSignature, LinkStatus, SignerType
from projects.services import mailer
from projects.services.agreements import SIGNATURE_CATEGORY, SIGNATURE_CONTENT_TYPE, SignaturePayload, epoch_ms
from projects.services.pdf import render_agreement_pdf, signed_pdf_filename
from projects.services.signature_links import TokenValidation, refresh_agreement_status, validate_token
from projects.services.storage import AssetSaga, ObjectStore
from projects.signing_state import is_link_expired

logger = logging.getLogger(__name__)

SIGNED_PDF_CATEGORY = "signatures"


@dataclass(frozen=True)
class SignatureResult:
    pdf_url: Optional[str] = None


def _require_valid(token: str) -> TokenValidation:
    validation = validate_token(token)
    if validation.expired:
        raise LinkExpired()
    if not validation.valid or validation.link is None or validation.agreement is None:
        raise InvalidToken()
    return validation


def submit_signature(token: str, payload: SignaturePayload, ip_address: Optional[str] = None) -> SignatureResult:
    """First signature through a link. A link that is already signed is a conflict."""
    return _record_signature(token, payload, ip_address, allow_resign=False)


def update_signature(token: str, payload: SignaturePayload, ip_address: Optional[str] = None) -> SignatureResult:
    """Replace the client's signature while the link is still unexpired."""
    return _record_signature(token, payload, ip_address, allow_resign=True)


def _record_signature(token, payload: SignaturePayload, ip_address, allow_resign: bool) -> SignatureResult:
    try:
        validation = _require_valid(token)
        agreement = validation.agreement

        with AssetSaga() as saga:
            with transaction.atomic():
                link = (
                    AgreementClientLink.objects
                    .select_for_update()
                    .select_related("client")
                    .get(pk=validation.link.pk)
                )
                now = timezone.now()
                # Re-checked under the row lock: a resend may have rotated the token.
                if link.token != token:
                    raise InvalidToken()
                if is_link_expired(link.expires_at, now):
                    raise LinkExpired()
                if link.status == LinkStatus.CLIENT_SIGNED and not allow_resign:
                    raise SignatureConflict("Agreement has already been signed by this client.")

                # Replaces a signature given before a resend, or the one being updated.
                previous = AgreementSignature.objects.filter(
                    agreement_id=link.agreement_id,
                    client_id=link.client_id,
                    signer_type=SignerType.CLIENT,
                ).first()
                if previous is not None:
                    saga.delete_after_commit(previous.signature_image_path)
                    previous.delete()

                stamp = epoch_ms()
                filename = f"signature-client-{link.client_id}-{stamp}.png"
                path = saga.upload(payload.image, filename, SIGNATURE_CATEGORY, agreement.project_id, SIGNATURE_CONTENT_TYPE)
                AgreementSignature.objects.create(
                    agreement_id=link.agreement_id,
                    signer_type=SignerType.CLIENT,
                    client_id=link.client_id,
                    signer_name=payload.signer_name,
                    signature_image_name=filename,
                    signature_image_path=path,
                    ip_address=ip_address or None,
                    timestamp=now,
                    document_id=f"AGREEMENT-{link.agreement_id}-CLIENT-{link.client_id}-{stamp}",
                )

                link.status = LinkStatus.CLIENT_SIGNED
                link.signed_at = now
                link.save(update_fields=["status", "signed_at"])

                status = refresh_agreement_status(link.agreement_id)

        logger.info(
            "Client %s signed agreement %s (agreement now %s)", link.client_id, link.agreement_id, status
        )
    except APIException:
        raise
    except IntegrityError:
        raise SignatureConflict("Agreement has already been signed by this client.")
    except Exception:
        logger.exception("Error recording client signature")
        raise InternalFailure("Failed to submit signature.")

    pdf_url = finalize_signed_agreement(agreement, link, stamp)
    return SignatureResult(pdf_url=pdf_url)


def finalize_signed_agreement(agreement: Agreement, link: AgreementClientLink, stamp: int) -> Optional[str]:
    """
    Render, store and email the signed PDF. Returns a time-limited download URL,
    or None when the PDF could not be produced.
    """
    owner = agreement.owner
    store = ObjectStore()
    try:
        pdf_bytes = render_agreement_pdf(agreement.pk, owner, client_id=link.client_id, store=store)
        filename = signed_pdf_filename(agreement.pk, stamp)
        path = store.upload(pdf_bytes, filename, SIGNED_PDF_CATEGORY, agreement.project_id, "application/pdf")
        pdf_url = store.issue_download_url(path, settings.SIGNED_PDF_URL_MINUTES)
    except Exception:
        logger.exception("Error generating signed PDF for agreement %s", agreement.pk)
        return None

    attachment = mailer.Attachment(filename=filename, content=pdf_bytes)
    project_name = agreement.project.name if agreement.project_id else ""
    client = link.client

    if client.email:
        try:
            mailer.send_signed_copy_to_client(
                client=client, owner=owner, project_name=project_name, pdf=attachment
            )
        except Exception as e:
            logger.error("Failed to send signed agreement %s to client %s: %s", agreement.pk, client.pk, e)

    if owner.email:
        try:
            mailer.send_signed_copy_to_provider(
                client=client, owner=owner, project_name=project_name, pdf=attachment
            )
        except Exception as e:
            logger.error("Failed to send signed agreement %s to owner %s: %s", agreement.pk, owner.pk, e)

    return pdf_url
