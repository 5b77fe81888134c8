# backend/projects/services/signature_links.py
"""
Client signing links: issuing/rotating them and validating incoming tokens.
"""
from __future__ import annotations

import logging
import secrets
from dataclasses import dataclass
from datetime import timedelta
from typing import Iterable, List, Optional

from django.conf import settings
from django.db import transaction
from django.utils import timezone
from rest_framework.exceptions import APIException, ValidationError

from projects.exceptions import InternalFailure
from projects.models import Agreement, AgreementStatus, Client
from projects.models_signatures import AgreementClientLink, LinkStatus
from projects.services import mailer
from projects.services.agreements import load_owned_agreement, aggregate_queryset
from projects.signing_state import derive_agreement_status, is_link_expired, next_link_status

logger = logging.getLogger(__name__)

SIGN_PATH = "/agreement/sign/"


def generate_signature_token() -> str:
    """64 hex chars from 32 random bytes."""
    return secrets.token_hex(32)


def build_sign_url(base_url: str, token: str) -> str:
    return f"{base_url.rstrip('/')}{SIGN_PATH}{token}"


def _link_expiry(now=None):
    now = now or timezone.now()
    return now + timedelta(days=settings.SIGNATURE_LINK_TTL_DAYS)


def refresh_agreement_status(agreement_id) -> str:
    """Recompute and store the agreement status from its links."""
    statuses = AgreementClientLink.objects.filter(agreement_id=agreement_id).values_list("status", flat=True)
    status = derive_agreement_status(statuses)
    Agreement.objects.filter(pk=agreement_id).update(status=status, updated_at=timezone.now())
    return status


# ---------------------------------------------------------------------------
# Issuer
# ---------------------------------------------------------------------------

def send_to_clients(agreement_id, owner, client_ids: Iterable[int], base_url: str) -> List[AgreementClientLink]:
    """
    Create or rotate one signing link per client and email each client its URL.

    Ids that do not resolve to the owner's clients are dropped. Emails go out only
    after the link writes commit, and one failed email never stops the rest.
    """
    try:
        issued: List[AgreementClientLink] = []
        with transaction.atomic():
            agreement = load_owned_agreement(agreement_id, owner, for_update=True)
            clients = list(Client.objects.filter(pk__in=list(client_ids), owner=owner).order_by("pk"))
            if not clients:
                raise ValidationError({"client_ids": ["No valid clients found."]})

            now = timezone.now()
            for client in clients:
                link, created = AgreementClientLink.objects.select_for_update().get_or_create(
                    agreement=agreement,
                    client=client,
                    defaults={
                        "token": generate_signature_token(),
                        "expires_at": _link_expiry(now),
                        "status": LinkStatus.PENDING,
                        "email_sent_at": now,
                    },
                )
                if not created:
                    # Rotation invalidates the previous token.
                    link.token = generate_signature_token()
                    link.expires_at = _link_expiry(now)
                    link.status = LinkStatus.PENDING
                    link.signed_at = None
                    link.email_sent_at = now
                    link.save(update_fields=["token", "expires_at", "status", "signed_at", "email_sent_at"])
                link.client = client
                issued.append(link)

            # Any (re)send reopens the agreement for signing.
            agreement.status = AgreementStatus.PENDING
            agreement.save(update_fields=["status", "updated_at"])

            project_name = agreement.project.name if agreement.project_id else ""
            invitations = [(link.client, build_sign_url(base_url, link.token)) for link in issued]
            transaction.on_commit(lambda: _send_invitations(owner, project_name, invitations))

        logger.info("Agreement %s sent to %d client(s)", agreement.pk, len(issued))
        return issued
    except APIException:
        raise
    except Exception:
        logger.exception("Error sending agreement %s to clients", agreement_id)
        raise InternalFailure("Failed to send agreement to clients.")


def _send_invitations(owner, project_name: str, invitations) -> None:
    for client, sign_url in invitations:
        if not client.email:
            logger.warning("Client %s has no email; signing link not sent", client.pk)
            continue
        try:
            mailer.send_signing_invitation(
                client=client, owner=owner, project_name=project_name, sign_url=sign_url
            )
        except Exception as e:
            logger.error("Failed to send signing invitation to client %s: %s", client.pk, e)


# ---------------------------------------------------------------------------
# Validator
# ---------------------------------------------------------------------------

@dataclass
class TokenValidation:
    valid: bool
    expired: bool = False
    agreement: Optional[Agreement] = None
    link: Optional[AgreementClientLink] = None


def validate_token(token: str, now=None) -> TokenValidation:
    """
    Resolve a signing token. Unknown tokens reveal nothing; expired links are moved
    to ``expired`` (lazily, only when the status actually changes).
    """
    if not token:
        return TokenValidation(valid=False)
    try:
        link = AgreementClientLink.objects.select_related("client").filter(token=token).first()
        if link is None:
            return TokenValidation(valid=False)

        now = now or timezone.now()
        if is_link_expired(link.expires_at, now):
            new_status = next_link_status(link.status, link.expires_at, now)
            if new_status != link.status:
                with transaction.atomic():
                    moved = AgreementClientLink.objects.filter(pk=link.pk, status=link.status).update(status=new_status)
                    if moved:
                        refresh_agreement_status(link.agreement_id)
                logger.info("Signing link %s expired", link.pk)
            return TokenValidation(valid=False, expired=True)

        agreement = aggregate_queryset().filter(pk=link.agreement_id).first()
        if agreement is None:
            return TokenValidation(valid=False)

        link.client_name = link.client.full_name
        link.client_organization = link.client.organization or None
        return TokenValidation(valid=True, expired=False, agreement=agreement, link=link)
    except Exception:
        logger.exception("Error validating signing token")
        return TokenValidation(valid=False)


# ---------------------------------------------------------------------------
# Sweep
# ---------------------------------------------------------------------------

def expire_stale_links(now=None) -> int:
    """Move every link past its expiry, signed or not, to ``expired``. Returns the count moved."""
    now = now or timezone.now()
    stale = AgreementClientLink.objects.exclude(status=LinkStatus.EXPIRED).filter(expires_at__lt=now)
    moved = 0
    touched = set()
    with transaction.atomic():
        for link in stale.only("pk", "agreement_id", "status", "expires_at").iterator():
            new_status = next_link_status(link.status, link.expires_at, now)
            if new_status == link.status:
                continue
            if AgreementClientLink.objects.filter(pk=link.pk, status=link.status).update(status=new_status):
                moved += 1
                touched.add(link.agreement_id)
        for agreement_id in sorted(touched):
            refresh_agreement_status(agreement_id)
    return moved
