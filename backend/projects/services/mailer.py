# backend/projects/services/mailer.py
"""
Agreement emails: signing invitations and signed-PDF copies.

Bodies come from ``projects/emails/*.txt|.html`` templates. Callers decide whether
a failure matters; these helpers let SMTP errors propagate.
"""
import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template.loader import render_to_string
from django.utils import timezone

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Attachment:
    filename: str
    content: bytes
    mimetype: str = "application/pdf"


def send_mail(
    to: Sequence[str],
    subject: str,
    html: str,
    text: str,
    attachments: Optional[Iterable[Attachment]] = None,
) -> None:
    msg = EmailMultiAlternatives(
        subject=subject,
        body=text,
        from_email=settings.DEFAULT_FROM_EMAIL,
        to=list(to),
    )
    msg.attach_alternative(html, "text/html")
    for att in attachments or ():
        msg.attach(att.filename, att.content, att.mimetype)
    msg.send(fail_silently=False)


def _render(template_prefix: str, context: dict):
    text = render_to_string(f"projects/emails/{template_prefix}.txt", context)
    html = render_to_string(f"projects/emails/{template_prefix}.html", context)
    return text, html


def _first_name(full_name: str) -> str:
    parts = (full_name or "").strip().split(" ")
    return parts[0] or full_name


def _owner_context(owner) -> dict:
    return {
        "owner_name": owner.get_full_name() or owner.email,
        "owner_phone": getattr(owner, "phone_number", "") or "",
        "owner_email": owner.email,
        "brand_name": settings.AGREEMENT_BRAND_NAME,
    }


def send_signing_invitation(*, client, owner, project_name: str, sign_url: str) -> None:
    """Email one client the link to review and sign the agreement."""
    context = {
        **_owner_context(owner),
        "client_first_name": _first_name(client.full_name),
        "project_name": project_name,
        "sign_url": sign_url,
        "link_ttl_days": settings.SIGNATURE_LINK_TTL_DAYS,
    }
    text, html = _render("agreement_invitation", context)
    subject = "Service Agreement"
    if project_name:
        subject += f" - {project_name}"
    subject += " - Action Required"
    send_mail([client.email], subject, html, text)
    logger.info("Signing invitation sent to client %s", client.pk)


def send_signed_copy_to_client(*, client, owner, project_name: str, pdf: Attachment) -> None:
    context = {
        **_owner_context(owner),
        "client_name": client.full_name,
        "project_name": project_name,
    }
    text, html = _render("signed_agreement_client", context)
    subject = f"Signed Agreement - {project_name or 'Service Agreement'}"
    send_mail([client.email], subject, html, text, attachments=[pdf])
    logger.info("Signed agreement sent to client %s", client.pk)


def send_signed_copy_to_provider(*, client, owner, project_name: str, pdf: Attachment) -> None:
    client_name = getattr(client, "full_name", "") or "Client"
    context = {
        **_owner_context(owner),
        "client_name": client_name,
        "project_name": project_name,
        "signed_on": timezone.localdate(),
    }
    text, html = _render("signed_agreement_provider", context)
    subject = f"Agreement Signed - {client_name} - {project_name or 'Service Agreement'}"
    send_mail([owner.email], subject, html, text, attachments=[pdf])
    logger.info("Signed agreement sent to owner %s", owner.pk)
