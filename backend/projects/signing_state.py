# backend/projects/signing_state.py
"""
Pure status rules for signing links and agreements.

Nothing here touches the database. The token validator, the signature collector and
the hourly expiry sweep all call these functions and persist the result themselves.
"""
from __future__ import annotations

from datetime import datetime
from typing import Iterable

from .models_signatures import LinkStatus


def is_link_expired(expires_at: datetime, now: datetime) -> bool:
    return now > expires_at


def next_link_status(status: str, expires_at: datetime, now: datetime) -> str:
    """
    Lazy expiry: any link past its expiry becomes expired, signed or not.
    Links still inside their window keep their status.
    """
    if status != LinkStatus.EXPIRED and is_link_expired(expires_at, now):
        return LinkStatus.EXPIRED
    return status


def derive_agreement_status(link_statuses: Iterable[str]) -> str:
    """
    draft when no link was ever issued, completed once no link is still pending,
    pending otherwise.
    """
    from .models import AgreementStatus

    statuses = list(link_statuses)
    if not statuses:
        return AgreementStatus.DRAFT
    if any(s == LinkStatus.PENDING for s in statuses):
        return AgreementStatus.PENDING
    return AgreementStatus.COMPLETED
