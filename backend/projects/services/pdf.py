# backend/projects/services/pdf.py
"""
Signed service agreement PDF.

Layout is drawn block by block on a reportlab canvas with a running vertical cursor:
each block is measured at the printable width first, and a new page is started when
it would not fit above the footer.
"""
from __future__ import annotations

import io
import logging
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Optional
from xml.sax.saxutils import escape

from django.conf import settings
from django.utils.timezone import localtime
from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.utils import ImageReader
from reportlab.pdfgen import canvas as pdf_canvas
from reportlab.platypus import Paragraph

from projects.models import Client, PaymentStructure
from projects.models_signatures import SignerType
from projects.services import legal_clauses as clauses
from projects.services.agreements import get_agreement
from projects.services.storage import ObjectStore

logger = logging.getLogger(__name__)

MARGIN = 50
FOOTER_HEIGHT = 30
SIGNATURE_MAX_WIDTH = 150
SIGNATURE_MAX_HEIGHT = 100
BLANK_LINE = "________"


# ----------------------------- small helpers -----------------------------

def _fmt_date_long(v: object) -> str:
    """'March 5, 2025'. Accepts date/datetime/ISO string."""
    if not v:
        return ""
    if isinstance(v, datetime):
        d = localtime(v).date() if v.tzinfo else v.date()
    elif isinstance(v, date):
        d = v
    else:
        d = datetime.fromisoformat(str(v)).date()
    return f"{d.strftime('%B')} {d.day}, {d.year}"


def _group_indian(digits: str) -> str:
    """1234567 -> 12,34,567 (last three digits, then pairs)."""
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    pairs = []
    while len(head) > 2:
        pairs.insert(0, head[-2:])
        head = head[:-2]
    if head:
        pairs.insert(0, head)
    return ",".join(pairs + [tail])


def format_currency(amount, code: Optional[str] = None) -> str:
    code = code or settings.AGREEMENT_CURRENCY_CODE
    try:
        value = Decimal(str(amount or 0)).quantize(Decimal("0.01"))
    except (InvalidOperation, ValueError):
        value = Decimal("0.00")
    sign = "-" if value < 0 else ""
    whole, _, cents = f"{abs(value):.2f}".partition(".")
    return f"{sign}{code} {_group_indian(whole)}.{cents}"


def duration_text(duration: Optional[int], unit: Optional[str]) -> str:
    label = {"weeks": "Weeks", "months": "Months"}.get(unit or "", "Days")
    return f"{duration} {label}"


def _styles():
    ss = getSampleStyleSheet()
    body = ParagraphStyle("Body", parent=ss["BodyText"], fontName="Helvetica", fontSize=12, leading=15)
    return {
        "title": ParagraphStyle("Title", parent=body, fontName="Helvetica-Bold", fontSize=18, leading=22,
                                alignment=TA_CENTER),
        "h2": ParagraphStyle("H2", parent=body, fontName="Helvetica-Bold", fontSize=14, leading=18),
        "body": body,
        "bold": ParagraphStyle("Bold", parent=body, fontName="Helvetica-Bold"),
        "note": ParagraphStyle("Note", parent=body, fontSize=11, leading=14, textColor=colors.HexColor("#374151")),
        "small": ParagraphStyle("Small", parent=body, fontSize=11, leading=14),
    }


# --------------------------- page writer ---------------------------

class PageWriter:
    """Running-cursor layout on a reportlab canvas."""

    def __init__(self, buf, title: str = ""):
        self.canvas = pdf_canvas.Canvas(buf, pagesize=A4)
        if title:
            self.canvas.setTitle(title)
        self.page_width, self.page_height = A4
        self.width = self.page_width - 2 * MARGIN
        self.bottom = MARGIN + FOOTER_HEIGHT
        self.y = self.page_height - MARGIN

    def _footer(self):
        c = self.canvas
        c.saveState()
        c.setStrokeColor(colors.HexColor("#E5E7EB"))
        c.setLineWidth(0.6)
        c.line(MARGIN, MARGIN + 14, self.page_width - MARGIN, MARGIN + 14)
        c.setFont("Helvetica", 9)
        c.setFillColor(colors.HexColor("#475569"))
        c.drawString(MARGIN, MARGIN, settings.AGREEMENT_BRAND_NAME)
        c.drawRightString(self.page_width - MARGIN, MARGIN, f"Page {c.getPageNumber()}")
        c.restoreState()

    def new_page(self):
        self._footer()
        self.canvas.showPage()
        self.y = self.page_height - MARGIN

    def ensure(self, height: float):
        if self.y - height < self.bottom:
            self.new_page()

    def space(self, height: float):
        self.y -= height

    def paragraph(self, text: str, style, space_after: float = 10):
        para = Paragraph(escape(text), style)
        _, h = para.wrap(self.width, self.page_height)
        self.ensure(h)
        para.drawOn(self.canvas, MARGIN, self.y - h)
        self.y -= h + space_after

    def bullet(self, text: str, style):
        self.paragraph(f"• {text}", style)

    def rule(self):
        self.space(10)
        self.ensure(20)
        self.canvas.setStrokeColor(colors.black)
        self.canvas.setLineWidth(1)
        self.canvas.line(MARGIN, self.y, self.page_width - MARGIN, self.y)
        self.space(20)

    def image(self, reader: ImageReader, width: float, height: float, space_after: float = 10):
        self.ensure(height)
        self.canvas.drawImage(reader, MARGIN, self.y - height, width=width, height=height, mask="auto")
        self.y -= height + space_after

    def finish(self):
        self._footer()
        self.canvas.save()


# ------------------------------------- sections -------------------------------------

def _signature_section(w: PageWriter, st, heading: str, signature, store: ObjectStore):
    w.paragraph(heading, st["bold"])
    if signature is None:
        w.paragraph(BLANK_LINE, st["body"])
        w.paragraph(f"Date: {BLANK_LINE}", st["body"])
        return

    try:
        stored = store.download(signature.signature_image_path)
        reader = ImageReader(io.BytesIO(stored.content))
        iw, ih = reader.getSize()
        scale = min(SIGNATURE_MAX_WIDTH / float(iw), SIGNATURE_MAX_HEIGHT / float(ih))
        w.image(reader, iw * scale, ih * scale)
    except Exception:
        # Text lines below still identify the signer.
        logger.warning("Could not embed signature image %s", signature.signature_image_path, exc_info=True)

    w.paragraph(f"Signed by: {signature.signer_name}", st["small"])
    w.paragraph(f"Date: {_fmt_date_long(signature.timestamp)}", st["small"])


def _signing_client(agreement, client_id=None):
    """The client whose signature (or name) goes on this copy."""
    client_sigs = [s for s in agreement.signatures.all() if s.signer_type == SignerType.CLIENT]
    if client_id is not None:
        sig = next((s for s in client_sigs if s.client_id == client_id), None)
        client = Client.objects.filter(pk=client_id).first()
        return client, sig
    sig = client_sigs[0] if client_sigs else None
    client = Client.objects.filter(pk=sig.client_id).first() if sig else None
    return client, sig


def build_agreement_pdf_bytes(agreement, client=None, client_signature=None, store: Optional[ObjectStore] = None) -> bytes:
    store = store or ObjectStore()
    st = _styles()
    buf = io.BytesIO()
    w = PageWriter(buf, title=f"Service Agreement #{agreement.pk}")

    w.paragraph("SERVICE AGREEMENT", st["title"], space_after=20)
    w.paragraph(
        clauses.introduction_text(
            agreement.service_provider_name,
            client.full_name if client else None,
            _fmt_date_long(agreement.agreement_date),
        ),
        st["body"],
    )
    w.space(10)
    w.rule()

    titles = clauses.section_titles()

    # 1. Scope of Work
    w.paragraph(titles[0], st["h2"])
    w.paragraph(clauses.SCOPE_INTRO, st["body"])
    w.paragraph("Service Type:", st["bold"])
    w.paragraph(agreement.service_type, st["body"])
    deliverables = list(agreement.deliverables.all())
    if deliverables:
        w.paragraph("Deliverables Include:", st["bold"])
        for d in deliverables:
            w.bullet(d.description, st["body"])
    w.paragraph(clauses.SCOPE_NOTE, st["note"])
    w.rule()

    # 2. Timeline & Milestones
    w.paragraph(titles[1], st["h2"])
    if agreement.start_date:
        w.bullet(f"Project Start Date: {_fmt_date_long(agreement.start_date)}", st["body"])
    if agreement.end_date:
        w.bullet(f"Estimated Completion Date: {_fmt_date_long(agreement.end_date)}", st["body"])
    if agreement.duration:
        w.bullet(f"Total Duration: {duration_text(agreement.duration, agreement.duration_unit)}", st["body"])
    w.paragraph(clauses.TIMELINE_NOTE, st["note"])
    w.rule()

    # 3. Payment Terms
    term = getattr(agreement, "payment_term", None)
    w.paragraph(titles[2], st["h2"])
    w.paragraph(clauses.PAYMENT_INTRO, st["body"])
    if term is not None:
        w.paragraph(clauses.payment_structure_text(term.payment_structure), st["bold"])
        if term.payment_structure == PaymentStructure.MILESTONE_BASED:
            for m in term.milestones.all():
                due = f" (Due: {_fmt_date_long(m.milestone_date)})" if m.milestone_date else ""
                w.bullet(f"{m.description} – {format_currency(m.amount)}{due}", st["body"])
        if term.payment_method:
            w.paragraph(f"Payments must be made via: {term.payment_method}", st["body"])
    w.paragraph(clauses.PAYMENT_NOTE, st["note"])
    w.rule()

    # 4. Revisions
    w.paragraph(titles[3], st["h2"])
    w.paragraph(clauses.revisions_text(agreement.number_of_revisions), st["body"])
    w.paragraph(clauses.REVISIONS_NOTE, st["note"])
    w.rule()

    # 5. Client Responsibilities
    w.paragraph(titles[4], st["h2"])
    w.paragraph(clauses.CLIENT_RESPONSIBILITIES_INTRO, st["body"])
    for item in clauses.CLIENT_RESPONSIBILITIES:
        w.bullet(item, st["body"])
    w.paragraph(clauses.CLIENT_RESPONSIBILITIES_NOTE, st["note"])
    w.rule()

    # 6. Ownership & Usage Rights
    w.paragraph(titles[5], st["h2"])
    w.paragraph(clauses.OWNERSHIP_TEXT, st["body"])
    w.paragraph(clauses.OWNERSHIP_NOTE, st["note"])
    w.rule()

    # 7. Confidentiality
    w.paragraph(titles[6], st["h2"])
    w.paragraph(clauses.CONFIDENTIALITY_NOTE, st["note"])
    w.rule()

    # 8. Termination
    w.paragraph(titles[7], st["h2"])
    w.paragraph(clauses.TERMINATION_INTRO, st["body"])
    for item in clauses.TERMINATION_TERMS:
        w.bullet(item, st["body"])
    w.rule()

    # 9. Limitation of Liability
    w.paragraph(titles[8], st["h2"])
    w.paragraph(clauses.LIABILITY_INTRO, st["body"])
    for item in clauses.LIABILITY_EXCLUSIONS:
        w.bullet(item, st["body"])
    w.rule()

    # 10. Governing Law
    w.paragraph(titles[9], st["h2"])
    w.paragraph(clauses.governing_law_text(agreement.jurisdiction), st["note"])
    w.rule()

    # 11. Acceptance & E-Signature
    w.paragraph(titles[10], st["h2"])
    w.paragraph(clauses.ACCEPTANCE_NOTE, st["note"])
    w.space(20)

    provider_sig = next(
        (s for s in agreement.signatures.all() if s.signer_type == SignerType.SERVICE_PROVIDER), None
    )
    _signature_section(w, st, "Client Signature:", client_signature, store)
    w.space(20)
    _signature_section(w, st, "Service Provider Signature:", provider_sig, store)

    w.finish()
    return buf.getvalue()


def render_agreement_pdf(agreement_id, owner, client_id=None, store: Optional[ObjectStore] = None) -> bytes:
    """
    Render the agreement for ``owner``. With ``client_id`` the copy carries that
    client's name and signature; otherwise the first client signature on file.
    """
    agreement = get_agreement(agreement_id, owner)
    client, client_signature = _signing_client(agreement, client_id)
    return build_agreement_pdf_bytes(agreement, client=client, client_signature=client_signature, store=store)


def signed_pdf_filename(agreement_id, stamp: int) -> str:
    return f"Agreement-{agreement_id}-Signed-{stamp}.pdf"
