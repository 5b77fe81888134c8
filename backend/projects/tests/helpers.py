"""Shared builders for the projects test suite."""
import base64
import io
from datetime import date
from decimal import Decimal

from django.contrib.auth import get_user_model
from PIL import Image

from projects.models import Client, PaymentStructure, Project
from projects.services.agreements import AgreementCreateData, MilestoneData, SignaturePayload, create_agreement

User = get_user_model()


def png_bytes(color="black", size=(60, 24)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


def png_data_url(color="black") -> str:
    return "data:image/png;base64," + base64.b64encode(png_bytes(color)).decode("ascii")


def make_owner(email="owner@example.com", **extra):
    return User.objects.create_user(
        email=email,
        password="test123",
        first_name=extra.pop("first_name", "Priya"),
        last_name=extra.pop("last_name", "Shah"),
        **extra,
    )


def make_project(owner, name="Brand Refresh"):
    return Project.objects.create(owner=owner, name=name)


def make_client(owner, full_name="Asha Rao", email="asha@example.com", organization="Rao Studios"):
    return Client.objects.create(owner=owner, full_name=full_name, email=email, organization=organization)


def create_data(project, **overrides) -> AgreementCreateData:
    values = dict(
        project_id=project.pk,
        service_provider_name="Priya Shah Design",
        agreement_date=date(2025, 3, 5),
        service_type="Logo design",
        payment_structure=PaymentStructure.MILESTONE_BASED,
        provider_signature=SignaturePayload(signer_name="Priya Shah", image=png_bytes()),
        start_date=date(2025, 3, 10),
        end_date=date(2025, 4, 10),
        duration=4,
        duration_unit="weeks",
        number_of_revisions=2,
        jurisdiction="Maharashtra, India",
        deliverables=["Primary logo", "Colour palette", "Brand guide"],
        payment_method="Bank transfer",
        payment_milestones=[
            MilestoneData(description="Kick-off", amount=Decimal("25000.00"), date=date(2025, 3, 10)),
            MilestoneData(description="Final files", amount=Decimal("75000.00")),
        ],
    )
    values.update(overrides)
    return AgreementCreateData(**values)


def make_agreement(owner, project=None, **overrides):
    project = project or make_project(owner)
    return create_agreement(owner, create_data(project, **overrides))
