# backend/projects/serializers/agreement.py
from __future__ import annotations

from rest_framework import serializers

from projects.models import (
    Agreement,
    AgreementDeliverable,
    AgreementPaymentMilestone,
    AgreementPaymentTerm,
    DurationUnit,
    PaymentStructure,
)
from projects.models_signatures import AgreementSignature
from projects.serializers.signing import SignatureSubmitSerializer
from projects.services.agreements import (
    AgreementCreateData,
    AgreementPatch,
    MilestoneData,
    SignaturePayload,
    is_editable,
)


# ---------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------

# Blank strings from form inputs mean "no value" for these.
_NULLABLE_INPUTS = ("start_date", "end_date", "duration", "duration_unit", "jurisdiction", "payment_method")


def _empty_to_none(data, keys=_NULLABLE_INPUTS):
    if not hasattr(data, "items"):
        return data
    data = dict(data.items())
    for k in keys:
        if k in data and data[k] == "":
            data[k] = None
    return data


def _milestones(items):
    return [
        MilestoneData(description=m["description"], amount=m["amount"], date=m.get("date"))
        for m in items or []
    ]


# ---------------------------------------------------------------------
# Read shapes
# ---------------------------------------------------------------------

class DeliverableSerializer(serializers.ModelSerializer):
    class Meta:
        model = AgreementDeliverable
        fields = ("id", "description", "order")


class PaymentMilestoneSerializer(serializers.ModelSerializer):
    date = serializers.DateField(source="milestone_date", allow_null=True)

    class Meta:
        model = AgreementPaymentMilestone
        fields = ("id", "description", "amount", "order", "date")


class PaymentTermSerializer(serializers.ModelSerializer):
    milestones = serializers.SerializerMethodField()

    class Meta:
        model = AgreementPaymentTerm
        fields = ("id", "payment_structure", "payment_method", "milestones")

    def get_milestones(self, obj):
        if obj.payment_structure != PaymentStructure.MILESTONE_BASED:
            return None
        return PaymentMilestoneSerializer(obj.milestones.all(), many=True).data


class SignatureSerializer(serializers.ModelSerializer):
    class Meta:
        model = AgreementSignature
        fields = (
            "id",
            "signer_type",
            "client_id",
            "signer_name",
            "signature_image_name",
            "timestamp",
            "document_id",
        )


class AgreementSerializer(serializers.ModelSerializer):
    """
    Full aggregate for owners and the public signing page.
    Status is derived server-side and never accepted from callers.
    """
    project_id = serializers.IntegerField(read_only=True)
    project_name = serializers.CharField(source="project.name", read_only=True)
    deliverables = DeliverableSerializer(many=True, read_only=True)
    payment_terms = serializers.SerializerMethodField()
    signatures = SignatureSerializer(many=True, read_only=True)
    is_editable = serializers.SerializerMethodField()

    class Meta:
        model = Agreement
        fields = (
            "id",
            "project_id",
            "project_name",
            "service_provider_name",
            "agreement_date",
            "service_type",
            "start_date",
            "end_date",
            "duration",
            "duration_unit",
            "number_of_revisions",
            "jurisdiction",
            "status",
            "deliverables",
            "payment_terms",
            "signatures",
            "is_editable",
            "created_at",
            "updated_at",
        )
        read_only_fields = fields

    def get_payment_terms(self, obj):
        term = getattr(obj, "payment_term", None)
        return PaymentTermSerializer(term).data if term is not None else None

    def get_is_editable(self, obj) -> bool:
        return is_editable(obj)


# ---------------------------------------------------------------------
# Write shapes
# ---------------------------------------------------------------------

class MilestoneInputSerializer(serializers.Serializer):
    description = serializers.CharField()
    amount = serializers.DecimalField(max_digits=15, decimal_places=2)
    date = serializers.DateField(required=False, allow_null=True)


class AgreementCreateSerializer(serializers.Serializer):
    project_id = serializers.IntegerField(min_value=1)
    service_provider_name = serializers.CharField(max_length=255)
    agreement_date = serializers.DateField()
    service_type = serializers.CharField(max_length=255)
    start_date = serializers.DateField(required=False, allow_null=True)
    end_date = serializers.DateField(required=False, allow_null=True)
    duration = serializers.IntegerField(required=False, allow_null=True, min_value=0)
    duration_unit = serializers.ChoiceField(choices=DurationUnit.choices, required=False, allow_null=True)
    number_of_revisions = serializers.IntegerField(required=False, min_value=0, default=0)
    jurisdiction = serializers.CharField(required=False, allow_null=True, allow_blank=True, max_length=255)
    deliverables = serializers.ListField(child=serializers.CharField(), required=False, default=list)
    payment_structure = serializers.ChoiceField(choices=PaymentStructure.choices)
    payment_method = serializers.CharField(required=False, allow_null=True, allow_blank=True, max_length=255)
    payment_milestones = MilestoneInputSerializer(many=True, required=False, default=list)
    service_provider_signature = SignatureSubmitSerializer()

    def to_internal_value(self, data):
        return super().to_internal_value(_empty_to_none(data))

    def to_create_data(self) -> AgreementCreateData:
        d = self.validated_data
        sig = d["service_provider_signature"]
        return AgreementCreateData(
            project_id=d["project_id"],
            service_provider_name=d["service_provider_name"],
            agreement_date=d["agreement_date"],
            service_type=d["service_type"],
            payment_structure=d["payment_structure"],
            provider_signature=SignaturePayload(signer_name=sig["signer_name"], image=sig["signature_image"]),
            start_date=d.get("start_date"),
            end_date=d.get("end_date"),
            duration=d.get("duration"),
            duration_unit=d.get("duration_unit"),
            number_of_revisions=d.get("number_of_revisions") or 0,
            jurisdiction=d.get("jurisdiction") or None,
            deliverables=list(d.get("deliverables") or []),
            payment_method=d.get("payment_method") or None,
            payment_milestones=_milestones(d.get("payment_milestones")),
        )


class AgreementUpdateSerializer(serializers.Serializer):
    """
    Partial update. Only keys present in the request reach the patch; an explicit
    null clears a nullable field.
    """
    service_provider_name = serializers.CharField(max_length=255, required=False)
    agreement_date = serializers.DateField(required=False)
    service_type = serializers.CharField(max_length=255, required=False)
    start_date = serializers.DateField(required=False, allow_null=True)
    end_date = serializers.DateField(required=False, allow_null=True)
    duration = serializers.IntegerField(required=False, allow_null=True, min_value=0)
    duration_unit = serializers.ChoiceField(choices=DurationUnit.choices, required=False, allow_null=True)
    number_of_revisions = serializers.IntegerField(required=False, min_value=0)
    jurisdiction = serializers.CharField(required=False, allow_null=True, allow_blank=True, max_length=255)
    deliverables = serializers.ListField(child=serializers.CharField(), required=False)
    payment_structure = serializers.ChoiceField(choices=PaymentStructure.choices, required=False)
    payment_method = serializers.CharField(required=False, allow_null=True, allow_blank=True, max_length=255)
    payment_milestones = MilestoneInputSerializer(many=True, required=False)

    def to_internal_value(self, data):
        data = _empty_to_none(data)
        if hasattr(data, "pop"):
            # Status is derived from signing links.
            data.pop("status", None)
        return super().to_internal_value(data)

    def to_patch(self) -> AgreementPatch:
        values = dict(self.validated_data)
        if "payment_milestones" in values:
            values["payment_milestones"] = _milestones(values["payment_milestones"])
        return AgreementPatch.from_mapping(values)
