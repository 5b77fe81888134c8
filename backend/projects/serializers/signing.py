# backend/projects/serializers/signing.py
from __future__ import annotations

import base64
import binascii
import re

from rest_framework import serializers

from projects.models_signatures import AgreementClientLink
from projects.services.agreements import SignaturePayload

_DATA_URL_PREFIX = re.compile(r"^data:image/\w+;base64,")


class SignatureImageField(serializers.Field):
    """
    A captured signature bitmap sent as a data URL or plain base64.
    Internal value is the raw image bytes.
    """
    default_error_messages = {
        "invalid": "Signature image must be base64-encoded.",
        "empty": "Signature image is empty.",
    }

    def to_internal_value(self, data):
        if not isinstance(data, str):
            self.fail("invalid")
        raw = _DATA_URL_PREFIX.sub("", data.strip())
        try:
            decoded = base64.b64decode(raw, validate=True)
        except (binascii.Error, ValueError):
            self.fail("invalid")
        if not decoded:
            self.fail("empty")
        return decoded

    def to_representation(self, value):
        return base64.b64encode(value).decode("ascii") if value else None


class SignatureSubmitSerializer(serializers.Serializer):
    signer_name = serializers.CharField(max_length=255, trim_whitespace=True)
    signature_image = SignatureImageField()

    def to_payload(self) -> SignaturePayload:
        data = self.validated_data
        return SignaturePayload(signer_name=data["signer_name"], image=data["signature_image"])


class SendAgreementSerializer(serializers.Serializer):
    client_ids = serializers.ListField(
        child=serializers.IntegerField(min_value=1),
        allow_empty=False,
        error_messages={"empty": "client_ids must be a non-empty list."},
    )


class SigningLinkSerializer(serializers.ModelSerializer):
    """Link details shown on the public signing page."""
    client_name = serializers.SerializerMethodField()
    client_organization = serializers.SerializerMethodField()

    class Meta:
        model = AgreementClientLink
        fields = ("client_id", "client_name", "client_organization", "expires_at", "status")
        read_only_fields = fields

    def get_client_name(self, obj):
        return getattr(obj, "client_name", None)

    def get_client_organization(self, obj):
        return getattr(obj, "client_organization", None)
