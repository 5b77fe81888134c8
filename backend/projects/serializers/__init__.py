"""
Re-export serializer classes so views can do:
    from projects.serializers import <Name>Serializer
"""

from .agreement import (
    AgreementCreateSerializer,
    AgreementSerializer,
    AgreementUpdateSerializer,
    DeliverableSerializer,
    MilestoneInputSerializer,
    PaymentMilestoneSerializer,
    PaymentTermSerializer,
    SignatureSerializer,
)
from .signing import (
    SendAgreementSerializer,
    SignatureImageField,
    SignatureSubmitSerializer,
    SigningLinkSerializer,
)

__all__ = [
    "AgreementCreateSerializer",
    "AgreementSerializer",
    "AgreementUpdateSerializer",
    "DeliverableSerializer",
    "MilestoneInputSerializer",
    "PaymentMilestoneSerializer",
    "PaymentTermSerializer",
    "SignatureSerializer",
    "SendAgreementSerializer",
    "SignatureImageField",
    "SignatureSubmitSerializer",
    "SigningLinkSerializer",
]
