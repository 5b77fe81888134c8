# backend/projects/views/public_sign.py
"""
Public signing endpoints. The token in the URL is the only credential, so these
views skip JWT authentication entirely.
"""
import io
import logging
import os

from django.core import signing
from django.http import FileResponse, Http404

from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
from rest_framework.views import APIView

from projects.exceptions import InvalidToken, LinkExpired
from projects.serializers import AgreementSerializer, SignatureSubmitSerializer, SigningLinkSerializer
from projects.services.signature_collector import submit_signature, update_signature
from projects.services.signature_links import validate_token
from projects.services.storage import ObjectStore, resolve_signed_path

logger = logging.getLogger(__name__)


def _get_client_ip(request):
    x_forwarded_for = request.META.get("HTTP_X_FORWARDED_FOR")
    if x_forwarded_for:
        return x_forwarded_for.split(",")[0].strip()
    return request.META.get("REMOTE_ADDR")


class AgreementSignView(APIView):
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request, token):
        validation = validate_token(token)
        if not validation.valid:
            exc = LinkExpired() if validation.expired else InvalidToken()
            return Response(
                {"detail": exc.detail, "expired": bool(validation.expired)},
                status=exc.status_code,
            )
        return Response({
            "agreement": AgreementSerializer(validation.agreement, context={"request": request}).data,
            "link": SigningLinkSerializer(validation.link).data,
        })

    def post(self, request, token):
        serializer = SignatureSubmitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = submit_signature(token, serializer.to_payload(), _get_client_ip(request))
        return Response(
            {"detail": "Signature submitted successfully.", "pdf_url": result.pdf_url},
            status=status.HTTP_200_OK,
        )

    def put(self, request, token):
        serializer = SignatureSubmitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        result = update_signature(token, serializer.to_payload(), _get_client_ip(request))
        return Response(
            {"detail": "Signature updated successfully.", "pdf_url": result.pdf_url},
            status=status.HTTP_200_OK,
        )


class SignedFileView(APIView):
    """Serves a stored asset behind a time-limited signed link."""
    permission_classes = [AllowAny]
    authentication_classes = []

    def get(self, request, signed):
        try:
            path = resolve_signed_path(signed)
        except signing.SignatureExpired:
            return Response({"detail": "Link expired."}, status=status.HTTP_410_GONE)
        except signing.BadSignature:
            return Response({"detail": "Invalid link."}, status=status.HTTP_400_BAD_REQUEST)

        try:
            stored = ObjectStore().download(path)
        except (FileNotFoundError, OSError):
            logger.warning("Signed link points at missing asset %s", path)
            raise Http404("File not found.")

        resp = FileResponse(io.BytesIO(stored.content), content_type=stored.content_type)
        resp["Content-Disposition"] = f'inline; filename="{os.path.basename(path)}"'
        resp["Content-Length"] = str(stored.length)
        return resp
