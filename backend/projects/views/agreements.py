# backend/projects/views/agreements.py
"""
Owner-facing agreement endpoints (JWT). Ownership is enforced in the service layer:
an agreement that is not the caller's is reported as not found.
"""
from __future__ import annotations

import io

from django.conf import settings
from django.http import FileResponse

from rest_framework import status, viewsets
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from projects.serializers import (
    AgreementCreateSerializer,
    AgreementSerializer,
    AgreementUpdateSerializer,
    SendAgreementSerializer,
)
from projects.services import agreements as agreement_service
from projects.services.pdf import render_agreement_pdf
from projects.services.signature_links import send_to_clients


class AgreementViewSet(viewsets.ViewSet):
    permission_classes = [IsAuthenticated]
    lookup_value_regex = r"\d+"

    def _out(self, agreement, code=status.HTTP_200_OK):
        return Response(AgreementSerializer(agreement, context={"request": self.request}).data, status=code)

    def create(self, request):
        serializer = AgreementCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        agreement = agreement_service.create_agreement(request.user, serializer.to_create_data())
        return self._out(agreement, status.HTTP_201_CREATED)

    def retrieve(self, request, pk=None):
        return self._out(agreement_service.get_agreement(pk, request.user))

    def update(self, request, pk=None):
        # PUT and PATCH both apply only the keys that were sent.
        serializer = AgreementUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        agreement = agreement_service.update_agreement(pk, request.user, serializer.to_patch())
        return self._out(agreement)

    def partial_update(self, request, pk=None):
        return self.update(request, pk=pk)

    def destroy(self, request, pk=None):
        agreement_service.delete_agreement(pk, request.user)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=["get"], url_path=r"project/(?P<project_id>\d+)")
    def by_project(self, request, project_id=None):
        return self._out(agreement_service.get_agreement_by_project(project_id, request.user))

    @action(detail=True, methods=["post"])
    def send(self, request, pk=None):
        serializer = SendAgreementSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        links = send_to_clients(pk, request.user, serializer.validated_data["client_ids"], settings.FRONTEND_URL)
        return Response(
            {
                "detail": "Agreement sent to clients successfully.",
                "client_ids": [link.client_id for link in links],
            },
            status=status.HTTP_200_OK,
        )

    @action(detail=True, methods=["get"])
    def pdf(self, request, pk=None):
        pdf_bytes = render_agreement_pdf(pk, request.user)
        resp = FileResponse(io.BytesIO(pdf_bytes), content_type="application/pdf")
        resp["Content-Disposition"] = f'inline; filename="Agreement-{pk}.pdf"'
        resp["Cache-Control"] = "no-store, no-cache, must-revalidate, max-age=0"
        return resp
