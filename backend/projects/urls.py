# backend/projects/urls.py
from django.urls import path, include
from rest_framework.routers import DefaultRouter

from projects.views.agreements import AgreementViewSet
from projects.views.public_sign import AgreementSignView, SignedFileView

app_name = "projects"

router = DefaultRouter(trailing_slash="/?")
router.register(r"agreements", AgreementViewSet, basename="agreement")

urlpatterns = [
    # Public signing routes sit ahead of the router so "sign" is never read as a pk.
    path("agreements/sign/<str:token>/", AgreementSignView.as_view(), name="agreement-sign"),
    path("files/<str:signed>/", SignedFileView.as_view(), name="signed-file"),
    path("", include(router.urls)),
]
