"""
Endpoint tests: owner API under JWT and the public signing routes.
"""
from datetime import timedelta
from urllib.parse import urlparse

from django.core import mail
from django.utils import timezone
from rest_framework import status
from rest_framework.test import APITestCase

from projects.models import Agreement, AgreementStatus
from projects.models_signatures import AgreementClientLink, AgreementSignature

from .helpers import make_agreement, make_client, make_owner, make_project, png_data_url

AGREEMENTS_URL = "/api/projects/agreements/"


def detail_url(pk, suffix=""):
    return f"{AGREEMENTS_URL}{pk}/{suffix}"


def sign_url(token):
    return f"{AGREEMENTS_URL}sign/{token}/"


def create_payload(project_id, **overrides):
    payload = {
        "project_id": project_id,
        "service_provider_name": "Priya Shah Design",
        "agreement_date": "2025-03-05",
        "service_type": "Logo design",
        "start_date": "2025-03-10",
        "end_date": "",
        "duration": 4,
        "duration_unit": "weeks",
        "number_of_revisions": 3,
        "jurisdiction": "Karnataka, India",
        "deliverables": ["Primary logo", "Brand guide"],
        "payment_structure": "milestone-based",
        "payment_method": "Bank transfer",
        "payment_milestones": [
            {"description": "Kick-off", "amount": "25000.00", "date": "2025-03-10"},
            {"description": "Handover", "amount": "75000.00"},
        ],
        "service_provider_signature": {"signer_name": "Priya Shah", "signature_image": png_data_url()},
    }
    payload.update(overrides)
    return payload


class AuthTests(APITestCase):
    def test_login_issues_a_token_that_opens_the_api(self):
        owner = make_owner()
        agreement = make_agreement(owner)

        resp = self.client.post("/api/auth/login/", {"email": owner.email, "password": "test123"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)

        self.client.credentials(HTTP_AUTHORIZATION=f"Bearer {resp.data['access']}")
        self.assertEqual(self.client.get(detail_url(agreement.pk)).status_code, status.HTTP_200_OK)

    def test_owner_routes_require_authentication(self):
        resp = self.client.get(detail_url(1))
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)
        resp = self.client.post(AGREEMENTS_URL, {}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_401_UNAUTHORIZED)


class AgreementApiTests(APITestCase):
    def setUp(self):
        self.owner = make_owner()
        self.project = make_project(self.owner)
        self.client.force_authenticate(self.owner)

    def test_create_returns_the_full_aggregate(self):
        resp = self.client.post(AGREEMENTS_URL, create_payload(self.project.pk), format="json")

        self.assertEqual(resp.status_code, status.HTTP_201_CREATED, resp.data)
        body = resp.data
        self.assertEqual(body["status"], AgreementStatus.DRAFT)
        self.assertEqual(body["project_id"], self.project.pk)
        self.assertEqual(body["project_name"], "Brand Refresh")
        self.assertIsNone(body["end_date"])
        self.assertEqual([d["description"] for d in body["deliverables"]], ["Primary logo", "Brand guide"])
        self.assertEqual(body["payment_terms"]["payment_structure"], "milestone-based")
        self.assertEqual(
            [(m["description"], m["amount"]) for m in body["payment_terms"]["milestones"]],
            [("Kick-off", "25000.00"), ("Handover", "75000.00")],
        )
        self.assertEqual(len(body["signatures"]), 1)
        self.assertEqual(body["signatures"][0]["signer_type"], "service_provider")
        self.assertTrue(body["is_editable"])

    def test_create_rejects_bad_signature_image(self):
        payload = create_payload(
            self.project.pk,
            service_provider_signature={"signer_name": "Priya", "signature_image": "not base64 !!"},
        )
        resp = self.client.post(AGREEMENTS_URL, payload, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("service_provider_signature", resp.data)
        self.assertFalse(Agreement.objects.exists())

    def test_create_requires_core_fields(self):
        resp = self.client.post(AGREEMENTS_URL, {"project_id": self.project.pk}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        for field in ("service_provider_name", "agreement_date", "service_type", "payment_structure"):
            self.assertIn(field, resp.data)

    def test_create_for_foreign_project_is_not_found(self):
        foreign = make_project(make_owner(email="other@example.com"))
        resp = self.client.post(AGREEMENTS_URL, create_payload(foreign.pk), format="json")
        self.assertEqual(resp.status_code, status.HTTP_404_NOT_FOUND)

    def test_retrieve_and_lookup_by_project(self):
        agreement = make_agreement(self.owner, project=self.project)

        resp = self.client.get(detail_url(agreement.pk))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["id"], agreement.pk)

        resp = self.client.get(f"{AGREEMENTS_URL}project/{self.project.pk}/")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["id"], agreement.pk)

    def test_foreign_agreement_is_not_found(self):
        agreement = make_agreement(make_owner(email="other@example.com"))
        self.assertEqual(self.client.get(detail_url(agreement.pk)).status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(self.client.delete(detail_url(agreement.pk)).status_code, status.HTTP_404_NOT_FOUND)

    def test_patch_updates_sent_fields_and_ignores_status(self):
        agreement = make_agreement(self.owner, project=self.project)
        resp = self.client.patch(
            detail_url(agreement.pk),
            {"service_type": "Packaging design", "status": "completed", "jurisdiction": ""},
            format="json",
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK, resp.data)
        self.assertEqual(resp.data["service_type"], "Packaging design")
        self.assertIsNone(resp.data["jurisdiction"])
        self.assertEqual(resp.data["status"], AgreementStatus.DRAFT)
        self.assertEqual(len(resp.data["deliverables"]), 3)

    def test_update_after_edit_window_is_rejected(self):
        agreement = make_agreement(self.owner, project=self.project)
        Agreement.objects.filter(pk=agreement.pk).update(created_at=timezone.now() - timedelta(days=3))

        resp = self.client.put(detail_url(agreement.pk), {"service_type": "Late change"}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("48 hours", str(resp.data["detail"]))
        self.assertEqual(Agreement.objects.get(pk=agreement.pk).service_type, "Logo design")

    def test_delete(self):
        agreement = make_agreement(self.owner, project=self.project)
        with self.captureOnCommitCallbacks(execute=True):
            resp = self.client.delete(detail_url(agreement.pk))
        self.assertEqual(resp.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(Agreement.objects.filter(pk=agreement.pk).exists())

    def test_pdf_download(self):
        agreement = make_agreement(self.owner, project=self.project)
        resp = self.client.get(detail_url(agreement.pk, "pdf/"))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp["Content-Type"], "application/pdf")
        self.assertIn(f"Agreement-{agreement.pk}.pdf", resp["Content-Disposition"])
        self.assertTrue(b"".join(resp.streaming_content).startswith(b"%PDF"))

    def test_send_to_clients(self):
        agreement = make_agreement(self.owner, project=self.project)
        asha = make_client(self.owner)
        with self.captureOnCommitCallbacks(execute=True):
            resp = self.client.post(detail_url(agreement.pk, "send/"), {"client_ids": [asha.pk]}, format="json")

        self.assertEqual(resp.status_code, status.HTTP_200_OK, resp.data)
        self.assertEqual(resp.data["client_ids"], [asha.pk])
        self.assertEqual(Agreement.objects.get(pk=agreement.pk).status, AgreementStatus.PENDING)
        self.assertEqual(len(mail.outbox), 1)
        self.assertIn("http://testserver-frontend/agreement/sign/", mail.outbox[0].body)

    def test_send_validates_client_ids(self):
        agreement = make_agreement(self.owner, project=self.project)
        resp = self.client.post(detail_url(agreement.pk, "send/"), {"client_ids": []}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)

        resp = self.client.post(detail_url(agreement.pk, "send/"), {"client_ids": [424242]}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("client_ids", resp.data)


class PublicSigningApiTests(APITestCase):
    def setUp(self):
        self.owner = make_owner()
        self.agreement = make_agreement(self.owner)
        self.asha = make_client(self.owner)
        self.link = AgreementClientLink.objects.create(
            agreement=self.agreement,
            client=self.asha,
            token="a1" * 32,
            expires_at=timezone.now() + timedelta(days=2),
        )
        Agreement.objects.filter(pk=self.agreement.pk).update(status=AgreementStatus.PENDING)

    def sign_body(self, name="Asha Rao", color="black"):
        return {"signer_name": name, "signature_image": png_data_url(color)}

    def test_get_valid_link(self):
        resp = self.client.get(sign_url(self.link.token))
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(resp.data["agreement"]["id"], self.agreement.pk)
        self.assertEqual(resp.data["link"]["client_name"], "Asha Rao")
        self.assertEqual(resp.data["link"]["client_organization"], "Rao Studios")
        self.assertNotIn("token", resp.data["link"])

    def test_get_unknown_link_reveals_nothing(self):
        resp = self.client.get(sign_url("b2" * 32))
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(set(resp.data), {"detail", "expired"})
        self.assertFalse(resp.data["expired"])

    def test_get_expired_link(self):
        AgreementClientLink.objects.filter(pk=self.link.pk).update(expires_at=timezone.now() - timedelta(hours=1))
        resp = self.client.get(sign_url(self.link.token))
        self.assertEqual(resp.status_code, status.HTTP_410_GONE)
        self.assertTrue(resp.data["expired"])
        self.assertNotIn("agreement", resp.data)

    def test_public_routes_ignore_bad_authorization_headers(self):
        self.client.credentials(HTTP_AUTHORIZATION="Bearer garbage")
        self.assertEqual(self.client.get(sign_url(self.link.token)).status_code, status.HTTP_200_OK)

    def test_submit_then_conflict_then_update(self):
        resp = self.client.post(
            sign_url(self.link.token), self.sign_body(), format="json", HTTP_X_FORWARDED_FOR="198.51.100.4, 10.0.0.1"
        )
        self.assertEqual(resp.status_code, status.HTTP_200_OK, resp.data)
        self.assertIsNotNone(resp.data["pdf_url"])
        self.assertEqual(Agreement.objects.get(pk=self.agreement.pk).status, AgreementStatus.COMPLETED)
        self.assertEqual(AgreementSignature.objects.get(client=self.asha).ip_address, "198.51.100.4")

        resp = self.client.post(sign_url(self.link.token), self.sign_body(color="red"), format="json")
        self.assertEqual(resp.status_code, status.HTTP_409_CONFLICT)

        resp = self.client.put(sign_url(self.link.token), self.sign_body("Asha R."), format="json")
        self.assertEqual(resp.status_code, status.HTTP_200_OK)
        self.assertEqual(AgreementSignature.objects.get(client=self.asha).signer_name, "Asha R.")

    def test_submit_on_expired_link(self):
        AgreementClientLink.objects.filter(pk=self.link.pk).update(expires_at=timezone.now() - timedelta(hours=1))
        resp = self.client.post(sign_url(self.link.token), self.sign_body(), format="json")
        self.assertEqual(resp.status_code, status.HTTP_410_GONE)

    def test_submit_requires_signer_and_image(self):
        resp = self.client.post(sign_url(self.link.token), {"signer_name": ""}, format="json")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("signature_image", resp.data)

    def test_signed_pdf_link_serves_the_file(self):
        resp = self.client.post(sign_url(self.link.token), self.sign_body(), format="json")
        path = urlparse(resp.data["pdf_url"]).path

        download = self.client.get(path)
        self.assertEqual(download.status_code, status.HTTP_200_OK)
        self.assertEqual(download["Content-Type"], "application/pdf")
        self.assertTrue(b"".join(download.streaming_content).startswith(b"%PDF"))

    def test_tampered_file_link_is_rejected(self):
        resp = self.client.get("/api/projects/files/not-a-signed-value/")
        self.assertEqual(resp.status_code, status.HTTP_400_BAD_REQUEST)
