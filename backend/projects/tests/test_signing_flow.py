from datetime import timedelta
from unittest.mock import patch

from django.core import mail
from django.core.files.storage import default_storage
from django.db import IntegrityError
from django.test import TestCase
from django.utils import timezone
from rest_framework.exceptions import ValidationError

from projects.exceptions import AgreementNotFound, InvalidToken, LinkExpired, SignatureConflict
from projects.models import Agreement, AgreementStatus
from projects.models_signatures import AgreementClientLink, AgreementSignature, LinkStatus, SignerType
from projects.services import mailer
from projects.services.agreements import SignaturePayload
from projects.services.signature_collector import submit_signature, update_signature
from projects.services.signature_links import (
    build_sign_url,
    expire_stale_links,
    generate_signature_token,
    send_to_clients,
    validate_token,
)
from projects.tasks import expire_signature_links

from .helpers import make_agreement, make_client, make_owner, png_bytes

FRONTEND = "http://frontend.test/"


class SigningTestCase(TestCase):
    def setUp(self):
        self.owner = make_owner()
        self.agreement = make_agreement(self.owner)
        self.asha = make_client(self.owner)
        self.ravi = make_client(self.owner, full_name="Ravi Kumar", email="ravi@example.com", organization="")

    def send(self, *clients):
        with self.captureOnCommitCallbacks(execute=True):
            return send_to_clients(self.agreement.pk, self.owner, [c.pk for c in clients], FRONTEND)

    def link_for(self, client):
        return AgreementClientLink.objects.get(agreement=self.agreement, client=client)

    def payload(self, name="Asha Rao", color="black"):
        return SignaturePayload(signer_name=name, image=png_bytes(color))

    def status(self):
        return Agreement.objects.get(pk=self.agreement.pk).status


class TokenHelperTests(TestCase):
    def test_token_is_64_hex_chars(self):
        token = generate_signature_token()
        self.assertEqual(len(token), 64)
        int(token, 16)
        self.assertNotEqual(token, generate_signature_token())

    def test_sign_url_joins_without_double_slash(self):
        self.assertEqual(build_sign_url("https://app.example.com/", "abc"), "https://app.example.com/agreement/sign/abc")
        self.assertEqual(build_sign_url("https://app.example.com", "abc"), "https://app.example.com/agreement/sign/abc")


class SendToClientsTests(SigningTestCase):
    def test_creates_one_link_per_client_and_emails_each(self):
        links = self.send(self.asha, self.ravi)

        self.assertEqual(len(links), 2)
        self.assertEqual(self.status(), AgreementStatus.PENDING)
        for link in links:
            self.assertEqual(link.status, LinkStatus.PENDING)
            self.assertEqual(len(link.token), 64)
            self.assertAlmostEqual(
                (link.expires_at - timezone.now()).total_seconds(), timedelta(days=2).total_seconds(), delta=60
            )

        self.assertEqual(len(mail.outbox), 2)
        recipients = sorted(m.to[0] for m in mail.outbox)
        self.assertEqual(recipients, ["asha@example.com", "ravi@example.com"])
        asha_mail = next(m for m in mail.outbox if m.to == ["asha@example.com"])
        self.assertEqual(asha_mail.subject, "Service Agreement - Brand Refresh - Action Required")
        self.assertIn(f"http://frontend.test/agreement/sign/{self.link_for(self.asha).token}", asha_mail.body)

    def test_unknown_and_foreign_clients_are_dropped(self):
        stranger = make_client(make_owner(email="other@example.com"), full_name="Stranger", email="s@example.com")
        links = self.send(self.asha, stranger)
        self.assertEqual([l.client_id for l in links], [self.asha.pk])

    def test_no_valid_clients_is_a_validation_error(self):
        stranger = make_client(make_owner(email="other@example.com"), full_name="Stranger")
        with self.assertRaises(ValidationError):
            send_to_clients(self.agreement.pk, self.owner, [stranger.pk, 987654], FRONTEND)
        self.assertFalse(AgreementClientLink.objects.exists())
        self.assertEqual(self.status(), AgreementStatus.DRAFT)

    def test_client_without_email_gets_a_link_but_no_mail(self):
        silent = make_client(self.owner, full_name="No Mail", email="")
        links = self.send(silent)
        self.assertEqual(len(links), 1)
        self.assertEqual(len(mail.outbox), 0)

    def test_one_failed_email_does_not_block_the_others(self):
        real_send = mailer.send_signing_invitation

        def flaky(*, client, **kwargs):
            if client.pk == self.asha.pk:
                raise ConnectionError("smtp down")
            return real_send(client=client, **kwargs)

        with patch("projects.services.mailer.send_signing_invitation", side_effect=flaky):
            links = self.send(self.asha, self.ravi)

        self.assertEqual(len(links), 2)
        self.assertEqual([m.to for m in mail.outbox], [["ravi@example.com"]])

    def test_other_owner_cannot_send(self):
        other = make_owner(email="other@example.com")
        with self.assertRaises(AgreementNotFound):
            send_to_clients(self.agreement.pk, other, [self.asha.pk], FRONTEND)


class ValidateTokenTests(SigningTestCase):
    def test_valid_token_returns_agreement_and_client_details(self):
        self.send(self.asha)
        result = validate_token(self.link_for(self.asha).token)

        self.assertTrue(result.valid)
        self.assertFalse(result.expired)
        self.assertEqual(result.agreement.pk, self.agreement.pk)
        self.assertEqual(result.link.client_name, "Asha Rao")
        self.assertEqual(result.link.client_organization, "Rao Studios")

    def test_unknown_token_leaks_nothing(self):
        for token in ("", "not-a-token", "0" * 64):
            result = validate_token(token)
            self.assertFalse(result.valid)
            self.assertFalse(result.expired)
            self.assertIsNone(result.agreement)
            self.assertIsNone(result.link)

    def test_expired_link_is_marked_once(self):
        self.send(self.asha)
        link = self.link_for(self.asha)
        AgreementClientLink.objects.filter(pk=link.pk).update(expires_at=timezone.now() - timedelta(minutes=1))

        first = validate_token(link.token)
        second = validate_token(link.token)

        for result in (first, second):
            self.assertFalse(result.valid)
            self.assertTrue(result.expired)
            self.assertIsNone(result.agreement)
        self.assertEqual(self.link_for(self.asha).status, LinkStatus.EXPIRED)

    def test_signed_link_past_expiry_is_marked_expired(self):
        self.send(self.asha)
        link = self.link_for(self.asha)
        submit_signature(link.token, self.payload())
        AgreementClientLink.objects.filter(pk=link.pk).update(expires_at=timezone.now() - timedelta(minutes=1))

        result = validate_token(link.token)

        self.assertFalse(result.valid)
        self.assertTrue(result.expired)
        self.assertEqual(self.link_for(self.asha).status, LinkStatus.EXPIRED)
        self.assertEqual(self.status(), AgreementStatus.COMPLETED)

    def test_lookup_failure_is_reported_as_invalid(self):
        with patch("projects.services.signature_links.AgreementClientLink.objects.select_related",
                   side_effect=RuntimeError("db down")):
            result = validate_token("a" * 64)
        self.assertFalse(result.valid)


class SubmitSignatureTests(SigningTestCase):
    def test_signing_every_link_completes_the_agreement(self):
        self.send(self.asha, self.ravi)
        mail.outbox.clear()

        result = submit_signature(self.link_for(self.asha).token, self.payload(), "203.0.113.7")
        self.assertEqual(self.status(), AgreementStatus.PENDING)
        self.assertIsNotNone(result.pdf_url)
        self.assertIn("/api/projects/files/", result.pdf_url)

        submit_signature(self.link_for(self.ravi).token, self.payload("Ravi Kumar"), None)
        self.assertEqual(self.status(), AgreementStatus.COMPLETED)

        link = self.link_for(self.asha)
        self.assertEqual(link.status, LinkStatus.CLIENT_SIGNED)
        self.assertIsNotNone(link.signed_at)

        sig = AgreementSignature.objects.get(agreement=self.agreement, client=self.asha)
        self.assertEqual(sig.signer_type, SignerType.CLIENT)
        self.assertEqual(sig.ip_address, "203.0.113.7")
        self.assertRegex(sig.signature_image_name, rf"^signature-client-{self.asha.pk}-\d+\.png$")
        self.assertRegex(sig.document_id, rf"^AGREEMENT-{self.agreement.pk}-CLIENT-{self.asha.pk}-\d+$")
        self.assertTrue(default_storage.exists(sig.signature_image_path))

        # Each signature mails the signed PDF to the client and to the owner.
        subjects = [m.subject for m in mail.outbox]
        self.assertIn("Signed Agreement - Brand Refresh", subjects)
        self.assertIn("Agreement Signed - Asha Rao - Brand Refresh", subjects)
        self.assertEqual(len(mail.outbox), 4)
        self.assertEqual(mail.outbox[0].attachments[0][2], "application/pdf")

    def test_second_submit_is_a_conflict(self):
        self.send(self.asha)
        token = self.link_for(self.asha).token
        submit_signature(token, self.payload())

        with self.assertRaises(SignatureConflict):
            submit_signature(token, self.payload(color="blue"))
        self.assertEqual(AgreementSignature.objects.filter(client=self.asha).count(), 1)

    def test_racing_insert_is_a_conflict_and_image_is_removed(self):
        self.send(self.asha)
        link = self.link_for(self.asha)
        stamp = 1700000000000
        image_path = f"signatures/{self.agreement.project_id}/signature-client-{self.asha.pk}-{stamp}.png"

        with patch("projects.services.signature_collector.epoch_ms", return_value=stamp), \
                patch.object(AgreementSignature.objects, "create", side_effect=IntegrityError("duplicate")):
            with self.assertRaises(SignatureConflict):
                submit_signature(link.token, self.payload())

        self.assertFalse(default_storage.exists(image_path))
        self.assertEqual(self.link_for(self.asha).status, LinkStatus.PENDING)
        self.assertEqual(self.status(), AgreementStatus.PENDING)

    def test_expired_link_cannot_sign(self):
        self.send(self.asha)
        link = self.link_for(self.asha)
        AgreementClientLink.objects.filter(pk=link.pk).update(expires_at=timezone.now() - timedelta(seconds=1))

        with self.assertRaises(LinkExpired):
            submit_signature(link.token, self.payload())
        self.assertFalse(AgreementSignature.objects.filter(client=self.asha).exists())

    def test_unknown_token_cannot_sign(self):
        with self.assertRaises(InvalidToken):
            submit_signature("f" * 64, self.payload())

    def test_pdf_failure_still_records_signature(self):
        self.send(self.asha)
        with patch("projects.services.signature_collector.render_agreement_pdf", side_effect=RuntimeError("boom")):
            result = submit_signature(self.link_for(self.asha).token, self.payload())

        self.assertIsNone(result.pdf_url)
        self.assertEqual(self.link_for(self.asha).status, LinkStatus.CLIENT_SIGNED)
        self.assertEqual(self.status(), AgreementStatus.COMPLETED)

    def test_email_failure_does_not_fail_the_request(self):
        self.send(self.asha)
        with patch("projects.services.mailer.send_signed_copy_to_client", side_effect=ConnectionError("smtp")):
            result = submit_signature(self.link_for(self.asha).token, self.payload())
        self.assertIsNotNone(result.pdf_url)
        self.assertEqual(self.status(), AgreementStatus.COMPLETED)


class UpdateSignatureTests(SigningTestCase):
    def test_update_replaces_previous_signature_and_image(self):
        self.send(self.asha)
        token = self.link_for(self.asha).token
        submit_signature(token, self.payload())
        old = AgreementSignature.objects.get(client=self.asha)

        with self.captureOnCommitCallbacks(execute=True):
            update_signature(token, self.payload("Asha R.", color="blue"))

        signatures = AgreementSignature.objects.filter(agreement=self.agreement, client=self.asha)
        self.assertEqual(signatures.count(), 1)
        new = signatures.get()
        self.assertEqual(new.signer_name, "Asha R.")
        self.assertNotEqual(new.pk, old.pk)
        self.assertTrue(default_storage.exists(new.signature_image_path))
        self.assertFalse(default_storage.exists(old.signature_image_path))
        self.assertEqual(self.status(), AgreementStatus.COMPLETED)

    def test_update_after_expiry_is_rejected(self):
        self.send(self.asha)
        link = self.link_for(self.asha)
        submit_signature(link.token, self.payload())
        AgreementClientLink.objects.filter(pk=link.pk).update(expires_at=timezone.now() - timedelta(seconds=1))

        with self.assertRaises(LinkExpired):
            update_signature(link.token, self.payload(color="blue"))


class ResendTests(SigningTestCase):
    def test_resend_after_completion_reopens_and_rotates_token(self):
        self.send(self.asha)
        old_token = self.link_for(self.asha).token
        submit_signature(old_token, self.payload())
        self.assertEqual(self.status(), AgreementStatus.COMPLETED)

        self.send(self.asha)

        link = self.link_for(self.asha)
        self.assertNotEqual(link.token, old_token)
        self.assertEqual(link.status, LinkStatus.PENDING)
        self.assertIsNone(link.signed_at)
        self.assertEqual(self.status(), AgreementStatus.PENDING)
        self.assertEqual(AgreementClientLink.objects.filter(agreement=self.agreement).count(), 1)

        stale = validate_token(old_token)
        self.assertFalse(stale.valid)
        self.assertFalse(stale.expired)

    def test_signing_after_resend_replaces_the_earlier_signature(self):
        self.send(self.asha)
        submit_signature(self.link_for(self.asha).token, self.payload())
        self.send(self.asha)

        with self.captureOnCommitCallbacks(execute=True):
            submit_signature(self.link_for(self.asha).token, self.payload(color="green"))

        self.assertEqual(AgreementSignature.objects.filter(client=self.asha).count(), 1)
        self.assertEqual(self.status(), AgreementStatus.COMPLETED)

    def test_expired_unsigned_link_completes_agreement(self):
        self.send(self.asha, self.ravi)
        submit_signature(self.link_for(self.asha).token, self.payload())
        ravi = self.link_for(self.ravi)
        AgreementClientLink.objects.filter(pk=ravi.pk).update(expires_at=timezone.now() - timedelta(hours=1))
        validate_token(ravi.token)

        self.assertEqual(self.link_for(self.ravi).status, LinkStatus.EXPIRED)
        self.assertEqual(self.status(), AgreementStatus.COMPLETED)


class ExpirySweepTests(SigningTestCase):
    def test_sweep_leaves_fresh_links_alone(self):
        self.send(self.asha, self.ravi)
        AgreementClientLink.objects.filter(pk=self.link_for(self.asha).pk).update(
            expires_at=timezone.now() - timedelta(minutes=1)
        )

        self.assertEqual(expire_stale_links(), 1)
        self.assertEqual(self.link_for(self.ravi).status, LinkStatus.PENDING)
        self.assertEqual(self.status(), AgreementStatus.PENDING)

    def test_sweep_expires_signed_and_unsigned_stale_links(self):
        self.send(self.asha, self.ravi)
        submit_signature(self.link_for(self.ravi).token, self.payload("Ravi Kumar"))
        past = timezone.now() - timedelta(hours=3)
        AgreementClientLink.objects.filter(agreement=self.agreement).update(expires_at=past)

        self.assertEqual(expire_stale_links(), 2)
        self.assertEqual(self.link_for(self.asha).status, LinkStatus.EXPIRED)
        self.assertEqual(self.link_for(self.ravi).status, LinkStatus.EXPIRED)
        self.assertEqual(self.status(), AgreementStatus.COMPLETED)
        self.assertEqual(expire_stale_links(), 0)

    def test_celery_task_runs_the_sweep(self):
        self.send(self.asha)
        AgreementClientLink.objects.update(expires_at=timezone.now() - timedelta(minutes=10))
        self.assertEqual(expire_signature_links.apply().get(), 1)
