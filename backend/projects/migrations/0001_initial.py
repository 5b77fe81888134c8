# backend/projects/migrations/0001_initial.py
from django.conf import settings
from django.db import migrations, models
import django.db.models.deletion


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Client",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("full_name", models.CharField(max_length=255)),
                ("email", models.EmailField(blank=True, max_length=254)),
                ("organization", models.CharField(blank=True, max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("owner", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="clients", to=settings.AUTH_USER_MODEL)),
            ],
            options={"ordering": ["full_name"]},
        ),
        migrations.CreateModel(
            name="Project",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("name", models.CharField(max_length=255)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("owner", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="projects", to=settings.AUTH_USER_MODEL)),
            ],
            options={"ordering": ["-created_at"]},
        ),
        migrations.CreateModel(
            name="Agreement",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("service_provider_name", models.CharField(max_length=255)),
                ("agreement_date", models.DateField()),
                ("service_type", models.CharField(max_length=255)),
                ("start_date", models.DateField(blank=True, null=True)),
                ("end_date", models.DateField(blank=True, null=True)),
                ("duration", models.PositiveIntegerField(blank=True, null=True)),
                ("duration_unit", models.CharField(blank=True, choices=[("days", "Days"), ("weeks", "Weeks"), ("months", "Months")], max_length=10, null=True)),
                ("number_of_revisions", models.PositiveIntegerField(default=0)),
                ("jurisdiction", models.CharField(blank=True, max_length=255, null=True)),
                ("status", models.CharField(choices=[("draft", "Draft"), ("pending", "Pending"), ("completed", "Completed")], db_index=True, default="draft", max_length=20)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("updated_at", models.DateTimeField(auto_now=True)),
                ("owner", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="agreements", to=settings.AUTH_USER_MODEL)),
                ("project", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="agreements", to="projects.project")),
            ],
            options={"ordering": ["-created_at"]},
        ),
        migrations.CreateModel(
            name="AgreementDeliverable",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("description", models.TextField()),
                ("order", models.PositiveIntegerField(default=0)),
                ("agreement", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="deliverables", to="projects.agreement")),
            ],
            options={"ordering": ["order", "id"]},
        ),
        migrations.CreateModel(
            name="AgreementPaymentTerm",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("payment_structure", models.CharField(choices=[
                    ("50-50", "50% Upfront & 50% Upon Completion"),
                    ("100-upfront", "100% Upfront"),
                    ("100-completion", "100% Upon Completion"),
                    ("milestone-based", "Milestone-based"),
                ], max_length=20)),
                ("payment_method", models.CharField(blank=True, max_length=255, null=True)),
                ("agreement", models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name="payment_term", to="projects.agreement")),
            ],
        ),
        migrations.CreateModel(
            name="AgreementPaymentMilestone",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("description", models.TextField()),
                ("amount", models.DecimalField(decimal_places=2, max_digits=15)),
                ("order", models.PositiveIntegerField(default=0)),
                ("milestone_date", models.DateField(blank=True, null=True)),
                ("payment_term", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="milestones", to="projects.agreementpaymentterm")),
            ],
            options={"ordering": ["order", "id"]},
        ),
        migrations.CreateModel(
            name="AgreementSignature",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("signer_type", models.CharField(choices=[("service_provider", "Service Provider"), ("client", "Client")], max_length=20)),
                ("signer_name", models.CharField(max_length=255)),
                ("signature_image_name", models.CharField(max_length=255)),
                ("signature_image_path", models.CharField(max_length=512)),
                ("ip_address", models.GenericIPAddressField(blank=True, null=True)),
                ("timestamp", models.DateTimeField()),
                ("document_id", models.CharField(db_index=True, max_length=128)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("agreement", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="signatures", to="projects.agreement")),
                ("client", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.CASCADE, related_name="agreement_signatures", to="projects.client")),
            ],
            options={
                "ordering": ["created_at", "id"],
                "indexes": [models.Index(fields=["agreement", "signer_type"], name="sig_agreement_signer_idx")],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("signer_type", "service_provider")),
                        fields=("agreement",),
                        name="uniq_provider_signature_per_agreement",
                    ),
                    models.UniqueConstraint(
                        condition=models.Q(("signer_type", "client")),
                        fields=("agreement", "client"),
                        name="uniq_client_signature_per_agreement",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(("client__isnull", False), ("signer_type", "client")),
                            models.Q(("client__isnull", True), ("signer_type", "service_provider")),
                            _connector="OR",
                        ),
                        name="signature_client_matches_signer_type",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="AgreementClientLink",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("token", models.CharField(max_length=64, unique=True)),
                ("expires_at", models.DateTimeField()),
                ("status", models.CharField(choices=[("pending", "Pending"), ("client_signed", "Client Signed"), ("expired", "Expired")], db_index=True, default="pending", max_length=20)),
                ("signed_at", models.DateTimeField(blank=True, null=True)),
                ("email_sent_at", models.DateTimeField(blank=True, null=True)),
                ("created_at", models.DateTimeField(auto_now_add=True)),
                ("agreement", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="client_links", to="projects.agreement")),
                ("client", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="agreement_links", to="projects.client")),
            ],
            options={
                "ordering": ["created_at", "id"],
                "constraints": [
                    models.UniqueConstraint(fields=("agreement", "client"), name="uniq_link_per_agreement_client"),
                ],
            },
        ),
    ]
