"""Initial migration for contacts app - ContactSubmission model."""

from django.db import migrations, models


class Migration(migrations.Migration):
    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="ContactSubmission",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                ("name", models.CharField(max_length=255)),
                ("email", models.EmailField(max_length=254)),
                ("message", models.TextField()),
                (
                    "visitor_data",
                    models.JSONField(
                        blank=True,
                        help_text="IP, location and device details. Empty when enrichment failed.",
                        null=True,
                        verbose_name="visitor data",
                    ),
                ),
                (
                    "submitted_at",
                    models.DateTimeField(blank=True, db_index=True, null=True, verbose_name="submitted"),
                ),
            ],
            options={
                "verbose_name": "contact submission",
                "verbose_name_plural": "contact submissions",
                "ordering": ["-submitted_at"],
            },
        ),
    ]
