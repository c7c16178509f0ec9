"""Contacts app models."""

from typing import ClassVar

from django.db import models


class ContactSubmission(models.Model):
    """Stores contact form submissions and the visitor telemetry captured with them."""

    name = models.CharField(max_length=255)
    email = models.EmailField()
    message = models.TextField()
    visitor_data = models.JSONField(
        "visitor data",
        null=True,
        blank=True,
        help_text="IP, location and device details. Empty when enrichment failed.",
    )
    submitted_at = models.DateTimeField("submitted", null=True, blank=True, db_index=True)

    class Meta:
        ordering: ClassVar[list[str]] = ["-submitted_at"]
        verbose_name = "contact submission"
        verbose_name_plural = "contact submissions"

    def __str__(self) -> str:
        if self.submitted_at:
            return f"{self.name} - {self.email} ({self.submitted_at:%Y-%m-%d})"
        return f"{self.name} - {self.email}"
