"""Contacts app admin configuration."""

from django.contrib import admin

from .display import location_display
from .models import ContactSubmission


@admin.register(ContactSubmission)
class ContactSubmissionAdmin(admin.ModelAdmin):
    """Admin interface for contact form submissions."""

    list_display = ("name", "email", "ip_address", "location", "submitted_at")
    list_filter = ("submitted_at",)
    search_fields = ("name", "email", "message")
    readonly_fields = ("visitor_data", "submitted_at")
    ordering = ("-submitted_at",)

    @admin.display(description="IP address")
    def ip_address(self, obj: ContactSubmission) -> str:
        return (obj.visitor_data or {}).get("ip") or ""

    @admin.display(description="location")
    def location(self, obj: ContactSubmission) -> str:
        return location_display((obj.visitor_data or {}).get("location"))
