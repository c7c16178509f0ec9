"""Contacts app URL configuration."""

from django.urls import path

from . import views

app_name = "contacts"

urlpatterns = [
    # Public API
    path("api/contact/", views.ContactSubmitView.as_view(), name="contact_submit"),
    # Dashboard
    path("dashboard/submissions/", views.SubmissionListView.as_view(), name="dashboard_submissions"),
    path("dashboard/submissions/stats/", views.SubmissionStatsView.as_view(), name="dashboard_submission_stats"),
    path("dashboard/submissions/export/", views.SubmissionExportView.as_view(), name="dashboard_submissions_export"),
    path(
        "dashboard/submissions/bulk-delete/",
        views.SubmissionBulkDeleteView.as_view(),
        name="dashboard_submissions_bulk_delete",
    ),
]
