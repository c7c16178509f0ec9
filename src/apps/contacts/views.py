"""Contacts app views: the public submit endpoint and the JSON/CSV dashboard."""

import json
import logging

from django.http import HttpRequest, HttpResponse, JsonResponse
from django.utils import timezone
from django.utils.decorators import method_decorator
from django.views import View
from django.views.decorators.csrf import csrf_exempt

from apps.telemetry.collector import ClientReportedGeolocation, collect_device_details
from apps.telemetry.enrichment import gather_visitor_data

from .dashboard import Dashboard, DashboardLoadError
from .export import CSV_CONTENT_TYPE, export_filename
from .forms import EMPTY_FORM, ContactForm
from .notifications import send_contact_notification
from .query import COLUMNS, ViewState, toggle_sort, with_selection
from .writer import SubmissionWriter

logger = logging.getLogger(__name__)


def _parse_json_body(request: HttpRequest) -> dict | None:
    try:
        data = json.loads(request.body)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    return data if isinstance(data, dict) else None


def _dashboard_payload(dashboard: Dashboard) -> dict:
    page = dashboard.page()
    state = dashboard.state
    return {
        "stats": dashboard.stats().as_dict(),
        "pagination": page.as_dict(),
        "results": [row.as_dict() for row in page.rows],
        "state": {
            **state.to_query(),
            "visible_columns": dict(state.visible_columns),
            "selected": sorted(state.selected),
        },
        "sort_links": {column: toggle_sort(state, column).to_query() for column in COLUMNS},
    }


@method_decorator(csrf_exempt, name="dispatch")
class ContactSubmitView(View):
    """Accept a contact form submission, enrich it with visitor telemetry and store it."""

    async def post(self, request: HttpRequest) -> JsonResponse:
        data = _parse_json_body(request)
        if data is None:
            return JsonResponse({"error": "Invalid JSON body"}, status=400)

        form = ContactForm(data)
        if not form.is_valid():
            details = {name: " ".join(errors) for name, errors in form.errors.items()}
            return JsonResponse({"error": "Validation failed", "details": details}, status=400)

        form_state = dict(form.cleaned_data)

        device_details = collect_device_details(request, data.get("device"))
        visitor_data = await gather_visitor_data(
            geolocation=ClientReportedGeolocation(data.get("geolocation")),
            device_details=device_details,
        )

        submission = {
            **form.cleaned_data,
            "visitor_data": visitor_data,
            "submitted_at": timezone.now(),
        }

        def reset_form(_result) -> None:
            form_state.update(EMPTY_FORM)

        result = await SubmissionWriter().write(submission, on_success=reset_form)

        if not result.ok:
            logger.warning("Contact submission from %s not saved (%s)", form_state["email"], result.error.code)
            return JsonResponse(
                {
                    "status": "error",
                    "code": result.error.code,
                    "message": result.message,
                    "attempts": len(result.attempts),
                    "form": form_state,
                },
                status=503,
            )

        await send_contact_notification(result.record_id, submission)

        return JsonResponse(
            {
                "status": "success",
                "id": result.record_id,
                "message": result.message,
                "form": form_state,
            },
            status=201,
        )


class SubmissionListView(View):
    """Dashboard: one page of filtered, sorted submissions plus header stats."""

    async def get(self, request: HttpRequest) -> JsonResponse:
        dashboard = Dashboard(state=ViewState.from_query(request.GET))
        try:
            await dashboard.load()
        except DashboardLoadError as exc:
            return JsonResponse({"error": str(exc)}, status=503)
        return JsonResponse(_dashboard_payload(dashboard))


class SubmissionStatsView(View):
    """Dashboard: total/today/this week/this month counters."""

    async def get(self, request: HttpRequest) -> JsonResponse:
        dashboard = Dashboard()
        try:
            await dashboard.load()
        except DashboardLoadError as exc:
            return JsonResponse({"error": str(exc)}, status=503)
        return JsonResponse(dashboard.stats().as_dict())


class SubmissionExportView(View):
    """Export the filtered submissions as CSV."""

    async def get(self, request: HttpRequest) -> HttpResponse:
        dashboard = Dashboard(state=ViewState.from_query(request.GET))
        try:
            await dashboard.load()
        except DashboardLoadError as exc:
            return JsonResponse({"error": str(exc)}, status=503)

        response = HttpResponse(dashboard.export_csv(), content_type=CSV_CONTENT_TYPE)
        response["Content-Disposition"] = f'attachment; filename="{export_filename()}"'
        return response


@method_decorator(csrf_exempt, name="dispatch")
class SubmissionBulkDeleteView(View):
    """
    Delete a set of submissions.

    Body: ``{"ids": [...]}`` or ``{"select_all": true, "q": ..., "columns": ...}``
    to delete every submission matching the current filter.
    """

    async def post(self, request: HttpRequest) -> JsonResponse:
        data = _parse_json_body(request)
        if data is None:
            return JsonResponse({"error": "Invalid JSON body"}, status=400)

        ids = data.get("ids")
        select_all = data.get("select_all") is True
        if not select_all and (not isinstance(ids, list) or not ids):
            return JsonResponse(
                {"error": "Validation failed", "details": {"ids": "Provide a non-empty list of ids or select_all"}},
                status=400,
            )

        dashboard = Dashboard(state=ViewState.from_query(data))
        try:
            await dashboard.load()
        except DashboardLoadError as exc:
            return JsonResponse({"error": str(exc)}, status=503)

        if select_all:
            dashboard.select_all()
        else:
            dashboard.state = with_selection(dashboard.state, [str(record_id) for record_id in ids])
        result = await dashboard.bulk_delete()

        payload = {
            "deleted": result.deleted,
            "failed": result.failed,
            "error": result.error,
            **_dashboard_payload(dashboard),
        }
        return JsonResponse(payload, status=200 if result.ok else 500)
