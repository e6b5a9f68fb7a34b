from datetime import timedelta
from decimal import Decimal
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.db import DatabaseError
from django.test import TestCase
from rest_framework.exceptions import ValidationError
from rest_framework.test import APIClient

from common.utils import today as local_today
from core.models import AuditLog, Setting
from repairs import services
from repairs.lookup import tracking_step
from repairs.models import Booking, DeviceEntry, Warranty
from repairs.receipts import job_id, render_booking_job_card, render_device_receipt
from repairs.reports import booking_stats, popular_devices

User = get_user_model()

DEVICE_ENTRY_PAYLOAD = {
    "customer_name": "Ram Kumar",
    "mobile_number": "9876543210",
    "device_type": "Ceiling Fan",
    "problem_description": "not spinning",
}


def make_entry(**overrides):
    return services.create_device_entry({**DEVICE_ENTRY_PAYLOAD, **overrides})


def make_booking(**overrides):
    data = {
        "customer_name": "Ram Kumar",
        "phone": "9876543210",
        "device_type": "Ceiling Fan",
        "issue_description": "Noise at high speed",
    }
    data.update(overrides)
    return services.create_booking(data)


def make_warranty(**overrides):
    data = {"customer_name": "Ram Kumar", "customer_phone": "9876543210", "device_type": "Ceiling Fan"}
    data.update(overrides)
    return services.create_warranty(data)


class RepairsApiTestCase(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.admin = User.objects.create_user(username="admin-r", password="pass1234", role="admin")
        self.staff = User.objects.create_user(username="staff-r", password="pass1234", role="staff")
        self.technician = User.objects.create_user(username="tech-r", password="pass1234", role="technician")


class DeviceEntryLifecycleTests(RepairsApiTestCase):
    def test_intake_to_delivery(self):
        self.client.force_authenticate(user=self.technician)

        created = self.client.post("/api/v1/device-entries/", DEVICE_ENTRY_PAYLOAD, format="json")

        self.assertEqual(created.status_code, 201)
        body = created.json()
        self.assertEqual(body["status"], "received")
        self.assertRegex(body["serial_number"], r"^RE\d{9}$")
        self.assertEqual(body["received_date"], local_today().isoformat())
        self.assertIsNone(body["delivered_date"])

        for expected in ("in-repair", "ready", "delivered"):
            response = self.client.post(f"/api/v1/device-entries/{body['id']}/advance/")
            self.assertEqual(response.status_code, 200)
            self.assertEqual(response.json()["status"], expected)

        entry = DeviceEntry.objects.get(id=body["id"])
        self.assertEqual(entry.delivered_date, local_today())
        self.assertIsNone(response.json()["next_status"])
        self.assertEqual(AuditLog.objects.filter(action="device_entry.advance", entity_id=entry.id).count(), 3)

    def test_advance_past_delivered_is_rejected(self):
        entry = make_entry()
        services.update_device_entry(entry, {"status": DeviceEntry.Status.DELIVERED})
        self.client.force_authenticate(user=self.staff)

        response = self.client.post(f"/api/v1/device-entries/{entry.id}/advance/")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "validation_error")

    def test_create_ignores_caller_status_and_dates(self):
        self.client.force_authenticate(user=self.staff)
        payload = {**DEVICE_ENTRY_PAYLOAD, "status": "ready", "delivered_date": "2020-01-01", "received_date": "2020-01-01"}

        response = self.client.post("/api/v1/device-entries/", payload, format="json")

        self.assertEqual(response.status_code, 201)
        entry = DeviceEntry.objects.get(id=response.json()["id"])
        self.assertEqual(entry.status, DeviceEntry.Status.RECEIVED)
        self.assertEqual(entry.received_date, local_today())
        self.assertIsNone(entry.delivered_date)

    def test_missing_required_fields_write_nothing(self):
        self.client.force_authenticate(user=self.staff)

        response = self.client.post(
            "/api/v1/device-entries/", {"customer_name": "Ram Kumar", "mobile_number": " "}, format="json"
        )

        self.assertEqual(response.status_code, 400)
        self.assertIn("device_type", response.json()["errors"])
        self.assertFalse(DeviceEntry.objects.exists())

    def test_service_rejects_blank_required_fields(self):
        with self.assertRaises(ValidationError) as ctx:
            services.create_device_entry({**DEVICE_ENTRY_PAYLOAD, "customer_name": "  "})

        self.assertIn("customer_name", ctx.exception.detail)
        self.assertFalse(DeviceEntry.objects.exists())

    def test_delivered_date_is_filled_only_when_missing(self):
        explicit = make_entry()
        implicit = make_entry()
        given = local_today() - timedelta(days=3)

        services.update_device_entry(explicit, {"status": DeviceEntry.Status.DELIVERED, "delivered_date": given})
        services.update_device_entry(implicit, {"status": DeviceEntry.Status.DELIVERED})

        explicit.refresh_from_db()
        implicit.refresh_from_db()
        self.assertEqual(explicit.delivered_date, given)
        self.assertEqual(implicit.delivered_date, local_today())

    def test_patch_to_delivered_sets_delivered_date(self):
        entry = make_entry()
        self.client.force_authenticate(user=self.staff)

        response = self.client.patch(f"/api/v1/device-entries/{entry.id}/", {"status": "delivered"}, format="json")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["delivered_date"], local_today().isoformat())

    def test_list_filters_and_rejects_unknown_status(self):
        make_entry()
        ready = make_entry(customer_name="Sita Devi", mobile_number="9123456780")
        services.update_device_entry(ready, {"status": DeviceEntry.Status.READY})
        self.client.force_authenticate(user=self.staff)

        filtered = self.client.get("/api/v1/device-entries/?status=ready")
        searched = self.client.get("/api/v1/device-entries/?search=sita")
        bad = self.client.get("/api/v1/device-entries/?status=lost")

        self.assertEqual([row["id"] for row in filtered.json()["results"]], [str(ready.id)])
        self.assertEqual(searched.json()["count"], 1)
        self.assertEqual(bad.status_code, 400)

    def test_by_serial_and_today_count(self):
        entry = make_entry()
        self.client.force_authenticate(user=self.staff)

        found = self.client.get(f"/api/v1/device-entries/by-serial/?serial={entry.serial_number}")
        missing = self.client.get("/api/v1/device-entries/by-serial/?serial=RE000000000")
        count = self.client.get("/api/v1/device-entries/today-count/")

        self.assertEqual(found.json()["result"]["id"], str(entry.id))
        self.assertIsNone(missing.json()["result"])
        self.assertEqual(count.json()["count"], 1)

    def test_only_admin_can_delete(self):
        entry = make_entry()

        self.client.force_authenticate(user=self.technician)
        with self.assertLogs("security.authorization", level="WARNING"):
            denied = self.client.delete(f"/api/v1/device-entries/{entry.id}/")
        self.client.force_authenticate(user=self.admin)
        deleted = self.client.delete(f"/api/v1/device-entries/{entry.id}/")

        self.assertEqual(denied.status_code, 403)
        self.assertEqual(deleted.status_code, 204)
        self.assertFalse(DeviceEntry.objects.exists())
        self.assertTrue(AuditLog.objects.filter(action="device_entry.delete").exists())

    def test_failed_audit_write_rolls_back_the_intake(self):
        self.client.force_authenticate(user=self.technician)

        with patch.object(AuditLog.objects, "create", side_effect=DatabaseError("audit table locked")):
            with self.assertLogs("common.exceptions", level="ERROR"):
                response = self.client.post("/api/v1/device-entries/", DEVICE_ENTRY_PAYLOAD, format="json")

        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json()["code"], "store_unavailable")
        self.assertFalse(DeviceEntry.objects.exists())

    def test_failed_delete_leaves_no_delete_audit_row(self):
        entry = make_entry()
        self.client.force_authenticate(user=self.admin)

        with patch.object(DeviceEntry, "delete", side_effect=DatabaseError("row locked")):
            with self.assertLogs("common.exceptions", level="ERROR"):
                response = self.client.delete(f"/api/v1/device-entries/{entry.id}/")

        self.assertEqual(response.status_code, 503)
        self.assertTrue(DeviceEntry.objects.filter(id=entry.id).exists())
        self.assertFalse(AuditLog.objects.filter(action="device_entry.delete").exists())

    def test_failed_audit_write_rolls_back_status_step(self):
        entry = make_entry()
        self.client.force_authenticate(user=self.technician)

        with patch.object(AuditLog.objects, "create", side_effect=DatabaseError("audit table locked")):
            with self.assertLogs("common.exceptions", level="ERROR"):
                response = self.client.post(f"/api/v1/device-entries/{entry.id}/advance/")

        self.assertEqual(response.status_code, 503)
        entry.refresh_from_db()
        self.assertEqual(entry.status, DeviceEntry.Status.RECEIVED)

    def test_receipt_lists_serial_and_estimate(self):
        entry = make_entry(village_name="Rampur", winding_type="copper")

        receipt = render_device_receipt(entry, shop={"name": "RAKESH ELECTRONICS", "phone": "+91 98765 43210"})

        self.assertIn(entry.serial_number, receipt)
        self.assertIn("Write this number on device", receipt)
        self.assertIn("Rampur", receipt)
        self.assertIn("Winding:", receipt)
        self.assertNotIn("HP:", receipt)
        self.assertRegex(receipt, r"Est\. Cost:\s+TBD")

    def test_receipt_endpoint_returns_plain_text(self):
        entry = make_entry(estimated_cost=Decimal("650.00"))
        self.client.force_authenticate(user=self.technician)

        response = self.client.get(f"/api/v1/device-entries/{entry.id}/receipt/")

        self.assertEqual(response.status_code, 200)
        self.assertTrue(response["Content-Type"].startswith("text/plain"))
        self.assertIn("₹650.00", response.content.decode())


class BookingTests(RepairsApiTestCase):
    def test_public_booking_is_pending_with_medium_priority(self):
        response = self.client.post(
            "/api/v1/bookings/",
            {
                "customer_name": "Asha",
                "phone": "9000000001",
                "device_type": "Mixer Grinder",
                "issue_description": "Jar leaks",
                "status": "completed",
                "priority": "high",
            },
            format="json",
        )

        self.assertEqual(response.status_code, 201)
        booking = Booking.objects.get(id=response.json()["id"])
        self.assertEqual(booking.status, Booking.Status.PENDING)
        self.assertEqual(booking.priority, Booking.Priority.MEDIUM)

    def test_visitors_cannot_list_bookings(self):
        self.assertEqual(self.client.get("/api/v1/bookings/").status_code, 401)

    def test_completing_a_booking_sets_completed_date(self):
        booking = make_booking()
        self.client.force_authenticate(user=self.technician)

        response = self.client.patch(f"/api/v1/bookings/{booking.id}/", {"status": "completed"}, format="json")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["completed_date"], local_today().isoformat())

    def test_advance_and_cancel(self):
        booking = make_booking()
        self.client.force_authenticate(user=self.staff)

        advanced = self.client.post(f"/api/v1/bookings/{booking.id}/advance/")
        cancelled = self.client.post(f"/api/v1/bookings/{booking.id}/cancel/")
        again = self.client.post(f"/api/v1/bookings/{booking.id}/cancel/")

        self.assertEqual(advanced.json()["status"], "in-progress")
        self.assertEqual(cancelled.json()["status"], "cancelled")
        self.assertEqual(again.status_code, 400)
        self.assertTrue(AuditLog.objects.filter(action="booking.cancel").exists())

    def test_completed_booking_cannot_be_cancelled(self):
        booking = make_booking()
        services.update_booking(booking, {"status": Booking.Status.COMPLETED})

        with self.assertRaises(ValidationError):
            services.cancel_booking(booking)

    def test_job_card_uses_short_job_id(self):
        booking = make_booking(brand="Bajaj")

        card = render_booking_job_card(booking, shop={"name": "RAKESH ELECTRONICS", "phone": "+91 98765 43210"})

        self.assertEqual(job_id(booking), str(booking.id)[:8].upper())
        self.assertIn(job_id(booking), card)
        self.assertIn("PENDING", card)
        self.assertRegex(card, r"Technician:\s+Not assigned")


class WarrantyTests(RepairsApiTestCase):
    def test_defaults_use_configured_warranty_days(self):
        Setting.objects.create(key="warranty_days", value="30")

        warranty = make_warranty()

        self.assertEqual(warranty.start_date, local_today())
        self.assertEqual(warranty.warranty_days, 30)
        self.assertEqual(warranty.end_date, local_today() + timedelta(days=30))
        self.assertEqual(warranty.status, Warranty.Status.ACTIVE)

    def test_active_excludes_warranties_past_end_date(self):
        current = make_warranty()
        make_warranty(start_date=local_today() - timedelta(days=200), warranty_days=90)
        self.client.force_authenticate(user=self.staff)

        response = self.client.get("/api/v1/warranties/active/")

        self.assertEqual([row["id"] for row in response.json()], [str(current.id)])

    def test_expiring_window(self):
        soon = make_warranty(start_date=local_today() - timedelta(days=85), warranty_days=90)
        make_warranty(warranty_days=30)
        self.client.force_authenticate(user=self.staff)

        response = self.client.get("/api/v1/warranties/expiring/")
        bad = self.client.get("/api/v1/warranties/expiring/?days=900")

        self.assertEqual([row["id"] for row in response.json()], [str(soon.id)])
        self.assertEqual(bad.status_code, 400)

    def test_changing_start_date_recomputes_end_date(self):
        warranty = make_warranty(warranty_days=90)
        new_start = local_today() - timedelta(days=10)

        services.update_warranty(warranty, {"start_date": new_start})

        warranty.refresh_from_db()
        self.assertEqual(warranty.end_date, new_start + timedelta(days=90))

    def test_void_is_admin_only_and_idempotent(self):
        warranty = make_warranty()

        self.client.force_authenticate(user=self.staff)
        denied = self.client.post(f"/api/v1/warranties/{warranty.id}/void/")
        self.client.force_authenticate(user=self.admin)
        first = self.client.post(f"/api/v1/warranties/{warranty.id}/void/")
        second = self.client.post(f"/api/v1/warranties/{warranty.id}/void/")

        self.assertEqual(denied.status_code, 403)
        self.assertEqual(first.json()["status"], "void")
        self.assertEqual(second.status_code, 200)
        self.assertEqual(second.json()["status"], "void")

    def test_patch_cannot_void_a_warranty(self):
        warranty = make_warranty()
        self.client.force_authenticate(user=self.staff)

        response = self.client.patch(f"/api/v1/warranties/{warranty.id}/", {"status": "void"}, format="json")

        self.assertEqual(response.status_code, 400)
        self.assertIn("status", response.json()["errors"])
        warranty.refresh_from_db()
        self.assertEqual(warranty.status, Warranty.Status.ACTIVE)

    def test_void_warranty_cannot_be_reactivated(self):
        warranty = services.void_warranty(make_warranty())
        self.client.force_authenticate(user=self.admin)

        response = self.client.patch(f"/api/v1/warranties/{warranty.id}/", {"status": "active"}, format="json")

        self.assertEqual(response.status_code, 400)
        warranty.refresh_from_db()
        self.assertEqual(warranty.status, Warranty.Status.VOID)

    def test_manual_expired_status_is_still_allowed(self):
        warranty = make_warranty()

        services.update_warranty(warranty, {"status": Warranty.Status.EXPIRED})

        warranty.refresh_from_db()
        self.assertEqual(warranty.status, Warranty.Status.EXPIRED)

    def test_within_window_requires_active_status_and_current_end_date(self):
        current = make_warranty()
        lapsed = make_warranty(start_date=local_today() - timedelta(days=200), warranty_days=90)
        voided = services.void_warranty(make_warranty())
        self.client.force_authenticate(user=self.staff)

        lapsed_body = self.client.get(f"/api/v1/warranties/{lapsed.id}/").json()

        self.assertEqual(lapsed_body["status"], "active")
        self.assertFalse(lapsed_body["is_within_window"])
        self.assertTrue(self.client.get(f"/api/v1/warranties/{current.id}/").json()["is_within_window"])
        self.assertFalse(self.client.get(f"/api/v1/warranties/{voided.id}/").json()["is_within_window"])

    def test_claim_increments_claim_count(self):
        warranty = make_warranty()
        self.client.force_authenticate(user=self.staff)

        created = self.client.post(
            f"/api/v1/warranties/{warranty.id}/claims/", {"issue_description": "Stopped again"}, format="json"
        )
        listing = self.client.get(f"/api/v1/warranties/{warranty.id}/claims/")

        self.assertEqual(created.status_code, 201)
        self.assertEqual(created.json()["status"], "open")
        self.assertEqual(len(listing.json()), 1)
        warranty.refresh_from_db()
        self.assertEqual(warranty.claim_count, 1)
        self.assertEqual(warranty.status, Warranty.Status.ACTIVE)

    def test_claim_list_rejects_malformed_warranty_filter(self):
        self.client.force_authenticate(user=self.staff)

        response = self.client.get("/api/v1/warranty-claims/?warranty=not-a-uuid")

        self.assertEqual(response.status_code, 400)


class TrackRepairTests(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()

    def test_tracking_steps(self):
        self.assertEqual(tracking_step("received"), 1)
        self.assertEqual(tracking_step("pending"), 1)
        self.assertEqual(tracking_step("in-progress"), 2)
        self.assertEqual(tracking_step("ready"), 3)
        self.assertEqual(tracking_step("completed"), 3)
        self.assertEqual(tracking_step("delivered"), 4)
        self.assertEqual(tracking_step("cancelled"), 0)

    def test_serial_lookup_is_partial_and_case_insensitive(self):
        entry = make_entry(serial_number="RE261019042")
        make_entry(serial_number="RE261019777")

        response = self.client.get("/api/v1/track/?mode=serial&value=re261019042")

        body = response.json()
        self.assertEqual(response.status_code, 200)
        self.assertEqual(body["total_results"], 1)
        self.assertEqual(body["results"][0]["kind"], "device_entry")
        self.assertEqual(body["results"][0]["record"]["id"], str(entry.id))
        self.assertEqual(body["results"][0]["tracking_step"], 1)

    def test_visitor_lookup_hides_internal_fields(self):
        make_entry(serial_number="RE261019042", address="12 Mill Road", notes="owes 200", estimated_cost="850.00")
        make_warranty(notes="paid cash")

        serial = self.client.get("/api/v1/track/?mode=serial&value=RE261019042").json()
        phone = self.client.get("/api/v1/track/?mode=phone&value=9876543210").json()

        record = serial["results"][0]["record"]
        self.assertEqual(record["status"], "received")
        for field in ("notes", "address", "estimated_cost", "advance_paid", "mobile_number"):
            self.assertNotIn(field, record)
        warranty_record = next(row["record"] for row in phone["results"] if row["kind"] == "warranty")
        self.assertNotIn("notes", warranty_record)
        self.assertNotIn("customer_phone", warranty_record)

    def test_signed_in_staff_lookup_returns_full_record(self):
        make_entry(serial_number="RE261019042", estimated_cost="850.00")
        staff = User.objects.create_user(username="track-staff", password="pass1234", role="staff")
        self.client.force_authenticate(user=staff)

        response = self.client.get("/api/v1/track/?mode=serial&value=RE261019042")

        record = response.json()["results"][0]["record"]
        self.assertEqual(record["estimated_cost"], "850.00")
        self.assertEqual(record["mobile_number"], "9876543210")

    def test_phone_lookup_merges_all_sources(self):
        make_entry()
        make_booking()
        make_warranty(start_date=local_today() - timedelta(days=200), warranty_days=90)
        make_booking(phone="9000000000")

        response = self.client.get("/api/v1/track/?mode=phone&value=9876543210")

        body = response.json()
        self.assertEqual(body["total_results"], 3)
        self.assertEqual({row["kind"] for row in body["results"]}, {"device_entry", "booking", "warranty"})
        warranty_row = next(row for row in body["results"] if row["kind"] == "warranty")
        self.assertTrue(warranty_row["is_expired"])
        self.assertEqual(body["failed_sources"], [])

    def test_empty_value_and_unknown_mode_are_rejected(self):
        self.assertEqual(self.client.get("/api/v1/track/?mode=phone&value=%20").status_code, 400)
        self.assertEqual(self.client.get("/api/v1/track/?mode=email&value=x").status_code, 400)

    def test_failed_source_is_reported_alongside_results(self):
        make_entry()
        make_booking()

        with patch.object(Booking.objects, "filter", side_effect=DatabaseError("bookings unavailable")):
            with self.assertLogs("repairs.lookup", level="ERROR"):
                response = self.client.get("/api/v1/track/?mode=phone&value=9876543210")

        body = response.json()
        self.assertEqual(response.status_code, 200)
        self.assertEqual(body["failed_sources"], ["booking"])
        self.assertEqual([row["kind"] for row in body["results"]], ["device_entry"])

    def test_lookup_fails_when_every_source_fails(self):
        with patch.object(DeviceEntry.objects, "filter", side_effect=DatabaseError("down")):
            with self.assertLogs("repairs.lookup", level="ERROR"):
                response = self.client.get("/api/v1/track/?mode=serial&value=RE1")

        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json()["code"], "lookup_failed")


class AnalyticsTests(RepairsApiTestCase):
    def test_booking_stats_average_counts_costed_bookings_only(self):
        completed = make_booking()
        services.update_booking(completed, {"status": Booking.Status.COMPLETED, "actual_cost": Decimal("500")})
        second = make_booking(device_type="Mixer Grinder")
        services.update_booking(second, {"actual_cost": Decimal("250")})
        make_booking(device_type="Mixer Grinder")

        stats = booking_stats()

        self.assertEqual(stats["total_bookings"], 3)
        self.assertEqual(stats["pending_bookings"], 2)
        self.assertEqual(stats["completed_bookings"], 1)
        self.assertEqual(stats["total_revenue"], Decimal("750.00"))
        self.assertEqual(stats["avg_repair_cost"], Decimal("375.00"))

    def test_popular_devices_ranks_by_count(self):
        make_booking()
        make_booking(device_type="Mixer Grinder")
        make_booking(device_type="Mixer Grinder")

        self.assertEqual(
            popular_devices(),
            [
                {"device_type": "Mixer Grinder", "repair_count": 2},
                {"device_type": "Ceiling Fan", "repair_count": 1},
            ],
        )

    def test_dashboard_summary_is_front_desk_only(self):
        make_entry()
        make_booking()
        make_warranty()

        self.client.force_authenticate(user=self.technician)
        denied = self.client.get("/api/v1/dashboard/summary/")
        self.client.force_authenticate(user=self.staff)
        response = self.client.get("/api/v1/dashboard/summary/")

        self.assertEqual(denied.status_code, 403)
        self.assertEqual(response.status_code, 200)
        summary = response.json()
        self.assertEqual(summary["today_device_entries"], 1)
        self.assertEqual(summary["pending_device_entries"], 1)
        self.assertEqual(summary["pending_bookings"], 1)
        self.assertEqual(summary["active_warranties"], 1)

    def test_bookings_by_date_csv_export(self):
        make_booking()
        self.client.force_authenticate(user=self.staff)

        response = self.client.get("/api/v1/analytics/bookings-by-date/?format=csv")

        self.assertEqual(response.status_code, 200)
        self.assertIn(local_today().isoformat(), response.content.decode())
