import random
import re
from datetime import date
from unittest.mock import patch

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.db import DatabaseError
from django.db.models import QuerySet
from django.test import TestCase, override_settings
from rest_framework.test import APIClient

from common.identifiers import (
    IdentifierResolver,
    generate_device_serial,
    generate_invoice_number,
    local_device_serial,
    local_invoice_number,
    sequence_device_serial,
    sequence_invoice_number,
)
from core.models import AuditLog, Contact, IdentifierSequence, Setting

DEVICE_SERIAL_RE = re.compile(r"^RE\d{6}\d{3}$")
INVOICE_NUMBER_RE = re.compile(r"^INV-\d{6}-\d{3}$")


class IdentifierGenerationTests(TestCase):
    day = date(2026, 10, 19)

    def test_local_device_serial_format(self):
        serial = local_device_serial(self.day, random.Random(7))

        self.assertRegex(serial, DEVICE_SERIAL_RE)
        self.assertTrue(serial.startswith("RE261019"))

    def test_local_invoice_number_format(self):
        number = local_invoice_number(self.day, random.Random(7))

        self.assertRegex(number, INVOICE_NUMBER_RE)
        self.assertTrue(number.startswith("INV-202610-"))

    def test_sequence_serial_counts_per_day(self):
        self.assertEqual(sequence_device_serial(self.day), "RE261019001")
        self.assertEqual(sequence_device_serial(self.day), "RE261019002")
        self.assertEqual(sequence_device_serial(date(2026, 10, 20)), "RE261020001")

    def test_sequence_invoice_number_counts_per_month(self):
        self.assertEqual(sequence_invoice_number(self.day), "INV-202610-001")
        self.assertEqual(sequence_invoice_number(date(2026, 10, 31)), "INV-202610-002")
        self.assertEqual(sequence_invoice_number(date(2026, 11, 1)), "INV-202611-001")

    def test_resolver_falls_back_to_local_when_remote_fails(self):
        def broken_remote(today):
            raise DatabaseError("generator unavailable")

        resolver = IdentifierResolver("device_serial", broken_remote, local_device_serial)
        with self.assertLogs("common.identifiers", level="WARNING") as logs:
            serial = resolver(self.day)

        self.assertRegex(serial, DEVICE_SERIAL_RE)
        self.assertTrue(any("identifier_remote_generation_failed" in line for line in logs.output))

    def test_exhausted_sequence_falls_back_and_keeps_counter(self):
        IdentifierSequence.objects.create(key="device_serial", period="261019", last_value=999)

        with self.assertLogs("common.identifiers", level="WARNING"):
            serial = generate_device_serial(self.day)

        self.assertRegex(serial, DEVICE_SERIAL_RE)
        self.assertEqual(IdentifierSequence.objects.get(key="device_serial", period="261019").last_value, 999)

    @override_settings(IDENTIFIER_STRATEGY="local")
    def test_local_strategy_skips_store_counter(self):
        number = generate_invoice_number(self.day)

        self.assertRegex(number, INVOICE_NUMBER_RE)
        self.assertFalse(IdentifierSequence.objects.exists())


class SettingsApiTests(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.user_model = get_user_model()
        self.admin = self.user_model.objects.create_user(username="settings-admin", password="pass1234", role="admin")
        self.technician = self.user_model.objects.create_user(
            username="settings-tech", password="pass1234", role="technician"
        )
        Setting.objects.create(key="business_name", value="RAKESH ELECTRONICS")

    def test_settings_map_is_public(self):
        response = self.client.get("/api/v1/settings/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"business_name": "RAKESH ELECTRONICS"})

    def test_admin_patch_upserts_each_key_and_is_audited(self):
        self.client.force_authenticate(user=self.admin)

        response = self.client.patch(
            "/api/v1/settings/",
            {"business_name": "Rakesh Electricals", "warranty_days": 120},
            format="json",
            HTTP_X_REQUEST_ID="req-settings",
        )

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json()["warranty_days"], "120")
        self.assertEqual(Setting.objects.get(key="business_name").value, "Rakesh Electricals")
        self.assertEqual(Setting.objects.count(), 2)
        self.assertTrue(AuditLog.objects.filter(action="settings.update", request_id="req-settings").exists())

    def test_technician_cannot_patch_settings_and_denial_is_logged(self):
        self.client.force_authenticate(user=self.technician)
        with self.assertLogs("security.authorization", level="WARNING") as cm:
            response = self.client.patch("/api/v1/settings/", {"business_name": "x"}, format="json")

        self.assertEqual(response.status_code, 403)
        self.assertEqual(response.json()["code"], "permission_denied")
        self.assertTrue(any("permission_denied" in message for message in cm.output))

    def test_patch_rejects_nested_values(self):
        self.client.force_authenticate(user=self.admin)

        response = self.client.patch("/api/v1/settings/", {"business_name": {"a": 1}}, format="json")

        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.json()["code"], "validation_error")


class ContactApiTests(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.staff = get_user_model().objects.create_user(username="desk", password="pass1234", role="staff")

    def _contact(self, name, is_read=False):
        return Contact.objects.create(name=name, email=f"{name}@example.com", message="Hello", is_read=is_read)

    def test_visitor_can_submit_contact_message(self):
        response = self.client.post(
            "/api/v1/contacts/",
            {"name": "Asha", "email": "asha@example.com", "message": "Do you repair coolers?", "is_read": True},
            format="json",
        )

        self.assertEqual(response.status_code, 201)
        self.assertFalse(Contact.objects.get(id=response.json()["id"]).is_read)

    def test_visitor_cannot_list_contacts(self):
        response = self.client.get("/api/v1/contacts/")

        self.assertEqual(response.status_code, 401)
        self.assertEqual(response.json()["code"], "not_authenticated")

    def test_list_filters_unread_and_mark_read(self):
        unread = self._contact("unread")
        self._contact("read", is_read=True)
        self.client.force_authenticate(user=self.staff)

        listing = self.client.get("/api/v1/contacts/?filter=unread")
        mark = self.client.post(f"/api/v1/contacts/{unread.id}/mark-read/")

        self.assertEqual([row["id"] for row in listing.json()["results"]], [str(unread.id)])
        self.assertEqual(mark.status_code, 200)
        self.assertTrue(mark.json()["is_read"])

    def test_mark_all_read_updates_every_unread_row(self):
        for name in ("a", "b", "c"):
            self._contact(name)
        self.client.force_authenticate(user=self.staff)

        response = self.client.post("/api/v1/contacts/mark-all-read/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"updated": 3})
        self.assertFalse(Contact.objects.filter(is_read=False).exists())

    def test_mark_all_read_stops_at_first_failure_and_keeps_earlier_updates(self):
        for name in ("a", "b", "c"):
            self._contact(name)
        self.client.force_authenticate(user=self.staff)

        original_update = QuerySet.update
        calls = []

        def flaky_update(queryset, **kwargs):
            calls.append(kwargs)
            if len(calls) == 2:
                raise DatabaseError("connection dropped")
            return original_update(queryset, **kwargs)

        with patch.object(QuerySet, "update", autospec=True, side_effect=flaky_update):
            with self.assertLogs("common.exceptions", level="ERROR"):
                response = self.client.post("/api/v1/contacts/mark-all-read/")

        self.assertEqual(response.status_code, 503)
        self.assertEqual(response.json()["code"], "store_unavailable")
        self.assertEqual(Contact.objects.filter(is_read=True).count(), 1)
        self.assertEqual(Contact.objects.filter(is_read=False).count(), 2)


class AuthAndAuditTests(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.user_model = get_user_model()
        self.admin = self.user_model.objects.create_user(
            username="owner", email="Owner@Example.com", password="pass1234", role="admin"
        )
        self.staff = self.user_model.objects.create_user(username="desk-audit", password="pass1234", role="staff")

    def test_email_is_normalized_and_usable_for_login(self):
        self.assertEqual(self.admin.email, "owner@example.com")

        response = self.client.post(
            "/api/v1/token/", {"username": "OWNER@example.com", "password": "pass1234"}, format="json"
        )

        self.assertEqual(response.status_code, 200)
        self.assertIn("access", response.json())

    def test_audit_logs_are_admin_only_and_read_only(self):
        log = AuditLog.objects.create(action="test.action", entity="test", actor=self.admin)

        self.client.force_authenticate(user=self.staff)
        staff_response = self.client.get("/api/v1/admin/audit-logs/")
        self.client.force_authenticate(user=self.admin)
        admin_response = self.client.get("/api/v1/admin/audit-logs/?entity=test")
        patch_response = self.client.patch(f"/api/v1/admin/audit-logs/{log.id}/", {"action": "x"}, format="json")

        self.assertEqual(staff_response.status_code, 403)
        self.assertEqual(admin_response.status_code, 200)
        self.assertEqual(admin_response.json()["count"], 1)
        self.assertEqual(admin_response.json()["total_pages"], 1)
        self.assertEqual(patch_response.status_code, 405)

    def test_audit_log_export_is_csv(self):
        AuditLog.objects.create(action="test.action", entity="test", actor=self.admin, request_id="req-1")
        self.client.force_authenticate(user=self.admin)

        response = self.client.get("/api/v1/admin/audit-logs/export/")

        self.assertEqual(response.status_code, 200)
        self.assertEqual(response["Content-Type"], "text/csv")
        self.assertIn("req-1", response.content.decode())

    def test_health_endpoints(self):
        self.assertEqual(self.client.get("/healthz/").json()["status"], "ok")
        self.assertEqual(self.client.get("/readyz/").json()["status"], "ready")
