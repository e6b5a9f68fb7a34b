from decimal import Decimal

from django.contrib.auth import get_user_model
from django.core.cache import cache
from django.test import TestCase
from rest_framework.test import APIClient

from catalog.models import Product, ServiceRate
from catalog.services import low_stock_products
from core.models import AuditLog, Setting


class CatalogApiTests(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        user_model = get_user_model()
        self.admin = user_model.objects.create_user(username="catalog-admin", password="pass1234", role="admin")
        self.staff = user_model.objects.create_user(username="catalog-staff", password="pass1234", role="staff")

        self.fan = Product.objects.create(
            name="Ceiling Fan 1200mm", category=Product.Category.FANS, price=Decimal("2450.00"), stock=12, is_featured=True
        )
        self.retired = Product.objects.create(
            name="Old Table Fan", category=Product.Category.FANS, price=Decimal("900.00"), stock=0, is_active=False
        )
        self.capacitor = Product.objects.create(
            name="Fan Capacitor", category=Product.Category.SPARE_PARTS, price=Decimal("45.00"), stock=2
        )

    def test_visitors_see_active_products_only(self):
        response = self.client.get("/api/v1/products/")

        self.assertEqual(response.status_code, 200)
        names = [row["name"] for row in response.json()["results"]]
        self.assertEqual(names, ["Ceiling Fan 1200mm", "Fan Capacitor"])

    def test_admin_sees_inactive_products(self):
        self.client.force_authenticate(user=self.admin)

        response = self.client.get("/api/v1/products/")

        self.assertEqual(response.json()["count"], 3)

    def test_filters_validate_category_and_featured(self):
        featured = self.client.get("/api/v1/products/?featured=true")
        spare = self.client.get("/api/v1/products/?category=spare-parts")
        bad = self.client.get("/api/v1/products/?category=toys")

        self.assertEqual([row["id"] for row in featured.json()["results"]], [str(self.fan.id)])
        self.assertEqual([row["id"] for row in spare.json()["results"]], [str(self.capacitor.id)])
        self.assertEqual(bad.status_code, 400)

    def test_only_admin_can_write_products(self):
        payload = {"name": "Mixer Grinder", "category": "appliances", "price": "3299.00", "stock": 4}

        self.client.force_authenticate(user=self.staff)
        denied = self.client.post("/api/v1/products/", payload, format="json")
        self.client.force_authenticate(user=self.admin)
        created = self.client.post("/api/v1/products/", payload, format="json")
        negative = self.client.post("/api/v1/products/", {**payload, "price": "-1"}, format="json")

        self.assertEqual(denied.status_code, 403)
        self.assertEqual(created.status_code, 201)
        self.assertEqual(negative.status_code, 400)
        self.assertTrue(AuditLog.objects.filter(action="product.create").exists())

    def test_low_stock_uses_configured_threshold(self):
        Product.objects.create(name="Fan Blade", category=Product.Category.SPARE_PARTS, price=Decimal("80"), stock=5)

        self.assertEqual([p.name for p in low_stock_products()], ["Fan Capacitor", "Fan Blade"])

        Setting.objects.create(key="low_stock_threshold", value="2")
        self.assertEqual([p.name for p in low_stock_products()], ["Fan Capacitor"])

    def test_low_stock_endpoint_is_front_desk_only(self):
        anonymous = self.client.get("/api/v1/products/low-stock/")
        self.client.force_authenticate(user=self.staff)
        response = self.client.get("/api/v1/products/low-stock/?threshold=20")

        self.assertEqual(anonymous.status_code, 401)
        self.assertEqual([row["name"] for row in response.json()], ["Fan Capacitor", "Ceiling Fan 1200mm"])


class ServiceRateApiTests(TestCase):
    def setUp(self):
        cache.clear()
        self.client = APIClient()
        self.admin = get_user_model().objects.create_user(username="rates-admin", password="pass1234", role="admin")
        ServiceRate.objects.create(device_type="Ceiling Fan", service_name="Rewinding", base_price=Decimal("650"))
        ServiceRate.objects.create(device_type="Ceiling Fan", service_name="Capacitor", base_price=Decimal("150"))
        ServiceRate.objects.create(
            device_type="Mixer Grinder", service_name="Coupler", base_price=Decimal("120"), is_active=False
        )

    def test_visitors_see_active_rates_by_device_type(self):
        response = self.client.get("/api/v1/service-rates/?device_type=ceiling%20fan")

        self.assertEqual(
            [row["service_name"] for row in response.json()["results"]],
            ["Capacitor", "Rewinding"],
        )

    def test_admin_sees_inactive_rates(self):
        self.client.force_authenticate(user=self.admin)

        response = self.client.get("/api/v1/service-rates/")

        self.assertEqual(response.json()["count"], 3)
