from rest_framework import viewsets
from rest_framework.decorators import action
from rest_framework.exceptions import ValidationError
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from catalog import services
from catalog.models import Product, ServiceRate
from catalog.serializers import ProductSerializer, ServiceRateSerializer
from common.audit import AuditedMutationMixin
from common.permissions import PublicActionsMixin, RoleCapabilityPermission, user_has_capability

TRUE_VALUES = {"1", "true", "yes"}
FALSE_VALUES = {"0", "false", "no"}


def _bool_param(request, name):
    raw = request.query_params.get(name)
    if raw is None or raw == "":
        return None
    value = raw.strip().lower()
    if value in TRUE_VALUES:
        return True
    if value in FALSE_VALUES:
        return False
    raise ValidationError({name: "Expected true or false."})


class CatalogViewSet(PublicActionsMixin, AuditedMutationMixin, viewsets.ModelViewSet):
    """Visitors see active rows only; catalog managers see and edit everything."""

    permission_classes = [IsAuthenticated, RoleCapabilityPermission]
    public_actions = ("list", "retrieve")
    permission_action_map = {
        "create": "catalog.manage",
        "update": "catalog.manage",
        "partial_update": "catalog.manage",
        "destroy": "catalog.manage",
    }

    def _can_manage(self):
        return user_has_capability(self.request.user, "catalog.manage")


class ProductViewSet(CatalogViewSet):
    queryset = Product.objects.all()
    serializer_class = ProductSerializer
    audit_entity = "product"
    permission_action_map = {**CatalogViewSet.permission_action_map, "low_stock": "analytics.view"}

    def get_queryset(self):
        qs = self.queryset.order_by("name")
        if not self._can_manage():
            qs = qs.filter(is_active=True)
        category = self.request.query_params.get("category")
        if category and category not in Product.Category.values:
            raise ValidationError({"category": f"Expected one of: {', '.join(Product.Category.values)}."})
        return services.search_products(
            qs,
            category=category,
            featured=_bool_param(self.request, "featured"),
            search=self.request.query_params.get("search"),
        )

    @action(detail=False, methods=["get"], url_path="low-stock", pagination_class=None)
    def low_stock(self, request):
        threshold = request.query_params.get("threshold")
        if threshold is not None:
            try:
                threshold = int(threshold)
            except (TypeError, ValueError):
                raise ValidationError({"threshold": "threshold must be an integer."})
        products = services.low_stock_products(threshold)
        return Response(self.get_serializer(products, many=True).data)


class ServiceRateViewSet(CatalogViewSet):
    queryset = ServiceRate.objects.all()
    serializer_class = ServiceRateSerializer
    audit_entity = "service_rate"

    def get_queryset(self):
        device_type = self.request.query_params.get("device_type")
        if self._can_manage():
            qs = self.queryset.order_by("device_type", "service_name")
            if device_type:
                qs = qs.filter(device_type__iexact=device_type.strip())
            return qs
        return services.active_service_rates(device_type)
