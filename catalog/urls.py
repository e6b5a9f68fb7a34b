from rest_framework.routers import DefaultRouter

from catalog.views import ProductViewSet, ServiceRateViewSet

router = DefaultRouter()
router.register(r"products", ProductViewSet, basename="product")
router.register(r"service-rates", ServiceRateViewSet, basename="service-rate")

urlpatterns = router.urls
