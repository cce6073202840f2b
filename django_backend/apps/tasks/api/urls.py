from django.urls import include, path
from rest_framework.routers import DefaultRouter

from .views import BusinessProcessViewSet, TagViewSet, TaskViewSet

router = DefaultRouter(trailing_slash=False)
router.register(r"tasks", TaskViewSet, basename="tasks")
router.register(r"tags", TagViewSet, basename="tags")
router.register(r"business-processes", BusinessProcessViewSet, basename="business-processes")

urlpatterns = [
    path("", include(router.urls)),
]
