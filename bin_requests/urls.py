from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import BinRequestViewSet

router = DefaultRouter()
router.register(r'', BinRequestViewSet, basename='bin-request')

urlpatterns = [
    path('', include(router.urls)),
]
