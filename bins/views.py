from rest_framework import viewsets, status, filters, permissions
from rest_framework.decorators import action
from rest_framework.response import Response
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi
from geopy.distance import geodesic
from django_filters.rest_framework import DjangoFilterBackend

from accounts.permissions import IsAdmin, IsAdminOrResident
from common.exceptions import InvalidArgument
from .models import Bin
from .serializers import (
    BinSerializer,
    BinCreateSerializer,
    BinStatusUpdateSerializer,
    BinNearbySerializer,
)
from .services import update_bin_status

TAGS = ["Bins"]


class BinViewSet(viewsets.ModelViewSet):
    """
    Bin registry, addressed by business key: /api/bins/{bin_id}/

    - Residents see and register their own bins.
    - Workers and admins see every bin.
    - Only admins change status by hand or delete bins.
    """

    queryset = Bin.objects.select_related('owner')
    serializer_class = BinSerializer
    lookup_field = 'bin_id'
    lookup_value_regex = '[^/]+'
    http_method_names = ['get', 'post', 'delete', 'head', 'options']

    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['status', 'owner']
    search_fields = ['bin_id', 'address']
    ordering_fields = ['bin_id', 'status', 'updated_at']

    def get_permissions(self):
        if self.action in ['destroy', 'update_status', 'stats']:
            return [IsAdmin()]
        if self.action == 'create':
            return [IsAdminOrResident()]
        return [permissions.IsAuthenticated()]

    def get_serializer_class(self):
        if self.action == 'create':
            return BinCreateSerializer
        return BinSerializer

    def get_queryset(self):
        user = self.request.user
        qs = super().get_queryset()
        if getattr(user, 'role', None) == 'resident':
            return qs.filter(owner=user)
        return qs

    def create(self, request, *args, **kwargs):
        serializer = BinCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        if request.user.is_admin:
            owner = serializer.validated_data.get('owner') or request.user
        else:
            owner = request.user
        bin_obj = serializer.save(owner=owner)
        return Response(BinSerializer(bin_obj).data, status=status.HTTP_201_CREATED)

    # ---------------------------
    # Workflow Actions
    # ---------------------------

    @swagger_auto_schema(
        method='post',
        tags=TAGS,
        operation_summary="Update Bin Status",
        operation_description="Admin only: set a bin's status (e.g. back to ACTIVE after a collection day).",
        request_body=BinStatusUpdateSerializer,
        responses={200: BinSerializer},
    )
    @action(detail=True, methods=['post'])
    def update_status(self, request, bin_id=None):
        self.get_object()
        serializer = BinStatusUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        bin_obj = update_bin_status(bin_id, serializer.validated_data['status'])
        return Response(BinSerializer(bin_obj).data)

    # ---------------------------
    # Lookups & Summary
    # ---------------------------

    @action(detail=True, methods=['get'])
    def exists(self, request, bin_id=None):
        return Response({"bin_id": bin_id, "exists": Bin.objects.filter(bin_id=bin_id).exists()})

    @action(detail=False, methods=['get'], url_path=r'owner/(?P<owner_id>\d+)')
    def by_owner(self, request, owner_id=None):
        qs = self.get_queryset().filter(owner_id=owner_id)
        return Response(BinSerializer(qs, many=True).data)

    @action(detail=False, methods=['get'])
    def stats(self, request):
        qs = Bin.objects.all()
        data = {code.lower(): qs.filter(status=code).count() for code, _ in Bin.STATUS_CHOICES}
        data["total"] = qs.count()
        return Response(data)

    @swagger_auto_schema(
        method='get',
        tags=TAGS,
        operation_summary="Bins Near a Point",
        operation_description="Bins within `radius` meters of a point, nearest first.",
        manual_parameters=[
            openapi.Parameter('latitude', openapi.IN_QUERY, type=openapi.TYPE_NUMBER, required=True),
            openapi.Parameter('longitude', openapi.IN_QUERY, type=openapi.TYPE_NUMBER, required=True),
            openapi.Parameter('radius', openapi.IN_QUERY, type=openapi.TYPE_NUMBER,
                              description="Radius in meters (default 1000)"),
            openapi.Parameter('status', openapi.IN_QUERY, type=openapi.TYPE_STRING),
        ],
        responses={200: BinNearbySerializer(many=True)},
    )
    @action(detail=False, methods=['get'])
    def nearby(self, request):
        try:
            origin = (float(request.query_params["latitude"]), float(request.query_params["longitude"]))
            radius = float(request.query_params.get("radius", 1000))
        except (KeyError, ValueError):
            raise InvalidArgument("latitude and longitude query parameters are required numbers.")
        if radius < 0:
            raise InvalidArgument("radius cannot be negative.")

        qs = self.get_queryset().filter(latitude__isnull=False, longitude__isnull=False)
        bin_status = request.query_params.get("status")
        if bin_status:
            qs = qs.filter(status=bin_status)

        nearby_bins = []
        for bin_obj in qs:
            distance_m = geodesic(origin, (float(bin_obj.latitude), float(bin_obj.longitude))).meters
            if distance_m <= radius:
                bin_obj.distance_m = round(distance_m, 1)
                nearby_bins.append(bin_obj)

        nearby_bins.sort(key=lambda b: b.distance_m)
        return Response(BinNearbySerializer(nearby_bins, many=True).data)
