from rest_framework import viewsets, status, filters, permissions
from rest_framework.decorators import action
from rest_framework.response import Response
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi
from django_filters.rest_framework import DjangoFilterBackend

from accounts.permissions import IsAdmin, IsAdminOrResident
from .models import BinRequest
from .serializers import (
    BinRequestSerializer,
    BinRequestCreateSerializer,
    BinRequestStatusSerializer,
    BinRequestPaymentSerializer,
    BinRequestStatsSerializer,
)
from .services import BinRequestService, get_catalogue

TAGS = ["Bin Requests"]


class BinRequestViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Orders for new bins and bags: /api/bin-requests/{request_id}/

    - Residents order, pay for and cancel their own requests.
    - Admins see every request and move it through delivery.
    """

    queryset = BinRequest.objects.select_related('user')
    serializer_class = BinRequestSerializer
    lookup_field = 'request_id'
    lookup_value_regex = '[^/]+'

    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['status', 'request_type', 'user']
    search_fields = ['request_id', 'item_type', 'delivery_address']
    ordering_fields = ['created_at', 'total_amount']

    def get_permissions(self):
        if self.action in ['create', 'payment', 'cancel']:
            return [IsAdminOrResident()]
        if self.action in ['update_status', 'by_user', 'by_status', 'stats', 'user_stats']:
            return [IsAdmin()]
        return [permissions.IsAuthenticated()]

    def get_queryset(self):
        user = self.request.user
        qs = super().get_queryset()
        if user.is_admin:
            return qs
        return qs.filter(user=user)

    def get_service(self):
        return BinRequestService()

    def _detail(self, bin_request):
        return Response(BinRequestSerializer(bin_request).data)

    @swagger_auto_schema(
        tags=TAGS,
        operation_summary="Order Bins or Bags",
        operation_description="Unit price comes from the catalogue; total = unit price x quantity.",
        request_body=BinRequestCreateSerializer,
        responses={201: BinRequestSerializer},
    )
    def create(self, request, *args, **kwargs):
        serializer = BinRequestCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)

        owner = data.pop('user', None)
        if not request.user.is_admin or owner is None:
            owner = request.user

        bin_request = self.get_service().create_bin_request(user_id=owner.pk, **data)
        return Response(BinRequestSerializer(bin_request).data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=['get'])
    def catalogue(self, request):
        return Response({
            request_type: {item: f"{price:.2f}" for item, price in items.items()}
            for request_type, items in get_catalogue().items()
        })

    # ---------------------------
    # Workflow Actions
    # ---------------------------

    @swagger_auto_schema(
        method='post',
        tags=TAGS,
        operation_summary="Record Bin Request Payment",
        operation_description="Stores the payment reference and confirms a PENDING request.",
        request_body=BinRequestPaymentSerializer,
        responses={200: BinRequestSerializer},
    )
    @action(detail=True, methods=['post'])
    def payment(self, request, request_id=None):
        bin_request = self.get_object()
        serializer = BinRequestPaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._detail(self.get_service().record_payment(bin_request.request_id,
                                                              **serializer.validated_data))

    @swagger_auto_schema(
        method='post',
        tags=TAGS,
        operation_summary="Cancel Bin Request",
        responses={200: BinRequestSerializer},
    )
    @action(detail=True, methods=['post'])
    def cancel(self, request, request_id=None):
        bin_request = self.get_object()
        return self._detail(self.get_service().cancel_bin_request(bin_request.request_id))

    @swagger_auto_schema(
        method='post',
        tags=TAGS,
        operation_summary="Update Bin Request Status",
        request_body=BinRequestStatusSerializer,
        responses={200: BinRequestSerializer},
    )
    @action(detail=True, methods=['post'])
    def update_status(self, request, request_id=None):
        bin_request = self.get_object()
        serializer = BinRequestStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        return self._detail(self.get_service().update_status(bin_request.request_id,
                                                             serializer.validated_data['status']))

    # ---------------------------
    # List & Summary Endpoints
    # ---------------------------

    @action(detail=False, methods=['get'])
    def my_requests(self, request):
        qs = self.get_service().list_for_user(request.user.pk)
        return Response(BinRequestSerializer(qs, many=True).data)

    @action(detail=False, methods=['get'], url_path=r'user/(?P<user_id>\d+)')
    def by_user(self, request, user_id=None):
        qs = self.get_service().list_for_user(user_id)
        return Response(BinRequestSerializer(qs, many=True).data)

    @swagger_auto_schema(
        method='get',
        tags=TAGS,
        operation_summary="Bin Requests by Status",
        manual_parameters=[
            openapi.Parameter('request_status', openapi.IN_PATH, type=openapi.TYPE_STRING,
                              enum=[code for code, _ in BinRequest.STATUS_CHOICES]),
        ],
    )
    @action(detail=False, methods=['get'], url_path=r'status/(?P<request_status>[A-Z]+)')
    def by_status(self, request, request_status=None):
        qs = self.get_service().list_by_status(request_status)
        return Response(BinRequestSerializer(qs, many=True).data)

    @swagger_auto_schema(method='get', tags=TAGS, operation_summary="Bin Request Statistics",
                         responses={200: BinRequestStatsSerializer})
    @action(detail=False, methods=['get'])
    def stats(self, request):
        return Response(BinRequestStatsSerializer(self.get_service().get_stats()).data)

    @action(detail=False, methods=['get'], url_path=r'user/(?P<user_id>\d+)/stats')
    def user_stats(self, request, user_id=None):
        return Response(BinRequestStatsSerializer(self.get_service().get_stats(user_id=user_id)).data)

    @action(detail=False, methods=['get'])
    def my_stats(self, request):
        return Response(BinRequestStatsSerializer(self.get_service().get_stats(user_id=request.user.pk)).data)
