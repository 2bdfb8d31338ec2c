from rest_framework import viewsets, status, filters, permissions
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied
from rest_framework.response import Response
from drf_yasg.utils import swagger_auto_schema
from drf_yasg import openapi
from django_filters.rest_framework import DjangoFilterBackend

from accounts.permissions import IsAdmin, IsAdminOrResident, IsAdminOrWorker
from .fees import FeeSchedule
from .models import PickupRequest
from .serializers import (
    PickupRequestListSerializer,
    PickupRequestDetailSerializer,
    PickupRequestCreateSerializer,
    PickupRequestUpdateSerializer,
    PaymentSerializer,
    CancelSerializer,
    RescheduleSerializer,
    FeeCalculationSerializer,
    FeeBreakdownSerializer,
    PickupStatsSerializer,
)
from .services import PickupRequestService

# Statuses a worker may set on an assigned job. Approval and cancellation belong to admins and requesters.
WORKER_STATUSES = {PickupRequest.IN_PROGRESS, PickupRequest.COMPLETED, PickupRequest.FAILED}

TAGS = ["Pickup Requests"]


class PickupRequestViewSet(viewsets.ModelViewSet):
    """
    Special pickup requests: /api/pickup-requests/

    - Residents create, pay for, submit and cancel their own requests.
    - Workers see and progress the requests assigned to them.
    - Admins see everything, schedule, assign and reschedule.

    Requests are never deleted; cancel them instead.
    """

    queryset = PickupRequest.objects.select_related('user', 'assigned_worker')
    serializer_class = PickupRequestDetailSerializer
    http_method_names = ['get', 'post', 'patch', 'head', 'options']

    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['status', 'payment_status', 'pickup_type', 'waste_type', 'user', 'assigned_worker']
    search_fields = ['user_name', 'address', 'city', 'pickup_location']
    ordering_fields = ['created_at', 'preferred_date_time', 'final_amount']

    def get_permissions(self):
        if self.action in ['create', 'submit', 'payment', 'cancel']:
            return [IsAdminOrResident()]
        if self.action == 'partial_update':
            return [IsAdminOrWorker()]
        if self.action in ['reschedule', 'remind_payment', 'emergency', 'pending_payment',
                           'by_status', 'by_user', 'stats']:
            return [IsAdmin()]
        return [permissions.IsAuthenticated()]

    def get_serializer_class(self):
        if self.action == 'list':
            return PickupRequestListSerializer
        if self.action == 'create':
            return PickupRequestCreateSerializer
        if self.action == 'partial_update':
            return PickupRequestUpdateSerializer
        return PickupRequestDetailSerializer

    def get_queryset(self):
        user = self.request.user
        qs = super().get_queryset()
        if user.is_admin:
            return qs
        if user.role == 'worker':
            return qs.filter(assigned_worker=user)
        return qs.filter(user=user)

    def get_service(self):
        return PickupRequestService()

    def _detail(self, pickup):
        return Response(PickupRequestDetailSerializer(pickup).data)

    @swagger_auto_schema(
        tags=TAGS,
        operation_summary="Create Pickup Request",
        operation_description=(
            "Prices the request, stores it as DRAFT and settles the chosen payment method. "
            "Residents always create for themselves; admins may pass `user`."
        ),
        request_body=PickupRequestCreateSerializer,
        responses={201: PickupRequestDetailSerializer},
    )
    def create(self, request, *args, **kwargs):
        serializer = PickupRequestCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)

        owner = data.pop('user', None)
        if not request.user.is_admin or owner is None:
            owner = request.user

        pickup = self.get_service().create_pickup_request(user_id=owner.pk, **data)
        return Response(PickupRequestDetailSerializer(pickup).data, status=status.HTTP_201_CREATED)

    @swagger_auto_schema(
        tags=TAGS,
        operation_summary="Update Pickup Request",
        operation_description="Partial update; status changes must follow the request lifecycle.",
        request_body=PickupRequestUpdateSerializer,
        responses={200: PickupRequestDetailSerializer},
    )
    def partial_update(self, request, *args, **kwargs):
        pickup = self.get_object()
        serializer = PickupRequestUpdateSerializer(data=request.data, partial=True)
        serializer.is_valid(raise_exception=True)
        changes = dict(serializer.validated_data)
        if not request.user.is_admin:
            # Workers only progress the request; assignment and notes stay with admins.
            changes = {k: v for k, v in changes.items() if k == 'status'}
            if 'status' in changes and changes['status'] not in WORKER_STATUSES:
                raise PermissionDenied(f"Workers cannot move a pickup request to {changes['status']}.")
        pickup = self.get_service().update_pickup_request(pickup.pk, **changes)
        return self._detail(pickup)

    # ---------------------------
    # Pricing
    # ---------------------------

    @swagger_auto_schema(
        method='post',
        tags=TAGS,
        operation_summary="Calculate Fees",
        operation_description="Quote a pickup without creating anything.",
        request_body=FeeCalculationSerializer,
        responses={200: FeeBreakdownSerializer},
    )
    @action(detail=False, methods=['post'])
    def calculate_fees(self, request):
        serializer = FeeCalculationSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        breakdown = self.get_service().calculate_fees(**serializer.validated_data)
        return Response(FeeBreakdownSerializer(breakdown).data)

    @action(detail=False, methods=['get'])
    def fee_schedule(self, request):
        schedule = FeeSchedule.from_settings()
        return Response({
            "base_rates": {k: f"{v:.2f}" for k, v in schedule.base_rates.items()},
            "weight_rate": f"{schedule.weight_rate:.2f}",
            "extra_multiplier": str(schedule.extra_multiplier),
            "emergency_multiplier": str(schedule.emergency_multiplier),
            "point_value": str(schedule.point_value),
        })

    # ---------------------------
    # Workflow Actions
    # ---------------------------

    @swagger_auto_schema(
        method='post',
        tags=TAGS,
        operation_summary="Submit Pickup Request",
        operation_description="Move a DRAFT (or RESCHEDULED) request to PENDING for admin review.",
        responses={200: PickupRequestDetailSerializer},
    )
    @action(detail=True, methods=['post'])
    def submit(self, request, pk=None):
        pickup = self.get_object()
        return self._detail(self.get_service().submit_pickup_request(pickup.pk))

    @swagger_auto_schema(
        method='post',
        tags=TAGS,
        operation_summary="Pay for Pickup Request",
        operation_description="`amount` must equal the request's final amount.",
        request_body=PaymentSerializer,
        responses={200: PickupRequestDetailSerializer},
    )
    @action(detail=True, methods=['post'])
    def payment(self, request, pk=None):
        pickup = self.get_object()
        serializer = PaymentSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        pickup = self.get_service().process_payment(pickup.pk, **serializer.validated_data)
        return self._detail(pickup)

    @swagger_auto_schema(
        method='post',
        tags=TAGS,
        operation_summary="Cancel Pickup Request",
        request_body=CancelSerializer,
        responses={200: PickupRequestDetailSerializer},
    )
    @action(detail=True, methods=['post'])
    def cancel(self, request, pk=None):
        pickup = self.get_object()
        serializer = CancelSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        pickup = self.get_service().cancel_pickup_request(
            pickup.pk, reason=serializer.validated_data['cancellation_reason']
        )
        return self._detail(pickup)

    @swagger_auto_schema(
        method='post',
        tags=TAGS,
        operation_summary="Reschedule Pickup Request",
        operation_description="Admin only: send a pending or scheduled request back for a new date.",
        request_body=RescheduleSerializer,
        responses={200: PickupRequestDetailSerializer},
    )
    @action(detail=True, methods=['post'])
    def reschedule(self, request, pk=None):
        pickup = self.get_object()
        serializer = RescheduleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        pickup = self.get_service().reschedule_pickup_request(pickup.pk, **serializer.validated_data)
        return self._detail(pickup)

    @swagger_auto_schema(
        method='post',
        tags=TAGS,
        operation_summary="Send Payment Reminder",
        responses={200: PickupRequestDetailSerializer},
    )
    @action(detail=True, methods=['post'])
    def remind_payment(self, request, pk=None):
        pickup = self.get_object()
        return self._detail(self.get_service().send_payment_reminder(pickup.pk))

    # ---------------------------
    # List & Summary Endpoints
    # ---------------------------

    @action(detail=False, methods=['get'])
    def my_requests(self, request):
        qs = self.get_service().list_for_user(request.user.pk)
        return Response(PickupRequestListSerializer(qs, many=True).data)

    @action(detail=False, methods=['get'], url_path=r'user/(?P<user_id>\d+)')
    def by_user(self, request, user_id=None):
        qs = self.get_service().list_for_user(user_id)
        return Response(PickupRequestListSerializer(qs, many=True).data)

    @swagger_auto_schema(
        method='get',
        tags=TAGS,
        operation_summary="Pickup Requests by Status",
        manual_parameters=[
            openapi.Parameter('request_status', openapi.IN_PATH, type=openapi.TYPE_STRING,
                              enum=[code for code, _ in PickupRequest.STATUS_CHOICES]),
        ],
    )
    @action(detail=False, methods=['get'], url_path=r'status/(?P<request_status>[A-Z_]+)')
    def by_status(self, request, request_status=None):
        qs = self.get_service().list_by_status(request_status)
        return Response(PickupRequestListSerializer(qs, many=True).data)

    @action(detail=False, methods=['get'])
    def emergency(self, request):
        qs = self.get_service().list_emergency()
        return Response(PickupRequestListSerializer(qs, many=True).data)

    @action(detail=False, methods=['get'])
    def pending_payment(self, request):
        qs = self.get_service().list_pending_payment()
        return Response(PickupRequestListSerializer(qs, many=True).data)

    @swagger_auto_schema(
        method='get',
        tags=TAGS,
        operation_summary="Pickup Request Statistics",
        responses={200: PickupStatsSerializer},
    )
    @action(detail=False, methods=['get'])
    def stats(self, request):
        return Response(PickupStatsSerializer(self.get_service().get_stats()).data)
