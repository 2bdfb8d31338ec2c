from rest_framework import viewsets, status, permissions
from rest_framework.decorators import action
from rest_framework.exceptions import PermissionDenied
from rest_framework.response import Response
from drf_yasg.utils import swagger_auto_schema
from django_filters.rest_framework import DjangoFilterBackend

from accounts.permissions import IsAdmin, IsAdminOrWorker
from bins.models import Bin
from .models import CollectionRecord
from .serializers import (
    CollectionRecordSerializer,
    CollectionRecordCreateSerializer,
    WorkerCollectionStatsSerializer,
)
from . import services

TAGS = ["Collections"]


class CollectionRecordViewSet(viewsets.ReadOnlyModelViewSet):
    """
    Collection log.

    Role-based access:
    - Workers: record collections and view their own records.
    - Admins: view everything and may record OVERRIDE collections.
    - Residents: view the records of their own bins.

    Endpoints exposed:
    - POST /collections/ → record a collection
    - GET /collections/worker/{worker_id}/ → records of a worker
    - GET /collections/worker/{worker_id}/today/ → today's records of a worker
    - GET /collections/worker/{worker_id}/stats/ → per-worker counts and weight
    - GET /collections/bin/{bin_id}/ → records of a bin
    - GET /collections/bin/{bin_id}/latest/ → most recent record of a bin
    - GET /collections/bin/{bin_id}/collected_today/ → whether the bin is done for today
    - GET /collections/status/{status}/ → records by status
    """

    queryset = CollectionRecord.objects.select_related('worker')
    serializer_class = CollectionRecordSerializer

    filter_backends = [DjangoFilterBackend]
    filterset_fields = ['bin_id', 'worker', 'status', 'collection_day']

    def get_permissions(self):
        if self.action == 'create':
            return [IsAdminOrWorker()]
        if self.action in ['by_status', 'worker_stats']:
            return [IsAdmin()]
        return [permissions.IsAuthenticated()]

    def get_queryset(self):
        user = self.request.user
        qs = super().get_queryset()
        if user.is_admin:
            return qs
        if user.role == 'worker':
            return qs.filter(worker=user)
        own_bins = Bin.objects.filter(owner=user).values('bin_id')
        return qs.filter(bin_id__in=own_bins)

    def _check_worker_access(self, worker_id):
        user = self.request.user
        if not user.is_admin and str(user.pk) != str(worker_id):
            raise PermissionDenied("Workers can only view their own collections.")

    @swagger_auto_schema(
        tags=TAGS,
        operation_summary="Record Collection",
        operation_description=(
            "Records a collection for a bin. A bin can be COLLECTED once per day; "
            "a second attempt returns 409 `duplicate_collection`. OVERRIDE is admin only."
        ),
        request_body=CollectionRecordCreateSerializer,
        responses={201: CollectionRecordSerializer},
    )
    def create(self, request, *args, **kwargs):
        serializer = CollectionRecordCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)

        worker_id = data.pop('worker', None)
        if not request.user.is_admin or worker_id is None:
            worker_id = request.user.pk
        if data.get('status') == CollectionRecord.OVERRIDE and not request.user.is_admin:
            raise PermissionDenied("Only admins can record an override collection.")

        record = services.create_collection_record(worker_id=worker_id, **data)
        return Response(CollectionRecordSerializer(record).data, status=status.HTTP_201_CREATED)

    # ---------------------------
    # Worker lookups
    # ---------------------------

    @action(detail=False, methods=['get'], url_path=r'worker/(?P<worker_id>\d+)')
    def by_worker(self, request, worker_id=None):
        self._check_worker_access(worker_id)
        qs = services.get_collections_by_worker(worker_id)
        return Response(CollectionRecordSerializer(qs, many=True).data)

    @action(detail=False, methods=['get'], url_path=r'worker/(?P<worker_id>\d+)/today')
    def worker_today(self, request, worker_id=None):
        self._check_worker_access(worker_id)
        qs = services.get_todays_collections_for_worker(worker_id)
        return Response(CollectionRecordSerializer(qs, many=True).data)

    @swagger_auto_schema(
        method='get',
        tags=TAGS,
        operation_summary="Worker Collection Statistics",
        responses={200: WorkerCollectionStatsSerializer},
    )
    @action(detail=False, methods=['get'], url_path=r'worker/(?P<worker_id>\d+)/stats')
    def worker_stats(self, request, worker_id=None):
        stats = services.get_collection_stats_by_worker(int(worker_id))
        return Response(WorkerCollectionStatsSerializer(stats).data)

    # ---------------------------
    # Bin lookups
    # ---------------------------

    @action(detail=False, methods=['get'], url_path=r'bin/(?P<bin_id>[^/]+)')
    def by_bin(self, request, bin_id=None):
        qs = self.get_queryset().filter(bin_id=bin_id)
        return Response(CollectionRecordSerializer(qs, many=True).data)

    @action(detail=False, methods=['get'], url_path=r'bin/(?P<bin_id>[^/]+)/latest')
    def bin_latest(self, request, bin_id=None):
        record = services.get_latest_collection_for_bin(bin_id)
        return Response(CollectionRecordSerializer(record).data)

    @action(detail=False, methods=['get'], url_path=r'bin/(?P<bin_id>[^/]+)/collected_today')
    def bin_collected_today(self, request, bin_id=None):
        return Response({"bin_id": bin_id, "collected_today": services.is_bin_collected_today(bin_id)})

    @action(detail=False, methods=['get'], url_path=r'status/(?P<record_status>[A-Z]+)')
    def by_status(self, request, record_status=None):
        qs = services.get_collections_by_status(record_status)
        return Response(CollectionRecordSerializer(qs, many=True).data)
