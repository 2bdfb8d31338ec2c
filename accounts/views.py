import logging

from django.contrib.auth.models import update_last_login
from rest_framework import permissions, status
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken
from drf_yasg import openapi
from drf_yasg.utils import swagger_auto_schema

from accounts.serializers import LoginSerializer, UserSerializer
from common.exceptions import InvalidArgument

logger = logging.getLogger(__name__)

TAGS = ["Authentication"]

token_pair_schema = openapi.Schema(
    type=openapi.TYPE_OBJECT,
    properties={
        "refresh": openapi.Schema(type=openapi.TYPE_STRING, description="JWT refresh token"),
        "access": openapi.Schema(type=openapi.TYPE_STRING, description="JWT access token"),
    },
)

login_ok = openapi.Response(
    "Authenticated",
    openapi.Schema(
        type=openapi.TYPE_OBJECT,
        properties={
            "message": openapi.Schema(type=openapi.TYPE_STRING),
            "user": openapi.Schema(type=openapi.TYPE_OBJECT, description="Profile of the signed-in user"),
            "tokens": token_pair_schema,
        },
    ),
)


def issue_tokens(user):
    refresh = RefreshToken.for_user(user)
    refresh["role"] = user.role
    return {"refresh": str(refresh), "access": str(refresh.access_token)}


class LoginView(APIView):
    """Sign in with phone number, email or username and receive a JWT pair."""

    authentication_classes = []
    permission_classes = [permissions.AllowAny]

    @swagger_auto_schema(
        tags=TAGS,
        operation_id="auth_login",
        operation_summary="Sign in",
        request_body=LoginSerializer,
        responses={200: login_ok, 400: "Unknown user or wrong password", 403: "Account disabled"},
    )
    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.validated_data["user"]

        if not user.is_active:
            logger.info("Refused sign-in for disabled account %s", user.username)
            return Response({"detail": "Account is inactive."}, status=status.HTTP_403_FORBIDDEN)

        update_last_login(None, user)
        logger.info("User %s (%s) signed in", user.username, user.role)

        return Response({
            "message": f"Signed in as {user.get_full_name()}",
            "user": UserSerializer(user).data,
            "tokens": issue_tokens(user),
        })


class MeView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    @swagger_auto_schema(tags=TAGS, operation_id="auth_me", operation_summary="Current user",
                         responses={200: UserSerializer})
    def get(self, request):
        return Response(UserSerializer(request.user).data)


class LogoutView(APIView):
    """Blacklist the caller's refresh token so it can no longer mint access tokens."""

    permission_classes = [permissions.IsAuthenticated]

    @swagger_auto_schema(
        tags=TAGS,
        operation_id="auth_logout",
        operation_summary="Sign out",
        request_body=openapi.Schema(
            type=openapi.TYPE_OBJECT,
            required=["refresh"],
            properties={"refresh": openapi.Schema(type=openapi.TYPE_STRING)},
        ),
        responses={205: "Refresh token revoked", 400: "Missing, invalid or already revoked token"},
    )
    def post(self, request):
        raw_token = request.data.get("refresh")
        if not raw_token:
            raise InvalidArgument("Refresh token is required.")

        try:
            RefreshToken(raw_token).blacklist()
        except TokenError:
            raise InvalidArgument("Invalid or already revoked refresh token.")

        logger.info("User %s signed out", request.user.username)
        return Response(status=status.HTTP_205_RESET_CONTENT)
