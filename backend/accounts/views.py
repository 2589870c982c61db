from django.middleware.csrf import get_token
from rest_framework import status
from rest_framework.views import APIView
from rest_framework.response import Response
from rest_framework.permissions import AllowAny, IsAuthenticated

from services import identity
from .authentication import set_session_cookie, clear_session_cookie
from .permissions import IsAdminRole
from common.exceptions import ValidationError
from .serializers import LoginSerializer, RoleUpdateSerializer, UserSerializer


def _session_response(request, user, token, message, status_code):
    # Browser clients echo the csrftoken cookie back on unsafe cookie-authenticated calls
    get_token(request)
    response = Response({
        'success': True,
        'message': message,
        'data': {
            'user': UserSerializer(user).data,
            'token': token,
        },
    }, status=status_code)
    return set_session_cookie(response, token)


class RegisterView(APIView):
    """
    Register a new user (rider or driver)

    POST Body:
    {
        "name": "Jane Rider",
        "email": "jane@example.com",
        "password": "password123",
        "phone": "+1234567890",  // optional
        "role": "rider"          // or "driver", default "rider"
    }
    """
    permission_classes = (AllowAny,)
    authentication_classes = []

    def post(self, request):
        user, token = identity.register_user(request.data)
        return _session_response(request, user, token, 'User registered successfully', status.HTTP_201_CREATED)


class LoginView(APIView):
    """
    Login with email and password; sets the session cookie

    POST Body:
    {
        "email": "jane@example.com",
        "password": "password123"
    }
    """
    permission_classes = (AllowAny,)
    authentication_classes = []

    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        if not serializer.is_valid():
            raise ValidationError.from_serializer_errors(
                serializer.errors,
                required_fields=('email', 'password'),
                missing_message='Missing credentials',
                message='Invalid login data',
            )
        user, token = identity.login_user(
            serializer.validated_data['email'],
            serializer.validated_data['password'],
        )
        return _session_response(request, user, token, 'Login successful', status.HTTP_200_OK)


class LogoutView(APIView):
    """Clear the session cookie. Tokens are stateless and simply expire."""
    permission_classes = (AllowAny,)
    authentication_classes = []

    def post(self, request):
        response = Response({'success': True, 'message': 'Logged out'})
        return clear_session_cookie(response)


class MeView(APIView):
    permission_classes = [IsAuthenticated]

    def get(self, request):
        return Response({'success': True, 'data': UserSerializer(request.user).data})


# ==================== Admin APIs ====================

class AdminUserListView(APIView):
    permission_classes = [IsAuthenticated, IsAdminRole]

    def get(self, request):
        users = identity.list_users()
        return Response({'success': True, 'data': UserSerializer(users, many=True).data})


class AdminUserRoleView(APIView):
    """
    PUT: change a user's role

    PUT Body:
    {
        "role": "driver"  // rider | driver | admin
    }
    """
    permission_classes = [IsAuthenticated, IsAdminRole]

    def put(self, request, user_id: int):
        serializer = RoleUpdateSerializer(data=request.data)
        if not serializer.is_valid():
            raise ValidationError.from_serializer_errors(serializer.errors, message='Invalid role')
        user = identity.change_role(user_id, serializer.validated_data['role'])
        return Response({
            'success': True,
            'message': 'Role updated',
            'data': UserSerializer(user).data,
        })
