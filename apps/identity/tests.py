from datetime import datetime, timedelta, timezone

import jwt
from django.conf import settings
from django.test import TestCase, Client, RequestFactory, override_settings
from ninja.errors import HttpError

from .decorators import require_permission
from .jwt_auth import create_access_token, decode_token, extract_claims, TokenClaims
from .permissions import get_role_permissions, Permissions
from .roles import UserRole


def _sign(payload: dict) -> str:
    secret = getattr(settings, 'JWT_SECRET', None) or settings.SECRET_KEY
    return jwt.encode(payload, secret, algorithm='HS256')


class TokenClaimsTest(TestCase):
    def test_round_trip_claims(self):
        token = create_access_token(42, "owner@example.com", UserRole.BUSINESS)
        claims = extract_claims(token)
        self.assertEqual(claims, TokenClaims(user_id=42, email="owner@example.com", role="ROLE_BUSINESS"))

    def test_numeric_string_user_id_is_parsed(self):
        token = _sign({'sub': "a@example.com", 'userId': "17"})
        self.assertEqual(extract_claims(token).user_id, 17)

    def test_unparsable_user_id_becomes_none(self):
        token = _sign({'sub': "a@example.com", 'userId': "abc", 'role': "ROLE_USER"})
        claims = extract_claims(token)
        self.assertIsNone(claims.user_id)
        self.assertEqual(claims.role, "ROLE_USER")

    def test_non_string_role_is_dropped(self):
        token = _sign({'sub': "a@example.com", 'userId': 1, 'role': ["ROLE_ADMIN"]})
        self.assertIsNone(extract_claims(token).role)

    def test_expired_token_is_rejected(self):
        expired = datetime.now(timezone.utc) - timedelta(minutes=5)
        token = _sign({'sub': "a@example.com", 'userId': 1, 'exp': expired})
        self.assertIsNone(decode_token(token))
        self.assertIsNone(extract_claims(token))

    def test_wrong_signature_is_rejected(self):
        token = jwt.encode({'sub': "a@example.com"}, "not-the-secret", algorithm='HS256')
        self.assertIsNone(extract_claims(token))


class RolePermissionsTest(TestCase):
    def test_business_permissions(self):
        perms = get_role_permissions(UserRole.BUSINESS)
        self.assertIn(Permissions.STORE_CREATE, perms)
        self.assertIn(Permissions.PRODUCT_DELETE, perms)
        self.assertNotIn(Permissions.PRODUCT_HARD_DELETE, perms)

    def test_admin_does_not_inherit_business(self):
        perms = get_role_permissions(UserRole.ADMIN)
        self.assertIn(Permissions.CATEGORY_CREATE, perms)
        self.assertIn(Permissions.PRODUCT_HARD_DELETE, perms)
        self.assertNotIn(Permissions.STORE_CREATE, perms)

    def test_user_and_missing_role_have_nothing(self):
        self.assertEqual(get_role_permissions(UserRole.USER), [])
        self.assertEqual(get_role_permissions(None), [])
        self.assertEqual(get_role_permissions("ROLE_UNKNOWN"), [])

    def test_require_permission_raises_403(self):
        request = RequestFactory().post("/api/stores", HTTP_X_USER_ROLE="ROLE_USER")
        with self.assertRaises(HttpError) as ctx:
            require_permission(request, Permissions.STORE_CREATE)
        self.assertEqual(ctx.exception.status_code, 403)

    def test_require_permission_passes(self):
        request = RequestFactory().post("/api/stores", HTTP_X_USER_ROLE="ROLE_BUSINESS")
        require_permission(request, Permissions.STORE_CREATE)


class JwtClaimsMiddlewareTest(TestCase):
    def setUp(self):
        self.client = Client()

    def test_valid_token_populates_headers(self):
        token = create_access_token(7, "user@example.com", UserRole.USER)
        response = self.client.get("/api/test/jwt-info", HTTP_AUTHORIZATION=f"Bearer {token}")
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['user_id_from_jwt'], "7")
        self.assertEqual(data['email_from_jwt'], "user@example.com")
        self.assertEqual(data['role_from_jwt'], "ROLE_USER")
        self.assertTrue(data['jwt_filter_working'])

    def test_missing_token_passes_through(self):
        response = self.client.get("/api/test/jwt-info")
        self.assertEqual(response.status_code, 200)
        data = response.json()
        self.assertEqual(data['user_id_from_jwt'], "NOT_SET")
        self.assertEqual(data['role_from_jwt'], "NOT_SET")
        self.assertFalse(data['jwt_filter_working'])

    def test_invalid_token_passes_through(self):
        response = self.client.get("/api/test/jwt-info", HTTP_AUTHORIZATION="Bearer garbage")
        self.assertEqual(response.status_code, 200)
        self.assertFalse(response.json()['jwt_filter_working'])

    def test_token_without_user_id_omits_header(self):
        token = create_access_token(None, "anon@example.com", UserRole.USER)
        response = self.client.get("/api/test/jwt-info", HTTP_AUTHORIZATION=f"Bearer {token}")
        data = response.json()
        self.assertEqual(data['user_id_from_jwt'], "NOT_SET")
        self.assertEqual(data['email_from_jwt'], "anon@example.com")

    def test_valid_token_replaces_client_identity_headers(self):
        token = create_access_token(None, "anon@example.com", UserRole.USER)
        response = self.client.get(
            "/api/test/jwt-info",
            HTTP_AUTHORIZATION=f"Bearer {token}",
            HTTP_X_USER_ID="999",
            HTTP_X_USER_EMAIL="forged@example.com",
        )
        data = response.json()
        self.assertEqual(data['user_id_from_jwt'], "NOT_SET")
        self.assertEqual(data['email_from_jwt'], "anon@example.com")

    def test_forged_role_header_does_not_grant_admin(self):
        token = create_access_token(5, "user@example.com", None)
        response = self.client.get(
            "/api/categories/all",
            HTTP_AUTHORIZATION=f"Bearer {token}",
            HTTP_X_USER_ROLE="ROLE_ADMIN",
        )
        self.assertEqual(response.status_code, 403)

    def test_headers_pass_through_without_token(self):
        response = self.client.get("/api/test/jwt-info", HTTP_X_USER_ID="12")
        self.assertEqual(response.json()['user_id_from_jwt'], "12")


class DiagnosticsApiTest(TestCase):
    @override_settings(CLOUDINARY_CLOUD_NAME="demo", CLOUDINARY_API_KEY="key", CLOUDINARY_API_SECRET="", MAPBOX_ACCESS_TOKEN="")
    def test_cloudinary_config_reports_flags_only(self):
        response = self.client.get("/api/test/cloudinary-config")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {
            'cloud_name': "demo",
            'api_key_set': True,
            'api_secret_set': False,
            'mapbox_token_set': False,
            'status': "INCOMPLETE",
        })

    def test_debug_token_without_header(self):
        response = self.client.get("/api/test/debug-token")
        self.assertEqual(response.json(), {'error': "No Authorization header found"})

    def test_debug_token_logs_claims(self):
        token = create_access_token(3, "a@example.com", UserRole.ADMIN)
        with self.assertLogs('apps.identity.api', level='INFO') as logs:
            response = self.client.get("/api/test/debug-token", HTTP_AUTHORIZATION=f"Bearer {token}")
        self.assertEqual(response.json(), {'message': "Token details logged to console"})
        self.assertTrue(any("ROLE_ADMIN" in line for line in logs.output))
