"""
Account views: registration, login, email verification, password reset,
and the signed-in user's settings, profile and presence status.
"""
import logging
import secrets
from datetime import timedelta

from django.conf import settings
from django.db import IntegrityError
from django.http import JsonResponse, HttpRequest
from django.utils import timezone
from django.views.decorators.csrf import csrf_exempt
from django.views.decorators.http import require_http_methods

from apps.core.http import read_json, invalid_json, error_response, text_field, validation_error
from apps.notifications.email import (
    send_verification_email,
    send_password_reset_email,
    EmailDeliveryError,
)
from .audit import audit_email_verified, audit_login, audit_password_reset, audit_registered
from .google import GoogleTokenError, verify_google_id_token
from .jwt_validator import issue_token
from .middleware import auth_required, resolve_user
from .models import User, Persona, PresenceStatus
from .ratelimit import rate_limited, check_login_rate_limit, ip_key

logger = logging.getLogger(__name__)

# Fields the settings endpoint may change, mapped to model attributes
SETTINGS_FIELDS = {
    'firstName': 'first_name',
    'lastName': 'last_name',
    'persona': 'persona',
    'preferredLanguage': 'preferred_language',
    'notificationsEnabled': 'notifications_enabled',
    'dataRetentionDays': 'data_retention_days',
}


def generate_token() -> str:
    """64 hex characters, used for email verification and password reset."""
    return secrets.token_hex(32)


def validate_setting(field: str, value):
    """
    Check one settings value.

    Returns:
        An error message, or None if the value is acceptable
    """
    if field == 'firstName' and (not isinstance(value, str) or not value.strip()):
        return 'firstName cannot be empty'
    if field == 'persona' and value not in Persona.values:
        return f"persona must be one of: {', '.join(Persona.values)}"
    if field == 'notificationsEnabled' and not isinstance(value, bool):
        return 'notificationsEnabled must be a boolean'
    if field == 'dataRetentionDays':
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            return 'dataRetentionDays must be a positive integer'
    if field == 'preferredLanguage' and (not isinstance(value, str) or not value.strip()):
        return 'preferredLanguage cannot be empty'
    return None


def profile_payload(user: User) -> dict:
    data = user.to_dict()
    data['_count'] = {
        'documents': user.documents.count(),
        'teamMemberships': user.team_memberships.count(),
        'ownedTeams': user.owned_teams.count(),
    }
    return data


@csrf_exempt
@require_http_methods(["POST"])
def register(request: HttpRequest) -> JsonResponse:
    """
    POST /api/auth/register

    Body: {email, password, firstName, lastName?, persona?, preferredLanguage?}
    """
    body = read_json(request)
    if body is None:
        return invalid_json()

    email = text_field(body, 'email')
    password = text_field(body, 'password', strip=False)
    first_name = text_field(body, 'firstName')
    last_name = text_field(body, 'lastName')
    language = text_field(body, 'preferredLanguage')
    if None in (email, password, first_name, last_name, language):
        return validation_error('email, password, firstName, lastName and preferredLanguage must be strings.')

    email = email.lower()
    if not email or not password or not first_name:
        return error_response('Missing required fields.')

    if '@' not in email:
        return error_response('Invalid email address.')

    if len(password) < settings.MIN_PASSWORD_LENGTH:
        return error_response(
            f'Password must be at least {settings.MIN_PASSWORD_LENGTH} characters.'
        )

    persona = body.get('persona') or Persona.GENERAL
    if persona not in Persona.values:
        return error_response(f"persona must be one of: {', '.join(Persona.values)}")

    if User.objects.filter(email=email).exists():
        return error_response('Email already in use.', 409)

    try:
        user = User.objects.create_user(
            email=email,
            password=password,
            first_name=first_name,
            last_name=last_name or None,
            persona=persona,
            preferred_language=language or 'en',
            verification_token=generate_token(),
        )
    except IntegrityError:
        # Concurrent registration with the same email
        return error_response('Email already in use.', 409)

    try:
        send_verification_email(user.email, user.verification_token)
    except EmailDeliveryError:
        logger.warning(f"Verification email for new user {user.id} was not delivered")

    audit_registered(request, user)

    return JsonResponse(
        {
            'message': 'User registered successfully.',
            'user': {'id': str(user.id), 'email': user.email},
        },
        status=201
    )


@csrf_exempt
@require_http_methods(["POST"])
@rate_limited(check_login_rate_limit, key_func=ip_key)
def login(request: HttpRequest) -> JsonResponse:
    """
    POST /api/auth/login

    Returns a bearer access token for subsequent requests.
    """
    body = read_json(request)
    if body is None:
        return invalid_json()

    email = text_field(body, 'email')
    password = text_field(body, 'password', strip=False)
    if email is None or password is None:
        return validation_error('email and password must be strings.')

    email = email.lower()
    if not email or not password:
        return error_response('Missing email or password.')

    user = User.objects.filter(email=email).first()
    if user is None or not user.has_usable_password() or not user.check_password(password):
        audit_login(request, str(user.id) if user else None, email, success=False)
        return error_response('Invalid credentials.', 401)

    return signed_in(request, user, 'password')


@csrf_exempt
@require_http_methods(["POST"])
@rate_limited(check_login_rate_limit, key_func=ip_key)
def google_login(request: HttpRequest) -> JsonResponse:
    """
    POST /api/auth/google {idToken}

    Signs in an existing account with a Google ID token. Accounts are
    never created here: an email without an account gets 403.
    """
    body = read_json(request)
    if body is None:
        return invalid_json()

    id_token = text_field(body, 'idToken')
    if id_token is None:
        return validation_error('idToken must be a string.')
    if not id_token:
        return error_response('Missing idToken.')

    if not settings.GOOGLE_CLIENT_ID:
        return error_response('Google sign-in is not configured.', 503, 'GOOGLE_SIGNIN_DISABLED')

    try:
        identity = verify_google_id_token(id_token)
    except GoogleTokenError as e:
        logger.warning(f"Google sign-in rejected: {e}")
        return error_response('Invalid Google token.', 401)

    user = User.objects.filter(email=identity.email).first()
    if user is None:
        audit_login(request, None, identity.email, success=False, method='google')
        return error_response('No account exists for this email.', 403, 'ACCOUNT_NOT_FOUND')

    # Google has verified the address
    update_fields = []
    if not user.is_email_verified:
        user.is_email_verified = True
        user.email_verified_at = timezone.now()
        user.verification_token = None
        update_fields += ['is_email_verified', 'email_verified_at', 'verification_token']
    if not user.image and identity.picture:
        user.image = identity.picture
        update_fields.append('image')

    return signed_in(request, user, 'google', update_fields)


def signed_in(request: HttpRequest, user: User, method: str, update_fields=()) -> JsonResponse:
    """Mark the user online and hand out an access token."""
    user.last_login = timezone.now()
    user.status = PresenceStatus.ONLINE
    user.save(update_fields=list(update_fields) + ['last_login', 'status', 'updated_at'])

    token, expires_in = issue_token(user)
    audit_login(request, str(user.id), user.email, success=True, method=method)

    return JsonResponse({
        'message': 'Login successful.',
        'user': {'id': str(user.id), 'email': user.email},
        'accessToken': token,
        'tokenType': 'Bearer',
        'expiresIn': expires_in,
    })


@require_http_methods(["GET"])
def me(request: HttpRequest) -> JsonResponse:
    """
    GET /api/auth/me

    The current session user, or {"user": null} when not signed in.
    """
    user = resolve_user(request)
    if user is None:
        return JsonResponse({'user': None})

    return JsonResponse({
        'user': {
            'id': str(user.id),
            'email': user.email,
            'name': user.full_name,
            'image': user.image,
            'role': user.role,
            'persona': user.persona,
        }
    })


@csrf_exempt
@require_http_methods(["POST", "PATCH"])
def verify_email(request: HttpRequest) -> JsonResponse:
    """
    POST  /api/auth/verify-email {email} - (re)send the verification link
    PATCH /api/auth/verify-email {token} - confirm the address
    """
    body = read_json(request)
    if body is None:
        return invalid_json()

    if request.method == 'POST':
        email = text_field(body, 'email')
        if email is None:
            return validation_error('email must be a string.')
        if not email:
            return error_response('Email required.')

        user = User.objects.filter(email=email.lower()).first()
        if user is None:
            return error_response('User not found.', 404)
        if user.is_email_verified:
            return JsonResponse({'message': 'Email already verified.'})

        user.verification_token = generate_token()
        user.save(update_fields=['verification_token', 'updated_at'])

        try:
            send_verification_email(user.email, user.verification_token)
        except EmailDeliveryError:
            return error_response('Failed to send verification email.', 502)

        return JsonResponse({'message': 'Verification email sent.'})

    token = text_field(body, 'token')
    if token is None:
        return validation_error('token must be a string.')
    if not token:
        return error_response('Token required.')

    user = User.objects.filter(verification_token=token).first()
    if user is None:
        return error_response('Invalid token.')

    user.is_email_verified = True
    user.email_verified_at = timezone.now()
    user.verification_token = None
    user.save(update_fields=['is_email_verified', 'email_verified_at', 'verification_token', 'updated_at'])

    audit_email_verified(request, user)
    return JsonResponse({'message': 'Email verified successfully.'})


@csrf_exempt
@require_http_methods(["POST", "PATCH"])
def reset_password(request: HttpRequest) -> JsonResponse:
    """
    POST  /api/auth/reset-password {email}           - email a reset link
    PATCH /api/auth/reset-password {token, password} - set a new password
    """
    body = read_json(request)
    if body is None:
        return invalid_json()

    if request.method == 'POST':
        email = text_field(body, 'email')
        if email is None:
            return validation_error('email must be a string.')
        if not email:
            return error_response('Email required.')

        user = User.objects.filter(email=email.lower()).first()
        if user is None:
            return error_response('User not found.', 404)

        user.reset_token = generate_token()
        user.reset_token_expires_at = timezone.now() + timedelta(
            seconds=settings.PASSWORD_RESET_TTL_SECONDS
        )
        user.save(update_fields=['reset_token', 'reset_token_expires_at', 'updated_at'])

        try:
            send_password_reset_email(user.email, user.reset_token)
        except EmailDeliveryError:
            return error_response('Failed to send password reset email.', 502)

        return JsonResponse({'message': 'Password reset email sent.'})

    token = text_field(body, 'token')
    password = text_field(body, 'password', strip=False)
    if token is None or password is None:
        return validation_error('token and password must be strings.')
    if not token or not password:
        return error_response('Token and password required.')

    if len(password) < settings.MIN_PASSWORD_LENGTH:
        return error_response(
            f'Password must be at least {settings.MIN_PASSWORD_LENGTH} characters.'
        )

    user = User.objects.filter(
        reset_token=token,
        reset_token_expires_at__gt=timezone.now()
    ).first()
    if user is None:
        return error_response('Invalid or expired token.')

    user.set_password(password)
    user.reset_token = None
    user.reset_token_expires_at = None
    user.save(update_fields=['password', 'reset_token', 'reset_token_expires_at', 'updated_at'])

    audit_password_reset(request, user)
    return JsonResponse({'message': 'Password reset successful.'})


@csrf_exempt
@require_http_methods(["GET", "PATCH"])
@auth_required
def user_settings(request: HttpRequest) -> JsonResponse:
    """
    GET/PATCH /api/user

    PATCH only touches the fields listed in SETTINGS_FIELDS; anything
    else in the body is ignored.
    """
    user = request.auth_user

    if request.method == 'GET':
        return JsonResponse({'user': user.to_dict()})

    body = read_json(request)
    if body is None:
        return invalid_json()

    update_fields = []
    for key, attr in SETTINGS_FIELDS.items():
        if key not in body:
            continue
        value = body[key]
        if key == 'lastName':
            value = text_field(body, key)
            if value is None:
                return validation_error('lastName must be a string')
            value = value or None
        else:
            error = validate_setting(key, value)
            if error:
                return validation_error(error)
            if isinstance(value, str):
                value = value.strip()
        setattr(user, attr, value)
        update_fields.append(attr)

    if update_fields:
        user.save(update_fields=update_fields + ['updated_at'])

    return JsonResponse({'user': user.to_dict()})


@csrf_exempt
@require_http_methods(["GET", "PATCH"])
@auth_required
def profile(request: HttpRequest) -> JsonResponse:
    """
    GET/PATCH /api/user/profile

    Profile data plus counts of documents, team memberships and owned
    teams.
    """
    user = request.auth_user

    if request.method == 'GET':
        return JsonResponse(profile_payload(user))

    body = read_json(request)
    if body is None:
        return invalid_json()

    update_fields = []

    first_name = body.get('firstName')
    if isinstance(first_name, str) and first_name.strip():
        user.first_name = first_name.strip()
        update_fields.append('first_name')

    for key, attr in (('lastName', 'last_name'), ('image', 'image')):
        if key not in body:
            continue
        value = text_field(body, key)
        if value is None:
            return validation_error(f'{key} must be a string')
        setattr(user, attr, value or None)
        update_fields.append(attr)

    for key in ('persona', 'preferredLanguage', 'notificationsEnabled'):
        if key in body and body[key] is not None:
            error = validate_setting(key, body[key])
            if error:
                return validation_error(error)
            setattr(user, SETTINGS_FIELDS[key], body[key])
            update_fields.append(SETTINGS_FIELDS[key])

    if update_fields:
        user.save(update_fields=update_fields + ['updated_at'])

    return JsonResponse(profile_payload(user))


@csrf_exempt
@require_http_methods(["GET", "PATCH"])
@auth_required
def user_status(request: HttpRequest) -> JsonResponse:
    """
    GET/PATCH /api/user/status

    Presence status (ONLINE, AWAY, BUSY, OFFLINE) and a free-text message.
    """
    user = request.auth_user

    if request.method == 'PATCH':
        body = read_json(request)
        if body is None:
            return invalid_json()

        update_fields = []
        if 'status' in body:
            if body['status'] not in PresenceStatus.values:
                return error_response(
                    f"status must be one of: {', '.join(PresenceStatus.values)}"
                )
            user.status = body['status']
            update_fields.append('status')

        if 'statusMessage' in body:
            message = body.get('statusMessage') or ''
            if not isinstance(message, str):
                return validation_error('statusMessage must be a string')
            user.status_message = message.strip()[:255] or None
            update_fields.append('status_message')

        if update_fields:
            user.save(update_fields=update_fields + ['updated_at'])

    return JsonResponse({
        'status': user.status,
        'statusMessage': user.status_message,
    })
