"""Internal constants shared across the library."""

EARTH_RADIUS_KM = 6371.0
NEARBY_RADIUS_KM = 3.0
GROUP_CAPACITY = 6

FCM_BASE_URL = "https://fcm.googleapis.com"
FCM_SEND_PATH = "/v1/projects/{project_id}/messages:send"
#: ``BadRequest`` field violation that marks the device token as rejected.
FCM_TOKEN_FIELD = "message.token"
USER_AGENT = "carcare-functions"

NOTIFICATION_TITLE = "CarCare"
VOICE_BODY = "Nowa wiadomość głosowa"
INVITE_BODY = "Nowe zaproszenie do grupy"

# ------------------------------------------------------------------
# Delivery error codes
# ------------------------------------------------------------------

INVALID_REGISTRATION_TOKEN = "messaging/invalid-registration-token"
REGISTRATION_TOKEN_NOT_REGISTERED = "messaging/registration-token-not-registered"
UNKNOWN_DELIVERY_ERROR = "messaging/unknown-error"

#: Codes meaning the token will never succeed again and must be pruned.
PERMANENT_TOKEN_ERRORS: frozenset[str] = frozenset(
    {
        INVALID_REGISTRATION_TOKEN,
        REGISTRATION_TOKEN_NOT_REGISTERED,
    }
)

#: FCM HTTP v1 ``FcmError.errorCode`` (or the RPC ``status`` when no
#: detail is present) mapped to ``messaging/*`` codes. ``INVALID_ARGUMENT``
#: on ``message.token`` is handled separately.
FCM_ERROR_CODES: dict[str, str] = {
    "UNREGISTERED": REGISTRATION_TOKEN_NOT_REGISTERED,
    "INVALID_ARGUMENT": "messaging/invalid-argument",
    "SENDER_ID_MISMATCH": "messaging/mismatched-credential",
    "QUOTA_EXCEEDED": "messaging/message-rate-exceeded",
    "UNAVAILABLE": "messaging/server-unavailable",
    "INTERNAL": "messaging/internal-error",
    "THIRD_PARTY_AUTH_ERROR": "messaging/third-party-auth-error",
    "PERMISSION_DENIED": "messaging/mismatched-credential",
}

# ------------------------------------------------------------------
# Notification tag kinds
# ------------------------------------------------------------------

TAG_KIND_VOICE = 0
TAG_KIND_INVITE = 1
TAG_SEPARATOR = "|"


def build_tag(kind: int, *fields: str) -> str:
    """Join a tag kind and its fields into a client-side grouping key.

    >>> build_tag(1, "g1", "owner", "u2")
    '1|g1|owner|u2'
    """
    return TAG_SEPARATOR.join([str(kind), *(str(f) for f in fields)])
