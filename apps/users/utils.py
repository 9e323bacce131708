import logging
import secrets

from django.conf import settings
from django.core.cache import cache

logger = logging.getLogger(__name__)


def generate_otp(length: int = 6) -> str:
    """
    Generate a numeric OTP of `length` digits as a string.
    Example: '034591'
    """
    if length <= 0:
        raise ValueError("length must be > 0")
    return "".join(str(secrets.randbelow(10)) for _ in range(length))


def _cache_key(email: str, purpose: str) -> str:
    return f"otp:{purpose}:{email.lower().strip()}"


def create_and_send_otp(
    email: str,
    purpose: str = "verify_email",
    expiry_minutes: int = None,
    length: int = 6,
) -> str:
    """
    Generate an OTP, store it in the cache and queue the email.
    Returns the OTP so tests can complete the flow.
    - purpose: a namespace for OTPs ('verify_email', 'password_reset', ...)
    """
    from .tasks import send_otp_email

    if not email:
        raise ValueError("email is required")

    expiry_minutes = expiry_minutes or settings.OTP_EXPIRY_MINUTES
    otp = generate_otp(length=length)

    cache.set(_cache_key(email, purpose), otp, timeout=expiry_minutes * 60)
    send_otp_email.delay(email, otp, purpose, expiry_minutes)

    logger.info("OTP issued for %s (%s)", email, purpose)
    return otp


def verify_otp(email: str, otp: str, purpose: str = "verify_email", erase: bool = True) -> bool:
    """
    Verify OTP for the given email & purpose.
    If erase=True and verification succeeds, the cached OTP will be deleted.
    """
    if not email or not otp:
        return False

    cache_key = _cache_key(email, purpose)
    cached = cache.get(cache_key)

    if cached is None:
        return False

    if str(cached) == str(otp):
        if erase:
            cache.delete(cache_key)
        return True

    return False


def client_ip(request):
    forwarded = request.META.get("HTTP_X_FORWARDED_FOR")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.META.get("REMOTE_ADDR")
