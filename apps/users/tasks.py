from celery import shared_task
from django.conf import settings
from django.core.mail import send_mail

SUBJECTS = {
    "verify_email": "Verify your SkillSwap email",
    "password_reset": "Reset your SkillSwap password",
}


@shared_task(autoretry_for=(Exception,), retry_backoff=10, retry_kwargs={"max_retries": 3})
def send_otp_email(email: str, otp: str, purpose: str = "verify_email", expiry_minutes: int = 10):
    subject = SUBJECTS.get(purpose, f"[SkillSwap] Code for {purpose}")
    message = f"Your verification code is {otp}. It will expire in {expiry_minutes} minutes."
    send_mail(subject, message, settings.DEFAULT_FROM_EMAIL, [email])
