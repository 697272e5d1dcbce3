"""
Transactional email for OausConnect.

HTML bodies are rendered from ``social/emails/*.html`` templates, with a
plain inline fallback when a template fails to render. The plain-text part
is derived from the HTML.
"""

import logging
from datetime import datetime

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template.loader import render_to_string
from django.utils.html import strip_tags

from .errors import AppError

logger = logging.getLogger(__name__)

SITE_NAME = 'OausConnect'


def _context(user, **extra):
    context = {
        'name': user.first_name or user.username,
        'email': user.email,
        'site_name': SITE_NAME,
        'client_url': settings.CLIENT_URL,
        'current_year': datetime.now().year,
    }
    context.update(extra)
    return context


def _render(template, context, fallback_html):
    try:
        return render_to_string(f'social/emails/{template}', context)
    except Exception as template_error:
        logger.warning(f"Template {template} render failed, using fallback: {template_error}")
        return fallback_html


def _send(to, subject, html_message, text_message=None):
    """Send one multipart email; raises AppError(500) when delivery fails."""
    email_msg = EmailMultiAlternatives(
        subject=subject,
        body=text_message or strip_tags(html_message),
        from_email=settings.DEFAULT_FROM_EMAIL,
        to=[to],
    )
    email_msg.attach_alternative(html_message, "text/html")
    try:
        email_msg.send(fail_silently=False)
    except Exception as email_error:
        logger.error(f"Email send failed for {to}: {email_error}")
        raise AppError("Failed to send email", 500)

    logger.info(f"Email '{subject}' sent to {to}")
    return True


def send_welcome_email(user, verification_url=None):
    context = _context(user, verification_url=verification_url,
                       login_url=f"{settings.CLIENT_URL}/auth")
    link = verification_url or context['login_url']
    html_message = _render('welcome.html', context, f"""
        <h2>Welcome to {SITE_NAME}, {context['name']}!</h2>
        <p>Your account is ready.</p>
        <p><a href="{link}">{link}</a></p>
    """)
    return _send(user.email, f"Welcome to {SITE_NAME}!", html_message)


def send_password_reset_email(user, reset_url):
    context = _context(user, reset_url=reset_url,
                       expires_minutes=settings.PASSWORD_RESET_EXPIRES_MINUTES)
    html_message = _render('password_reset.html', context, f"""
        <h2>Reset your {SITE_NAME} password</h2>
        <p>Follow this link within {context['expires_minutes']} minutes:</p>
        <p><a href="{reset_url}">{reset_url}</a></p>
    """)
    return _send(user.email, f"Reset Your {SITE_NAME} Password", html_message)


def send_email_verification(user, verification_url):
    context = _context(user, verification_url=verification_url,
                       expires_hours=settings.EMAIL_VERIFICATION_EXPIRES_HOURS)
    html_message = _render('email_verification.html', context, f"""
        <h2>Verify your {SITE_NAME} email address</h2>
        <p><a href="{verification_url}">{verification_url}</a></p>
    """)
    return _send(user.email, f"Verify Your {SITE_NAME} Email Address", html_message)


def send_notification_email(to, subject, message):
    html_message = _render('notification.html', {'message': message, 'site_name': SITE_NAME},
                           f"<h2>{SITE_NAME} Notification</h2><p>{message}</p>")
    return _send(to, f"{SITE_NAME}: {subject}", html_message, text_message=message)
