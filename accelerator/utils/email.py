"""
Notification sender: named applicant templates delivered over SMTP.

Sending happens on a small thread pool so the event loop never blocks on
the SMTP conversation. A send never raises; callers get True/False.
"""

import asyncio
import logging
import os
import smtplib
from concurrent.futures import ThreadPoolExecutor
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

logger = logging.getLogger(__name__)

executor = ThreadPoolExecutor(max_workers=3)

SMTP_CONFIGS = {
    'gmail': {'host': 'smtp.gmail.com', 'port': 587, 'use_tls': True},
    'outlook': {'host': 'smtp-mail.outlook.com', 'port': 587, 'use_tls': True},
    'office365': {'host': 'smtp.office365.com', 'port': 587, 'use_tls': True},
}

PROGRAM_NAME = os.getenv('PROGRAM_NAME', 'Accelerator')

# template name -> (subject, body); bodies are formatted with the applicant's first name
TEMPLATES = {
    'phase2_promotion': (
        "Next step: attend a webinar",
        "Hi {name},\n\nThanks for applying! Please attend one of our upcoming "
        "webinars and enter the code shared during the session to continue.",
    ),
    'phase3_invitation': (
        "You're invited to the in-depth application",
        "Hi {name},\n\nYou've been invited to complete our in-depth application. "
        "Log in to your dashboard to get started.",
    ),
    'phase3_submitted': (
        "We received your application",
        "Hi {name},\n\nThanks for submitting your in-depth application. "
        "Our team is reviewing it and will be in touch.",
    ),
    'phase3_rejected': (
        "Update on your application",
        "Hi {name},\n\nThank you for your interest. Unfortunately we won't be "
        "continuing with your application at this time.",
    ),
    'phase4_invitation': (
        "Let's schedule an interview",
        "Hi {name},\n\nWe liked your application! An interviewer has been assigned "
        "and will reach out to schedule a time.",
    ),
    'phase4_rejected': (
        "Update on your application",
        "Hi {name},\n\nThank you for interviewing with us. We think you have "
        "potential but won't be moving forward at this time.",
    ),
    'accepted': (
        "Congratulations!",
        "Hi {name},\n\nCongratulations! You've been accepted into the program. "
        "We'll follow up shortly with onboarding details.",
    ),
}


def get_smtp_config():
    provider = os.getenv('MAIL_PROVIDER', 'custom').lower()
    if provider in SMTP_CONFIGS:
        return SMTP_CONFIGS[provider]
    return {
        'host': os.getenv('SMTP_HOST', 'localhost'),
        'port': int(os.getenv('SMTP_PORT', 587)),
        'use_tls': True,
    }


def render_template(template: str, name: str):
    """Return (subject, text body) for a named template. KeyError for unknown names."""
    subject, body = TEMPLATES[template]
    signature = f"\n\n---\n{PROGRAM_NAME} Team"
    return f"{PROGRAM_NAME}: {subject}", body.format(name=name or "there") + signature


def send_email_sync(to_email, subject, text_content):
    sender_email = os.getenv('MAIL_USERNAME')
    sender_password = os.getenv('MAIL_PASSWORD')
    sender_name = os.getenv('MAIL_FROM_NAME', PROGRAM_NAME)

    if not sender_email or not sender_password:
        logger.info("Email credentials not configured; would send %r to %s", subject, to_email)
        return False

    smtp_config = get_smtp_config()

    message = MIMEMultipart("alternative")
    message["Subject"] = subject
    message["From"] = f"{sender_name} <{sender_email}>"
    message["To"] = to_email
    message.attach(MIMEText(text_content, "plain"))

    try:
        server = smtplib.SMTP(smtp_config['host'], smtp_config['port'], timeout=30)
        try:
            server.ehlo()
            if smtp_config['use_tls']:
                server.starttls()
                server.ehlo()
            server.login(sender_email, sender_password)
            server.send_message(message)
        finally:
            server.quit()
    except (smtplib.SMTPException, OSError) as e:
        logger.warning("Email to %s failed: %s", to_email, e)
        return False

    logger.info("Email %r sent to %s", subject, to_email)
    return True


async def send_notification(applicant: dict, template: str) -> bool:
    """Send a named template to an applicant. Returns success; never raises for SMTP errors."""
    to_email = applicant.get("email")
    if not to_email:
        logger.warning("Applicant %s has no email; skipping %s", applicant.get("_id"), template)
        return False

    subject, text_content = render_template(template, applicant.get("first_name"))
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(executor, send_email_sync, to_email, subject, text_content)
