# Overview: Outbound notification hook for enquiries.
#
# Email delivery is not part of this backend. The hook records what would be
# sent through the app logger; swap send_message for a real transport later.

from __future__ import annotations

from flask import current_app

from ..models import Enquiry


class NotificationError(RuntimeError):
    """Delivery failed; callers log and continue."""


def send_message(*, to: str, subject: str, body: str) -> None:
    current_app.logger.info("Notification to=%s subject=%r (%d chars)", to, subject, len(body))


def notify_new_enquiry(enquiry: Enquiry) -> None:
    """Tell the site admins a new contact-form enquiry arrived."""
    admin_email = current_app.config.get("ADMIN_NOTIFY_EMAIL")
    if not admin_email:
        return
    send_message(
        to=admin_email,
        subject=f"New enquiry: {enquiry.subject}",
        body=f"{enquiry.name} <{enquiry.email}> wrote:\n\n{enquiry.message}",
    )


def send_enquiry_response(enquiry: Enquiry, message: str) -> None:
    """Email an admin response back to the enquirer."""
    if not enquiry.email:
        raise NotificationError(f"Enquiry {enquiry.id} has no email address")
    send_message(
        to=enquiry.email,
        subject=f"Re: {enquiry.subject}",
        body=message,
    )
