"""
Email Service - handles sending booking and wallet emails via SMTP.
"""
import smtplib
import ssl
import os
import re
import logging
from email.mime.text import MIMEText
from email.mime.multipart import MIMEMultipart

logger = logging.getLogger("studio_app")


def _card(title: str, body: str) -> str:
    return f"""
    <div style="max-width:480px;margin:0 auto;font-family:-apple-system,BlinkMacSystemFont,'Segoe UI',Roboto,sans-serif;background:#1a1a2e;border-radius:16px;overflow:hidden;border:1px solid rgba(255,255,255,0.1);">
        <div style="background:linear-gradient(135deg,#f97316,#ea580c);padding:24px;text-align:center;">
            <h1 style="color:white;margin:0;font-size:24px;">{title}</h1>
        </div>
        <div style="padding:32px 24px;color:#e5e7eb;font-size:14px;">
            {body}
        </div>
    </div>
    """


class EmailService:
    """Service for sending transactional emails via SMTP."""

    def __init__(self):
        self.smtp_host = os.getenv("SMTP_HOST", "")
        self.smtp_port = int(os.getenv("SMTP_PORT", "587"))
        self.smtp_user = os.getenv("SMTP_USER", "")
        self.smtp_password = os.getenv("SMTP_PASSWORD", "")
        self.from_email = os.getenv("SMTP_FROM_EMAIL", self.smtp_user)
        self.from_name = os.getenv("SMTP_FROM_NAME", "Vista Studio")
        self.admin_email = os.getenv("ADMIN_EMAIL", "")

    def is_configured(self) -> bool:
        return bool(self.smtp_host and self.smtp_user and self.smtp_password)

    def send_email(self, to_email: str, subject: str, html_body: str) -> bool:
        if not to_email:
            logger.warning(f"No recipient for email '{subject}', skipping")
            return False
        if not self.is_configured():
            logger.warning("SMTP not configured, cannot send email")
            return False

        try:
            msg = MIMEMultipart("alternative")
            msg["Subject"] = subject
            msg["From"] = f"{self.from_name} <{self.from_email}>"
            msg["To"] = to_email

            # Plain text fallback
            text_body = html_body.replace("<br>", "\n").replace("</p>", "\n")
            text_body = re.sub(r"<[^>]+>", "", text_body)

            msg.attach(MIMEText(text_body, "plain"))
            msg.attach(MIMEText(html_body, "html"))

            context = ssl.create_default_context()
            with smtplib.SMTP(self.smtp_host, self.smtp_port) as server:
                server.starttls(context=context)
                server.login(self.smtp_user, self.smtp_password)
                server.sendmail(self.from_email, to_email, msg.as_string())

            logger.info(f"Email sent to {to_email}: {subject}")
            return True
        except Exception as e:
            logger.error(f"Failed to send email to {to_email}: {e}")
            return False

    def send_booking_confirmation(self, to_email: str, user_name: str, activity_name: str,
                                  coach_name: str, date: str, start_time: str, end_time: str,
                                  activity_price) -> bool:
        body = f"""
            <p>Hi <strong style="color:white;">{user_name}</strong>,</p>
            <p>Your session is confirmed.</p>
            <p>Activity: {activity_name}<br>Coach: {coach_name}<br>
            Date: {date}<br>Time: {start_time} - {end_time}<br>Price: {activity_price}</p>
        """
        return self.send_email(to_email, "Booking Confirmation", _card("Booking Confirmed", body))

    def send_cancellation_receipt(self, to_email: str, user_name: str, activity_name: str,
                                  date: str, start_time: str, end_time: str, refund_lines: list) -> bool:
        refunds = "<br>".join(refund_lines) if refund_lines else "No refund"
        body = f"""
            <p>Hi <strong style="color:white;">{user_name}</strong>,</p>
            <p>Your booking for {activity_name} on {date} ({start_time} - {end_time}) was cancelled.</p>
            <p>Refunded:<br>{refunds}</p>
        """
        return self.send_email(to_email, "Cancelled Booking Receipt", _card("Cancelled Booking Receipt", body))

    def send_admin_cancellation_notice(self, user_name: str, activity_name: str,
                                       date: str, start_time: str, end_time: str) -> bool:
        body = f"""
            <p><strong style="color:white;">{user_name}</strong> cancelled a reservation.</p>
            <p>Activity: {activity_name}<br>Date: {date}<br>Time: {start_time} - {end_time}</p>
        """
        return self.send_email(self.admin_email, "Session Cancelled", _card("Session Cancelled", body))

    def send_refill_email(self, to_email: str, user_name: str, credits_added: float,
                          new_balance: float, token_updates: dict) -> bool:
        tokens = "<br>".join(f"{name.replace('_', ' ')}: {value:+d}" for name, value in token_updates.items() if value)
        body = f"""
            <p>Hi <strong style="color:white;">{user_name}</strong>,</p>
            <p>Credits added: {credits_added:g}<br>New balance: {new_balance:g}</p>
            {f"<p>{tokens}</p>" if tokens else ""}
        """
        return self.send_email(to_email, "Credits Refilled Successfully", _card("Credits Refilled Successfully", body))


# Singleton instance
email_service = EmailService()
