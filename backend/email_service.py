"""
SendGrid email service for Pharma Field Sales
- Application received (to the applicant)
- Access approved, with temporary credentials
- Access rejected
"""

import os
import logging
from datetime import datetime, timezone
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import Mail, Email, To, Content

from config import PORTAL_URL

logger = logging.getLogger("email_service")

# Configuration
SENDGRID_API_KEY = os.environ.get('SENDGRID_API_KEY', '')
SENDER_EMAIL = os.environ.get('SENDER_EMAIL', 'noreply@pharma-field.local')
SENDER_NAME = os.environ.get('SENDER_NAME', 'Pharma Field Sales')


def _layout(title: str, color: str, body_html: str) -> str:
    return f"""
    <!DOCTYPE html>
    <html>
    <head>
        <meta charset="UTF-8">
        <style>
            body {{ font-family: Arial, sans-serif; margin: 0; padding: 20px; background-color: #f5f5f5; }}
            .container {{ max-width: 600px; margin: 0 auto; background: white; border-radius: 8px; overflow: hidden; }}
            .header {{ background: {color}; color: white; padding: 20px; text-align: center; }}
            .header h1 {{ margin: 0; font-size: 22px; }}
            .content {{ padding: 30px; color: #1F2937; }}
            .box {{ background: #F3F4F6; padding: 15px; border-radius: 4px; margin: 20px 0; }}
            .footer {{ background: #F9FAFB; padding: 15px; text-align: center; font-size: 12px; color: #6B7280; }}
        </style>
    </head>
    <body>
        <div class="container">
            <div class="header"><h1>{title}</h1></div>
            <div class="content">{body_html}</div>
            <div class="footer">
                {SENDER_NAME} - {datetime.now(timezone.utc).strftime('%d/%m/%Y %H:%M')} UTC
            </div>
        </div>
    </body>
    </html>
    """


class EmailService:
    """Single entry point for outgoing emails"""

    def __init__(self):
        self.api_key = SENDGRID_API_KEY
        self.sender = SENDER_EMAIL
        self.sender_name = SENDER_NAME

    def _send_email(self, to_email: str, subject: str, html_content: str) -> bool:
        """Sends one email via SendGrid. Never raises, returns delivery success."""
        if not self.api_key:
            logger.warning(f"SENDGRID_API_KEY not configured, email to {to_email} not sent: {subject}")
            return False

        try:
            message = Mail(
                from_email=Email(self.sender, self.sender_name),
                to_emails=To(to_email),
                subject=subject,
                html_content=Content("text/html", html_content)
            )

            sg = SendGridAPIClient(self.api_key)
            response = sg.send(message)

            if response.status_code in [200, 202]:
                logger.info(f"Email sent to {to_email}: {subject}")
                return True
            logger.error(f"Email send failed: {response.status_code}")
            return False

        except Exception as e:
            logger.error(f"Exception sending email to {to_email}: {str(e)}")
            return False

    # ==================== MR ACCESS REQUESTS ====================

    def send_application_received_email(self, name: str, email: str, phone: str, area: str) -> bool:
        subject = "We received your MR application"
        body = f"""
            <p>Dear {name},</p>
            <p>Thank you for applying for Medical Representative access.
               Our team will review your application and get back to you by email.</p>
            <div class="box">
                <strong>Email:</strong> {email}<br>
                <strong>Phone:</strong> {phone}<br>
                <strong>Area:</strong> {area}
            </div>
        """
        return self._send_email(email, subject, _layout("Application received", "#2563EB", body))

    def send_approval_email(self, email: str, name: str, temp_password: str) -> bool:
        subject = "Your MR account is approved"
        body = f"""
            <p>Dear {name},</p>
            <p>Your application has been approved. Use the credentials below to sign in.
               You will be asked to choose a new password at your first login.</p>
            <div class="box">
                <strong>Email:</strong> {email}<br>
                <strong>Temporary password:</strong> <code>{temp_password}</code>
            </div>
            <p>
                <a href="{PORTAL_URL}/login" style="display: inline-block; background: #16A34A; color: white; padding: 10px 20px; text-decoration: none; border-radius: 4px;">
                    Sign in
                </a>
            </p>
        """
        return self._send_email(email, subject, _layout("Welcome aboard", "#16A34A", body))

    def send_rejection_email(self, email: str, name: str, reason: str = "") -> bool:
        subject = "Update on your MR application"
        reason_html = f'<div class="box"><strong>Reason:</strong> {reason}</div>' if reason else ""
        body = f"""
            <p>Dear {name},</p>
            <p>Thank you for your interest. After review, we are unable to approve
               your application at this time.</p>
            {reason_html}
        """
        return self._send_email(email, subject, _layout("Application update", "#DC2626", body))


# Global instance
email_service = EmailService()
