"""Operator alert email sender using stdlib smtplib."""

import smtplib
from email.mime.text import MIMEText

import structlog

from cli.config_models import EmailConfig

logger = structlog.get_logger()


def send_alert_email(subject: str, body: str, email_config: EmailConfig) -> bool:
    """Send a plain-text alert to the operator. Returns True if sent.

    Config expected:
        email:
          enabled: true
          smtp_host: smtp.example.com
          smtp_port: 587
          username: oracle@example.com
          password: app-password
          admin_email: admin@example.com
          from_email: oracle@example.com
    """
    if not email_config.enabled or not email_config.smtp_host:
        logger.debug("Email not configured, skipping alert")
        return False

    to_addr = email_config.admin_email
    from_addr = email_config.from_email or email_config.username
    if not to_addr or not from_addr:
        logger.warning("Email admin/from address not configured")
        return False

    msg = MIMEText(body, "plain")
    msg["Subject"] = subject
    msg["From"] = from_addr
    msg["To"] = to_addr

    try:
        with smtplib.SMTP(email_config.smtp_host, email_config.smtp_port, timeout=email_config.timeout) as server:
            server.ehlo()
            if email_config.smtp_port != 25:
                server.starttls()
            if email_config.username and email_config.password:
                server.login(email_config.username, email_config.password)
            server.sendmail(from_addr, [to_addr], msg.as_string())
        logger.info("Alert email sent", to=to_addr, subject=subject)
        return True
    except (smtplib.SMTPException, OSError) as e:
        logger.error("Failed to send alert email", error=str(e))
        return False
