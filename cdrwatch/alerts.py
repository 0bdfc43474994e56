from __future__ import annotations
import logging, os, smtplib, requests
from email.mime.text import MIMEText

logger = logging.getLogger("cdrwatch.alerts")


def send_email(subject: str, body: str, cfg: dict | None = None):
    opts = (cfg or {}).get("alerts", {})
    host = os.getenv("SMTP_HOST"); user = os.getenv("SMTP_USER"); pwd = os.getenv("SMTP_PASS")
    to_addr = os.getenv(opts.get("email_to_env", "ALERT_EMAIL_TO"))
    if not all([host, user, pwd, to_addr]):
        return False
    msg = MIMEText(body)
    msg["Subject"] = f"[cdrwatch] {subject}"
    msg["From"] = user
    msg["To"] = to_addr
    try:
        with smtplib.SMTP(host) as s:
            s.starttls(); s.login(user, pwd); s.sendmail(user, [to_addr], msg.as_string())
    except (smtplib.SMTPException, OSError) as e:
        logger.warning(f"Alert email failed: {e}")
        return False
    return True


def send_slack(text: str, cfg: dict | None = None):
    opts = (cfg or {}).get("alerts", {})
    url = os.getenv(opts.get("slack_webhook_env", "SLACK_WEBHOOK_URL"))
    if not url:
        return False
    try:
        requests.post(url, json={"text": text}, timeout=5).raise_for_status()
    except requests.RequestException as e:
        logger.warning(f"Slack alert failed: {e}")
        return False
    return True


def alert(subject: str, body: str, cfg: dict | None = None):
    send_email(subject, body, cfg)
    send_slack(f":rotating_light: {subject}: {body}", cfg)
