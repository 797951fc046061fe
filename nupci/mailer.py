# nupci/mailer.py

# =================================================================================
# 📧 MÓDULO DE ENVÍO DE CORREOS
# ---------------------------------------------------------------------------------
# Envío por SendGrid (por defecto) o Gmail SMTP, conmutables con EMAIL_PROVIDER.
# DRY_RUN=1 (por defecto) solo registra el envío en logs: dev, CI y tests.
# Todas las funciones devuelven bool; los fallos reales disparan una alerta al
# webhook configurado (ALERT_WEBHOOK_URL) y nunca lanzan excepción.
# =================================================================================

import html
import json
import os
import smtplib
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from typing import Optional

import requests
from loguru import logger
from sendgrid import SendGridAPIClient
from sendgrid.helpers.mail import From, Mail

from nupci.config import is_dry_run
from nupci.utils.i18n import resolve_lang

EMAIL_SENDER_NAME = os.getenv("EMAIL_SENDER_NAME", "Nupci")
SMTP_HOST = os.getenv("SMTP_HOST", "smtp.gmail.com")
SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))

# Valida configuración crítica solo si NO estamos en modo simulación.
if not is_dry_run():
    _provider = os.getenv("EMAIL_PROVIDER", "sendgrid").lower()
    if _provider == "sendgrid" and (not os.getenv("SENDGRID_API_KEY") or not os.getenv("EMAIL_FROM")):
        raise RuntimeError("Faltan SENDGRID_API_KEY o EMAIL_FROM para envíos reales con SendGrid.")
    if _provider == "gmail" and (not os.getenv("EMAIL_USER") or not os.getenv("EMAIL_PASS")):
        raise RuntimeError("Faltan EMAIL_USER o EMAIL_PASS para envíos reales con Gmail.")


def mask_email(addr: Optional[str]) -> str:
    if not addr:
        return "<no-email>"
    addr = addr.strip()
    if "@" not in addr or len(addr) < 3:
        return addr[:2] + "***"
    name, dom = addr.split("@", 1)
    return name[:2] + "***@" + dom


# =================================================================================
# 📢 Webhook de alertas (opcional)
# =================================================================================
def send_alert_webhook(title: str, message: str) -> None:
    """Envía alerta a ALERT_WEBHOOK_URL si está definido; silencioso si no."""
    url = os.getenv("ALERT_WEBHOOK_URL")
    if not url:
        return
    try:
        payload = {"text": f"{title}\n{message}"}
        requests.post(url, data=json.dumps(payload), headers={"Content-Type": "application/json"}, timeout=5)
    except requests.RequestException as e:
        logger.error("No se pudo notificar alerta por webhook: {}", e)


# =================================================================================
# 🚚 Proveedores
# =================================================================================
def _send_via_sendgrid(to_email: str, subject: str, html_body: str, text_body: str) -> bool:
    from_email = os.getenv("EMAIL_FROM", "")
    api_key = os.getenv("SENDGRID_API_KEY", "")
    if not from_email or not api_key:
        logger.error("Config de mailer incompleta (SendGrid): EMAIL_FROM o SENDGRID_API_KEY ausentes.")
        send_alert_webhook("🚨 Mailer config (SendGrid)", "Falta EMAIL_FROM o SENDGRID_API_KEY (modo real).")
        return False

    message = Mail(
        from_email=From(from_email, EMAIL_SENDER_NAME),
        to_emails=to_email,
        subject=subject,
        plain_text_content=text_body or "This email is best viewed in an HTML-compatible client.",
        html_content=html_body,
    )
    try:
        response = SendGridAPIClient(api_key).send(message)
        logger.info(
            "SendGrid response: {} | X-Message-Id: {}",
            response.status_code, response.headers.get("X-Message-Id"),
        )
        if 200 <= response.status_code < 300:
            return True
        logger.error("SendGrid error -> status={} | body={}", response.status_code, getattr(response, "body", None))
        send_alert_webhook("🚨 Mailer error (SendGrid)", f"No se pudo enviar a {mask_email(to_email)}. Código: {response.status_code}.")
        return False
    except Exception as e:
        logger.exception("Excepción enviando con SendGrid a {}: {}", mask_email(to_email), e)
        send_alert_webhook("🚨 Mailer exception (SendGrid)", f"Excepción enviando a {mask_email(to_email)}. Error: {e}")
        return False


def _send_via_gmail(to_email: str, subject: str, html_body: str, text_body: str) -> bool:
    user = os.getenv("EMAIL_USER", "")
    password = os.getenv("EMAIL_PASS", "")
    from_email = os.getenv("EMAIL_FROM", "") or user
    if not user or not password:
        logger.error("Config de mailer incompleta (Gmail): EMAIL_USER o EMAIL_PASS ausentes.")
        send_alert_webhook("🚨 Mailer config (Gmail)", "Falta EMAIL_USER o EMAIL_PASS (modo real).")
        return False

    msg = MIMEMultipart("alternative")
    msg["Subject"] = subject
    msg["From"] = f"{EMAIL_SENDER_NAME} <{from_email}>"
    msg["To"] = to_email
    msg.attach(MIMEText(text_body or "", "plain", "utf-8"))
    msg.attach(MIMEText(html_body, "html", "utf-8"))
    try:
        with smtplib.SMTP(SMTP_HOST, SMTP_PORT, timeout=20) as server:
            server.starttls()
            server.login(user, password)
            server.sendmail(from_email, [to_email], msg.as_string())
        logger.info("Gmail OK → {}", mask_email(to_email))
        return True
    except (smtplib.SMTPException, OSError) as e:
        logger.exception("Error SMTP enviando a {}: {}", mask_email(to_email), e)
        send_alert_webhook("🚨 Mailer exception (Gmail)", f"Excepción enviando a {mask_email(to_email)}. Error: {e}")
        return False


def send_email_html(to_email: str, subject: str, html_body: str, text_fallback: str = "") -> bool:
    """Envía un correo HTML enrutando al proveedor configurado (SendGrid/Gmail)."""
    if is_dry_run():
        logger.info("[DRY_RUN] (HTML) Simular envío a {} | Asunto: {}", mask_email(to_email), subject)
        return True
    provider = os.getenv("EMAIL_PROVIDER", "sendgrid").lower()
    if provider == "gmail":
        return _send_via_gmail(to_email, subject, html_body, text_fallback)
    return _send_via_sendgrid(to_email, subject, html_body, text_fallback)


def send_email(to_email: str, subject: str, body: str, image_url: Optional[str] = None) -> bool:
    """Envía un texto plano ya renderizado, envolviéndolo en un HTML mínimo."""
    return send_email_html(to_email, subject, text_to_html(body, image_url), text_fallback=body)


# =================================================================================
# 🧱 HTML a partir de texto renderizado
# =================================================================================
def text_to_html(body: str, image_url: Optional[str] = None) -> str:
    """Escapa el texto, convierte URLs en enlaces y saltos de línea en párrafos."""
    paragraphs = []
    for block in body.strip().split("\n\n"):
        lines = []
        for line in block.split("\n"):
            escaped = html.escape(line)
            if line.strip().startswith(("http://", "https://")):
                url = html.escape(line.strip(), quote=True)
                escaped = f'<a href="{url}" style="color:#8b5e3c;">{url}</a>'
            lines.append(escaped)
        paragraphs.append("<p>" + "<br>".join(lines) + "</p>")
    image = f'<img src="{html.escape(image_url, quote=True)}" alt="" style="max-width:100%;">' if image_url else ""
    return (
        '<div style="font-family:Georgia,serif;max-width:600px;margin:0 auto;color:#333;line-height:1.5;">'
        f"{image}{''.join(paragraphs)}</div>"
    )


# =================================================================================
# 🔑 Enlace de acceso del personal (i18n)
# =================================================================================
LOGIN_LINK_SUBJECTS = {
    "ES": "Tu enlace de acceso a Nupci",
    "EN": "Your Nupci sign-in link",
    "FR": "Votre lien de connexion Nupci",
    "IT": "Il tuo link di accesso a Nupci",
    "DE": "Dein Nupci-Anmeldelink",
}

LOGIN_LINK_BODIES = {
    "ES": "Hola {name},\n\nPulsa el siguiente enlace para entrar en {scope}:\n{url}\n\nEl enlace caduca en {minutes} minutos. Si no lo has pedido, ignora este mensaje.",
    "EN": "Hi {name},\n\nUse the link below to sign in to {scope}:\n{url}\n\nThe link expires in {minutes} minutes. If you did not request it, ignore this message.",
    "FR": "Bonjour {name},\n\nCliquez sur le lien ci-dessous pour accéder à {scope} :\n{url}\n\nLe lien expire dans {minutes} minutes. Si vous ne l'avez pas demandé, ignorez ce message.",
    "IT": "Ciao {name},\n\nUsa il link qui sotto per accedere a {scope}:\n{url}\n\nIl link scade tra {minutes} minuti. Se non l'hai richiesto, ignora questo messaggio.",
    "DE": "Hallo {name},\n\nMelde dich über den folgenden Link bei {scope} an:\n{url}\n\nDer Link läuft in {minutes} Minuten ab. Falls du ihn nicht angefordert hast, ignoriere diese Nachricht.",
}


def send_login_link_email(to_email: str, name: str, language: str, url: str, scope: str, minutes: int) -> bool:
    lang = resolve_lang(language)
    subject = LOGIN_LINK_SUBJECTS[lang]
    body = LOGIN_LINK_BODIES[lang].format(name=name, url=url, scope=scope, minutes=minutes)
    ok = send_email(to_email, subject, body)
    logger.info("Login link → {} | lang={} | ok={}", mask_email(to_email), lang, ok)
    return ok
