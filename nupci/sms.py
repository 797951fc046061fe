# nupci/sms.py

# =================================================================================
# 📱 SMS y WhatsApp vía Twilio (API REST con requests)
# ---------------------------------------------------------------------------------
# - Números destino en E.164 (+34600112233). WhatsApp usa el prefijo "whatsapp:".
# - Hasta 3 intentos con 1 s de pausa ante errores de red o 5xx.
# - DRY_RUN=1 simula el envío y devuelve un SID ficticio.
# =================================================================================

import os
import time
import uuid
from dataclasses import dataclass
from typing import Optional

import requests
from loguru import logger

from nupci.config import is_dry_run
from nupci.mailer import send_alert_webhook
from nupci.utils.phone import is_valid_e164

TWILIO_API_BASE = "https://api.twilio.com/2010-04-01"
MAX_ATTEMPTS = 3
RETRY_DELAY_SECONDS = 1.0


@dataclass
class SmsResult:
    success: bool
    sid: Optional[str] = None
    error: Optional[str] = None


def _mask_phone(phone: Optional[str]) -> str:
    if not phone:
        return "<no-phone>"
    return phone[:4] + "***" + phone[-2:]


def _credentials() -> tuple[str, str]:
    return os.getenv("TWILIO_ACCOUNT_SID", ""), os.getenv("TWILIO_AUTH_TOKEN", "")


def send_message(to_phone: str, body: str, *, whatsapp: bool = False, media_url: Optional[str] = None) -> SmsResult:
    """Envía un SMS o un WhatsApp. Nunca lanza: el resultado indica éxito o error."""
    kind = "WHATSAPP" if whatsapp else "SMS"
    if not is_valid_e164(to_phone):
        logger.warning("{} descartado: número no válido {}", kind, _mask_phone(to_phone))
        return SmsResult(False, error="INVALID_PHONE")

    if is_dry_run():
        logger.info("[DRY_RUN] ({}) Simular envío a {} | {} caracteres", kind, _mask_phone(to_phone), len(body))
        return SmsResult(True, sid=f"DRY-{uuid.uuid4().hex[:16]}")

    account_sid, auth_token = _credentials()
    sender = os.getenv("TWILIO_WHATSAPP_NUMBER" if whatsapp else "TWILIO_PHONE_NUMBER", "")
    if not account_sid or not auth_token or not sender:
        logger.error("Config de Twilio incompleta para {}", kind)
        send_alert_webhook(f"🚨 Twilio config ({kind})", "Faltan TWILIO_ACCOUNT_SID/TWILIO_AUTH_TOKEN o número remitente.")
        return SmsResult(False, error="PROVIDER_NOT_CONFIGURED")

    data = {"To": f"whatsapp:{to_phone}" if whatsapp else to_phone, "Body": body}
    data["From"] = sender if (not whatsapp or sender.startswith("whatsapp:")) else f"whatsapp:{sender}"
    if media_url and whatsapp:
        data["MediaUrl"] = media_url

    url = f"{TWILIO_API_BASE}/Accounts/{account_sid}/Messages.json"
    last_error = None
    for attempt in range(1, MAX_ATTEMPTS + 1):
        try:
            response = requests.post(url, data=data, auth=(account_sid, auth_token), timeout=15)
        except requests.RequestException as e:
            last_error = str(e)
            logger.warning("Twilio {} intento {}/{} falló: {}", kind, attempt, MAX_ATTEMPTS, e)
        else:
            if response.status_code in (200, 201):
                sid = response.json().get("sid")
                logger.info("Twilio {} OK → {} | sid={}", kind, _mask_phone(to_phone), sid)
                return SmsResult(True, sid=sid)
            last_error = f"HTTP {response.status_code}: {response.text[:200]}"
            if response.status_code < 500:
                break  # Errores 4xx no mejoran reintentando.
            logger.warning("Twilio {} intento {}/{}: {}", kind, attempt, MAX_ATTEMPTS, last_error)
        if attempt < MAX_ATTEMPTS:
            time.sleep(RETRY_DELAY_SECONDS)

    logger.error("Twilio {} falló para {}: {}", kind, _mask_phone(to_phone), last_error)
    send_alert_webhook(f"🚨 Twilio error ({kind})", f"No se pudo enviar a {_mask_phone(to_phone)}. {last_error}")
    return SmsResult(False, error=last_error)


def send_sms(to_phone: str, body: str) -> SmsResult:
    return send_message(to_phone, body)


def send_whatsapp(to_phone: str, body: str, media_url: Optional[str] = None) -> SmsResult:
    return send_message(to_phone, body, whatsapp=True, media_url=media_url)
