"""Helpdesk operations alerts, posted to a Telegram chat through the Bot API."""

import os
from typing import Any, Optional
from uuid import UUID

import httpx

from zapdesk.logging_config import get_logger

logger = get_logger("alert_service")

ALERT_BOT_TOKEN = os.environ.get("ALERT_BOT_TOKEN")
ALERT_CHAT_ID = os.environ.get("ALERT_CHAT_ID")
ALERT_SOURCE = os.environ.get("ALERT_SOURCE", "zapdesk-api")

LEVEL_ICONS = {"INFO": "ℹ️", "WARNING": "⚠️", "ERROR": "❌"}
MAX_ERROR_CHARS = 300


def format_alert(level: str, title: str, context: Optional[dict[str, Any]] = None) -> str:
    """Markdown body: header line, title, then one bullet per non-empty context field."""
    lines = [f"{LEVEL_ICONS.get(level, '📢')} *{level}* · {ALERT_SOURCE}", title]
    details = [(key, value) for key, value in (context or {}).items() if value not in (None, "")]
    if details:
        lines.append("")
        lines.extend(f"• {key}: `{str(value)[:MAX_ERROR_CHARS]}`" for key, value in details)
    return "\n".join(lines)


def send_alert(level: str, title: str, context: Optional[dict[str, Any]] = None) -> bool:
    """Returns True when Telegram accepted the message. Unconfigured bots only log."""
    if not ALERT_BOT_TOKEN or not ALERT_CHAT_ID:
        logger.warning(f"Alert not delivered (bot not configured): {level} {title}", extra={"context": context or {}})
        return False

    try:
        with httpx.Client(timeout=10) as client:
            response = client.post(
                f"https://api.telegram.org/bot{ALERT_BOT_TOKEN}/sendMessage",
                json={"chat_id": ALERT_CHAT_ID, "text": format_alert(level, title, context), "parse_mode": "Markdown"},
            )
    except httpx.HTTPError as e:
        logger.error(f"Failed to send alert: {e}")
        return False

    if not response.is_success:
        logger.error(f"Telegram rejected alert with HTTP {response.status_code}")
        return False
    return True


def alert_ingestion_failed(instance: Optional[str], error: str) -> bool:
    """Customer message could not be stored; the gateway will see a 500."""
    return send_alert("ERROR", "Falha ao registrar mensagem do WhatsApp", {"instância": instance, "erro": error})


def alert_chatbot_failed(conversa_id: UUID, error_code: Optional[str], error: Optional[str]) -> bool:
    return send_alert(
        "ERROR",
        "Chatbot não respondeu",
        {"conversa": str(conversa_id), "código": error_code, "erro": error},
    )


def alert_distribution_failed(conversa_id: UUID, error: str) -> bool:
    return send_alert("ERROR", "Falha na distribuição de conversa", {"conversa": str(conversa_id), "erro": error})


def alert_conversations_healed(healed: list[dict]) -> bool:
    issues: dict[str, int] = {}
    for item in healed:
        issues[item["issue"]] = issues.get(item["issue"], 0) + 1
    return send_alert("WARNING", f"{len(healed)} conversa(s) corrigida(s)", issues)
