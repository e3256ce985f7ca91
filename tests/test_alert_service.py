from unittest.mock import MagicMock, Mock, patch
from uuid import uuid4

import httpx

from zapdesk.services.alert_service import (
    alert_chatbot_failed,
    alert_conversations_healed,
    alert_distribution_failed,
    alert_ingestion_failed,
    format_alert,
    send_alert,
)


def _telegram(mock_client_class, **post):
    mock_client = MagicMock()
    mock_client_class.return_value.__enter__.return_value = mock_client
    if "side_effect" in post:
        mock_client.post.side_effect = post["side_effect"]
    else:
        mock_client.post.return_value = post["response"]
    return mock_client


class TestFormatAlert:
    def test_header_title_and_fields(self):
        text = format_alert("ERROR", "Chatbot não respondeu", {"conversa": "abc", "código": "timeout"})

        lines = text.split("\n")
        assert lines[0].startswith("❌ *ERROR*")
        assert lines[1] == "Chatbot não respondeu"
        assert "• conversa: `abc`" in lines
        assert "• código: `timeout`" in lines

    def test_empty_fields_are_omitted(self):
        text = format_alert("WARNING", "Teste", {"erro": None, "instância": ""})

        assert "•" not in text

    def test_long_values_are_truncated(self):
        text = format_alert("ERROR", "Teste", {"erro": "x" * 1000})

        assert "x" * 300 + "`" in text
        assert "x" * 301 not in text


class TestSendAlert:
    @patch("zapdesk.services.alert_service.ALERT_BOT_TOKEN", None)
    @patch("zapdesk.services.alert_service.ALERT_CHAT_ID", None)
    def test_returns_false_when_not_configured(self):
        assert send_alert("ERROR", "Test message") is False

    @patch("zapdesk.services.alert_service.ALERT_BOT_TOKEN", "test-token")
    @patch("zapdesk.services.alert_service.ALERT_CHAT_ID", "test-chat")
    @patch("zapdesk.services.alert_service.httpx.Client")
    def test_sends_alert_to_telegram(self, mock_client_class):
        mock_client = _telegram(mock_client_class, response=Mock(status_code=200, is_success=True))

        result = send_alert("ERROR", "Falha ao registrar mensagem do WhatsApp", {"instância": "loja-centro"})

        assert result is True
        call_args = mock_client.post.call_args
        assert "api.telegram.org/bottest-token" in call_args[0][0]
        assert call_args[1]["json"]["chat_id"] == "test-chat"
        assert "loja-centro" in call_args[1]["json"]["text"]

    @patch("zapdesk.services.alert_service.ALERT_BOT_TOKEN", "test-token")
    @patch("zapdesk.services.alert_service.ALERT_CHAT_ID", "test-chat")
    @patch("zapdesk.services.alert_service.httpx.Client")
    def test_rejected_by_telegram(self, mock_client_class):
        _telegram(mock_client_class, response=Mock(status_code=400, is_success=False))

        assert send_alert("ERROR", "Test") is False

    @patch("zapdesk.services.alert_service.ALERT_BOT_TOKEN", "test-token")
    @patch("zapdesk.services.alert_service.ALERT_CHAT_ID", "test-chat")
    @patch("zapdesk.services.alert_service.httpx.Client")
    def test_handles_http_error(self, mock_client_class):
        _telegram(mock_client_class, side_effect=httpx.ConnectError("network down"))

        assert send_alert("ERROR", "Test") is False


class TestDomainAlerts:
    @patch("zapdesk.services.alert_service.send_alert", return_value=True)
    def test_ingestion_failed(self, mock_send):
        alert_ingestion_failed("loja-centro", "connection reset")

        mock_send.assert_called_once_with(
            "ERROR",
            "Falha ao registrar mensagem do WhatsApp",
            {"instância": "loja-centro", "erro": "connection reset"},
        )

    @patch("zapdesk.services.alert_service.send_alert", return_value=True)
    def test_chatbot_failed_names_conversation(self, mock_send):
        conversa_id = uuid4()

        alert_chatbot_failed(conversa_id, "timeout", "read timed out")

        level, _, context = mock_send.call_args[0]
        assert level == "ERROR"
        assert context == {"conversa": str(conversa_id), "código": "timeout", "erro": "read timed out"}

    @patch("zapdesk.services.alert_service.send_alert", return_value=True)
    def test_distribution_failed(self, mock_send):
        conversa_id = uuid4()

        alert_distribution_failed(conversa_id, "deadlock detected")

        assert mock_send.call_args[0][2] == {"conversa": str(conversa_id), "erro": "deadlock detected"}

    @patch("zapdesk.services.alert_service.send_alert", return_value=True)
    def test_healed_conversations_counted_per_issue(self, mock_send):
        healed = [
            {"conversa_id": "a", "issue": "pendente_with_agent"},
            {"conversa_id": "b", "issue": "pendente_with_agent"},
            {"conversa_id": "c", "issue": "em-atendimento_no_agent"},
        ]

        alert_conversations_healed(healed)

        mock_send.assert_called_once_with(
            "WARNING",
            "3 conversa(s) corrigida(s)",
            {"pendente_with_agent": 2, "em-atendimento_no_agent": 1},
        )
