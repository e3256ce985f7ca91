from unittest.mock import MagicMock, Mock, patch
from uuid import uuid4

import httpx
from sqlalchemy.exc import OperationalError

from zapdesk.schemas.chatbot import FlowEngineRequest
from zapdesk.services.chatbot_service import (
    ChatbotOutcome,
    call_flow_engine,
    describe_outcome,
    trigger_chatbot,
)
from zapdesk.services.result import Result


def _mock_http_client(mock_client_class, status_code=200, json_body=None):
    mock_client = MagicMock()
    mock_client_class.return_value.__enter__.return_value = mock_client
    response = Mock(status_code=status_code, text="boom")
    response.json.return_value = json_body or {"success": True}
    mock_client.post.return_value = response
    return mock_client


class TestCallFlowEngine:
    @patch("zapdesk.services.chatbot_service.httpx.Client")
    def test_posts_request_with_service_key(self, mock_client_class):
        mock_client = _mock_http_client(mock_client_class)
        conversa_id = uuid4()

        with patch("zapdesk.services.chatbot_service.settings") as mock_settings:
            mock_settings.supabase_service_role_key = "service-key"
            mock_settings.flow_engine_url = "http://supabase.test/functions/v1/chatbot-engine"
            mock_settings.http_timeout_seconds = 5
            result = call_flow_engine(FlowEngineRequest(conversaId=conversa_id, iniciarFluxo=True))

        assert result.ok
        url = mock_client.post.call_args[0][0]
        kwargs = mock_client.post.call_args[1]
        assert url.endswith("/functions/v1/chatbot-engine")
        assert kwargs["headers"]["Authorization"] == "Bearer service-key"
        assert kwargs["json"] == {
            "conversaId": str(conversa_id),
            "iniciarFluxo": True,
            "source": "evolution_webhook",
        }

    @patch("zapdesk.services.chatbot_service.httpx.Client")
    def test_non_2xx_is_failure(self, mock_client_class):
        _mock_http_client(mock_client_class, status_code=500)

        result = call_flow_engine(FlowEngineRequest(conversaId=uuid4(), mensagemCliente="Oi"))

        assert not result.ok
        assert result.error_code == "flow_engine_error"

    @patch("zapdesk.services.chatbot_service.httpx.Client")
    def test_transport_error_is_failure(self, mock_client_class):
        mock_client = MagicMock()
        mock_client_class.return_value.__enter__.return_value = mock_client
        mock_client.post.side_effect = httpx.ConnectError("refused")

        result = call_flow_engine(FlowEngineRequest(conversaId=uuid4(), mensagemCliente="Oi"))

        assert not result.ok
        assert result.error_code == "flow_engine_unreachable"


class TestTriggerChatbot:
    @patch("zapdesk.services.chatbot_service.call_flow_engine")
    def test_new_conversation_starts_flow(self, mock_call):
        mock_call.return_value = Result.success({})
        conversa_id = uuid4()

        result = trigger_chatbot(MagicMock(), conversa_id, True, "Oi")

        assert result.value == ChatbotOutcome.STARTED
        request = mock_call.call_args[0][0]
        assert request.iniciarFluxo is True
        assert request.mensagemCliente is None
        assert request.conversaId == conversa_id

    @patch("zapdesk.services.chatbot_service.call_flow_engine")
    @patch("zapdesk.services.chatbot_service.has_active_session", return_value=True)
    def test_active_session_continues_flow(self, _mock_session, mock_call):
        mock_call.return_value = Result.success({})

        result = trigger_chatbot(MagicMock(), uuid4(), False, "Quero falar com vendas")

        assert result.value == ChatbotOutcome.CONTINUED
        request = mock_call.call_args[0][0]
        assert request.mensagemCliente == "Quero falar com vendas"
        assert request.iniciarFluxo is None

    @patch("zapdesk.services.chatbot_service.call_flow_engine")
    @patch("zapdesk.services.chatbot_service.has_active_session", return_value=False)
    def test_no_session_does_nothing(self, _mock_session, mock_call):
        result = trigger_chatbot(MagicMock(), uuid4(), False, "Oi")

        assert result.ok
        assert result.skipped
        mock_call.assert_not_called()

    @patch("zapdesk.services.chatbot_service.alert_chatbot_failed")
    @patch("zapdesk.services.chatbot_service.call_flow_engine")
    def test_failure_is_reported_and_alerted(self, mock_call, mock_alert):
        mock_call.return_value = Result.failure("down", "flow_engine_unreachable")
        conversa_id = uuid4()

        result = trigger_chatbot(MagicMock(), conversa_id, True, "Oi")

        assert not result.ok
        assert result.error_code == "flow_engine_unreachable"
        mock_alert.assert_called_once_with(conversa_id, "flow_engine_unreachable", "down")

    @patch("zapdesk.services.chatbot_service.alert_chatbot_failed")
    @patch("zapdesk.services.chatbot_service.call_flow_engine")
    def test_session_lookup_error_is_failure_not_raised(self, mock_call, mock_alert):
        db = MagicMock()
        db.query.side_effect = OperationalError("SELECT", {}, Exception("server closed the connection"))
        conversa_id = uuid4()

        result = trigger_chatbot(db, conversa_id, False, "Oi")

        assert not result.ok
        assert result.error_code == "chatbot_session_lookup"
        db.rollback.assert_called_once()
        mock_call.assert_not_called()
        assert mock_alert.call_args[0][:2] == (conversa_id, "chatbot_session_lookup")


class TestDescribeOutcome:
    def test_outcomes(self):
        assert describe_outcome(Result.success(ChatbotOutcome.STARTED)) == "iniciado"
        assert describe_outcome(Result.success(ChatbotOutcome.CONTINUED)) == "continuado"
        assert describe_outcome(Result.skip("sem_sessao")) == "sem_sessao"
        assert describe_outcome(Result.failure("x")) == "falhou"
