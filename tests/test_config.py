from sqlalchemy.engine import make_url

from zapdesk.config import Settings


class TestSettings:
    def test_default_database_url_names_psycopg2(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)

        settings = Settings(_env_file=None)

        assert make_url(settings.database_url).drivername == "postgresql+psycopg2"

    def test_flow_engine_url_defaults_to_supabase_function(self, monkeypatch):
        monkeypatch.delenv("CHATBOT_ENGINE_URL", raising=False)

        settings = Settings(_env_file=None, supabase_url="http://supabase.test/")

        assert settings.flow_engine_url == "http://supabase.test/functions/v1/chatbot-engine"
