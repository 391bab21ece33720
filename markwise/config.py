import os
from pathlib import Path


BASE_DIR = Path(__file__).resolve().parent.parent


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "default-secret-key")
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", f"sqlite:///{BASE_DIR / 'markwise.db'}"
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    HTTP_USER_AGENT = os.environ.get(
        "HTTP_USER_AGENT", "MarkwiseBot/1.0 (+https://markwise.local)"
    )

    GROQ_API_KEY = os.environ.get("GROQ_API_KEY", "")
    GROQ_API_URL = os.environ.get("GROQ_API_URL", "https://api.groq.com/openai/v1")
    GROQ_MODEL = os.environ.get("GROQ_MODEL", "llama-3.3-70b-versatile")
    SUMMARY_TIMEOUT = float(os.environ.get("SUMMARY_TIMEOUT", "10"))
    SUMMARY_MAX_WORDS = int(os.environ.get("SUMMARY_MAX_WORDS", "150"))
    AUTO_SUMMARY = os.environ.get("AUTO_SUMMARY", "1") == "1"

    ELEVENLABS_API_KEY = os.environ.get("ELEVENLABS_API_KEY", "")
    ELEVENLABS_API_URL = os.environ.get(
        "ELEVENLABS_API_URL", "https://api.elevenlabs.io/v1"
    )
    ELEVENLABS_VOICE_ID = os.environ.get("ELEVENLABS_VOICE_ID", "I6FCyzfC1FISEENiALlo")


class TestConfig(Config):
    TESTING = True
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    GROQ_API_KEY = "test-groq-key"
    GROQ_API_URL = "https://groq.test/openai/v1"
    ELEVENLABS_API_KEY = "test-elevenlabs-key"
    ELEVENLABS_API_URL = "https://elevenlabs.test/v1"
