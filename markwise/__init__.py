import httpx
from flask import Flask

from markwise.api import api_bp
from markwise.auth import auth_bp
from markwise.config import Config
from markwise.extensions import db, login_manager, migrate
from markwise.services.metadata import MetadataFetcher
from markwise.services.speech import SpeechSynthesizer
from markwise.services.summary import SummaryGenerator
from markwise.web import web_bp


def build_http_client(config) -> httpx.Client:
    return httpx.Client(
        headers={
            "User-Agent": config["HTTP_USER_AGENT"],
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
        },
    )


def create_app(config_object=Config, http_client: httpx.Client | None = None):
    app = Flask(__name__)
    app.config.from_object(config_object)

    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)

    client = http_client or build_http_client(app.config)
    app.extensions["markwise"] = {
        "http_client": client,
        "fetcher": MetadataFetcher(client),
        "summarizer": SummaryGenerator(
            client,
            api_key=app.config["GROQ_API_KEY"],
            base_url=app.config["GROQ_API_URL"],
            model=app.config["GROQ_MODEL"],
            timeout=app.config["SUMMARY_TIMEOUT"],
        ),
        "synthesizer": SpeechSynthesizer(
            client,
            api_key=app.config["ELEVENLABS_API_KEY"],
            base_url=app.config["ELEVENLABS_API_URL"],
            voice_id=app.config["ELEVENLABS_VOICE_ID"],
        ),
    }

    app.register_blueprint(auth_bp)
    app.register_blueprint(web_bp)
    app.register_blueprint(api_bp)

    @app.cli.command("init-db")
    def init_db_command():
        db.create_all()
        print("Initialized Markwise database.")

    @app.context_processor
    def inject_globals():
        return {"app_name": "Markwise"}

    with app.app_context():
        db.create_all()

    return app
