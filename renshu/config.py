import os
import re
import configparser

class Config:
    def __init__(self, root_path):
        self.root_path = root_path
        self._cfg = configparser.ConfigParser()
        self._cfg.read(os.path.join(root_path, "config.ini"), encoding="utf-8")

        # Flask Config
        self.SECRET_KEY = os.environ.get("SECRET_KEY") or self._cfg.get("app", "secret_key", fallback="renshu-dev-secret")
        self.SEND_FILE_MAX_AGE_DEFAULT = 0
        self.TEMPLATES_AUTO_RELOAD = True
        self.JSON_AS_ASCII = False
        self.LOG_DIR = os.environ.get("LOG_DIR") or self._cfg.get("app", "log_dir", fallback=os.path.join(root_path, "logs"))
        self.PORT = int(os.environ.get("PORT") or self._cfg.get("app", "port", fallback="7860"))

        # AI Gateway Config (OpenAI-compatible endpoint)
        self.API_KEY = os.environ.get("API_KEY") or os.environ.get("OPENAI_API_KEY") or self._cfg.get("ai", "api_key", fallback="")
        self.AI_BASE_URL = os.environ.get("AI_BASE_URL") or self._cfg.get("ai", "base_url", fallback="https://api.openai.com/v1")
        self.TEXT_MODEL_ID = self._normalize_model_id(os.environ.get("TEXT_MODEL") or self._cfg.get("ai", "text_model", fallback="gpt-4o-mini"))
        self.TTS_MODEL_ID = self._normalize_model_id(os.environ.get("TTS_MODEL") or self._cfg.get("ai", "tts_model", fallback="gpt-4o-mini-tts"))
        self.AI_TIMEOUT_S = float(os.environ.get("AI_TIMEOUT_S") or self._cfg.get("ai", "timeout_s", fallback="30"))

        # TTS Config
        self.TTS_VOICE = os.environ.get("TTS_VOICE") or self._cfg.get("tts", "voice", fallback="coral")
        self.TTS_SAMPLE_RATE = int(os.environ.get("TTS_SAMPLE_RATE") or self._cfg.get("tts", "sample_rate", fallback="24000"))
        self.TTS_CHANNELS = int(os.environ.get("TTS_CHANNELS") or self._cfg.get("tts", "channels", fallback="1"))

        # Lesson content; empty means the built-in table
        self.SCENARIOS_PATH = os.environ.get("SCENARIOS_PATH") or self._cfg.get("content", "scenarios_path", fallback="")

        # Session store
        self.SESSION_TTL_S = int(os.environ.get("SESSION_TTL_S") or self._cfg.get("app", "session_ttl_s", fallback="3600"))
        self.MAX_SESSIONS = int(os.environ.get("MAX_SESSIONS") or self._cfg.get("app", "max_sessions", fallback="1000"))

        # Client-side timings (ms)
        self.ADVANCE_DELAY_MS = 1200
        self.ERROR_CLEAR_MS = 3000

    def _normalize_model_id(self, mid):
        return re.sub(r"\s+", "", str(mid or "").strip())

    def apply(self, overrides):
        """Copy known upper-case keys from ``overrides`` onto this config."""
        for key, value in (overrides or {}).items():
            if key.isupper() and hasattr(self, key):
                setattr(self, key, value)

    def as_flask_config(self):
        return {
            "SECRET_KEY": self.SECRET_KEY,
            "SEND_FILE_MAX_AGE_DEFAULT": self.SEND_FILE_MAX_AGE_DEFAULT,
            "TEMPLATES_AUTO_RELOAD": self.TEMPLATES_AUTO_RELOAD,
            "JSON_AS_ASCII": self.JSON_AS_ASCII,
        }

config = Config(os.getcwd())
