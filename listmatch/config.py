
import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv(os.path.join(os.getcwd(), ".env"))

@dataclass
class Settings:
    url: str = os.getenv("LISTMATCH_URL", "http://localhost:8080/")
    max_request_hashes: int = int(float(os.getenv("MAX_REQUEST_HASHES", "1e8")))
    max_total_hashes: int = int(float(os.getenv("MAX_TOTAL_HASHES", "1e8")))
    max_queries_per_upload: int = int(float(os.getenv("MAX_QUERIES_PER_UPLOAD", "1e8")))
    retention_hours: float = float(os.getenv("RETENTION_HOURS", "24"))
    http_timeout: float = float(os.getenv("HTTP_TIMEOUT", "600"))
    # bind address when a reverse proxy sits in front; defaults come from url
    listen_host: str = os.getenv("LISTEN_HOST", "")
    listen_port: int = int(os.getenv("LISTEN_PORT", "0"))
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    @property
    def retention(self) -> float:
        return self.retention_hours * 3600

settings = Settings()
