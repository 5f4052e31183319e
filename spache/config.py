"""Centralized configuration — all env vars in one place."""

import os


class Settings:
    """Application settings loaded from environment variables."""

    def __init__(self):
        self.cors_origins: list[str] = os.getenv("CORS_ORIGINS", "*").split(",")
        self.git_sha: str = os.getenv("GIT_SHA", "unknown")
        self.environment: str = os.getenv("ENVIRONMENT", "local")

        # NASA NeoWs upstream
        self.nasa_api_key: str = os.getenv("SPACHE_NASA_API_KEY", "DEMO_KEY")
        self.neo_api_base_url: str = os.getenv(
            "NEO_API_BASE_URL", "https://api.nasa.gov/neo/rest/v1"
        ).rstrip("/")
        self.upstream_timeout_seconds: float = float(os.getenv("UPSTREAM_TIMEOUT_SECONDS", "30"))

        # Links handed back to clients point here instead of the upstream host
        self.public_origin: str = os.getenv("SPACHE_PUBLIC_ORIGIN", "http://localhost:3000").rstrip("/")

        self.database_url: str = os.getenv("DATABASE_URL", "sqlite:///spache.db")

        # Bind address for the `spache` launcher
        self.host: str = os.getenv("HOST", "127.0.0.1")
        self.port: int = int(os.getenv("PORT", "3000"))

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def validate(self) -> list[str]:
        """Return list of env vars still running on their demo defaults."""
        missing = []
        if self.nasa_api_key == "DEMO_KEY":
            missing.append("SPACHE_NASA_API_KEY")
        if self.is_production and "localhost" in self.public_origin:
            missing.append("SPACHE_PUBLIC_ORIGIN")
        return missing


settings = Settings()
