"""Forum server configuration via environment variables."""

from pydantic_settings import BaseSettings


class ForumServerSettings(BaseSettings):
    model_config = {"env_prefix": "FORUM_"}

    log_dir: str | None = "backend/logs/forum"
    # JSON array in the environment, e.g. FORUM_ALLOWED_HOSTS='["forum.example.com"]'
    allowed_hosts: list[str] = ["localhost", "127.0.0.1", "testserver", "*.local"]
