import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

EMAIL_MODES = ("inline", "thread")


@dataclass
class Settings:
    """Process settings read from HYN_* environment variables."""

    data_dir: Path = field(default_factory=lambda: Path(os.environ.get("HYN_DATA_DIR", "./data")))
    rules_path: Path = field(
        default_factory=lambda: Path(os.environ.get("HYN_RULES_PATH", "rules.yaml"))
    )
    log_level: str = field(default_factory=lambda: os.environ.get("HYN_LOG_LEVEL", "INFO"))
    email_mode: str = field(default_factory=lambda: os.environ.get("HYN_EMAIL_MODE", "inline"))
    migrations_dir: Path = Path("migrations")

    @property
    def db_path(self) -> Path:
        return self.data_dir / "hyn.db"

    def validate(self) -> None:
        """Fail fast on settings the app cannot start with."""
        if self.email_mode not in EMAIL_MODES:
            raise ValueError(
                f"HYN_EMAIL_MODE must be one of {', '.join(EMAIL_MODES)}, got {self.email_mode!r}"
            )
        if not isinstance(logging.getLevelName(self.log_level.upper()), int):
            raise ValueError(f"HYN_LOG_LEVEL is not a logging level: {self.log_level!r}")
        if not self.rules_path.exists():
            raise FileNotFoundError(f"Rules file not found: {self.rules_path}")


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
