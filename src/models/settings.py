"""
SystemSetting model for runtime-editable configuration.
"""

from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from src.models.base import Base


class SystemSetting(Base):
    """
    Runtime-editable settings, one row per key.

    default_commission_rate holds the rolling commission rate as a decimal
    string (0.014 = 1.4%). It prices rolling entries that are recorded without
    their own rate and is seeded from config on startup.
    """

    __tablename__ = "system_settings"

    key: Mapped[str] = mapped_column(
        String(100),
        primary_key=True,
    )
    value: Mapped[dict] = mapped_column(
        JSON,
        nullable=False,
        comment="Scalar values are wrapped as {'v': value}",
    )

    def __repr__(self) -> str:
        return f"<SystemSetting(key='{self.key}')>"

    def get_value(self):
        """Unwrapped value."""
        if isinstance(self.value, dict) and "v" in self.value:
            return self.value["v"]
        return self.value

    def set_value(self, val):
        """Store a scalar under the {'v': ...} wrapper."""
        self.value = {"v": val}
