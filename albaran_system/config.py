"""Runtime configuration for the albarán order desk.

Values come from ``ALBARAN_*`` environment variables, optionally loaded from a
``.env`` file. Every option has a named field and an explicit setter.
"""

from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass, field
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, Optional, Union

from dotenv import load_dotenv

from .calculator import TAX_RATE
from .errors import ValidationError

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


@dataclass(slots=True)
class FactusolCredentials:
    client_id: str = ""
    client_secret: str = ""


@dataclass(slots=True)
class DiscountPresets:
    """Discount percentages offered to sellers on the chat channel."""

    option1: Decimal = Decimal("5")
    option2: Decimal = Decimal("10")
    option3: Decimal = Decimal("15")

    def as_tuple(self) -> tuple:
        return (self.option1, self.option2, self.option3)


@dataclass(slots=True)
class IssuerDetails:
    """Company data printed on every delivery note."""

    name: str = "Marcelino Calvo S.L."
    cif: str = "B12345679"
    address: str = "Pol. Ind. El Montalvo, Salamanca"


@dataclass(slots=True)
class AppConfig:
    endpoint_url: str = ""
    credentials: FactusolCredentials = field(default_factory=FactusolCredentials)
    discount_presets: DiscountPresets = field(default_factory=DiscountPresets)
    stt_endpoint: str = ""
    smtp_user: str = ""
    issuer: IssuerDetails = field(default_factory=IssuerDetails)
    tax_rate: Decimal = TAX_RATE
    allow_export_retry: bool = False

    # ------------------------------------------------------------------
    # Setters
    # ------------------------------------------------------------------
    def set_endpoint_url(self, url: str) -> None:
        self.endpoint_url = url.strip()

    def set_credentials(self, client_id: str, client_secret: Optional[str] = None) -> None:
        """Update the ERP credentials; ``None`` keeps the current secret."""

        secret = self.credentials.client_secret if client_secret is None else client_secret
        self.credentials = FactusolCredentials(client_id=client_id.strip(), client_secret=secret)

    def set_discount_preset(self, slot: int, value: Union[Decimal, float, int, str]) -> None:
        if slot not in (1, 2, 3):
            raise ValidationError(f"Discount preset slot must be 1, 2 or 3, got {slot!r}")
        percentage = _parse_percentage(value, f"discount preset {slot}")
        setattr(self.discount_presets, f"option{slot}", percentage)

    def set_stt_endpoint(self, url: str) -> None:
        self.stt_endpoint = url.strip()

    def set_smtp_user(self, user: str) -> None:
        self.smtp_user = user.strip()

    def set_allow_export_retry(self, enabled: bool) -> None:
        self.allow_export_retry = bool(enabled)

    def public_view(self) -> Dict[str, Any]:
        """Configuration as a plain dict with the client secret masked."""

        data = asdict(self)
        data["credentials"]["client_secret"] = "********" if self.credentials.client_secret else ""
        data["discount_presets"] = {
            key: str(value) for key, value in data["discount_presets"].items()
        }
        data["tax_rate"] = str(self.tax_rate)
        return data


def _parse_percentage(value: Union[Decimal, float, int, str], label: str) -> Decimal:
    try:
        percentage = Decimal(str(value))
    except InvalidOperation as exc:
        raise ValidationError(f"{label} must be a number, got {value!r}") from exc
    if not percentage.is_finite() or percentage < 0 or percentage > 100:
        raise ValidationError(f"{label} must be between 0 and 100")
    return percentage


def _env_flag(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def load_config(env_file: Optional[Union[str, Path]] = None) -> AppConfig:
    """Build the configuration from the environment.

    ``env_file`` is loaded first when it exists; variables already present in
    the environment win.
    """

    if env_file is not None and Path(env_file).exists():
        load_dotenv(env_file)

    config = AppConfig()
    config.set_endpoint_url(os.getenv("ALBARAN_FACTUSOL_URL", ""))
    config.set_credentials(
        os.getenv("ALBARAN_FACTUSOL_CLIENT_ID", ""),
        os.getenv("ALBARAN_FACTUSOL_CLIENT_SECRET", ""),
    )
    config.set_stt_endpoint(os.getenv("ALBARAN_STT_ENDPOINT", ""))
    config.set_smtp_user(os.getenv("ALBARAN_SMTP_USER", ""))
    for slot in (1, 2, 3):
        raw = os.getenv(f"ALBARAN_DISCOUNT_OPTION{slot}")
        if raw:
            config.set_discount_preset(slot, raw)
    config.set_allow_export_retry(_env_flag("ALBARAN_ALLOW_EXPORT_RETRY"))
    issuer_name = os.getenv("ALBARAN_ISSUER_NAME")
    if issuer_name:
        config.issuer = IssuerDetails(
            name=issuer_name,
            cif=os.getenv("ALBARAN_ISSUER_CIF", ""),
            address=os.getenv("ALBARAN_ISSUER_ADDRESS", ""),
        )
    if not config.endpoint_url:
        logger.warning("ALBARAN_FACTUSOL_URL is not set; exports cannot reach Factusol")
    return config


def configure_logging(level: Union[int, str] = logging.INFO) -> None:
    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt="%H:%M:%S")


__all__ = [
    "AppConfig",
    "DiscountPresets",
    "FactusolCredentials",
    "IssuerDetails",
    "configure_logging",
    "load_config",
]
