from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

SUPPORTED_PROVIDERS = ("gemini", "openai", "openrouter", "mistral")


def _parse_bool(value: str | None, default: bool = False) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _parse_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    try:
        return float(value.strip())
    except ValueError as exc:
        raise ValueError(f"{name} must be a number, got: {value!r}") from exc


def _optional(name: str) -> str | None:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return None
    return value.strip()


@dataclass(frozen=True)
class Settings:
    extraction_provider: str = "gemini"
    extraction_model: str = "auto"
    provider_order: tuple[str, ...] = ("gemini", "openrouter", "mistral")
    gemini_api_key: str | None = None
    openai_api_key: str | None = None
    openrouter_api_key: str | None = None
    mistral_api_key: str | None = None
    log_level: str = "INFO"
    fallback_vat_rate: float = 20.0
    fallback_assumed_tax_rate: float = 0.18
    amount_tolerance: float = 0.01
    consistency_checks: bool = True

    def credential_for(self, provider: str) -> str | None:
        return {
            "gemini": self.gemini_api_key,
            "openai": self.openai_api_key,
            "openrouter": self.openrouter_api_key,
            "mistral": self.mistral_api_key,
        }.get(provider.strip().lower())

    @property
    def has_model_credential(self) -> bool:
        if self.extraction_provider == "auto":
            return any(self.credential_for(name) for name in self.provider_order)
        return bool(self.credential_for(self.extraction_provider))

    @classmethod
    def from_env(cls) -> "Settings":
        provider = os.getenv("EXTRACTION_PROVIDER", "gemini").strip().lower()
        if provider not in {*SUPPORTED_PROVIDERS, "auto"}:
            raise ValueError(
                "EXTRACTION_PROVIDER must be one of: " + ", ".join((*SUPPORTED_PROVIDERS, "auto"))
            )

        order_env = os.getenv("EXTRACTION_PROVIDER_ORDER", "gemini,openrouter,mistral")
        provider_order = tuple(v.strip().lower() for v in order_env.split(",") if v.strip())
        unknown = [name for name in provider_order if name not in SUPPORTED_PROVIDERS]
        if unknown:
            raise ValueError(f"EXTRACTION_PROVIDER_ORDER has unsupported provider(s): {', '.join(unknown)}")
        if provider == "auto" and not provider_order:
            raise ValueError("EXTRACTION_PROVIDER_ORDER must name at least one provider when EXTRACTION_PROVIDER=auto")

        assumed_tax_rate = _parse_float("FALLBACK_ASSUMED_TAX_RATE", 0.18)
        if not 0 <= assumed_tax_rate < 1:
            raise ValueError("FALLBACK_ASSUMED_TAX_RATE must be a fraction in [0, 1)")
        fallback_vat_rate = _parse_float("FALLBACK_VAT_RATE", 20.0)
        if fallback_vat_rate < 0:
            raise ValueError("FALLBACK_VAT_RATE must not be negative")

        return cls(
            extraction_provider=provider,
            extraction_model=os.getenv("EXTRACTION_MODEL", "auto").strip() or "auto",
            provider_order=provider_order,
            gemini_api_key=_optional("GEMINI_API_KEY") or _optional("GOOGLE_API_KEY"),
            openai_api_key=_optional("OPENAI_API_KEY"),
            openrouter_api_key=_optional("OPENROUTER_API_KEY"),
            mistral_api_key=_optional("MISTRAL_API_KEY"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            fallback_vat_rate=fallback_vat_rate,
            fallback_assumed_tax_rate=assumed_tax_rate,
            amount_tolerance=_parse_float("AMOUNT_TOLERANCE", 0.01),
            consistency_checks=_parse_bool(os.getenv("CONSISTENCY_CHECKS"), default=True),
        )


def load_dotenv(path: str | Path = ".env") -> list[str]:
    """Apply KEY=VALUE lines from a .env file; variables already set win.

    Returns the names that were taken from the file.
    """
    env_path = Path(path)
    if not env_path.is_file():
        return []
    applied: list[str] = []
    for line in env_path.read_text(encoding="utf-8").splitlines():
        entry = line.strip()
        if entry.startswith("export "):
            entry = entry[len("export ") :].lstrip()
        key, sep, value = entry.partition("=")
        key = key.strip()
        if not sep or not key or key.startswith("#"):
            continue
        value = value.strip()
        if len(value) >= 2 and value[0] == value[-1] and value[0] in "\"'":
            value = value[1:-1]
        else:
            value = value.split(" #", 1)[0].rstrip()
        if key in os.environ:
            continue
        os.environ[key] = value
        applied.append(key)
    return applied
