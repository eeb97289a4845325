from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Mapping, Optional

_FALSEY = {"0", "false", "False", "no", "off"}


@dataclass
class Settings:
    openai_api_key: Optional[str] = None
    generator_model: str = "gpt-4o-mini"
    classifier_model: str = "gpt-4o-mini"
    database: str = ":memory:"
    enrichment_enabled: bool = True
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        generator = env.get("OPENAI_MODEL", "gpt-4o-mini")
        return cls(
            openai_api_key=env.get("OPENAI_API_KEY") or None,
            generator_model=generator,
            classifier_model=env.get("SHEET_AGENT_CLASSIFIER_MODEL", generator),
            database=env.get("SHEET_AGENT_DB", ":memory:"),
            enrichment_enabled=env.get("SHEET_AGENT_ENRICH", "1") not in _FALSEY,
            log_level=env.get("SHEET_AGENT_LOG_LEVEL", "WARNING").upper(),
        )
