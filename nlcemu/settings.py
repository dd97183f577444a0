from __future__ import annotations

from dataclasses import replace
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel
from pydantic_settings import BaseSettings, SettingsConfigDict

from nlcemu.params import PrecisionParams

# Load .env early if present (no-op if missing)
load_dotenv()


class PrecisionSettings(BaseModel):
    preset: Literal["default", "fast"] = "default"
    max_steps: int = PrecisionParams.max_steps


class NLCEmuSettings(BaseSettings):
    """
    Runtime settings for nlcemu.
    Loads from environment and .env automatically.
    Override with env vars like:
        NLCEMU_DATA_FILE=/data/ee2_bindata.dat
        NLCEMU_PRECISION__PRESET=fast
    (note the double-underscore for nesting)
    """

    model_config = SettingsConfigDict(
        env_nested_delimiter="__",
        env_prefix="NLCEMU_",
        extra="ignore",
    )

    data_file: str = "./ee2_bindata.dat"
    precision: PrecisionSettings = PrecisionSettings()

    def precision_params(self) -> PrecisionParams:
        """PrecisionParams for the configured preset."""
        base = PrecisionParams.fast() if self.precision.preset == "fast" else PrecisionParams()
        return replace(base, max_steps=self.precision.max_steps)


def get_settings() -> NLCEmuSettings:
    """Fresh settings, re-reading the environment."""
    return NLCEmuSettings()
