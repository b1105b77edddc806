"""Runtime configuration for OncoLite."""

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Mapping, Optional

from .constants import DEFAULT_MODEL_LOCATION, INPUT_SIZE, TOP_K
from .utils.io import DEFAULT_CACHE_DIR

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


def _env_flag(env: Mapping[str, str], name: str, default: bool) -> bool:
    value = env.get(name)
    if value is None or not value.strip():
        return default
    value = value.strip().lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean, got {value!r}")


@dataclass(frozen=True)
class OncoLiteConfig:
    """
    Settings shared by the CLI and the web page.

    ``show_top3`` and ``enable_export`` select between the page variants:
    main prediction only, main plus top-3 list, and either of those with
    PDF export.
    """

    model_location: str = DEFAULT_MODEL_LOCATION
    cache_dir: Path = field(default_factory=lambda: DEFAULT_CACHE_DIR)
    device: Optional[str] = None
    input_size: int = INPUT_SIZE
    top_k: int = TOP_K
    channels_last: bool = False
    apply_softmax: bool = False
    show_top3: bool = True
    enable_export: bool = True

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "OncoLiteConfig":
        """Build a config from ``ONCOLITE_*`` environment variables."""
        env = os.environ if env is None else env
        defaults = cls()
        return cls(
            model_location=env.get("ONCOLITE_MODEL") or defaults.model_location,
            cache_dir=Path(env["ONCOLITE_CACHE_DIR"]) if env.get("ONCOLITE_CACHE_DIR") else defaults.cache_dir,
            device=env.get("ONCOLITE_DEVICE") or None,
            channels_last=_env_flag(env, "ONCOLITE_CHANNELS_LAST", defaults.channels_last),
            apply_softmax=_env_flag(env, "ONCOLITE_APPLY_SOFTMAX", defaults.apply_softmax),
            show_top3=_env_flag(env, "ONCOLITE_SHOW_TOP3", defaults.show_top3),
            enable_export=_env_flag(env, "ONCOLITE_ENABLE_EXPORT", defaults.enable_export),
        )

    def with_overrides(self, **overrides) -> "OncoLiteConfig":
        """Return a copy with every non-None override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})
