from __future__ import annotations
import logging
import os
from dataclasses import dataclass, replace
from typing import Optional

@dataclass
class ModelSpec:
    id: str
    hf_revision: Optional[str] = None
    dtype: str = "auto"
    trust_remote_code: bool = True
    context_window: int = 2048  # Default context window in tokens

MODEL_PRESETS = {
    # Small local coder models; the agent's turns are short and grammar-shaped
    "qwen3-0.6b": ModelSpec(id="Qwen/Qwen3-0.6B", dtype="bfloat16", context_window=32768),
    "qwen3-1.7b": ModelSpec(id="Qwen/Qwen3-1.7B", dtype="bfloat16", context_window=32768),
    "qwen2.5-coder-1.5b": ModelSpec(id="Qwen/Qwen2.5-Coder-1.5B-Instruct", dtype="bfloat16", context_window=32768),
    "qwen2.5-coder-7b": ModelSpec(id="Qwen/Qwen2.5-Coder-7B-Instruct", dtype="bfloat16", context_window=131072),
    "deepseek-coder-1.3b": ModelSpec(id="deepseek-ai/deepseek-coder-1.3b-instruct", dtype="bfloat16", context_window=16384),
    "llama-3.2-3b": ModelSpec(id="meta-llama/Llama-3.2-3B-Instruct", dtype="bfloat16", context_window=131072),
}

DEFAULT_MODEL = "qwen3-0.6b"


def resolve_model_spec(name: str) -> ModelSpec:
    """Preset name, or any Hugging Face model id."""
    if name in MODEL_PRESETS:
        return MODEL_PRESETS[name]
    return ModelSpec(id=name)


@dataclass(frozen=True)
class ToolLimits:
    """Hard caps that keep every tool call small."""
    max_read_lines: int = 50
    max_grep_results: int = 20
    max_list_entries: int = 100
    max_write_lines: int = 200
    max_path_length: int = 256

    def __post_init__(self):
        for name, value in vars(self).items():
            if value < 1:
                raise ValueError(f"{name} must be positive, got {value}")


@dataclass(frozen=True)
class AgentConfig:
    model: str = DEFAULT_MODEL
    max_steps: int = 25             # Hard bound on step() invocations
    max_tokens_per_step: int = 512  # Hard bound on generated tokens per turn
    context_window: int = 2048      # Prompt + generation token budget
    history_window: int = 8         # Steps eligible for prompt rendering, not storage

    def __post_init__(self):
        if not self.model:
            raise ValueError("model must be set")
        for name in ("max_steps", "max_tokens_per_step", "context_window"):
            value = getattr(self, name)
            if not isinstance(value, int) or value < 1:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")
        if not isinstance(self.history_window, int) or self.history_window < 0:
            raise ValueError(f"history_window must be >= 0, got {self.history_window!r}")
        if self.max_tokens_per_step >= self.context_window:
            raise ValueError("max_tokens_per_step must be smaller than context_window")

    @classmethod
    def from_env(cls, **overrides) -> "AgentConfig":
        """Defaults, then BOUNDED_CODER_* environment variables, then non-None overrides."""
        config = cls()
        env_values = {
            "model": os.environ.get("BOUNDED_CODER_MODEL"),
            "max_steps": _env_int("BOUNDED_CODER_MAX_STEPS"),
            "max_tokens_per_step": _env_int("BOUNDED_CODER_MAX_TOKENS"),
            "context_window": _env_int("BOUNDED_CODER_CONTEXT_WINDOW"),
            "history_window": _env_int("BOUNDED_CODER_HISTORY_WINDOW"),
        }
        env_values.update({k: v for k, v in overrides.items() if v is not None})
        return replace(config, **{k: v for k, v in env_values.items() if v is not None})


def _env_int(name: str) -> Optional[int]:
    raw = os.environ.get(name)
    if raw is None or not raw.strip():
        return None
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None


def debug_enabled() -> bool:
    return os.environ.get("BOUNDED_CODER_DEBUG", "0").strip().lower() in {"1", "true", "yes", "on"}


DEBUG_LOG_FILE = "bounded_coder_debug.log"


def configure_logging(debug: bool = False, log_file: Optional[str] = None) -> logging.Logger:
    """Attach the debug file handler to the package logger (once)."""
    logger = logging.getLogger("bounded_coder")
    if not debug:
        logger.setLevel(logging.WARNING)
        return logger
    logger.setLevel(logging.DEBUG)
    if not any(isinstance(h, logging.FileHandler) for h in logger.handlers):
        handler = logging.FileHandler(log_file or os.path.join(os.getcwd(), DEBUG_LOG_FILE), mode="w")
        handler.setLevel(logging.DEBUG)
        formatter = logging.Formatter('%(asctime)s - %(levelname)s - %(message)s')
        handler.setFormatter(formatter)
        logger.addHandler(handler)
    return logger
