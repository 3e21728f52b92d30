from __future__ import annotations
import threading
from typing import Callable, Optional, Protocol

from .config import resolve_model_spec

TokenCallback = Callable[[str], None]


class InferenceBackend(Protocol):
    """What the agent needs from a model: load/unload and one grammar-shaped completion.

    generate() must honor `max_tokens`, call `on_token` for each piece of text as
    it is produced, and stop early once `cancel` is set.
    """

    @property
    def is_loaded(self) -> bool: ...

    def load(self) -> None: ...

    def unload(self) -> None: ...

    def generate(self, prompt: str, *, grammar: str, max_tokens: int,
                 on_token: Optional[TokenCallback] = None,
                 cancel: Optional[threading.Event] = None) -> str: ...


class InferenceError(RuntimeError):
    pass


def load_backend(preset: str, context_window: int = 2048):
    """Backend for a preset name or Hugging Face id. Weights load on Agent.init()."""
    # torch/transformers are only needed once a real model is used
    from .hf_backend import TransformersBackend
    return TransformersBackend(resolve_model_spec(preset), context_window=context_window)
