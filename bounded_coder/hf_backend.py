from __future__ import annotations
import logging
import threading
from typing import Dict, List, Optional

import torch
from transformers import (
    AutoModelForCausalLM, AutoTokenizer, LogitsProcessorList, StoppingCriteria,
    StoppingCriteriaList, TextIteratorStreamer,
)
from transformers_cfg.generation.logits_process import GrammarConstrainedLogitsProcessor
from transformers_cfg.grammar_utils import IncrementalGrammarConstraint

from .config import ModelSpec
from .grammar import is_complete_turn
from .llm_registry import InferenceError, TokenCallback

logger = logging.getLogger(__name__)


class _StopWhen(StoppingCriteria):
    """Stops generation on cancellation or once a complete turn has been produced."""

    def __init__(self, tok, prompt_len: int, cancel: Optional[threading.Event]):
        self.tok = tok
        self.prompt_len = prompt_len
        self.cancel = cancel

    def __call__(self, input_ids, scores, **kwargs):
        done = self.cancel is not None and self.cancel.is_set()
        if not done:
            text = self.tok.decode(input_ids[0][self.prompt_len:], skip_special_tokens=True)
            done = is_complete_turn(text)
        return torch.full((input_ids.shape[0],), done, dtype=torch.bool, device=input_ids.device)


class TransformersBackend:
    """Local Hugging Face causal LM.

    The GBNF grammar is applied while decoding through transformers-cfg: tokens
    that would leave the grammar are masked out of the logits. _StopWhen ends
    generation on cancellation or as soon as one full THOUGHT/CMD turn exists.
    """

    def __init__(self, spec: ModelSpec, context_window: int = 2048):
        self.spec = spec
        self.context_window = min(context_window, spec.context_window)
        self.tok = None
        self.model = None
        self._constraints: Dict[str, IncrementalGrammarConstraint] = {}

    @property
    def is_loaded(self) -> bool:
        return self.model is not None

    def load(self) -> None:
        if self.is_loaded:
            return
        logger.info("loading model %s", self.spec.id)
        dtype = self.spec.dtype if self.spec.dtype == "auto" else getattr(torch, self.spec.dtype)
        self.tok = AutoTokenizer.from_pretrained(
            self.spec.id, revision=self.spec.hf_revision,
            trust_remote_code=self.spec.trust_remote_code)
        self.model = AutoModelForCausalLM.from_pretrained(
            self.spec.id, revision=self.spec.hf_revision,
            trust_remote_code=self.spec.trust_remote_code,
            torch_dtype=dtype, device_map="auto")

    def unload(self) -> None:
        self.model = None
        self.tok = None
        self._constraints.clear()
        if torch.cuda.is_available():
            torch.cuda.empty_cache()

    def _constraint(self, grammar: str) -> IncrementalGrammarConstraint:
        # parsing the grammar against the vocabulary is slow; reuse it per grammar text
        constraint = self._constraints.get(grammar)
        if constraint is None:
            constraint = IncrementalGrammarConstraint(grammar, "root", self.tok)
            self._constraints[grammar] = constraint
        return constraint

    def generate(self, prompt: str, *, grammar: str, max_tokens: int,
                 on_token: Optional[TokenCallback] = None,
                 cancel: Optional[threading.Event] = None) -> str:
        if not self.is_loaded:
            raise InferenceError("model not loaded; call load() first")

        budget = self.context_window - max_tokens
        if budget < 1:
            raise InferenceError(f"max_tokens ({max_tokens}) leaves no room in a "
                                 f"{self.context_window}-token context")
        inputs = self.tok(prompt, return_tensors="pt")
        input_ids = inputs.input_ids[:, -budget:]  # keep the tail: task and last result
        attention_mask = inputs.attention_mask[:, -budget:]
        if inputs.input_ids.shape[1] > budget:
            logger.warning("prompt truncated from %d to %d tokens", inputs.input_ids.shape[1], budget)
        input_ids = input_ids.to(self.model.device)
        attention_mask = attention_mask.to(self.model.device)

        # Local HF streaming with TextIteratorStreamer
        streamer = TextIteratorStreamer(self.tok, skip_special_tokens=True, skip_prompt=True)
        stop = StoppingCriteriaList([_StopWhen(self.tok, input_ids.shape[1], cancel)])
        # one processor per call: it tracks the parse state of this generation
        constrain = LogitsProcessorList([GrammarConstrainedLogitsProcessor(self._constraint(grammar))])
        gen_kwargs = dict(input_ids=input_ids, attention_mask=attention_mask,
                          max_new_tokens=max_tokens, streamer=streamer,
                          logits_processor=constrain, stopping_criteria=stop, do_sample=False)

        failure: List[Exception] = []

        def _generate():
            try:
                self.model.generate(**gen_kwargs)
            except Exception as e:  # surfaced on the caller's thread below
                failure.append(e)
                streamer.end()

        thread = threading.Thread(target=_generate)
        thread.daemon = True
        thread.start()
        chunks = []
        try:
            for chunk in streamer:
                if chunk:
                    chunks.append(chunk)
                    if on_token:
                        on_token(chunk)
        finally:
            thread.join()
        if failure:
            raise InferenceError(f"generation failed: {failure[0]}") from failure[0]
        return "".join(chunks)
