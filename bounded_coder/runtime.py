from __future__ import annotations
import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional, Tuple

from .config import AgentConfig, ToolLimits
from .grammar import ACTION_MARKER, AGENT_GRAMMAR, THOUGHT_MARKER
from .llm_registry import InferenceBackend
from .planner import make_prompt, window
from .tools import ToolInterpreter, ToolResult

logger = logging.getLogger(__name__)


class AgentState(Enum):
    READY = "ready"
    THINKING = "thinking"
    EXECUTING = "executing"
    FINISHED = "finished"
    ERROR = "error"
    INTERRUPTED = "interrupted"

    @property
    def is_terminal(self) -> bool:
        return self in (AgentState.FINISHED, AgentState.ERROR, AgentState.INTERRUPTED)


@dataclass(frozen=True)
class AgentStep:
    observation: str  # what the model had seen before this step
    thought: str
    command: str
    result: ToolResult


class AgentObserver:
    """Side-channel notifications. Override what you need; every method is a no-op here.

    Called synchronously on the agent's thread.
    """

    def on_thought(self, thought: str) -> None:
        pass

    def on_command(self, command: str) -> None:
        pass

    def on_tool_result(self, result: ToolResult) -> None:
        pass

    def on_progress(self, message: str) -> None:
        pass

    def on_finish(self, summary: str) -> None:
        pass

    def on_error(self, message: str) -> None:
        pass

    def on_stream(self, token: str) -> None:
        pass


class AgentError(Exception):
    pass


class NoTaskSetError(AgentError):
    def __init__(self):
        super().__init__("No task set. Call start_task() first.")


def parse_model_output(output: str) -> Optional[Tuple[str, str]]:
    """Split one model turn into (thought, command), or None if it is not a turn.

    THOUGHT: must come before CMD:. The command keeps its internal newlines so
    WRITE/INSERT bodies survive.
    """
    thought_pos = output.find(THOUGHT_MARKER)
    if thought_pos == -1:
        return None
    cmd_pos = output.find(ACTION_MARKER, thought_pos + len(THOUGHT_MARKER))
    if cmd_pos == -1:
        return None

    thought = output[thought_pos + len(THOUGHT_MARKER):cmd_pos].lstrip(" \t").rstrip()
    command = output[cmd_pos + len(ACTION_MARKER):].lstrip(" \t").rstrip()
    if not thought or not command:
        return None
    return thought, command


class Agent:
    """Observation -> inference -> action -> tool -> observation, one step at a time."""

    def __init__(self, config: AgentConfig, backend: InferenceBackend,
                 observer: Optional[AgentObserver] = None,
                 working_dir: str = ".", limits: Optional[ToolLimits] = None):
        self.config = config
        self.backend = backend
        self.observer = observer or AgentObserver()
        self.tools = ToolInterpreter(working_dir, limits)
        self._state = AgentState.READY
        self._history: List[AgentStep] = []
        self._step_count = 0
        self._task = ""
        self._summary = ""
        self._last_error = ""

    # ---------- Introspection ----------
    @property
    def state(self) -> AgentState:
        return self._state

    @property
    def history(self) -> Tuple[AgentStep, ...]:
        return tuple(self._history)

    @property
    def step_count(self) -> int:
        return self._step_count

    @property
    def task(self) -> str:
        return self._task

    @property
    def summary(self) -> str:
        return self._summary

    @property
    def last_error(self) -> str:
        return self._last_error

    @property
    def is_model_loaded(self) -> bool:
        return self.backend.is_loaded

    # ---------- Lifecycle ----------
    def init(self) -> bool:
        """Load the model. Must succeed before run() is meaningful."""
        self._progress(f"Loading model: {self.config.model}")
        try:
            self.backend.load()
        except Exception as e:
            logger.exception("model load failed")
            self._fail(f"Failed to load model {self.config.model}: {e}")
            return False
        self._progress("Model loaded successfully")
        return True

    def unload(self) -> None:
        self.backend.unload()

    def reset(self) -> None:
        """Forget the task and its history; the model stays loaded."""
        self._history.clear()
        self._step_count = 0
        self._task = ""
        self._summary = ""
        self._last_error = ""
        self._set_state(AgentState.READY)

    def start_task(self, description: str, working_directory: str) -> None:
        if not description or not description.strip():
            raise ValueError("task description must not be empty")
        self.reset()
        self.tools.set_working_directory(working_directory)
        self._task = description
        self._progress(f"Starting task in: {self.tools.working_directory}")

    # ---------- Loop ----------
    def run(self, cancel: Optional[threading.Event] = None) -> str:
        """Step until Finished, Error or Interrupted. Returns the summary or the reason it stopped."""
        if not self._task:
            raise NoTaskSetError()

        while not self._state.is_terminal:
            if cancel is not None and cancel.is_set():
                self._interrupt()
                break
            if not self.step(cancel):
                break

        if self._state is AgentState.FINISHED:
            self.observer.on_finish(self._summary)
            return self._summary
        if self._state is AgentState.INTERRUPTED:
            return "Task interrupted."
        return self._last_error

    def step(self, cancel: Optional[threading.Event] = None) -> bool:
        """Run one cycle. Returns False when the agent cannot continue."""
        if self._state.is_terminal:
            return False
        if not self._task:
            raise NoTaskSetError()
        if self._step_count >= self.config.max_steps:
            self._fail(f"Maximum steps ({self.config.max_steps}) reached. Task may be incomplete.")
            return False

        self._step_count += 1
        self._progress(f"Step {self._step_count}/{self.config.max_steps}")

        self._set_state(AgentState.THINKING)
        prompt = self.build_prompt()
        try:
            output = self.backend.generate(
                prompt,
                grammar=AGENT_GRAMMAR,
                max_tokens=self.config.max_tokens_per_step,
                on_token=self.observer.on_stream,
                cancel=cancel,
            )
        except Exception as e:
            logger.exception("inference failed at step %d", self._step_count)
            self._fail(f"Inference failed: {e}")
            return False

        if cancel is not None and cancel.is_set():
            self._interrupt()
            return False

        parsed = parse_model_output(output)
        if parsed is None:
            self._fail(f"Failed to parse model output: {output}")
            return False
        thought, command = parsed
        self.observer.on_thought(thought)
        self.observer.on_command(command)

        self._set_state(AgentState.EXECUTING)
        result = self.tools.execute(command)
        self.observer.on_tool_result(result)

        self._history.append(AgentStep(
            observation=self._observation_before_step(),
            thought=thought,
            command=command,
            result=result,
        ))

        if result.finished:
            self._summary = result.output
            self._set_state(AgentState.FINISHED)
            return False
        self._set_state(AgentState.READY)
        return True

    # ---------- Prompting ----------
    def build_prompt(self) -> str:
        recent = window(self._history, self.config.history_window)
        if not recent:
            return make_prompt(self._task, self.tools.working_directory)
        last = recent[-1]
        return make_prompt(self._task, self.tools.working_directory,
                           last_command=last.command,
                           last_observation=last.result.observation())

    def _observation_before_step(self) -> str:
        if not self._history:
            return f"Working directory: {self.tools.working_directory}\nTask: {self._task}"
        return self._history[-1].result.observation()

    # ---------- State helpers ----------
    def _set_state(self, state: AgentState) -> None:
        if state is not self._state:
            logger.info("agent state %s -> %s", self._state.value, state.value)
        self._state = state

    def _fail(self, message: str) -> None:
        logger.warning(message)
        self._last_error = message
        self._set_state(AgentState.ERROR)
        self.observer.on_error(message)

    def _interrupt(self) -> None:
        self._set_state(AgentState.INTERRUPTED)
        self._progress("Task interrupted by user")

    def _progress(self, message: str) -> None:
        self.observer.on_progress(message)
