from .config import AgentConfig, ModelSpec, MODEL_PRESETS, ToolLimits
from .runtime import Agent, AgentObserver, AgentState, AgentStep
from .tools import ToolInterpreter, ToolResult

__all__ = ["AgentConfig", "ModelSpec", "MODEL_PRESETS", "ToolLimits", "Agent", "AgentObserver",
           "AgentState", "AgentStep", "ToolInterpreter", "ToolResult"]
