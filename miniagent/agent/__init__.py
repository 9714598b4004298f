"""Agent package.

Public API:
    from miniagent.agent import AgentLoop, AgentEvent, LoopPhase
    from miniagent.agent import ToolDispatcher, ToolPolicy, select_executor

Internal layout:
    models.py     — Message, ToolCall, ChatResponse, AgentEvent, ConversationState
    tool_defs.py  — get_tool_definitions() (the six tool schemas)
    arguments.py  — typed argument models, decode_args()
    policy.py     — decide(), Decision, ToolPolicy
    runner.py     — ProcessResult, run_process(), classify()
    platforms/    — one PlatformExecutor per operating system
    dispatcher.py — ToolDispatcher (policy, then executor)
    confirm.py    — confirmation providers
    loop.py       — AgentLoop (the Thought/Action/Observation state machine)
"""

from .dispatcher import ToolDispatcher
from .loop import AgentLoop, LoopPhase
from .models import AgentEvent, ConversationState, Message, ToolCall
from .platforms import select_executor
from .policy import Decision, ToolPolicy, decide

__all__ = [
    "AgentEvent",
    "AgentLoop",
    "ConversationState",
    "Decision",
    "LoopPhase",
    "Message",
    "ToolCall",
    "ToolDispatcher",
    "ToolPolicy",
    "decide",
    "select_executor",
]
