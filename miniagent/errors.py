"""Exception hierarchy for miniagent."""

from __future__ import annotations


class AgentError(Exception):
    """Base class for every error raised by miniagent."""


class ConfigError(AgentError):
    """Configuration could not be loaded or is invalid. Fatal at start-up."""


class ModelTransportError(AgentError):
    """The model provider could not be reached or returned garbage."""


class ToolError(AgentError):
    """A single tool call failed. Rendered as an Observation, never fatal."""


class ArgumentError(ToolError):
    def __init__(self, tool: str, detail: str) -> None:
        self.tool = tool
        self.detail = detail
        super().__init__(f"invalid arguments for '{tool}': {detail}")


class PolicyError(ToolError):
    def __init__(self, tool: str, reason: str) -> None:
        self.tool = tool
        self.reason = reason
        super().__init__(f"tool '{tool}' {reason}")


class ExecutionError(ToolError):
    def __init__(
        self,
        command_line: str,
        reason: str,
        output: str = "",
        exit_code: int | None = None,
    ) -> None:
        self.command_line = command_line
        self.reason = reason
        self.output = output
        self.exit_code = exit_code
        message = f"command '{command_line}' failed: {reason}"
        if output.strip():
            message += f", output: {output.strip()}"
        super().__init__(message)


class UnsupportedOperationError(ToolError):
    def __init__(self, capability: str, platform: str, hint: str | None = None) -> None:
        self.capability = capability
        self.platform = platform
        self.hint = hint
        message = f"'{capability}' is not supported on {platform}"
        if hint:
            message += f". {hint}"
        super().__init__(message)


class UnknownToolError(ToolError):
    def __init__(self, tool: str) -> None:
        self.tool = tool
        super().__init__(f"unknown tool: {tool}")
