"""miniagent — a command-line agent that runs diagnostic tools with human confirmation."""

__version__ = "0.1.0"
