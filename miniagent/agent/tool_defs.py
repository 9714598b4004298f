from __future__ import annotations

TOOL_NAMES = ("ps", "find", "grep", "wget", "ss", "lsof")


def get_tool_definitions() -> list[dict]:
    return [
        _ps_def(),
        _find_def(),
        _grep_def(),
        _wget_def(),
        _ss_def(),
        _lsof_def(),
    ]


def _ps_def() -> dict:
    return {
        "type": "function",
        "function": {
            "name": "ps",
            "description": (
                "List running processes. Can filter by user, process name or PID, "
                "like the 'ps' command."
            ),
            "parameters": {
                "type": "object",
                "properties": {
                    "user": {"type": "string", "description": "Only show processes owned by this user."},
                    "name": {"type": "string", "description": "Only show processes whose name matches."},
                    "pid": {"type": "string", "description": "Only show the process with this PID."},
                    "options": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "Extra ps options, e.g. '-ef' or 'aux'.",
                    },
                },
                "required": [],
            },
        },
    }


def _find_def() -> dict:
    return {
        "type": "function",
        "function": {
            "name": "find",
            "description": (
                "Search the file system for files or directories and return the matching paths. "
                "Searches the current directory recursively when no path is given."
            ),
            "parameters": {
                "type": "object",
                "properties": {
                    "path": {
                        "type": "string",
                        "description": "Directory to start from, e.g. '.' or '/home/user/'. Defaults to '.'.",
                    },
                    "name": {"type": "string", "description": "File or directory name, wildcards allowed."},
                    "type": {
                        "type": "string",
                        "enum": ["f", "d"],
                        "description": "'f' for files, 'd' for directories.",
                    },
                    "maxdepth": {
                        "type": "integer",
                        "description": "Maximum depth, e.g. 1 to stay in the starting directory.",
                    },
                },
                "required": ["name"],
            },
        },
    }


def _grep_def() -> dict:
    return {
        "type": "function",
        "function": {
            "name": "grep",
            "description": "Search files for lines matching a pattern and return the matching lines.",
            "parameters": {
                "type": "object",
                "properties": {
                    "pattern": {"type": "string", "description": "Regular expression or plain string to search for."},
                    "file": {
                        "type": "string",
                        "description": "File or directory to search. Several paths may be separated by spaces.",
                    },
                    "recursive": {"type": "boolean", "description": "Search directories recursively (grep -r)."},
                    "ignore_case": {"type": "boolean", "description": "Ignore case (grep -i)."},
                    "count_only": {"type": "boolean", "description": "Only return the number of matching lines (grep -c)."},
                },
                "required": ["pattern", "file"],
            },
        },
    }


def _wget_def() -> dict:
    return {
        "type": "function",
        "function": {
            "name": "wget",
            "description": "Download a file from the internet into the current directory or a given path.",
            "parameters": {
                "type": "object",
                "properties": {
                    "url": {"type": "string", "description": "URL of the file to download."},
                    "output_file": {"type": "string", "description": "Optional name or path to save the file as."},
                },
                "required": ["url"],
            },
        },
    }


def _ss_def() -> dict:
    return {
        "type": "function",
        "function": {
            "name": "ss",
            "description": (
                "Show socket statistics to inspect network connections. "
                "Can filter by port (local or remote) and protocol."
            ),
            "parameters": {
                "type": "object",
                "properties": {
                    "options": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": (
                            "ss options, e.g. '-l' (listening), '-t' (TCP), '-u' (UDP), "
                            "'-n' (numeric), '-p' (processes), '-a' (all sockets)."
                        ),
                    },
                    "port": {"type": "integer", "description": "Only show connections using this port."},
                    "protocol": {
                        "type": "string",
                        "enum": ["tcp", "udp", "raw", "unix"],
                        "description": "Only show sockets of this protocol.",
                    },
                },
                "required": [],
            },
        },
    }


def _lsof_def() -> dict:
    return {
        "type": "function",
        "function": {
            "name": "lsof",
            "description": (
                "List open files. Shows which processes hold a file open or which process uses a port. "
                "At least one of path, port, user or options must be given."
            ),
            "parameters": {
                "type": "object",
                "properties": {
                    "path": {"type": "string", "description": "Find processes that have this file open."},
                    "port": {"type": "integer", "description": "Find processes using this port."},
                    "user": {"type": "string", "description": "Find files opened by this user."},
                    "options": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "Extra lsof options, e.g. '-i' to list all network files.",
                    },
                },
                "required": [],
            },
        },
    }
