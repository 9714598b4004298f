from __future__ import annotations

from ...errors import UnsupportedOperationError
from ..arguments import PsArgs, SsArgs, WgetArgs, decode_args
from ..runner import classify
from .base import NO_MATCHING_PROCESSES
from .posix import PosixExecutor, downloaded, remote_name


class DarwinExecutor(PosixExecutor):
    platform = "macOS"

    async def ps(self, arguments: str) -> str:
        args = decode_args("ps", PsArgs, arguments)

        if args.user:
            return await self._run_ps("-U", args.user, no_match=NO_MATCHING_PROCESSES)
        if args.pid:
            return await self._run_ps("-p", args.pid, no_match=f"No process found with PID {args.pid}.")

        argv = args.options or ["aux"]
        if not args.name:
            return await self._run("ps", *argv)

        # No pgrep -a here; filter the listing ourselves and keep the header
        listing = classify(await self.runner("ps", *argv))
        lines = listing.splitlines()
        if not lines:
            return NO_MATCHING_PROCESSES
        header, rows = lines[0], lines[1:]
        needle = args.name.lower()
        matches = [row for row in rows if needle in row.lower()]
        if not matches:
            return NO_MATCHING_PROCESSES
        return "\n".join([header, *matches]) + "\n"

    async def wget(self, arguments: str) -> str:
        if self.which("wget"):
            return await super().wget(arguments)

        args = decode_args("wget", WgetArgs, arguments)
        output_file = args.output_file or remote_name(args.url)
        note = "wget is not installed on macOS; downloaded with 'curl' instead."
        await self._substitute("wget", "curl", note, "curl", "-fsSL", "-o", output_file, args.url)
        return f"{note}\n{downloaded(args.url, output_file)}"

    def _lsof_port_selector(self, port: int) -> str:
        return f"TCP:{port}"

    async def ss(self, arguments: str) -> str:
        args = decode_args("ss", SsArgs, arguments)

        if args.port > 0 and not args.options and args.protocol in ("", "tcp", "udp"):
            selector = f"{args.protocol.upper()}:{args.port}" if args.protocol else f":{args.port}"
            return await self._substitute(
                "ss", "lsof",
                f"'ss' is not available on macOS; used 'lsof -i {selector}' instead.",
                "lsof", "-i", selector,
                no_match={1: f"No processes found using port {args.port}."},
            )

        raise UnsupportedOperationError(
            "ss", self.platform, "Try using 'lsof' to check for a specific port"
        )
