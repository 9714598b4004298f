from __future__ import annotations

import logging

from ...errors import UnsupportedOperationError
from ..arguments import FindArgs, GrepArgs, LsofArgs, PsArgs, SsArgs, WgetArgs, decode_args
from ..runner import classify
from .base import NO_MATCHING_FILES, NO_MATCHING_LINES, NO_MATCHING_PROCESSES, PlatformExecutor
from .posix import downloaded, remote_name

logger = logging.getLogger("miniagent.platforms")

NETSTAT_HEADER = "Proto  Local Address          Foreign Address        State           PID"


def _ps_quote(value: str) -> str:
    return "'" + value.replace("'", "''") + "'"


def _uses_port(line: str, port: int) -> bool:
    cols = line.split()
    if len(cols) < 3 or cols[0].upper() not in ("TCP", "UDP"):
        return False
    suffix = f":{port}"
    return cols[1].endswith(suffix) or cols[2].endswith(suffix)


class WindowsExecutor(PlatformExecutor):
    platform = "Windows"

    async def ps(self, arguments: str) -> str:
        args = decode_args("ps", PsArgs, arguments)
        if args.options:
            logger.debug(f"tasklist ignores ps options {args.options}")

        argv = ["/FO", "CSV"]
        if args.user:
            argv += ["/FI", f"USERNAME eq {args.user}"]
        if args.name:
            argv += ["/FI", f"IMAGENAME eq {args.name}*"]
        if args.pid:
            argv += ["/FI", f"PID eq {args.pid}"]

        output = await self._run("tasklist", *argv)
        if output.lstrip().startswith("INFO: No tasks"):
            return NO_MATCHING_PROCESSES
        return output

    async def find(self, arguments: str) -> str:
        args = decode_args("find", FindArgs, arguments)
        argv = ["/c", "dir", "/b"]
        # dir can only search one level or all of them
        if args.maxdepth != 1:
            argv.append("/s")
        if args.type == "d":
            argv.append("/ad")
        elif args.type == "f":
            argv.append("/a-d")
        argv.append(args.path.rstrip("\\/") + "\\" + args.name)
        return await self._run(
            "cmd", *argv, no_match={1: NO_MATCHING_FILES}, empty=NO_MATCHING_FILES
        )

    async def grep(self, arguments: str) -> str:
        args = decode_args("grep", GrepArgs, arguments)
        argv = []
        if args.recursive:
            argv.append("/S")
        if args.ignore_case:
            argv.append("/I")
        argv += ["/R", f"/C:{args.pattern}", *args.files]

        output = await self._run("findstr", *argv, no_match={1: NO_MATCHING_LINES})
        if args.count_only and output != NO_MATCHING_LINES:
            return f"{len(output.splitlines())}\n"
        return output

    async def wget(self, arguments: str) -> str:
        args = decode_args("wget", WgetArgs, arguments)
        output_file = args.output_file or remote_name(args.url)
        script = (
            f"Invoke-WebRequest -UseBasicParsing -Uri {_ps_quote(args.url)} "
            f"-OutFile {_ps_quote(output_file)}"
        )
        await self._run("powershell", "-NoProfile", "-NonInteractive", "-Command", script)
        return downloaded(args.url, output_file)

    async def _netstat_port(self, port: int, protocol: str = "") -> str:
        argv = ["-ano"]
        if protocol in ("tcp", "udp"):
            argv += ["-p", protocol.upper()]
        listing = classify(await self.runner("netstat", *argv))
        rows = [line.strip() for line in listing.splitlines() if _uses_port(line, port)]
        if not rows:
            return f"No process found using port {port}."
        return "\n".join([NETSTAT_HEADER, *rows]) + "\n"

    async def ss(self, arguments: str) -> str:
        args = decode_args("ss", SsArgs, arguments)
        if args.port > 0 and not args.options and args.protocol in ("", "tcp", "udp"):
            logger.info(f"[{self.platform}] substituting 'netstat' for 'ss'")
            note = f"'ss' is not available on Windows; used 'netstat -ano' filtered by port {args.port} instead."
            return f"{note}\n{await self._netstat_port(args.port, args.protocol)}"
        raise UnsupportedOperationError(
            "ss", self.platform, "Use 'lsof' with a port instead"
        )

    async def lsof(self, arguments: str) -> str:
        args = decode_args("lsof", LsofArgs, arguments)
        if args.port > 0:
            note = f"'lsof' is not available on Windows; used 'netstat -ano' filtered by port {args.port} instead."
            return f"{note}\n{await self._netstat_port(args.port)}"
        raise UnsupportedOperationError(
            "lsof", self.platform, "Only port lookups are available on Windows"
        )
