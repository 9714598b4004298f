from __future__ import annotations

from ..arguments import PROTOCOL_FLAGS, PsArgs, SsArgs, decode_args
from .base import NO_MATCHING_PROCESSES
from .posix import PosixExecutor

_FAMILY_LETTERS = frozenset(flag[1] for flag in PROTOCOL_FLAGS.values())


def _drop_other_families(options: list[str], protocol: str) -> list[str]:
    """Strip socket-table selectors other than ``protocol`` from ss options (-tan -> -an for udp)."""
    keep = PROTOCOL_FLAGS[protocol][1]
    argv = []
    for opt in options:
        if opt.startswith("--"):
            if opt[2:] in PROTOCOL_FLAGS and opt[2:] != protocol:
                continue
        elif opt.startswith("-") and len(opt) > 1:
            opt = "-" + "".join(c for c in opt[1:] if c == keep or c not in _FAMILY_LETTERS)
            if opt == "-":
                continue
        argv.append(opt)
    return argv


class LinuxExecutor(PosixExecutor):
    platform = "Linux"

    async def ps(self, arguments: str) -> str:
        args = decode_args("ps", PsArgs, arguments)

        # Filters win over options, in this order: user, name, pid
        if args.user:
            return await self._run_ps("-u", args.user, no_match=NO_MATCHING_PROCESSES)
        if args.name:
            return await self._run("pgrep", "-af", args.name, no_match={1: NO_MATCHING_PROCESSES})
        if args.pid:
            return await self._run_ps("-p", args.pid, no_match=f"No process found with PID {args.pid}.")
        return await self._run("ps", *(args.options or ["aux"]))

    async def ss(self, arguments: str) -> str:
        args = decode_args("ss", SsArgs, arguments)

        if args.options:
            argv = list(args.options)
        elif args.protocol:
            argv = ["-an"]
        else:
            argv = ["-tan"]

        # The protocol picks the socket table; it never becomes a filter clause.
        if args.protocol:
            argv = _drop_other_families(argv, args.protocol)
            flag = PROTOCOL_FLAGS[args.protocol]
            if flag not in argv:
                argv.append(flag)

        if args.port > 0:
            argv += ["state", "all", f"( sport = :{args.port} or dport = :{args.port} )"]

        return await self._run("ss", *argv)
