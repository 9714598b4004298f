from __future__ import annotations

import posixpath
from urllib.parse import urlparse

from ..arguments import FindArgs, GrepArgs, LsofArgs, WgetArgs, decode_args
from .base import NO_MATCHING_FILES, NO_MATCHING_LINES, NO_MATCHING_PROCESSES, PlatformExecutor


def downloaded(url: str, output_file: str = "") -> str:
    if output_file:
        return f"Successfully downloaded from {url} to {output_file}."
    return f"Successfully downloaded from {url}."


def remote_name(url: str) -> str:
    name = posixpath.basename(urlparse(url).path)
    return name or "index.html"


class PosixExecutor(PlatformExecutor):
    """find/grep/wget/lsof as they behave on Unix-like systems."""

    async def find(self, arguments: str) -> str:
        args = decode_args("find", FindArgs, arguments)
        argv = [args.path]
        if args.maxdepth > 0:
            argv += ["-maxdepth", str(args.maxdepth)]
        argv += ["-name", args.name]
        if args.type:
            argv += ["-type", args.type]
        return await self._run("find", *argv, empty=NO_MATCHING_FILES)

    async def grep(self, arguments: str) -> str:
        args = decode_args("grep", GrepArgs, arguments)
        argv = []
        if args.recursive:
            argv.append("-r")
        if args.ignore_case:
            argv.append("-i")
        if args.count_only:
            argv.append("-c")
        # -e/-- keep a leading dash in the pattern or a path from being read as a flag
        argv += ["-e", args.pattern, "--", *args.files]
        return await self._run("grep", *argv, no_match={1: NO_MATCHING_LINES})

    async def wget(self, arguments: str) -> str:
        args = decode_args("wget", WgetArgs, arguments)
        argv = []
        if args.output_file:
            argv += ["-O", args.output_file]
        argv.append(args.url)
        # wget reports progress on stderr; the useful result is where the file went
        await self._run("wget", *argv)
        return downloaded(args.url, args.output_file)

    def _lsof_port_selector(self, port: int) -> str:
        return f":{port}"

    async def lsof(self, arguments: str) -> str:
        args = decode_args("lsof", LsofArgs, arguments)
        argv = list(args.options)
        if args.port > 0:
            argv += ["-i", self._lsof_port_selector(args.port)]
        if args.user:
            argv += ["-u", args.user]
        if args.path:
            if argv:
                argv.append("--")
            argv.append(args.path)
        return await self._run("lsof", *argv, no_match={1: NO_MATCHING_PROCESSES})
