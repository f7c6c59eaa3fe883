"""
Adapter for the agent CLI and its RPC gateway.

Every call shells out to the `openclaw` binary; gateway RPCs go through
`openclaw gateway call <method> --json`. Failures raise GatewayError and
callers decide how to degrade.
"""

import asyncio
import json
import logging
import os
import re
from typing import Any

from ..core.exceptions import GatewayError

logger = logging.getLogger(__name__)

_ANSI_ESCAPE = re.compile(r"\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])")


def strip_ansi(text: str) -> str:
    return _ANSI_ESCAPE.sub("", text)


def parse_json_from_cli_output(raw_output: str, context: str = "CLI output") -> Any:
    """
    Parse JSON from CLI stdout that may carry log lines before the payload.

    Tries the whole output first, then every `{`/`[` suffix from the last
    one backwards. Raises ValueError when nothing parses.
    """
    cleaned = strip_ansi(raw_output).replace("\r", "").strip()
    if not cleaned:
        raise ValueError(f"Failed to parse JSON from {context}: empty output")

    if cleaned[0] in "{[":
        try:
            return json.loads(cleaned)
        except ValueError:
            pass

    starts = [i for i, ch in enumerate(cleaned) if ch in "{["]
    for start in reversed(starts):
        try:
            return json.loads(cleaned[start:])
        except ValueError:
            continue

    raise ValueError(f"Failed to parse JSON from {context}. Output: {cleaned[:400]}")


class AgentGateway:
    """Runs agent CLI commands as subprocesses."""

    def __init__(self, binary: str = "openclaw"):
        self.binary = binary

    async def run_cli(self, args: list[str], timeout: float = 15.0) -> str:
        """Run a CLI command and return stdout. Raises GatewayError on failure."""
        command = " ".join([self.binary, *args])
        try:
            proc = await asyncio.create_subprocess_exec(
                self.binary,
                *args,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env={**os.environ, "NO_COLOR": "1"},
            )
        except OSError as e:
            raise GatewayError(command, str(e))

        try:
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=timeout)
        except asyncio.TimeoutError:
            raise GatewayError(command, f"timed out after {timeout}s")
        finally:
            # Also reached on cancellation; the child must not outlive the call
            if proc.returncode is None:
                try:
                    proc.kill()
                except ProcessLookupError:
                    pass
                await proc.wait()

        out = stdout.decode("utf-8", errors="replace")
        if proc.returncode != 0:
            err = stderr.decode("utf-8", errors="replace").strip()
            raise GatewayError(command, f"exit {proc.returncode}: {err or out.strip()}")
        return out

    async def run_cli_json(self, args: list[str], timeout: float = 15.0) -> Any:
        """Run a CLI command with --json and parse its output."""
        stdout = await self.run_cli([*args, "--json"], timeout)
        context = f"{self.binary} {' '.join(args)} --json"
        try:
            return parse_json_from_cli_output(stdout, context)
        except ValueError as e:
            raise GatewayError(context, str(e))

    async def gateway_call(
        self,
        method: str,
        params: dict[str, Any] | None = None,
        timeout: float = 15.0,
    ) -> Any:
        """Invoke a gateway RPC method through the CLI."""
        args = ["gateway", "call", method, "--json"]
        if params:
            args += ["--params", json.dumps(params)]
        if timeout > 10:
            args += ["--timeout", str(int(timeout * 1000))]

        stdout = await self.run_cli(args, timeout + 5)
        try:
            return parse_json_from_cli_output(stdout, f"gateway call {method}")
        except ValueError as e:
            raise GatewayError(f"gateway call {method}", str(e))
