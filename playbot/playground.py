"""Go Playground client — formats a snippet and compiles/runs it remotely.

Two phases:

1. format(): wrap the snippet in a `main` function and pipe it through
   `goimports`, which fixes imports and layout.
2. compile(): POST the formatted program as the `body` form field to the
   compile endpoint, which answers with

       {"compile_errors": "...", "output": "..."}
"""

from __future__ import annotations

import asyncio

import httpx
import structlog
from pydantic import BaseModel

from playbot.errors import CompileError, FormatError, TransportError

logger = structlog.get_logger()

SNIPPET_TEMPLATE = """package main

func main() {
\t%s
}"""


class PlaygroundResult(BaseModel):
    """Compile service response."""

    compile_errors: str = ""
    output: str = ""

    @property
    def has_errors(self) -> bool:
        return bool(self.compile_errors)

    def raise_for_errors(self) -> None:
        """Raise CompileError if the service reported diagnostics."""
        if self.has_errors:
            raise CompileError(self.compile_errors)

    def formatted_output(self) -> str:
        """Output wrapped in a fenced block, ready to post."""
        return f"```{self.output}```"


class PlaygroundClient:
    """Formats and compiles Go snippets via goimports and the Go Playground."""

    def __init__(
        self,
        host: str,
        goimports_bin: str = "goimports",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.host = host
        self.goimports_bin = goimports_bin
        self.timeout = timeout
        self._transport = transport

    @staticmethod
    def wrap(snippet: str) -> str:
        """Wrap a snippet into a minimal runnable program."""
        return SNIPPET_TEMPLATE % snippet

    async def format(self, snippet: str) -> str:
        """Wrap and goimports-format a snippet.

        Raises:
            FormatError: goimports is missing or rejected the program.
        """
        program = self.wrap(snippet)

        try:
            proc = await asyncio.create_subprocess_exec(
                self.goimports_bin,
                stdin=asyncio.subprocess.PIPE,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            stdout, stderr = await proc.communicate(program.encode())
        except OSError as e:
            raise FormatError(f"cannot run {self.goimports_bin}: {e}") from e

        if proc.returncode != 0:
            detail = stderr.decode(errors="replace").strip() or f"exit status {proc.returncode}"
            raise FormatError(detail)

        formatted = stdout.decode(errors="replace")
        logger.debug("code_formatted", code=formatted)
        return formatted

    async def compile(self, code: str) -> PlaygroundResult:
        """Send already formatted code to the compile service.

        Raises:
            TransportError: the request failed or the response was not understood.
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.post(self.host, data={"body": code})
                resp.raise_for_status()
                result = PlaygroundResult.model_validate(resp.json())
        except httpx.HTTPError as e:
            raise TransportError(str(e) or type(e).__name__) from e
        except ValueError as e:
            # Non-JSON body or unexpected shape
            raise TransportError(f"invalid response from {self.host}: {e}") from e

        logger.debug(
            "code_compiled",
            host=self.host,
            has_errors=result.has_errors,
            output_len=len(result.output),
        )
        return result

    async def run(self, snippet: str) -> PlaygroundResult:
        """Format then compile a snippet."""
        formatted = await self.format(snippet)
        return await self.compile(formatted)
