"""
Mermaid CLI rendering engine.

Writes the diagram to a temporary .mmd file, runs mmdc as an asyncio
subprocess and returns the rendered SVG text.  Any failure becomes a
RenderError carrying the CLI's stderr (truncated).  Timeouts are left to
the session controller.
"""

import asyncio
import sys
import tempfile
from pathlib import Path
from typing import List, Optional

from diagram_repair import config
from diagram_repair.errors import RenderError


THEMES = ('default', 'neutral', 'dark', 'forest', 'base')

MAX_ERROR_CHARS = 500


class MermaidCliRenderer:
    """Async callable: ``svg = await renderer(text)``."""

    def __init__(self, command: Optional[List[str]] = None, theme: Optional[str] = None):
        self.command = list(command or config.MMDC_COMMAND)
        self.theme = theme or config.MERMAID_THEME
        if self.theme not in THEMES:
            raise ValueError(f"Unknown Mermaid theme: '{self.theme}' (expected one of {', '.join(THEMES)})")

    def build_command(self, input_path: Path, output_path: Path) -> List[str]:
        return self.command + [
            '-i', str(input_path),
            '-o', str(output_path),
            '-t', self.theme,
            '--quiet',
        ]

    async def __call__(self, text: str) -> str:
        with tempfile.TemporaryDirectory(prefix='diagram-repair-') as tmp:
            input_path = Path(tmp) / 'diagram.mmd'
            output_path = Path(tmp) / 'diagram.svg'
            input_path.write_text(text, encoding='utf-8')

            cmd = self.build_command(input_path, output_path)
            try:
                proc = await asyncio.create_subprocess_exec(
                    *cmd,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                )
            except FileNotFoundError as exc:
                print(f"[mmdc] Command not found: {cmd[0]}", file=sys.stderr)
                raise RenderError(f"Mermaid CLI not available: {cmd[0]}", text) from exc

            try:
                stdout, stderr = await proc.communicate()
            except asyncio.CancelledError:
                proc.kill()
                raise

            if proc.returncode != 0:
                error_msg = (
                    stderr.decode('utf-8', errors='replace')
                    or stdout.decode('utf-8', errors='replace')
                    or 'Unknown error'
                ).strip()[:MAX_ERROR_CHARS]
                print(f"[mmdc] Exit {proc.returncode}: {error_msg}", file=sys.stderr)
                raise RenderError(f"mmdc failed: {error_msg}", text)

            if not output_path.exists() or output_path.stat().st_size == 0:
                raise RenderError("mmdc produced no output file", text)
            return output_path.read_text(encoding='utf-8')
