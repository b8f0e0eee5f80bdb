"""Output sink for helper container and command output."""

from typing import List


class OutputSink:
    """Streams lines to the console in verbose mode, buffers them otherwise.

    Buffered output is kept so it can be surfaced when a step fails.
    """

    def __init__(self, console, verbose: bool = False):
        self.console = console
        self.verbose = verbose
        self.lines: List[str] = []

    def write(self, text: str):
        for line in text.splitlines():
            cleaned = line.rstrip()
            if not cleaned:
                continue
            self.lines.append(cleaned)
            if self.verbose:
                self.console.print(cleaned, style="dim", markup=False, highlight=False)

    def getvalue(self) -> str:
        return "\n".join(self.lines)

    def dump(self, logger, title: str):
        """Logs the buffered output unless it was already shown live."""
        if self.verbose or not self.lines:
            return
        logger.error("%s:\n%s", title, self.getvalue())
