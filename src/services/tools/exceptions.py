"""Tool execution exceptions."""


class ToolExecutionError(Exception):
    """A tool could not run. Raised internally, reported as a failed execution."""

    def __init__(self, tool_name: str, message: str) -> None:
        super().__init__(f"{tool_name}: {message}")
        self.tool_name = tool_name
