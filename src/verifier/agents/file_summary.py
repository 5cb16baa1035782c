"""Model-less agent summarizing the files in the run context."""

import os

from loguru import logger

from ..tooling import ReadFileTool
from .models import AgentContext, AgentResult, AgentStatus, BaseAgent, Severity


class FileSummaryAgent(BaseAgent):
    """
    Reads each context file through the Read tool and reports line counts.

    Uses no completion provider, so it never consumes tokens.
    """

    id = "file-summary"
    name = "File Summary"
    description = "Line counts for the files under review"
    model = "none"
    max_tokens = 0

    def __init__(self) -> None:
        super().__init__()
        self.tools = [ReadFileTool()]

    async def execute(self, context: AgentContext) -> AgentResult:
        if not context.files:
            return self.create_result(AgentStatus.SKIPPED, error="No files to summarize")
        if context.tool_mediator is None:
            return self.create_result(AgentStatus.FAILURE, error="No tool mediator attached")

        summaries = []
        unreadable = 0
        total_lines = 0
        for file in context.files:
            path = file
            if context.repo_path and not os.path.isabs(file):
                path = os.path.join(context.repo_path, file)
            result = await context.tool_mediator.invoke("Read", {"file_path": path})
            if not result.success:
                unreadable += 1
                summaries.append({"file": file, "error": result.error})
                logger.debug(f"[file-summary] Could not read {file}: {result.error}")
                continue
            lines = len(result.data["content"].splitlines())
            total_lines += lines
            summaries.append({"file": file, "lines": lines})

        return self.create_result(
            AgentStatus.SUCCESS,
            severity=Severity.WARNING if unreadable else Severity.INFO,
            tokens_used=0,
            cost=0.0,
            data={"files": summaries, "total_lines": total_lines, "unreadable": unreadable},
        )
