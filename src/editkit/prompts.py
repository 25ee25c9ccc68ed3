"""Prompt templates and helpers for edit requests."""

from __future__ import annotations

from typing import Mapping

from .context_builder import ContextSummary
from .memory.history import ConversationHistory

SYSTEM_PROMPT = """You are an expert software developer and coding assistant.

CORE PRINCIPLES:
- Always use best practices when coding
- Respect existing conventions, libraries, and patterns in the codebase
- Ask clarifying questions if requests are ambiguous
- Provide clear, concise explanations for changes

RESPONSE FORMAT:
You MUST respond with code changes using *SEARCH/REPLACE* blocks in this exact format:

filename.ext
````language
<<<<<<< SEARCH
[exact existing code to find]
=======
[new code to replace with]
>>>>>>> REPLACE
````

To create a new file, announce it and give the complete content:

*CREATE NEW FILE*
path/to/new_file.ext
```language
[complete file content]
```

RULES:
- Put the file path alone on the line before each block
- The SEARCH section must match the existing file character for character
- Include enough surrounding lines for the SEARCH section to be unique
- Use one block per change; only the first match is replaced
- Leave the SEARCH section empty to replace a whole file"""


def render_context_summary(summary: ContextSummary) -> str:
    """Describe the files in context as a short bullet list."""
    lines = [
        "## Context",
        f"Files in context: {summary.total_files} ({summary.total_size} bytes)",
    ]
    lines.extend(f"- {path}" for path in summary.files)
    return "\n".join(lines)


def render_file_contents(contents: Mapping[str, str]) -> str:
    """Render each file under a ``=== path ===`` banner."""
    if not contents:
        return ""
    sections = [f"=== {path} ===\n{text}" for path, text in contents.items()]
    return "## File Contents\n" + "\n\n".join(sections)


def render_coding_prompt(
    user_request: str,
    summary: ContextSummary,
    contents: Mapping[str, str],
    history: ConversationHistory | None = None,
) -> str:
    """Assemble the user prompt for a single edit request."""
    sections = [render_context_summary(summary)]
    files_block = render_file_contents(contents)
    if files_block:
        sections.append(files_block)
    if history is not None and not history.is_empty:
        sections.append(f"## Conversation So Far\n{history.format()}")
    sections.append(f"## Request\n{user_request.strip()}")
    return "\n\n".join(sections)


__all__ = [
    "SYSTEM_PROMPT",
    "render_coding_prompt",
    "render_context_summary",
    "render_file_contents",
]
