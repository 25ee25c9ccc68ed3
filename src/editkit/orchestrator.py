"""Request pipeline: prompt the model, extract its edits, preview and apply them."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from .context_builder import ContextBuilder
from .memory.history import ConversationHistory
from .models.llm_client import LLMClient
from .parsing.extractor import ChangeExtractor
from .prompts import SYSTEM_PROMPT, render_coding_prompt
from .structured import ApplyError, ApplyResult, Change, Diff
from .tools.applier import ChangeSetApplier
from .tools.patch import PatchEngine, PatchError

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class RequestResult:
    """Everything produced while handling one user request."""

    user_request: str
    response: str = ""
    changes: List[Change] = field(default_factory=list)
    diffs: List[Diff] = field(default_factory=list)
    preview_errors: List[ApplyError] = field(default_factory=list)
    apply_result: Optional[ApplyResult] = None

    @property
    def applied(self) -> bool:
        return self.apply_result is not None


def preview_changes(engine: PatchEngine, changes: List[Change]) -> tuple[List[Diff], List[ApplyError]]:
    """Generate diffs per change, collecting failures instead of raising."""
    diffs: list[Diff] = []
    errors: list[ApplyError] = []
    for change in changes:
        try:
            diffs.append(engine.generate(change))
        except PatchError as error:
            errors.append(ApplyError(file=change.file, error=str(error), reason=error.reason))
    return diffs, errors


class Orchestrator:
    """Coordinate the model, the file context and the patch engine."""

    def __init__(
        self,
        *,
        client: LLMClient,
        context: ContextBuilder,
        history: ConversationHistory | None = None,
        engine: PatchEngine | None = None,
        extractor: ChangeExtractor | None = None,
        auto_apply: bool = True,
        dry_run: bool = False,
    ) -> None:
        self.client = client
        self.context = context
        self.history = history if history is not None else ConversationHistory()
        self.engine = engine or PatchEngine(context.repo_root)
        self.extractor = extractor or ChangeExtractor()
        self.auto_apply = auto_apply
        self.dry_run = dry_run

    def process_request(self, user_request: str) -> RequestResult:
        """Run one request end to end and return what happened."""
        prompt = render_coding_prompt(
            user_request,
            self.context.summary(),
            self.context.file_contents(),
            history=self.history,
        )
        response = self.client.complete(prompt, system_prompt=SYSTEM_PROMPT)
        self.history.add_user_message(user_request)
        self.history.add_assistant_message(response)

        result = RequestResult(user_request=user_request, response=response)
        result.changes = self.extractor.extract(response)
        LOGGER.info("Model response described %d change(s)", len(result.changes))
        if not result.changes:
            return result

        result.diffs, result.preview_errors = preview_changes(self.engine, result.changes)

        if self.auto_apply and not self.dry_run:
            result.apply_result = ChangeSetApplier(self.engine).apply(result.changes)
            self.context.add_files(
                path for path in result.apply_result.applied_files if not self.context.has_file(path)
            )
            self.context.refresh()
        return result


__all__ = ["Orchestrator", "RequestResult", "preview_changes"]
