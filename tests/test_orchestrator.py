from __future__ import annotations

from typing import Any, Dict, List

from editkit.context_builder import ContextBuilder
from editkit.memory import ConversationHistory
from editkit.models.llm_client import LLMClient
from editkit.orchestrator import Orchestrator, preview_changes
from editkit.prompts import SYSTEM_PROMPT
from editkit.structured import Change
from editkit.tools.patch import PatchEngine


class CannedClient(LLMClient):
    """Return queued responses and keep the payloads it was sent."""

    def __init__(self, responses: List[str]) -> None:
        super().__init__(model="canned")
        self.responses = list(responses)
        self.payloads: List[Dict[str, Any]] = []

    def _raw_invoke(self, payload: Dict[str, Any]) -> str:
        self.payloads.append(payload)
        return self.responses.pop(0)


EDIT_RESPONSE = "\n".join(
    [
        "Switching to subtraction.",
        "",
        "src/tiny_app/calculator.py",
        "```python",
        "<<<<<<< SEARCH",
        "    return left + right",
        "=======",
        "    return left - right",
        ">>>>>>> REPLACE",
        "```",
        "",
        "*CREATE NEW FILE*",
        "docs/CHANGELOG.md",
        "```markdown",
        "- subtraction",
        "```",
    ]
)


def _orchestrator(tiny_repo, client: LLMClient, **kwargs: Any) -> Orchestrator:
    context = ContextBuilder(tiny_repo.root)
    context.add_files(["src/tiny_app/calculator.py"])
    return Orchestrator(client=client, context=context, **kwargs)


def test_process_request_applies_changes_and_tracks_files(tiny_repo) -> None:
    client = CannedClient([EDIT_RESPONSE])
    orchestrator = _orchestrator(tiny_repo, client)

    result = orchestrator.process_request("make add subtract")

    assert [change.file for change in result.changes] == [
        "src/tiny_app/calculator.py",
        "docs/CHANGELOG.md",
    ]
    assert len(result.diffs) == 2
    assert result.preview_errors == []
    assert result.applied
    assert result.apply_result is not None and result.apply_result.ok
    assert "return left - right" in tiny_repo.read("src/tiny_app/calculator.py")
    assert tiny_repo.read("docs/CHANGELOG.md") == "- subtraction"
    assert orchestrator.context.has_file("docs/CHANGELOG.md")
    assert "left - right" in orchestrator.context.get_file("src/tiny_app/calculator.py")


def test_process_request_sends_context_and_system_prompt(tiny_repo) -> None:
    client = CannedClient(["No edits needed."])
    orchestrator = _orchestrator(tiny_repo, client)

    result = orchestrator.process_request("explain add")

    messages = client.payloads[0]["messages"]
    assert messages[0] == {"role": "system", "content": SYSTEM_PROMPT}
    user_prompt = messages[1]["content"]
    assert "=== src/tiny_app/calculator.py ===" in user_prompt
    assert user_prompt.endswith("## Request\nexplain add")
    assert result.changes == []
    assert not result.applied


def test_history_is_included_in_follow_up_prompts(tiny_repo) -> None:
    client = CannedClient(["First answer.", "Second answer."])
    history = ConversationHistory(max_pairs=5)
    orchestrator = _orchestrator(tiny_repo, client, history=history)

    orchestrator.process_request("first question")
    orchestrator.process_request("second question")

    follow_up = client.payloads[1]["messages"][1]["content"]
    assert "USER: first question\n\nASSISTANT: First answer." in follow_up
    assert len(history) == 4


def test_dry_run_previews_without_writing(tiny_repo) -> None:
    client = CannedClient([EDIT_RESPONSE])
    orchestrator = _orchestrator(tiny_repo, client, dry_run=True)

    result = orchestrator.process_request("make add subtract")

    assert len(result.diffs) == 2
    assert not result.applied
    assert "return left + right" in tiny_repo.read("src/tiny_app/calculator.py")
    assert not (tiny_repo.root / "docs").exists()


def test_auto_apply_disabled_skips_writes(tiny_repo) -> None:
    client = CannedClient([EDIT_RESPONSE])
    orchestrator = _orchestrator(tiny_repo, client, auto_apply=False)

    result = orchestrator.process_request("make add subtract")

    assert not result.applied
    assert not (tiny_repo.root / "docs").exists()


def test_preview_changes_collects_failures(tiny_repo) -> None:
    engine = PatchEngine(tiny_repo.root)
    changes = [
        Change(file="README.md", search="Adds", replace="Subtracts"),
        Change(file="README.md", search="Multiplies", replace="Divides"),
    ]

    diffs, errors = preview_changes(engine, changes)

    assert [diff.new_content for diff in diffs] == ["# Tiny app\n\nSubtracts numbers.\n"]
    assert [(error.file, error.reason) for error in errors] == [("README.md", "not_found")]
