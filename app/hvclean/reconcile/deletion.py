"""Interactive deletion workflow.

Walks the orphan list asking for one decision per file. Besides yes/no
for a single file, the operator can answer "all" (delete this and every
remaining file without asking), "no to all" (keep this and every
remaining file) or "quit" (keep everything left and stop).

The input source is injected, so the workflow runs the same against a
terminal prompt or a scripted list of answers.
"""

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum

from hvclean.reconcile.models import OrphanRecord
from hvclean.reconcile.operator import FileActionResult, FileRemover

logger = logging.getLogger(__name__)


class Decision(str, Enum):
    """Answer to a deletion prompt."""

    YES = "yes"
    NO = "no"
    ALL = "all"
    NO_TO_ALL = "no_to_all"
    QUIT = "quit"


_DECISION_ALIASES: dict[str, Decision] = {
    "y": Decision.YES,
    "yes": Decision.YES,
    "n": Decision.NO,
    "no": Decision.NO,
    "a": Decision.ALL,
    "all": Decision.ALL,
    "l": Decision.NO_TO_ALL,
    "none": Decision.NO_TO_ALL,
    "no-to-all": Decision.NO_TO_ALL,
    "no_to_all": Decision.NO_TO_ALL,
    "q": Decision.QUIT,
    "quit": Decision.QUIT,
}

# Prompt hint matching the aliases above
DECISION_CHOICES = "[Y]es / [N]o / [A]ll / No to a[L]l / [Q]uit"


def parse_decision(text: str) -> Decision | None:
    """Parse a prompt answer (case-insensitive).

    Returns:
        The Decision, or None if the answer is not recognized.
    """
    return _DECISION_ALIASES.get(text.strip().lower())


class WorkflowState(str, Enum):
    """State of the deletion workflow.

    Attributes:
        PROMPTING: Asking for a decision per file.
        BULK_ACCEPT: Deleting every remaining file without asking.
        BULK_REJECT: Keeping every remaining file without asking.
        QUITTING: Keeping every remaining file and stopping.
        DONE: All files handled.
    """

    PROMPTING = "prompting"
    BULK_ACCEPT = "bulk_accept"
    BULK_REJECT = "bulk_reject"
    QUITTING = "quitting"
    DONE = "done"


class ItemAction(str, Enum):
    """What happened to a single orphan."""

    DELETED = "deleted"
    KEPT = "kept"
    FAILED = "failed"


@dataclass(frozen=True, slots=True)
class ItemOutcome:
    """Result for one orphan.

    Attributes:
        record: The orphan.
        action: Deleted, kept, or failed to delete.
        decision: Answer given for this file, None if handled automatically.
        error: Deletion error message for failed items.
    """

    record: OrphanRecord
    action: ItemAction
    decision: Decision | None = None
    error: str | None = None

    @property
    def prompted(self) -> bool:
        """Check if the operator was asked about this file."""
        return self.decision is not None


@dataclass(frozen=True, slots=True)
class DeletionOutcome:
    """Result of a whole deletion workflow run.

    Attributes:
        items: One outcome per orphan, in input order.
        final_state: Workflow state when the run ended.
    """

    items: tuple[ItemOutcome, ...]
    final_state: WorkflowState

    def _with_action(self, action: ItemAction) -> list[OrphanRecord]:
        return [item.record for item in self.items if item.action == action]

    @property
    def deleted(self) -> list[OrphanRecord]:
        """Orphans that were removed."""
        return self._with_action(ItemAction.DELETED)

    @property
    def kept(self) -> list[OrphanRecord]:
        """Orphans left in place by choice."""
        return self._with_action(ItemAction.KEPT)

    @property
    def failed(self) -> list[ItemOutcome]:
        """Outcomes of orphans whose deletion failed."""
        return [item for item in self.items if item.action == ItemAction.FAILED]

    @property
    def prompts(self) -> int:
        """Number of prompts issued."""
        return sum(1 for item in self.items if item.prompted)

    @property
    def freed_bytes(self) -> int:
        """Total size of deleted files."""
        return sum(record.file.size_bytes for record in self.deleted)


# (record, 1-based position, total) -> raw answer
PromptFn = Callable[[OrphanRecord, int, int], str]


class DeletionWorkflow:
    """Confirmation-gated deletion of orphan files.

    Args:
        prompt: Input source returning the raw answer for one orphan.
        remover: Deletes files. Defaults to FileRemover().
        on_warning: Called with a message for unrecognized answers.
    """

    def __init__(
        self,
        prompt: PromptFn,
        remover: FileRemover | None = None,
        on_warning: Callable[[str], None] | None = None,
    ) -> None:
        self._prompt = prompt
        self._remover = remover or FileRemover()
        self._on_warning = on_warning
        self._state = WorkflowState.PROMPTING

    @property
    def state(self) -> WorkflowState:
        """Current workflow state."""
        return self._state

    def run(self, orphans: Sequence[OrphanRecord]) -> DeletionOutcome:
        """Ask about and act on every orphan.

        Args:
            orphans: Orphans in display order.

        Returns:
            DeletionOutcome covering every orphan.
        """
        self._state = WorkflowState.PROMPTING
        total = len(orphans)
        items: list[ItemOutcome] = []

        for position, record in enumerate(orphans, start=1):
            if self._state == WorkflowState.BULK_ACCEPT:
                items.append(self._delete(record, None))
                continue
            if self._state in (WorkflowState.BULK_REJECT, WorkflowState.QUITTING):
                items.append(ItemOutcome(record=record, action=ItemAction.KEPT))
                continue

            decision = self._ask(record, position, total)

            if decision in (Decision.YES, Decision.ALL):
                items.append(self._delete(record, decision))
            else:
                items.append(ItemOutcome(record=record, action=ItemAction.KEPT, decision=decision))

            if decision == Decision.ALL:
                self._state = WorkflowState.BULK_ACCEPT
            elif decision == Decision.NO_TO_ALL:
                self._state = WorkflowState.BULK_REJECT
            elif decision == Decision.QUIT:
                logger.info("Quit requested; keeping %d remaining file(s)", total - position)
                self._state = WorkflowState.QUITTING

        self._state = WorkflowState.DONE
        return DeletionOutcome(items=tuple(items), final_state=self._state)

    def _ask(self, record: OrphanRecord, position: int, total: int) -> Decision:
        """Prompt for one orphan; unrecognized answers keep the file."""
        answer = self._prompt(record, position, total)
        decision = parse_decision(answer)
        if decision is not None:
            return decision

        message = f"Unrecognized answer {answer!r}; keeping {record.path}"
        logger.warning(message)
        if self._on_warning is not None:
            self._on_warning(message)
        return Decision.NO

    def _delete(self, record: OrphanRecord, decision: Decision | None) -> ItemOutcome:
        result: FileActionResult = self._remover.remove(record.path)
        if result.success:
            return ItemOutcome(record=record, action=ItemAction.DELETED, decision=decision)
        return ItemOutcome(
            record=record,
            action=ItemAction.FAILED,
            decision=decision,
            error=result.error or "Unknown error",
        )
