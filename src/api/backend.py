import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from api.metrics import (
    COMMANDS_TOTAL,
    RECURRING_REGENERATED_TOTAL,
    REMINDERS_FIRED_TOTAL,
    TASKS_GAUGE,
    TIER_OUTCOMES_TOTAL,
)
from assistant.assistant import Assistant, AssistantReply
from classification.intent_classifier import IntentClassifier
from classification.task_classifier import TaskClassifier
from commands import parser
from commands.dispatcher import CommandDispatcher, DispatchResult
from commands.parser import Command
from extraction.pipeline import ExtractionPipeline
from extraction.task_extractor import TaskExtractor
from integration.notifier import Notifier, build_notifier
from llm.llm_client import LLMClient
from notifications.reminders import ReminderChecker
from scheduling.conflicts import ConflictResult, detect_conflicts
from scheduling.recurrence import RecurringSuggestion, apply_recurrence, suggest_recurring
from scheduling.scheduler import Scheduler
from storage.preferences_store import PreferencesStore
from storage.task_store import Snapshot, TaskStore
from todo_agent.dates import calendar_grid
from todo_agent.errors import InvalidCommandError
from todo_agent.filters import filter_and_sort
from todo_agent.models import ParsedTask, Preferences, Task

logger = logging.getLogger(__name__)

NOT_A_TASK_MESSAGE = 'That looks like a command I don\'t recognise. Type "help" to see what I understand.'
NO_TASK_MESSAGE = "I couldn't turn that into a task."


@dataclass
class CommandOutcome:
    command: Optional[Command]
    route: str
    message: str
    preferences: Preferences
    affected: List[str] = field(default_factory=list)
    tasks: List[Task] = field(default_factory=list)
    data: Dict[str, Any] = field(default_factory=dict)


def command_from_parsed(task: ParsedTask) -> Command:
    tag = task.tags[0] if task.tags else None
    return Command(
        type="add",
        confidence=1.0,
        task_text=task.title,
        tag=tag,
        tags=task.tags[1:],
        priority=task.priority,
        due=task.due,
        reminder_time=task.reminder,
    )


class CommandBackend:
    """Central orchestration of the todo agent.

    One line of user input goes through the rule grammar, then the intent
    classifier, then task extraction; whichever recognises it produces a
    command that the dispatcher applies to the store.
    """

    def __init__(
        self,
        store: TaskStore,
        preferences: PreferencesStore,
        client: Optional[LLMClient] = None,
        notifier: Optional[Notifier] = None,
    ):
        client = client if client is not None else LLMClient()
        self.store = store
        self.preferences = preferences
        self.dispatcher = CommandDispatcher()
        self.intents = IntentClassifier(client)
        self.pipeline = ExtractionPipeline(TaskExtractor(client))
        self.tagger = TaskClassifier(client)
        self.assistant = Assistant()
        self.scheduler = Scheduler()
        self.reminders = ReminderChecker(store, notifier if notifier is not None else build_notifier())

    def resolve(self, text: str, now: datetime) -> Tuple[Optional[Command], str]:
        """Command for ``text`` and the route that recognised it."""
        command = parser.parse(text, now)
        if command.type != "unknown":
            return command, "rule"

        routed = self.intents.route(text)
        if routed is not None:
            return routed, "intent"

        run = self.pipeline.run(text, now)
        for result in run.results:
            TIER_OUTCOMES_TOTAL.labels(tier=result.tier, outcome=result.outcome.value).inc()
        if run.task is None:
            return None, "not_a_task" if run.not_a_task else "none"
        return command_from_parsed(run.task), "extraction"

    def submit(self, text: str, now: Optional[datetime] = None) -> CommandOutcome:
        now = now or datetime.now()
        if not (text or "").strip():
            raise InvalidCommandError("empty input")

        command, route = self.resolve(text, now)
        prefs = self.preferences.load()
        if command is None:
            message = NOT_A_TASK_MESSAGE if route == "not_a_task" else NO_TASK_MESSAGE
            COMMANDS_TOTAL.labels(type="unknown", route=route).inc()
            return CommandOutcome(None, route, message, prefs)

        if command.type == "add" and not command.tag and not command.tags:
            command = command.model_copy(update={"tag": self.tagger.classify(command.task_text or "")})

        result = self._dispatch(command, prefs, now)
        if result.preferences != prefs:
            self.preferences.save(result.preferences)

        COMMANDS_TOTAL.labels(type=command.type, route=route).inc()
        logger.info(f"{route} -> {command.type}: {result.message}")
        return CommandOutcome(
            command=command,
            route=route,
            message=result.message,
            preferences=result.preferences,
            affected=result.affected,
            tasks=[t for t in self.store.tasks if t.id in set(result.affected)],
            data=result.data,
        )

    def _dispatch(self, command: Command, prefs: Preferences, now: datetime) -> DispatchResult:
        holder: List[DispatchResult] = []

        def apply(snap: Snapshot) -> Snapshot:
            result = self.dispatcher.dispatch(command, snap, prefs, now)
            holder.append(result)
            return result.snapshot

        self.store.mutate(apply)
        self.regenerate_recurring(now)
        return holder[0]

    def regenerate_recurring(self, now: Optional[datetime] = None) -> int:
        created: List[int] = []

        def apply(snap: Snapshot) -> Snapshot:
            tasks = apply_recurrence(snap.tasks, now)
            created.append(len(tasks) - len(snap.tasks))
            if len(tasks) == len(snap.tasks):
                return snap
            return snap.with_tasks(tasks)

        self.store.mutate(apply)
        if created[0]:
            RECURRING_REGENERATED_TOTAL.inc(created[0])
        self._update_gauge()
        return created[0]

    def _update_gauge(self) -> None:
        for status in ("pending", "completed", "archived"):
            TASKS_GAUGE.labels(status=status).set(sum(1 for t in self.store.tasks if t.status == status))

    def list_tasks(
        self,
        tag: Optional[str] = None,
        project: Optional[str] = None,
        sort_by: Optional[str] = None,
        include_archived: bool = False,
    ) -> List[Task]:
        prefs = self.preferences.load()
        return filter_and_sort(
            self.store.tasks,
            tag=tag if tag is not None else prefs.filter_tag,
            project=project,
            sort_by=sort_by or prefs.sort_criteria,
            include_archived=include_archived,
        )

    def toggle(self, task_id: str, now: Optional[datetime] = None) -> Task:
        def apply(snap: Snapshot) -> Snapshot:
            snap.find(task_id)
            return snap.with_tasks(t.toggled() if t.id == task_id else t for t in snap.tasks)

        snap = self.store.mutate(apply)
        self.regenerate_recurring(now)
        return snap.find(task_id)

    def delete(self, task_id: str) -> None:
        def apply(snap: Snapshot) -> Snapshot:
            snap.find(task_id)
            return snap.with_tasks(t for t in snap.tasks if t.id != task_id)

        self.store.mutate(apply)
        self._update_gauge()

    def batch_delete(self, task_ids: Sequence[str]) -> int:
        before = len(self.store.tasks)
        self.store.delete(task_ids)
        self._update_gauge()
        return before - len(self.store.tasks)

    def update(self, task_id: str, fields: Dict[str, Any], now: Optional[datetime] = None) -> Task:
        """Overwrite editable fields of one task; values are validated like a new task."""
        current = self.store.snapshot.find(task_id)
        try:
            updated = Task.model_validate({**current.model_dump(exclude={"done"}), **fields, "id": task_id})
        except ValidationError as e:
            raise InvalidCommandError(f"invalid task update: {e.error_count()} errors")
        snap = self.store.replace_task(updated)
        self.regenerate_recurring(now)
        logger.info(f"Updated task {task_id}: {', '.join(sorted(fields))}")
        return snap.find(task_id)

    def _set_status(self, task_ids: Sequence[str], status: str, now: Optional[datetime]) -> int:
        wanted = set(task_ids)
        changed: List[int] = []

        def apply(snap: Snapshot) -> Snapshot:
            hits = [t for t in snap.tasks if t.id in wanted and t.status != status]
            changed.append(len(hits))
            if not hits:
                return snap
            return snap.with_tasks(
                t.with_status(status) if t.id in wanted and t.status != status else t for t in snap.tasks
            )

        self.store.mutate(apply)
        self.regenerate_recurring(now)
        return changed[0]

    def batch_complete(self, task_ids: Sequence[str], now: Optional[datetime] = None) -> int:
        return self._set_status(task_ids, "completed", now)

    def batch_archive(self, task_ids: Sequence[str], now: Optional[datetime] = None) -> int:
        return self._set_status(task_ids, "archived", now)

    def conflicts(self, task_id: str) -> ConflictResult:
        snap = self.store.snapshot
        return detect_conflicts(snap.find(task_id), snap.tasks, self.dispatcher.default_duration_min)

    def suggest_time(self, task_id: str, now: Optional[datetime] = None) -> datetime:
        snap = self.store.snapshot
        return self.scheduler.suggest_time(snap.find(task_id), snap.tasks, now)

    def recurring_suggestions(self) -> List[RecurringSuggestion]:
        return suggest_recurring(self.store.tasks)

    def calendar(self, year: int, month: int) -> List[List[Optional[Dict[str, Any]]]]:
        if not 1 <= month <= 12:
            raise InvalidCommandError(f"month must be 1-12, got {month}")
        by_day: Dict[Any, List[Task]] = {}
        for task in self.store.tasks:
            if task.due_date is not None and task.status != "archived":
                by_day.setdefault(task.due_date.date(), []).append(task)

        weeks = []
        for row in calendar_grid(year, month):
            weeks.append(
                [
                    None if day is None else {"date": day, "tasks": sorted(by_day.get(day, []), key=lambda t: t.due_date)}
                    for day in row
                ]
            )
        return weeks

    def ask(self, question: str, now: Optional[datetime] = None) -> AssistantReply:
        return self.assistant.answer(question, self.store.tasks, now)

    def check_reminders(self, now: Optional[datetime] = None, force: bool = False) -> List[Task]:
        fired = self.reminders.check(now, force=force)
        if fired:
            REMINDERS_FIRED_TOTAL.inc(len(fired))
        return fired
