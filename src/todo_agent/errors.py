class TodoAgentError(Exception):
    """Base class for domain errors surfaced by the API layer."""


class TaskNotFoundError(TodoAgentError):
    def __init__(self, task_id: str):
        super().__init__(f"task {task_id!r} not found")
        self.task_id = task_id


class InvalidCommandError(TodoAgentError):
    pass
