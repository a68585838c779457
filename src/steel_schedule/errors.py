"""
Exception types raised by the scheduling core.

Data problems (cycles, dangling predecessors, bad dates) are never raised;
they come back as findings in the relevant result. Exceptions are reserved
for caller errors and for failures of the external task store.
"""


class ScheduleCoreError(Exception):
    """Base class for every error raised by steel_schedule."""


class RepositoryError(ScheduleCoreError):
    """The external task/project store rejected an operation."""


class RepositoryUnavailableError(RepositoryError):
    """The external task/project store could not be reached."""


class TaskNotFoundError(RepositoryError):
    def __init__(self, task_id):
        super().__init__(f"Task {task_id} not found")
        self.task_id = task_id


class ScheduleTooLargeError(ScheduleCoreError):
    def __init__(self, task_count: int, limit: int):
        super().__init__(
            f"Refusing to analyse {task_count} tasks (limit is {limit})."
        )
        self.task_count = task_count
        self.limit = limit


class InvalidStatusTransitionError(ScheduleCoreError):
    def __init__(self, old_status, new_status):
        super().__init__(
            f"Task status cannot change from '{old_status}' to '{new_status}'."
        )
        self.old_status = old_status
        self.new_status = new_status
