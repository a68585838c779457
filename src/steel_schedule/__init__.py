from steel_schedule.analysis import ScheduleAnalyzer
from steel_schedule.calendars.business_days import business_days_between, rfi_escalation_level
from steel_schedule.cpm.critical_path import (
    CriticalPathResult,
    ScheduleTiming,
    apply_critical_flags,
    compute_critical_path,
)
from steel_schedule.cpm.dependency_graph import DependencyGraph, build_dependency_graph, detect_cycles
from steel_schedule.cpm.health_engine import compute_schedule_health
from steel_schedule.errors import (
    RepositoryError,
    RepositoryUnavailableError,
    ScheduleCoreError,
    ScheduleTooLargeError,
)
from steel_schedule.integrity.cascade import CascadeIntegrityMaintainer, CascadeResult
from steel_schedule.models import Task, TaskPhase, TaskStatus
from steel_schedule.repository import InMemoryTaskRepository, TaskRepository
from steel_schedule.validation.integrity_check import run_integrity_check

__version__ = "0.3.0"
