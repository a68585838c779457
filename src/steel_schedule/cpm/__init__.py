from .critical_path import CriticalPathResult, ScheduleTiming, compute_critical_path
from .dependency_graph import DependencyGraph, build_dependency_graph, detect_cycles
from .health_engine import compute_schedule_health
