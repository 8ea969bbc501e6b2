"""Agent capability and task descriptors for jobplan.

A Job only needs two things from an Agent: a way to apply its setup and the
ordered groups of task descriptors it knows about. Anything providing those
two methods can drive a Job; ConfiguredAgent is the implementation backed by
a job file's ``agent`` section.
"""

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, Sequence, Tuple, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class Agent(Protocol):
    """What a Job requires from the agent that owns the task topology."""

    def apply_setup(self) -> None:
        ...

    def execution_topology(self) -> Sequence[Sequence[Any]]:
        ...


@dataclass(frozen=True)
class TaskDescriptor:
    """One task in an agent's topology.

    Attributes:
        task_id: Identifier used to match enqueued tasks.
        options: Extra per-task settings, carried along untouched.
    """
    task_id: str
    options: Dict[str, Any] = field(default_factory=dict)

    def __hash__(self) -> int:
        # options is a dict; equal descriptors always share a task_id
        return hash(self.task_id)


def task_id_of(descriptor: Any) -> Any:
    """Return the task id of a descriptor object or mapping."""
    if isinstance(descriptor, Mapping):
        return descriptor.get("task_id")
    return getattr(descriptor, "task_id", None)


class AgentSetupError(Exception):
    """Raised when an agent's plan definition cannot be formatted.

    Attributes:
        message: Human-readable error message
        group_index: Position of the offending group in the plan definition
    """

    def __init__(self, message: str, group_index: Optional[int] = None):
        self.message = message
        self.group_index = group_index
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        if self.group_index is not None:
            return f"{self.message} (plan group {self.group_index})"
        return self.message


class ConfiguredAgent:
    """Agent whose topology comes from a raw plan definition.

    Each entry of the definition is one group and may be a task id string,
    a mapping with a ``task_id`` key, or a list of either. The definition is
    only turned into descriptors when apply_setup() runs; until then the
    topology is empty.
    """

    def __init__(self, name: str, plan: Sequence[Any]):
        self.name = name
        self._plan_definition = list(plan)
        self._execution_plan: Tuple[Tuple[TaskDescriptor, ...], ...] = ()
        self._applied = False

    @classmethod
    def from_config(cls, agent_config: Dict[str, Any]) -> "ConfiguredAgent":
        """Build an agent from the ``agent`` section of a job file."""
        return cls(name=agent_config.get("name", "agent"), plan=agent_config.get("plan", []))

    @property
    def setup_applied(self) -> bool:
        return self._applied

    def apply_setup(self) -> None:
        """Format the plan definition into task descriptor groups.

        Calling it again after a successful setup does nothing.

        Raises:
            AgentSetupError: If a group or task entry is malformed.
        """
        if self._applied:
            return

        groups: List[Tuple[TaskDescriptor, ...]] = []
        for index, entry in enumerate(self._plan_definition):
            if isinstance(entry, (list, tuple)):
                if not entry:
                    raise AgentSetupError("Plan group must not be empty", index)
                groups.append(tuple(_format_task(item, index) for item in entry))
            else:
                groups.append((_format_task(entry, index),))

        self._execution_plan = tuple(groups)
        self._applied = True
        logger.debug(f"Agent {self.name}: setup applied, {len(groups)} group(s) in plan")

    def execution_topology(self) -> Tuple[Tuple[TaskDescriptor, ...], ...]:
        return self._execution_plan


def _format_task(entry: Any, group_index: int) -> TaskDescriptor:
    if isinstance(entry, str):
        if not entry:
            raise AgentSetupError("Task id must be a non-empty string", group_index)
        return TaskDescriptor(task_id=entry)

    if isinstance(entry, Mapping):
        task_id = entry.get("task_id")
        if not isinstance(task_id, str) or not task_id:
            raise AgentSetupError("Task entry requires a non-empty 'task_id'", group_index)
        options = {k: v for k, v in entry.items() if k != "task_id"}
        return TaskDescriptor(task_id=task_id, options=options)

    raise AgentSetupError(
        f"Task entry must be a string or a mapping, got {type(entry).__name__}", group_index
    )
