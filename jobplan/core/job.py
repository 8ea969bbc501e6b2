"""Job model for jobplan.

A Job selects a subset of an Agent's tasks for one run and derives an
execution plan from the Agent's topology: group order is kept from the Agent,
while the order inside each group follows the order tasks were enqueued.
"""

import logging
from collections.abc import Mapping
from typing import Any, Dict, List, Optional

from jobplan.core.agent import Agent, task_id_of

logger = logging.getLogger(__name__)

# Distinguishes an omitted uid from an explicit None
_UNSET = object()


class ValidationError(ValueError):
    """Raised when a Job receives input that breaks its contract."""
    pass


class Job:
    """A single orchestrated run over an Agent's tasks.

    The agent and scraper are borrowed references; the Job never inspects
    the scraper and only talks to the agent through apply_setup() and
    execution_topology().
    """

    def __init__(self, uid: Any = _UNSET, agent: Optional[Agent] = None, scraper: Any = None):
        # Parameters that will be provided to tasks
        self._params: Dict[str, Any] = {}
        self._enqueued_tasks: List[str] = []
        # None until build_execution_plan() has run at least once
        self._execution_plan: Optional[List[List[Any]]] = None
        # Reserved for a downstream executor; nothing in jobplan fills it
        self._execution_queue: List[Any] = []

        self.uid: Optional[str] = None
        self.agent = agent
        self.scraper = scraper

        if uid is not _UNSET:
            self._set_uid(uid)

    def _set_uid(self, uid: Any) -> None:
        if not uid or not isinstance(uid, str):
            raise ValidationError("Job uid must be a non-empty string")
        self.uid = uid

    @property
    def _label(self) -> str:
        return self.uid or "<unnamed>"

    @property
    def parameters(self) -> Dict[str, Any]:
        """A copy of the parameters merged so far."""
        return dict(self._params)

    @property
    def enqueued_tasks(self) -> List[str]:
        """Task ids in the order they were enqueued, duplicates included."""
        return list(self._enqueued_tasks)

    @property
    def execution_plan(self) -> Optional[List[List[Any]]]:
        return self._execution_plan

    @property
    def execution_queue(self) -> List[Any]:
        return self._execution_queue

    def params(self, params_obj: Mapping) -> "Job":
        """Merge parameters that the job will provide to its tasks.

        Keys already present are overwritten. Values are stored as given.

        Raises:
            ValidationError: If params_obj is not a mapping.
        """
        if not isinstance(params_obj, Mapping):
            raise ValidationError(
                f"Params must be a mapping, got {type(params_obj).__name__}"
            )
        self._params.update(params_obj)
        return self

    def enqueue(self, task_id: str) -> "Job":
        """Add a task to be run by this job.

        Raises:
            ValidationError: If task_id is not a non-empty string.
        """
        if not isinstance(task_id, str) or len(task_id) == 0:
            raise ValidationError(f"Enqueued task id must be a non-empty string, got {task_id!r}")
        self._enqueued_tasks.append(task_id)
        return self

    def build_execution_plan(self) -> None:
        """Rebuild the execution plan from the agent's topology.

        For every agent group, each enqueued id (in enqueue order) picks the
        first descriptor in that group with a matching task id. Groups that
        end up empty are dropped. The previous plan is replaced.
        """
        new_plan: List[List[Any]] = []
        matched = set()

        for group in self.agent.execution_topology():
            group_task_ids = [task_id_of(descriptor) for descriptor in group]
            new_group = []

            for task_id in self._enqueued_tasks:
                if task_id in group_task_ids:
                    new_group.append(group[group_task_ids.index(task_id)])
                    matched.add(task_id)

            if new_group:
                new_plan.append(new_group)

        unmatched = [t for t in dict.fromkeys(self._enqueued_tasks) if t not in matched]
        if unmatched:
            logger.warning(f"Job {self._label}: enqueued tasks not found in agent plan: {', '.join(unmatched)}")

        self._execution_plan = new_plan
        logger.debug(f"Job {self._label}: built execution plan with {len(new_plan)} group(s)")

    def run(self) -> None:
        """Apply the agent's setup, then build the execution plan."""
        logger.info(f"Running job {self._label} with {len(self._enqueued_tasks)} enqueued task(s)")
        self.agent.apply_setup()
        self.build_execution_plan()
        shape = [len(group) for group in self._execution_plan]
        logger.info(f"Job {self._label} planned {sum(shape)} task(s) across {len(shape)} group(s): {shape}")

    def to_dict(self) -> Dict[str, Any]:
        """Serialize the job to plain data."""
        plan = None
        if self._execution_plan is not None:
            plan = [
                [_descriptor_to_dict(descriptor) for descriptor in group]
                for group in self._execution_plan
            ]
        return {
            "uid": self.uid,
            "params": dict(self._params),
            "enqueued_tasks": list(self._enqueued_tasks),
            "execution_plan": plan,
        }


def _descriptor_to_dict(descriptor: Any) -> Dict[str, Any]:
    if isinstance(descriptor, Mapping):
        return dict(descriptor)
    data = {"task_id": task_id_of(descriptor)}
    options = getattr(descriptor, "options", None)
    if options:
        data.update(options)
    return data
