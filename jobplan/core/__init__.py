from .agent import Agent, AgentSetupError, ConfiguredAgent, TaskDescriptor
from .job import Job, ValidationError

__all__ = ["Agent", "AgentSetupError", "ConfiguredAgent", "TaskDescriptor", "Job", "ValidationError"]
