"""
JobDefinitionRegistry - Load job definitions from YAML or JSON documents.

A definition describes a job to create: properties, steps with their
transitions, schedules and the alerts to associate. Transition targets may
name a step by id (its 1-based position) or by name.

Example (nightly_etl.yaml):

    name: nightly_etl
    description: Load the warehouse
    steps:
      - name: extract
        command: EXEC etl.extract
        on_failure: {action: go_to_step, step: cleanup}
      - name: load
        command: EXEC etl.load
      - name: cleanup
        command: EXEC etl.cleanup
        on_success: quit_with_failure
    schedules:
      - name: nightly
        frequency_type: daily
        active_start_time: "02:00:00"
    alerts:
      - DiskSpaceLow
"""

import hashlib
import json
import logging
from dataclasses import dataclass, field, fields
from datetime import date, time
from pathlib import Path
from typing import Any, Optional, Union

import yaml

from agentjob.config import AgentJobConfig
from agentjob.schemas import CompletionAction, JobContext, JobRecord, JobStep, Schedule

logger = logging.getLogger(__name__)


class JobDefinitionNotFoundError(Exception):
    """Raised when a job definition is not found."""
    pass


class JobDefinitionError(Exception):
    """Raised when a job definition fails validation."""
    pass


JOB_KEYS = ("name", "description", "owner", "category", "enabled")
STEP_FIELD_KEYS = frozenset(
    f.name for f in fields(JobStep)
    if not f.name.startswith("_")
    and f.name not in ("id", "created", "original_id", "original_name",
                       "success_action", "success_step_id", "failure_action", "failure_step_id")
)
SCHEDULE_FIELD_KEYS = frozenset(
    f.name for f in fields(Schedule)
    if not f.name.startswith("_") and f.name not in ("id", "created", "original_name")
)


# =============================================================================
# Parsing helpers
# =============================================================================


def _parse_time(value: Any) -> time:
    if isinstance(value, time):
        return value
    if isinstance(value, int):
        # YAML 1.1 reads unquoted 02:00:00 as sexagesimal seconds
        return time(value // 3600, (value // 60) % 60, value % 60)
    return time.fromisoformat(str(value))


def _parse_date(value: Any) -> date:
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value))


def _parse_transition(value: Any, where: str) -> tuple[CompletionAction, Optional[Union[int, str]]]:
    """Parse `action` or `{action: ..., step: <id or name>}`."""
    if isinstance(value, dict):
        unknown = sorted(set(value) - {"action", "step"})
        if unknown:
            raise JobDefinitionError(f"{where}: unknown transition keys {unknown}")
        action, target = value.get("action"), value.get("step")
    else:
        action, target = value, None

    try:
        action = CompletionAction.from_string(action)
    except ValueError as e:
        raise JobDefinitionError(f"{where}: {e}") from e
    if action == CompletionAction.GO_TO_STEP and target is None:
        raise JobDefinitionError(f"{where}: go_to_step requires a target step")
    if action != CompletionAction.GO_TO_STEP and target is not None:
        raise JobDefinitionError(f"{where}: {action.value} does not take a target step")
    return action, target


def _format_transition(action: CompletionAction, target: Optional[int]) -> Union[str, dict]:
    if action == CompletionAction.GO_TO_STEP:
        return {"action": action.value, "step": target}
    return action.value


# =============================================================================
# JobDefinition
# =============================================================================


@dataclass
class JobDefinition:
    """A job to create, as read from a definition document."""
    job: JobRecord
    steps: list[JobStep] = field(default_factory=list)
    schedules: list[Schedule] = field(default_factory=list)
    alerts: list[str] = field(default_factory=list)
    start_step: Optional[int] = None

    @property
    def name(self) -> str:
        return self.job.name

    @classmethod
    def from_dict(cls, data: dict) -> "JobDefinition":
        """
        Build a definition from a parsed document.

        Raises:
            JobDefinitionError: If the document is malformed
        """
        if not isinstance(data, dict):
            raise JobDefinitionError("Job definition must be a mapping")

        known = set(JOB_KEYS) | {"steps", "schedules", "alerts", "start_step"}
        unknown = sorted(set(data) - known)
        if unknown:
            raise JobDefinitionError(f"Unknown job keys: {unknown}")
        if not data.get("name"):
            raise JobDefinitionError("Job definition requires 'name'")

        job = JobRecord(**{k: data[k] for k in JOB_KEYS if k in data})

        raw_steps = data.get("steps") or []
        steps, transitions = [], []
        for index, raw in enumerate(raw_steps, start=1):
            step, success, failure = cls._parse_step(raw, index)
            steps.append(step)
            transitions.append((success, failure))

        ids_by_name = {step.name: step.id for step in steps}
        if len(ids_by_name) != len(steps):
            names = [s.name for s in steps]
            duplicate = next(n for n in names if names.count(n) > 1)
            raise JobDefinitionError(f"Duplicate step name: '{duplicate}'")

        for step, (success, failure) in zip(steps, transitions):
            try:
                step.set_success_action(success[0], cls._resolve(success[1], ids_by_name, step))
                step.set_failure_action(failure[0], cls._resolve(failure[1], ids_by_name, step))
            except ValueError as e:
                raise JobDefinitionError(f"Step '{step.name}': {e}") from e

        start_step = None
        if data.get("start_step") is not None:
            start_step = cls._resolve(data["start_step"], ids_by_name, None)

        schedules = [cls._parse_schedule(raw) for raw in data.get("schedules") or []]
        alerts = [str(name) for name in data.get("alerts") or []]

        return cls(job=job, steps=steps, schedules=schedules, alerts=alerts, start_step=start_step)

    @staticmethod
    def _parse_step(raw: Any, index: int) -> tuple[JobStep, tuple, tuple]:
        if not isinstance(raw, dict) or not raw.get("name"):
            raise JobDefinitionError(f"Step {index} must be a mapping with a 'name'")

        where = f"Step '{raw['name']}'"
        values = {k: v for k, v in raw.items() if k not in ("on_success", "on_failure")}
        unknown = sorted(set(values) - STEP_FIELD_KEYS)
        if unknown:
            raise JobDefinitionError(f"{where}: unknown keys {unknown}")

        success = _parse_transition(raw.get("on_success", CompletionAction.GO_TO_NEXT_STEP.value), f"{where} on_success")
        failure = _parse_transition(raw.get("on_failure", CompletionAction.QUIT_WITH_FAILURE.value), f"{where} on_failure")
        try:
            step = JobStep(id=index, **values)
        except ValueError as e:
            raise JobDefinitionError(f"{where}: {e}") from e
        return step, success, failure

    @staticmethod
    def _resolve(target: Optional[Union[int, str]], ids_by_name: dict[str, int], step: Optional[JobStep]) -> Optional[int]:
        if target is None:
            return None
        if isinstance(target, int):
            if target not in ids_by_name.values():
                raise JobDefinitionError(f"No step with id {target}")
            return target
        if target not in ids_by_name:
            raise JobDefinitionError(f"No step named '{target}'")
        return ids_by_name[target]

    @staticmethod
    def _parse_schedule(raw: Any) -> Schedule:
        if not isinstance(raw, dict) or not raw.get("name"):
            raise JobDefinitionError("Schedule must be a mapping with a 'name'")

        unknown = sorted(set(raw) - SCHEDULE_FIELD_KEYS)
        if unknown:
            raise JobDefinitionError(f"Schedule '{raw['name']}': unknown keys {unknown}")

        values = dict(raw)
        try:
            for key in ("active_start_date", "active_end_date"):
                if key in values:
                    values[key] = _parse_date(values[key])
            for key in ("active_start_time", "active_end_time"):
                if key in values:
                    values[key] = _parse_time(values[key])
            return Schedule(**values)
        except ValueError as e:
            raise JobDefinitionError(f"Schedule '{raw['name']}': {e}") from e

    def to_dict(self) -> dict:
        """Serialize back to the document form (targets by step id)."""
        steps = []
        for step in self.steps:
            entry = {k: v for k, v in step.state().items() if k in STEP_FIELD_KEYS}
            entry["subsystem"] = step.subsystem.value
            entry["on_success"] = _format_transition(step.success_action, step.success_step_id)
            entry["on_failure"] = _format_transition(step.failure_action, step.failure_step_id)
            steps.append(entry)

        schedules = []
        for schedule in self.schedules:
            entry = schedule.state()
            entry["frequency_type"] = schedule.frequency_type.value
            for key in ("active_start_date", "active_end_date", "active_start_time", "active_end_time"):
                entry[key] = entry[key].isoformat()
            schedules.append(entry)

        data = {k: getattr(self.job, k) for k in JOB_KEYS}
        data["steps"] = steps
        data["schedules"] = schedules
        data["alerts"] = list(self.alerts)
        if self.start_step is not None:
            data["start_step"] = self.start_step
        return data

    def to_assembly(self, store, context: Optional[JobContext] = None, config: Optional[AgentJobConfig] = None):
        """
        Build a create-mode JobAssembly holding this definition.

        Records are copied, so one definition can seed several assemblies.
        """
        from agentjob.assembly import JobAssembly

        context = context or JobContext()
        if context.job_id:
            raise JobDefinitionError("A job definition can only seed a new job")

        fresh = JobDefinition.from_dict(self.to_dict())
        assembly = JobAssembly(store, context, config=config, job=fresh.job)

        # targets use the definition's numbering; a seed step shifts the graph's
        by_id = {step.id: step for step in fresh.steps}
        jumps = []
        for step in fresh.steps:
            if step.success_action == CompletionAction.GO_TO_STEP:
                jumps.append((assembly.steps.set_success_action, step, by_id[step.success_step_id]))
                step.set_success_action(CompletionAction.GO_TO_NEXT_STEP)
            if step.failure_action == CompletionAction.GO_TO_STEP:
                jumps.append((assembly.steps.set_failure_action, step, by_id[step.failure_step_id]))
                step.set_failure_action(CompletionAction.QUIT_WITH_FAILURE)

        for step in fresh.steps:
            assembly.steps.add_step(step)
        for set_action, step, target in jumps:
            set_action(step, CompletionAction.GO_TO_STEP, target)
        if fresh.start_step is not None:
            assembly.steps.set_start_step(by_id[fresh.start_step])
        for schedule in fresh.schedules:
            assembly.schedules.add(schedule)
        for name in fresh.alerts:
            assembly.alerts.add_by_name(name)
        return assembly


# =============================================================================
# Registry
# =============================================================================


class JobDefinitionRegistry:
    """
    Registry for loading and caching job definitions.

    Definitions live in a directory tree, one file per job named after it:
        jobs/
            nightly_etl.yaml
            maintenance/
                reindex.json
    """

    def __init__(self, definitions_dir: Union[Path, str]):
        self._definitions_dir = Path(definitions_dir)
        self._cache: dict[str, JobDefinition] = {}

    @property
    def definitions_dir(self) -> Path:
        return self._definitions_dir

    def load(self, name: str) -> JobDefinition:
        """
        Load a job definition by name.

        YAML files are preferred over JSON when both exist. Results are cached.

        Raises:
            JobDefinitionNotFoundError: If no definition file exists
            JobDefinitionError: If the definition is invalid
        """
        if name in self._cache:
            return self._cache[name]

        def_path = self._find_definition(name)
        if def_path is None:
            raise JobDefinitionNotFoundError(f"Job definition not found: {name}")

        try:
            data = self._load_file(def_path)
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise JobDefinitionError(f"Failed to load {def_path}: {e}") from e

        definition = JobDefinition.from_dict(data)
        if definition.name != name:
            raise JobDefinitionError(
                f"Job name mismatch: file is '{name}' but name is '{definition.name}'"
            )

        self._cache[name] = definition
        logger.debug(f"Loaded job definition '{name}' from {def_path}")
        return definition

    def _load_file(self, path: Path) -> Any:
        suffix = path.suffix.lower()
        with open(path) as f:
            if suffix in (".yaml", ".yml"):
                return yaml.safe_load(f)
            elif suffix == ".json":
                return json.load(f)
            else:
                raise ValueError(f"Unsupported file format: {suffix}")

    def list_jobs(self) -> list[str]:
        """Sorted names of the definitions found in the directory tree."""
        if not self._definitions_dir.exists():
            return []

        names = set()
        for ext in ["*.yaml", "*.yml", "*.json"]:
            for f in self._definitions_dir.glob(f"**/{ext}"):
                names.add(f.stem)
        return sorted(names)

    def _find_definition(self, name: str) -> Optional[Path]:
        for ext in [".yaml", ".yml", ".json"]:
            filename = f"{name}{ext}"

            root_path = self._definitions_dir / filename
            if root_path.exists():
                return root_path

            matches = sorted(self._definitions_dir.glob(f"**/{filename}"))
            if matches:
                return matches[0]

        return None

    @staticmethod
    def compute_hash(definition: JobDefinition) -> str:
        """SHA256 of the definition's canonical JSON (sorted keys, compact)."""
        canonical = json.dumps(definition.to_dict(), sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(canonical.encode()).hexdigest()

    def clear_cache(self) -> None:
        self._cache.clear()
