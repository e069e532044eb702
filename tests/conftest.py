import pytest
from datetime import date, time

from agentjob.config import AgentJobConfig
from agentjob.schemas import Alert, CompletionAction, JobContext, JobRecord, JobStep, Schedule
from agentjob.store import InMemoryJobStore


def _make_steps(*names):
    return [JobStep(name=name, id=i, command=f"EXEC {name}") for i, name in enumerate(names, start=1)]


def _make_schedule(name="nightly", **values):
    values.setdefault("frequency_type", "daily")
    values.setdefault("active_start_date", date(2024, 1, 1))
    values.setdefault("active_start_time", time(2, 0))
    return Schedule(name=name, **values)


@pytest.fixture
def make_steps():
    """Factory for steps 1..n, each going to the next on success."""
    return _make_steps


@pytest.fixture
def make_schedule():
    """Factory for a valid daily schedule."""
    return _make_schedule


@pytest.fixture
def test_config(tmp_path):
    return AgentJobConfig(definitions_dir=str(tmp_path / "jobs"))


@pytest.fixture
def store():
    return InMemoryJobStore(major_version=16)


@pytest.fixture
def legacy_store():
    """Job server from before shared schedules."""
    return InMemoryJobStore(major_version=8)


@pytest.fixture
def seeded_job(store):
    """A stored job with three steps, one schedule and one alert."""
    steps = _make_steps("extract", "transform", "load")
    steps[-1].set_success_action(CompletionAction.QUIT_WITH_SUCCESS)
    job_id = store.add_job(JobRecord(name="nightly_etl", start_step_id=1), steps=steps, schedules=[_make_schedule()])
    store.add_alert(Alert(name="DiskSpaceLow", job_id=job_id))
    store.add_alert(Alert(name="LogFull"))
    return job_id


@pytest.fixture
def edit_context(seeded_job):
    return JobContext(job_id=seeded_job)
