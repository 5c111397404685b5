import pytest

from toolinstaller.errors import InvalidTransition, ScriptFailure
from toolinstaller.models import InstallRequest, Job, JobStatus, ScriptOutcome, ToolRecord


def test_job_happy_path():
    job = Job(id=1, tool_id=7)

    job.mark_running()
    job.append_log("line\n")
    job.mark_completed()

    assert job.status == JobStatus.COMPLETED
    assert job.is_terminal
    assert job.started_at <= job.completed_at
    assert job.error_message is None
    assert job.log == "line\n"


def test_failed_job_keeps_error():
    job = Job(id=1, tool_id=7)
    job.mark_running()
    job.mark_failed("Script exited with code 1")

    assert job.status == JobStatus.FAILED
    assert job.error_message == "Script exited with code 1"
    assert job.completed_at is not None


def test_pending_job_can_be_cancelled():
    job = Job(id=1, tool_id=7)
    job.mark_cancelled()

    assert job.status == JobStatus.CANCELLED
    assert job.started_at is None
    assert job.error_message is None


@pytest.mark.parametrize("status, move", [
    (JobStatus.PENDING, "mark_completed"),
    (JobStatus.RUNNING, "mark_cancelled"),
    (JobStatus.RUNNING, "mark_running"),
    (JobStatus.COMPLETED, "mark_running"),
    (JobStatus.CANCELLED, "mark_running"),
])
def test_illegal_transitions(status, move):
    job = Job(id=1, tool_id=7, status=status)

    with pytest.raises(InvalidTransition):
        getattr(job, move)()
    assert job.status == status


def test_mark_failed_from_pending_is_illegal():
    job = Job(id=1, tool_id=7)

    with pytest.raises(InvalidTransition):
        job.mark_failed("boom")
    assert job.error_message is None


def test_log_closed_outside_running():
    job = Job(id=1, tool_id=7)
    with pytest.raises(InvalidTransition):
        job.append_log("too early\n")

    job.mark_running()
    job.mark_completed()
    with pytest.raises(InvalidTransition):
        job.append_log("too late\n")
    assert job.log == ""


def test_outcome_message_without_stderr():
    outcome = ScriptOutcome(success=False, exit_code=2, error_output="  \n")

    with pytest.raises(ScriptFailure) as excinfo:
        outcome.raise_for_status()
    assert str(excinfo.value) == "Script exited with code 2"


def test_outcome_timeout_message():
    outcome = ScriptOutcome(success=False, timed_out=True, duration_seconds=600.2)

    with pytest.raises(ScriptFailure) as excinfo:
        outcome.raise_for_status()
    assert str(excinfo.value) == "Script timed out after 600 seconds"


def test_install_request_from_tool():
    tool = ToolRecord(id=3, name="git", display_name="Git", script_path="dev-tools/02-git.sh")

    request = InstallRequest.from_tool(tool)

    assert (request.tool_id, request.name, request.display_name, request.script_path) == \
        (3, "git", "Git", "dev-tools/02-git.sh")
