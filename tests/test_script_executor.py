import pytest

from toolinstaller.core.script_executor import DryRunExecutor, ScriptExecutor, looks_like_prompt
from toolinstaller.errors import ScriptFailure, SpawnError


@pytest.mark.asyncio
async def test_successful_script_streams_lines(write_script):
    script = write_script("ok.sh", 'echo "step one"\necho\necho "step two"')
    lines = []

    outcome = await ScriptExecutor().run(script, on_output=lines.append)

    assert outcome.success is True
    assert outcome.exit_code == 0
    assert outcome.output == "step one\n\nstep two\n"
    # Blank lines are not forwarded
    assert lines == ["step one", "step two"]
    outcome.raise_for_status()


@pytest.mark.asyncio
async def test_failing_script_captures_stderr(write_script):
    script = write_script("bad.sh", 'echo "partial work"\necho "E: lock held" >&2\nexit 3')
    lines = []

    outcome = await ScriptExecutor().run(script, on_output=lines.append)

    assert outcome.success is False
    assert outcome.exit_code == 3
    assert outcome.error_output == "E: lock held\n"
    assert "partial work" in outcome.output
    assert "E: lock held" in outcome.output
    assert sorted(lines) == ["E: lock held", "partial work"]

    with pytest.raises(ScriptFailure) as excinfo:
        outcome.raise_for_status()
    assert str(excinfo.value) == "Script exited with code 3: E: lock held"
    assert excinfo.value.exit_code == 3


@pytest.mark.asyncio
async def test_prompts_are_answered(write_script):
    script = write_script("prompt.sh", "\n".join([
        'read -r first',
        'echo "Continue? [Y/n]"',
        'read -r second',
        'echo "answers: $first $second"',
    ]))
    lines = []

    outcome = await ScriptExecutor().run(script, on_output=lines.append)

    assert outcome.success is True
    assert lines[-1] == "answers: y y"


@pytest.mark.asyncio
async def test_partial_last_line_is_flushed(write_script):
    script = write_script("partial.sh", "printf 'no newline at end'")
    lines = []

    await ScriptExecutor().run(script, on_output=lines.append)

    assert lines == ["no newline at end"]


@pytest.mark.asyncio
async def test_environment_forces_non_interactive(write_script):
    script = write_script("env.sh", 'echo "$DEBIAN_FRONTEND $CI $EXTRA_FLAG"')
    lines = []
    executor = ScriptExecutor({"environment": {"EXTRA_FLAG": "configured"}})

    await executor.run(script, on_output=lines.append)
    assert lines == ["noninteractive true configured"]

    lines.clear()
    await executor.run(script, environment={"EXTRA_FLAG": "override"}, on_output=lines.append)
    assert lines == ["noninteractive true override"]


@pytest.mark.asyncio
async def test_missing_script_raises_spawn_error(tmp_path):
    with pytest.raises(SpawnError) as excinfo:
        await ScriptExecutor().run(tmp_path / "nope.sh")
    assert "Script not found" in str(excinfo.value)


@pytest.mark.asyncio
async def test_directory_is_not_a_script(tmp_path):
    with pytest.raises(SpawnError):
        await ScriptExecutor().run(tmp_path)


@pytest.mark.asyncio
async def test_missing_interpreter_raises_spawn_error(write_script):
    script = write_script("ok.sh", "echo hi")
    executor = ScriptExecutor({"interpreter": "/nonexistent/interpreter"})

    with pytest.raises(SpawnError) as excinfo:
        await executor.run(script)
    assert excinfo.value.script_path == str(script)


@pytest.mark.asyncio
async def test_timeout_kills_script(write_script):
    script = write_script("hang.sh", 'echo "waiting"\nexec sleep 30')
    executor = ScriptExecutor({"timeout_seconds": 0.5})

    outcome = await executor.run(script)

    assert outcome.success is False
    assert outcome.timed_out is True
    assert outcome.exit_code is None
    with pytest.raises(ScriptFailure) as excinfo:
        outcome.raise_for_status()
    assert excinfo.value.timed_out is True
    assert "timed out" in str(excinfo.value)


@pytest.mark.asyncio
async def test_script_ignoring_stdin_still_succeeds(write_script):
    script = write_script("quick.sh", "exit 0")

    outcome = await ScriptExecutor().run(script)

    assert outcome.success is True
    assert outcome.output == ""


@pytest.mark.asyncio
async def test_dry_run_executor_does_not_run(tmp_path):
    lines = []

    outcome = await DryRunExecutor().run(tmp_path / "never.sh", on_output=lines.append)

    assert outcome.success is True
    assert lines == [f"[DRY RUN] Would run bash {tmp_path / 'never.sh'}"]


@pytest.mark.parametrize("text, expected", [
    ("Do you want to continue? ", True),
    ("Proceed [Y/n] ", True),
    ("Overwrite [y/N]", True),
    ("Reading package lists... Done", False),
])
def test_prompt_heuristic(text, expected):
    assert looks_like_prompt(text) is expected
