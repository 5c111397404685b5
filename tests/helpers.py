"""
Test helpers shared by the orchestrator and API tests.
"""

import asyncio
from pathlib import Path

from toolinstaller.models.installation import ScriptOutcome


class FakeExecutor:
    """Stands in for ScriptExecutor; outcomes are keyed by script file name."""

    def __init__(self, outcomes=None, hold=None, delay=0.0):
        self.outcomes = outcomes or {}
        self.hold = set(hold or ())
        self.delay = delay
        self.calls = []
        self._entered = None
        self._release = None

    def _events(self):
        if self._entered is None:
            self._entered = asyncio.Event()
            self._release = asyncio.Event()
        return self._entered, self._release

    async def wait_entered(self):
        entered, _ = self._events()
        await entered.wait()

    def release(self):
        _, release = self._events()
        release.set()

    async def run(self, script_path, environment=None, on_output=None):
        name = Path(script_path).name
        self.calls.append(name)
        if name in self.hold:
            entered, release = self._events()
            entered.set()
            await release.wait()
        if self.delay:
            await asyncio.sleep(self.delay)
        if on_output:
            on_output(f"installing {name}")
        outcome = self.outcomes.get(name, ScriptOutcome(success=True, exit_code=0))
        if isinstance(outcome, Exception):
            raise outcome
        return outcome


def failure(code=1, stderr="boom"):
    return ScriptOutcome(success=False, exit_code=code, error_output=stderr)
