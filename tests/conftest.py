"""Shared fixtures for the tool installer tests."""
import os

import pytest

from toolinstaller.integrations.job_store import InMemoryJobStore
from toolinstaller.models.tool import InstallRequest


@pytest.fixture
def store():
    return InMemoryJobStore()


@pytest.fixture
def add_tools(store):
    """Add tools named after their script and return install requests."""
    def _add(*names):
        requests = []
        for name in names:
            tool = store.add_tool(name=name, display_name=name.upper(), script_path=f"{name}.sh")
            requests.append(InstallRequest.from_tool(tool))
        return requests
    return _add


@pytest.fixture
def write_script(tmp_path):
    """Write a bash script into tmp_path and return its path."""
    def _write(name, body):
        path = tmp_path / name
        path.write_text("#!/usr/bin/env bash\n" + body + "\n")
        os.chmod(path, 0o755)
        return path
    return _write
