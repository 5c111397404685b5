import pytest

from toolinstaller.core.catalog import DEFAULT_TOOLS, DEFAULT_TOOL_SETS, ToolCatalog
from toolinstaller.errors import InvalidArgument, NotFound
from toolinstaller.integrations.job_store import InMemoryJobStore
from toolinstaller.models.tool import ToolSet


@pytest.fixture
def catalog(store):
    catalog = ToolCatalog(store)
    catalog.seed_defaults()
    return catalog


def test_seed_defaults_is_idempotent(store, catalog):
    catalog.seed_defaults()

    assert len(store.list_tools()) == len(DEFAULT_TOOLS)
    assert len(store.list_tool_sets()) == len(DEFAULT_TOOL_SETS)


def test_default_tool_sets_reference_known_tools():
    names = {tool[0] for tool in DEFAULT_TOOLS}
    for tool_set in DEFAULT_TOOL_SETS:
        assert set(tool_set.tools) <= names


def test_requests_for_tool_ids_keeps_order(store, catalog):
    git = store.get_tool_by_name("git")
    docker = store.get_tool_by_name("docker")

    requests = catalog.requests_for_tool_ids([docker.id, git.id])

    assert [r.name for r in requests] == ["docker", "git"]
    assert requests[1].script_path == "dev-tools/02-git.sh"
    assert requests[1].display_name == "Git"


def test_requests_for_no_tools(catalog):
    with pytest.raises(InvalidArgument):
        catalog.requests_for_tool_ids([])


def test_requests_for_unknown_tool(catalog):
    with pytest.raises(NotFound):
        catalog.requests_for_tool_ids([9999])
    with pytest.raises(NotFound):
        catalog.requests_for_tool_names(["emacs"])


def test_requests_for_installed_tool(store, catalog):
    git = store.get_tool_by_name("git")
    store.mark_tool_installed(git.id)

    with pytest.raises(InvalidArgument) as excinfo:
        catalog.requests_for_tool_names(["git"])
    assert "already installed" in str(excinfo.value)


def test_tool_set_skips_installed_tools(store, catalog):
    store.mark_tool_installed(store.get_tool_by_name("git").id)

    tool_set, requests = catalog.requests_for_tool_set("essentials")

    assert tool_set.display_name == "Essentials"
    assert [r.name for r in requests] == ["apt-packages", "github-cli"]


def test_tool_set_all_installed(store, catalog):
    for name in ["apt-packages", "git", "github-cli"]:
        store.mark_tool_installed(store.get_tool_by_name(name).id)

    with pytest.raises(InvalidArgument):
        catalog.requests_for_tool_set("essentials")


def test_unknown_or_missing_tool_set(catalog):
    with pytest.raises(NotFound):
        catalog.requests_for_tool_set("gamedev")
    with pytest.raises(InvalidArgument):
        catalog.requests_for_tool_set(None)


def test_tool_set_with_unknown_member():
    store = InMemoryJobStore()
    store.add_tool(name="git", display_name="Git", script_path="git.sh")
    store.add_tool_set(ToolSet(name="mixed", display_name="Mixed", tools=["ghost", "git"]))

    _, requests = ToolCatalog(store).requests_for_tool_set("mixed")

    assert [r.name for r in requests] == ["git"]
