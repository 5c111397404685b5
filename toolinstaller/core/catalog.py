"""
Tool catalog: default tool definitions and resolution of install requests.
"""

import logging
from typing import List, Iterable, Tuple

from ..errors import InvalidArgument, NotFound
from ..integrations.job_store import JobRecordStore
from ..models.tool import InstallRequest, ToolSet


# (name, display name, category, description, script, icon)
DEFAULT_TOOLS = [
    ("apt-packages", "Essential APT Packages", "System & Build Tools",
     "Core system packages and build tools", "system/01-apt-packages.sh", "mdi-package"),
    ("homebrew", "Homebrew", "System & Build Tools",
     "Package manager for Linux", "system/02-homebrew.sh", "mdi-beer"),
    ("nvm", "NVM & Node.js", "Node.js & JavaScript",
     "Node Version Manager and Node.js", "nodejs/01-nvm-node.sh", "mdi-nodejs"),
    ("yarn", "Yarn", "Node.js & JavaScript",
     "Fast, reliable JavaScript package manager", "nodejs/02-package-managers.sh", "mdi-package-variant"),
    ("pnpm", "pnpm", "Node.js & JavaScript",
     "Fast, disk space efficient package manager", "nodejs/02-package-managers.sh",
     "mdi-package-variant-closed"),
    ("vite", "Vite", "Node.js & JavaScript",
     "Next generation frontend tooling", "nodejs/03-global-tools.sh", "mdi-lightning-bolt"),
    ("tailwindcss", "Tailwind CSS", "Node.js & JavaScript",
     "Utility-first CSS framework", "nodejs/04-frontend-frameworks.sh", "mdi-tailwind"),
    ("python", "Python & pip", "Python Tools",
     "Python runtime and package manager", "python/01-python-pip.sh", "mdi-language-python"),
    ("pipx", "pipx", "Python Tools",
     "Install Python apps in isolated environments", "python/02-pipx-tools.sh",
     "mdi-package-variant-closed"),
    ("jupyter", "Jupyter", "Python Tools",
     "Interactive computing notebooks", "python/03-data-science.sh", "mdi-notebook"),
    ("vscode", "VS Code", "Development Tools",
     "Visual Studio Code editor", "dev-tools/01-vscode.sh", "mdi-microsoft-visual-studio-code"),
    ("git", "Git", "Development Tools",
     "Version control system", "dev-tools/02-git.sh", "mdi-git"),
    ("github-cli", "GitHub CLI", "Development Tools",
     "GitHub command line tool", "dev-tools/03-github-cli.sh", "mdi-github"),
    ("docker", "Docker", "Cloud Services",
     "Container platform", "cloud-services/01-docker.sh", "mdi-docker"),
    ("postgresql", "PostgreSQL", "Databases",
     "PostgreSQL database in Docker", "databases/01-postgresql.sh", "mdi-database"),
    ("redis", "Redis", "Databases",
     "Redis in-memory data store", "databases/04-redis.sh", "mdi-database-outline"),
    ("aws-cli", "AWS CLI", "Cloud Services",
     "Amazon Web Services CLI", "cloud-services/02-aws-cli.sh", "mdi-aws"),
    ("ollama", "Ollama", "AI/ML Tools",
     "Run large language models locally", "ai-tools/01-ollama.sh", "mdi-robot"),
]

DEFAULT_TOOL_SETS = [
    ToolSet(
        name="essentials",
        display_name="Essentials",
        description="Base packages and version control",
        tools=["apt-packages", "git", "github-cli"]
    ),
    ToolSet(
        name="web-dev",
        display_name="Web Development",
        description="Node.js toolchain and frontend tooling",
        tools=["nvm", "yarn", "pnpm", "vite", "tailwindcss"]
    ),
    ToolSet(
        name="data-science",
        display_name="Data Science",
        description="Python runtime and notebooks",
        tools=["python", "pipx", "jupyter"]
    ),
]


class ToolCatalog:
    """Looks up tools in the store and turns them into install requests."""

    def __init__(self, store: JobRecordStore):
        self.logger = logging.getLogger(__name__)
        self.store = store

    def seed_defaults(self) -> int:
        """
        Load the default tool definitions and tool sets into the store.

        Existing entries are left untouched, so seeding is idempotent.

        Returns:
            Number of tool definitions offered to the store
        """
        for name, display_name, category, description, script_path, icon in DEFAULT_TOOLS:
            self.store.add_tool(
                name=name,
                display_name=display_name,
                script_path=script_path,
                category=category,
                description=description,
                icon=icon
            )
        for tool_set in DEFAULT_TOOL_SETS:
            self.store.add_tool_set(tool_set)

        self.logger.info(f"Loaded {len(DEFAULT_TOOLS)} tool definitions")
        return len(DEFAULT_TOOLS)

    def requests_for_tool_ids(self, tool_ids: Iterable[int]) -> List[InstallRequest]:
        """
        Resolve tool ids into install requests.

        Raises:
            InvalidArgument: no ids given, or a tool is already installed
            NotFound: an id is not in the catalog
        """
        tool_ids = list(tool_ids)
        if not tool_ids:
            raise InvalidArgument("No tools specified")

        requests = []
        for tool_id in tool_ids:
            tool = self.store.get_tool(tool_id)
            if tool is None:
                raise NotFound(f"Tool not found: {tool_id}")
            if tool.installed:
                raise InvalidArgument(f"Tool already installed: {tool.display_name}")
            requests.append(InstallRequest.from_tool(tool))
        return requests

    def requests_for_tool_names(self, names: Iterable[str]) -> List[InstallRequest]:
        """Resolve tool names into install requests, same rules as ids."""
        tool_ids = []
        for name in names:
            tool = self.store.get_tool_by_name(name)
            if tool is None:
                raise NotFound(f"Tool not found: {name}")
            tool_ids.append(tool.id)
        return self.requests_for_tool_ids(tool_ids)

    def requests_for_tool_set(self, name: str) -> Tuple[ToolSet, List[InstallRequest]]:
        """
        Resolve a tool set into install requests for its uninstalled tools.

        Unknown tool names inside the set are skipped with a warning.

        Raises:
            InvalidArgument: no set name, or every tool is already installed
            NotFound: the set is not in the catalog
        """
        if not name:
            raise InvalidArgument("No tool set specified")
        tool_set = self.store.get_tool_set(name)
        if tool_set is None:
            raise NotFound(f"Tool set not found: {name}")

        requests = []
        for tool_name in tool_set.tools:
            tool = self.store.get_tool_by_name(tool_name)
            if tool is None:
                self.logger.warning(f"Tool set {name} references unknown tool {tool_name}")
                continue
            if not tool.installed:
                requests.append(InstallRequest.from_tool(tool))

        if not requests:
            raise InvalidArgument("All tools in this set are already installed")
        return tool_set, requests
