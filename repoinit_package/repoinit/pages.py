"""GitHub Pages setup: publishing branch, Pages source and docs site URL."""

import logging
from dataclasses import dataclass
from io import StringIO
from pathlib import Path
from typing import Optional

from ruamel.yaml import YAML
from ruamel.yaml.error import YAMLError

from .errors import ConfigurationError

NOJEKYLL_MESSAGE = "Initialize GitHub Pages branch"


@dataclass
class PagesResult:
    """Outcome of a Pages installation."""

    branch_created: bool = False
    site_action: str = "unchanged"  # created, updated or unchanged
    html_url: Optional[str] = None
    docs_config_updated: bool = False


class PagesInstaller:
    """Ensures the publishing branch exists and Pages serves from it."""

    def __init__(self, client, root: str, branch: str = "gh-pages", path: str = "/",
                 docs_config: Optional[str] = "mkdocs.yml"):
        """
        Args:
            client: GitHubClient for the repository
            root: Local checkout root
            branch: Branch Pages publishes from
            path: Directory within the branch (``/`` or ``/docs``)
            docs_config: YAML docs config whose ``site_url`` is kept in sync
        """
        if path not in ("/", "/docs"):
            raise ConfigurationError(f"Pages path must be '/' or '/docs', got '{path}'")
        self.client = client
        self.root = Path(root)
        self.branch = branch
        self.path = path
        self.docs_config = self.root / docs_config if docs_config else None
        self.logger = logging.getLogger('repoinit.pages')

    def ensure_branch(self) -> bool:
        """Create the publishing branch if missing. Returns True when created."""
        if self.client.branch_exists(self.branch):
            self.logger.info(f"Pages branch '{self.branch}' already exists")
            return False

        self.logger.info(f"Creating Pages branch '{self.branch}'")
        prefix = "docs/" if self.path == "/docs" else ""
        self.client.create_orphan_branch(self.branch, {f"{prefix}.nojekyll": ""}, NOJEKYLL_MESSAGE)
        return True

    def ensure_site(self, result: PagesResult) -> None:
        site = self.client.get_pages()
        if site is None:
            self.logger.info(f"Enabling GitHub Pages from {self.branch}:{self.path}")
            site = self.client.create_pages(self.branch, self.path)
            result.site_action = "created"
        else:
            source = site.get('source') or {}
            if source.get('branch') != self.branch or source.get('path') != self.path:
                self.logger.info(
                    f"Switching GitHub Pages source from {source.get('branch')}:{source.get('path')} "
                    f"to {self.branch}:{self.path}"
                )
                self.client.update_pages(self.branch, self.path)
                result.site_action = "updated"
            else:
                self.logger.info("GitHub Pages already configured")
        result.html_url = site.get('html_url') or result.html_url

    def update_docs_config(self, site_url: str) -> bool:
        """
        Set ``site_url`` in the docs config, keeping its comments and layout.

        Returns:
            True when the file was rewritten
        """
        if self.docs_config is None or not self.docs_config.is_file():
            return False

        yaml_parser = YAML()
        yaml_parser.preserve_quotes = True
        yaml_parser.width = 4096  # Prevent line wrapping
        yaml_parser.indent(mapping=2, sequence=4, offset=2)

        try:
            data = yaml_parser.load(self.docs_config.read_text(encoding='utf-8'))
        except YAMLError as e:
            raise ConfigurationError(f"Error parsing {self.docs_config.name}: {e}")

        if not isinstance(data, dict) or data.get('site_url') == site_url:
            return False

        data['site_url'] = site_url
        output = StringIO()
        yaml_parser.dump(data, output)
        self.docs_config.write_text(output.getvalue(), encoding='utf-8')
        self.logger.info(f"Set site_url in {self.docs_config.name}")
        return True

    def install(self, site_url: Optional[str] = None) -> PagesResult:
        result = PagesResult()
        result.branch_created = self.ensure_branch()
        self.ensure_site(result)
        if site_url:
            result.docs_config_updated = self.update_docs_config(site_url)
        return result
