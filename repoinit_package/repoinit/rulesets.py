"""
Branch-protection ruleset installation.

The ruleset definition lives in the repository (the JSON exported from the
GitHub ruleset UI, or the same document as YAML). It is created once; the
definition and the other one-shot setup files are then removed through a
cleanup pull request.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import git
import yaml

from .errors import ConfigurationError, GitError


@dataclass
class RulesetResult:
    """Outcome of a ruleset installation."""

    name: str
    created: bool
    ruleset_id: Optional[int] = None
    pull_url: Optional[str] = None


def load_ruleset(path: Path) -> Dict[str, Any]:
    """Load a ruleset definition from a JSON or YAML file."""
    if not path.is_file():
        raise ConfigurationError(f"Ruleset definition not found: {path}")

    try:
        with open(path, 'r', encoding='utf-8') as file:
            if path.suffix.lower() in ('.yml', '.yaml'):
                definition = yaml.safe_load(file)
            else:
                definition = json.load(file)
    except (ValueError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Error parsing ruleset definition {path}: {e}")

    if not isinstance(definition, dict) or not definition.get('name'):
        raise ConfigurationError(f"Ruleset definition {path} must be a mapping with a 'name'")

    # Fields GitHub adds on export but rejects on create
    for key in ('id', 'source', 'source_type', 'node_id', '_links', 'created_at', 'updated_at'):
        definition.pop(key, None)
    return definition


class RulesetInstaller:
    """Creates the named ruleset if missing, then opens the cleanup pull request."""

    def __init__(self, client, root: str, ruleset_file: str,
                 cleanup_paths: Optional[List[str]] = None,
                 cleanup_title: str = "Remove repository setup files",
                 repo: Optional[git.Repo] = None):
        """
        Args:
            client: GitHubClient for the repository
            root: Local checkout root
            ruleset_file: Ruleset definition path, relative to root
            cleanup_paths: Paths removed by the cleanup pull request
            cleanup_title: Title of the cleanup pull request
            repo: Local git repository (opened from root when omitted)
        """
        self.client = client
        self.root = Path(root)
        self.ruleset_file = self.root / ruleset_file
        self.cleanup_paths = cleanup_paths or []
        self.cleanup_title = cleanup_title
        self._repo = repo
        self.logger = logging.getLogger('repoinit.rulesets')

    @property
    def repo(self) -> git.Repo:
        if self._repo is None:
            try:
                self._repo = git.Repo(self.root)
            except (git.InvalidGitRepositoryError, git.NoSuchPathError) as e:
                raise GitError(f"Not a git repository: {self.root} ({e})")
        return self._repo

    def install(self, cleanup: bool = True) -> RulesetResult:
        definition = load_ruleset(self.ruleset_file)
        name = definition['name']

        existing = [r for r in self.client.list_rulesets() if r.get('name') == name]
        if existing:
            self.logger.info(f"Ruleset '{name}' already exists, nothing to create")
            result = RulesetResult(name=name, created=False, ruleset_id=existing[0].get('id'))
        else:
            self.logger.info(f"Creating ruleset '{name}'")
            created = self.client.create_ruleset(definition)
            result = RulesetResult(name=name, created=True, ruleset_id=created.get('id'))
            self.logger.info(f"Ruleset '{name}' created")

        if cleanup:
            result.pull_url = self.open_cleanup_request()
        return result

    def _present_cleanup_paths(self) -> List[str]:
        return [path for path in self.cleanup_paths if (self.root / path).exists()]

    def _fetch_base(self, default_branch: str) -> str:
        """Fetch the default branch from origin and return its remote-tracking ref."""
        try:
            self.logger.info(f"Fetching origin/{default_branch}")
            self.repo.remote('origin').fetch(default_branch)
        except (git.GitCommandError, ValueError) as e:
            raise GitError(f"Failed to fetch {default_branch} from origin: {e}")
        return f"origin/{default_branch}"

    def _tracked_in(self, base: str, paths: List[str]) -> List[str]:
        tracked = []
        for path in paths:
            if self.repo.git.ls_tree('-r', '--name-only', base, '--', path):
                tracked.append(path)
            else:
                self.logger.debug(f"Cleanup path is not tracked on {base}: {path}")
        return tracked

    def open_cleanup_request(self) -> Optional[str]:
        """
        Remove the one-shot setup files on a branch cut from the default
        branch and open a pull request.

        Returns:
            URL of the cleanup pull request (new or already open), or None when
            there is nothing left to clean up
        """
        if not self._present_cleanup_paths():
            self.logger.info("No setup files left to clean up")
            return None

        default_branch = self.client.default_branch
        base = self._fetch_base(default_branch)
        paths = self._tracked_in(base, self._present_cleanup_paths())
        if not paths:
            self.logger.info(f"No setup files left to clean up on {default_branch}")
            return None

        open_pull = self.client.find_open_pull(self.cleanup_title)
        if open_pull:
            self.logger.info(f"Cleanup pull request already open: {open_pull}")
            return open_pull

        repo = self.repo
        branch_name = f"repoinit/cleanup-{datetime.now().strftime('%Y%m%d-%H%M%S')}"
        try:
            original = repo.active_branch
        except TypeError:
            raise GitError("Cannot create the cleanup branch from a detached HEAD")

        branch = None
        try:
            self.logger.info(f"Creating cleanup branch {branch_name} from {base}")
            branch = repo.create_head(branch_name, base)
            branch.checkout()

            repo.git.rm('-r', '--', *paths)
            repo.index.commit(
                f"{self.cleanup_title}\n\nRemoves: {', '.join(paths)}\n"
                f"Generated by repoinit at {datetime.now().isoformat()}"
            )
            self.logger.info("Cleanup committed")

            self.logger.info(f"Pushing branch: {branch_name}")
            repo.remote('origin').push(branch_name).raise_if_error()
        except (git.GitCommandError, ValueError) as e:
            raise GitError(f"Failed to prepare cleanup branch {branch_name}: {e}")
        finally:
            original.checkout()
            if branch is not None:
                # The pushed branch lives on origin; the local copy is not needed
                repo.delete_head(branch, force=True)

        body = (
            "Removes files that were only needed while setting up the repository:\n\n"
            + "\n".join(f"- `{path}`" for path in paths)
        )
        pull_url = self.client.create_pull(
            title=self.cleanup_title,
            body=body,
            head=branch_name,
            base=default_branch,
        )
        self.logger.info(f"Pull request created: {pull_url}")
        return pull_url
