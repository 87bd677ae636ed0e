"""
GitHub access for repoinit.

Repository, label, branch, git-data, license and pull-request calls go through
PyGithub. Rulesets and Pages are called through a plain ``requests`` session
against the REST API, since PyGithub does not model them.
"""

import logging
import os
import shutil
import subprocess
from typing import Any, Dict, List, Optional

import requests
from github import Auth, Github, GithubException, InputGitTreeElement

from .errors import GitHubError

API_BASE = "https://api.github.com"
API_VERSION = "2022-11-28"
PAGE_SIZE = 100
GH_CLI_TIMEOUT = 30

logger = logging.getLogger('repoinit.github')


def resolve_token(config_token: Optional[str] = None) -> str:
    """
    Find a GitHub token.

    Order: configuration, GITHUB_TOKEN, GH_TOKEN, then ``gh auth token`` from
    an authenticated GitHub CLI.

    Raises:
        GitHubError: If no token can be found
    """
    token = config_token or os.getenv('GITHUB_TOKEN') or os.getenv('GH_TOKEN')
    if token:
        return token

    if shutil.which('gh'):
        try:
            result = subprocess.run(['gh', 'auth', 'token'], capture_output=True, text=True,
                                    timeout=GH_CLI_TIMEOUT)
        except subprocess.TimeoutExpired:
            raise GitHubError(f"'gh auth token' did not answer within {GH_CLI_TIMEOUT}s")
        if result.returncode == 0 and result.stdout.strip():
            logger.debug("Using token from the GitHub CLI")
            return result.stdout.strip()
        logger.debug(f"gh auth token failed: {result.stderr.strip()}")

    raise GitHubError(
        "GitHub token not found. Set GITHUB_TOKEN, add token to github_config in "
        "repoinit.yaml, or run 'gh auth login'"
    )


def _describe(e: GithubException) -> str:
    data = e.data if isinstance(e.data, dict) else {}
    return data.get('message') or str(e)


class GitHubClient:
    """Thin client for the GitHub calls the installers need."""

    def __init__(self, owner: str, name: str, token: str,
                 session: Optional[requests.Session] = None,
                 github: Optional[Github] = None,
                 base_url: str = API_BASE):
        """
        Args:
            owner: Repository owner
            name: Repository name
            token: GitHub token
            session: HTTP session for the REST calls
            github: PyGithub client
            base_url: REST API root
        """
        self.owner = owner
        self.name = name
        self._token = token
        self._base = base_url.rstrip('/')
        self._http = session or requests.Session()
        self.github = github or Github(auth=Auth.Token(token))
        self._repo = None

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"

    # -- REST -----------------------------------------------------------------

    def _headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": API_VERSION,
        }

    def _url(self, path: str) -> str:
        return f"{self._base}/repos/{self.owner}/{self.name}{path}"

    def _request(self, method: str, path: str, payload: Optional[Dict[str, Any]] = None,
                 params: Optional[Dict[str, Any]] = None) -> Any:
        try:
            res = self._http.request(
                method,
                self._url(path),
                headers=self._headers(),
                params=params,
                json=payload,
                timeout=30,
            )
        except requests.RequestException as e:
            raise GitHubError(f"GitHub request failed for {method} {path}: {e}")

        if res.status_code == 404 and method.upper() == "GET":
            return None
        if res.status_code >= 400:
            try:
                body = res.json()
            except ValueError:
                body = {"raw": res.text}
            message = body.get("message") if isinstance(body, dict) else None
            raise GitHubError(
                f"GitHub API error {res.status_code} for {method} {path}"
                + (f": {message}" if message else ""),
                status_code=res.status_code,
                payload=body,
            )
        # PUT /pages answers 204 with an empty body
        if res.status_code == 204 or not res.content:
            return {}
        try:
            return res.json()
        except ValueError:
            return {}

    def list_rulesets(self) -> List[Dict[str, Any]]:
        rulesets = []
        page = 1
        while True:
            data = self._request(
                "GET",
                "/rulesets",
                params={"includes_parents": "false", "per_page": PAGE_SIZE, "page": page},
            ) or []
            rulesets.extend(data)
            if len(data) < PAGE_SIZE:
                return rulesets
            page += 1

    def create_ruleset(self, definition: Dict[str, Any]) -> Dict[str, Any]:
        return self._request("POST", "/rulesets", payload=definition)

    def get_pages(self) -> Optional[Dict[str, Any]]:
        return self._request("GET", "/pages")

    def create_pages(self, branch: str, path: str = "/") -> Dict[str, Any]:
        return self._request("POST", "/pages", payload={"source": {"branch": branch, "path": path}})

    def update_pages(self, branch: str, path: str = "/") -> Dict[str, Any]:
        return self._request("PUT", "/pages", payload={"source": {"branch": branch, "path": path}})

    # -- PyGithub -------------------------------------------------------------

    def get_repo(self):
        """Return the PyGithub repository object, fetched once."""
        if self._repo is None:
            try:
                self._repo = self.github.get_repo(self.full_name)
            except GithubException as e:
                raise GitHubError(f"Failed to load repository {self.full_name}: {_describe(e)}",
                                  status_code=e.status, payload=e.data)
        return self._repo

    @property
    def default_branch(self) -> str:
        return self.get_repo().default_branch

    def branch_exists(self, branch: str) -> bool:
        try:
            self.get_repo().get_branch(branch)
            return True
        except GithubException as e:
            if e.status == 404:
                return False
            raise GitHubError(f"Failed to look up branch {branch}: {_describe(e)}",
                              status_code=e.status, payload=e.data)

    def create_orphan_branch(self, branch: str, files: Dict[str, str], message: str) -> str:
        """
        Create a branch whose single root commit holds ``files``.

        Returns:
            SHA of the new commit
        """
        repo = self.get_repo()
        try:
            elements = [
                InputGitTreeElement(path=path, mode="100644", type="blob", content=content)
                for path, content in files.items()
            ]
            tree = repo.create_git_tree(elements)
            commit = repo.create_git_commit(message=message, tree=tree, parents=[])
            repo.create_git_ref(ref=f"refs/heads/{branch}", sha=commit.sha)
        except GithubException as e:
            raise GitHubError(f"Failed to create branch {branch}: {_describe(e)}",
                              status_code=e.status, payload=e.data)
        return commit.sha

    def list_labels(self) -> List[str]:
        try:
            return [label.name for label in self.get_repo().get_labels()]
        except GithubException as e:
            raise GitHubError(f"Failed to list labels: {_describe(e)}",
                              status_code=e.status, payload=e.data)

    def create_label(self, name: str, color: str, description: str = "") -> None:
        try:
            self.get_repo().create_label(name=name, color=color, description=description)
        except GithubException as e:
            raise GitHubError(f"Failed to create label {name}: {_describe(e)}",
                              status_code=e.status, payload=e.data)

    def find_open_pull(self, title: str) -> Optional[str]:
        """Return the URL of an open pull request with ``title``, if any."""
        try:
            for pull in self.get_repo().get_pulls(state='open'):
                if pull.title == title:
                    return pull.html_url
        except GithubException as e:
            raise GitHubError(f"Failed to list pull requests: {_describe(e)}",
                              status_code=e.status, payload=e.data)
        return None

    def create_pull(self, title: str, body: str, head: str, base: str) -> str:
        try:
            pull = self.get_repo().create_pull(title=title, body=body, head=head, base=base)
        except GithubException as e:
            raise GitHubError(f"Failed to create pull request: {_describe(e)}",
                              status_code=e.status, payload=e.data)
        return pull.html_url

    def get_license_text(self, key: str) -> str:
        try:
            return self.github.get_license(key).body
        except GithubException as e:
            raise GitHubError(f"Failed to fetch license {key}: {_describe(e)}",
                              status_code=e.status, payload=e.data)
