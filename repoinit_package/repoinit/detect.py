"""Auto-detect placeholder defaults from the local git checkout."""

import configparser
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional

import git

from .errors import GitError

logger = logging.getLogger('repoinit.detect')


def parse_repository_url(repo_url: str) -> Dict[str, str]:
    """
    Parse a GitHub repository URL to extract owner and name.

    Handles both https://github.com/owner/repo and git@github.com:owner/repo.git formats.

    Raises:
        GitError: If the URL is not a GitHub repository URL
    """
    url = repo_url.strip()
    if url.startswith('https://github.com/'):
        path = url[len('https://github.com/'):]
    elif url.startswith('git@github.com:'):
        path = url[len('git@github.com:'):]
    elif url.startswith('ssh://git@github.com/'):
        path = url[len('ssh://git@github.com/'):]
    else:
        raise GitError(f"Unsupported repository URL format: {repo_url}")

    path = path.rstrip('/')
    if path.endswith('.git'):
        path = path[:-len('.git')]

    parts = path.split('/')
    if len(parts) != 2 or not all(parts):
        raise GitError(f"Invalid repository URL format: {repo_url}")

    return {'owner': parts[0], 'name': parts[1]}


def open_repository(root: str) -> git.Repo:
    """Open the git repository containing ``root``."""
    try:
        return git.Repo(root, search_parent_directories=True)
    except (git.InvalidGitRepositoryError, git.NoSuchPathError) as e:
        raise GitError(f"Not a git repository: {root} ({e})")


def _origin_url(repo: git.Repo) -> Optional[str]:
    try:
        return repo.remote('origin').url
    except ValueError:
        return None


def _git_user_name(repo: git.Repo) -> Optional[str]:
    try:
        return repo.config_reader().get_value('user', 'name')
    except (configparser.NoSectionError, configparser.NoOptionError) as e:
        logger.debug(f"No git user.name configured: {e}")
        return None


def detect_defaults(root: str) -> Dict[str, str]:
    """
    Build the auto-detected placeholder defaults for the checkout at ``root``.

    Anything that cannot be detected is simply left out; the caller decides
    whether the key is required.
    """
    defaults = {
        'YEAR': str(datetime.now().year),
        'LICENSE_TYPE': 'MIT',
        'PROJECT_NAME': Path(root).resolve().name,
    }

    try:
        repo = open_repository(root)
    except GitError as e:
        logger.warning(f"{e}; repository details will not be auto-detected")
        return defaults

    origin = _origin_url(repo)
    if origin:
        try:
            info = parse_repository_url(origin)
        except GitError as e:
            logger.warning(f"Could not parse origin remote: {e}")
        else:
            owner, name = info['owner'], info['name']
            defaults.update({
                'REPOSITORY_OWNER': owner,
                'REPOSITORY_NAME': name,
                'REPOSITORY_URL': f"https://github.com/{owner}/{name}",
                'PROJECT_NAME': name,
                'DOCS_URL': f"https://{owner.lower()}.github.io/{name}/",
            })
    else:
        logger.info("No 'origin' remote configured")

    holder = _git_user_name(repo) or defaults.get('REPOSITORY_OWNER')
    if holder:
        defaults['COPYRIGHT_HOLDER'] = holder

    logger.debug(f"Detected defaults for keys: {sorted(defaults)}")
    return defaults
