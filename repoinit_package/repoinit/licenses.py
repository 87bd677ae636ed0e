"""
License selection and installation.

The template repository ships one template per supported license in a
templates directory (``.github/license-templates/MIT.txt`` and so on). The
selected one is rendered with the placeholder mapping and written to the
canonical ``LICENSE`` path; the templates directory is then removed.
"""

import logging
import shutil
from pathlib import Path
from typing import Dict, Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined, TemplateNotFound, UndefinedError
from jinja2 import TemplateError as JinjaTemplateError

from .errors import GitHubError, LicenseError

# Canonical id -> GitHub license key
SUPPORTED_LICENSES = {
    'MIT': 'mit',
    'Apache-2.0': 'apache-2.0',
    'GPL-3.0': 'gpl-3.0',
}

_ALIASES = {
    'mit': 'MIT',
    'apache': 'Apache-2.0',
    'apache2': 'Apache-2.0',
    'apache-2': 'Apache-2.0',
    'apache-2.0': 'Apache-2.0',
    'gpl': 'GPL-3.0',
    'gpl3': 'GPL-3.0',
    'gpl-3': 'GPL-3.0',
    'gpl-3.0': 'GPL-3.0',
    'gplv3': 'GPL-3.0',
}

# Markers used by the bodies returned from GitHub's licenses API
_GITHUB_MARKERS = {
    '[year]': 'YEAR',
    '[yyyy]': 'YEAR',
    '<year>': 'YEAR',
    '[fullname]': 'COPYRIGHT_HOLDER',
    '[name of copyright owner]': 'COPYRIGHT_HOLDER',
    '<name of author>': 'COPYRIGHT_HOLDER',
}


def normalize_license_id(value: str) -> str:
    """Map user input such as ``apache`` or ``gpl-3.0`` to a canonical license id."""
    key = value.strip().lower()
    if key in _ALIASES:
        return _ALIASES[key]
    raise LicenseError(
        f"Unsupported license '{value}'. Choose one of: {', '.join(SUPPORTED_LICENSES)}"
    )


class LicenseInstaller:
    """Installs the selected license file."""

    def __init__(self, root: str, templates_dir: str = ".github/license-templates",
                 output: str = "LICENSE", github=None):
        """
        Args:
            root: Repository root
            templates_dir: Directory holding ``<ID>.txt`` templates, relative to root
            output: Canonical license path, relative to root
            github: Optional GitHubClient used when no local template exists
        """
        self.root = Path(root)
        self.templates_dir = self.root / templates_dir
        self.output = self.root / output
        self.github = github
        self.logger = logging.getLogger('repoinit.licenses')

    def _render_local(self, license_id: str, context: Dict[str, str]) -> Optional[str]:
        """Render the repository's template for ``license_id``, or None if there is none."""
        template_name = f"{license_id}.txt"
        if not (self.templates_dir / template_name).is_file():
            return None

        env = Environment(
            loader=FileSystemLoader(str(self.templates_dir)),
            undefined=StrictUndefined,
            keep_trailing_newline=True,
        )
        try:
            return env.get_template(template_name).render(**context)
        except TemplateNotFound:
            raise LicenseError(f"License template not found: {template_name}")
        except UndefinedError as e:
            raise LicenseError(f"Undefined variable in license template {template_name}: {e}")
        except JinjaTemplateError as e:
            raise LicenseError(f"Invalid license template {template_name}: {e}")

    def _render_remote(self, license_id: str, context: Dict[str, str]) -> Optional[str]:
        if self.github is None:
            return None

        self.logger.info(f"No local template for {license_id}, fetching it from GitHub")
        try:
            body = self.github.get_license_text(SUPPORTED_LICENSES[license_id])
        except GitHubError as e:
            raise LicenseError(f"Failed to fetch {license_id} license text: {e}")

        for marker, key in _GITHUB_MARKERS.items():
            body = body.replace(marker, context.get(key, marker))
        return body if body.endswith('\n') else body + '\n'

    def install(self, license_type: str, context: Dict[str, str]) -> Path:
        """
        Write the selected license to the canonical path and drop the templates.

        Args:
            license_type: License id or alias
            context: Placeholder mapping (YEAR and COPYRIGHT_HOLDER at least)

        Returns:
            Path of the written license file
        """
        license_id = normalize_license_id(license_type)
        self.logger.info(f"Installing {license_id} license")

        text = self._render_local(license_id, context)
        if text is None:
            text = self._render_remote(license_id, context)
        if text is None:
            raise LicenseError(
                f"No template for {license_id} in {self.templates_dir} and no GitHub client to fetch one"
            )

        try:
            self.output.parent.mkdir(parents=True, exist_ok=True)
            self.output.write_text(text, encoding='utf-8')
        except IOError as e:
            raise LicenseError(f"Error writing license file {self.output}: {e}")
        self.logger.info(f"Wrote {self.output.relative_to(self.root)}")

        if self.templates_dir.is_dir():
            shutil.rmtree(self.templates_dir)
            self.logger.info(f"Removed license templates directory {self.templates_dir.relative_to(self.root)}")

        return self.output
