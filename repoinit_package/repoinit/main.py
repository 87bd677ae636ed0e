#!/usr/bin/env python3
"""
repoinit - Set up a repository created from a project template

Collects the placeholder values for the new project, substitutes {{KEY}}
tokens across the template's files, installs the chosen license and
configures the GitHub repository (labels, branch-protection ruleset,
GitHub Pages).

Usage:
    repoinit all
    repoinit --no-input --var PROJECT_NAME=widget placeholders
    repoinit ruleset --no-cleanup
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from .config import DEFAULT_CONFIG_PATH, load_config
from .context import REQUIRED_KEYS, build_context
from .detect import detect_defaults
from .errors import RepoInitError
from .github_api import GitHubClient, resolve_token
from .labels import LabelInstaller
from .licenses import LicenseInstaller
from .pages import PagesInstaller
from .parameter_store import ParameterStore
from .placeholders import PlaceholderReplacer, is_valid_key
from .rulesets import RulesetInstaller

COMMANDS = ('placeholders', 'license', 'labels', 'ruleset', 'pages', 'check', 'all')

# Keys the GitHub-only commands need; no prompting for those
_REMOTE_KEYS = ('REPOSITORY_OWNER', 'REPOSITORY_NAME')


class RepoInit:
    """Main class for the repository setup tool."""

    def __init__(self, config_path: str = DEFAULT_CONFIG_PATH, root: str = ".",
                 config_required: bool = False):
        """
        Args:
            config_path: Path to the YAML configuration file
            root: Repository root the setup runs against
            config_required: Fail when the configuration file is missing
        """
        self.config_path = config_path
        self.config_required = config_required
        self.root = root
        self.config: Dict[str, Any] = {}
        self.logger = self._setup_logging()
        self.github_client: Optional[GitHubClient] = None
        self.summary: List[str] = []

    def _setup_logging(self) -> logging.Logger:
        """Set up logging configuration."""
        logging.basicConfig(
            level=logging.INFO,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )
        return logging.getLogger('repoinit')

    def load_config(self) -> None:
        path = Path(self.root) / self.config_path
        self.config = load_config(str(path), required=self.config_required)

    def build_context(self, cli_vars: Dict[str, str], interactive: bool,
                      required=REQUIRED_KEYS) -> Dict[str, str]:
        """
        Build the placeholder mapping from detected defaults, configuration,
        Parameter Store, CLI variables and (optionally) prompts.
        """
        parameter_store = None
        if self.config.get('parameter_store_map'):
            parameter_store = ParameterStore(self.config['parameter_store_map'])

        return build_context(
            defaults=detect_defaults(self.root),
            config_values=self.config.get('placeholders', {}),
            cli_vars=cli_vars,
            parameter_store=parameter_store,
            interactive=interactive,
            required=required,
        )

    def _initialize_github_client(self, context: Dict[str, str]) -> GitHubClient:
        """Initialize GitHub API client for the repository named in the context."""
        if self.github_client is None:
            self.logger.info("Initializing GitHub API client")
            github_config = self.config.get('github_config', {}) or {}
            token = resolve_token(github_config.get('token'))
            self.github_client = GitHubClient(
                context['REPOSITORY_OWNER'], context['REPOSITORY_NAME'], token
            )
            self.logger.info(f"GitHub client initialized for {self.github_client.full_name}")
        return self.github_client

    # -- steps ------------------------------------------------------------------

    def run_placeholders(self, context: Dict[str, str], dry_run: bool = False) -> None:
        replacer = PlaceholderReplacer(self.root, self.config['target_files'])
        report = replacer.apply(context, dry_run=dry_run)

        verb = "Would update" if dry_run else "Updated"
        self.summary.append(
            f"{verb} {len(report.changed_files)} file(s), "
            f"{report.total_replacements} placeholder(s) replaced"
        )
        for path, tokens in sorted(report.unresolved.items()):
            self.summary.append(f"Unresolved in {path}: {', '.join(sorted(tokens))}")

    def run_license(self, context: Dict[str, str]) -> None:
        license_config = self.config['license']
        github = None
        if context.get('REPOSITORY_OWNER') and context.get('REPOSITORY_NAME'):
            try:
                github = self._initialize_github_client(context)
            except RepoInitError as e:
                self.logger.debug(f"License will only use local templates: {e}")

        installer = LicenseInstaller(
            self.root,
            templates_dir=license_config['templates_dir'],
            output=license_config['output'],
            github=github,
        )
        output = installer.install(context['LICENSE_TYPE'], context)
        self.summary.append(f"Installed {context['LICENSE_TYPE']} license at {license_config['output']}")
        self.logger.debug(f"License written to {output}")

    def run_labels(self, context: Dict[str, str]) -> None:
        client = self._initialize_github_client(context)
        labels = self.config['github_config'].get('labels') or []
        created, skipped = LabelInstaller(client, labels).install()
        self.summary.append(f"Labels: {len(created)} created, {len(skipped)} already present")

    def run_ruleset(self, context: Dict[str, str], cleanup: bool = True) -> None:
        client = self._initialize_github_client(context)
        github_config = self.config['github_config']
        installer = RulesetInstaller(
            client,
            self.root,
            ruleset_file=github_config['ruleset_file'],
            cleanup_paths=github_config.get('cleanup_paths'),
            cleanup_title=github_config.get('cleanup_title') or "Remove repository setup files",
        )
        result = installer.install(cleanup=cleanup)
        state = "created" if result.created else "already present"
        self.summary.append(f"Ruleset '{result.name}' {state}")
        if result.pull_url:
            self.summary.append(f"Cleanup pull request: {result.pull_url}")

    def run_pages(self, context: Dict[str, str]) -> None:
        client = self._initialize_github_client(context)
        github_config = self.config['github_config']
        installer = PagesInstaller(
            client,
            self.root,
            branch=github_config.get('pages_branch') or 'gh-pages',
            path=github_config.get('pages_path') or '/',
            docs_config=github_config.get('docs_config'),
        )
        result = installer.install(site_url=context.get('DOCS_URL'))
        if result.branch_created:
            self.summary.append(f"Created Pages branch '{installer.branch}'")
        self.summary.append(f"GitHub Pages {result.site_action}"
                            + (f": {result.html_url}" if result.html_url else ""))
        if result.docs_config_updated:
            self.summary.append("Updated docs site_url")

    def run_check(self) -> int:
        remaining = PlaceholderReplacer(self.root, self.config['target_files']).scan()
        if not remaining:
            self.summary.append("No placeholders left")
            return 0
        for path, tokens in sorted(remaining.items()):
            self.summary.append(f"{path}: {', '.join(sorted(tokens))}")
        return 1

    # -- entry ------------------------------------------------------------------

    def execute(self, command: str, cli_vars: Dict[str, str], interactive: bool = True,
                dry_run: bool = False, cleanup: bool = True) -> int:
        """
        Run a single command and return its exit status.

        Errors propagate as RepoInitError subclasses.
        """
        self.load_config()

        if command == 'check':
            return self.run_check()

        if command in ('labels', 'ruleset', 'pages'):
            context = self.build_context(cli_vars, interactive=False, required=_REMOTE_KEYS)
        else:
            context = self.build_context(cli_vars, interactive=interactive)

        if command in ('placeholders', 'all'):
            self.run_placeholders(context, dry_run=dry_run)
        if command in ('license', 'all'):
            self.run_license(context)
        if command in ('labels', 'all'):
            self.run_labels(context)
        if command in ('ruleset', 'all'):
            self.run_ruleset(context, cleanup=cleanup)
        if command in ('pages', 'all'):
            self.run_pages(context)
        return 0

    def run(self, command: str, cli_vars: Dict[str, str], interactive: bool = True,
            dry_run: bool = False, cleanup: bool = True) -> int:
        """
        Main execution method.

        Args:
            command: One of COMMANDS
            cli_vars: Variables passed from command line
            interactive: Prompt for placeholder values
            dry_run: Report placeholder changes without writing
            cleanup: Open the cleanup pull request after the ruleset step

        Returns:
            Process exit status
        """
        try:
            self.logger.info(f"Starting repoinit {command}")
            status = self.execute(command, cli_vars, interactive=interactive,
                                  dry_run=dry_run, cleanup=cleanup)
        except RepoInitError as e:
            self.logger.error(f"repoinit error: {e}")
            return 1

        if self.summary:
            print("\n✅ Summary:")
            for line in self.summary:
                print(f"  - {line}")
            print()
        self.logger.info("repoinit execution completed")
        return status


def parse_variables(raw: List[str], parser: argparse.ArgumentParser) -> Dict[str, str]:
    """Parse ``KEY=VALUE`` pairs, reporting malformed ones through the parser."""
    variables = {}
    for var in raw:
        if '=' not in var:
            parser.error(f"Invalid variable format: {var}. Expected KEY=VALUE")

        key, value = var.split('=', 1)
        if not key.strip():
            parser.error(f"Empty key in variable: {var}")
        if not is_valid_key(key.strip()):
            parser.error(
                f"Invalid placeholder key in variable: {var}. "
                "Keys use upper-case letters, digits and underscores"
            )

        variables[key.strip()] = value
    return variables


def parse_arguments(argv: Optional[List[str]] = None) -> Tuple[argparse.Namespace, Dict[str, str]]:
    """
    Parse command-line arguments.

    Returns:
        Parsed namespace and the dictionary of --var pairs
    """
    parser = argparse.ArgumentParser(
        prog="repoinit",
        description="Set up a repository created from a project template",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  repoinit all
  repoinit --var LICENSE_TYPE=Apache-2.0 --var COPYRIGHT_HOLDER="Acme Inc" license
  repoinit --no-input placeholders --dry-run
        """
    )

    parser.add_argument(
        '--var',
        action='append',
        dest='variables',
        metavar='KEY=VALUE',
        help='Set a placeholder value (can be used multiple times)',
        default=[]
    )
    parser.add_argument(
        '--config',
        default=None,
        help=f'Path to configuration file (default: {DEFAULT_CONFIG_PATH})'
    )
    parser.add_argument(
        '--root',
        default='.',
        help='Repository root (default: current directory)'
    )
    parser.add_argument(
        '--no-input',
        action='store_true',
        help='Do not prompt; use detected, configured and --var values only'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging'
    )

    subparsers = parser.add_subparsers(dest='command', metavar='COMMAND', required=True)
    placeholders = subparsers.add_parser('placeholders', help='Substitute {{KEY}} placeholders')
    placeholders.add_argument('--dry-run', action='store_true', help='Report changes without writing')
    subparsers.add_parser('license', help='Install the selected license')
    subparsers.add_parser('labels', help='Create the repository labels')
    ruleset = subparsers.add_parser('ruleset', help='Create the branch-protection ruleset')
    ruleset.add_argument('--no-cleanup', action='store_true', help='Do not open the cleanup pull request')
    subparsers.add_parser('pages', help='Set up GitHub Pages')
    subparsers.add_parser('check', help='List placeholders still present in the target files')
    run_all = subparsers.add_parser('all', help='Run every step in order')
    run_all.add_argument('--dry-run', action='store_true', help='Report placeholder changes without writing')
    run_all.add_argument('--no-cleanup', action='store_true', help='Do not open the cleanup pull request')

    args = parser.parse_args(argv)
    variables = parse_variables(args.variables, parser)
    return args, variables


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point."""
    try:
        args, cli_vars = parse_arguments(argv)

        app = RepoInit(
            config_path=args.config or DEFAULT_CONFIG_PATH,
            root=args.root,
            config_required=args.config is not None,
        )
        # Set logging level based on verbosity
        if args.verbose:
            logging.getLogger('repoinit').setLevel(logging.DEBUG)

        status = app.run(
            args.command,
            cli_vars,
            interactive=not args.no_input,
            dry_run=getattr(args, 'dry_run', False),
            cleanup=not getattr(args, 'no_cleanup', False),
        )
    except KeyboardInterrupt:
        print("\nOperation cancelled by user")
        sys.exit(1)
    sys.exit(status)


if __name__ == "__main__":
    main()
