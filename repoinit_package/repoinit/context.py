"""Builds the placeholder mapping for a setup run."""

import logging
from typing import Callable, Dict, Iterable, Optional

from .detect import parse_repository_url
from .errors import ConfigurationError, GitError, LicenseError
from .licenses import normalize_license_id
from .parameter_store import ParameterStore

logger = logging.getLogger('repoinit.context')

PROMPTS = {
    'PROJECT_NAME': "Project name",
    'PROJECT_DESCRIPTION': "Short project description",
    'REPOSITORY_URL': "Repository URL",
    'LICENSE_TYPE': "License (MIT, Apache-2.0, GPL-3.0)",
    'COPYRIGHT_HOLDER': "Copyright holder",
    'YEAR': "Copyright year",
}

REQUIRED_KEYS = ('PROJECT_NAME', 'REPOSITORY_URL', 'LICENSE_TYPE', 'COPYRIGHT_HOLDER', 'YEAR')


def ask(prompt: str, default: Optional[str] = None,
        input_fn: Optional[Callable[[str], str]] = None) -> str:
    """Ask a single question, returning ``default`` on empty input."""
    input_fn = input_fn or input
    suffix = f" [{default}]" if default else ""
    answer = input_fn(f"▶ {prompt}{suffix}: ").strip()
    return answer or (default or "")


def _derive(context: Dict[str, str]) -> None:
    """Fill keys that follow from others when they were not given explicitly."""
    url = context.get('REPOSITORY_URL')
    if url and not (context.get('REPOSITORY_OWNER') and context.get('REPOSITORY_NAME')):
        try:
            info = parse_repository_url(url)
        except GitError as e:
            logger.debug(f"Could not derive owner/name from {url}: {e}")
        else:
            context.setdefault('REPOSITORY_OWNER', info['owner'])
            context.setdefault('REPOSITORY_NAME', info['name'])

    owner, name = context.get('REPOSITORY_OWNER'), context.get('REPOSITORY_NAME')
    if owner and name and not context.get('DOCS_URL'):
        context['DOCS_URL'] = f"https://{owner.lower()}.github.io/{name}/"


def build_context(
    defaults: Dict[str, str],
    config_values: Dict[str, str],
    cli_vars: Dict[str, str],
    parameter_store: Optional[ParameterStore] = None,
    interactive: bool = True,
    input_fn: Optional[Callable[[str], str]] = None,
    required: Iterable[str] = REQUIRED_KEYS,
) -> Dict[str, str]:
    """
    Build the placeholder mapping.

    Precedence: defaults < config < Parameter Store < CLI < interactive answers.

    Args:
        defaults: Auto-detected values
        config_values: ``placeholders`` section of the configuration
        cli_vars: Variables passed with ``--var``
        parameter_store: Optional Parameter Store source
        interactive: Prompt for the well-known keys
        input_fn: Function used to read answers (``input`` when omitted)
        required: Keys that must end up non-empty

    Returns:
        The placeholder mapping

    Raises:
        ConfigurationError: If a required key is missing or the license is unknown
    """
    logger.info("Building placeholder mapping")

    context = dict(defaults)
    context.update(config_values)

    if parameter_store is not None:
        # Parameter paths may reference anything known so far, CLI values included
        initial = dict(context)
        initial.update(cli_vars)
        context.update(parameter_store.fetch(initial))

    context.update(cli_vars)

    if interactive:
        for key, prompt in PROMPTS.items():
            context[key] = ask(prompt, context.get(key), input_fn)

    if context.get('REPOSITORY_URL') != defaults.get('REPOSITORY_URL'):
        # A different URL invalidates the detected owner/name
        for derived in ('REPOSITORY_OWNER', 'REPOSITORY_NAME', 'DOCS_URL'):
            if derived in defaults and context.get(derived) == defaults[derived]:
                context.pop(derived)

    _derive(context)

    missing = [key for key in required if not context.get(key)]
    if missing:
        raise ConfigurationError(f"Missing required placeholder values: {', '.join(missing)}")

    if 'LICENSE_TYPE' in context:
        try:
            context['LICENSE_TYPE'] = normalize_license_id(context['LICENSE_TYPE'])
        except LicenseError as e:
            raise ConfigurationError(str(e))

    # Log keys only; values may come from Parameter Store
    logger.info(f"Placeholder mapping built with {len(context)} keys: {sorted(context)}")
    return context
